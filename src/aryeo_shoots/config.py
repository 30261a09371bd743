"""Runtime settings, read once from the environment and an optional .env file."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Prefer ./.env, fallback to api/.env (where the site deployment keeps it).
_CWD_ENV_FILE = Path(".env")
_API_ENV_FILE = Path("api") / ".env"

SHOOTS_CACHE_FILENAME = "shoots-cache.json"
PIPELINE_LOG_FILENAME = "lead-pipeline.jsonl"


class Settings(BaseSettings):
    # Aryeo provider
    ARYEO_API_BASE: str = "https://api.aryeo.com/v1"
    ARYEO_API_TOKEN: str = ""
    ARYEO_ORDER_INCLUDES: str = "listing,appointments,items,tags"
    ARYEO_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Webhooks (empty secret disables the check)
    WEBHOOK_SECRET: str = ""

    # Shoots cache
    SHOOTS_CACHE_TTL_SECONDS: int = 21600  # 6 hours
    SHOOTS_CACHE_FETCH_PAGE_SIZE: int = 100
    SHOOTS_CACHE_MAX_PAGES: int = 5
    SHOOTS_REFRESH_TIMEOUT_SECONDS: float = 120.0

    DATA_DIR: Path = Path("data")

    HOST: str = "0.0.0.0"
    PORT: int = 8788
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": (str(_API_ENV_FILE), str(_CWD_ENV_FILE)),
        "extra": "ignore",
    }

    @field_validator("ARYEO_API_BASE")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("ARYEO_ORDER_INCLUDES")
    @classmethod
    def _clean_includes(cls, value: str) -> str:
        return ",".join(part.strip() for part in value.split(",") if part.strip())

    @field_validator("SHOOTS_CACHE_TTL_SECONDS")
    @classmethod
    def _min_ttl(cls, value: int) -> int:
        return max(60, value)

    @field_validator("SHOOTS_CACHE_FETCH_PAGE_SIZE")
    @classmethod
    def _clamp_page_size(cls, value: int) -> int:
        return max(1, min(100, value))

    @field_validator("SHOOTS_CACHE_MAX_PAGES")
    @classmethod
    def _clamp_max_pages(cls, value: int) -> int:
        return max(1, min(10, value))

    @property
    def has_token(self) -> bool:
        return bool(self.ARYEO_API_TOKEN)

    @property
    def shoots_cache_path(self) -> Path:
        return Path(self.DATA_DIR) / SHOOTS_CACHE_FILENAME

    @property
    def pipeline_log_path(self) -> Path:
        return Path(self.DATA_DIR) / PIPELINE_LOG_FILENAME
