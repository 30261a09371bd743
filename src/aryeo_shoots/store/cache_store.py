"""JSON snapshot store for the shoots cache."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from aryeo_shoots.models.shoot import ShootsCache
from aryeo_shoots.time_utils import parse_timestamp

logger = logging.getLogger(__name__)


class ShootsCacheStore:
    """
    Single-file JSON snapshot of the last successful refresh.
    Unreadable snapshots are ignored; the next refresh rewrites the file.
    """

    def __init__(self, path: str | Path = "data/shoots-cache.json"):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[ShootsCache]:
        """Load the snapshot, or None when missing or corrupt."""
        if not self._path.exists():
            return None
        try:
            parsed = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable shoots cache %s: %s", self._path, e)
            return None

        if not isinstance(parsed, dict) or not isinstance(parsed.get("shoots"), list):
            logger.warning("Ignoring shoots cache %s: no shoots list", self._path)
            return None

        shoots = parsed["shoots"]
        try:
            source_count = int(parsed.get("source_count") or len(shoots) or 0)
            return ShootsCache(
                # Unparseable timestamps load as None so the cache reads as stale.
                updated_at=parse_timestamp(parsed.get("updated_at")),
                shoots=shoots,
                source_count=source_count,
            )
        except (TypeError, ValueError, ValidationError) as e:
            logger.warning("Ignoring invalid shoots cache %s: %s", self._path, e)
            return None

    def save(self, cache: ShootsCache) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(cache.model_dump(mode="json"), indent=2),
            encoding="utf-8",
        )
        os.replace(tmp_path, self._path)
