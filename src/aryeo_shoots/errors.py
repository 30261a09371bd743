"""Error types raised by the provider client, stores and HTTP layer."""

from typing import Optional


class ShootsError(Exception):
    """Base error. http_status is the status the API answers with."""

    http_status: int = 500


class ConfigurationError(ShootsError):
    """Required configuration (e.g. the Aryeo bearer token) is missing."""

    http_status = 500


class ProviderError(ShootsError):
    """
    Aryeo answered with a non-2xx status, or the request never completed.
    status_code is None for transport failures (timeouts, refused connections).
    """

    http_status = 502

    def __init__(self, status_code: Optional[int], body: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.body = (body or "")[:300]
        if message is None:
            message = f"Aryeo API {status_code}: {self.body}"
        super().__init__(message)


class ValidationError(ShootsError):
    """Bad client input: missing query parameter or malformed JSON body."""

    http_status = 400


class AuthError(ShootsError):
    """Webhook shared secret did not match."""

    http_status = 401


class PayloadTooLargeError(ShootsError):
    http_status = 413


class CacheRefreshError(ShootsError):
    """A background refresh failed; the previous cache stays in place."""
