"""Exception types raised by the complaint map engine."""

from typing import Optional


class CivicMapError(Exception):
    """Base class for engine errors."""


class ConfigError(CivicMapError):
    """Raised when a configuration file fails schema validation."""

    def __init__(self, messages):
        self.messages = list(messages)
        super().__init__("Invalid configuration: " + "; ".join(self.messages))


class FetchError(CivicMapError):
    """Raised by the API client when a request cannot be completed.

    Attributes:
        status_code: HTTP status of the failed response, or None for
            transport failures (timeouts, refused connections).
        url: Request URL, when known.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500 or self.status_code == 429
