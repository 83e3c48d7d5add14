class FreeMusicError(Exception):
    """Base exception for freemusic."""


class ConfigError(FreeMusicError):
    """Raised when a setting cannot be interpreted."""

    def __init__(self, name: str, value: str, reason: str):
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class TransportError(FreeMusicError):
    """Raised when a catalog request fails at the network or HTTP level.

    ``status_code`` is 0 when no response was received at all.
    """

    def __init__(self, url: str, status_code: int, reason: str | None = None):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Could not reach {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PayloadError(TransportError):
    """Raised when a response body does not have the expected shape."""

    def __init__(self, url: str, reason: str, status_code: int = 200):
        super().__init__(url, status_code, reason)


class ValidationError(FreeMusicError):
    """Raised when a song entry is rejected, either locally or by the service."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)
