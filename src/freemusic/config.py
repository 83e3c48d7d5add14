"""Runtime settings for the catalog client.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory:

    FREEMUSIC_BACKEND_URL   base URL prefixed to every catalog request
    FREEMUSIC_TIMEOUT       per-request timeout in seconds
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .exceptions import ConfigError

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 15.0

BASE_URL_ENV = "FREEMUSIC_BACKEND_URL"
TIMEOUT_ENV = "FREEMUSIC_TIMEOUT"


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _parse_timeout(raw: str) -> float:
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(TIMEOUT_ENV, raw, "not a number") from None
    if timeout <= 0:
        raise ConfigError(TIMEOUT_ENV, raw, "must be greater than zero")
    return timeout


def load_settings(base_url: str | None = None) -> Settings:
    """Return settings from the environment.

    An explicit *base_url* (e.g. from the command line) wins over
    ``FREEMUSIC_BACKEND_URL``.
    """
    load_dotenv()
    url = base_url or os.getenv(BASE_URL_ENV) or DEFAULT_BASE_URL
    raw_timeout = os.getenv(TIMEOUT_ENV)
    timeout = _parse_timeout(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
    return Settings(base_url=url.rstrip("/"), timeout=timeout)
