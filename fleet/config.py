"""Configuration for the fleet revision tracker."""

import os
from pathlib import Path
from typing import Mapping, Optional


def _int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


class Config:
    """Base configuration, overridable from the environment."""

    DATA_DIR = Path("data")

    # GPSwox tracking server
    GPSWOX_API_URL: Optional[str] = None
    GPSWOX_EMAIL: Optional[str] = None
    GPSWOX_PASSWORD: Optional[str] = None
    GPSWOX_TIMEOUT = 15  # seconds per request
    GPSWOX_MAX_RETRIES = 3
    GPSWOX_HASH_TTL = 60 * 60  # login hash lifetime, seconds

    POLL_INTERVAL = 30  # seconds between fleet refreshes

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "standard"
    LOG_FILE: Optional[str] = None

    SECRET_KEY = "dev-secret-key-change-in-prod"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a config from environment variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        config = cls()
        if environ.get("FLEET_DATA_DIR"):
            config.DATA_DIR = Path(environ["FLEET_DATA_DIR"])
        config.GPSWOX_API_URL = environ.get("GPSWOX_API_URL") or cls.GPSWOX_API_URL
        config.GPSWOX_EMAIL = environ.get("GPSWOX_EMAIL") or cls.GPSWOX_EMAIL
        config.GPSWOX_PASSWORD = environ.get("GPSWOX_PASSWORD") or cls.GPSWOX_PASSWORD
        config.GPSWOX_TIMEOUT = _int(environ, "GPSWOX_TIMEOUT", cls.GPSWOX_TIMEOUT)
        config.GPSWOX_MAX_RETRIES = _int(environ, "GPSWOX_MAX_RETRIES", cls.GPSWOX_MAX_RETRIES)
        config.GPSWOX_HASH_TTL = _int(environ, "GPSWOX_HASH_TTL", cls.GPSWOX_HASH_TTL)
        config.POLL_INTERVAL = _int(environ, "FLEET_POLL_INTERVAL", cls.POLL_INTERVAL)
        config.LOG_LEVEL = (environ.get("LOG_LEVEL") or cls.LOG_LEVEL).upper()
        config.LOG_FORMAT = environ.get("LOG_FORMAT") or cls.LOG_FORMAT
        config.LOG_FILE = environ.get("LOG_FILE") or cls.LOG_FILE
        config.SECRET_KEY = environ.get("SECRET_KEY") or cls.SECRET_KEY
        return config

    @property
    def gpswox_configured(self) -> bool:
        return bool(self.GPSWOX_API_URL and self.GPSWOX_EMAIL and self.GPSWOX_PASSWORD)

    @property
    def revisions_file(self) -> Path:
        return Path(self.DATA_DIR) / "revisions.yaml"

    @property
    def alerts_file(self) -> Path:
        return Path(self.DATA_DIR) / "alerts.yaml"
