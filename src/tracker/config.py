"""
Environment configuration for the GPS tracker.

Values are read from the process environment, with a .env file loaded
first if present. Settings are built once at startup and passed into the
app factory, so tests can construct their own without touching os.environ.
"""
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./gps_locations.db"
DEFAULT_PORT = 2000
DEFAULT_RETENTION_CAP = 100
DEFAULT_DB_TIMEOUT_SECONDS = 10
DEFAULT_DB_POOL_SIZE = 5

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API and the cleanup job."""
    database_url: str = DEFAULT_DATABASE_URL
    port: int = DEFAULT_PORT
    frontend_url: str = "*"
    retention_cap: int = DEFAULT_RETENTION_CAP
    db_timeout_seconds: int = DEFAULT_DB_TIMEOUT_SECONDS
    db_pool_size: int = DEFAULT_DB_POOL_SIZE
    log_level: str = "INFO"

    def __post_init__(self):
        if self.retention_cap < 0:
            raise ValueError(f"RETENTION_CAP must be >= 0, got {self.retention_cap}")
        if self.db_timeout_seconds <= 0:
            raise ValueError(f"DB_TIMEOUT_SECONDS must be > 0, got {self.db_timeout_seconds}")
        if self.db_pool_size <= 0:
            raise ValueError(f"DB_POOL_SIZE must be > 0, got {self.db_pool_size}")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Recognized variables:
            DATABASE_URL, PORT, FRONTEND_URL, RETENTION_CAP,
            DB_TIMEOUT_SECONDS, DB_POOL_SIZE, LOG_LEVEL

        Raises:
            ValueError: If a numeric variable is malformed or out of range
        """
        return cls(
            database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            port=_int_env("PORT", DEFAULT_PORT),
            frontend_url=os.getenv("FRONTEND_URL") or "*",
            retention_cap=_int_env("RETENTION_CAP", DEFAULT_RETENTION_CAP),
            db_timeout_seconds=_int_env("DB_TIMEOUT_SECONDS", DEFAULT_DB_TIMEOUT_SECONDS),
            db_pool_size=_int_env("DB_POOL_SIZE", DEFAULT_DB_POOL_SIZE),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging once for the process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
