"""Configuration management for the song library.

Handles environment variables, logging setup, and application settings.
"""

import os
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from songlib.dates import DATE_FORMAT

ENV_PREFIX = "SONGLIB_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


class Settings(BaseModel):
    """Application settings, passed explicitly to every component that needs them."""

    database_url: str = Field(default="sqlite:///songlib.db", description="SQLAlchemy database URL")
    db_timeout: float = Field(default=5.0, gt=0, description="Database statement timeout in seconds")

    lookup_base_url: str = Field(
        default="http://localhost:8081",
        description="Base URL of the external song metadata service",
    )
    lookup_timeout: float = Field(default=5.0, gt=0, description="Lookup request timeout in seconds")
    lookup_date_format: str = Field(
        default=DATE_FORMAT,
        description="strftime format of release dates returned by the lookup service",
    )

    api_prefix: str = Field(default="/api/v1", description="Path prefix for the songs API")
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """Build settings from SONGLIB_* environment variables (and a .env file)."""
        if load_env_file:
            load_dotenv()

        defaults = cls()
        return cls(
            database_url=_env("DATABASE_URL", defaults.database_url),
            db_timeout=float(_env("DB_TIMEOUT", str(defaults.db_timeout))),
            lookup_base_url=_env("LOOKUP_BASE_URL", defaults.lookup_base_url),
            lookup_timeout=float(_env("LOOKUP_TIMEOUT", str(defaults.lookup_timeout))),
            lookup_date_format=_env("LOOKUP_DATE_FORMAT", defaults.lookup_date_format),
            api_prefix=_env("API_PREFIX", defaults.api_prefix),
            host=_env("HOST", defaults.host),
            port=int(_env("PORT", str(defaults.port))),
            reload=_env("RELOAD", "false").lower() == "true",
            log_level=_env("LOG_LEVEL", defaults.log_level).upper(),
            log_json=_env("LOG_JSON", "false").lower() == "true",
        )


def setup_logging(level: str = "INFO", serialize: bool = False) -> None:
    """Configure the loguru logger for the application.

    Args:
        level: Minimum level for the console sink
        serialize: Emit JSON records instead of the human-readable format
    """
    logger.remove()
    logger.configure(extra={"component": "songlib"})

    if serialize:
        logger.add(sink=sys.stderr, level=level, serialize=True)
        return

    logger.add(
        sink=sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )
