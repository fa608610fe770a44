"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    database_path: str

    # Optional: HTTP server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origin: str = "http://localhost:3000"

    # Optional: Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "development"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


_REQUIRED_VARS = [
    "DATABASE_PATH",
]


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return Config(
        database_path=os.environ["DATABASE_PATH"],
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        cors_origin=os.environ.get("CORS_ORIGIN", "http://localhost:3000"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "development"),
    )
