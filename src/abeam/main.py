"""Application entry point: prepares the database and runs the web server."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn

from abeam.config import load_config
from abeam.errors import DatabaseError, MigrationError
from abeam.migrations import MigrationManager, initialize_database
from abeam.storage import Database
from abeam.web.app import create_app

logger = logging.getLogger("abeam")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def main() -> None:
    """Load config, set up logging, migrate the database and start the server."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "AB-EAM starting (env=%s, db=%s)",
        config.app_env,
        config.database_path,
    )

    database = Database(config.database_path)
    manager = MigrationManager(database)
    try:
        initialize_database(database, manager)
    except (DatabaseError, MigrationError):
        logger.exception("Failed to initialize database")
        database.close()
        sys.exit(1)

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Server ready on %s:%d", config.host, config.port)
        yield
        logger.info("Shutting down; closing database")
        database.close()

    app = create_app(config, database, lifespan=lifespan)

    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
