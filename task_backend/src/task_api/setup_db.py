"""
Create the tasks table (and its index) in the configured SQLite database.

Usage:
    python -m task_api.setup_db [--database PATH]
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import anyio

from .db import COLS, Database, DatabaseError
from .logging_setup import setup_logging
from .settings import get_settings

logger = logging.getLogger(__name__)


async def setup_database(db_path: str) -> None:
    database = Database(db_path, pool_size=1)
    try:
        await database.initialize()
        logger.info("Database setup completed: %s (table: %s)", db_path, COLS.table)
    finally:
        await database.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create the task tables if they do not exist.")
    parser.add_argument("--database", default=settings.database_path, help="SQLite file to initialize")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, settings.log_file)
    try:
        anyio.run(setup_database, args.database)
    except DatabaseError as exc:
        logger.error("Database setup failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
