from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from alembic import command
from alembic.config import Config

from .config import load_settings
from .database import ConfigurationError, Database, get_database

logger = logging.getLogger(__name__)

# Resolved from this file so the runner works from any working directory.
MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def build_alembic_config(migrations_dir: Path = MIGRATIONS_DIR) -> Config:
    config = Config()
    config.set_main_option("script_location", str(migrations_dir))
    return config


def run_migrations(
    database: Database,
    revision: str = "head",
    migrations_dir: Path = MIGRATIONS_DIR,
) -> bool:
    """Upgrade the database behind ``database`` to ``revision``.

    All pending revisions run on one connection inside one transaction.
    Failures are logged with their cause and reported as ``False``; they
    are never retried.
    """
    config = build_alembic_config(migrations_dir)
    try:
        with database.engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, revision)
    except Exception as exc:
        logger.exception("Migrations failed: %s", exc)
        return False

    logger.info("Migrations succeeded")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Apply pending database migrations.")
    parser.add_argument(
        "--revision",
        default="head",
        help="Target revision (default: head).",
    )
    parser.add_argument(
        "--migrations-dir",
        type=Path,
        default=MIGRATIONS_DIR,
        help="Folder holding the Alembic environment and versions.",
    )
    args = parser.parse_args(argv)

    try:
        logging.basicConfig(level=load_settings().log_level)
        database = get_database()
    except ConfigurationError as exc:
        logger.error("Migrations failed: %s", exc)
        return 1

    return 0 if run_migrations(database, args.revision, args.migrations_dir) else 1


if __name__ == "__main__":
    raise SystemExit(main())
