"""Background worker: inserts the test user and logs every user on startup."""

import logging

from auro_db.config import load_settings
from auro_db.consumer import LoadFailed, insert_then_select
from auro_db.database import ConfigurationError, Database, dispose_database, get_database
from auro_shared import GREETING

logger = logging.getLogger(__name__)


def run(database: Database) -> int:
    """Run the insert/read once and return the process exit code."""
    logger.info("Worker says: %s", GREETING)

    result = insert_then_select(database)
    if isinstance(result, LoadFailed):
        logger.error("Worker failed: %s", result.cause, exc_info=result.cause)
        return 1

    logger.info("users %s", [user.model_dump() for user in result.users])
    return 0


def main() -> int:
    try:
        logging.basicConfig(level=load_settings().log_level)
        database = get_database()
    except ConfigurationError as exc:
        logger.error("Worker cannot start: %s", exc)
        return 1

    try:
        return run(database)
    finally:
        dispose_database()


if __name__ == "__main__":
    raise SystemExit(main())
