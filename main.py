import asyncio
import logging
import sys

from templatebot.config import get_settings
from templatebot.db import Database


async def main():
    """Bootstrap the store: create missing tables, then close the pool."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    logger = logging.getLogger(__name__)

    database = Database.from_settings(settings.db)
    try:
        await database.initialize()
        logger.info("Database is ready.")
    finally:
        await database.disconnect()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Stopped.")
    except Exception:
        logging.exception("Database bootstrap failed.")
        sys.exit(1)
