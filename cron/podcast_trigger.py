"""Scheduled job entry point — refresh episodes.json from the podcast RSS feed."""

from __future__ import annotations

import asyncio
import sys

from autopost.core.config import get_settings
from autopost.core.logging import get_logger, setup_logging
from autopost.services.podcast_service import write_episodes

logger = get_logger("cron")


async def main() -> int:
    settings = get_settings()
    setup_logging(settings, job="podcast")
    logger.info("cron_triggered", job="podcast", feed=settings.podcast_feed_url)

    try:
        path = await write_episodes(settings)
    except Exception as e:
        logger.error("podcast_failed", error_type=type(e).__name__, error=str(e))
        return 1

    logger.info("cron_completed", job="podcast", path=str(path))
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
