"""
Scheduled job entry point — rebuild sitemap.xml, feed.xml and posts.json.

Needs SUPABASE_URL and SUPABASE_SERVICE_KEY; the model key is not used here.
"""

from __future__ import annotations

import asyncio
import sys

from autopost.core.config import get_settings
from autopost.core.logging import get_logger, setup_logging
from autopost.services.site_feeds import generate_site_files
from autopost.services.supabase_service import SupabaseService

logger = get_logger("cron")


async def main() -> int:
    settings = get_settings()
    setup_logging(settings, job="site")
    logger.info("cron_triggered", job="site_feeds")

    try:
        settings.require_credentials(need_model=False)
        report = await generate_site_files(settings, SupabaseService(settings))
    except Exception as e:
        logger.error("site_feeds_failed", error_type=type(e).__name__, error=str(e))
        return 1

    logger.info("cron_completed", job="site_feeds", posts=report.post_count)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
