"""
Scheduled job entry point — one autopost run per invocation.

Runs from the CI scheduler (GitHub Actions cron) with the credentials injected as
secrets: SUPABASE_URL, SUPABASE_SERVICE_KEY, GOOGLE_API_KEY.

Exit code 0 means one post was published; 1 means nothing was written.
"""

from __future__ import annotations

import asyncio
import sys

from autopost.agents.runner import run_pipeline
from autopost.core.config import get_settings
from autopost.core.logging import get_logger, setup_logging

logger = get_logger("cron")


async def main() -> int:
    settings = get_settings()
    setup_logging(settings, job="autopost")
    logger.info("cron_triggered", job="autopost", sources=len(settings.feed_sources))

    result = await run_pipeline(settings)
    if result.status == "done":
        logger.info("cron_completed", run_id=result.run_id, post_id=result.post_id)
    else:
        logger.error(
            "cron_failed",
            run_id=result.run_id,
            step=result.failed_step,
            error=result.error,
        )
    return result.exit_code


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
