"""
Recent-history node — what has been published lately, for dedup and category balance.

Soft dependency: if the store is unreachable the run continues without a dedup list.
"""

from __future__ import annotations

from datetime import date

from autopost.agents.state import PipelineState, RecentPost
from autopost.core.config import Settings
from autopost.core.logging import get_logger
from autopost.services.supabase_service import SupabaseService

logger = get_logger(__name__)


async def fetch_recent_posts(
    posts_client: SupabaseService, settings: Settings, today: date | None = None
) -> list[RecentPost]:
    try:
        posts = await posts_client.fetch_recent_posts(
            lookback_days=settings.lookback_days,
            limit=settings.recent_posts_limit,
            today=today,
        )
    except Exception as e:
        logger.warning("recent_posts_fetch_failed", error=str(e))
        return []

    logger.info("recent_posts_fetched", count=len(posts), lookback_days=settings.lookback_days)
    return posts


async def fetch_history_node(
    state: PipelineState, *, settings: Settings, posts_client: SupabaseService
) -> dict:
    today = date.fromisoformat(state["run_date"])
    return {"recent_posts": await fetch_recent_posts(posts_client, settings, today=today)}
