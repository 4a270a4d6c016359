"""
Publisher node — the run's only write: one new `posts` row, status "published".
"""

from __future__ import annotations

from autopost.agents.state import PipelineState
from autopost.core.logging import get_logger
from autopost.services.supabase_service import SupabaseService

logger = get_logger(__name__)


async def publish_post_node(state: PipelineState, *, posts_client: SupabaseService) -> dict:
    post = await posts_client.insert_post(state["article"], run_date=state["run_date"])
    logger.info("post_published", run_id=state["run_id"], post_id=post.get("id"))
    return {"published_post": post, "current_step": "done"}
