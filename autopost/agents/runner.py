"""
Run driver — executes the graph once and reports a terminal state.

States: idle → fetching_inputs → composing_context → generating → publishing → done,
with failed reachable from any of them. Progress is tracked from the graph's
per-node updates so a failure can name the step it happened in.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

import httpx
from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel

from autopost.agents.graph import FETCH_NODES, build_graph
from autopost.agents.nodes.writer import build_writer_llm
from autopost.agents.state import RunStep, initial_state
from autopost.core.config import Settings
from autopost.core.exceptions import PublishError
from autopost.core.logging import bound_run, get_logger
from autopost.services.supabase_service import SupabaseService

logger = get_logger(__name__)


class RunResult(BaseModel):
    run_id: str
    status: RunStep
    post_id: int | None = None
    title: str | None = None
    failed_step: RunStep | None = None
    error_type: str | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "done" else 1


async def run_pipeline(
    settings: Settings,
    *,
    llm: BaseChatModel | None = None,
    posts_client: SupabaseService | None = None,
    feed_transport: httpx.AsyncBaseTransport | None = None,
    run_id: str | None = None,
    today: date | None = None,
) -> RunResult:
    """Attempt exactly one publish. Never raises; failures come back as a RunResult."""
    run_id = run_id or str(uuid.uuid4())
    run_date = (today or datetime.now(UTC).date()).isoformat()

    with bound_run(run_id):
        step: RunStep = "idle"
        published = None
        try:
            settings.require_credentials()
            graph = build_graph(
                settings,
                llm=llm or build_writer_llm(settings),
                posts_client=posts_client or SupabaseService(settings),
                feed_transport=feed_transport,
            )

            step = "fetching_inputs"
            logger.info("pipeline_started", run_date=run_date)
            async for chunk in graph.astream(initial_state(run_id, run_date), stream_mode="updates"):
                for node, update in chunk.items():
                    update = update or {}
                    if node in FETCH_NODES:
                        step = "composing_context"
                    else:
                        step = update.get("current_step", step)
                    if update.get("published_post"):
                        published = update["published_post"]

            if published is None:
                raise PublishError(None, "graph finished without publishing a post")

        except Exception as e:
            logger.error(
                "pipeline_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RunResult(
                run_id=run_id,
                status="failed",
                failed_step=step,
                error_type=type(e).__name__,
                error=str(e),
            )

        logger.info("pipeline_completed", post_id=published.get("id"))

    return RunResult(
        run_id=run_id,
        status="done",
        post_id=published.get("id"),
        title=published.get("title"),
    )
