"""
Autopost graph — orchestrates one unattended publishing run.

Flow:
  START → fetch_feed × N + fetch_history (fan-out, parallel)
        → compose_context (join) → generate_article → publish_post → END

The super-step boundary after the fan-out is the join barrier: compose_context
runs once, after every fetch task has settled. Fetch tasks swallow their own
failures; any error raised later ends the run. No retry policy, no checkpointer.
"""

from __future__ import annotations

from functools import partial

import httpx
from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, START, StateGraph
from langgraph.types import Send

from autopost.agents.nodes.composer import compose_context_node
from autopost.agents.nodes.feeds import fetch_feed_node
from autopost.agents.nodes.history import fetch_history_node
from autopost.agents.nodes.publisher import publish_post_node
from autopost.agents.nodes.writer import generate_article_node
from autopost.agents.state import PipelineState
from autopost.core.config import Settings
from autopost.core.logging import get_logger
from autopost.services.supabase_service import SupabaseService

logger = get_logger(__name__)

FETCH_NODES = ("fetch_feed", "fetch_history")


def build_graph(
    settings: Settings,
    *,
    llm: BaseChatModel,
    posts_client: SupabaseService,
    feed_transport: httpx.AsyncBaseTransport | None = None,
):
    """
    Construct and compile the autopost graph.

    Args:
        settings: Run configuration; feed_sources fixes the fan-out and merge order.
        llm: Chat model used by the writer node.
        posts_client: Content store client for history reads and the final insert.
        feed_transport: Optional httpx transport for feed downloads (tests).

    Returns:
        Compiled StateGraph ready for .ainvoke() or .astream().
    """

    def _fan_out_fetchers(state: PipelineState) -> list[Send]:
        """One task per feed source, plus the history query, all in one super-step."""
        sends = [
            Send("fetch_feed", {"source": source, "index": i})
            for i, source in enumerate(settings.feed_sources)
        ]
        sends.append(Send("fetch_history", state))
        return sends

    workflow = StateGraph(PipelineState)

    # ── Input nodes (parallel fan-out) ──────────────────────
    workflow.add_node(
        "fetch_feed", partial(fetch_feed_node, settings=settings, transport=feed_transport)
    )
    workflow.add_node(
        "fetch_history",
        partial(fetch_history_node, settings=settings, posts_client=posts_client),
    )

    # ── Sequential tail ─────────────────────────────────────
    workflow.add_node("compose_context", partial(compose_context_node, settings=settings))
    workflow.add_node(
        "generate_article", partial(generate_article_node, settings=settings, llm=llm)
    )
    workflow.add_node("publish_post", partial(publish_post_node, posts_client=posts_client))

    # ── Edges ───────────────────────────────────────────────
    workflow.add_conditional_edges(START, _fan_out_fetchers)
    for node in FETCH_NODES:
        workflow.add_edge(node, "compose_context")
    workflow.add_edge("compose_context", "generate_article")
    workflow.add_edge("generate_article", "publish_post")
    workflow.add_edge("publish_post", END)

    app = workflow.compile()
    logger.info(
        "pipeline_graph_compiled",
        node_count=len(workflow.nodes),
        feed_sources=len(settings.feed_sources),
    )
    return app
