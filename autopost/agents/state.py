"""
LangGraph pipeline state — the single source of truth flowing through every node.

Design principle: store raw data in state, format prompts on demand in each node.
The Annotated reducer on source_results lets the parallel fetch tasks append
concurrently; each task only ever contributes its own result.
"""

from __future__ import annotations

import operator
from typing import Annotated, Literal, NotRequired, TypedDict

Category = Literal["AI", "Cloud", "Security"]

# Declaration order doubles as the tie-break order for the balance hint
CATEGORIES: tuple[Category, ...] = ("AI", "Cloud", "Security")

RunStep = Literal[
    "idle",
    "fetching_inputs",
    "composing_context",
    "generating",
    "publishing",
    "done",
    "failed",
]


class NewsCandidate(TypedDict):
    category: Category
    title: str
    link: str
    published_at: str | None  # ISO-8601, None when the feed item carries no date
    snippet: str


class SourceResult(TypedDict):
    index: int  # position of the source in settings.feed_sources
    category: Category
    candidates: list[NewsCandidate]


class RecentPost(TypedDict):
    category: str  # as stored; may fall outside Category for legacy rows
    title: str
    date: str  # YYYY-MM-DD


class GenerationRequestContext(TypedDict):
    news_by_category: list[tuple[Category, list[NewsCandidate]]]
    dedup_titles: list[str]
    least_used_category: Category

    # Only category is checked unless strict validation is on.

class GeneratedArticle(TypedDict):
    category: Category
    title: NotRequired[str]
    excerpt: NotRequired[str]
    body: NotRequired[str]  # HTML fragment


class PublishedPost(TypedDict):
    id: int
    title: str
    category: str
    date: str
    status: Literal["published"]
    excerpt: str
    image: str
    body: str
    created_at: NotRequired[str]


class PipelineState(TypedDict):
    """Top-level state for the autopost graph."""

    # ── Run metadata ────────────────────────────────────────
    run_id: str
    run_date: str  # YYYY-MM-DD, fixed at run start

    # ── Inputs (filled concurrently) ────────────────────────
    source_results: Annotated[list[SourceResult], operator.add]
    recent_posts: list[RecentPost]

    # ── Generation ──────────────────────────────────────────
    prompt: str
    article: GeneratedArticle | None

    # ── Output ──────────────────────────────────────────────
    published_post: PublishedPost | None
    current_step: RunStep


def initial_state(run_id: str, run_date: str) -> PipelineState:
    return PipelineState(
        run_id=run_id,
        run_date=run_date,
        source_results=[],
        recent_posts=[],
        prompt="",
        article=None,
        published_post=None,
        current_step="idle",
    )
