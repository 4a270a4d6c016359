"""
Context composer — turns feed candidates and recent history into one writing prompt.

Everything here except the node wrapper is a pure function of its inputs.
"""

from __future__ import annotations

from collections.abc import Iterable

from autopost.agents.state import (
    CATEGORIES,
    Category,
    GenerationRequestContext,
    NewsCandidate,
    PipelineState,
    RecentPost,
    SourceResult,
)
from autopost.core.config import Settings
from autopost.core.exceptions import NoNewsAvailable
from autopost.core.logging import get_logger

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════
# Category balance
# ═══════════════════════════════════════════════════════════════
def category_balance_counts(posts: Iterable[RecentPost]) -> dict[Category, int]:
    counts: dict[Category, int] = {c: 0 for c in CATEGORIES}
    for post in posts:
        if post.get("category") in counts:
            counts[post["category"]] += 1
    return counts


def least_used_category(counts: dict[Category, int]) -> Category:
    # min() keeps the first minimum, so CATEGORIES order breaks ties
    return min(CATEGORIES, key=lambda c: counts.get(c, 0))


# ═══════════════════════════════════════════════════════════════
# Request context
# ═══════════════════════════════════════════════════════════════
def build_request_context(
    results: list[SourceResult], recent_posts: list[RecentPost]
) -> GenerationRequestContext:
    """Order sources by configuration, drop empty ones, and summarise history."""
    ordered = sorted(results, key=lambda r: r["index"])
    news_by_category = [(r["category"], r["candidates"]) for r in ordered if r["candidates"]]
    if not news_by_category:
        raise NoNewsAvailable()

    return GenerationRequestContext(
        news_by_category=news_by_category,
        dedup_titles=[f"- [{p['category']}] {p['title']} ({p['date']})" for p in recent_posts],
        least_used_category=least_used_category(category_balance_counts(recent_posts)),
    )


def _render_candidate(i: int, candidate: NewsCandidate) -> str:
    line = f"  {i}. {candidate['title']}"
    if candidate["snippet"]:
        line += f"\n     {candidate['snippet']}"
    return line


def render_news_block(context: GenerationRequestContext) -> str:
    return "\n\n".join(
        f"【{category}】\n"
        + "\n".join(_render_candidate(i, c) for i, c in enumerate(candidates, start=1))
        for category, candidates in context["news_by_category"]
    )


def render_dedup_block(context: GenerationRequestContext) -> str:
    if not context["dedup_titles"]:
        return ""
    return (
        "Articles already published in the last two weeks. The new article must NOT "
        "cover the same topic or take the same angle as any of these:\n"
        + "\n".join(context["dedup_titles"])
    )


def render_balance_hint(context: GenerationRequestContext) -> str:
    # With no history every count is zero and the hint says nothing useful
    if not context["dedup_titles"]:
        return ""
    return (
        f'Recent coverage of "{context["least_used_category"]}" has been the lightest. '
        "Prefer a story from that category, but pick another category if nothing "
        "in it is genuinely newsworthy today."
    )


# ═══════════════════════════════════════════════════════════════
# Prompt
# ═══════════════════════════════════════════════════════════════
ARTICLE_CONTRACT = """Respond with ONLY a JSON object, no other text and no Markdown code fences:
{{
  "category": one of {categories},
  "title": "a compelling headline, 25 characters or fewer",
  "excerpt": "a summary of the article's key points, 80-120 characters",
  "body": "the article body as HTML"
}}

Body requirements:
- Use <h2>, <p> and <ul>/<li> tags
- 600-900 words
- Structure: news background → technical analysis → impact on Taiwan / Asia-Pacific → conclusion and recommendations
- Tone: professional but readable, avoid piling up jargon"""


def build_prompt(context: GenerationRequestContext, today: str, language: str) -> str:
    categories = " or ".join(f'"{c}"' for c in CATEGORIES)
    sections = [
        "You are a professional technology blogger covering AI, cloud computing "
        f"and information security. Today ({today}) the latest tech news is:",
        render_news_block(context),
        render_dedup_block(context),
        render_balance_hint(context),
        "From the news above, pick the single story that is most talked-about and most "
        f"useful to readers in Taiwan, and write a professional blog article in {language}.",
        ARTICLE_CONTRACT.format(categories=categories),
    ]
    return "\n\n".join(s for s in sections if s)


def compose_context_node(state: PipelineState, *, settings: Settings) -> dict:
    """Join point after the parallel fetches. Raises NoNewsAvailable on an empty set."""
    context = build_request_context(state.get("source_results", []), state.get("recent_posts", []))
    prompt = build_prompt(context, state["run_date"], settings.article_language)

    logger.info(
        "context_composed",
        categories=[c for c, _ in context["news_by_category"]],
        candidates=sum(len(items) for _, items in context["news_by_category"]),
        dedup_titles=len(context["dedup_titles"]),
        least_used_category=context["least_used_category"],
        prompt_chars=len(prompt),
    )
    return {"prompt": prompt, "current_step": "generating"}
