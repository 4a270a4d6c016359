"""
Feed fetcher node — one task per configured category feed, fanned out in parallel.

Each task returns {"source_results": [SourceResult]} which the Annotated reducer
on PipelineState.source_results merges. A broken or unreachable feed degrades to
an empty candidate list; this node never fails the run.
"""

from __future__ import annotations

import html
import re
from datetime import UTC, datetime, timedelta
from typing import Any

import feedparser
import httpx

from autopost.agents.state import NewsCandidate, SourceResult
from autopost.core.config import FeedSource, Settings
from autopost.core.exceptions import SourceFetchError
from autopost.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "daily-autopost/0.1 (+https://operation.tw)"

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def _published_at(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=UTC)


def _snippet(entry: Any, max_chars: int) -> str:
    """Plain-text excerpt of the entry, HTML stripped, capped at max_chars."""
    raw = entry.get("summary") or entry.get("description") or ""
    if not raw and entry.get("content"):
        raw = entry["content"][0].get("value", "")
    text = _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", raw))).strip()
    return text[:max_chars]


def is_fresh(published_at: datetime | None, now: datetime, window: timedelta) -> bool:
    """Undated items are always kept; dated ones must be younger than the window."""
    if published_at is None:
        return True
    return now - published_at < window


def select_candidates(
    entries: list[Any],
    category: str,
    settings: Settings,
    now: datetime | None = None,
) -> list[NewsCandidate]:
    """Scan the head of the feed, drop stale items, keep the first few survivors."""
    now = now or datetime.now(UTC)
    window = timedelta(hours=settings.freshness_hours)

    candidates: list[NewsCandidate] = []
    for entry in entries[: settings.items_scanned_per_feed]:
        pub_dt = _published_at(entry)
        if not is_fresh(pub_dt, now, window):
            continue

        candidates.append(
            NewsCandidate(
                category=category,
                title=entry.get("title", ""),
                link=entry.get("link", ""),
                published_at=pub_dt.isoformat() if pub_dt else None,
                snippet=_snippet(entry, settings.snippet_max_chars),
            )
        )
        if len(candidates) >= settings.candidates_per_feed:
            break

    return candidates


async def _download_feed(
    url: str, timeout: float, transport: httpx.AsyncBaseTransport | None = None
) -> feedparser.FeedParserDict:
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()

    feed = feedparser.parse(resp.content)
    if feed.bozo and not feed.entries:
        raise SourceFetchError(url, f"unparseable feed: {feed.get('bozo_exception')}")
    return feed


async def fetch_source(
    source: FeedSource,
    index: int,
    settings: Settings,
    *,
    now: datetime | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SourceResult:
    """Fetch one category feed. Any failure yields an empty candidate list."""
    try:
        feed = await _download_feed(source.url, settings.feed_timeout_seconds, transport)
        candidates = select_candidates(feed.entries, source.category, settings, now=now)
    except Exception as e:
        logger.warning("feed_fetch_failed", category=source.category, error=str(e))
        candidates = []
    else:
        logger.info(
            "feed_fetched",
            category=source.category,
            entries=len(feed.entries),
            candidates=len(candidates),
        )

    return SourceResult(index=index, category=source.category, candidates=candidates)


async def fetch_feed_node(
    task: dict,
    *,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Graph node: the Send payload carries the source and its configured position."""
    result = await fetch_source(task["source"], task["index"], settings, transport=transport)
    return {"source_results": [result]}
