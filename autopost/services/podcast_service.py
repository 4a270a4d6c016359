"""
Podcast episode list — mirrors the public podcast RSS feed into episodes.json.

No credentials needed. A feed that cannot be fetched or parsed fails the job.
"""

from __future__ import annotations

import json
import math
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import feedparser
import httpx
from pydantic import BaseModel

from autopost.core.config import Settings
from autopost.core.exceptions import SourceFetchError
from autopost.core.logging import get_logger

logger = get_logger(__name__)


class Episode(BaseModel):
    title: str
    date: str  # YYYY-MM-DD, empty when the item is undated
    dur: int  # minutes
    desc: str
    url: str  # audio enclosure
    art: str
    apple: str
    spot: str


def _minutes(seconds: int) -> int:
    # half-up, so a 30-second remainder counts as a minute
    return math.floor(seconds / 60 + 0.5)


def parse_duration(raw: Any) -> int:
    """itunes:duration → whole minutes. Accepts HH:MM:SS, MM:SS or plain seconds."""
    if not raw:
        return 0
    s = str(raw).strip()
    try:
        if ":" in s:
            parts = [int(p) for p in s.split(":")]
            if len(parts) == 3:
                return parts[0] * 60 + parts[1] + _minutes(parts[2])
            if len(parts) == 2:
                return parts[0] + _minutes(parts[1])
        return _minutes(int(s))
    except ValueError:
        return 0


def _artwork(entry: Any) -> str:
    image = entry.get("image")
    if isinstance(image, dict):
        return image.get("href", "")
    return image or ""


def _audio_url(entry: Any) -> str:
    for link in entry.get("enclosures", []):
        if link.get("href"):
            return link["href"]
    return ""


def _episode_date(entry: Any) -> str:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return ""
    return datetime(*parsed[:6], tzinfo=UTC).date().isoformat()


def to_episode(entry: Any, spotify_show: str) -> Episode:
    return Episode(
        title=entry.get("title", ""),
        date=_episode_date(entry),
        dur=parse_duration(entry.get("itunes_duration")),
        desc=entry.get("summary", ""),
        url=_audio_url(entry),
        art=_artwork(entry),
        apple=entry.get("link", ""),
        spot=spotify_show,
    )


async def fetch_episodes(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> list[Episode]:
    try:
        async with httpx.AsyncClient(
            timeout=settings.feed_timeout_seconds, follow_redirects=True, transport=transport
        ) as client:
            resp = await client.get(settings.podcast_feed_url)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        raise SourceFetchError(settings.podcast_feed_url, str(e)) from e

    feed = feedparser.parse(resp.content)
    if feed.bozo and not feed.entries:
        raise SourceFetchError(
            settings.podcast_feed_url, f"unparseable feed: {feed.get('bozo_exception')}"
        )

    logger.info("podcast_feed_fetched", title=feed.feed.get("title", ""), episodes=len(feed.entries))
    return [to_episode(entry, settings.podcast_spotify_show) for entry in feed.entries]


async def write_episodes(
    settings: Settings,
    *,
    output_dir: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    now: datetime | None = None,
) -> Path:
    episodes = await fetch_episodes(settings, transport=transport)
    output_dir = output_dir or Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    out_path = output_dir / "episodes.json"
    out_path.write_text(
        json.dumps(
            {
                "generated": (now or datetime.now(UTC)).isoformat(),
                "episodes": [e.model_dump() for e in episodes],
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    logger.info("episodes_written", path=str(out_path), count=len(episodes))
    return out_path
