"""Unit tests for the podcast episode list."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from autopost.core.exceptions import SourceFetchError
from autopost.services.podcast_service import fetch_episodes, parse_duration, write_episodes

PODCAST_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
<channel>
  <title>操作一下 Podcast</title>
  <item>
    <title>EP12 雲端成本優化</title>
    <link>https://podcasts.apple.com/ep12</link>
    <pubDate>Tue, 13 Oct 2026 04:00:00 GMT</pubDate>
    <description>聊聊 FinOps</description>
    <enclosure url="https://media.example/ep12.mp3" length="1" type="audio/mpeg"/>
    <itunes:image href="https://media.example/ep12.jpg"/>
    <itunes:duration>01:02:30</itunes:duration>
  </item>
  <item>
    <title>EP11</title>
    <itunes:duration>1830</itunes:duration>
  </item>
</channel>
</rss>"""


@pytest.mark.parametrize(
    ("raw", "minutes"),
    [
        ("01:02:30", 63),
        ("45:29", 45),
        ("45:30", 46),
        ("1830", 31),
        (2700, 45),
        ("", 0),
        (None, 0),
        ("unknown", 0),
    ],
)
def test_parse_duration(raw, minutes):
    assert parse_duration(raw) == minutes


def _transport(body: str | None = PODCAST_RSS, status: int = 200) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status, text=body or ""))


@pytest.mark.asyncio
async def test_fetch_episodes_maps_itunes_fields(settings):
    episodes = await fetch_episodes(settings, transport=_transport())

    first = episodes[0]
    assert first.title == "EP12 雲端成本優化"
    assert first.date == "2026-10-13"
    assert first.dur == 63
    assert first.desc == "聊聊 FinOps"
    assert first.url == "https://media.example/ep12.mp3"
    assert first.art == "https://media.example/ep12.jpg"
    assert first.apple == "https://podcasts.apple.com/ep12"
    assert first.spot == settings.podcast_spotify_show

    second = episodes[1]
    assert (second.date, second.dur, second.url, second.art) == ("", 31, "", "")


@pytest.mark.asyncio
async def test_fetch_failure_is_fatal(settings):
    with pytest.raises(SourceFetchError):
        await fetch_episodes(settings, transport=_transport(status=502))


@pytest.mark.asyncio
async def test_write_episodes(settings, tmp_path):
    now = datetime(2026, 10, 19, 1, 0, tzinfo=UTC)
    path = await write_episodes(settings, output_dir=tmp_path, transport=_transport(), now=now)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "episodes.json"
    assert data["generated"] == now.isoformat()
    assert len(data["episodes"]) == 2
