"""
Shared pytest fixtures for unit and integration tests.

Uses FakeListChatModel for deterministic LLM mocking and httpx.MockTransport for
the feed and Supabase endpoints — no API keys or network needed.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from autopost.agents.state import NewsCandidate, RecentPost, SourceResult
from autopost.core.config import FeedSource, Settings

TODAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)

ARTICLE_JSON = (
    '{"category": "AI", "title": "GPT 新模型登場", "excerpt": "摘要", '
    '"body": "<h2>背景</h2><p>內文</p>"}'
)


def rss_feed(items: list[dict]) -> str:
    """Render a minimal RSS 2.0 document. Items: title, link, optional age_hours, description."""
    rendered = []
    for item in items:
        pub = ""
        if item.get("age_hours") is not None:
            pub_dt = datetime.now(UTC) - timedelta(hours=item["age_hours"])
            pub = f"<pubDate>{format_datetime(pub_dt, usegmt=True)}</pubDate>"
        desc = f"<description>{item['description']}</description>" if item.get("description") else ""
        rendered.append(
            f"<item><title>{item['title']}</title><link>{item['link']}</link>{pub}{desc}</item>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?><rss version="2.0"><channel>'
        f"<title>Test feed</title>{''.join(rendered)}</channel></rss>"
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="development",
        supabase_url="https://store.test/",
        supabase_service_key="service-key",
        google_api_key="google-key",
        feed_sources=[
            FeedSource(category="AI", url="https://feeds.test/ai"),
            FeedSource(category="Cloud", url="https://feeds.test/cloud"),
            FeedSource(category="Security", url="https://feeds.test/security"),
        ],
    )


@pytest.fixture
def mock_llm() -> FakeListChatModel:
    """Deterministic mock LLM that wraps the article JSON in chatter.

    Two responses so that `.i` (the next response index) shows whether it was called.
    """
    reply = f"好的，以下是文章：\n{ARTICLE_JSON}\n希望對你有幫助！"
    return FakeListChatModel(responses=[reply, reply])


@pytest.fixture
def sample_candidate() -> NewsCandidate:
    return NewsCandidate(
        category="AI",
        title="OpenAI 發表新一代推理模型",
        link="https://news.example.com/openai-reasoning",
        published_at=NOW.isoformat(),
        snippet="新模型在數學與程式推理上大幅進步。",
    )


@pytest.fixture
def sample_results(sample_candidate: NewsCandidate) -> list[SourceResult]:
    return [
        SourceResult(index=0, category="AI", candidates=[sample_candidate]),
        SourceResult(index=1, category="Cloud", candidates=[]),
        SourceResult(
            index=2,
            category="Security",
            candidates=[
                NewsCandidate(
                    category="Security",
                    title="大型勒索軟體攻擊癱瘓醫院系統",
                    link="https://news.example.com/ransomware",
                    published_at=None,
                    snippet="",
                )
            ],
        ),
    ]


@pytest.fixture
def recent_posts() -> list[RecentPost]:
    return [
        RecentPost(category="AI", title="Gemini 更新重點整理", date="2026-10-18"),
        RecentPost(category="Security", title="零信任架構入門", date="2026-10-15"),
        RecentPost(category="AI", title="開源模型的授權爭議", date="2026-10-10"),
    ]


class FakeStore:
    """In-memory Supabase /rest/v1/posts endpoint for httpx.MockTransport."""

    def __init__(
        self,
        history: list[dict] | None = None,
        history_status: int = 200,
        insert_status: int = 201,
        insert_error: str = '{"message": "permission denied for table posts"}',
    ) -> None:
        self.history = history or []
        self.history_status = history_status
        self.insert_status = insert_status
        self.insert_error = insert_error
        self.requests: list[httpx.Request] = []
        self.inserted: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            if self.history_status >= 400:
                return httpx.Response(self.history_status, text="upstream unavailable")
            return httpx.Response(self.history_status, json=self.history)

        if self.insert_status >= 400:
            return httpx.Response(self.insert_status, text=self.insert_error)
        row = {"id": 42 + len(self.inserted), **json.loads(request.content)}
        self.inserted.append(row)
        return httpx.Response(self.insert_status, json=[row])

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


def feed_transport(feeds: dict[str, httpx.Response | str]) -> httpx.MockTransport:
    """Route feed URLs to canned bodies; unknown URLs 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = feeds.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, text=body, headers={"Content-Type": "application/rss+xml"})

    return httpx.MockTransport(handler)


@pytest.fixture
def make_feed_transport() -> Callable[[dict], httpx.MockTransport]:
    return feed_transport


@pytest.fixture
def make_rss() -> Callable[[list[dict]], str]:
    return rss_feed


@pytest.fixture
def make_store() -> type[FakeStore]:
    return FakeStore


@pytest.fixture
def article_payload() -> dict:
    return json.loads(ARTICLE_JSON)
