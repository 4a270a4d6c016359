"""
Supabase content store — PostgREST calls against the `posts` table.

Handles:
  - Recent-history reads for the dedup context (soft dependency)
  - The single insert that publishes a generated article
  - Full published-post listing for sitemap / feed generation
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import httpx

from autopost.agents.state import GeneratedArticle, PublishedPost, RecentPost
from autopost.core.config import Settings
from autopost.core.exceptions import PublishError, SourceFetchError
from autopost.core.logging import get_logger

logger = get_logger(__name__)

POSTS_TABLE = "posts"


class SupabaseService:
    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = settings.supabase_url
        self.service_key = settings.supabase_service_key
        self.timeout = settings.store_timeout_seconds
        self._transport = transport

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    @property
    def _posts_url(self) -> str:
        return f"{self.base_url}/rest/v1/{POSTS_TABLE}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _select(self, params: dict[str, Any]) -> list[dict]:
        try:
            async with self._client() as client:
                resp = await client.get(self._posts_url, headers=self._headers, params=params)
        except httpx.HTTPError as e:
            raise SourceFetchError(POSTS_TABLE, str(e)) from e
        if resp.is_error:
            raise SourceFetchError(POSTS_TABLE, f"HTTP {resp.status_code}: {resp.text}")
        return resp.json()

    async def fetch_recent_posts(
        self, lookback_days: int = 14, limit: int = 30, today: date | None = None
    ) -> list[RecentPost]:
        """Posts dated within the lookback window, newest first."""
        since = (today or date.today()) - timedelta(days=lookback_days)
        rows = await self._select(
            {
                "select": "title,category,date",
                "date": f"gte.{since.isoformat()}",
                "order": "date.desc",
                "limit": str(limit),
            }
        )
        return [
            RecentPost(
                title=row.get("title") or "",
                category=row.get("category") or "",
                date=row.get("date") or "",
            )
            for row in rows
        ]

    async def fetch_published_posts(self) -> list[dict]:
        """Every published post, newest first, without the article body."""
        return await self._select(
            {
                "select": "id,title,category,date,status,excerpt,image,views",
                "status": "eq.published",
                "order": "date.desc",
            }
        )

    async def insert_post(self, article: GeneratedArticle, run_date: str) -> PublishedPost:
        """Insert one published post and return the stored row.

        Article fields the model left out are not sent, so the column
        defaults of the `posts` table apply.
        """
        payload: dict[str, Any] = {
            "title": article.get("title"),
            "category": article.get("category"),
            "date": run_date,
            "status": "published",
            "excerpt": article.get("excerpt"),
            "image": "",
            "body": article.get("body"),
        }
        payload = {k: v for k, v in payload.items() if v is not None}

        try:
            async with self._client() as client:
                resp = await client.post(
                    self._posts_url,
                    headers={**self._headers, "Prefer": "return=representation"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise PublishError(None, str(e)) from e

        if resp.is_error:
            raise PublishError(resp.status_code, resp.text)

        try:
            rows = resp.json()
        except ValueError as e:
            raise PublishError(resp.status_code, resp.text) from e
        if not rows:
            raise PublishError(resp.status_code, "insert returned no rows")

        post: PublishedPost = rows[0]
        logger.info("post_inserted", post_id=post.get("id"), title=post.get("title"))
        return post
