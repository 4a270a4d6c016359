"""
Centralised configuration via Pydantic Settings.

Reads from .env in dev and from the CI/cron environment (GitHub Actions secrets)
in production. Construct once per process and pass it down explicitly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from autopost.core.exceptions import ConfigurationError


class FeedSource(BaseModel):
    category: Literal["AI", "Cloud", "Security"]
    url: str


# Google News RSS search, no API key required
DEFAULT_FEED_SOURCES: list[FeedSource] = [
    FeedSource(
        category="AI",
        url="https://news.google.com/rss/search?q=人工智慧+AI+大型語言模型&hl=zh-TW&gl=TW&ceid=TW:zh-Hant",
    ),
    FeedSource(
        category="Cloud",
        url="https://news.google.com/rss/search?q=雲端運算+AWS+Azure+GCP&hl=zh-TW&gl=TW&ceid=TW:zh-Hant",
    ),
    FeedSource(
        category="Security",
        url="https://news.google.com/rss/search?q=資訊安全+網路攻擊+cybersecurity&hl=zh-TW&gl=TW&ceid=TW:zh-Hant",
    ),
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # CI runners inject plenty of vars we don't need
    )

    # ── Application ─────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Content store: Supabase (PostgREST) ─────────────────
    supabase_url: str = ""
    supabase_service_key: str = ""
    store_timeout_seconds: float = 30.0

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    # ── LLM: Gemini ────────────────────────────────────────
    google_api_key: str = ""
    model_writer: str = "gemini-2.5-flash"
    writer_temperature: float = 0.7
    max_output_tokens: int = 2000
    model_timeout_seconds: float = 120.0
    article_language: str = "繁體中文"
    strict_article_validation: bool = Field(
        default=False,
        description="Reject generated JSON whose four fields are not non-empty strings",
    )

    # ── Data collection ─────────────────────────────────────
    feed_sources: list[FeedSource] = Field(default_factory=lambda: list(DEFAULT_FEED_SOURCES))
    feed_timeout_seconds: float = 15.0
    freshness_hours: int = 48
    items_scanned_per_feed: int = 10
    candidates_per_feed: int = 5
    snippet_max_chars: int = 300

    # ── Dedup context ───────────────────────────────────────
    lookback_days: int = 14
    recent_posts_limit: int = 30

    # ── Static site outputs ─────────────────────────────────
    site_url: str = "https://operation.tw"
    site_title: str = "操作一下"
    site_description: str = "專注雲端、資安、AI領域的自媒體創作者，提供深度技術內容與知識分享"
    site_language: str = "zh-TW"
    feed_item_limit: int = 20
    output_dir: str = "."

    # ── Podcast ─────────────────────────────────────────────
    podcast_feed_url: str = (
        "https://feeds.soundon.fm/podcasts/aa7727c5-7aa2-4403-8a87-b91a8d842f7b.xml"
    )
    podcast_spotify_show: str = "https://open.spotify.com/show/0PV8lmSxw1f7y0n6mZGSPl"

    def missing_credentials(self, *, need_model: bool = True) -> list[str]:
        required = {
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_SERVICE_KEY": self.supabase_service_key,
        }
        if need_model:
            required["GOOGLE_API_KEY"] = self.google_api_key
        return [name for name, value in required.items() if not value]

    def require_credentials(self, *, need_model: bool = True) -> None:
        """Fail fast, before any network activity, when a credential is absent."""
        missing = self.missing_credentials(need_model=need_model)
        if missing:
            raise ConfigurationError(missing)


@lru_cache
def get_settings() -> Settings:
    return Settings()
