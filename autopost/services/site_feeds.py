"""
Static site outputs built from the published posts: sitemap.xml, feed.xml, posts.json.

sitemap.xml and feed.xml are rendered from Jinja2 templates (XML autoescaped).
posts.json is the front end's CDN-cached post list; inline base64 cover images
are written out as files so the JSON only carries their paths.
"""

from __future__ import annotations

import base64
import json
import re
from datetime import UTC, date, datetime
from email.utils import format_datetime
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel

from autopost.core.config import Settings
from autopost.core.logging import get_logger
from autopost.services.supabase_service import SupabaseService

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
POST_IMAGE_DIR = Path("images") / "posts"

_DATA_URI_RE = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["xml"]),
)


class SiteBuildReport(BaseModel):
    post_count: int
    sitemap_urls: int
    feed_items: int
    images_saved: int


def post_link(site_url: str, post: dict) -> str:
    slug = post.get("slug") or post.get("id")
    return f"{site_url}/post/{quote(str(slug), safe='')}"


def render_sitemap(posts: list[dict], site_url: str, today: date) -> str:
    entries = [
        {"link": post_link(site_url, p), "lastmod": p.get("date") or today.isoformat()}
        for p in posts
    ]
    return _env.get_template("sitemap.xml").render(
        site_url=site_url, today=today.isoformat(), posts=entries
    )


def _rfc822(post_date: str) -> str:
    return format_datetime(datetime.fromisoformat(post_date).replace(tzinfo=UTC), usegmt=True)


def render_feed(posts: list[dict], settings: Settings, now: datetime) -> str:
    items = [
        {
            "title": p.get("title") or "",
            "link": post_link(settings.site_url, p),
            "excerpt": p.get("excerpt") or "",
            "category": p.get("category") or "",
            "pub_date": _rfc822(p["date"]) if p.get("date") else "",
        }
        for p in posts[: settings.feed_item_limit]
    ]
    return _env.get_template("feed.xml").render(
        title=settings.site_title,
        site_url=settings.site_url,
        description=settings.site_description,
        language=settings.site_language,
        build_date=format_datetime(now.astimezone(UTC), usegmt=True),
        posts=items,
    )


def externalize_images(posts: list[dict], output_dir: Path) -> tuple[list[dict], int]:
    """Swap data: URI images for files under images/posts/, returning the new list."""
    image_dir = output_dir / POST_IMAGE_DIR
    saved = 0
    result: list[dict] = []
    for post in posts:
        image = post.get("image") or ""
        match = _DATA_URI_RE.match(image) if image.startswith("data:") else None
        if not match:
            result.append(dict(post))
            continue

        ext = "jpg" if match.group(1) == "jpeg" else match.group(1)
        filename = f"post-{post['id']}.{ext}"
        image_dir.mkdir(parents=True, exist_ok=True)
        (image_dir / filename).write_bytes(base64.b64decode(match.group(2)))
        saved += 1
        result.append({**post, "image": f"/{POST_IMAGE_DIR.as_posix()}/{filename}"})

    return result, saved


async def generate_site_files(
    settings: Settings,
    posts_client: SupabaseService,
    *,
    output_dir: Path | None = None,
    now: datetime | None = None,
) -> SiteBuildReport:
    """Fetch every published post and write the three site files. Store errors propagate."""
    output_dir = output_dir or Path(settings.output_dir)
    now = now or datetime.now(UTC)

    posts = await posts_client.fetch_published_posts()
    logger.info("published_posts_fetched", count=len(posts))

    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / "sitemap.xml").write_text(
        render_sitemap(posts, settings.site_url, now.date()) + "\n", encoding="utf-8"
    )
    (output_dir / "feed.xml").write_text(
        render_feed(posts, settings, now) + "\n", encoding="utf-8"
    )

    posts_for_json, images_saved = externalize_images(posts, output_dir)
    (output_dir / "posts.json").write_text(
        json.dumps(
            {"generated": now.isoformat(), "posts": posts_for_json},
            ensure_ascii=False,
            separators=(",", ":"),
        ),
        encoding="utf-8",
    )

    report = SiteBuildReport(
        post_count=len(posts),
        sitemap_urls=len(posts) + 2,
        feed_items=min(len(posts), settings.feed_item_limit),
        images_saved=images_saved,
    )
    logger.info("site_files_written", output_dir=str(output_dir), **report.model_dump())
    return report
