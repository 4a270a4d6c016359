"""
Article writer node — one LLM call, one JSON article out.

The model is told to answer with a bare JSON object but is not trusted to:
leading/trailing chatter is tolerated by taking the span from the first "{" to
the last "}". The span itself must parse.
"""

from __future__ import annotations

import json
import re

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, ValidationError, field_validator

from autopost.agents.state import CATEGORIES, GeneratedArticle, PipelineState
from autopost.core.config import Settings
from autopost.core.exceptions import GenerationFormatError
from autopost.core.logging import get_logger

logger = get_logger(__name__)

_JSON_SPAN_RE = re.compile(r"\{[\s\S]*\}")
RAW_PREVIEW_CHARS = 300


def build_writer_llm(settings: Settings) -> BaseChatModel:
    return ChatGoogleGenerativeAI(
        model=settings.model_writer,
        temperature=settings.writer_temperature,
        max_output_tokens=settings.max_output_tokens,
        timeout=settings.model_timeout_seconds,
        max_retries=0,  # a failed run is re-attempted by the next schedule, never in-process
        google_api_key=settings.google_api_key,
    )


class ArticlePayload(BaseModel):
    """Strict shape check, only applied when strict_article_validation is on."""

    category: str
    title: str
    excerpt: str
    body: str

    @field_validator("title", "excerpt", "body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v


def _response_text(content: str | list) -> str:
    # Gemini may return a list of content parts instead of a plain string
    if isinstance(content, str):
        return content
    return "".join(p if isinstance(p, str) else p.get("text", "") for p in content)


def extract_article(raw: str, *, strict: bool = False) -> GeneratedArticle:
    """Pull the article JSON out of free-form model output."""
    raw = raw.strip()
    match = _JSON_SPAN_RE.search(raw)
    if not match:
        raise GenerationFormatError("No JSON object in model response", raw[:RAW_PREVIEW_CHARS])

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationFormatError(
            f"Model response JSON did not parse ({e.msg})", raw[:RAW_PREVIEW_CHARS]
        ) from e

    if not isinstance(data, dict):
        raise GenerationFormatError("Model response JSON is not an object", raw[:RAW_PREVIEW_CHARS])

    if strict:
        try:
            data = ArticlePayload.model_validate(data).model_dump()
        except ValidationError as e:
            raise GenerationFormatError(
                f"Article fields failed validation: {e.error_count()} error(s)",
                raw[:RAW_PREVIEW_CHARS],
            ) from e

    if data.get("category") not in CATEGORIES:
        raise GenerationFormatError(
            f"Unknown category {data.get('category')!r}", raw[:RAW_PREVIEW_CHARS]
        )

    return data  # type: ignore[return-value]


async def generate_article(
    prompt: str, llm: BaseChatModel, *, strict: bool = False
) -> GeneratedArticle:
    response = await llm.ainvoke([HumanMessage(content=prompt)])
    raw = _response_text(response.content)
    logger.info("writer_responded", response_length=len(raw))
    return extract_article(raw, strict=strict)


async def generate_article_node(
    state: PipelineState, *, settings: Settings, llm: BaseChatModel
) -> dict:
    article = await generate_article(
        state["prompt"], llm, strict=settings.strict_article_validation
    )
    logger.info(
        "article_generated",
        category=article.get("category"),
        title=article.get("title"),
        body_chars=len(str(article.get("body", ""))),
    )
    return {"article": article, "current_step": "publishing"}
