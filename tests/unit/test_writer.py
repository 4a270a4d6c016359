"""Unit tests for the article writer — JSON extraction from free-form model output."""

from __future__ import annotations

import json

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from autopost.agents.nodes.writer import extract_article, generate_article, generate_article_node
from autopost.core.exceptions import GenerationFormatError


class TestExtractArticle:
    def test_tolerates_surrounding_prose(self):
        raw = 'Sure! {"category":"AI","title":"T","excerpt":"E","body":"B"} Thanks.'
        assert extract_article(raw) == {"category": "AI", "title": "T", "excerpt": "E", "body": "B"}

    def test_greedy_span_keeps_nested_braces(self):
        payload = {"category": "Cloud", "title": "T", "excerpt": "E", "body": "<p>{x}</p>"}
        raw = f"```json\n{json.dumps(payload)}\n```"
        assert extract_article(raw) == payload

    def test_no_braces_raises_with_preview(self):
        raw = "抱歉，我無法完成這個請求。" * 40
        with pytest.raises(GenerationFormatError) as exc_info:
            extract_article(raw)
        assert exc_info.value.raw_preview == raw[:300]

    def test_unparseable_span_raises(self):
        with pytest.raises(GenerationFormatError) as exc_info:
            extract_article('Here: {"category": "AI", "title": } done')
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_two_objects_do_not_parse(self):
        with pytest.raises(GenerationFormatError):
            extract_article('{"category": "AI"} and {"title": "T"}')

    def test_category_outside_enum_raises(self):
        with pytest.raises(GenerationFormatError, match="Unknown category"):
            extract_article('{"category":"資安","title":"T","excerpt":"E","body":"B"}')

    def test_permissive_mode_passes_odd_field_types(self):
        article = extract_article('{"category":"Security","title":7,"excerpt":"E","body":"B"}')
        assert article["title"] == 7

    def test_strict_mode_rejects_wrong_types(self):
        with pytest.raises(GenerationFormatError, match="failed validation"):
            extract_article(
                '{"category":"Security","title":7,"excerpt":"E","body":"B"}', strict=True
            )

    def test_strict_mode_rejects_missing_fields(self):
        with pytest.raises(GenerationFormatError):
            extract_article('{"category":"AI","title":"T"}', strict=True)

    def test_strict_mode_accepts_well_formed(self):
        raw = '{"category":"AI","title":"T","excerpt":"E","body":"B"}'
        assert extract_article(raw, strict=True)["body"] == "B"


class TestGenerateArticle:
    @pytest.mark.asyncio
    async def test_calls_model_once(self, mock_llm, article_payload):
        article = await generate_article("prompt", mock_llm)
        assert article == article_payload
        assert mock_llm.i == 1

    @pytest.mark.asyncio
    async def test_node_updates_state(self, settings, mock_llm, article_payload):
        update = await generate_article_node({"prompt": "prompt"}, settings=settings, llm=mock_llm)
        assert update == {"article": article_payload, "current_step": "publishing"}

    @pytest.mark.asyncio
    async def test_node_propagates_format_error(self, settings):
        llm = FakeListChatModel(responses=["I cannot help with that."])
        with pytest.raises(GenerationFormatError):
            await generate_article_node({"prompt": "prompt"}, settings=settings, llm=llm)
