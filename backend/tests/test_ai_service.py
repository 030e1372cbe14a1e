"""
Tests for the LLM-backed generation capability. Provider calls are mocked.
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.services.ai_service import (
    AIService, PROMPTS, _parse_model_id, parse_score, render_prompt,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


def test_parse_model_id():
    assert _parse_model_id("anthropic:claude-sonnet-4", "gpt-4o") == ("anthropic", "claude-sonnet-4")
    assert _parse_model_id("", "gpt-4o") == ("openai", "gpt-4o")
    assert _parse_model_id(None, "gpt-4o-mini") == ("openai", "gpt-4o-mini")


@pytest.mark.parametrize("reply, expected", [
    ("87", 87),
    ("Score: 64/100", 64),
    ("150", 100),
    ("no idea", 0),
    ("", 0),
])
def test_parse_score(reply, expected):
    assert parse_score(reply) == expected


def test_render_prompt_keeps_unknown_placeholders():
    text = render_prompt("ad_copy", {"campaign_name": "Spring Launch", "platform": "facebook", "keywords": ""})
    assert "Spring Launch" in text
    assert "facebook" in text
    assert "{keywords}" in text


def test_render_prompt_unknown_kind():
    with pytest.raises(KeyError):
        render_prompt("haiku", {})


def test_every_kind_has_a_prompt():
    assert set(PROMPTS) == {"email_subject", "email_body", "social_post", "ad_copy"}


def test_unknown_provider_reports_unavailable():
    service = AIService(model_id="gemini:pro", openai_api_key="sk-test", anthropic_api_key="sk-ant-test")
    assert service.is_available() is False
    status = service.status()
    assert status["available"] is False
    assert status["provider"] == "gemini"


def test_configured_service_reports_status():
    service = AIService(model_id="openai:gpt-4o", openai_api_key="sk-test")
    assert service.is_available() is True
    status = service.status()
    assert status["available"] is True
    assert status["provider"] == "openai"
    assert status["model"] == "gpt-4o"


@pytest.mark.anyio
async def test_generate_maps_creativity_to_temperature():
    service = AIService(model_id="openai:gpt-4o", openai_api_key="sk-test")
    with patch.object(service, "_completion", new_callable=AsyncMock, return_value="  New subject  ") as completion:
        text = await service.generate("email_subject", {"creativity_level": 8, "objective": "awareness"})

    assert text == "New subject"
    kwargs = completion.await_args.kwargs
    assert kwargs["temperature"] == pytest.approx(1.0)
    assert kwargs["max_tokens"] == PROMPTS["email_subject"][2]


@pytest.mark.anyio
async def test_generate_shortens_twitter_posts():
    service = AIService(model_id="openai:gpt-4o", openai_api_key="sk-test")
    with patch.object(service, "_completion", new_callable=AsyncMock, return_value="Short post") as completion:
        await service.generate("social_post", {"platform": "twitter"})
    assert completion.await_args.kwargs["max_tokens"] == 150


@pytest.mark.anyio
async def test_score_uses_scoring_model():
    service = AIService(model_id="openai:gpt-4o", openai_api_key="sk-test")
    summary = {"name": "Busy Parent", "ageRange": "30-45", "primaryChannels": ["email"], "keyValues": []}
    with patch.object(service, "_completion", new_callable=AsyncMock, return_value="91") as completion:
        score = await service.score("Great content", summary, "email")

    assert score == 91
    assert completion.await_args.kwargs["model"] == service.scoring_model
