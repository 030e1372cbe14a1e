"""
Tests for the content generation orchestrator.
"""

import asyncio

import pytest

from app.errors import NotFoundError, PermissionDeniedError, ServiceUnavailable
from app.schemas import (
    AdCopyGenerateRequest, BatchGenerateRequest, GenerateRequest, SocialGenerateRequest,
    VariationsRequest,
)
from app.services.generation_service import GenerationService, split_hashtags
from conftest import OTHER, OWNER, VIEWER, FakeCapability, build_persona


def _request(cls, campaign, persona, **extra):
    return cls(campaign_id=campaign.id, persona_id=persona.id, **extra)


# ── Helpers ───────────────────────────────────────────────────────────

def test_split_hashtags_strips_trailing_block():
    body, tags = split_hashtags("Launch day is here!\n\n#Launch #Spring2025")
    assert body == "Launch day is here!"
    assert tags == ["#Launch", "#Spring2025"]


def test_split_hashtags_keeps_inline_tags_in_body():
    body, tags = split_hashtags("Loving #coffee mornings")
    assert body == "Loving #coffee mornings"
    assert tags == ["#coffee"]


def test_batch_plan():
    plan = GenerationService.batch_plan(
        ["email", "social_post", "ad_copy", "social_post"],
        ["twitter", "email", "linkedin", "twitter"],
    )
    assert plan == [
        ("email", "email"),
        ("social_post", "twitter"),
        ("social_post", "linkedin"),
        ("ad_copy", "twitter"),
    ]


def test_batch_plan_defaults_without_social_platforms():
    plan = GenerationService.batch_plan(["email", "social_post", "ad_copy"], ["email"])
    assert plan == [("email", "email"), ("ad_copy", "facebook")]


# ── Single generation ─────────────────────────────────────────────────

@pytest.mark.anyio
async def test_generate_email(generation_service, campaign_store, campaign, persona, capability, notifier):
    content = await generation_service.generate_email(_request(GenerateRequest, campaign, persona), OWNER)

    assert content.content_type == "email"
    assert content.platform == "email"
    assert content.subject_line == "Spring savings inside"
    assert content.content_body.startswith("Hi there")
    assert content.quality_score == 82
    assert len(content.generation_prompt) <= 503
    assert [kind for kind, _ in capability.calls] == ["email_subject", "email_body"]
    assert capability.calls[1][1]["subject_line"] == "Spring savings inside"
    assert campaign_store.rows[campaign.id].content[-1].id == content.id

    rooms = [room for room, event, _ in notifier.events if event == "content:generated"]
    assert rooms == [f"user:{OWNER}", f"campaign:{campaign.id}"]


@pytest.mark.anyio
async def test_generate_social_extracts_hashtags(generation_service, campaign, persona):
    content = await generation_service.generate_social(
        _request(SocialGenerateRequest, campaign, persona, platform="instagram"), OWNER
    )
    assert content.platform == "instagram"
    assert content.content_body == "Plan smarter this spring."
    assert content.hashtags == ["#Marketing", "#Growth"]


@pytest.mark.anyio
async def test_generate_ad_copy_defaults_platform(generation_service, campaign, persona):
    content = await generation_service.generate_ad_copy(_request(AdCopyGenerateRequest, campaign, persona), OWNER)
    assert content.content_type == "ad_copy"
    assert content.platform == "facebook"


@pytest.mark.anyio
async def test_custom_instructions_reach_prompt_without_persisting(
    generation_service, campaign_store, campaign, persona, capability
):
    await generation_service.generate_ad_copy(
        _request(AdCopyGenerateRequest, campaign, persona, custom_instructions="Mention free shipping"),
        OWNER,
    )
    assert capability.calls[0][1]["custom_instructions"] == "Mention free shipping"
    assert campaign_store.rows[campaign.id].generation_settings.custom_instructions is None


@pytest.mark.anyio
async def test_unavailable_capability_fails_before_lookups(campaign_store, persona_store, campaign, persona):
    service = GenerationService(FakeCapability(available=False), campaign_store, persona_store)
    with pytest.raises(ServiceUnavailable):
        await service.generate_email(_request(GenerateRequest, campaign, persona), OWNER)
    assert campaign_store.get_calls == 0
    assert persona_store.get_calls == 0


@pytest.mark.anyio
async def test_missing_campaign_and_persona(generation_service, campaign, persona):
    with pytest.raises(NotFoundError, match="Campaign not found"):
        await generation_service.generate_email(
            GenerateRequest(campaign_id="f" * 24, persona_id=persona.id), OWNER
        )
    with pytest.raises(NotFoundError, match="Persona not found"):
        await generation_service.generate_email(
            GenerateRequest(campaign_id=campaign.id, persona_id="f" * 24), OWNER
        )


@pytest.mark.anyio
async def test_campaign_and_persona_denials_are_distinct(
    generation_service, persona_store, campaign, persona
):
    with pytest.raises(PermissionDeniedError, match="Access denied to this campaign"):
        await generation_service.generate_email(_request(GenerateRequest, campaign, persona), VIEWER)

    foreign = persona_store.put(build_persona(user_id=OTHER))
    with pytest.raises(PermissionDeniedError, match="Access denied to this persona"):
        await generation_service.generate_email(_request(GenerateRequest, campaign, foreign), OWNER)


@pytest.mark.anyio
async def test_provider_failure_maps_to_unavailable(campaign_store, persona_store, campaign, persona):
    service = GenerationService(FakeCapability(fail_kinds=["email_body"]), campaign_store, persona_store)
    with pytest.raises(ServiceUnavailable, match="Failed to generate email content"):
        await service.generate_email(_request(GenerateRequest, campaign, persona), OWNER)
    assert campaign_store.rows[campaign.id].content == []


# ── Scoring ───────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_scoring_failure_uses_default(campaign_store, persona_store, campaign, persona):
    capability = FakeCapability(score_error=RuntimeError("scorer down"))
    service = GenerationService(capability, campaign_store, persona_store)
    content = await service.generate_ad_copy(_request(AdCopyGenerateRequest, campaign, persona), OWNER)
    assert content.quality_score == 75


@pytest.mark.anyio
@pytest.mark.parametrize("raw, expected", [(140, 100), (-3, 0), ("n/a", 0)])
async def test_scores_are_clamped(campaign_store, persona_store, campaign, persona, raw, expected):
    service = GenerationService(FakeCapability(score_value=raw), campaign_store, persona_store)
    content = await service.generate_ad_copy(_request(AdCopyGenerateRequest, campaign, persona), OWNER)
    assert content.quality_score == expected


# ── Variations ────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_variations_appended_together(generation_service, campaign_store, campaign, persona):
    variations = await generation_service.generate_variations(
        _request(VariationsRequest, campaign, persona, content_type="social_post", variations=3, platform="twitter"),
        OWNER,
    )
    assert len(variations) == 3
    assert {v.platform for v in variations} == {"twitter"}
    assert campaign_store.append_calls == 1
    assert len(campaign_store.rows[campaign.id].content) == 3


@pytest.mark.anyio
async def test_variations_are_all_or_nothing(campaign_store, persona_store, campaign, persona):
    service = GenerationService(FakeCapability(fail_after=1), campaign_store, persona_store)
    with pytest.raises(ServiceUnavailable):
        await service.generate_variations(
            _request(VariationsRequest, campaign, persona, content_type="ad_copy", variations=3),
            OWNER,
        )
    assert campaign_store.append_calls == 0
    assert campaign_store.rows[campaign.id].content == []


class StallingCapability(FakeCapability):
    """First call fails; every later call waits until cancelled."""

    def __init__(self):
        super().__init__()
        self.cancelled = 0

    async def generate(self, kind: str, context: dict) -> str:
        self.calls.append((kind, dict(context)))
        if len(self.calls) == 1:
            await asyncio.sleep(0)
            raise RuntimeError("provider error")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return self.outputs[kind]


@pytest.mark.anyio
async def test_failed_variation_cancels_pending_drafts(campaign_store, persona_store, campaign, persona):
    capability = StallingCapability()
    service = GenerationService(capability, campaign_store, persona_store)
    with pytest.raises(ServiceUnavailable):
        await asyncio.wait_for(
            service.generate_variations(
                _request(VariationsRequest, campaign, persona, content_type="ad_copy", variations=3),
                OWNER,
            ),
            timeout=5,
        )
    assert capability.cancelled == 2
    assert campaign_store.append_calls == 0


# ── Batch ─────────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_batch_generate_all_items(generation_service, campaign_store, campaign, persona, notifier):
    result = await generation_service.batch_generate(
        _request(
            BatchGenerateRequest, campaign, persona,
            content_types=["email", "social_post", "ad_copy"],
            platforms=["email", "linkedin", "twitter"],
        ),
        OWNER,
    )
    produced = [(c.content_type, c.platform) for c in result["generated_content"]]
    assert produced == [
        ("email", "email"),
        ("social_post", "linkedin"),
        ("social_post", "twitter"),
        ("ad_copy", "linkedin"),
    ]
    assert result["errors"] == []
    assert len(campaign_store.rows[campaign.id].content) == 4
    assert notifier.events[-1][1] == "content:batch-complete"
    assert notifier.events[-1][2]["generated"] == 4


@pytest.mark.anyio
async def test_batch_generate_keeps_successes_on_partial_failure(
    campaign_store, persona_store, campaign, persona
):
    service = GenerationService(FakeCapability(fail_platforms=["twitter"]), campaign_store, persona_store)
    result = await service.batch_generate(
        _request(
            BatchGenerateRequest, campaign, persona,
            content_types=["social_post", "email"],
            platforms=["twitter", "facebook"],
        ),
        OWNER,
    )
    produced = [(c.content_type, c.platform) for c in result["generated_content"]]
    assert produced == [("social_post", "facebook"), ("email", "email")]
    assert result["errors"] == [{
        "contentType": "social_post",
        "platform": "twitter",
        "message": "Failed to generate social media content",
    }]
    assert len(campaign_store.rows[campaign.id].content) == 2


def test_ai_status_reports_capability(generation_service):
    assert generation_service.ai_status()["available"] is True


@pytest.mark.anyio
async def test_unconfigured_social_generation_appends_nothing(campaign_store, persona_store, campaign, persona):
    service = GenerationService(FakeCapability(available=False), campaign_store, persona_store)
    with pytest.raises(ServiceUnavailable):
        await service.generate_social(
            _request(SocialGenerateRequest, campaign, persona, platform="linkedin"), OWNER
        )
    assert campaign_store.get_calls == 0
    assert campaign_store.append_calls == 0
    assert campaign_store.rows[campaign.id].content == []
