"""
Generation Service — turns (campaign, persona, content shape) into stored content.

Every operation follows the same order: capability availability, concurrent
campaign + persona lookup, access checks on each, generation, scoring,
append. Variations are all-or-nothing; batch generation is best-effort and
reports per-item failures.
"""

import asyncio
import logging
import re
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from app import access
from app.errors import (
    AppError, InternalError, NotFoundError, PermissionDeniedError, ServiceUnavailable,
)
from app.schemas import (
    AdCopyGenerateRequest, BatchGenerateRequest, Campaign, Content, ContentCreate,
    ContentType, GenerateRequest, GenerationSettings, Persona, Platform,
    SocialGenerateRequest, VariationsRequest,
)
from app.services.ai_service import DEFAULT_QUALITY_SCORE, GenerationCapability, render_prompt
from app.services.notifier import Notifier, campaign_room, safe_notify, user_room
from app.stores.base import CampaignStore, PersonaStore
from app.utils import truncate_prompt

logger = logging.getLogger(__name__)

HASHTAG_RE = re.compile(r"#\w+")
TRAILING_HASHTAG_BLOCK_RE = re.compile(r"\n\n#[\w\s#]+$")

DEFAULT_SOCIAL_PLATFORM = Platform.LINKEDIN.value
DEFAULT_AD_PLATFORM = Platform.FACEBOOK.value

LABELS = {
    ContentType.EMAIL.value: "email content",
    ContentType.SOCIAL_POST.value: "social media content",
    ContentType.AD_COPY.value: "ad copy",
}


def split_hashtags(text: str) -> tuple[str, list[str]]:
    """Hashtags found anywhere in the text; a trailing hashtag block is removed from the body."""
    hashtags = HASHTAG_RE.findall(text)
    body = TRAILING_HASHTAG_BLOCK_RE.sub("", text).strip()
    return body, hashtags


def _join(items, default: str = "N/A") -> str:
    return ", ".join(str(i) for i in items or []) or default


def build_context(
    campaign: Campaign,
    persona: Persona,
    settings: GenerationSettings,
    platform: str = "",
) -> dict:
    demographics = persona.demographics
    return {
        "campaign_name": campaign.name,
        "objective": campaign.objective,
        "tone": campaign.tone or "professional",
        "keywords": campaign.keywords or "",
        "persona_name": persona.name,
        "persona_description": persona.description,
        "demographics": (
            f"Age: {demographics.age or 'N/A'}, Income: {demographics.income or 'N/A'}, "
            f"Location: {demographics.location or 'N/A'}"
        ),
        "values": _join(persona.psychographics.values),
        "interests": _join(persona.psychographics.interests),
        "pain_points": _join(persona.pain_points),
        "goals": _join(persona.goals),
        "preferred_channels": _join(persona.preferred_channels),
        "platform": platform or "general",
        "custom_instructions": settings.custom_instructions or "",
        "creativity_level": settings.creativity_level,
    }


class GenerationService:
    def __init__(
        self,
        capability: GenerationCapability,
        campaigns: CampaignStore,
        personas: PersonaStore,
        notifier: Optional[Notifier] = None,
    ):
        self.capability = capability
        self.campaigns = campaigns
        self.personas = personas
        self.notifier = notifier

    def ai_status(self) -> dict:
        return self.capability.status()

    # ── shared steps ───────────────────────────────────────────────────

    async def _resolve(
        self, request: GenerateRequest, actor_id: str
    ) -> tuple[Campaign, Persona, GenerationSettings]:
        if not self.capability.is_available():
            raise ServiceUnavailable()

        campaign, persona = await asyncio.gather(
            self.campaigns.get(request.campaign_id.lower()),
            self.personas.get(request.persona_id.lower()),
        )
        if not campaign:
            raise NotFoundError("Campaign not found")
        if not persona:
            raise NotFoundError("Persona not found")
        if not access.campaign_editable(campaign, actor_id):
            raise PermissionDeniedError("Access denied to this campaign")
        if not access.persona_readable(persona, actor_id):
            raise PermissionDeniedError("Access denied to this persona")

        settings = campaign.generation_settings
        if request.custom_instructions:
            settings = settings.model_copy(update={"custom_instructions": request.custom_instructions})
        return campaign, persona, settings

    async def _score(self, body: str, persona: Persona, content_type: str) -> int:
        try:
            score = await self.capability.score(body, persona.summary, content_type)
        except Exception as e:
            logger.warning(f"Quality scoring failed for {content_type}, using default: {e}")
            return DEFAULT_QUALITY_SCORE
        try:
            return max(0, min(100, int(score)))
        except (TypeError, ValueError):
            return 0

    async def _call(self, kind: str, context: dict, content_type: str) -> str:
        try:
            return await self.capability.generate(kind, context)
        except AppError:
            raise
        except Exception as e:
            logger.error(f"Generation call {kind} failed: {e}", exc_info=True)
            raise ServiceUnavailable(f"Failed to generate {LABELS[content_type]}") from e

    @staticmethod
    def _build_item(**fields) -> ContentCreate:
        try:
            return ContentCreate(**fields)
        except PydanticValidationError as e:
            logger.error(f"Generated {fields.get('content_type')} failed content validation: {e}")
            raise InternalError("Generated content did not pass validation") from e

    # ── drafting (no persistence) ──────────────────────────────────────

    async def _draft_email(self, campaign, persona, settings) -> ContentCreate:
        context = build_context(campaign, persona, settings, Platform.EMAIL.value)
        subject = await self._call("email_subject", context, ContentType.EMAIL.value)
        context["subject_line"] = subject.strip().strip('"').strip()
        body = await self._call("email_body", context, ContentType.EMAIL.value)
        score = await self._score(body, persona, ContentType.EMAIL.value)
        return self._build_item(
            content_type=ContentType.EMAIL.value,
            platform=Platform.EMAIL.value,
            subject_line=context["subject_line"][:200] or None,
            content_body=body,
            quality_score=score,
            generation_prompt=truncate_prompt(render_prompt("email_body", context)),
        )

    async def _draft_social(self, campaign, persona, settings, platform: str) -> ContentCreate:
        context = build_context(campaign, persona, settings, platform)
        raw = await self._call("social_post", context, ContentType.SOCIAL_POST.value)
        body, hashtags = split_hashtags(raw)
        score = await self._score(body, persona, ContentType.SOCIAL_POST.value)
        return self._build_item(
            content_type=ContentType.SOCIAL_POST.value,
            platform=platform,
            content_body=body,
            hashtags=hashtags,
            quality_score=score,
            generation_prompt=truncate_prompt(render_prompt("social_post", context)),
        )

    async def _draft_ad_copy(self, campaign, persona, settings, platform: str) -> ContentCreate:
        context = build_context(campaign, persona, settings, platform)
        body = await self._call("ad_copy", context, ContentType.AD_COPY.value)
        score = await self._score(body, persona, ContentType.AD_COPY.value)
        return self._build_item(
            content_type=ContentType.AD_COPY.value,
            platform=platform,
            content_body=body,
            quality_score=score,
            generation_prompt=truncate_prompt(render_prompt("ad_copy", context)),
        )

    async def _draft(self, content_type: str, campaign, persona, settings, platform: Optional[str]) -> ContentCreate:
        if content_type == ContentType.EMAIL.value:
            return await self._draft_email(campaign, persona, settings)
        if content_type == ContentType.SOCIAL_POST.value:
            return await self._draft_social(campaign, persona, settings, platform or DEFAULT_SOCIAL_PLATFORM)
        if content_type == ContentType.AD_COPY.value:
            return await self._draft_ad_copy(campaign, persona, settings, platform or DEFAULT_AD_PLATFORM)
        raise ValueError(f"Unsupported content type: {content_type}")

    async def _store(self, campaign: Campaign, items: list[ContentCreate], actor_id: str) -> list[Content]:
        stored = await self.campaigns.append_content(campaign.id, items)
        payload = {
            "campaignId": campaign.id,
            "count": len(stored),
            "content": [c.to_api() for c in stored],
        }
        await safe_notify(self.notifier, user_room(actor_id), "content:generated", payload)
        await safe_notify(self.notifier, campaign_room(campaign.id), "content:generated", payload)
        return stored

    # ── single type ────────────────────────────────────────────────────

    async def generate_email(self, request: GenerateRequest, actor_id: str) -> Content:
        campaign, persona, settings = await self._resolve(request, actor_id)
        item = await self._draft_email(campaign, persona, settings)
        [stored] = await self._store(campaign, [item], actor_id)
        logger.info(f"Email content generated for campaign {campaign.id}")
        return stored

    async def generate_social(self, request: SocialGenerateRequest, actor_id: str) -> Content:
        campaign, persona, settings = await self._resolve(request, actor_id)
        item = await self._draft_social(campaign, persona, settings, request.platform)
        [stored] = await self._store(campaign, [item], actor_id)
        logger.info(f"{request.platform} content generated for campaign {campaign.id}")
        return stored

    async def generate_ad_copy(self, request: AdCopyGenerateRequest, actor_id: str) -> Content:
        campaign, persona, settings = await self._resolve(request, actor_id)
        item = await self._draft_ad_copy(campaign, persona, settings, request.platform or DEFAULT_AD_PLATFORM)
        [stored] = await self._store(campaign, [item], actor_id)
        logger.info(f"Ad copy generated for campaign {campaign.id}")
        return stored

    # ── variations: concurrent, all-or-nothing ─────────────────────────

    async def generate_variations(self, request: VariationsRequest, actor_id: str) -> list[Content]:
        campaign, persona, settings = await self._resolve(request, actor_id)
        tasks = [
            asyncio.ensure_future(self._draft(request.content_type, campaign, persona, settings, request.platform))
            for _ in range(request.variations)
        ]
        try:
            drafts = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # drain the cancelled siblings so their errors are retrieved
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        # nothing is appended unless every draft resolved
        stored = await self._store(campaign, list(drafts), actor_id)
        logger.info(f"{len(stored)} {request.content_type} variations generated for campaign {campaign.id}")
        return stored

    # ── batch: sequential, best-effort ─────────────────────────────────

    @staticmethod
    def batch_plan(content_types: list[str], platforms: list[str]) -> list[tuple[str, str]]:
        """(content_type, platform) pairs in generation order."""
        non_email = [p for p in dict.fromkeys(platforms) if p != Platform.EMAIL.value]
        plan: list[tuple[str, str]] = []
        for content_type in dict.fromkeys(content_types):
            if content_type == ContentType.EMAIL.value:
                plan.append((content_type, Platform.EMAIL.value))
            elif content_type == ContentType.SOCIAL_POST.value:
                plan.extend((content_type, p) for p in non_email)
            elif content_type == ContentType.AD_COPY.value:
                plan.append((content_type, non_email[0] if non_email else DEFAULT_AD_PLATFORM))
        return plan

    async def batch_generate(self, request: BatchGenerateRequest, actor_id: str) -> dict:
        campaign, persona, settings = await self._resolve(request, actor_id)

        generated: list[Content] = []
        errors: list[dict] = []
        for content_type, platform in self.batch_plan(request.content_types, request.platforms):
            try:
                item = await self._draft(content_type, campaign, persona, settings, platform)
                [stored] = await self.campaigns.append_content(campaign.id, [item])
                generated.append(stored)
            except Exception as e:
                message = e.message if isinstance(e, AppError) else f"Failed to generate {LABELS[content_type]}"
                logger.error(f"Batch item {content_type}/{platform} failed for campaign {campaign.id}: {e}")
                errors.append({"contentType": content_type, "platform": platform, "message": message})

        logger.info(
            f"Batch generation for campaign {campaign.id}: {len(generated)} generated, {len(errors)} failed"
        )
        await safe_notify(self.notifier, user_room(actor_id), "content:batch-complete", {
            "campaignId": campaign.id,
            "generated": len(generated),
            "failed": len(errors),
        })
        return {"generated_content": generated, "errors": errors}
