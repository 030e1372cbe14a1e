"""
Campaign Service — the campaign aggregate.

Validates and constructs campaigns, enforces the status lifecycle, applies
embedded content / A/B test / collaborator mutations and keeps the derived
metric ratios in step with the counters.
"""

import logging
from typing import Optional

from app import access
from app.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.schemas import (
    ABTest, ABTestCreate, Campaign, CampaignCreate, CampaignMetrics, CampaignStatus,
    CampaignUpdate, CollaboratorRequest, Content, ContentCreate, Persona,
)
from app.services.notifier import Notifier, campaign_room, safe_notify
from app.stores.base import CampaignStore, PersonaStore, UserStore
from app.utils import new_object_id, utcnow

logger = logging.getLogger(__name__)

# Archiving is not an edge here: it is reachable from any non-archived status via archive().
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    CampaignStatus.DRAFT.value: frozenset({CampaignStatus.GENERATING.value}),
    CampaignStatus.GENERATING.value: frozenset({CampaignStatus.ACTIVE.value}),
    CampaignStatus.ACTIVE.value: frozenset({CampaignStatus.PAUSED.value}),
    CampaignStatus.PAUSED.value: frozenset({CampaignStatus.ACTIVE.value, CampaignStatus.COMPLETED.value}),
    CampaignStatus.COMPLETED.value: frozenset(),
    CampaignStatus.ARCHIVED.value: frozenset(),
}

LOCKED_STATUSES = frozenset({CampaignStatus.COMPLETED.value, CampaignStatus.ARCHIVED.value})


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def compute_metrics(metrics: CampaignMetrics) -> CampaignMetrics:
    """Re-derive ctr / cpc / cpa from the counters. Pure and idempotent."""
    impressions = metrics.total_impressions
    clicks = metrics.total_clicks
    conversions = metrics.total_conversions
    spent = metrics.total_spent
    return metrics.model_copy(update={
        "ctr": clicks / impressions * 100 if impressions else 0,
        "cpc": spent / clicks if clicks else 0,
        "cpa": spent / conversions if conversions else 0,
    })


class CampaignService:
    def __init__(
        self,
        campaigns: CampaignStore,
        personas: PersonaStore,
        users: Optional[UserStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.campaigns = campaigns
        self.personas = personas
        self.users = users
        self.notifier = notifier

    # ── lookups ────────────────────────────────────────────────────────

    async def load(self, campaign_id: str) -> Campaign:
        campaign = await self.campaigns.get(campaign_id)
        if not campaign:
            raise NotFoundError("Campaign not found")
        return campaign

    async def _load_editable(self, campaign_id: str, actor_id: str) -> Campaign:
        campaign = await self.load(campaign_id)
        if not access.campaign_editable(campaign, actor_id):
            raise PermissionDeniedError("Access denied to this campaign")
        return campaign

    async def _readable_persona(self, persona_id: str, actor_id: str) -> Persona:
        persona = await self.personas.get(persona_id)
        if not persona:
            raise NotFoundError("Persona not found")
        if not access.persona_readable(persona, actor_id):
            raise PermissionDeniedError("Access denied to this persona")
        return persona

    # ── lifecycle ──────────────────────────────────────────────────────

    async def create(self, data: CampaignCreate, owner_id: str) -> Campaign:
        persona_id = data.persona_id.lower()
        await self._readable_persona(persona_id, owner_id)

        now = utcnow()
        if data.start_date < now:
            raise ValidationError.for_field(
                "startDate", "Start date cannot be in the past", data.start_date.isoformat()
            )

        campaign = Campaign(
            id=new_object_id(),
            user_id=owner_id,
            status=CampaignStatus.DRAFT,
            is_archived=False,
            metrics=compute_metrics(CampaignMetrics()),
            created_at=now,
            updated_at=now,
            persona_id=persona_id,
            **data.model_dump(exclude={"persona_id", "target_audience", "generation_settings"}),
            target_audience=data.target_audience,
            generation_settings=data.generation_settings,
        )
        created = await self.campaigns.insert(campaign)
        logger.info(f"Campaign {created.id} created by user {owner_id}")
        return created

    async def get(self, campaign_id: str, actor_id: str) -> Campaign:
        campaign = await self.load(campaign_id)
        if not access.campaign_readable(campaign, actor_id):
            raise PermissionDeniedError("Access denied to this campaign")
        return campaign

    async def update(self, campaign_id: str, patch: CampaignUpdate, actor_id: str) -> Campaign:
        campaign = await self._load_editable(campaign_id, actor_id)
        if campaign.status in LOCKED_STATUSES:
            raise ConflictError(f"Cannot update a {campaign.status} campaign")

        changes = {name: getattr(patch, name) for name in patch.model_fields_set}
        # explicit nulls on required fields mean "leave unchanged"
        changes = {k: v for k, v in changes.items() if v is not None or k in ("description", "keywords")}

        new_status = changes.get("status")
        if new_status is not None and new_status != campaign.status:
            if new_status == CampaignStatus.ARCHIVED.value:
                raise ConflictError("Use the archive operation to archive a campaign")
            if not can_transition(campaign.status, new_status):
                raise ConflictError(f"Invalid status transition from {campaign.status} to {new_status}")
        elif new_status is not None:
            changes.pop("status")

        if "persona_id" in changes and changes["persona_id"].lower() != campaign.persona_id:
            changes["persona_id"] = changes["persona_id"].lower()
            await self._readable_persona(changes["persona_id"], actor_id)

        start = changes.get("start_date", campaign.start_date)
        end = changes.get("end_date", campaign.end_date)
        if end <= start:
            raise ValidationError.for_field("endDate", "End date must be after start date")

        if "metrics" in changes:
            counters = changes["metrics"].model_dump(exclude_none=True)
            changes["metrics"] = compute_metrics(campaign.metrics.model_copy(update=counters))

        if not changes:
            return campaign

        updated = await self.campaigns.update(campaign.id, changes)
        logger.info(f"Campaign {campaign.id} updated by user {actor_id}: {sorted(changes)}")
        await safe_notify(self.notifier, campaign_room(campaign.id), "campaign:updated", {
            "campaignId": campaign.id,
            "fields": sorted(changes),
        })
        return updated

    async def delete(self, campaign_id: str, actor_id: str) -> None:
        campaign = await self.load(campaign_id)
        if not access.is_owner(campaign, actor_id):
            raise PermissionDeniedError("Only the campaign owner can delete this campaign")
        if campaign.status != CampaignStatus.DRAFT.value:
            raise ConflictError("Only draft campaigns can be deleted")
        await self.campaigns.delete(campaign.id)
        logger.info(f"Campaign {campaign.id} deleted by user {actor_id}")

    async def archive(self, campaign_id: str, actor_id: str) -> Campaign:
        campaign = await self._load_editable(campaign_id, actor_id)
        if campaign.is_archived or campaign.status == CampaignStatus.ARCHIVED.value:
            raise ConflictError("Campaign is already archived")
        archived = await self.campaigns.update(campaign.id, {
            "status": CampaignStatus.ARCHIVED.value,
            "is_archived": True,
        })
        logger.info(f"Campaign {campaign.id} archived by user {actor_id}")
        return archived

    # ── embedded collections ───────────────────────────────────────────

    async def add_content(self, campaign_id: str, item: ContentCreate, actor_id: str) -> Content:
        campaign = await self._load_editable(campaign_id, actor_id)
        [stored] = await self.campaigns.append_content(campaign.id, [item])
        return stored

    async def add_ab_test(self, campaign_id: str, test: ABTestCreate, actor_id: str) -> ABTest:
        campaign = await self._load_editable(campaign_id, actor_id)
        if test.end_date is not None and test.end_date <= utcnow():
            raise ValidationError.for_field("endDate", "End date must be in the future", test.end_date.isoformat())
        stored = await self.campaigns.append_ab_test(campaign.id, test)
        logger.info(f"A/B test {stored.id} added to campaign {campaign.id}")
        return stored

    async def add_collaborator(self, campaign_id: str, request: CollaboratorRequest, actor_id: str) -> Campaign:
        campaign = await self.load(campaign_id)
        if not access.is_owner(campaign, actor_id):
            raise PermissionDeniedError("Only the campaign owner can manage collaborators")
        user_id = request.user_id.lower()
        if user_id == campaign.user_id:
            raise ValidationError.for_field("userId", "The campaign owner cannot be added as a collaborator", user_id)
        if self.users is not None and not await self.users.exists(user_id):
            raise NotFoundError("User not found")
        await self.campaigns.upsert_collaborator(campaign.id, user_id, request.role)
        logger.info(f"User {user_id} added to campaign {campaign.id} as {request.role}")
        return await self.load(campaign.id)

    async def remove_collaborator(self, campaign_id: str, user_id: str, actor_id: str) -> Campaign:
        campaign = await self.load(campaign_id)
        if not access.is_owner(campaign, actor_id):
            raise PermissionDeniedError("Only the campaign owner can manage collaborators")
        if not await self.campaigns.remove_collaborator(campaign.id, user_id):
            raise NotFoundError("Collaborator not found")
        return await self.load(campaign.id)
