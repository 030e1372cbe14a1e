"""
SQLAlchemy (async, PostgreSQL) implementation of the store interfaces.

Each call opens its own session from the factory, so independent reads can
run concurrently (asyncio.gather) without sharing a session.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from app import models
from app.errors import NotFoundError
from app.schemas import (
    ABTest, ABTestCreate, Campaign, CampaignMetrics, Collaborator, Content,
    ContentCreate, Persona,
)
from app.stores.base import CampaignStore, PersonaStore, UserStore
from app.utils import utcnow

logger = logging.getLogger(__name__)

METRIC_COLUMNS = (
    "total_reach", "total_impressions", "total_clicks", "total_conversions",
    "total_spent", "ctr", "cpc", "cpa", "roi",
)

JSON_FIELDS = ("target_audience", "generation_settings", "generation_job")

SORT_COLUMNS = {
    "created_at": models.Campaign.created_at,
    "updated_at": models.Campaign.updated_at,
    "name": models.Campaign.name,
    "start_date": models.Campaign.start_date,
    "end_date": models.Campaign.end_date,
    "budget": models.Campaign.budget,
    "status": models.Campaign.status,
}


def _plain(value: Any) -> Any:
    """Pydantic sub-models → JSON-ready dicts for JSON columns."""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


# ── Row ↔ record mapping ─────────────────────────────────────────────

def _persona_to_record(row: models.Persona) -> Persona:
    return Persona.model_validate(row)


def _campaign_to_record(row: models.Campaign) -> Campaign:
    return Campaign(
        id=row.id,
        user_id=row.user_id,
        persona_id=row.persona_id,
        name=row.name,
        description=row.description,
        objective=row.objective,
        status=row.status,
        budget=row.budget or 0,
        currency=row.currency,
        start_date=row.start_date,
        end_date=row.end_date,
        tone=row.tone,
        keywords=row.keywords,
        target_audience=row.target_audience or {},
        content=[Content.model_validate(c) for c in row.content],
        ab_tests=[ABTest.model_validate(t) for t in row.ab_tests],
        metrics=CampaignMetrics(**{col: getattr(row, col) or 0 for col in METRIC_COLUMNS}),
        generation_settings=row.generation_settings or {},
        generation_job=row.generation_job or {},
        collaborators=[Collaborator.model_validate(c) for c in row.collaborators],
        is_archived=row.is_archived,
        tags=row.tags or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _campaign_columns(changes: dict[str, Any]) -> dict[str, Any]:
    """Flatten record-level changes into column values."""
    values: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "metrics":
            metrics = value.model_dump() if hasattr(value, "model_dump") else dict(value)
            values.update({col: metrics[col] for col in METRIC_COLUMNS if col in metrics})
        elif key in JSON_FIELDS:
            values[key] = _plain(value)
        elif key in ("content", "ab_tests", "collaborators"):
            raise ValueError(f"{key} is append-only and cannot be replaced")
        else:
            values[key] = value
    return values


# ══════════════════════════════════════════════════════════════════════
#  PERSONAS
# ══════════════════════════════════════════════════════════════════════

class SqlPersonaStore(PersonaStore):
    def __init__(self, session_factory: async_sessionmaker):
        self._sessions = session_factory

    async def get(self, persona_id: str) -> Optional[Persona]:
        async with self._sessions() as db:
            row = await db.get(models.Persona, persona_id)
            return _persona_to_record(row) if row else None

    async def list_visible(self, user_id, search=None, is_predefined=None) -> list[Persona]:
        query = select(models.Persona)
        if is_predefined is True:
            query = query.where(models.Persona.is_predefined.is_(True))
        elif is_predefined is False:
            query = query.where(
                models.Persona.user_id == user_id,
                models.Persona.is_predefined.is_(False),
            )
        else:
            query = query.where(or_(
                models.Persona.user_id == user_id,
                models.Persona.is_predefined.is_(True),
            ))
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                models.Persona.name.ilike(pattern),
                models.Persona.description.ilike(pattern),
            ))
        query = query.order_by(models.Persona.is_predefined.asc(), models.Persona.created_at.desc())
        async with self._sessions() as db:
            result = await db.execute(query)
            return [_persona_to_record(r) for r in result.scalars().all()]

    async def insert(self, persona: Persona) -> Persona:
        return (await self.insert_many([persona]))[0]

    async def insert_many(self, personas: Sequence[Persona]) -> list[Persona]:
        rows = [
            models.Persona(**p.model_dump(mode="json", exclude={"summary", "created_at", "updated_at"}, exclude_none=True))
            for p in personas
        ]
        async with self._sessions.begin() as db:
            db.add_all(rows)
            await db.flush()
            return [_persona_to_record(r) for r in rows]

    async def update(self, persona_id: str, changes: dict[str, Any]) -> Persona:
        values = {k: _plain(v) if not isinstance(v, list) else [_plain(i) for i in v] for k, v in changes.items()}
        values["updated_at"] = utcnow()
        async with self._sessions.begin() as db:
            await db.execute(
                update(models.Persona).where(models.Persona.id == persona_id).values(**values)
            )
            row = await db.get(models.Persona, persona_id, populate_existing=True)
            if not row:
                raise NotFoundError("Persona not found")
            return _persona_to_record(row)

    async def delete(self, persona_id: str) -> None:
        async with self._sessions.begin() as db:
            await db.execute(delete(models.Persona).where(models.Persona.id == persona_id))

    async def count_predefined(self) -> int:
        async with self._sessions() as db:
            result = await db.execute(
                select(func.count()).select_from(models.Persona).where(models.Persona.is_predefined.is_(True))
            )
            return result.scalar() or 0

    async def is_referenced(self, persona_id: str) -> bool:
        async with self._sessions() as db:
            result = await db.execute(
                select(func.count()).select_from(models.Campaign).where(models.Campaign.persona_id == persona_id)
            )
            return (result.scalar() or 0) > 0


# ══════════════════════════════════════════════════════════════════════
#  CAMPAIGNS
# ══════════════════════════════════════════════════════════════════════

class SqlCampaignStore(CampaignStore):
    def __init__(self, session_factory: async_sessionmaker):
        self._sessions = session_factory

    async def get(self, campaign_id: str) -> Optional[Campaign]:
        async with self._sessions() as db:
            row = await db.get(models.Campaign, campaign_id)
            return _campaign_to_record(row) if row else None

    async def insert(self, campaign: Campaign) -> Campaign:
        values = _campaign_columns({
            name: getattr(campaign, name)
            for name in Campaign.model_fields
            if name not in ("content", "ab_tests", "collaborators") and getattr(campaign, name) is not None
        })
        async with self._sessions.begin() as db:
            row = models.Campaign(**values)
            db.add(row)
            await db.flush()
            campaign_id = row.id
        return await self.get(campaign_id)

    async def update(self, campaign_id: str, changes: dict[str, Any]) -> Campaign:
        values = _campaign_columns(changes)
        values["updated_at"] = utcnow()
        async with self._sessions.begin() as db:
            await db.execute(
                update(models.Campaign).where(models.Campaign.id == campaign_id).values(**values)
            )
        campaign = await self.get(campaign_id)
        if not campaign:
            raise NotFoundError("Campaign not found")
        return campaign

    async def delete(self, campaign_id: str) -> None:
        async with self._sessions.begin() as db:
            row = await db.get(models.Campaign, campaign_id)
            if row:
                await db.delete(row)  # cascades to content, A/B tests, collaborators

    async def append_content(self, campaign_id: str, items: Sequence[ContentCreate]) -> list[Content]:
        rows = [
            models.CampaignContent(campaign_id=campaign_id, **item.model_dump())
            for item in items
        ]
        async with self._sessions.begin() as db:
            db.add_all(rows)
            await db.execute(
                update(models.Campaign).where(models.Campaign.id == campaign_id).values(updated_at=utcnow())
            )
            await db.flush()
            appended = [Content.model_validate(r) for r in rows]
        logger.info(f"Appended {len(appended)} content item(s) to campaign {campaign_id}")
        return appended

    async def append_ab_test(self, campaign_id: str, test: ABTestCreate) -> ABTest:
        row = models.CampaignABTest(campaign_id=campaign_id, **test.model_dump(mode="json", exclude={"end_date"}))
        row.end_date = test.end_date
        async with self._sessions.begin() as db:
            db.add(row)
            await db.execute(
                update(models.Campaign).where(models.Campaign.id == campaign_id).values(updated_at=utcnow())
            )
            await db.flush()
            return ABTest.model_validate(row)

    async def upsert_collaborator(self, campaign_id: str, user_id: str, role: str) -> Collaborator:
        async with self._sessions.begin() as db:
            result = await db.execute(
                select(models.CampaignCollaborator).where(
                    models.CampaignCollaborator.campaign_id == campaign_id,
                    models.CampaignCollaborator.user_id == user_id,
                )
            )
            row = result.scalar_one_or_none()
            if row:
                row.role = role
            else:
                row = models.CampaignCollaborator(campaign_id=campaign_id, user_id=user_id, role=role)
                db.add(row)
            await db.flush()
            return Collaborator.model_validate(row)

    async def remove_collaborator(self, campaign_id: str, user_id: str) -> bool:
        async with self._sessions.begin() as db:
            result = await db.execute(
                delete(models.CampaignCollaborator).where(
                    models.CampaignCollaborator.campaign_id == campaign_id,
                    models.CampaignCollaborator.user_id == user_id,
                )
            )
            return (result.rowcount or 0) > 0

    async def search(
        self,
        owner_id,
        status=None,
        objective=None,
        text=None,
        sort_by="created_at",
        descending=True,
        offset=0,
        limit=10,
    ) -> tuple[list[Campaign], int]:
        base_query = select(models.Campaign).where(
            models.Campaign.user_id == owner_id,
            models.Campaign.is_archived.is_(False),
        )
        if status:
            base_query = base_query.where(models.Campaign.status == status)
        if objective:
            base_query = base_query.where(models.Campaign.objective == objective)
        if text:
            pattern = f"%{text}%"
            base_query = base_query.where(or_(
                models.Campaign.name.ilike(pattern),
                models.Campaign.description.ilike(pattern),
                models.Campaign.keywords.ilike(pattern),
            ))

        order_col = SORT_COLUMNS.get(sort_by, models.Campaign.created_at)
        query = (
            base_query
            .order_by(order_col.desc() if descending else order_col.asc(), models.Campaign.id)
            .offset(offset)
            .limit(limit)
        )
        async with self._sessions() as db:
            count_result = await db.execute(select(func.count()).select_from(base_query.subquery()))
            total = count_result.scalar() or 0
            result = await db.execute(query)
            return [_campaign_to_record(r) for r in result.scalars().all()], total

    async def list_owned(self, owner_id: str) -> list[Campaign]:
        query = (
            select(models.Campaign)
            .where(models.Campaign.user_id == owner_id, models.Campaign.is_archived.is_(False))
            .order_by(models.Campaign.created_at.desc())
        )
        async with self._sessions() as db:
            result = await db.execute(query)
            return [_campaign_to_record(r) for r in result.scalars().all()]


# ══════════════════════════════════════════════════════════════════════
#  USERS
# ══════════════════════════════════════════════════════════════════════

class SqlUserStore(UserStore):
    def __init__(self, session_factory: async_sessionmaker):
        self._sessions = session_factory

    async def exists(self, user_id: str) -> bool:
        async with self._sessions() as db:
            result = await db.execute(
                select(func.count()).select_from(models.User).where(
                    models.User.id == user_id, models.User.is_active.is_(True),
                )
            )
            return (result.scalar() or 0) > 0
