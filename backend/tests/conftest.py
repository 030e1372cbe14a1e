"""
Shared fixtures: in-memory stores, a scripted generation capability, a
recording notifier and an HTTP client wired to them through
app.dependency_overrides. Nothing here touches PostgreSQL or a provider API.
"""

from datetime import timedelta
from typing import Any, Optional, Sequence

import pytest
from httpx import AsyncClient, ASGITransport

from app.errors import NotFoundError
from app.schemas import (
    ABTest, ABTestCreate, Actor, Campaign, CampaignMetrics, Collaborator, Content,
    ContentCreate, Persona,
)
from app.services.ai_service import GenerationCapability
from app.services.campaign_service import CampaignService
from app.services.generation_service import GenerationService
from app.services.notifier import Notifier
from app.services.persona_service import PersonaService
from app.services.query_service import CampaignQueryService
from app.stores.base import CampaignStore, PersonaStore, UserStore
from app.utils import new_object_id, utcnow

OWNER = "a" * 24
OTHER = "b" * 24
EDITOR = "c" * 24
VIEWER = "d" * 24


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ── Fakes ─────────────────────────────────────────────────────────────

class FakePersonaStore(PersonaStore):
    def __init__(self):
        self.rows: dict[str, Persona] = {}
        self.referenced: set[str] = set()
        self.get_calls = 0

    def put(self, persona: Persona) -> Persona:
        self.rows[persona.id] = persona
        return persona

    async def get(self, persona_id: str) -> Optional[Persona]:
        self.get_calls += 1
        persona = self.rows.get(persona_id)
        return persona.model_copy(deep=True) if persona else None

    async def list_visible(self, user_id, search=None, is_predefined=None) -> list[Persona]:
        visible = [p for p in self.rows.values() if p.is_predefined or p.user_id == user_id]
        if is_predefined is not None:
            visible = [p for p in visible if p.is_predefined == is_predefined]
        if search:
            needle = search.lower()
            visible = [p for p in visible if needle in p.name.lower() or needle in p.description.lower()]
        visible.sort(key=lambda p: p.created_at, reverse=True)
        visible.sort(key=lambda p: p.is_predefined)
        return [p.model_copy(deep=True) for p in visible]

    async def insert(self, persona: Persona) -> Persona:
        return self.put(persona).model_copy(deep=True)

    async def insert_many(self, personas: Sequence[Persona]) -> list[Persona]:
        return [await self.insert(p) for p in personas]

    async def update(self, persona_id: str, changes: dict[str, Any]) -> Persona:
        if persona_id not in self.rows:
            raise NotFoundError("Persona not found")
        self.rows[persona_id] = self.rows[persona_id].model_copy(update={**changes, "updated_at": utcnow()})
        return self.rows[persona_id].model_copy(deep=True)

    async def delete(self, persona_id: str) -> None:
        self.rows.pop(persona_id, None)

    async def count_predefined(self) -> int:
        return sum(1 for p in self.rows.values() if p.is_predefined)

    async def is_referenced(self, persona_id: str) -> bool:
        return persona_id in self.referenced


class FakeCampaignStore(CampaignStore):
    def __init__(self):
        self.rows: dict[str, Campaign] = {}
        self.get_calls = 0
        self.append_calls = 0

    def put(self, campaign: Campaign) -> Campaign:
        self.rows[campaign.id] = campaign
        return campaign

    def _require(self, campaign_id: str) -> Campaign:
        if campaign_id not in self.rows:
            raise NotFoundError("Campaign not found")
        return self.rows[campaign_id]

    def _replace(self, campaign_id: str, **changes) -> Campaign:
        self.rows[campaign_id] = self._require(campaign_id).model_copy(update=changes)
        return self.rows[campaign_id].model_copy(deep=True)

    async def get(self, campaign_id: str) -> Optional[Campaign]:
        self.get_calls += 1
        campaign = self.rows.get(campaign_id)
        return campaign.model_copy(deep=True) if campaign else None

    async def insert(self, campaign: Campaign) -> Campaign:
        return self.put(campaign).model_copy(deep=True)

    async def update(self, campaign_id: str, changes: dict[str, Any]) -> Campaign:
        return self._replace(campaign_id, **changes, updated_at=utcnow())

    async def delete(self, campaign_id: str) -> None:
        self.rows.pop(campaign_id, None)

    async def append_content(self, campaign_id: str, items: Sequence[ContentCreate]) -> list[Content]:
        campaign = self._require(campaign_id)
        self.append_calls += 1
        now = utcnow()
        stored = [
            Content(id=new_object_id(), created_at=now, updated_at=now, **item.model_dump())
            for item in items
        ]
        self._replace(campaign_id, content=campaign.content + stored)
        return stored

    async def append_ab_test(self, campaign_id: str, test: ABTestCreate) -> ABTest:
        campaign = self._require(campaign_id)
        now = utcnow()
        stored = ABTest(id=new_object_id(), created_at=now, updated_at=now, **test.model_dump())
        self._replace(campaign_id, ab_tests=campaign.ab_tests + [stored])
        return stored

    async def upsert_collaborator(self, campaign_id: str, user_id: str, role: str) -> Collaborator:
        campaign = self._require(campaign_id)
        entry = Collaborator(user_id=user_id, role=role, added_at=utcnow())
        others = [c for c in campaign.collaborators if c.user_id != user_id]
        self._replace(campaign_id, collaborators=others + [entry])
        return entry

    async def remove_collaborator(self, campaign_id: str, user_id: str) -> bool:
        campaign = self._require(campaign_id)
        remaining = [c for c in campaign.collaborators if c.user_id != user_id]
        if len(remaining) == len(campaign.collaborators):
            return False
        self._replace(campaign_id, collaborators=remaining)
        return True

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
    ):
        matches = await self.list_owned(owner_id)
        if status:
            matches = [c for c in matches if c.status == status]
        if objective:
            matches = [c for c in matches if c.objective == objective]
        if text:
            needle = text.lower()
            matches = [
                c for c in matches
                if any(needle in (v or "").lower() for v in (c.name, c.description, c.keywords))
            ]
        matches.sort(key=lambda c: (getattr(c, sort_by), c.id), reverse=descending)
        return matches[offset:offset + limit], len(matches)

    async def list_owned(self, owner_id: str) -> list[Campaign]:
        return [
            c.model_copy(deep=True)
            for c in self.rows.values()
            if c.user_id == owner_id and not c.is_archived
        ]


class FakeUserStore(UserStore):
    def __init__(self, known: Sequence[str] = ()):
        self.known = set(known)

    async def exists(self, user_id: str) -> bool:
        return user_id in self.known


class FakeCapability(GenerationCapability):
    """Scripted generation: fixed replies per kind, optional failures."""

    def __init__(
        self,
        available: bool = True,
        outputs: Optional[dict[str, str]] = None,
        fail_kinds: Sequence[str] = (),
        fail_platforms: Sequence[str] = (),
        fail_after: Optional[int] = None,
        score_value: Any = 82,
        score_error: Optional[Exception] = None,
    ):
        self.available = available
        self.outputs = {
            "email_subject": '"Spring savings inside"',
            "email_body": "Hi there,\n\nOur spring offer is live.\n\nBest,\nThe team",
            "social_post": "Plan smarter this spring.\n\n#Marketing #Growth",
            "ad_copy": "Save 20% today. Shop now.",
            **(outputs or {}),
        }
        self.fail_kinds = set(fail_kinds)
        self.fail_platforms = set(fail_platforms)
        self.fail_after = fail_after
        self.score_value = score_value
        self.score_error = score_error
        self.calls: list[tuple[str, dict]] = []

    def is_available(self) -> bool:
        return self.available

    async def generate(self, kind: str, context: dict) -> str:
        self.calls.append((kind, dict(context)))
        if self.fail_after is not None and len(self.calls) > self.fail_after:
            raise RuntimeError("provider quota exceeded")
        if kind in self.fail_kinds or context.get("platform") in self.fail_platforms:
            raise RuntimeError("provider error")
        return self.outputs[kind]

    async def score(self, content: str, persona_summary: dict, content_type: str) -> int:
        if self.score_error:
            raise self.score_error
        return self.score_value


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    async def notify(self, room: str, event: str, payload: dict) -> None:
        self.events.append((room, event, payload))


# ── Builders ──────────────────────────────────────────────────────────

def build_persona(user_id: Optional[str] = OWNER, predefined: bool = False, **overrides) -> Persona:
    now = utcnow()
    fields = {
        "id": new_object_id(),
        "user_id": None if predefined else user_id,
        "is_predefined": predefined,
        "name": "Busy Parent",
        "description": "Time-poor parent shopping on mobile",
        "demographics": {"age": "30-45", "income": "$60k-$90k", "location": "Suburban US"},
        "psychographics": {"values": ["family", "convenience"], "interests": ["cooking"]},
        "pain_points": ["No time to compare prices"],
        "goals": ["Save time on errands"],
        "preferred_channels": ["email", "instagram"],
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Persona.model_validate(fields)


def build_campaign(user_id: str = OWNER, persona_id: Optional[str] = None, **overrides) -> Campaign:
    now = utcnow()
    fields = {
        "id": new_object_id(),
        "user_id": user_id,
        "persona_id": persona_id or new_object_id(),
        "name": "Spring Launch",
        "description": "Seasonal launch campaign",
        "objective": "awareness",
        "status": "draft",
        "budget": 1000,
        "start_date": now + timedelta(days=1),
        "end_date": now + timedelta(days=30),
        "keywords": "spring, launch",
        "metrics": CampaignMetrics(),
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Campaign.model_validate(fields)


# ── Fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def persona_store():
    return FakePersonaStore()


@pytest.fixture
def campaign_store():
    return FakeCampaignStore()


@pytest.fixture
def user_store():
    return FakeUserStore(known=[OWNER, OTHER, EDITOR, VIEWER])


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def persona(persona_store):
    return persona_store.put(build_persona())


@pytest.fixture
def campaign(campaign_store, persona):
    return campaign_store.put(build_campaign(
        persona_id=persona.id,
        collaborators=[
            {"user_id": EDITOR, "role": "editor"},
            {"user_id": VIEWER, "role": "viewer"},
        ],
    ))


@pytest.fixture
def campaign_service(campaign_store, persona_store, user_store, notifier):
    return CampaignService(campaign_store, persona_store, users=user_store, notifier=notifier)


@pytest.fixture
def persona_service(persona_store):
    return PersonaService(persona_store)


@pytest.fixture
def query_service(campaign_store):
    return CampaignQueryService(campaign_store)


@pytest.fixture
def generation_service(capability, campaign_store, persona_store, notifier):
    return GenerationService(capability, campaign_store, persona_store, notifier=notifier)


@pytest.fixture
def actor():
    """Mutable holder for the identity the API client authenticates as."""
    return {"user": Actor(user_id=OWNER)}


@pytest.fixture
async def client(actor, campaign_store, persona_store, user_store, capability, notifier):
    from app.auth import get_current_user
    from app.dependencies import (
        get_campaign_store, get_generation_capability, get_notifier,
        get_persona_store, get_user_store,
    )
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: actor["user"]
    app.dependency_overrides[get_campaign_store] = lambda: campaign_store
    app.dependency_overrides[get_persona_store] = lambda: persona_store
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_generation_capability] = lambda: capability
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
