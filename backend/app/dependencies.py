"""
FastAPI dependency providers: stores, the generation capability, the
notifier and the services built on them. Tests replace these through
app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.database import get_session_factory
from app.services.ai_service import GenerationCapability, create_ai_service
from app.services.campaign_service import CampaignService
from app.services.generation_service import GenerationService
from app.services.notifier import ConnectionManager, Notifier
from app.services.persona_service import PersonaService
from app.services.query_service import CampaignQueryService
from app.stores.base import CampaignStore, PersonaStore, UserStore
from app.stores.sql import SqlCampaignStore, SqlPersonaStore, SqlUserStore

connection_manager = ConnectionManager()


@lru_cache
def get_generation_capability() -> GenerationCapability:
    """Built once per process."""
    return create_ai_service()


def get_notifier() -> Notifier:
    return connection_manager


def get_persona_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> PersonaStore:
    return SqlPersonaStore(session_factory)


def get_campaign_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> CampaignStore:
    return SqlCampaignStore(session_factory)


def get_user_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> UserStore:
    return SqlUserStore(session_factory)


def get_campaign_service(
    campaigns: CampaignStore = Depends(get_campaign_store),
    personas: PersonaStore = Depends(get_persona_store),
    users: UserStore = Depends(get_user_store),
    notifier: Notifier = Depends(get_notifier),
) -> CampaignService:
    return CampaignService(campaigns, personas, users=users, notifier=notifier)


def get_persona_service(personas: PersonaStore = Depends(get_persona_store)) -> PersonaService:
    return PersonaService(personas)


def get_query_service(campaigns: CampaignStore = Depends(get_campaign_store)) -> CampaignQueryService:
    return CampaignQueryService(campaigns)


def get_generation_service(
    capability: GenerationCapability = Depends(get_generation_capability),
    campaigns: CampaignStore = Depends(get_campaign_store),
    personas: PersonaStore = Depends(get_persona_store),
    notifier: Notifier = Depends(get_notifier),
) -> GenerationService:
    return GenerationService(capability, campaigns, personas, notifier=notifier)
