"""
Storage interfaces consumed by the services.

Implementations must provide an atomic append for a campaign's embedded
collections (content items, A/B tests): appending never rewrites the
items already stored, and a multi-item append either stores every item or
none of them.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from app.schemas import (
    ABTest, ABTestCreate, Campaign, Collaborator, Content, ContentCreate, Persona,
)


class PersonaStore(ABC):
    @abstractmethod
    async def get(self, persona_id: str) -> Optional[Persona]:
        ...

    @abstractmethod
    async def list_visible(
        self,
        user_id: str,
        search: Optional[str] = None,
        is_predefined: Optional[bool] = None,
    ) -> list[Persona]:
        """Own custom personas plus every predefined persona, custom first, newest first."""

    @abstractmethod
    async def insert(self, persona: Persona) -> Persona:
        ...

    @abstractmethod
    async def insert_many(self, personas: Sequence[Persona]) -> list[Persona]:
        ...

    @abstractmethod
    async def update(self, persona_id: str, changes: dict[str, Any]) -> Persona:
        ...

    @abstractmethod
    async def delete(self, persona_id: str) -> None:
        ...

    @abstractmethod
    async def count_predefined(self) -> int:
        ...

    @abstractmethod
    async def is_referenced(self, persona_id: str) -> bool:
        """True if any campaign targets this persona."""


class CampaignStore(ABC):
    @abstractmethod
    async def get(self, campaign_id: str) -> Optional[Campaign]:
        ...

    @abstractmethod
    async def insert(self, campaign: Campaign) -> Campaign:
        ...

    @abstractmethod
    async def update(self, campaign_id: str, changes: dict[str, Any]) -> Campaign:
        """Whole-field replace of scalar / nested-settings fields. Never touches content."""

    @abstractmethod
    async def delete(self, campaign_id: str) -> None:
        ...

    @abstractmethod
    async def append_content(self, campaign_id: str, items: Sequence[ContentCreate]) -> list[Content]:
        """Atomically append items in order; returns them with ids and timestamps."""

    @abstractmethod
    async def append_ab_test(self, campaign_id: str, test: ABTestCreate) -> ABTest:
        ...

    @abstractmethod
    async def upsert_collaborator(self, campaign_id: str, user_id: str, role: str) -> Collaborator:
        ...

    @abstractmethod
    async def remove_collaborator(self, campaign_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    async def search(
        self,
        owner_id: str,
        status: Optional[str] = None,
        objective: Optional[str] = None,
        text: Optional[str] = None,
        sort_by: str = "created_at",
        descending: bool = True,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Campaign], int]:
        """Owner's non-archived campaigns matching the filters, plus the total match count."""

    @abstractmethod
    async def list_owned(self, owner_id: str) -> list[Campaign]:
        """Every non-archived campaign of the owner."""


class UserStore(ABC):
    @abstractmethod
    async def exists(self, user_id: str) -> bool:
        ...
