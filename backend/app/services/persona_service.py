"""
Persona Service — custom persona CRUD, statistics and predefined-persona seeding.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from app import access
from app.errors import ConflictError, NotFoundError, PermissionDeniedError
from app.schemas import Persona, PersonaCreate, PersonaUpdate, PredefinedPersonaSeed
from app.stores.base import PersonaStore
from app.utils import new_object_id, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SEED_FILE = Path(__file__).resolve().parent.parent.parent / "seed_data" / "personas.json"


def load_seed_file(path: Optional[str] = None) -> list[PredefinedPersonaSeed]:
    """Parse and validate the predefined persona seed file."""
    seed_path = Path(path) if path else DEFAULT_SEED_FILE
    with open(seed_path, encoding="utf-8") as f:
        raw = json.load(f)
    return [PredefinedPersonaSeed.model_validate(item) for item in raw]


class PersonaService:
    def __init__(self, personas: PersonaStore):
        self.personas = personas

    async def list(
        self,
        user_id: str,
        search: Optional[str] = None,
        is_predefined: Optional[bool] = None,
    ) -> list[Persona]:
        search = search.strip() if search and search.strip() else None
        return await self.personas.list_visible(user_id, search=search, is_predefined=is_predefined)

    async def _load(self, persona_id: str) -> Persona:
        persona = await self.personas.get(persona_id)
        if not persona:
            raise NotFoundError("Persona not found")
        return persona

    async def get(self, persona_id: str, user_id: str) -> Persona:
        persona = await self._load(persona_id)
        if not access.persona_readable(persona, user_id):
            raise PermissionDeniedError("Access denied to this persona")
        return persona

    async def create(self, data: PersonaCreate, user_id: str) -> Persona:
        now = utcnow()
        persona = Persona(
            id=new_object_id(),
            user_id=user_id,
            is_predefined=False,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        created = await self.personas.insert(persona)
        logger.info(f"Persona {created.id} created by user {user_id}")
        return created

    async def update(self, persona_id: str, patch: PersonaUpdate, user_id: str) -> Persona:
        persona = await self._load(persona_id)
        if not access.persona_editable(persona, user_id):
            raise PermissionDeniedError(
                "You can only edit your own personas. Predefined personas cannot be edited."
            )
        changes = {
            name: getattr(patch, name)
            for name in patch.model_fields_set
            if getattr(patch, name) is not None
        }
        if not changes:
            return persona
        return await self.personas.update(persona.id, changes)

    async def delete(self, persona_id: str, user_id: str) -> None:
        persona = await self._load(persona_id)
        if not access.persona_editable(persona, user_id):
            raise PermissionDeniedError(
                "You can only delete your own personas. Predefined personas cannot be deleted."
            )
        if await self.personas.is_referenced(persona.id):
            raise ConflictError("Persona is used by one or more campaigns and cannot be deleted")
        await self.personas.delete(persona.id)
        logger.info(f"Persona {persona.id} deleted by user {user_id}")

    async def stats(self, user_id: str) -> dict:
        visible = await self.personas.list_visible(user_id)
        own = [p for p in visible if not p.is_predefined]
        channels = {c for p in visible for c in p.preferred_channels}
        return {
            "totalPersonas": len(visible),
            "userPersonas": len(own),
            "predefinedPersonas": len(visible) - len(own),
            "uniqueChannels": len(channels),
        }

    async def seed_predefined(self, seeds: Sequence[PredefinedPersonaSeed]) -> int:
        """Insert predefined personas once. Returns the number inserted (0 if any already exist)."""
        existing = await self.personas.count_predefined()
        if existing:
            logger.info(f"Found {existing} predefined personas, skipping seed")
            return 0
        if not seeds:
            return 0
        now = utcnow()
        personas = [
            Persona(
                id=new_object_id(),
                user_id=None,
                is_predefined=True,
                created_at=now,
                updated_at=now,
                **seed.model_dump(exclude={"is_predefined"}),
            )
            for seed in seeds
        ]
        inserted = await self.personas.insert_many(personas)
        logger.info(f"Seeded {len(inserted)} predefined personas")
        return len(inserted)
