"""
Persona Router — own + predefined personas, persona CRUD and statistics.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.auth import get_current_user
from app.dependencies import get_persona_service
from app.schemas import Actor, PersonaCreate, PersonaUpdate
from app.services.persona_service import PersonaService
from app.utils import api_response, parse_object_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/personas", tags=["Personas"])


@router.get("")
async def list_personas(
    search: Optional[str] = Query(None, max_length=200),
    is_predefined: Optional[bool] = Query(None, alias="isPredefined"),
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    personas = await service.list(user.user_id, search=search, is_predefined=is_predefined)
    return api_response({"personas": [p.to_api() for p in personas], "count": len(personas)})


@router.get("/stats")
async def persona_stats(
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    return api_response(await service.stats(user.user_id))


@router.post("", status_code=201)
async def create_persona(
    payload: PersonaCreate,
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    persona = await service.create(payload, user.user_id)
    return api_response({"persona": persona.to_api()}, "Persona created successfully")


@router.get("/{persona_id}")
async def get_persona(
    persona_id: str,
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    persona = await service.get(parse_object_id(persona_id), user.user_id)
    return api_response({"persona": persona.to_api()})


@router.put("/{persona_id}")
async def update_persona(
    persona_id: str,
    payload: PersonaUpdate,
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    persona = await service.update(parse_object_id(persona_id), payload, user.user_id)
    return api_response({"persona": persona.to_api()}, "Persona updated successfully")


@router.delete("/{persona_id}")
async def delete_persona(
    persona_id: str,
    user: Actor = Depends(get_current_user),
    service: PersonaService = Depends(get_persona_service),
):
    await service.delete(parse_object_id(persona_id), user.user_id)
    return api_response(message="Persona deleted successfully")
