"""
Campaign Router — campaign CRUD, lifecycle, stats/dashboard and the embedded
content, A/B test and collaborator collections.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.auth import get_current_user
from app.dependencies import get_campaign_service, get_query_service
from app.schemas import (
    ABTestCreate, Actor, CampaignCreate, CampaignStatus, CampaignUpdate,
    CollaboratorRequest, ContentCreate, Objective,
)
from app.services.campaign_service import CampaignService
from app.services.query_service import CampaignQueryService
from app.utils import api_response, parse_object_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


# ══════════════════════════════════════════════════════════════════════
#  COLLECTION
# ══════════════════════════════════════════════════════════════════════

@router.get("")
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    objective: Optional[Objective] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    user: Actor = Depends(get_current_user),
    queries: CampaignQueryService = Depends(get_query_service),
):
    result = await queries.list(
        user.user_id,
        status=status.value if status else None,
        objective=objective.value if objective else None,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return api_response({
        "campaigns": [c.to_api() for c in result["campaigns"]],
        "pagination": result["pagination"],
    })


@router.post("", status_code=201)
async def create_campaign(
    payload: CampaignCreate,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.create(payload, user.user_id)
    return api_response({"campaign": campaign.to_api()}, "Campaign created successfully")


@router.get("/stats")
async def campaign_stats(
    user: Actor = Depends(get_current_user),
    queries: CampaignQueryService = Depends(get_query_service),
):
    return api_response(await queries.stats(user.user_id))


@router.get("/dashboard")
async def campaign_dashboard(
    user: Actor = Depends(get_current_user),
    queries: CampaignQueryService = Depends(get_query_service),
):
    view = await queries.dashboard(user.user_id)
    return api_response({key: [c.to_api() for c in campaigns] for key, campaigns in view.items()})


# ══════════════════════════════════════════════════════════════════════
#  SINGLE CAMPAIGN
# ══════════════════════════════════════════════════════════════════════

@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.get(parse_object_id(campaign_id), user.user_id)
    return api_response({"campaign": campaign.to_api()})


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    payload: CampaignUpdate,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.update(parse_object_id(campaign_id), payload, user.user_id)
    return api_response({"campaign": campaign.to_api()}, "Campaign updated successfully")


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    await service.delete(parse_object_id(campaign_id), user.user_id)
    return api_response(message="Campaign deleted successfully")


@router.put("/{campaign_id}/archive")
async def archive_campaign(
    campaign_id: str,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.archive(parse_object_id(campaign_id), user.user_id)
    return api_response({"campaign": campaign.to_api()}, "Campaign archived successfully")


# ── Embedded collections ─────────────────────────────────────────────

@router.post("/{campaign_id}/content", status_code=201)
async def add_content(
    campaign_id: str,
    payload: ContentCreate,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    content = await service.add_content(parse_object_id(campaign_id), payload, user.user_id)
    return api_response({"content": content.to_api()}, "Content added successfully")


@router.post("/{campaign_id}/ab-tests", status_code=201)
async def add_ab_test(
    campaign_id: str,
    payload: ABTestCreate,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    test = await service.add_ab_test(parse_object_id(campaign_id), payload, user.user_id)
    return api_response({"abTest": test.to_api()}, "A/B test created successfully")


@router.post("/{campaign_id}/collaborators")
async def add_collaborator(
    campaign_id: str,
    payload: CollaboratorRequest,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.add_collaborator(parse_object_id(campaign_id), payload, user.user_id)
    return api_response({"campaign": campaign.to_api()}, "Collaborator saved successfully")


@router.delete("/{campaign_id}/collaborators/{user_id}")
async def remove_collaborator(
    campaign_id: str,
    user_id: str,
    user: Actor = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.remove_collaborator(
        parse_object_id(campaign_id), parse_object_id(user_id, "userId"), user.user_id
    )
    return api_response({"campaign": campaign.to_api()}, "Collaborator removed successfully")
