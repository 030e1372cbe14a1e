"""
Content Router — AI content generation for campaigns.
"""

import logging

from fastapi import APIRouter, Depends

from app.auth import get_current_user
from app.dependencies import get_generation_service
from app.schemas import (
    Actor, AdCopyGenerateRequest, BatchGenerateRequest, GenerateRequest,
    SocialGenerateRequest, VariationsRequest,
)
from app.services.generation_service import GenerationService
from app.utils import api_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/content", tags=["Content Generation"])


@router.post("/generate-email")
async def generate_email(
    payload: GenerateRequest,
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    content = await generator.generate_email(payload, user.user_id)
    return api_response({"content": content.to_api()}, "Email content generated successfully")


@router.post("/generate-social")
async def generate_social(
    payload: SocialGenerateRequest,
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    content = await generator.generate_social(payload, user.user_id)
    return api_response({"content": content.to_api()}, f"{payload.platform} content generated successfully")


@router.post("/generate-ad-copy")
async def generate_ad_copy(
    payload: AdCopyGenerateRequest,
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    content = await generator.generate_ad_copy(payload, user.user_id)
    return api_response({"content": content.to_api()}, "Ad copy generated successfully")


@router.post("/generate-variations")
async def generate_variations(
    payload: VariationsRequest,
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    variations = await generator.generate_variations(payload, user.user_id)
    return api_response(
        {"variations": [v.to_api() for v in variations]},
        f"{len(variations)} {payload.content_type} variations generated successfully",
    )


@router.post("/batch-generate")
async def batch_generate(
    payload: BatchGenerateRequest,
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    result = await generator.batch_generate(payload, user.user_id)
    generated = result["generated_content"]
    data = {"generatedContent": [c.to_api() for c in generated]}
    if result["errors"]:
        data["errors"] = result["errors"]
    return api_response(
        data,
        f"Batch content generation completed. Generated {len(generated)} pieces of content.",
    )


@router.get("/ai-status")
async def ai_status(
    user: Actor = Depends(get_current_user),
    generator: GenerationService = Depends(get_generation_service),
):
    return api_response(generator.ai_status())
