"""Studio endpoints - prompt helpers, rate-limit status and generation"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import get_current_user, get_optional_user
from jewelshot.api.deps import get_inference_client, get_object_store, respond
from jewelshot.db import get_db, User, GenerationMode
from jewelshot.schemas import (
    ActionResult, BuiltPrompt, GenerateRequest, GenerateResponse, GenerationHistoryItem,
    PromptRequest, PromptValidationRequest, RateLimitResult, ValidationResult,
)
from jewelshot.services.fal_service import FalClient
from jewelshot.services.generation_service import generate_ai_image, get_generation_history
from jewelshot.services.prompt_builder import build_prompt
from jewelshot.services.rate_limiter import get_rate_limit_status
from jewelshot.services.storage_service import ObjectStore
from jewelshot.services.validation import validate_prompt, validate_negative_prompt

router = APIRouter(prefix="/studio", tags=["Studio"])


@router.post("/validate-prompt", response_model=ActionResult[ValidationResult])
async def validate_prompt_endpoint(body: PromptValidationRequest):
    """Check a prompt (and optional negative prompt) before generating"""
    result = validate_prompt(body.prompt)
    if result.valid:
        result = validate_negative_prompt(body.negative_prompt)
    return ActionResult.ok(result)


@router.post("/prompt", response_model=ActionResult[BuiltPrompt])
async def build_prompt_endpoint(body: PromptRequest):
    """Assemble the generation prompt for a studio mode"""
    return ActionResult.ok(build_prompt(
        body.mode,
        body.jewelry_type,
        body.gender,
        aspect_ratio=body.aspect_ratio,
        preset_id=body.preset_id,
        model=body.model,
        location=body.location,
        mood=body.mood,
        custom_prompt=body.custom_prompt,
        custom_negative_prompt=body.custom_negative_prompt,
    ))


@router.get("/rate-limit", response_model=ActionResult[RateLimitResult])
async def rate_limit_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ActionResult.ok(await get_rate_limit_status(db, current_user.id))


@router.post("/generate", response_model=ActionResult[GenerateResponse])
async def generate(
    response: Response,
    file: UploadFile = File(...),
    prompt: str = Form(...),
    negative_prompt: Optional[str] = Form(None),
    strength: Optional[float] = Form(None),
    guidance_scale: Optional[float] = Form(None),
    seed: Optional[int] = Form(None),
    mode: GenerationMode = Form(GenerationMode.QUICK),
    preset_id: Optional[str] = Form(None),
    metadata: Optional[str] = Form(None),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    inference: FalClient = Depends(get_inference_client),
):
    """Upload a jewelry photo and generate a styled product shot"""
    try:
        fields = dict(
            prompt=prompt,
            negative_prompt=negative_prompt or None,
            seed=seed,
            mode=mode,
            preset_id=preset_id or None,
            metadata=json.loads(metadata) if metadata else {},
        )
        # Omitted tuning fields fall back to the configured defaults
        if strength is not None:
            fields["strength"] = strength
        if guidance_scale is not None:
            fields["guidance_scale"] = guidance_scale
        request = GenerateRequest(**fields)
    except (PydanticValidationError, ValueError, TypeError):
        response.status_code = status.HTTP_400_BAD_REQUEST
        return ActionResult.fail("Invalid generation parameters")

    data = await file.read()
    result = await generate_ai_image(
        db,
        store,
        inference,
        request,
        data,
        file.filename,
        file.content_type,
        user_id=current_user.id if current_user else None,
    )
    return respond(result, response)


@router.get("/history", response_model=ActionResult[List[GenerationHistoryItem]])
async def history(
    response: Response,
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await get_generation_history(db, current_user.id, limit), response)
