"""
Generation Service - Orchestrates one studio generation end to end

Steps, strictly in order:
1. Validate the photo and prompts (no side effects on failure)
2. Authenticated callers: rate-limit check, then atomic credit deduction
3. Upload the original photo
4. Run image-to-image inference on the original's public URL
5. Download the first result and store it as ``generated.png``
6. Authenticated callers: persist Image + AIGeneration rows
7. Invalidate cached studio / gallery views

Nothing is retried. Objects already uploaded stay in place if a later step
fails; a credit taken in step 2 is given back.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jewelshot.config import settings
from jewelshot.db.models import AIGeneration, Image, Profile, GenerationStatus
from jewelshot.schemas import (
    ActionResult, GenerateRequest, GenerateResponse, GenerationHistoryItem, UploadResult,
)
from jewelshot.services import credit_service
from jewelshot.services.errors import (
    InferenceError, NotAuthenticatedError, RateLimitError, ValidationError,
    log_error, sanitize_error,
)
from jewelshot.services.fal_service import FalClient, GenerationResult
from jewelshot.services.rate_limiter import check_rate_limit
from jewelshot.services.storage_service import ObjectStore, release_usage, store_file
from jewelshot.services.validation import (
    validate_file_upload, validate_prompt, validate_negative_prompt,
)
from jewelshot.services.view_cache import revalidate_path, STUDIO_PATH, GALLERY_PATH

logger = logging.getLogger(__name__)

GENERATED_FILE_NAME = "generated.png"
GENERATED_CONTENT_TYPE = "image/png"
ANONYMOUS_GENERATION_DISABLED = "Please sign in to generate images"


def _validate_inputs(
    request: GenerateRequest,
    file_name: Optional[str],
    content_type: Optional[str],
    size: int,
) -> None:
    for check in (
        validate_file_upload(file_name, content_type, size),
        validate_prompt(request.prompt),
        validate_negative_prompt(request.negative_prompt),
    ):
        if not check.valid:
            raise ValidationError(check.error)


async def _reserve_credit(db: AsyncSession, user_id: str) -> None:
    limit = await check_rate_limit(db, user_id)
    if not limit.allowed:
        raise RateLimitError(
            f"Rate limit exceeded. Try again after {limit.reset_at.strftime('%H:%M')} UTC."
        )
    await credit_service.deduct_one(db, user_id)


async def _record_generation(
    db: AsyncSession,
    user_id: str,
    request: GenerateRequest,
    file_name: str,
    file_size: int,
    original: UploadResult,
    generated: UploadResult,
    generated_size: int,
    result: GenerationResult,
    model_name: str,
) -> AIGeneration:
    image = Image(
        user_id=user_id,
        original_url=original.url,
        edited_url=generated.url,
        storage_path=generated.path,
        file_name=file_name,
        file_size=file_size,
        image_metadata={
            **request.metadata,
            "mode": request.mode.value,
            "presetId": request.preset_id,
            "originalPath": original.path,
            "generatedSize": generated_size,
        },
    )
    db.add(image)
    await db.flush()

    generation = AIGeneration(
        user_id=user_id,
        image_id=image.id,
        model_name=model_name,
        prompt=request.prompt,
        negative_prompt=request.negative_prompt,
        parameters={
            "strength": request.strength,
            "guidanceScale": request.guidance_scale,
            "seed": result.seed,
            "mode": request.mode.value,
            "presetId": request.preset_id,
        },
        status=GenerationStatus.COMPLETED.value,
        inference_time=result.timings.inference,
        completed_at=datetime.utcnow(),
    )
    db.add(generation)

    await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(ai_generation_count=Profile.ai_generation_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return generation


async def generate_ai_image(
    db: AsyncSession,
    store: ObjectStore,
    inference: FalClient,
    request: GenerateRequest,
    data: bytes,
    file_name: Optional[str],
    content_type: Optional[str],
    user_id: Optional[str] = None,
) -> ActionResult[GenerateResponse]:
    """Run one generation. Never raises; failures come back in the envelope."""
    credit_taken = False
    counted_bytes = 0
    try:
        _validate_inputs(request, file_name, content_type, len(data))

        if user_id:
            await _reserve_credit(db, user_id)
            credit_taken = True
        elif not settings.allow_anonymous_generation:
            raise NotAuthenticatedError(ANONYMOUS_GENERATION_DISABLED)

        logger.info("[AI] Uploading original image for %s", user_id or "anonymous")
        original = await store_file(db, store, data, file_name, content_type, settings.images_bucket, user_id)
        if user_id:
            counted_bytes += len(data)

        logger.info("[AI] Generating AI image (mode=%s, preset=%s)", request.mode.value, request.preset_id)
        result = await inference.generate_image(
            image_url=original.url,
            prompt=request.prompt,
            negative_prompt=request.negative_prompt,
            strength=request.strength,
            guidance_scale=request.guidance_scale,
            num_images=1,
            seed=request.seed,
        )
        if not result.images:
            raise InferenceError("No image generated")

        logger.info("[AI] Saving generated image")
        generated_bytes = await inference.download_image(result.images[0].url)
        generated = await store_file(
            db, store, generated_bytes, GENERATED_FILE_NAME, GENERATED_CONTENT_TYPE,
            settings.images_bucket, user_id,
        )
        if user_id:
            counted_bytes += len(generated_bytes)

        response = GenerateResponse(image_url=generated.url)
        if user_id:
            generation = await _record_generation(
                db, user_id, request, file_name, len(data), original, generated,
                len(generated_bytes), result, inference.model,
            )
            response.generation_id = generation.id
            response.image_id = generation.image_id
            counted_bytes = 0

        revalidate_path(STUDIO_PATH, user_id)
        if user_id:
            revalidate_path(GALLERY_PATH, user_id)

        logger.info("[AI] Generation successful for %s", user_id or "anonymous")
        return ActionResult.ok(response)

    except Exception as e:
        await db.rollback()
        if credit_taken:
            refund = await credit_service.add_credits(db, user_id, 1)
            if not refund.success:
                logger.error("[AI] Credit refund failed for %s: %s", user_id, refund.error)
        if counted_bytes:
            # Orphaned uploads stay in the bucket but no longer count against the quota
            try:
                await release_usage(db, user_id, counted_bytes)
            except Exception as release_exc:
                logger.error("[AI] Storage usage release failed for %s: %s", user_id, release_exc)
        log_error("generate_ai_image", e)
        return ActionResult.fail(sanitize_error(e))


async def get_generation_history(
    db: AsyncSession,
    user_id: str,
    limit: int = 10,
) -> ActionResult[List[GenerationHistoryItem]]:
    """Most recent generations, each with its image."""
    try:
        result = await db.execute(
            select(AIGeneration)
            .where(AIGeneration.user_id == user_id)
            .options(selectinload(AIGeneration.image).selectinload(Image.generations))
            .order_by(AIGeneration.created_at.desc())
            .limit(limit)
        )
        items = [GenerationHistoryItem.model_validate(g) for g in result.scalars().all()]
        return ActionResult.ok(items)
    except Exception as e:
        log_error("get_generation_history", e)
        return ActionResult.fail(sanitize_error(e))
