"""
fal.ai inference client — image-to-image generation over HTTP.

Responses are untrusted input: they are parsed into ``GenerationResult``
before anything downstream touches them.

Typical usage:
    client = FalClient(api_key=settings.fal_key)
    result = await client.generate_image(image_url=url, prompt=prompt)
    first = result.images[0].url
"""

import logging
import random
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from jewelshot.config import settings
from jewelshot.services.errors import InferenceError

logger = logging.getLogger(__name__)


class GeneratedImage(BaseModel):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    content_type: Optional[str] = None


class Timings(BaseModel):
    inference: Optional[float] = None


class GenerationResult(BaseModel):
    images: List[GeneratedImage] = Field(..., min_length=1)
    timings: Timings = Field(default_factory=Timings)
    seed: Optional[int] = None
    has_nsfw_concepts: List[bool] = Field(default_factory=list)


class FalClient:
    """Async client for the fal.ai synchronous run and queue endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        queue_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.fal_key
        self.model = model or settings.fal_model
        self.base_url = (base_url or settings.fal_base_url).rstrip("/")
        self.queue_url = (queue_url or settings.fal_queue_url).rstrip("/")
        self.timeout = timeout or settings.fal_timeout_seconds
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise InferenceError("FAL_KEY is not configured")
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate_image(
        self,
        image_url: str,
        prompt: str,
        negative_prompt: Optional[str] = None,
        strength: Optional[float] = None,
        guidance_scale: Optional[float] = None,
        num_images: int = 1,
        seed: Optional[int] = None,
    ) -> GenerationResult:
        """Run one image-to-image generation and wait for the result."""
        payload: Dict[str, Any] = {
            "prompt": prompt,
            "image_url": image_url,
            "strength": strength if strength is not None else settings.default_strength,
            "guidance_scale": guidance_scale if guidance_scale is not None else settings.default_guidance_scale,
            "num_images": num_images,
            "seed": seed if seed is not None else random.randint(0, 999999),
        }
        if negative_prompt:
            payload["negative_prompt"] = negative_prompt

        t0 = time.monotonic()
        try:
            resp = await self._client().post(
                f"{self.base_url}/{self.model}",
                json=payload,
                headers=self._headers(),
            )
            resp.raise_for_status()
            result = GenerationResult.model_validate(resp.json())
        except httpx.HTTPStatusError as exc:
            logger.error("[FAL] Generation failed with %s: %s", exc.response.status_code, exc.response.text[:500])
            raise InferenceError(f"AI generation failed ({exc.response.status_code})") from exc
        except httpx.RequestError as exc:
            raise InferenceError(f"Network error contacting inference service: {exc}") from exc
        except (PydanticValidationError, ValueError) as exc:
            raise InferenceError("AI generation returned an invalid response") from exc

        elapsed = (time.monotonic() - t0) * 1000
        logger.info("[FAL] Generated %d image(s) in %.0fms (seed=%s)", len(result.images), elapsed, result.seed)
        return result

    async def get_queue_status(self, request_id: str) -> Dict[str, Any]:
        """Status of a queued request (IN_QUEUE / IN_PROGRESS / COMPLETED)."""
        try:
            resp = await self._client().get(
                f"{self.queue_url}/{self.model}/requests/{request_id}/status",
                params={"logs": 1},
                headers=self._headers(),
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            logger.error("[FAL] Failed to get queue status for %s: %s", request_id, exc)
            raise InferenceError(f"Failed to get queue status: {exc}") from exc

    async def download_image(self, url: str) -> bytes:
        """Fetch generated image bytes from the inference CDN."""
        try:
            resp = await self._client().get(
                url,
                follow_redirects=True,
                timeout=settings.download_timeout_seconds,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise InferenceError(f"Failed to fetch generated image ({exc.response.status_code})") from exc
        except httpx.RequestError as exc:
            raise InferenceError(f"Network error fetching generated image: {exc}") from exc
        return resp.content

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
