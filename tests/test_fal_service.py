"""Tests for the fal.ai client using httpx.MockTransport"""

import json

import httpx
import pytest

from jewelshot.services.errors import InferenceError
from jewelshot.services.fal_service import FalClient

RESULT = {
    "images": [{"url": "https://fal.media/files/out.png", "width": 768, "height": 1344, "content_type": "image/png"}],
    "timings": {"inference": 3.5},
    "seed": 42,
    "has_nsfw_concepts": [False],
}


def _client(handler, api_key="secret") -> FalClient:
    return FalClient(
        api_key=api_key,
        model="fal-ai/test-model",
        base_url="https://fal.test",
        queue_url="https://queue.fal.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_sends_expected_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=RESULT)

    client = _client(handler)
    result = await client.generate_image(
        image_url="http://storage.test/images/a.png",
        prompt="ring on marble",
        negative_prompt="blurry",
        strength=0.6,
        guidance_scale=9.0,
        seed=42,
    )
    await client.close()

    assert seen["url"] == "https://fal.test/fal-ai/test-model"
    assert seen["auth"] == "Key secret"
    assert seen["body"] == {
        "prompt": "ring on marble",
        "image_url": "http://storage.test/images/a.png",
        "strength": 0.6,
        "guidance_scale": 9.0,
        "num_images": 1,
        "seed": 42,
        "negative_prompt": "blurry",
    }
    assert result.images[0].url == "https://fal.media/files/out.png"
    assert result.timings.inference == 3.5


@pytest.mark.asyncio
async def test_random_seed_and_no_negative_prompt():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=RESULT)

    client = _client(handler)
    await client.generate_image(image_url="u", prompt="ring")

    assert "negative_prompt" not in bodies[0]
    assert 0 <= bodies[0]["seed"] <= 999999


@pytest.mark.asyncio
async def test_http_error_becomes_inference_error():
    client = _client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(InferenceError, match=r"AI generation failed \(500\)"):
        await client.generate_image(image_url="u", prompt="ring")


@pytest.mark.asyncio
async def test_empty_images_rejected():
    client = _client(lambda request: httpx.Response(200, json={"images": []}))
    with pytest.raises(InferenceError, match="invalid response"):
        await client.generate_image(image_url="u", prompt="ring")


@pytest.mark.asyncio
async def test_non_json_rejected():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(InferenceError, match="invalid response"):
        await client.generate_image(image_url="u", prompt="ring")


@pytest.mark.asyncio
async def test_missing_key():
    client = _client(lambda request: httpx.Response(200, json=RESULT), api_key="")
    with pytest.raises(InferenceError, match="FAL_KEY is not configured"):
        await client.generate_image(image_url="u", prompt="ring")


@pytest.mark.asyncio
async def test_queue_status():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/fal-ai/test-model/requests/req-1/status"
        assert request.url.params["logs"] == "1"
        return httpx.Response(200, json={"status": "IN_PROGRESS"})

    client = _client(handler)
    assert await client.get_queue_status("req-1") == {"status": "IN_PROGRESS"}


@pytest.mark.asyncio
async def test_download_image():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing.png":
            return httpx.Response(404)
        return httpx.Response(200, content=b"png-bytes")

    client = _client(handler)
    assert await client.download_image("https://fal.media/out.png") == b"png-bytes"
    with pytest.raises(InferenceError, match=r"\(404\)"):
        await client.download_image("https://fal.media/missing.png")
