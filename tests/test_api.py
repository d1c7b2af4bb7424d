"""
Tests for the Jewelshot HTTP API
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from jewelshot.db.models import AIGeneration, Image, Profile, Purchase, User

from conftest import JPEG_BYTES, PASSWORD


async def _generate(client: AsyncClient, headers=None, **fields):
    data = {"prompt": "gold ring on white marble", "metadata": '{"jewelryType": "ring"}'}
    data.update(fields)
    return await client.post(
        "/api/studio/generate",
        headers=headers or {},
        data=data,
        files={"file": ("ring.jpg", JPEG_BYTES, "image/jpeg")},
    )


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    """Test root endpoint"""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Jewelshot"
    assert data["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


@pytest.mark.asyncio
async def test_signup(client: AsyncClient):
    """Test user signup"""
    response = await client.post("/api/auth/signup", json={
        "email": "New.User@Example.com",
        "password": "Sparkle123",
        "full_name": "New User",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"]
    assert "access_token" in body["data"]
    assert "jewelshot_session" in response.cookies


@pytest.mark.asyncio
async def test_signup_weak_password(client: AsyncClient):
    response = await client.post("/api/auth/signup", json={
        "email": "weak@example.com",
        "password": "sparkle123",
    })
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "data": None,
        "error": "Password must contain at least one uppercase letter",
    }


@pytest.mark.asyncio
async def test_signup_duplicate_email(client: AsyncClient, user):
    response = await client.post("/api/auth/signup", json={
        "email": "MAKER@example.com",
        "password": "Sparkle123",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Email already registered"


@pytest.mark.asyncio
async def test_login_and_me(client: AsyncClient, user, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "maker@example.com"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, user):
    response = await client.post("/api/auth/login", json={"email": user.email, "password": "Wrong1234"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_session_cookie_authenticates(client: AsyncClient, user):
    await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    response = await client.get("/api/credits")
    assert response.status_code == 200
    assert response.json()["data"]["credits"] == 5

    await client.post("/api/auth/logout")
    client.cookies.clear()
    response = await client.get("/api/credits")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unauthenticated_envelope(client: AsyncClient):
    response = await client.get("/api/gallery")
    assert response.status_code == 401
    assert response.json() == {"success": False, "data": None, "error": "Not authenticated"}


@pytest.mark.asyncio
async def test_prompt_endpoints(client: AsyncClient):
    response = await client.post("/api/studio/prompt", json={
        "mode": "advanced",
        "jewelry_type": "ring",
        "gender": "men",
        "custom_prompt": "on black velvet",
        "custom_negative_prompt": "hands",
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert "on black velvet" in data["prompt"]
    assert data["negative_prompt"].endswith(", hands")

    response = await client.post("/api/studio/validate-prompt", json={"prompt": "x"})
    assert response.json()["data"] == {"valid": False, "error": "Prompt must be at least 3 characters"}


@pytest.mark.asyncio
async def test_generate_and_gallery_flow(client: AsyncClient, auth_headers, object_store):
    response = await _generate(client, auth_headers)
    assert response.status_code == 200, response.text
    image_id = response.json()["data"]["image_id"]

    credits = await client.get("/api/credits", headers=auth_headers)
    assert credits.json()["data"]["credits"] == 4

    gallery = await client.get("/api/gallery", headers=auth_headers, params={"jewelry_type": "ring"})
    page = gallery.json()["data"]
    assert page["count"] == 1
    assert page["images"][0]["id"] == image_id
    assert page["images"][0]["ai_generations"][0]["prompt"] == "gold ring on white marble"

    empty = await client.get("/api/gallery", headers=auth_headers, params={"jewelry_type": "necklace"})
    assert empty.json()["data"]["count"] == 0

    searched = await client.get("/api/gallery", headers=auth_headers, params={"search": "MARBLE"})
    assert searched.json()["data"]["count"] == 1

    history = await client.get("/api/studio/history", headers=auth_headers)
    assert len(history.json()["data"]) == 1

    deleted = await client.delete(f"/api/gallery/{image_id}", headers=auth_headers)
    assert deleted.json() == {"success": True, "data": None, "error": None}
    assert object_store.objects == {}

    missing = await client.get(f"/api/gallery/{image_id}", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "Image not found"

    stats = await client.get("/api/gallery/stats", headers=auth_headers)
    assert stats.json()["data"] == {"total_images": 0, "total_generations": 0, "storage_used": 0}


@pytest.mark.asyncio
async def test_generate_without_credits_returns_402(client: AsyncClient, auth_headers, db_session, user):
    from sqlalchemy import update

    await db_session.execute(update(Profile).where(Profile.id == user.id).values(credits=0))
    await db_session.commit()

    response = await _generate(client, auth_headers)
    assert response.status_code == 402
    assert response.json()["error"] == "Insufficient credits"


@pytest.mark.asyncio
async def test_generate_rejects_bad_parameters(client: AsyncClient, auth_headers):
    response = await _generate(client, auth_headers, strength="3.5")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid generation parameters"


@pytest.mark.asyncio
async def test_generate_uses_configured_defaults(client: AsyncClient, auth_headers, inference, monkeypatch):
    from jewelshot.config import settings

    monkeypatch.setattr(settings, "default_strength", 0.55)
    monkeypatch.setattr(settings, "default_guidance_scale", 9.0)

    await _generate(client, auth_headers)
    await _generate(client, auth_headers, strength="0.9")

    assert inference.calls[0]["strength"] == 0.55
    assert inference.calls[0]["guidance_scale"] == 9.0
    assert inference.calls[1]["strength"] == 0.9
    assert inference.calls[1]["guidance_scale"] == 9.0


@pytest.mark.asyncio
async def test_anonymous_generate(client: AsyncClient, object_store):
    response = await _generate(client)
    assert response.status_code == 200
    assert response.json()["data"]["generation_id"] is None


@pytest.mark.asyncio
async def test_storage_delete_requires_ownership(client: AsyncClient, auth_headers):
    response = await client.delete("/api/storage/images/uploads/someone-else_1_abcdefg.png", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_storage_delete_releases_quota(client: AsyncClient, user, auth_headers, db_session):
    uploaded = await client.post(
        "/api/storage/upload",
        headers=auth_headers,
        files={"file": ("ring.jpg", JPEG_BYTES, "image/jpeg")},
    )
    path = uploaded.json()["data"]["path"]

    response = await client.delete(f"/api/storage/images/{path}", headers=auth_headers)

    assert response.status_code == 200
    db_session.expire_all()
    used = (await db_session.execute(select(Profile.storage_used).where(Profile.id == user.id))).scalar_one()
    assert used == 0


@pytest.mark.asyncio
async def test_storage_delete_refuses_gallery_files(client: AsyncClient, auth_headers, object_store):
    await _generate(client, auth_headers)

    for path in object_store.paths():
        response = await client.delete(f"/api/storage/images/{path}", headers=auth_headers)
        assert response.status_code == 400
        assert "Delete the image from your gallery" in response.json()["error"]

    assert len(object_store.paths()) == 2


@pytest.mark.asyncio
async def test_profile_update_and_cache(client: AsyncClient, auth_headers):
    first = await client.get("/api/profile", headers=auth_headers)
    assert first.json()["data"]["full_name"] == "Ada Maker"

    updated = await client.patch("/api/profile", headers=auth_headers, json={"full_name": "Ada Goldsmith"})
    assert updated.json()["data"]["full_name"] == "Ada Goldsmith"

    again = await client.get("/api/profile", headers=auth_headers)
    assert again.json()["data"]["full_name"] == "Ada Goldsmith"


@pytest.mark.asyncio
async def test_avatar_upload_replaces_previous(client: AsyncClient, auth_headers, object_store):
    for _ in range(2):
        response = await client.post(
            "/api/profile/avatar",
            headers=auth_headers,
            files={"avatar": ("me.png", b"\x89PNG avatar", "image/png")},
        )
        assert response.status_code == 200

    assert len(object_store.paths("avatars")) == 1
    avatar_url = response.json()["data"]["avatar_url"]
    assert avatar_url.startswith("http://storage.test/avatars/avatars/")

    too_big = await client.post(
        "/api/profile/avatar",
        headers=auth_headers,
        files={"avatar": ("me.png", b"\x00" * (2 * 1024 * 1024 + 1), "image/png")},
    )
    assert too_big.json()["error"] == "File size must be less than 2MB"


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, user, auth_headers):
    wrong = await client.post("/api/profile/password", headers=auth_headers, json={
        "current_password": "Nope12345",
        "new_password": "Brilliant99",
    })
    assert wrong.status_code == 400
    assert wrong.json()["error"] == "Current password is incorrect"

    ok = await client.post("/api/profile/password", headers=auth_headers, json={
        "current_password": PASSWORD,
        "new_password": "Brilliant99",
    })
    assert ok.json()["success"]

    login = await client.post("/api/auth/login", json={"email": user.email, "password": "Brilliant99"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_admin_grant_requires_admin(client: AsyncClient, user, auth_headers):
    response = await client.post(
        "/api/admin/credits", headers=auth_headers, json={"user_id": user.id, "amount": 10},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_checkout_disabled(client: AsyncClient, auth_headers):
    response = await client.post("/api/credits/checkout", headers=auth_headers, json={"pack_id": "starter"})
    assert response.status_code == 400
    assert response.json()["error"] == "Payments are not enabled"


@pytest.mark.asyncio
async def test_delete_account_removes_everything(client: AsyncClient, user, auth_headers, object_store, db_session):
    for _ in range(3):
        assert (await _generate(client, auth_headers)).status_code == 200
    db_session.add(Purchase(
        user_id=user.id, pack_id="starter", amount=900, credits=20, stripe_session_id="cs_test_delete",
    ))
    await db_session.commit()
    await client.post(
        "/api/profile/avatar", headers=auth_headers, files={"avatar": ("me.png", b"\x89PNG", "image/png")},
    )
    assert len(object_store.paths()) == 6
    assert object_store.paths("avatars")

    response = await client.post("/api/account/delete", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["success"]

    assert object_store.objects == {}
    for model in (User, Profile, Image, AIGeneration, Purchase):
        count = await db_session.execute(select(func.count()).select_from(model))
        assert count.scalar_one() == 0

    login = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert login.status_code == 401
