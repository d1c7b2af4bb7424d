"""Tests for the per-user view cache"""

import time

import pytest

from jewelshot.schemas import GalleryFilters
from jewelshot.services.gallery_service import get_gallery_images
from jewelshot.services.view_cache import (
    GALLERY_PATH, SETTINGS_PATH, STUDIO_PATH, ViewCache, get_view_cache, revalidate_path,
)


def test_get_set_and_user_isolation():
    cache = ViewCache(default_ttl=30)
    cache.set("u1", GALLERY_PATH, "page")
    assert cache.get("u1", GALLERY_PATH) == "page"
    assert cache.get("u2", GALLERY_PATH) is None


def test_expiry(monkeypatch):
    cache = ViewCache(default_ttl=30)
    cache.set("u1", STUDIO_PATH, "studio")
    start = time.time()
    monkeypatch.setattr(time, "time", lambda: start + 31)
    assert cache.get("u1", STUDIO_PATH) is None
    assert len(cache) == 0


def test_invalidate_one_user_or_all():
    cache = ViewCache()
    for user in ("u1", "u2"):
        cache.set(user, GALLERY_PATH, "page")
        cache.set(user, SETTINGS_PATH, "profile")

    assert cache.invalidate(GALLERY_PATH, "u1") == 1
    assert cache.get("u2", GALLERY_PATH) == "page"

    assert cache.invalidate(SETTINGS_PATH) == 2
    assert cache.get("u1", SETTINGS_PATH) is None


def test_invalidate_user():
    cache = ViewCache()
    cache.set("u1", GALLERY_PATH, 1)
    cache.set("u1", STUDIO_PATH, 2)
    cache.set("u2", STUDIO_PATH, 3)
    assert cache.invalidate_user("u1") == 2
    assert len(cache) == 1


def test_revalidate_path_uses_global_cache():
    cache = get_view_cache()
    cache.set("u1", GALLERY_PATH, "page")
    revalidate_path(GALLERY_PATH, "u1")
    assert cache.get("u1", GALLERY_PATH) is None


def test_invalidate_drops_query_variants():
    cache = ViewCache()
    cache.set("u1", f"{GALLERY_PATH}?page=1", "one")
    cache.set("u1", f"{GALLERY_PATH}?page=2", "two")
    cache.set("u1", f"{GALLERY_PATH}-archive", "other view")
    cache.set("u2", f"{GALLERY_PATH}?page=1", "theirs")

    assert cache.invalidate(GALLERY_PATH, "u1") == 2
    assert cache.get("u1", f"{GALLERY_PATH}-archive") == "other view"
    assert cache.get("u2", f"{GALLERY_PATH}?page=1") == "theirs"


@pytest.mark.asyncio
async def test_gallery_pages_expire_independently(db_session, user, monkeypatch):
    clock = [time.time()]
    monkeypatch.setattr(time, "time", lambda: clock[0])
    cache = get_view_cache()
    first = GalleryFilters(limit=1, offset=0)
    second = GalleryFilters(limit=1, offset=1)

    await get_gallery_images(db_session, user.id, first)
    clock[0] += 25
    await get_gallery_images(db_session, user.id, second)
    clock[0] += 25

    assert cache.get(user.id, f"{GALLERY_PATH}?{first.model_dump_json()}") is None
    assert cache.get(user.id, f"{GALLERY_PATH}?{second.model_dump_json()}") is not None

    revalidate_path(GALLERY_PATH, user.id)
    assert cache.get(user.id, f"{GALLERY_PATH}?{second.model_dump_json()}") is None
