"""
View Cache — Short-lived cache of per-user page payloads.

The studio, gallery and settings views are read far more often than they
change. Reads are cached per (user, path) for a few seconds; every write
that affects a view calls ``revalidate_path`` so the next read is fresh.

Usage:
    from jewelshot.services.view_cache import get_view_cache, revalidate_path

    cache = get_view_cache()
    payload = cache.get(user_id, "/gallery")
    if payload is None:
        payload = await build_gallery(...)
        cache.set(user_id, "/gallery", payload)

    revalidate_path("/gallery", user_id)

A path may carry a query string (``"/gallery?page=2"``); revalidating the
bare path drops every variant of it.

Entries live in process memory. Each instance caches independently, which
bounds staleness across instances to the TTL.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from jewelshot.config import settings

logger = logging.getLogger(__name__)

STUDIO_PATH = "/studio"
GALLERY_PATH = "/gallery"
SETTINGS_PATH = "/settings"


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    ttl_seconds: int

    @property
    def is_expired(self) -> bool:
        return time.time() - self.created_at > self.ttl_seconds


class ViewCache:
    """In-memory TTL cache keyed by (user_id, path)."""

    def __init__(self, default_ttl: int = 30, max_entries: int = 10000):
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._default_ttl = default_ttl
        self._max_entries = max_entries

    def get(self, user_id: str, path: str) -> Optional[Any]:
        key = (user_id, path)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, user_id: str, path: str, value: Any, *, ttl: Optional[int] = None) -> None:
        self._entries[(user_id, path)] = CacheEntry(
            value=value,
            created_at=time.time(),
            ttl_seconds=ttl if ttl is not None else self._default_ttl,
        )
        if len(self._entries) > self._max_entries:
            self._evict_expired()

    def invalidate(self, path: str, user_id: Optional[str] = None) -> int:
        """Drop cached entries for ``path`` and its query variants; all users when ``user_id`` is None."""
        variants = path + "?"
        keys = [
            k for k in self._entries
            if (k[1] == path or k[1].startswith(variants)) and (user_id is None or k[0] == user_id)
        ]
        for k in keys:
            self._entries.pop(k, None)
        return len(keys)

    def invalidate_user(self, user_id: str) -> int:
        keys = [k for k in self._entries if k[0] == user_id]
        for k in keys:
            self._entries.pop(k, None)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def _evict_expired(self) -> int:
        expired = [k for k, v in self._entries.items() if v.is_expired]
        for k in expired:
            self._entries.pop(k, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


# ── Singleton ────────────────────────────────────────────
_cache: Optional[ViewCache] = None


def get_view_cache() -> ViewCache:
    """Get the global view cache."""
    global _cache
    if _cache is None:
        _cache = ViewCache(default_ttl=settings.view_cache_ttl_seconds)
    return _cache


def revalidate_path(path: str, user_id: Optional[str] = None) -> None:
    """Invalidate cached views of ``path`` so the next read is rebuilt."""
    dropped = get_view_cache().invalidate(path, user_id)
    logger.debug("Revalidated %s for %s (%d entries)", path, user_id or "all users", dropped)
