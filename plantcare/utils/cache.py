"""
Garden listing cache.

Listing a garden is the most frequent read; results are kept for a short time
per user and dropped whenever that user's garden changes.
"""

from __future__ import annotations
from cachetools import TTLCache
from typing import Callable, Any, Dict
from functools import wraps
import threading

GARDEN_CACHE_TTL_SECONDS = 300  # 5 minutes
GARDEN_CACHE_MAX_ENTRIES = 1000

# Key format: "garden:{user_id}"
_garden_cache = TTLCache(maxsize=GARDEN_CACHE_MAX_ENTRIES, ttl=GARDEN_CACHE_TTL_SECONDS)
_cache_lock = threading.Lock()

# Bumped on every invalidation; a listing read under an older generation is not stored
_generations: Dict[str, int] = {}
_epoch = 0


def _key(user_id: str) -> str:
    return f"garden:{user_id}"


def _generation(cache_key: str) -> tuple:
    return _epoch, _generations.get(cache_key, 0)


def cache_garden_listing(func: Callable) -> Callable:
    """
    Decorator caching a per-user garden listing.

    A result is only stored if the user's garden was not invalidated while
    it was being loaded.

    Usage:
        @cache_garden_listing
        def list_garden(user_id):
            return store.list_for_user(user_id)
    """
    @wraps(func)
    def wrapper(user_id: str) -> Any:
        cache_key = _key(user_id)

        with _cache_lock:
            if cache_key in _garden_cache:
                return _garden_cache[cache_key]
            generation = _generation(cache_key)

        result = func(user_id)

        with _cache_lock:
            if _generation(cache_key) == generation:
                _garden_cache[cache_key] = result

        return result

    return wrapper


def invalidate_user_garden_cache(user_id: str) -> None:
    """
    Drop the cached garden for a user.

    Called when the user adds, waters or deletes a plant. Reminder sweeps
    also move next_watering, so they invalidate the owners they touched.
    """
    cache_key = _key(user_id)
    with _cache_lock:
        _garden_cache.pop(cache_key, None)
        _generations[cache_key] = _generations.get(cache_key, 0) + 1


def configure_garden_cache(ttl_seconds: int = GARDEN_CACHE_TTL_SECONDS) -> None:
    """Recreate the garden cache with a new TTL (called by init_garden)."""
    global _garden_cache, _epoch
    with _cache_lock:
        _garden_cache = TTLCache(maxsize=GARDEN_CACHE_MAX_ENTRIES, ttl=max(ttl_seconds, 1))
        _generations.clear()
        _epoch += 1


def clear_all_garden_cache() -> None:
    """Clear the entire garden cache (tests, maintenance)."""
    global _epoch
    with _cache_lock:
        _garden_cache.clear()
        _generations.clear()
        _epoch += 1
