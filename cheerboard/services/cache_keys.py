"""
Cache key builders and invalidation helpers.

Key layout:
    performer:{id}                       single performer (or cached not-found)
    performers:approved                  approved performer base list
    performers:status:{status}:{owner}   performers by status
    performers:filters:{params}          performer query results
    event:{id}                           single support event
    events:approved                      approved event base list
    events:filters:{params}              event query results
    events:map:{params}                  map window results
    favorite:{user}:{event}              favorite membership flag
    favorites:{user}:{params}            a user's favorite lists

The singular and plural prefixes never contain each other, so the plural
prefixes can be used as invalidation patterns.
"""

import json
from typing import Any, Dict, Iterable, Optional

from cheerboard.utils.cache import MemoryCache


PERFORMERS_PREFIX = "performers:"
EVENTS_PREFIX = "events:"
FAVORITES_PREFIX = "favorites:"

PERFORMERS_APPROVED = "performers:approved"
EVENTS_APPROVED = "events:approved"


def _serialize(params: Dict[str, Any]) -> str:
    """Stable serialization of query parameters (None values dropped)."""
    cleaned = {k: v for k, v in params.items() if v is not None}
    return json.dumps(cleaned, sort_keys=True, default=str, ensure_ascii=False)


def performer_key(performer_id: str) -> str:
    return f"performer:{performer_id}"


def performers_status_key(status: str, created_by: Optional[str] = None) -> str:
    return f"performers:status:{status}:{created_by or '*'}"


def performer_query_key(params: Dict[str, Any]) -> str:
    return f"performers:filters:{_serialize(params)}"


def event_key(event_id: str) -> str:
    return f"event:{event_id}"


def event_query_key(params: Dict[str, Any]) -> str:
    return f"events:filters:{_serialize(params)}"


def event_map_key(params: Dict[str, Any]) -> str:
    return f"events:map:{_serialize(params)}"


def favorite_pair_key(user_id: str, event_id: str) -> str:
    return f"favorite:{user_id}:{event_id}"


def favorite_list_key(user_id: str, params: Dict[str, Any]) -> str:
    return f"favorites:{user_id}:{_serialize(params)}"


# ============================================================================
# Invalidation
# ============================================================================


def invalidate_performer(cache: MemoryCache, performer_id: str) -> None:
    """Drop a performer's entry and every cached performer list/query."""
    cache.delete(performer_key(performer_id))
    cache.clear_pattern(PERFORMERS_PREFIX)


def invalidate_event(
    cache: MemoryCache,
    event_id: str,
    performer_ids: Iterable[str] = (),
) -> None:
    """
    Drop everything a support event write can make stale.

    Covers the event key, the approved base list, every event query and map
    window, the referenced performers (their active event ids), every
    performer query and every cached favorite list.
    """
    cache.delete(event_key(event_id))
    cache.delete(EVENTS_APPROVED)
    cache.clear_pattern(EVENTS_PREFIX)
    for performer_id in performer_ids:
        cache.delete(performer_key(performer_id))
    cache.clear_pattern(PERFORMERS_PREFIX)
    cache.clear_pattern(FAVORITES_PREFIX)


def invalidate_favorites(cache: MemoryCache, user_id: str, event_id: Optional[str] = None) -> None:
    """Drop a user's membership flag for one event and all their favorite lists."""
    if event_id is not None:
        cache.delete(favorite_pair_key(user_id, event_id))
    cache.clear_pattern(f"{FAVORITES_PREFIX}{user_id}:")
