"""
Favorite membership service.

Tracks which support events a user has favorited and answers membership
questions for single events, batches of events and the user's favorite
list.

Batch membership and the favorite list read events in chunks no larger
than the store's "in" limit (30); each chunk is queried independently and
the results are unioned.
"""

from typing import Dict, List, Optional, Sequence

from cheerboard.config.settings import AppSettings, get_settings
from cheerboard.schemas.common import EventStatus
from cheerboard.schemas.event import SupportEvent
from cheerboard.schemas.favorite import (
    Favorite,
    FavoriteEventItem,
    FavoriteListResponse,
    FavoriteQuery,
)
from cheerboard.services import cache_keys
from cheerboard.services.exceptions import ConflictError, NotFoundError
from cheerboard.services.guid import GuidService
from cheerboard.services.query_pipeline import clamp_page, paginate, sort_items, time_status_matches
from cheerboard.store import FAVORITES, SUPPORT_EVENTS, FieldFilter, StoreGateway, WriteKind, WriteOp
from cheerboard.store.gateway import chunked, dedupe
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger


logger = get_logger("services")

FAVORITE_DEFAULT_LIMIT = 20


class FavoriteService:
    """
    Service for user favorites.

    Usage:
        >>> service = FavoriteService(gateway, cache)
        >>> await service.add_favorite("user-1", "evt_01...")
        >>> await service.check_batch("user-1", ["evt_01...", "evt_02..."])
        {'evt_01...': True, 'evt_02...': False}
    """

    def __init__(
        self,
        gateway: StoreGateway,
        cache: MemoryCache,
        settings: Optional[AppSettings] = None,
        clock: Clock = utc_now,
    ):
        self.gateway = gateway
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock

    async def _pair_docs(self, user_id: str, event_id: str) -> List[dict]:
        return await self.gateway.query(
            FAVORITES,
            [FieldFilter("user_id", user_id), FieldFilter("event_id", event_id)],
        )

    async def add_favorite(self, user_id: str, event_id: str) -> Favorite:
        """
        Favorite an event.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If the user already favorited the event
        """
        if await self.gateway.get(SUPPORT_EVENTS, event_id) is None:
            raise NotFoundError("SupportEvent", event_id)

        if await self._pair_docs(user_id, event_id):
            raise ConflictError(f"Event {event_id} is already a favorite")

        favorite = Favorite(
            id=GuidService.generate_guid("fav"),
            user_id=user_id,
            event_id=event_id,
            created_at=self.clock(),
        )
        await self.gateway.add(FAVORITES, favorite.to_document(), doc_id=favorite.id)
        cache_keys.invalidate_favorites(self.cache, user_id, event_id)

        logger.info(f"User {user_id} favorited event {event_id}")
        return favorite

    async def remove_favorite(self, user_id: str, event_id: str) -> None:
        """
        Remove a favorite.

        Raises:
            NotFoundError: If the user has not favorited the event
        """
        docs = await self._pair_docs(user_id, event_id)
        if not docs:
            raise NotFoundError("Favorite", event_id)

        await self.gateway.batch_write([
            WriteOp(WriteKind.DELETE, FAVORITES, doc["id"]) for doc in docs
        ])
        cache_keys.invalidate_favorites(self.cache, user_id, event_id)
        logger.info(f"User {user_id} removed favorite event {event_id}")

    async def is_favorited(self, user_id: str, event_id: str) -> bool:
        """Check one event (cached per user/event pair)."""
        key = cache_keys.favorite_pair_key(user_id, event_id)
        cached, found = self.cache.get(key)
        if found:
            return cached

        docs = await self.gateway.query(
            FAVORITES,
            [FieldFilter("user_id", user_id), FieldFilter("event_id", event_id)],
            limit=1,
        )
        result = bool(docs)
        self.cache.set(key, result, self.settings.ttl_favorite_pair)
        return result

    async def check_batch(self, user_id: str, event_ids: Sequence[str]) -> Dict[str, bool]:
        """
        Check many events at once.

        Returns:
            Mapping of each distinct requested event id to its favorited flag
        """
        unique = dedupe(event_ids)
        favorited = set()
        for chunk in chunked(unique, self.settings.membership_chunk_size):
            docs = await self.gateway.query(
                FAVORITES,
                [FieldFilter("user_id", user_id), FieldFilter("event_id", chunk, "in")],
            )
            favorited.update(doc["event_id"] for doc in docs)
        return {event_id: event_id in favorited for event_id in unique}

    async def list_favorites(self, user_id: str, query: FavoriteQuery) -> FavoriteListResponse:
        """
        The user's favorited events, joined, filtered, sorted and paginated.

        Only approved events are listed; favorites of deleted events are
        dropped silently.
        """
        page, limit = clamp_page(
            query.page, query.limit, FAVORITE_DEFAULT_LIMIT, self.settings.max_page_limit
        )
        params = query.model_dump(mode="json")
        params.update(page=page, limit=limit)
        key = cache_keys.favorite_list_key(user_id, params)
        cached, found = self.cache.get(key)
        if found:
            return cached

        favorites = [
            Favorite.model_validate(doc)
            for doc in await self.gateway.query(FAVORITES, [FieldFilter("user_id", user_id)])
        ]
        events = await self.gateway.get_many(
            SUPPORT_EVENTS,
            [f.event_id for f in favorites],
            self.settings.membership_chunk_size,
        )

        now = self.clock()
        wanted_performers = set(query.performer_id_list)
        items: List[FavoriteEventItem] = []
        for favorite in favorites:
            doc = events.get(favorite.event_id)
            if doc is None:
                continue
            event = SupportEvent.model_validate(doc)
            if event.status != EventStatus.APPROVED:
                continue
            if not time_status_matches(event, query.status, now):
                continue
            if wanted_performers and not wanted_performers.intersection(event.performer_ids):
                continue
            items.append(FavoriteEventItem(
                favorite_id=favorite.id,
                favorited_at=favorite.created_at,
                event=event,
            ))

        sort_key = _favorite_sort_key(query.sort_by)
        ordered = sort_items(items, sort_key, query.sort_order == "desc")
        page_items, pagination = paginate(ordered, page, limit)

        result = FavoriteListResponse(items=page_items, pagination=pagination)
        self.cache.set(key, result, self.settings.ttl_favorite_list)
        return result

    async def remove_all_for_event(self, event_id: str) -> int:
        """
        Delete every favorite of an event (used when the event is deleted).

        Returns:
            Number of favorites removed
        """
        docs = await self.gateway.query(FAVORITES, [FieldFilter("event_id", event_id)])
        if not docs:
            return 0

        ops = [WriteOp(WriteKind.DELETE, FAVORITES, doc["id"]) for doc in docs]
        for batch in chunked(ops, self.settings.batch_write_limit):
            await self.gateway.batch_write(batch)

        for user_id in {doc["user_id"] for doc in docs}:
            cache_keys.invalidate_favorites(self.cache, user_id, event_id)

        logger.info(f"Removed {len(docs)} favorite(s) of event {event_id}")
        return len(docs)


def _favorite_sort_key(sort_by: str):
    if sort_by == "start_time":
        return lambda item: item.event.schedule.start
    return lambda item: item.favorited_at
