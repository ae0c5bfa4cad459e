from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import Unauthenticated, ValidationFailure
from vibefeed.models import VIBE_BRUNCH, VIBE_HAPPY_HOUR, Restaurant, SavedEntry
from vibefeed.services.app_state import AppContext
from vibefeed.services.firestore import FirestoreClient
from vibefeed.services.records import parse_saved_entry, saved_entry_to_record

USERS = "users"


class SavedStore(ABC):
    """Whole-collection storage of a user's saved restaurants.

    `write` replaces the full list, so callers must read-modify-write.
    """

    @abstractmethod
    def read_all(self, user_id: str) -> List[SavedEntry]:
        ...

    @abstractmethod
    def write(self, user_id: str, entries: List[SavedEntry]) -> None:
        ...


class InMemorySavedStore(SavedStore):
    def __init__(self) -> None:
        self._by_user: Dict[str, List[SavedEntry]] = {}

    def read_all(self, user_id: str) -> List[SavedEntry]:
        return list(self._by_user.get(user_id, []))

    def write(self, user_id: str, entries: List[SavedEntry]) -> None:
        self._by_user[user_id] = list(entries)


class FirestoreSavedStore(SavedStore):
    """Saved entries live in users/{uid}.savedRestaurants with a stats.totalSaved counter."""

    def __init__(self, cfg: Configuration, client: Optional[FirestoreClient] = None) -> None:
        self.client = client or FirestoreClient(cfg)

    def read_all(self, user_id: str) -> List[SavedEntry]:
        data = self.client.get_document(USERS, user_id) or {}
        entries: list[SavedEntry] = []
        for raw in data.get("savedRestaurants") or []:
            try:
                entries.append(parse_saved_entry(raw))
            except ValidationFailure as exc:
                logger.warning("skipping saved entry for {}: {}", user_id, exc)
        return entries

    def write(self, user_id: str, entries: List[SavedEntry]) -> None:
        self.client.set_fields(
            USERS,
            user_id,
            {
                "savedRestaurants": [saved_entry_to_record(e) for e in entries],
                "stats.totalSaved": len(entries),
            },
        )


def snapshot(restaurant: Restaurant, saved_at: datetime) -> SavedEntry:
    """Denormalized copy of the restaurant at save time; later catalog edits do not reach it."""
    if restaurant.has_vibe(VIBE_HAPPY_HOUR):
        offers = ["Happy Hour"]
    elif restaurant.has_vibe(VIBE_BRUNCH):
        offers = ["Brunch"]
    else:
        offers = ["Dining"]
    return SavedEntry(
        id=restaurant.id,
        name=restaurant.name,
        cuisine=restaurant.primary_cuisine,
        location=restaurant.location,
        saved_at=saved_at,
        video_url=restaurant.video_url,
        image_url=restaurant.image_url,
        offers=offers,
        discount_percentage=restaurant.discount_percentage,
        happy_hour_deals=[restaurant.happy_hour_deal] if restaurant.happy_hour_deal else [],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedSetTracker:
    """Per-user saved restaurant ids for fast membership checks, with serialized toggles.

    Toggles for one user run one at a time because the store only supports
    whole-list replacement. Different users never share a lock.
    """

    def __init__(
        self,
        store: SavedStore,
        context: Optional[AppContext] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.context = context
        self._clock = clock
        self._ids: Dict[str, Set[str]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def _resolve_user(self, user_id: Optional[str]) -> Optional[str]:
        if user_id:
            return user_id
        if self.context is not None:
            return self.context.user_id
        return None

    async def load_all(self, user_id: str) -> Set[str]:
        async with self._lock(user_id):
            entries = await asyncio.to_thread(self.store.read_all, user_id)
            ids = {e.id for e in entries}
            self._ids[user_id] = ids
        logger.debug("loaded {} saved restaurants for {}", len(ids), user_id)
        return set(ids)

    async def list_saved(self, user_id: str) -> List[SavedEntry]:
        """Saved entries, most recently saved first."""
        entries = await asyncio.to_thread(self.store.read_all, user_id)
        self._ids[user_id] = {e.id for e in entries}
        return sorted(entries, key=lambda e: e.saved_at, reverse=True)

    def is_saved(self, restaurant_id: str, user_id: Optional[str] = None) -> bool:
        user = self._resolve_user(user_id)
        if not user:
            return False
        return restaurant_id in self._ids.get(user, set())

    def forget(self, user_id: str) -> None:
        """Drop cached state after sign-out; a lock held by a running toggle is kept."""
        self._ids.pop(user_id, None)
        lock = self._locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._locks[user_id]

    async def toggle_save(self, user_id: Optional[str], restaurant: Restaurant) -> Optional[SavedEntry]:
        """Save the restaurant, or unsave it when it is already saved.

        Returns the new entry, or None when the restaurant was removed.
        Raises Unauthenticated without a user.
        """
        user = self._resolve_user(user_id)
        if not user:
            raise Unauthenticated("sign in to save restaurants")

        async with self._lock(user):
            entries = await asyncio.to_thread(self.store.read_all, user)
            if any(e.id == restaurant.id for e in entries):
                remaining = [e for e in entries if e.id != restaurant.id]
                await asyncio.to_thread(self.store.write, user, remaining)
                self._ids[user] = {e.id for e in remaining}
                logger.info("restaurant unsaved user={} restaurant={}", user, restaurant.id)
                return None

            entry = snapshot(restaurant, self._clock())
            await asyncio.to_thread(self.store.write, user, [*entries, entry])
            self._ids[user] = {e.id for e in entries} | {entry.id}
            logger.info("restaurant saved user={} restaurant={}", user, restaurant.id)
            return entry
