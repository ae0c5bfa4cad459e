import asyncio
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from vibefeed.config import Configuration
from vibefeed.errors import Unauthenticated
from vibefeed.models import VIBE_BRUNCH, VIBE_DINING, VIBE_HAPPY_HOUR, Restaurant, SavedEntry
from vibefeed.services.app_state import AppContext
from vibefeed.services.saved import (
    FirestoreSavedStore,
    InMemorySavedStore,
    SavedSetTracker,
    snapshot,
)

T0 = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def _restaurant(rid="r1", vibes=None, **kwargs):
    return Restaurant(
        id=rid,
        name=f"Place {rid}",
        primary_cuisine="Thai",
        location="Georgetown",
        vibes=vibes or [VIBE_DINING],
        **kwargs,
    )


class TickingClock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        self.now = self.now + timedelta(minutes=1)
        return self.now


class SlowStore(InMemorySavedStore):
    """Yields between read and write so unserialized toggles would interleave."""

    def read_all(self, user_id):
        time.sleep(0.02)
        return super().read_all(user_id)


def test_toggle_twice_restores_original_state():
    tracker = SavedSetTracker(InMemorySavedStore(), clock=TickingClock())
    restaurant = _restaurant()

    async def scenario():
        saved = await tracker.toggle_save("u1", restaurant)
        assert saved is not None and saved.id == "r1"
        assert tracker.is_saved("r1", "u1")
        removed = await tracker.toggle_save("u1", restaurant)
        assert removed is None
        return await tracker.load_all("u1")

    assert asyncio.run(scenario()) == set()
    assert not tracker.is_saved("r1", "u1")


def test_toggle_without_user_raises():
    tracker = SavedSetTracker(InMemorySavedStore())
    with pytest.raises(Unauthenticated):
        asyncio.run(tracker.toggle_save(None, _restaurant()))


def test_context_supplies_signed_in_user():
    context = AppContext()
    tracker = SavedSetTracker(InMemorySavedStore(), context)
    assert tracker.is_saved("r1") is False

    context.update(user_id="u9")
    asyncio.run(tracker.toggle_save(None, _restaurant()))
    assert tracker.is_saved("r1")
    assert not tracker.is_saved("r1", "someone-else")


def test_snapshot_offers_prefer_happy_hour():
    assert snapshot(_restaurant(vibes=[VIBE_DINING, VIBE_BRUNCH, VIBE_HAPPY_HOUR]), T0).offers == ["Happy Hour"]
    assert snapshot(_restaurant(vibes=[VIBE_DINING, VIBE_BRUNCH]), T0).offers == ["Brunch"]
    assert snapshot(_restaurant(), T0).offers == ["Dining"]


def test_snapshot_copies_restaurant_fields():
    r = _restaurant(discount_percentage=30, happy_hour_deal="2-for-1 cocktails", video_url="v.mp4")
    entry = snapshot(r, T0)
    assert entry.name == "Place r1"
    assert entry.cuisine == "Thai"
    assert entry.location == "Georgetown"
    assert entry.discount_percentage == 30
    assert entry.happy_hour_deals == ["2-for-1 cocktails"]
    assert entry.video_url == "v.mp4"
    assert entry.saved_at == T0

    r.name = "Renamed"
    assert entry.name == "Place r1"


def test_concurrent_toggles_are_serialized():
    store = SlowStore()
    tracker = SavedSetTracker(store, clock=TickingClock())
    restaurants = [_restaurant(f"r{i}") for i in range(5)]

    async def scenario():
        await asyncio.gather(*(tracker.toggle_save("u1", r) for r in restaurants))

    asyncio.run(scenario())
    assert sorted(e.id for e in store.read_all("u1")) == ["r0", "r1", "r2", "r3", "r4"]
    assert all(tracker.is_saved(r.id, "u1") for r in restaurants)


def test_list_saved_newest_first():
    tracker = SavedSetTracker(InMemorySavedStore(), clock=TickingClock())

    async def scenario():
        for rid in ("a", "b", "c"):
            await tracker.toggle_save("u1", _restaurant(rid))
        return await tracker.list_saved("u1")

    assert [e.id for e in asyncio.run(scenario())] == ["c", "b", "a"]


def test_users_are_isolated():
    tracker = SavedSetTracker(InMemorySavedStore())

    async def scenario():
        await tracker.toggle_save("u1", _restaurant("r1"))
        return await tracker.load_all("u2")

    assert asyncio.run(scenario()) == set()
    assert tracker.is_saved("r1", "u1")


def test_forget_drops_cached_ids():
    tracker = SavedSetTracker(InMemorySavedStore())
    asyncio.run(tracker.toggle_save("u1", _restaurant("r1")))
    tracker.forget("u1")
    assert not tracker.is_saved("r1", "u1")


def test_firestore_store_writes_list_and_counter():
    client = MagicMock()
    client.get_document.return_value = {
        "savedRestaurants": [
            {"id": "r1", "name": "Place r1", "savedAt": T0},
            {"name": "missing id"},
        ]
    }
    store = FirestoreSavedStore(Configuration(), client)

    entries = store.read_all("u1")
    assert [e.id for e in entries] == ["r1"]

    store.write("u1", entries + [SavedEntry(id="r2", name="Place r2", cuisine="Thai", location="Georgetown", saved_at=T0)])
    collection, user_id, fields = client.set_fields.call_args.args
    assert (collection, user_id) == ("users", "u1")
    assert fields["stats.totalSaved"] == 2
    assert [e["id"] for e in fields["savedRestaurants"]] == ["r1", "r2"]


def test_firestore_store_missing_user_is_empty():
    client = MagicMock()
    client.get_document.return_value = None
    assert FirestoreSavedStore(Configuration(), client).read_all("nobody") == []


def test_forget_during_toggle_keeps_toggles_serialized():
    store = SlowStore()
    tracker = SavedSetTracker(store, clock=TickingClock())

    async def scenario():
        first = asyncio.create_task(tracker.toggle_save("u1", _restaurant("r1")))
        await asyncio.sleep(0)
        tracker.forget("u1")
        second = asyncio.create_task(tracker.toggle_save("u1", _restaurant("r2")))
        await asyncio.gather(first, second)

    asyncio.run(scenario())
    assert sorted(e.id for e in store.read_all("u1")) == ["r1", "r2"]
