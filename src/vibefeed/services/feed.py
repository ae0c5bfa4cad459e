"""Feed composition: fetch, theme-filter, distance-annotate and sort.

`compose_feed` is the pure part of the pipeline. `FeedComposer` adds the
catalog fetch with its sample-data fallback, and the last-request-wins rule
that keeps a slow, older composition from replacing a newer visible feed.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import FetchUnavailable
from vibefeed.models import VIBE_DINING, Coordinates, FeedQuery, FeedResult, Restaurant
from vibefeed.services.catalog import CatalogFetcher, sample_catalog, union_by_id
from vibefeed.services.themes import filter_by_theme
from vibefeed.utils import distance_miles

Listener = Callable[[FeedResult], None]


def fetch_candidates(catalog: CatalogFetcher, query: FeedQuery) -> List[Restaurant]:
    if query.vibe == VIBE_DINING:
        if query.cuisine is None:
            return catalog.fetch_active()
        return catalog.fetch_by_cuisine(query.cuisine)
    return catalog.fetch_by_vibe(query.vibe)


def _eligible(restaurant: Restaurant, query: FeedQuery) -> bool:
    if not restaurant.is_active:
        return False
    if query.vibe != VIBE_DINING:
        return restaurant.has_vibe(query.vibe)
    if query.cuisine is not None:
        return restaurant.serves(query.cuisine)
    return True


def annotate_distances(restaurants: Iterable[Restaurant], origin: Coordinates) -> List[Restaurant]:
    """Copies of the restaurants with `distance` set; inputs are left untouched."""
    out: list[Restaurant] = []
    for r in restaurants:
        point = r.coordinates
        d = distance_miles(origin.lat, origin.lng, point.lat if point else None, point.lng if point else None)
        out.append(replace(r, distance=d))
    return out


def sort_by_distance(restaurants: Iterable[Restaurant]) -> List[Restaurant]:
    # stable; unknown distances go last
    return sorted(restaurants, key=lambda r: (r.distance is None, r.distance or 0.0))


def compose_feed(
    candidates: Iterable[Restaurant],
    query: FeedQuery,
    *,
    now: Optional[datetime] = None,
    legacy_clock: bool = False,
) -> List[Restaurant]:
    restaurants = [r for r in union_by_id(candidates) if _eligible(r, query)]
    restaurants = filter_by_theme(restaurants, query.vibe, query.theme, now=now, legacy_clock=legacy_clock)
    if query.proximity_origin is not None:
        restaurants = sort_by_distance(annotate_distances(restaurants, query.proximity_origin))
    return restaurants


class FeedComposer:
    def __init__(
        self,
        catalog: CatalogFetcher,
        cfg: Optional[Configuration] = None,
        *,
        fallback: Optional[CatalogFetcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.catalog = catalog
        self.cfg = cfg or Configuration()
        self.fallback = fallback or sample_catalog()
        self._clock = clock
        self._generation = 0
        self._listeners: list[Listener] = []
        self.current: Optional[FeedResult] = None

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _fetch(self, query: FeedQuery) -> Tuple[List[Restaurant], str]:
        try:
            candidates = await asyncio.wait_for(
                asyncio.to_thread(fetch_candidates, self.catalog, query),
                timeout=self.cfg.fetch_timeout_sec,
            )
            return candidates, "live"
        except FetchUnavailable as exc:
            logger.warning("catalog unavailable, using sample data: {}", exc)
        except asyncio.TimeoutError:
            logger.warning("catalog fetch timed out after {}s, using sample data", self.cfg.fetch_timeout_sec)
        except Exception:
            logger.exception("catalog fetch failed, using sample data")
        return fetch_candidates(self.fallback, query), "sample"

    async def run(self, query: FeedQuery) -> FeedResult:
        """Compose a feed for the query without touching the visible state."""
        candidates, source = await self._fetch(query)
        restaurants = compose_feed(
            candidates,
            query,
            now=self._clock(),
            legacy_clock=self.cfg.happening_now_legacy_clock,
        )
        return FeedResult(query=query, restaurants=restaurants, source=source)

    async def compose(self, query: FeedQuery) -> Optional[FeedResult]:
        """Compose and publish a feed; returns None when a newer request superseded this one."""
        self._generation += 1
        generation = self._generation
        result = await self.run(query)
        if generation != self._generation:
            logger.debug("dropping stale feed generation {} (latest {})", generation, self._generation)
            return None
        result.generation = generation
        self.current = result
        logger.info(
            "feed vibe={} cuisine={} theme={} source={} restaurants={}",
            query.vibe,
            query.cuisine or "All",
            query.theme or "All",
            result.source,
            len(result),
        )
        for listener in list(self._listeners):
            listener(result)
        return result
