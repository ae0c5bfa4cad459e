from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import ValidationFailure
from vibefeed.models import VIBE_DINING, Restaurant
from vibefeed.sample_data import sample_records
from vibefeed.services.firestore import FirestoreClient
from vibefeed.services.records import parse_restaurant

RESTAURANTS = "restaurants"


def parse_documents(docs: Iterable[Tuple[str, Dict[str, Any]]]) -> List[Restaurant]:
    """Parse catalog documents, skipping the ones that fail validation."""
    out: list[Restaurant] = []
    for doc_id, data in docs:
        try:
            out.append(parse_restaurant(doc_id, data))
        except ValidationFailure as exc:
            logger.warning("skipping restaurant {}: {}", doc_id, exc)
    return out


def union_by_id(*groups: Iterable[Restaurant]) -> List[Restaurant]:
    """Concatenate groups in order, keeping the first occurrence of each id."""
    seen: set[str] = set()
    out: list[Restaurant] = []
    for group in groups:
        for r in group:
            if r.id in seen:
                continue
            seen.add(r.id)
            out.append(r)
    return out


class CatalogFetcher(ABC):
    """Read access to the restaurant catalog.

    Every method may raise FetchUnavailable; the feed composer owns the
    fallback for that case.
    """

    @abstractmethod
    def fetch_active(self) -> List[Restaurant]:
        ...

    @abstractmethod
    def fetch_by_cuisine(self, cuisine: str) -> List[Restaurant]:
        """Active restaurants whose primary cuisine is `cuisine`, then those listing it in `cuisines`."""

    @abstractmethod
    def fetch_by_vibe(self, vibe: str) -> List[Restaurant]:
        ...

    @abstractmethod
    def fetch_by_id(self, restaurant_id: str) -> Optional[Restaurant]:
        ...


class InMemoryCatalog(CatalogFetcher):
    def __init__(self, records: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        self._restaurants = parse_documents(records)

    @classmethod
    def from_restaurants(cls, restaurants: Iterable[Restaurant]) -> "InMemoryCatalog":
        catalog = cls([])
        catalog._restaurants = list(restaurants)
        return catalog

    def fetch_active(self) -> List[Restaurant]:
        return [r for r in self._restaurants if r.is_active]

    def fetch_by_cuisine(self, cuisine: str) -> List[Restaurant]:
        active = self.fetch_active()
        primary = [r for r in active if r.primary_cuisine == cuisine]
        listed = [r for r in active if cuisine in r.cuisines]
        return union_by_id(primary, listed)

    def fetch_by_vibe(self, vibe: str) -> List[Restaurant]:
        active = self.fetch_active()
        if vibe == VIBE_DINING:
            return active
        return [r for r in active if r.has_vibe(vibe)]

    def fetch_by_id(self, restaurant_id: str) -> Optional[Restaurant]:
        for r in self._restaurants:
            if r.id == restaurant_id:
                return r
        return None


def sample_catalog() -> InMemoryCatalog:
    return InMemoryCatalog(sample_records())


class FirestoreCatalog(CatalogFetcher):
    def __init__(self, cfg: Configuration, client: Optional[FirestoreClient] = None) -> None:
        self.cfg = cfg
        self.client = client or FirestoreClient(cfg)

    def _query(self, *filters: Tuple[str, str, Any]) -> List[Restaurant]:
        docs = self.client.run_query(RESTAURANTS, [("isActive", "==", True), *filters])
        # server filters are trusted for membership but isActive is re-checked
        return [r for r in parse_documents(docs) if r.is_active]

    def fetch_active(self) -> List[Restaurant]:
        restaurants = self._query()
        logger.debug("loaded {} active restaurants", len(restaurants))
        return restaurants

    def fetch_by_cuisine(self, cuisine: str) -> List[Restaurant]:
        primary = self._query(("cuisine", "==", cuisine))
        if self.cfg.cuisine_array_contains:
            listed = self._query(("cuisines", "array-contains", cuisine))
        else:
            listed = [r for r in self._query() if cuisine in r.cuisines]
        restaurants = union_by_id(primary, listed)
        logger.debug("loaded {} restaurants for cuisine {}", len(restaurants), cuisine)
        return restaurants

    def fetch_by_vibe(self, vibe: str) -> List[Restaurant]:
        if vibe == VIBE_DINING:
            return self.fetch_active()
        restaurants = [r for r in self._query(("vibes", "array-contains", vibe)) if r.has_vibe(vibe)]
        logger.debug("loaded {} restaurants for vibe {}", len(restaurants), vibe)
        return restaurants

    def fetch_by_id(self, restaurant_id: str) -> Optional[Restaurant]:
        data = self.client.get_document(RESTAURANTS, restaurant_id)
        if data is None:
            return None
        try:
            return parse_restaurant(restaurant_id, data)
        except ValidationFailure as exc:
            logger.warning("restaurant {} is invalid: {}", restaurant_id, exc)
            return None
