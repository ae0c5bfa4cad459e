"""Data models for the restaurant deal feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

VIBE_DINING = "dining"
VIBE_BRUNCH = "brunch"
VIBE_HAPPY_HOUR = "happy-hour"
VIBES = (VIBE_DINING, VIBE_BRUNCH, VIBE_HAPPY_HOUR)

PRICE_TIERS = ("$", "$$", "$$$", "$$$$")

ALL = "All"


@dataclass
class Coordinates:
    lat: float
    lng: float


@dataclass
class VibeDetails:
    """Per-vibe overrides; a None/empty field falls back to the base restaurant."""

    description: Optional[str] = None
    time_slots: list[str] = field(default_factory=list)
    discount_percentage: Optional[float] = None


@dataclass
class Deal:
    enabled: bool = False
    price: float = 0.0


@dataclass
class HappyHourWindow:
    start: Optional[str] = None  # "16:00"
    end: Optional[str] = None
    days: list[str] = field(default_factory=list)


@dataclass
class Restaurant:
    id: str
    name: str
    primary_cuisine: str
    cuisines: list[str] = field(default_factory=list)
    location: str = ""
    address: str = ""
    description: str = ""
    rating: float = 0.0
    price_tier: str = "$$"
    is_active: bool = True
    is_popular: bool = False
    vibes: list[str] = field(default_factory=lambda: [VIBE_DINING])
    coordinates: Optional[Coordinates] = None
    discount_percentage: float = 0.0
    time_slots: list[str] = field(default_factory=list)
    vibe_details: Dict[str, VibeDetails] = field(default_factory=dict)
    happy_hour_window: Optional[HappyHourWindow] = None
    happy_hour_deal: Optional[str] = None
    drink_deals: Dict[str, Deal] = field(default_factory=dict)
    food_deals: Dict[str, Deal] = field(default_factory=dict)
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    # transient, set during composition only
    distance: Optional[float] = None

    def has_vibe(self, vibe: str) -> bool:
        return vibe in self.vibes

    def serves(self, cuisine: str) -> bool:
        return cuisine == self.primary_cuisine or cuisine in self.cuisines

    def details_for(self, vibe: str) -> VibeDetails:
        return self.vibe_details.get(vibe) or VibeDetails()

    def description_for(self, vibe: str) -> str:
        return self.details_for(vibe).description or self.description or ""


@dataclass
class FeedQuery:
    vibe: str = VIBE_DINING
    cuisine_filter: Optional[str] = None
    theme_filter: Optional[str] = None
    proximity_origin: Optional[Coordinates] = None

    @property
    def cuisine(self) -> Optional[str]:
        if not self.cuisine_filter or self.cuisine_filter == ALL:
            return None
        return self.cuisine_filter

    @property
    def theme(self) -> Optional[str]:
        if not self.theme_filter or self.theme_filter == ALL:
            return None
        return self.theme_filter


@dataclass
class FeedResult:
    query: FeedQuery
    restaurants: List[Restaurant]
    source: str = "live"  # "live" or "sample"
    generation: int = 0

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self.restaurants]

    def __len__(self) -> int:
        return len(self.restaurants)


@dataclass
class SlotResolution:
    time_slots: list[str]
    discount_percentage: float


@dataclass
class SavedEntry:
    id: str
    name: str
    cuisine: str
    location: str
    saved_at: datetime
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    offers: list[str] = field(default_factory=list)
    discount_percentage: Optional[float] = None
    happy_hour_deals: list[str] = field(default_factory=list)
    is_favorite: bool = True


@dataclass
class BookingDraft:
    booking_number: str
    restaurant_id: str
    restaurant_name: str
    user_id: str
    user_email: str
    date: str  # "2025-08-11"
    time: str  # "18:30"
    guest_count: int
    discount_percentage: float
    commission: float
    status: str = "confirmed"
    restaurant_location: Optional[str] = None


@dataclass
class Booking(BookingDraft):
    id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
