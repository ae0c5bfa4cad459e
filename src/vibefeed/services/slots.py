from __future__ import annotations

from typing import Dict, List, Optional

from vibefeed.models import VIBE_BRUNCH, VIBE_DINING, VIBE_HAPPY_HOUR, Deal, Restaurant, SlotResolution
from vibefeed.utils import half_hour_slots

DEFAULT_TIME_SLOTS: Dict[str, List[str]] = {
    VIBE_DINING: half_hour_slots("18:00", 4),
    VIBE_BRUNCH: half_hour_slots("10:00", 8),
    VIBE_HAPPY_HOUR: half_hour_slots("16:00", 7),
}


def resolve(restaurant: Restaurant, vibe: str) -> SlotResolution:
    """Time slots and discount to show for a restaurant under a vibe.

    Vibe-specific slots win over the base slots, which win over the vibe's
    default sequence. Only brunch carries its own discount.
    """
    if vibe not in DEFAULT_TIME_SLOTS:
        vibe = VIBE_DINING
    details = restaurant.details_for(vibe) if vibe != VIBE_DINING else None

    slots: List[str] = []
    if details is not None:
        slots = list(details.time_slots)
    if not slots:
        slots = list(restaurant.time_slots)
    if not slots:
        slots = list(DEFAULT_TIME_SLOTS[vibe])

    discount = restaurant.discount_percentage
    if vibe == VIBE_BRUNCH and details is not None and details.discount_percentage is not None:
        discount = details.discount_percentage

    return SlotResolution(time_slots=slots, discount_percentage=discount)


def _priced(deals: Dict[str, Deal]) -> List[str]:
    return [f"${d.price:g} {kind}" for kind, d in deals.items() if d.enabled and d.price > 0]


def deal_tags(restaurant: Restaurant, limit: Optional[int] = None) -> List[str]:
    """Happy-hour deal labels; drinks first, then food."""
    tags = _priced(restaurant.drink_deals) + _priced(restaurant.food_deals)
    if not tags:
        tags = [restaurant.happy_hour_deal or "Happy Hour"]
    return tags[:limit] if limit else tags


def share_message(restaurant: Restaurant, vibe: str) -> str:
    if vibe == VIBE_HAPPY_HOUR:
        drinks = ", ".join(_priced(restaurant.drink_deals)[:2])
        food = ", ".join(_priced(restaurant.food_deals)[:2])
        deals = " • ".join(part for part in (drinks, food) if part)
        label = "Happy Hour"
    elif vibe == VIBE_BRUNCH:
        deals = restaurant.details_for(VIBE_BRUNCH).description or "Bottomless brunch specials"
        label = "Brunch"
    else:
        deals = restaurant.description
        label = "Dining"

    where = restaurant.address or restaurant.location
    return (
        f"🍽️ {restaurant.name}\n\n{deals}\n\n📍 {where}\n⭐ {restaurant.rating:g} stars\n\n"
        f"📱 Check it out on ViralBite! #{label.replace(' ', '')}"
    )
