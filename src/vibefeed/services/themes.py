from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from vibefeed.models import ALL, VIBE_BRUNCH, VIBE_HAPPY_HOUR, Restaurant
from vibefeed.utils import parse_clock

BOTTOMLESS_MIMOSAS = "Bottomless Mimosas"
ROOFTOP = "Rooftop"
BOTTOMLESS_BRUNCH = "Bottomless Brunch"
TRENDY = "Trendy"

HAPPENING_NOW = "Happening Now"
POPULAR = "Popular"
NEAR_ME = "Near Me"

BRUNCH_THEME_KEYWORDS: Dict[str, List[str]] = {
    BOTTOMLESS_MIMOSAS: ["mimosa", "bottomless"],
    ROOFTOP: ["rooftop", "roof"],
    BOTTOMLESS_BRUNCH: ["bottomless"],
    TRENDY: ["trendy", "modern", "hip"],
}

THEMES_BY_VIBE: Dict[str, List[str]] = {
    VIBE_BRUNCH: [ALL, *BRUNCH_THEME_KEYWORDS],
    VIBE_HAPPY_HOUR: [ALL, HAPPENING_NOW, POPULAR, NEAR_ME],
}

POPULAR_MIN_RATING = 4.5
LEAD_MINUTES = 15
HAPPY_HOUR_MINUTES = 120
_MINUTES_PER_DAY = 24 * 60


def _lookup(table: Iterable[str], theme: str) -> Optional[str]:
    wanted = theme.strip().lower()
    for name in table:
        if name.lower() == wanted:
            return name
    return None


def _in_window(slot: str, now_minutes: int, legacy_clock: bool) -> bool:
    start = parse_clock(slot)
    if start is None:
        return False
    if legacy_clock:
        # HHMM integers, e.g. 19:30 -> 1930, with a flat +200 for two hours
        slot_hhmm = (start // 60) * 100 + start % 60
        now_hhmm = (now_minutes // 60) * 100 + now_minutes % 60
        return slot_hhmm <= now_hhmm + LEAD_MINUTES and slot_hhmm + 200 >= now_hhmm
    elapsed = (now_minutes - start) % _MINUTES_PER_DAY
    return elapsed <= HAPPY_HOUR_MINUTES or elapsed >= _MINUTES_PER_DAY - LEAD_MINUTES


def happening_now(restaurant: Restaurant, now: datetime, *, legacy_clock: bool = False) -> bool:
    """True when `now` falls within 15 minutes before to two hours after a happy-hour slot."""
    slots = restaurant.details_for(VIBE_HAPPY_HOUR).time_slots or restaurant.time_slots
    if not slots:
        return False
    now_minutes = now.hour * 60 + now.minute
    return any(_in_window(slot, now_minutes, legacy_clock) for slot in slots)


def is_popular(restaurant: Restaurant) -> bool:
    return restaurant.is_popular or restaurant.rating >= POPULAR_MIN_RATING


def matches_theme(
    restaurant: Restaurant,
    vibe: str,
    theme: Optional[str],
    *,
    now: Optional[datetime] = None,
    legacy_clock: bool = False,
) -> bool:
    """Whether a restaurant belongs in the theme bucket for the vibe.

    "All", a missing theme, and themes the vibe does not know all match
    everything so that an unexpected filter never hides the feed.
    """
    if not theme or theme == ALL:
        return True

    if vibe == VIBE_BRUNCH:
        name = _lookup(BRUNCH_THEME_KEYWORDS, theme)
        if name is None:
            return True
        description = restaurant.description_for(VIBE_BRUNCH).lower()
        return any(kw in description for kw in BRUNCH_THEME_KEYWORDS[name])

    if vibe == VIBE_HAPPY_HOUR:
        name = _lookup(THEMES_BY_VIBE[VIBE_HAPPY_HOUR], theme)
        if name == POPULAR:
            return is_popular(restaurant)
        if name == HAPPENING_NOW:
            return happening_now(restaurant, now or datetime.now(), legacy_clock=legacy_clock)
        # Near Me only changes ordering
        return True

    return True


def filter_by_theme(
    restaurants: Iterable[Restaurant],
    vibe: str,
    theme: Optional[str],
    *,
    now: Optional[datetime] = None,
    legacy_clock: bool = False,
) -> List[Restaurant]:
    now = now or datetime.now()
    return [r for r in restaurants if matches_theme(r, vibe, theme, now=now, legacy_clock=legacy_clock)]


def wants_location(vibe: str, theme: Optional[str]) -> bool:
    """Themes that need the device location to be meaningful."""
    return vibe == VIBE_HAPPY_HOUR and bool(theme) and _lookup([NEAR_ME], theme or "") == NEAR_ME
