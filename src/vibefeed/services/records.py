"""Conversion between backend documents and feed models.

Documents use the backend's camelCase field names; these are kept as-is so
records stay compatible with the existing collections.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from vibefeed.errors import ValidationFailure
from vibefeed.models import (
    PRICE_TIERS,
    VIBE_BRUNCH,
    VIBE_DINING,
    VIBE_HAPPY_HOUR,
    Booking,
    BookingDraft,
    Coordinates,
    Deal,
    HappyHourWindow,
    Restaurant,
    SavedEntry,
    VibeDetails,
)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationFailure(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{field_name} must be a number, got {value!r}")


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _str_list(raw: Any, field_name: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationFailure(f"{field_name} must be a list, got {type(raw).__name__}")
    return [s for s in (_as_str(x) for x in raw) if s]


def _time_slots(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    slots: list[str] = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("time")
        text = _as_str(item)
        if text:
            slots.append(text)
    return slots


def _deals(raw: Any) -> Dict[str, Deal]:
    if not isinstance(raw, dict):
        return {}
    deals: Dict[str, Deal] = {}
    for kind, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        price = entry.get("price")
        deals[str(kind)] = Deal(
            enabled=bool(entry.get("enabled")),
            price=float(price) if isinstance(price, (int, float)) and not isinstance(price, bool) else 0.0,
        )
    return deals


def _coordinates(data: Dict[str, Any]) -> Optional[Coordinates]:
    lat = data.get("latitude")
    lng = data.get("longitude")
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=float(lat), lng=float(lng))


def parse_restaurant(doc_id: Any, data: Dict[str, Any]) -> Restaurant:
    """Build a Restaurant from a stored document.

    Raises ValidationFailure for records that cannot be shown; callers skip
    those instead of failing the whole feed.
    """
    rid = _as_str(doc_id) or _as_str(data.get("id"))
    name = _as_str(data.get("name"))
    cuisine = _as_str(data.get("cuisine"))
    if not rid:
        raise ValidationFailure("restaurant record has no id")
    if not name:
        raise ValidationFailure(f"restaurant {rid} has no name")
    if not cuisine:
        raise ValidationFailure(f"restaurant {rid} has no cuisine")

    rating = _as_float(data.get("rating"), "rating")
    if rating is not None and not 0.0 <= rating <= 5.0:
        raise ValidationFailure(f"restaurant {rid} rating {rating} is outside 0-5")

    discount = _as_float(data.get("discountPercentage"), "discountPercentage")
    brunch_discount = _as_float(data.get("brunchDiscountPercentage"), "brunchDiscountPercentage")
    for value in (discount, brunch_discount):
        if value is not None and value < 0:
            raise ValidationFailure(f"restaurant {rid} has a negative discount")

    price_tier = _as_str(data.get("priceRange")) or "$$"
    if price_tier not in PRICE_TIERS:
        raise ValidationFailure(f"restaurant {rid} has unknown price tier {price_tier!r}")

    cuisines = _str_list(data.get("cuisines"), "cuisines")
    if cuisine not in cuisines:
        cuisines.insert(0, cuisine)

    vibes = _str_list(data.get("vibes"), "vibes")
    if VIBE_DINING not in vibes:
        vibes.insert(0, VIBE_DINING)

    vibe_details: Dict[str, VibeDetails] = {}
    brunch = VibeDetails(
        description=_as_str(data.get("brunchDescription")),
        time_slots=_time_slots(data.get("brunchTimeSlots")),
        discount_percentage=brunch_discount,
    )
    if brunch.description or brunch.time_slots or brunch.discount_percentage is not None:
        vibe_details[VIBE_BRUNCH] = brunch
    happy_hour = VibeDetails(
        description=_as_str(data.get("happyHourDescription")),
        time_slots=_time_slots(data.get("happyHourTimeSlots")),
    )
    if happy_hour.description or happy_hour.time_slots:
        vibe_details[VIBE_HAPPY_HOUR] = happy_hour

    window = None
    if data.get("happyHourStartTime") or data.get("happyHourEndTime"):
        window = HappyHourWindow(
            start=_as_str(data.get("happyHourStartTime")),
            end=_as_str(data.get("happyHourEndTime")),
            days=_str_list(data.get("happyHourDays"), "happyHourDays"),
        )

    return Restaurant(
        id=rid,
        name=name,
        primary_cuisine=cuisine,
        cuisines=cuisines,
        location=_as_str(data.get("location")) or "",
        address=_as_str(data.get("address")) or "",
        description=_as_str(data.get("description")) or "",
        rating=rating if rating is not None else 0.0,
        price_tier=price_tier,
        is_active=data.get("isActive") is True,
        is_popular=data.get("isPopular") is True,
        vibes=vibes,
        coordinates=_coordinates(data),
        discount_percentage=discount if discount is not None else 0.0,
        time_slots=_time_slots(data.get("timeSlots")),
        vibe_details=vibe_details,
        happy_hour_window=window,
        happy_hour_deal=_as_str(data.get("happyHourDeal")),
        drink_deals=_deals(data.get("drinkDeals")),
        food_deals=_deals(data.get("foodDeals")),
        video_url=_as_str(data.get("videoUrl")),
        image_url=_as_str(data.get("imageUrl")),
    )


def restaurant_to_record(restaurant: Restaurant) -> Dict[str, Any]:
    brunch = restaurant.details_for(VIBE_BRUNCH)
    happy_hour = restaurant.details_for(VIBE_HAPPY_HOUR)
    record: Dict[str, Any] = {
        "id": restaurant.id,
        "name": restaurant.name,
        "cuisine": restaurant.primary_cuisine,
        "cuisines": list(restaurant.cuisines),
        "location": restaurant.location,
        "address": restaurant.address,
        "description": restaurant.description,
        "discountPercentage": restaurant.discount_percentage,
        "videoUrl": restaurant.video_url,
        "imageUrl": restaurant.image_url,
        "rating": restaurant.rating,
        "priceRange": restaurant.price_tier,
        "isActive": restaurant.is_active,
        "isPopular": restaurant.is_popular,
        "timeSlots": list(restaurant.time_slots),
        "vibes": list(restaurant.vibes),
        "brunchDescription": brunch.description,
        "brunchTimeSlots": list(brunch.time_slots),
        "brunchDiscountPercentage": brunch.discount_percentage,
        "happyHourDescription": happy_hour.description,
        "happyHourTimeSlots": list(happy_hour.time_slots),
        "happyHourDeal": restaurant.happy_hour_deal,
        "drinkDeals": {k: {"enabled": d.enabled, "price": d.price} for k, d in restaurant.drink_deals.items()},
        "foodDeals": {k: {"enabled": d.enabled, "price": d.price} for k, d in restaurant.food_deals.items()},
    }
    if restaurant.coordinates is not None:
        record["latitude"] = restaurant.coordinates.lat
        record["longitude"] = restaurant.coordinates.lng
    if restaurant.happy_hour_window is not None:
        record["happyHourStartTime"] = restaurant.happy_hour_window.start
        record["happyHourEndTime"] = restaurant.happy_hour_window.end
        record["happyHourDays"] = list(restaurant.happy_hour_window.days)
    if restaurant.distance is not None:
        record["distance"] = round(restaurant.distance, 3)
    return record


def saved_entry_to_record(entry: SavedEntry) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": entry.id,
        "name": entry.name,
        "cuisine": entry.cuisine,
        "location": entry.location,
        "videoUrl": entry.video_url,
        "imageUrl": entry.image_url,
        "offers": list(entry.offers),
        "isFavorite": entry.is_favorite,
        "savedAt": entry.saved_at,
    }
    # optional fields are only written when set
    if entry.discount_percentage is not None:
        record["discountPercentage"] = entry.discount_percentage
    if entry.happy_hour_deals:
        record["happyHourDeals"] = list(entry.happy_hour_deals)
    return record


def parse_saved_entry(data: Dict[str, Any]) -> SavedEntry:
    rid = _as_str(data.get("id"))
    if not rid:
        raise ValidationFailure("saved entry has no restaurant id")
    return SavedEntry(
        id=rid,
        name=_as_str(data.get("name")) or "",
        cuisine=_as_str(data.get("cuisine")) or "",
        location=_as_str(data.get("location")) or "",
        saved_at=_as_datetime(data.get("savedAt")) or datetime.fromtimestamp(0, tz=timezone.utc),
        video_url=_as_str(data.get("videoUrl")),
        image_url=_as_str(data.get("imageUrl")),
        offers=_str_list(data.get("offers"), "offers"),
        discount_percentage=_as_float(data.get("discountPercentage"), "discountPercentage"),
        happy_hour_deals=_str_list(data.get("happyHourDeals"), "happyHourDeals"),
        is_favorite=data.get("isFavorite") is not False,
    )


def booking_to_record(draft: BookingDraft) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "bookingNumber": draft.booking_number,
        "restaurantId": draft.restaurant_id,
        "restaurantName": draft.restaurant_name,
        "userId": draft.user_id,
        "userEmail": draft.user_email,
        "date": draft.date,
        "time": draft.time,
        "guestCount": draft.guest_count,
        "discountPercentage": draft.discount_percentage,
        "status": draft.status,
        "commission": draft.commission,
    }
    if draft.restaurant_location:
        record["restaurantLocation"] = draft.restaurant_location
    if isinstance(draft, Booking):
        record["createdAt"] = draft.created_at
        record["updatedAt"] = draft.updated_at
    return record


def parse_booking(doc_id: str, data: Dict[str, Any]) -> Booking:
    now = datetime.now(timezone.utc)
    guests = data.get("guestCount")
    return Booking(
        id=doc_id,
        booking_number=_as_str(data.get("bookingNumber")) or doc_id,
        restaurant_id=_as_str(data.get("restaurantId")) or "",
        restaurant_name=_as_str(data.get("restaurantName")) or "",
        restaurant_location=_as_str(data.get("restaurantLocation")),
        user_id=_as_str(data.get("userId")) or "",
        user_email=_as_str(data.get("userEmail")) or "",
        date=_as_str(data.get("date")) or "",
        time=_as_str(data.get("time")) or "",
        guest_count=int(guests) if isinstance(guests, (int, float)) else 0,
        discount_percentage=_as_float(data.get("discountPercentage"), "discountPercentage") or 0.0,
        status=_as_str(data.get("status")) or "pending",
        commission=_as_float(data.get("commission"), "commission") or 0.0,
        created_at=_as_datetime(data.get("createdAt")) or now,
        updated_at=_as_datetime(data.get("updatedAt")) or now,
    )
