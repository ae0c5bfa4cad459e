from datetime import datetime, timezone

import pytest

from vibefeed.errors import ValidationFailure
from vibefeed.models import VIBE_BRUNCH, VIBE_HAPPY_HOUR, SavedEntry
from vibefeed.services.records import (
    parse_booking,
    parse_restaurant,
    parse_saved_entry,
    restaurant_to_record,
    saved_entry_to_record,
)


def _doc(**overrides):
    doc = {
        "name": "Ramen House",
        "cuisine": "Japanese",
        "cuisines": ["Japanese", "Korean"],
        "location": "Georgetown",
        "rating": 4.2,
        "priceRange": "$$",
        "isActive": True,
        "vibes": ["dining", "happy-hour"],
        "discountPercentage": 40,
        "happyHourTimeSlots": [{"time": "16:00"}, "16:30"],
        "happyHourDescription": "Sake specials",
        "drinkDeals": {"sake": {"enabled": True, "price": 4}},
        "latitude": 38.9098,
        "longitude": -77.0654,
    }
    doc.update(overrides)
    return doc


def test_parse_full_record():
    r = parse_restaurant("2", _doc())
    assert r.id == "2"
    assert r.primary_cuisine == "Japanese"
    assert r.is_active
    assert r.has_vibe(VIBE_HAPPY_HOUR)
    assert r.details_for(VIBE_HAPPY_HOUR).time_slots == ["16:00", "16:30"]
    assert r.description_for(VIBE_HAPPY_HOUR) == "Sake specials"
    assert r.drink_deals["sake"].enabled
    assert r.coordinates is not None and r.coordinates.lat == 38.9098


def test_dining_and_primary_cuisine_are_always_present():
    r = parse_restaurant("9", _doc(vibes=["brunch"], cuisines=["Korean"]))
    assert r.vibes[0] == "dining"
    assert r.has_vibe(VIBE_BRUNCH)
    assert r.cuisines == ["Japanese", "Korean"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"cuisine": None},
        {"discountPercentage": -5},
        {"rating": 7},
        {"priceRange": "cheap"},
        {"rating": "great"},
        {"cuisines": 5},
        {"vibes": "brunch"},
        {"happyHourStartTime": "16:00", "happyHourDays": 3},
    ],
)
def test_invalid_records_raise(overrides):
    with pytest.raises(ValidationFailure):
        parse_restaurant("1", _doc(**overrides))


def test_out_of_range_coordinates_are_dropped():
    assert parse_restaurant("1", _doc(latitude=123.0)).coordinates is None
    assert parse_restaurant("1", _doc(latitude=None)).coordinates is None


def test_is_active_requires_true():
    assert not parse_restaurant("1", _doc(isActive=None)).is_active


def test_restaurant_record_keeps_backend_field_names():
    record = restaurant_to_record(parse_restaurant("2", _doc()))
    assert record["cuisine"] == "Japanese"
    assert record["happyHourTimeSlots"] == ["16:00", "16:30"]
    assert record["discountPercentage"] == 40
    assert record["latitude"] == 38.9098
    assert parse_restaurant("2", record).happy_hour_deal is None


def test_saved_entry_optional_fields_omitted():
    entry = SavedEntry(
        id="1",
        name="Sage Bistro",
        cuisine="American",
        location="Downtown DC",
        saved_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        offers=["Brunch"],
    )
    record = saved_entry_to_record(entry)
    assert "discountPercentage" not in record
    assert "happyHourDeals" not in record
    assert parse_saved_entry(record).offers == ["Brunch"]


def test_saved_entry_rejects_non_list_offers():
    with pytest.raises(ValidationFailure):
        parse_saved_entry({"id": "r1", "name": "Sage", "offers": "Happy Hour"})


def test_saved_entry_requires_id():
    with pytest.raises(ValidationFailure):
        parse_saved_entry({"name": "No id"})


def test_parse_booking_defaults():
    booking = parse_booking("abc", {"restaurantId": "1", "date": "2025-08-11", "guestCount": 2})
    assert booking.booking_number == "abc"
    assert booking.status == "pending"
    assert booking.guest_count == 2
    assert booking.created_at is not None
