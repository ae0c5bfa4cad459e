"""Bundled sample restaurants shown when the live catalog is unreachable."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

SAMPLE_RESTAURANTS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Sage Bistro",
        "cuisine": "American",
        "cuisines": ["American", "Mediterranean"],
        "location": "Downtown DC",
        "discount": "-30%",
        "timeSlots": ["18:00", "18:30", "19:00", "19:30"],
        "video": "http://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4",
        "description": "Farm-to-table dining with seasonal ingredients",
        "vibes": ["dining", "brunch", "happy-hour"],
        "brunchDescription": (
            "Weekend brunch with bottomless mimosas and farm-fresh eggs - trendy rooftop dining experience"
        ),
        "happyHourDescription": "Craft cocktails and small plates from 4-7pm",
        "happyHourDeal": "2-for-1 cocktails",
        "brunchTimeSlots": ["10:00", "10:30", "11:00", "11:30", "12:00", "12:30", "13:00", "13:30"],
        "happyHourTimeSlots": ["16:00", "16:30", "17:00", "17:30", "18:00", "18:30", "19:00"],
        "brunchDiscountPercentage": 25,
        "isPopular": True,
        "happyHourStartTime": "16:00",
        "happyHourEndTime": "19:00",
        "happyHourDays": ["Mon", "Tue", "Wed", "Thu", "Fri"],
        "drinkDeals": {
            "cocktails": {"enabled": True, "price": 6},
            "beer": {"enabled": True, "price": 5},
            "wine": {"enabled": True, "price": 7},
            "sake": {"enabled": False, "price": 0},
        },
        "foodDeals": {
            "wings": {"enabled": False, "price": 0},
            "tacos": {"enabled": False, "price": 0},
            "sliders": {"enabled": True, "price": 7},
            "nachos": {"enabled": False, "price": 0},
            "fries": {"enabled": False, "price": 0},
            "pizza": {"enabled": False, "price": 0},
        },
    },
    {
        "id": "2",
        "name": "Ramen House",
        "cuisine": "Japanese",
        "cuisines": ["Japanese", "Korean"],
        "location": "Georgetown",
        "discount": "-40%",
        "timeSlots": ["12:00", "12:30", "13:00", "13:30"],
        "video": "https://storage.googleapis.com/vibefeed-media/sushi.mp4",
        "description": "Authentic Tokyo-style ramen and small plates",
        "vibes": ["dining", "happy-hour"],
        "happyHourDescription": "Sake specials and izakaya-style small plates",
        "happyHourDeal": "Half-price sake",
        "happyHourTimeSlots": ["16:00", "16:30", "17:00", "17:30", "18:00", "18:30", "19:00"],
        "happyHourStartTime": "16:00",
        "happyHourEndTime": "19:00",
        "happyHourDays": ["Mon", "Tue", "Wed", "Thu", "Fri"],
        "drinkDeals": {
            "cocktails": {"enabled": False, "price": 0},
            "beer": {"enabled": True, "price": 5},
            "wine": {"enabled": True, "price": 6},
            "sake": {"enabled": True, "price": 4},
        },
        "foodDeals": {
            "wings": {"enabled": False, "price": 0},
            "tacos": {"enabled": False, "price": 0},
            "sliders": {"enabled": False, "price": 0},
            "nachos": {"enabled": False, "price": 0},
            "fries": {"enabled": False, "price": 0},
            "pizza": {"enabled": False, "price": 0},
        },
    },
    {
        "id": "3",
        "name": "Spice Garden",
        "cuisine": "Indian",
        "cuisines": ["Indian", "Thai"],
        "location": "Adams Morgan",
        "discount": "-25%",
        "timeSlots": ["18:00", "18:30", "19:00", "19:30", "20:00"],
        "video": "https://storage.googleapis.com/vibefeed-media/steak.mp4",
        "description": "Modern Indian cuisine with Thai influences",
        "vibes": ["dining", "happy-hour"],
        "happyHourDescription": "Craft cocktails and fusion small plates",
        "happyHourDeal": "2-for-1 appetizers",
        "happyHourTimeSlots": ["16:00", "16:30", "17:00", "17:30", "18:00", "18:30", "19:00"],
        "isPopular": True,
        "happyHourStartTime": "16:00",
        "happyHourEndTime": "19:00",
        "happyHourDays": ["Mon", "Tue", "Wed", "Thu", "Fri"],
        "drinkDeals": {
            "cocktails": {"enabled": True, "price": 5},
            "beer": {"enabled": True, "price": 4},
            "wine": {"enabled": True, "price": 6},
            "sake": {"enabled": False, "price": 0},
        },
        "foodDeals": {
            "wings": {"enabled": False, "price": 0},
            "tacos": {"enabled": False, "price": 0},
            "sliders": {"enabled": False, "price": 0},
            "nachos": {"enabled": False, "price": 0},
            "fries": {"enabled": False, "price": 0},
            "pizza": {"enabled": False, "price": 0},
        },
    },
    {
        "id": "4",
        "name": "Le Petit Bistro",
        "cuisine": "French",
        "cuisines": ["French", "Mediterranean"],
        "location": "Dupont Circle",
        "discount": "-35%",
        "timeSlots": ["18:00", "18:30", "19:00", "19:30", "20:00", "20:30"],
        "video": "https://storage.googleapis.com/vibefeed-media/sushi.mp4",
        "description": "Classic French cuisine with Mediterranean flair",
        "vibes": ["dining", "brunch"],
        "brunchDescription": "French brunch with Mediterranean specialties - trendy modern atmosphere",
        "brunchTimeSlots": ["10:00", "10:30", "11:00", "11:30", "12:00", "12:30", "13:00", "13:30"],
        "brunchDiscountPercentage": 20,
    },
]

DEFAULT_DRINK_DEALS = {
    "cocktails": {"enabled": True, "price": 8},
    "beer": {"enabled": True, "price": 5},
    "wine": {"enabled": True, "price": 7},
    "sake": {"enabled": False, "price": 0},
}

DEFAULT_FOOD_DEALS = {
    "wings": {"enabled": True, "price": 8},
    "tacos": {"enabled": True, "price": 6},
    "sliders": {"enabled": True, "price": 7},
    "nachos": {"enabled": False, "price": 0},
    "fries": {"enabled": False, "price": 0},
    "pizza": {"enabled": False, "price": 0},
}


def _discount(label: str) -> int:
    digits = str(label).replace("-", "").replace("%", "").strip()
    return int(digits) if digits.isdigit() else 0


def sample_records() -> List[Tuple[str, Dict[str, Any]]]:
    """Sample rows reshaped into catalog documents."""
    records: list[Tuple[str, Dict[str, Any]]] = []
    for row in SAMPLE_RESTAURANTS:
        doc = {
            "name": row["name"],
            "cuisine": row["cuisine"],
            "cuisines": row.get("cuisines") or [row["cuisine"]],
            "location": row["location"],
            "address": f"{row['location']}, DC",
            "description": row["description"],
            "discountPercentage": _discount(row.get("discount", "")),
            "videoUrl": row.get("video"),
            "imageUrl": row.get("video"),
            "rating": 4.5,
            "priceRange": "$$",
            "isActive": True,
            "isPopular": bool(row.get("isPopular")),
            "timeSlots": list(row.get("timeSlots") or []),
            "vibes": list(row.get("vibes") or ["dining"]),
            "drinkDeals": row.get("drinkDeals") or DEFAULT_DRINK_DEALS,
            "foodDeals": row.get("foodDeals") or DEFAULT_FOOD_DEALS,
        }
        for key in (
            "brunchDescription",
            "happyHourDescription",
            "happyHourDeal",
            "brunchTimeSlots",
            "happyHourTimeSlots",
            "brunchDiscountPercentage",
            "happyHourStartTime",
            "happyHourEndTime",
            "happyHourDays",
        ):
            if row.get(key) is not None:
                doc[key] = row[key]
        records.append((row["id"], doc))
    return records
