from vibefeed.models import (
    VIBE_BRUNCH,
    VIBE_DINING,
    VIBE_HAPPY_HOUR,
    Deal,
    Restaurant,
    VibeDetails,
)
from vibefeed.services.slots import deal_tags, resolve, share_message


def _bare(**kwargs) -> Restaurant:
    return Restaurant(id="1", name="Sage Bistro", primary_cuisine="American", discount_percentage=30, **kwargs)


def test_fallback_slots_per_vibe():
    r = _bare()
    assert resolve(r, VIBE_DINING).time_slots == ["18:00", "18:30", "19:00", "19:30"]
    assert resolve(r, VIBE_BRUNCH).time_slots == [
        "10:00", "10:30", "11:00", "11:30", "12:00", "12:30", "13:00", "13:30",
    ]
    assert resolve(r, VIBE_HAPPY_HOUR).time_slots == [
        "16:00", "16:30", "17:00", "17:30", "18:00", "18:30", "19:00",
    ]


def test_vibe_slots_then_base_slots():
    r = _bare(
        time_slots=["12:00", "12:30"],
        vibe_details={VIBE_BRUNCH: VibeDetails(time_slots=["09:30"])},
    )
    assert resolve(r, VIBE_BRUNCH).time_slots == ["09:30"]
    assert resolve(r, VIBE_HAPPY_HOUR).time_slots == ["12:00", "12:30"]
    assert resolve(r, VIBE_DINING).time_slots == ["12:00", "12:30"]


def test_brunch_discount_overrides_default():
    r = _bare(vibe_details={VIBE_BRUNCH: VibeDetails(discount_percentage=25)})
    assert resolve(r, VIBE_BRUNCH).discount_percentage == 25
    assert resolve(r, VIBE_DINING).discount_percentage == 30
    assert resolve(r, VIBE_HAPPY_HOUR).discount_percentage == 30


def test_zero_brunch_discount_is_kept():
    r = _bare(vibe_details={VIBE_BRUNCH: VibeDetails(discount_percentage=0)})
    assert resolve(r, VIBE_BRUNCH).discount_percentage == 0


def test_resolve_does_not_mutate():
    r = _bare()
    resolution = resolve(r, VIBE_DINING)
    resolution.time_slots.append("23:00")
    assert r.time_slots == []
    assert resolve(r, VIBE_DINING).time_slots == ["18:00", "18:30", "19:00", "19:30"]


def test_deal_tags_drinks_first_and_fallbacks():
    r = _bare(
        drink_deals={"cocktails": Deal(True, 6), "sake": Deal(False, 4), "beer": Deal(True, 0)},
        food_deals={"sliders": Deal(True, 7)},
    )
    assert deal_tags(r) == ["$6 cocktails", "$7 sliders"]
    assert deal_tags(_bare(happy_hour_deal="Half-price sake")) == ["Half-price sake"]
    assert deal_tags(_bare()) == ["Happy Hour"]


def test_share_message_by_vibe():
    r = _bare(
        address="Downtown DC, DC",
        rating=4.5,
        description="Farm-to-table",
        drink_deals={"cocktails": Deal(True, 6)},
        food_deals={"sliders": Deal(True, 7)},
    )
    happy = share_message(r, VIBE_HAPPY_HOUR)
    assert "$6 cocktails • $7 sliders" in happy
    assert happy.endswith("#HappyHour")
    assert "Bottomless brunch specials" in share_message(r, VIBE_BRUNCH)
    dining = share_message(r, VIBE_DINING)
    assert "Farm-to-table" in dining
    assert "Downtown DC, DC" in dining
    assert "4.5 stars" in dining
