from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vibefeed.config import Configuration
from vibefeed.main import app, build_services, get_services

USER = {"X-User-Id": "u1", "X-User-Email": "u1@example.com"}


@pytest.fixture
def client():
    services = build_services(Configuration(use_sample_catalog=True))
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "catalog": "InMemoryCatalog"}


def test_areas_search(client):
    assert client.get("/areas", params={"q": "va"}).json()["areas"] == ["Arlington, VA", "Alexandria, VA"]
    assert len(client.get("/areas").json()["areas"]) == 9


def test_feed_brunch(client):
    resp = client.get("/feed", params={"vibe": "brunch"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["cuisine"] == "All"
    assert body["theme"] == "All"
    assert body["needs_location"] is False
    assert [r["id"] for r in body["restaurants"]] == ["1", "4"]
    first = body["restaurants"][0]
    assert first["discount_percentage"] == 25
    assert first["time_slots"][0] == "10:00"
    assert "mimosas" in first["description"]


def test_feed_cuisine_filter(client):
    body = client.get("/feed", params={"vibe": "dining", "cuisine": "Korean"}).json()
    assert [r["id"] for r in body["restaurants"]] == ["2"]
    assert body["cuisine"] == "Korean"


def test_feed_near_me_asks_for_location(client):
    body = client.get("/feed", params={"vibe": "happy-hour", "theme": "Near Me"}).json()
    assert body["needs_location"] is True
    assert [r["id"] for r in body["restaurants"]] == ["1", "2", "3"]
    assert body["restaurants"][0]["deal_tags"]


def test_feed_rejects_bad_input(client):
    assert client.get("/feed", params={"vibe": "late-night"}).status_code == 400
    assert client.get("/feed", params={"lat": 100, "lng": 0}).status_code == 400
    assert client.get("/feed", params={"area": "Atlantis"}).status_code == 400


def test_restaurant_detail_and_slots(client):
    resp = client.get("/restaurants/4", params={"vibe": "brunch"})
    assert resp.status_code == 200
    assert resp.json()["record"]["name"] == "Le Petit Bistro"

    slots = client.get("/restaurants/4/slots", params={"vibe": "brunch"}).json()
    assert slots["discount_percentage"] == 20
    assert slots["time_slots"][0] == "10:00"
    assert "Le Petit Bistro" in slots["share_message"]

    assert client.get("/restaurants/99").status_code == 404


def test_toggle_requires_sign_in(client):
    resp = client.post("/saved/toggle", json={"restaurant_id": "1"})
    assert resp.status_code == 401
    assert resp.json()["action"] == "signin"
    assert client.get("/saved").status_code == 401


def test_toggle_save_round_trip(client):
    resp = client.post("/saved/toggle", json={"restaurant_id": "1"}, headers=USER)
    assert resp.json() == {"restaurant_id": "1", "saved": True}

    saved = client.get("/saved", headers=USER).json()
    assert [s["id"] for s in saved] == ["1"]
    assert saved[0]["offers"] == ["Happy Hour"]

    feed = client.get("/feed", headers=USER).json()
    flags = {r["id"]: r["is_saved"] for r in feed["restaurants"]}
    assert flags["1"] is True
    assert flags["2"] is False

    resp = client.post("/saved/toggle", json={"restaurant_id": "1"}, headers=USER)
    assert resp.json()["saved"] is False
    assert client.get("/saved", headers=USER).json() == []


def test_create_and_list_bookings(client):
    resp = client.post(
        "/bookings",
        json={"restaurant_id": "1", "vibe": "dining", "date": "2099-01-01", "time": "18:00", "guest_count": 3},
        headers=USER,
    )
    assert resp.status_code == 200
    booking = resp.json()
    assert booking["booking_number"].startswith("VB-2099-")
    assert booking["discount_percentage"] == 30
    assert booking["status"] == "confirmed"
    assert booking["upcoming"] is True

    listed = client.get("/bookings", headers=USER).json()
    assert [b["id"] for b in listed] == [booking["id"]]
    assert client.get("/bookings").status_code == 401


def test_booking_validation(client):
    unavailable = client.post(
        "/bookings",
        json={"restaurant_id": "1", "date": "2099-01-01", "time": "03:00"},
        headers=USER,
    )
    assert unavailable.status_code == 400

    too_many = client.post(
        "/bookings",
        json={"restaurant_id": "1", "date": "2099-01-01", "time": "18:00", "guest_count": 50},
        headers=USER,
    )
    assert too_many.status_code == 422


def test_services_share_persisted_context(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text('{"is_muted": true}')
    services = build_services(Configuration(use_sample_catalog=True, preferences_path=str(path)))
    assert services.context.is_muted is True
    assert services.saved.context is services.context


def test_internal_value_error_is_not_a_client_error():
    services = build_services(Configuration(use_sample_catalog=True))

    async def broken_run(query):
        raise ValueError("bug in composition")

    services.composer.run = broken_run
    app.dependency_overrides[get_services] = lambda: services
    try:
        with pytest.raises(ValueError):
            TestClient(app).get("/feed")
    finally:
        app.dependency_overrides.clear()
