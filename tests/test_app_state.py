import json

import pytest

from vibefeed.models import VIBE_BRUNCH, VIBE_DINING, VIBE_HAPPY_HOUR
from vibefeed.services.app_state import AppContext, normalize_vibe


@pytest.mark.parametrize(
    "label, vibe",
    [
        ("🍸 Happy Hour", VIBE_HAPPY_HOUR),
        ("happy-hour", VIBE_HAPPY_HOUR),
        ("🥂 Brunch", VIBE_BRUNCH),
        ("Dining", VIBE_DINING),
    ],
)
def test_normalize_vibe(label, vibe):
    assert normalize_vibe(label) == vibe


def test_normalize_vibe_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_vibe("Late Night")


def test_initial_state():
    ctx = AppContext()
    assert ctx.is_muted is False
    assert ctx.active_vibe == VIBE_DINING
    assert ctx.user_id is None


def test_update_notifies_changed_keys_only():
    ctx = AppContext()
    seen = []
    unsubscribe = ctx.subscribe(lambda key, value: seen.append((key, value)))

    ctx.update(active_vibe="🍸 Happy Hour", is_muted=False)
    assert ctx.active_vibe == VIBE_HAPPY_HOUR
    assert seen == [("active_vibe", VIBE_HAPPY_HOUR)]

    unsubscribe()
    ctx.update(user_id="u1")
    assert ctx.get("user_id") == "u1"
    assert len(seen) == 1


def test_update_rejects_unknown_keys():
    ctx = AppContext()
    with pytest.raises(KeyError):
        ctx.update(theme="Rooftop")


def test_mute_preference_persists(tmp_path):
    path = tmp_path / "prefs.json"
    ctx = AppContext(str(path))
    assert ctx.toggle_mute() is True
    assert json.loads(path.read_text()) == {"is_muted": True}

    restored = AppContext(str(path))
    assert restored.is_muted is True
    assert restored.active_vibe == VIBE_DINING


def test_unreadable_preferences_are_ignored(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("not json")
    assert AppContext(str(path)).is_muted is False


def test_non_object_preferences_are_ignored(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("[1, 2]")
    ctx = AppContext(str(path))
    assert ctx.is_muted is False
    assert ctx.toggle_mute() is True
