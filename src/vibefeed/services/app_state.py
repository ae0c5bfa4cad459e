from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from vibefeed.models import VIBE_DINING, VIBES

Subscriber = Callable[[str, Any], None]

_DEFAULTS: Dict[str, Any] = {
    "is_muted": False,
    "active_vibe": VIBE_DINING,
    "user_id": None,
}


def normalize_vibe(label: str) -> str:
    """Map a tab label such as "🍸 Happy Hour" to its vibe id."""
    cleaned = re.sub(r"[^a-z\- ]+", "", (label or "").lower()).strip()
    vibe = "-".join(p for p in re.split(r"[\s-]+", cleaned) if p)
    if vibe not in VIBES:
        raise ValueError(f"unknown vibe {label!r}")
    return vibe


class AppContext:
    """Shared UI state (mute, active vibe, signed-in user) passed to the components that need it.

    Starts unmuted, on the dining vibe, signed out. Only the mute preference
    is persisted, and only when a preferences path is given.
    """

    def __init__(self, preferences_path: Optional[str] = None) -> None:
        self._state: Dict[str, Any] = dict(_DEFAULTS)
        self._subscribers: List[Subscriber] = []
        self._path = Path(preferences_path) if preferences_path else None
        self._load()

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            saved = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("could not read preferences {}: {}", self._path, exc)
            return
        if not isinstance(saved, dict):
            logger.warning("ignoring preferences {}: expected an object", self._path)
            return
        if isinstance(saved.get("is_muted"), bool):
            self._state["is_muted"] = saved["is_muted"]

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.write_text(json.dumps({"is_muted": self._state["is_muted"]}), encoding="utf-8")
        except OSError as exc:
            logger.warning("could not save preferences {}: {}", self._path, exc)

    def get(self, key: str) -> Any:
        return self._state[key]

    @property
    def is_muted(self) -> bool:
        return bool(self._state["is_muted"])

    @property
    def active_vibe(self) -> str:
        return self._state["active_vibe"]

    @property
    def user_id(self) -> Optional[str]:
        return self._state["user_id"]

    def update(self, **changes: Any) -> None:
        for key in changes:
            if key not in self._state:
                raise KeyError(key)
        if "active_vibe" in changes and changes["active_vibe"] not in VIBES:
            changes["active_vibe"] = normalize_vibe(changes["active_vibe"])

        changed = {k: v for k, v in changes.items() if self._state[k] != v}
        self._state.update(changed)
        if "is_muted" in changed:
            self._save()
        for key, value in changed.items():
            for subscriber in list(self._subscribers):
                subscriber(key, value)

    def toggle_mute(self) -> bool:
        self.update(is_muted=not self.is_muted)
        return self.is_muted

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe
