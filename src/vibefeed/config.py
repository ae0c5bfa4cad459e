from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from vibefeed.utils import mask_secret


class Configuration(BaseModel):
    # Firestore
    firestore_project_id: Optional[str] = Field(default=None)
    firestore_api_key: Optional[str] = Field(default=None)
    firestore_base_url: str = Field(default="https://firestore.googleapis.com/v1")
    firestore_timeout: int = Field(default=15)
    firestore_retries: int = Field(default=2)
    use_sample_catalog: bool = Field(default=False)

    # Feed
    fetch_timeout_sec: float = Field(default=8.0)
    cuisine_array_contains: bool = Field(default=True)
    happening_now_legacy_clock: bool = Field(default=False)

    # Location
    location_timeout_sec: float = Field(default=5.0)
    default_area: str = Field(default="Washington DC")

    # Bookings
    booking_commission: float = Field(default=3.0)

    # Device preferences
    preferences_path: Optional[str] = Field(default=None)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "firestore_project_id": os.getenv("FIRESTORE_PROJECT_ID"),
            "firestore_api_key": os.getenv("FIRESTORE_API_KEY"),
            "firestore_base_url": os.getenv("FIRESTORE_BASE_URL"),
            "firestore_timeout": os.getenv("FIRESTORE_TIMEOUT"),
            "firestore_retries": os.getenv("FIRESTORE_RETRIES"),
            "use_sample_catalog": os.getenv("USE_SAMPLE_CATALOG"),
            "fetch_timeout_sec": os.getenv("FETCH_TIMEOUT_SEC"),
            "cuisine_array_contains": os.getenv("CUISINE_ARRAY_CONTAINS"),
            "happening_now_legacy_clock": os.getenv("HAPPENING_NOW_LEGACY_CLOCK"),
            "location_timeout_sec": os.getenv("LOCATION_TIMEOUT_SEC"),
            "default_area": os.getenv("DEFAULT_AREA"),
            "booking_commission": os.getenv("BOOKING_COMMISSION"),
            "preferences_path": os.getenv("PREFERENCES_PATH"),
        }

        bool_fields = {"use_sample_catalog", "cuisine_array_contains", "happening_now_legacy_clock"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_firestore(self) -> None:
        if not self.firestore_project_id:
            raise ValueError("FIRESTORE_PROJECT_ID is required")

    def log_summary(self) -> str:
        return (
            "firestore=%s project=%s base=%s timeout=%s sample=%s api_key=%s"
            % (
                bool(self.firestore_project_id),
                self.firestore_project_id or "unset",
                self.firestore_base_url,
                self.firestore_timeout,
                self.use_sample_catalog,
                mask_secret(self.firestore_api_key),
            )
        )
