from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import PermissionDenied
from vibefeed.models import Coordinates

AREA_COORDINATES: Dict[str, Coordinates] = {
    "Washington DC": Coordinates(38.9072, -77.0369),
    "Georgetown, Washington DC": Coordinates(38.9098, -77.0654),
    "Dupont Circle, Washington DC": Coordinates(38.9095, -77.0432),
    "Adams Morgan, Washington DC": Coordinates(38.9219, -77.0425),
    "Capitol Hill, Washington DC": Coordinates(38.8899, -77.0091),
    "Downtown DC, Washington DC": Coordinates(38.8951, -77.0364),
    "Arlington, VA": Coordinates(38.8868, -77.0915),
    "Alexandria, VA": Coordinates(38.8318, -77.0594),
    "Bethesda, MD": Coordinates(38.9847, -77.0947),
}

CURRENT_LOCATION = "Current Location"
DENIED_NOTICE = "Location permission is needed to show nearby restaurants."


def is_valid(coords: Optional[Coordinates]) -> bool:
    if coords is None:
        return False
    return -90 <= coords.lat <= 90 and -180 <= coords.lng <= 180


def search_areas(text: str) -> List[str]:
    needle = (text or "").strip().lower()
    if not needle:
        return []
    return [area for area in AREA_COORDINATES if needle in area.lower()]


class LocationProvider(ABC):
    """Device location subsystem. Calls may block and may raise."""

    @abstractmethod
    def request_permission(self) -> bool:
        """True when permission is granted."""

    @abstractmethod
    def current(self) -> Coordinates:
        ...

    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        ...


class StaticLocationProvider(LocationProvider):
    """Fixed answers, for servers without a device and for tests."""

    def __init__(
        self,
        *,
        granted: bool = False,
        coordinates: Optional[Coordinates] = None,
        label: Optional[str] = None,
    ) -> None:
        self.granted = granted
        self.coordinates = coordinates
        self.label = label

    def request_permission(self) -> bool:
        return self.granted

    def current(self) -> Coordinates:
        if not self.granted or self.coordinates is None:
            raise PermissionDenied("no location fix available")
        return self.coordinates

    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        return self.label


@dataclass
class LocationState:
    source: str  # "gps", "manual" or "default"
    origin: Coordinates
    label: str
    notice: Optional[str] = None


class LocationResolver:
    """Picks the proximity origin: GPS fix, then the chosen area, then the default area."""

    def __init__(self, provider: LocationProvider, cfg: Optional[Configuration] = None) -> None:
        self.provider = provider
        self.cfg = cfg or Configuration()
        if self.cfg.default_area not in AREA_COORDINATES:
            raise ValueError(f"unknown default area {self.cfg.default_area!r}")
        self.source = "default"
        self.selected_area: Optional[str] = None
        self.gps: Optional[Coordinates] = None
        self.gps_label: Optional[str] = None
        self.permission: Optional[str] = None
        self._notice_shown = False

    def state(self, notice: Optional[str] = None) -> LocationState:
        gps = self.gps
        if self.source == "gps" and gps is not None and is_valid(gps):
            return LocationState("gps", gps, self.gps_label or CURRENT_LOCATION, notice)
        area = self.selected_area
        if self.source == "manual" and area is not None and area in AREA_COORDINATES:
            return LocationState("manual", AREA_COORDINATES[area], area, notice)
        default = self.cfg.default_area
        return LocationState("default", AREA_COORDINATES[default], default, notice)

    def origin(self) -> Coordinates:
        return self.state().origin

    def select_area(self, area: str) -> LocationState:
        if area not in AREA_COORDINATES:
            raise ValueError(f"unknown area {area!r}")
        self.selected_area = area
        self.source = "manual"
        return self.state()

    async def _bounded(self, func, *args):
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.cfg.location_timeout_sec)

    def _fall_back(self, reason: str) -> LocationState:
        logger.warning("location unavailable ({}), using {}", reason, self.selected_area or self.cfg.default_area)
        self.source = "manual" if self.selected_area else "default"
        notice = None
        if not self._notice_shown:
            self._notice_shown = True
            notice = DENIED_NOTICE
        return self.state(notice)

    async def request_gps(self) -> LocationState:
        """Ask for permission and a fix; never raises, falls back on any provider failure."""
        try:
            granted = await self._bounded(self.provider.request_permission)
            if not granted:
                raise PermissionDenied("permission refused")
            self.permission = "granted"
            fix = await self._bounded(self.provider.current)
            if not is_valid(fix):
                raise PermissionDenied(f"invalid fix {fix}")
        except PermissionDenied as exc:
            self.permission = "denied"
            return self._fall_back(str(exc))
        except asyncio.TimeoutError:
            return self._fall_back("timed out")
        except Exception as exc:
            logger.exception("location provider failed")
            return self._fall_back(f"{type(exc).__name__}: {exc}")

        label = CURRENT_LOCATION
        try:
            label = await self._bounded(self.provider.reverse_geocode, fix.lat, fix.lng) or CURRENT_LOCATION
        except asyncio.TimeoutError:
            logger.debug("reverse geocode timed out")
        except Exception as exc:
            logger.debug("reverse geocode failed: {}", exc)

        self.gps = fix
        self.gps_label = label
        self.source = "gps"
        return self.state()
