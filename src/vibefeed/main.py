from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from vibefeed.config import Configuration
from vibefeed.errors import FetchUnavailable, Unauthenticated, ValidationFailure
from vibefeed.models import VIBE_DINING, VIBE_HAPPY_HOUR, VIBES, Booking, Coordinates, FeedQuery, Restaurant
from vibefeed.services.app_state import AppContext
from vibefeed.services.bookings import (
    BookingService,
    FirestoreBookingStore,
    InMemoryBookingStore,
    split_bookings,
)
from vibefeed.services.catalog import CatalogFetcher, FirestoreCatalog, sample_catalog
from vibefeed.services.feed import FeedComposer
from vibefeed.services.firestore import FirestoreClient
from vibefeed.services.location import AREA_COORDINATES, is_valid, search_areas
from vibefeed.services.records import restaurant_to_record
from vibefeed.services.saved import FirestoreSavedStore, InMemorySavedStore, SavedSetTracker
from vibefeed.services.slots import deal_tags, resolve, share_message
from vibefeed.services.themes import wants_location

load_dotenv()

app = FastAPI(title="Vibe Feed")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@dataclass
class Services:
    cfg: Configuration
    catalog: CatalogFetcher
    composer: FeedComposer
    context: AppContext
    saved: SavedSetTracker
    bookings: BookingService


def build_services(cfg: Configuration) -> Services:
    context = AppContext(cfg.preferences_path)
    if cfg.use_sample_catalog or not cfg.firestore_project_id:
        logger.warning("no Firestore project configured, serving the sample catalog")
        catalog: CatalogFetcher = sample_catalog()
        saved = SavedSetTracker(InMemorySavedStore(), context)
        bookings = BookingService(InMemoryBookingStore(), cfg)
    else:
        client = FirestoreClient(cfg)
        catalog = FirestoreCatalog(cfg, client)
        saved = SavedSetTracker(FirestoreSavedStore(cfg, client), context)
        bookings = BookingService(FirestoreBookingStore(cfg, client), cfg)
    return Services(
        cfg=cfg,
        catalog=catalog,
        composer=FeedComposer(catalog, cfg),
        context=context,
        saved=saved,
        bookings=bookings,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        cfg = Configuration.from_env()
        logger.info("cfg: {}", cfg.log_summary())
        _services = build_services(cfg)
    return _services


@app.exception_handler(Unauthenticated)
async def _unauthenticated(_: Request, exc: Unauthenticated) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc), "action": "signin"})


@app.exception_handler(ValidationFailure)
async def _invalid(_: Request, exc: ValidationFailure) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(FetchUnavailable)
async def _unavailable(_: Request, exc: FetchUnavailable) -> JSONResponse:
    logger.warning("backend unavailable: {}", exc)
    return JSONResponse(status_code=503, content={"detail": "backend unavailable"})


class RestaurantPayload(BaseModel):
    id: str
    record: Dict[str, Any]
    description: str
    time_slots: List[str]
    discount_percentage: float
    deal_tags: List[str] = []
    distance: Optional[float] = None
    is_saved: bool = False


class FeedResponse(BaseModel):
    vibe: str
    cuisine: str
    theme: str
    source: str
    needs_location: bool
    restaurants: List[RestaurantPayload]


class SlotsResponse(BaseModel):
    restaurant_id: str
    vibe: str
    time_slots: List[str]
    discount_percentage: float
    share_message: str


class ToggleSaveRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)


class ToggleSaveResponse(BaseModel):
    restaurant_id: str
    saved: bool


class SavedPayload(BaseModel):
    id: str
    name: str
    cuisine: str
    location: str
    offers: List[str]
    discount_percentage: Optional[float] = None
    saved_at: str


class BookingRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    vibe: str = Field(VIBE_DINING)
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    guest_count: int = Field(2, ge=1, le=20)


class BookingPayload(BaseModel):
    id: str
    booking_number: str
    restaurant_id: str
    restaurant_name: str
    date: str
    time: str
    guest_count: int
    discount_percentage: float
    status: str
    upcoming: bool


def _check_vibe(vibe: str) -> str:
    if vibe not in VIBES:
        raise HTTPException(status_code=400, detail=f"unknown vibe {vibe!r}")
    return vibe


def _origin(lat: Optional[float], lng: Optional[float], area: Optional[str], cfg: Configuration) -> Coordinates:
    if lat is not None and lng is not None:
        coords = Coordinates(lat, lng)
        if not is_valid(coords):
            raise HTTPException(status_code=400, detail="coordinates out of range")
        return coords
    if area:
        if area not in AREA_COORDINATES:
            raise HTTPException(status_code=400, detail=f"unknown area {area!r}")
        return AREA_COORDINATES[area]
    return AREA_COORDINATES[cfg.default_area]


def _payload(restaurant: Restaurant, vibe: str, saved: bool) -> RestaurantPayload:
    slots = resolve(restaurant, vibe)
    return RestaurantPayload(
        id=restaurant.id,
        record=restaurant_to_record(restaurant),
        description=restaurant.description_for(vibe),
        time_slots=slots.time_slots,
        discount_percentage=slots.discount_percentage,
        deal_tags=deal_tags(restaurant, limit=4) if vibe == VIBE_HAPPY_HOUR else [],
        distance=restaurant.distance,
        is_saved=saved,
    )


def _booking_payload(booking: Booking, today: date) -> BookingPayload:
    upcoming, _ = split_bookings([booking], today)
    return BookingPayload(
        id=booking.id,
        booking_number=booking.booking_number,
        restaurant_id=booking.restaurant_id,
        restaurant_name=booking.restaurant_name,
        date=booking.date,
        time=booking.time,
        guest_count=booking.guest_count,
        discount_percentage=booking.discount_percentage,
        status=booking.status,
        upcoming=bool(upcoming),
    )


def _find_restaurant(services: Services, restaurant_id: str) -> Restaurant:
    try:
        restaurant = services.catalog.fetch_by_id(restaurant_id)
    except FetchUnavailable as exc:
        logger.warning("catalog unavailable for {}, checking sample data: {}", restaurant_id, exc)
        restaurant = services.composer.fallback.fetch_by_id(restaurant_id)
    if restaurant is None or not restaurant.is_active:
        raise HTTPException(status_code=404, detail="restaurant not found")
    return restaurant


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise Unauthenticated("sign in required")
    return user_id


@app.get("/healthz")
def healthz(services: Services = Depends(get_services)) -> dict:
    return {"status": "ok", "catalog": type(services.catalog).__name__}


@app.get("/areas")
def areas(q: str = Query("", description="Area search text")) -> dict:
    names = search_areas(q) if q else list(AREA_COORDINATES)
    return {"areas": names}


@app.get("/feed", response_model=FeedResponse)
async def feed(
    vibe: str = Query(VIBE_DINING),
    cuisine: Optional[str] = Query(None),
    theme: Optional[str] = Query(None),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    area: Optional[str] = Query(None),
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> FeedResponse:
    _check_vibe(vibe)
    query = FeedQuery(
        vibe=vibe,
        cuisine_filter=cuisine,
        theme_filter=theme,
        proximity_origin=_origin(lat, lng, area, services.cfg),
    )
    result = await services.composer.run(query)

    saved_ids: set[str] = set()
    if x_user_id:
        try:
            saved_ids = await services.saved.load_all(x_user_id)
        except FetchUnavailable as exc:
            logger.warning("saved set unavailable for {}: {}", x_user_id, exc)

    return FeedResponse(
        vibe=vibe,
        cuisine=query.cuisine or "All",
        theme=query.theme or "All",
        source=result.source,
        needs_location=wants_location(vibe, theme) and (lat is None or lng is None),
        restaurants=[_payload(r, vibe, r.id in saved_ids) for r in result.restaurants],
    )


@app.get("/restaurants/{restaurant_id}", response_model=RestaurantPayload)
def restaurant_detail(
    restaurant_id: str,
    vibe: str = Query(VIBE_DINING),
    services: Services = Depends(get_services),
) -> RestaurantPayload:
    restaurant = _find_restaurant(services, restaurant_id)
    return _payload(restaurant, _check_vibe(vibe), False)


@app.get("/restaurants/{restaurant_id}/slots", response_model=SlotsResponse)
def restaurant_slots(
    restaurant_id: str,
    vibe: str = Query(VIBE_DINING),
    services: Services = Depends(get_services),
) -> SlotsResponse:
    restaurant = _find_restaurant(services, restaurant_id)
    resolution = resolve(restaurant, _check_vibe(vibe))
    return SlotsResponse(
        restaurant_id=restaurant.id,
        vibe=vibe,
        time_slots=resolution.time_slots,
        discount_percentage=resolution.discount_percentage,
        share_message=share_message(restaurant, vibe),
    )


@app.get("/saved", response_model=List[SavedPayload])
async def saved_list(
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> List[SavedPayload]:
    user_id = _require_user(x_user_id)
    entries = await services.saved.list_saved(user_id)
    return [
        SavedPayload(
            id=e.id,
            name=e.name,
            cuisine=e.cuisine,
            location=e.location,
            offers=e.offers,
            discount_percentage=e.discount_percentage,
            saved_at=e.saved_at.isoformat(),
        )
        for e in entries
    ]


@app.post("/saved/toggle", response_model=ToggleSaveResponse)
async def saved_toggle(
    req: ToggleSaveRequest,
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> ToggleSaveResponse:
    user_id = _require_user(x_user_id)
    restaurant = _find_restaurant(services, req.restaurant_id)
    entry = await services.saved.toggle_save(user_id, restaurant)
    return ToggleSaveResponse(restaurant_id=restaurant.id, saved=entry is not None)


@app.post("/bookings", response_model=BookingPayload)
def create_booking(
    req: BookingRequest,
    x_user_id: Optional[str] = Header(None),
    x_user_email: str = Header(""),
    services: Services = Depends(get_services),
) -> BookingPayload:
    user_id = _require_user(x_user_id)
    restaurant = _find_restaurant(services, req.restaurant_id)
    booking = services.bookings.book(
        user_id,
        x_user_email,
        restaurant,
        _check_vibe(req.vibe),
        req.date,
        req.time,
        req.guest_count,
    )
    return _booking_payload(booking, date.today())


@app.get("/bookings", response_model=List[BookingPayload])
def list_bookings(
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> List[BookingPayload]:
    bookings = services.bookings.list_for_user(x_user_id)
    today = date.today()
    return [_booking_payload(b, today) for b in bookings]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("vibefeed.main:app", host="0.0.0.0", port=8010, reload=True)
