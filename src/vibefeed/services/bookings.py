from __future__ import annotations

import random
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import Unauthenticated, ValidationFailure
from vibefeed.models import Booking, BookingDraft, Restaurant
from vibefeed.services.firestore import FirestoreClient
from vibefeed.services.records import booking_to_record, parse_booking
from vibefeed.services.slots import resolve
from vibefeed.utils import parse_clock

BOOKINGS = "bookings"


class BookingStore(ABC):
    @abstractmethod
    def create(self, draft: BookingDraft) -> str:
        """Persist a booking and return its id."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[Booking]:
        """Bookings for a user, newest first."""


def _newest_first(bookings: List[Booking]) -> List[Booking]:
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    return sorted(bookings, key=lambda b: b.created_at or epoch, reverse=True)


class InMemoryBookingStore(BookingStore):
    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self._clock = clock
        self._bookings: Dict[str, Booking] = {}

    def create(self, draft: BookingDraft) -> str:
        booking_id = uuid.uuid4().hex[:20]
        now = self._clock()
        self._bookings[booking_id] = Booking(**vars(draft), id=booking_id, created_at=now, updated_at=now)
        return booking_id

    def list_for_user(self, user_id: str) -> List[Booking]:
        return _newest_first([b for b in self._bookings.values() if b.user_id == user_id])


class FirestoreBookingStore(BookingStore):
    def __init__(self, cfg: Configuration, client: Optional[FirestoreClient] = None) -> None:
        self.client = client or FirestoreClient(cfg)

    def create(self, draft: BookingDraft) -> str:
        now = datetime.now(timezone.utc)
        record = booking_to_record(draft)
        record["createdAt"] = now
        record["updatedAt"] = now
        return self.client.create_document(BOOKINGS, record)

    def list_for_user(self, user_id: str) -> List[Booking]:
        docs = self.client.run_query(BOOKINGS, [("userId", "==", user_id)], use_cache=False)
        return _newest_first([parse_booking(doc_id, data) for doc_id, data in docs])


def booking_number(year: int, rng: random.Random) -> str:
    return f"VB-{year}-{rng.randint(0, 999999):06d}"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"invalid booking date {value!r}, expected YYYY-MM-DD")


class BookingService:
    def __init__(
        self,
        store: BookingStore,
        cfg: Optional[Configuration] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.cfg = cfg or Configuration()
        self._rng = rng or random.Random()

    def book(
        self,
        user_id: Optional[str],
        user_email: str,
        restaurant: Restaurant,
        vibe: str,
        booking_date: str,
        time: str,
        guest_count: int,
    ) -> Booking:
        if not user_id:
            raise Unauthenticated("sign in to book a table")
        if guest_count < 1:
            raise ValidationFailure("guest count must be at least 1")
        day = _parse_date(booking_date)
        if parse_clock(time) is None:
            raise ValidationFailure(f"invalid booking time {time!r}, expected HH:MM")

        slots = resolve(restaurant, vibe)
        if time not in slots.time_slots:
            raise ValidationFailure(f"{time} is not an available slot at {restaurant.name}")

        draft = BookingDraft(
            booking_number=booking_number(day.year, self._rng),
            restaurant_id=restaurant.id,
            restaurant_name=restaurant.name,
            restaurant_location=restaurant.address or restaurant.location or None,
            user_id=user_id,
            user_email=user_email,
            date=day.isoformat(),
            time=time,
            guest_count=guest_count,
            discount_percentage=slots.discount_percentage,
            commission=self.cfg.booking_commission,
        )
        booking_id = self.store.create(draft)
        logger.info("booking {} created for {} at {}", draft.booking_number, user_id, restaurant.id)
        now = datetime.now(timezone.utc)
        return Booking(**vars(draft), id=booking_id, created_at=now, updated_at=now)

    def list_for_user(self, user_id: Optional[str]) -> List[Booking]:
        if not user_id:
            raise Unauthenticated("sign in to view bookings")
        return self.store.list_for_user(user_id)


def split_bookings(bookings: List[Booking], today: date) -> Tuple[List[Booking], List[Booking]]:
    """Split into (upcoming, past); a booking dated today is upcoming."""
    upcoming: list[Booking] = []
    past: list[Booking] = []
    for booking in bookings:
        try:
            day = date.fromisoformat(booking.date)
        except ValueError:
            past.append(booking)
            continue
        (upcoming if day >= today else past).append(booking)
    return upcoming, past
