"""
Shared fixtures: a fake clock, in-memory store, event bus and mock backend.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from workshop_booking.application.engine import BookingEngine
from workshop_booking.application.ports.clock import ClockPort
from workshop_booking.domain.entities.booking import TrackedBooking
from workshop_booking.infrastructure.backend.mock_backend import MockBookingBackend
from workshop_booking.infrastructure.notifications.event_bus import InProcessEventBus
from workshop_booking.infrastructure.store.memory_store import MemoryBookingStore

T0 = datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)


class FakeClock(ClockPort):
    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


def make_booking(
    booking_id: int = 1,
    appointment_in: timedelta = timedelta(hours=2),
    **overrides: Any,
) -> TrackedBooking:
    booking = TrackedBooking(
        booking_id=booking_id,
        appointment_at=T0 + appointment_in,
        created_at=T0,
    )
    return replace(booking, **overrides)


def booking_payload(booking: TrackedBooking) -> dict[str, Any]:
    """The camelCase shape the booking service sends for `booking`."""
    return {
        "bookingId": booking.booking_id,
        "exactAppointmentTime": booking.appointment_at.isoformat(),
        "createdAt": booking.created_at.isoformat(),
        "status": booking.status.value,
        "responseStatus": int(booking.response_status),
        "carOwnerConfirmed": booking.owner_confirmed_arrival,
        "workshopConfirmed": booking.counterparty_confirmed_arrival,
    }


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def bus() -> InProcessEventBus:
    return InProcessEventBus()


@pytest.fixture
def backend() -> MockBookingBackend:
    return MockBookingBackend()


@pytest.fixture
def engine(store, backend, bus, clock) -> BookingEngine:
    return BookingEngine(store=store, backend=backend, sink=bus, clock=clock)


@pytest.fixture
def track(engine: BookingEngine, backend: MockBookingBackend) -> Callable[..., TrackedBooking]:
    """Seed the mock backend with a booking and start tracking it."""

    def _track(booking: TrackedBooking | None = None, **overrides: Any) -> TrackedBooking:
        booking = booking or make_booking(**overrides)
        backend.seed(booking_payload(booking))
        engine.tracker.track(booking)
        return booking

    return _track


def events_of(bus: InProcessEventBus, kind: type) -> list:
    return [e for e in bus.recent() if isinstance(e, kind)]

