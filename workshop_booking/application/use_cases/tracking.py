from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from workshop_booking.application.dto.booking_payload import normalize_booking
from workshop_booking.application.policies.response_policy import is_awaiting_response
from workshop_booking.application.ports.booking_store import BookingStorePort, StoreChange
from workshop_booking.domain.entities.booking import TrackedBooking


class BookingTracker:
    """Decides which bookings the engine observes, and answers read-side queries."""

    def __init__(self, store: BookingStorePort) -> None:
        self._store = store
        self._version = 0
        self._logger = logging.getLogger(__name__)
        store.subscribe(self._on_store_change)

    @property
    def version(self) -> int:
        """Bumped on every store mutation so readers can tell when to re-render."""
        return self._version

    def track(self, booking: TrackedBooking) -> TrackedBooking | None:
        if booking.is_terminal or booking.both_confirmed:
            self._logger.info(
                "Not tracking finished booking",
                extra={"booking_id": booking.booking_id, "status": booking.status.value},
            )
            return None

        existing = self._store.get(booking.booking_id)
        if existing is not None:
            booking = replace(
                booking,
                has_arrival_fired=existing.has_arrival_fired or booking.has_arrival_fired,
                local_created_at=booking.local_created_at or existing.local_created_at,
            )
        self._store.upsert(booking)
        self._logger.info(
            "Tracking booking",
            extra={"booking_id": booking.booking_id, "appointment_at": booking.appointment_at.isoformat()},
        )
        return booking

    def track_payload(
        self,
        payload: dict[str, Any],
        local_created_at: datetime | None = None,
    ) -> TrackedBooking | None:
        return self.track(normalize_booking(payload, local_created_at=local_created_at))

    def untrack(self, booking_id: int) -> bool:
        return self._store.remove(booking_id) is not None

    def get(self, booking_id: int) -> TrackedBooking | None:
        return self._store.get(booking_id)

    def all(self) -> list[TrackedBooking]:
        return sorted(self._store.all(), key=lambda b: b.appointment_at)

    def awaiting_response(self) -> list[TrackedBooking]:
        return [b for b in self.all() if is_awaiting_response(b)]

    def seconds_until_appointment(self, booking_id: int, now: datetime) -> int | None:
        booking = self._store.get(booking_id)
        if booking is None:
            return None
        return int((booking.appointment_at - now).total_seconds())

    def _on_store_change(self, change: StoreChange) -> None:
        self._version += 1
