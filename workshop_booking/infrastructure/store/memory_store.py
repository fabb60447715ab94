from __future__ import annotations

import logging
from typing import Callable

from workshop_booking.application.ports.booking_store import BookingStorePort, StoreChange, StoreListener
from workshop_booking.domain.entities.booking import TrackedBooking


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[int, TrackedBooking] = {}
        self._listeners: list[StoreListener] = []
        self._logger = logging.getLogger(__name__)

    def upsert(self, booking: TrackedBooking) -> None:
        self._bookings[booking.booking_id] = booking
        self._notify(StoreChange(kind="upsert", booking_id=booking.booking_id, booking=booking))

    def remove(self, booking_id: int) -> TrackedBooking | None:
        removed = self._bookings.pop(booking_id, None)
        if removed is not None:
            self._notify(StoreChange(kind="remove", booking_id=booking_id, booking=removed))
        return removed

    def get(self, booking_id: int) -> TrackedBooking | None:
        return self._bookings.get(booking_id)

    def all(self) -> list[TrackedBooking]:
        return list(self._bookings.values())

    def clear(self) -> None:
        if not self._bookings:
            return
        self._bookings.clear()
        self._notify(StoreChange(kind="clear", booking_id=None))

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def __len__(self) -> int:
        return len(self._bookings)

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._bookings

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                self._logger.exception(
                    "Store listener failed",
                    extra={"booking_id": change.booking_id, "change": change.kind},
                )
