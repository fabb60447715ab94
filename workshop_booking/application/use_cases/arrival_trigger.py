from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from workshop_booking.application.ports.booking_store import BookingStorePort
from workshop_booking.application.ports.notification_sink import NotificationSinkPort
from workshop_booking.domain.entities.booking import TrackedBooking
from workshop_booking.domain.entities.events import ArrivalTriggered
from workshop_booking.domain.entities.policy import EnginePolicy


class ArrivalTriggerEvaluator:
    """
    Raises the one-time "confirm arrival" trigger when a booking's appointment
    instant is reached.

    A booking fires only while `appointment_at - now` is within
    [-arrival_window, 0]. Bookings reloaded long after their appointment never
    fire, and a missed window is not made up later.
    """

    def __init__(
        self,
        store: BookingStorePort,
        sink: NotificationSinkPort,
        policy: EnginePolicy | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._policy = policy or EnginePolicy()
        self._logger = logging.getLogger(__name__)

    def evaluate(self, now: datetime) -> list[int]:
        fired: list[int] = []
        for booking in self._store.all():
            if not self._is_awaiting_arrival(booking):
                continue
            delta = booking.appointment_at - now
            if not (-self._policy.arrival_window <= delta <= timedelta(0)):
                continue

            self._store.upsert(replace(booking, has_arrival_fired=True))
            self._sink.publish(
                ArrivalTriggered(
                    booking_id=booking.booking_id,
                    appointment_at=booking.appointment_at,
                    fired_at=now,
                )
            )
            self._logger.info(
                "Appointment time arrived",
                extra={"booking_id": booking.booking_id},
            )
            fired.append(booking.booking_id)
        return fired

    @staticmethod
    def _is_awaiting_arrival(booking: TrackedBooking) -> bool:
        return not (booking.has_arrival_fired or booking.is_settled or booking.both_confirmed)
