from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from workshop_booking.application.ports.booking_store import BookingStorePort
from workshop_booking.domain.entities.booking import ResponseStatus, TrackedBooking
from workshop_booking.domain.entities.policy import EnginePolicy

if TYPE_CHECKING:
    from workshop_booking.application.use_cases.mutation_gateway import MutationGateway


class ConfirmationDeadlineEvaluator:
    """Expires arrival prompts that were left unconfirmed past the deadline."""

    def __init__(
        self,
        store: BookingStorePort,
        gateway: "MutationGateway",
        policy: EnginePolicy | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._policy = policy or EnginePolicy()

    def evaluate(self, now: datetime) -> list[int]:
        expired: list[int] = []
        for booking in self._store.all():
            if not self._is_open_prompt(booking):
                continue
            deadline = booking.appointment_at + self._policy.confirmation_deadline
            if now >= deadline:
                self._gateway.expire_response(booking.booking_id, deadline)
                expired.append(booking.booking_id)
        return expired

    @staticmethod
    def _is_open_prompt(booking: TrackedBooking) -> bool:
        return (
            booking.has_arrival_fired
            and not booking.both_confirmed
            and not booking.is_settled
            and booking.response_status not in (ResponseStatus.EXPIRED, ResponseStatus.CONFIRMED)
        )
