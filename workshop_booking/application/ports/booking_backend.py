from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from workshop_booking.domain.entities.booking import ActorRole, BookingStatus, ResponseStatus


@dataclass(frozen=True)
class StatusUpdateResult:
    booking_id: int
    status: BookingStatus


@dataclass(frozen=True)
class ArrivalConfirmation:
    booking_id: int
    both_confirmed: bool
    resulting_status: BookingStatus
    owner_confirmed: bool | None = None
    counterparty_confirmed: bool | None = None


class BookingBackendPort(ABC):
    @abstractmethod
    async def fetch_booking(self, booking_id: int) -> dict[str, Any]:
        """Fetch the raw booking payload. Normalization happens in the caller."""
        raise NotImplementedError

    @abstractmethod
    async def update_status(self, booking_id: int, new_status: BookingStatus) -> StatusUpdateResult:
        """
        Move the booking to `new_status`. Must be idempotent: repeating the same
        target status does not apply side effects twice.
        """
        raise NotImplementedError

    @abstractmethod
    async def update_response(
        self,
        booking_id: int,
        new_response_status: ResponseStatus,
        actor_role: ActorRole,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    async def confirm_arrival(self, booking_id: int, confirmed_by: ActorRole) -> ArrivalConfirmation:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
