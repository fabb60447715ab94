from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "InProgress"
    READY_FOR_PICKUP = "ReadyForPickup"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"


class ResponseStatus(int, Enum):
    # Backend sends these as numbers
    PENDING = 0
    ACCEPTED = 1
    DECLINED = 2
    CONFIRMED = 3  # both parties confirmed arrival
    EXPIRED = 4


class ActorRole(str, Enum):
    CUSTOMER = "customer"  # the car owner
    WORKSHOP = "workshop"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED}
)

# Statuses where the booking is no longer waiting on anyone to commit or show up.
SETTLED_STATUSES = frozenset(
    {
        BookingStatus.IN_PROGRESS,
        BookingStatus.READY_FOR_PICKUP,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.REJECTED,
    }
)


@dataclass(frozen=True)
class TrackedBooking:
    booking_id: int
    appointment_at: datetime
    created_at: datetime
    status: BookingStatus = BookingStatus.PENDING
    response_status: ResponseStatus = ResponseStatus.PENDING
    has_arrival_fired: bool = False
    owner_confirmed_arrival: bool = False
    counterparty_confirmed_arrival: bool = False
    local_created_at: datetime | None = None  # client-observed, wins over created_at

    @property
    def effective_created_at(self) -> datetime:
        return self.local_created_at if self.local_created_at is not None else self.created_at

    @property
    def both_confirmed(self) -> bool:
        return self.owner_confirmed_arrival and self.counterparty_confirmed_arrival

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_settled(self) -> bool:
        return self.status in SETTLED_STATUSES

    def has_confirmed(self, actor: ActorRole) -> bool:
        if actor is ActorRole.CUSTOMER:
            return self.owner_confirmed_arrival
        return self.counterparty_confirmed_arrival
