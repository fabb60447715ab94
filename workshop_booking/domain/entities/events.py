from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from workshop_booking.domain.entities.booking import BookingStatus


@dataclass(frozen=True)
class ArrivalTriggered:
    booking_id: int
    appointment_at: datetime
    fired_at: datetime


@dataclass(frozen=True)
class StatusChanged:
    booking_id: int
    old_status: BookingStatus
    new_status: BookingStatus


@dataclass(frozen=True)
class MutationFailed:
    booking_id: int
    attempted: str  # target status or response name
    reason: str


@dataclass(frozen=True)
class ConfirmationExpired:
    booking_id: int
    deadline: datetime


EngineEvent = ArrivalTriggered | StatusChanged | MutationFailed | ConfirmationExpired
