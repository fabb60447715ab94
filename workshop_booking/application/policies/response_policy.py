from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from workshop_booking.application.exceptions import RejectionKind
from workshop_booking.domain.entities.booking import ResponseStatus, TrackedBooking


@dataclass(frozen=True)
class ResponseDecision:
    status: ResponseStatus | None = None
    reason: str | None = None
    kind: RejectionKind | None = None

    @property
    def ok(self) -> bool:
        return self.status is not None

    @classmethod
    def allow(cls, status: ResponseStatus) -> "ResponseDecision":
        return cls(status=status)

    @classmethod
    def reject(cls, reason: str, kind: RejectionKind = RejectionKind.NOT_ALLOWED) -> "ResponseDecision":
        return cls(reason=reason, kind=kind)


def next_response_status(
    current: ResponseStatus,
    requested: ResponseStatus,
    appointment_at: datetime,
    now: datetime,
) -> ResponseDecision:
    """
    Decide whether a response change is legal. Pure: the caller supplies `now`.

    Declined may still move to Accepted, but acceptance is final.
    """
    if now >= appointment_at:
        return ResponseDecision.reject("appointment time has passed")
    if current is ResponseStatus.CONFIRMED:
        return ResponseDecision.reject("already mutually confirmed", RejectionKind.ALREADY_HANDLED)
    if current is ResponseStatus.EXPIRED:
        return ResponseDecision.reject("response window expired")
    if current is ResponseStatus.ACCEPTED and requested is ResponseStatus.DECLINED:
        return ResponseDecision.reject("acceptance is final")
    return ResponseDecision.allow(requested)


def can_change_response(booking: TrackedBooking, now: datetime) -> bool:
    if booking.is_settled:
        return False
    if now >= booking.appointment_at:
        return False
    return booking.response_status not in (
        ResponseStatus.CONFIRMED,
        ResponseStatus.EXPIRED,
        ResponseStatus.ACCEPTED,
    )


def is_awaiting_response(booking: TrackedBooking) -> bool:
    return (
        booking.response_status in (ResponseStatus.PENDING, ResponseStatus.DECLINED)
        and not booking.is_settled
        and not booking.both_confirmed
    )
