from __future__ import annotations

from enum import Enum

from workshop_booking.domain.entities.booking import BookingStatus


class RejectionKind(str, Enum):
    NOT_ALLOWED = "not_allowed"
    SERVER_REJECTED = "server_rejected"
    ALREADY_HANDLED = "already_handled"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    RejectionKind.NOT_ALLOWED: "Not allowed",
    RejectionKind.SERVER_REJECTED: "Server rejected",
    RejectionKind.ALREADY_HANDLED: "Already handled elsewhere",
}


class BookingEngineError(Exception):
    """Base class for everything the engine raises on purpose."""


class TransitionRejected(BookingEngineError):
    """Raised before any network call when a local rule forbids the action."""

    def __init__(self, reason: str, kind: RejectionKind = RejectionKind.NOT_ALLOWED) -> None:
        super().__init__(reason)
        self.reason = reason
        self.kind = kind

    def describe(self) -> str:
        return f"{self.kind.label}: {self.reason}"


class InvalidTransitionError(TransitionRejected):
    pass


class CancellationWindowExpired(TransitionRejected):
    pass


class ResponseChangeRejected(TransitionRejected):
    pass


class ArrivalConfirmationRejected(TransitionRejected):
    pass


class BookingNotTracked(BookingEngineError, KeyError):
    def __init__(self, booking_id: int) -> None:
        super().__init__(booking_id)
        self.booking_id = booking_id

    def __str__(self) -> str:
        return f"Booking {self.booking_id} is not tracked"


class BackendTransportError(RuntimeError):
    """Raised when the booking backend fails (network errors, non-2xx responses)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendConflictError(BackendTransportError):
    """Raised when the backend reports a state that contradicts the requested change."""

    def __init__(self, message: str, current_status: BookingStatus) -> None:
        super().__init__(message, status_code=409)
        self.current_status = current_status


class BackendContractError(RuntimeError):
    """Raised when a backend payload cannot be normalized (bad format or missing data)."""
    pass
