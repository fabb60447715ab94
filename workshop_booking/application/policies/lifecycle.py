from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from workshop_booking.application.exceptions import (
    CancellationWindowExpired,
    InvalidTransitionError,
    RejectionKind,
)
from workshop_booking.application.utils.formatting import format_duration
from workshop_booking.domain.entities.booking import BookingStatus, TrackedBooking
from workshop_booking.domain.entities.policy import EnginePolicy


class LifecycleAction(str, Enum):
    CONFIRM = "confirm"
    DECLINE = "decline"
    MARK_IN_PROGRESS = "mark_in_progress"
    MARK_READY = "mark_ready"
    COMPLETE = "complete"
    CANCEL = "cancel"


_TRANSITIONS: dict[LifecycleAction, tuple[frozenset[BookingStatus], BookingStatus]] = {
    LifecycleAction.CONFIRM: (frozenset({BookingStatus.PENDING}), BookingStatus.CONFIRMED),
    LifecycleAction.DECLINE: (frozenset({BookingStatus.PENDING}), BookingStatus.REJECTED),
    LifecycleAction.MARK_IN_PROGRESS: (frozenset({BookingStatus.CONFIRMED}), BookingStatus.IN_PROGRESS),
    LifecycleAction.MARK_READY: (frozenset({BookingStatus.IN_PROGRESS}), BookingStatus.READY_FOR_PICKUP),
    LifecycleAction.COMPLETE: (frozenset({BookingStatus.READY_FOR_PICKUP}), BookingStatus.COMPLETED),
    LifecycleAction.CANCEL: (
        frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED}),
        BookingStatus.CANCELLED,
    ),
}

CANCELLABLE_STATUSES = _TRANSITIONS[LifecycleAction.CANCEL][0]


def target_status(action: LifecycleAction, current: BookingStatus) -> BookingStatus:
    """Return the status `action` leads to from `current`, or raise InvalidTransitionError."""
    allowed_from, target = _TRANSITIONS[action]
    if current in allowed_from:
        return target
    if current is target:
        raise InvalidTransitionError(
            f"booking is already {current.value}", RejectionKind.ALREADY_HANDLED
        )
    if current in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED):
        raise InvalidTransitionError(
            f"cannot {action.value} a booking that is {current.value}",
            RejectionKind.ALREADY_HANDLED,
        )
    raise InvalidTransitionError(f"cannot {action.value} a booking that is {current.value}")


def is_within_cancellation_window(booking: TrackedBooking, now: datetime, window: timedelta) -> bool:
    return now - booking.effective_created_at <= window


def can_cancel(booking: TrackedBooking, now: datetime, policy: EnginePolicy | None = None) -> bool:
    window = (policy or EnginePolicy()).cancellation_window
    return booking.status in CANCELLABLE_STATUSES and is_within_cancellation_window(booking, now, window)


def check_transition(
    booking: TrackedBooking,
    action: LifecycleAction,
    now: datetime,
    policy: EnginePolicy | None = None,
) -> BookingStatus:
    """
    Validate `action` against the booking as it is right now.

    Cancellation re-checks the window at call time; callers must not rely on an
    earlier check done when the cancel button was first shown.
    """
    target = target_status(action, booking.status)
    if action is LifecycleAction.CANCEL:
        window = (policy or EnginePolicy()).cancellation_window
        if not is_within_cancellation_window(booking, now, window):
            raise CancellationWindowExpired(
                f"cancellation window expired ({format_duration(window.total_seconds())} after booking creation)"
            )
    return target
