from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from workshop_booking.application.policies.lifecycle import can_cancel
from workshop_booking.application.policies.response_policy import can_change_response
from workshop_booking.application.use_cases.mutation_gateway import MutationResult
from workshop_booking.application.utils.formatting import booking_reference, format_time_remaining
from workshop_booking.domain.entities.booking import ActorRole, TrackedBooking
from workshop_booking.domain.entities.events import EngineEvent
from workshop_booking.domain.entities.policy import EnginePolicy


class BookingSchema(BaseModel):
    booking_id: int
    reference: str
    appointment_at: datetime
    created_at: datetime
    effective_created_at: datetime
    status: str
    response_status: str
    has_arrival_fired: bool
    owner_confirmed_arrival: bool
    counterparty_confirmed_arrival: bool
    both_confirmed: bool
    can_cancel: bool
    can_change_response: bool
    time_remaining: str

    @classmethod
    def from_booking(cls, booking: TrackedBooking, now: datetime, policy: EnginePolicy) -> "BookingSchema":
        return cls(
            booking_id=booking.booking_id,
            reference=booking_reference(booking.booking_id, booking.created_at.year),
            appointment_at=booking.appointment_at,
            created_at=booking.created_at,
            effective_created_at=booking.effective_created_at,
            status=booking.status.value,
            response_status=booking.response_status.name.title(),
            has_arrival_fired=booking.has_arrival_fired,
            owner_confirmed_arrival=booking.owner_confirmed_arrival,
            counterparty_confirmed_arrival=booking.counterparty_confirmed_arrival,
            both_confirmed=booking.both_confirmed,
            can_cancel=can_cancel(booking, now, policy),
            can_change_response=can_change_response(booking, now),
            time_remaining=format_time_remaining((booking.appointment_at - now).total_seconds()),
        )


class BookingListSchema(BaseModel):
    version: int
    bookings: list[BookingSchema]


class TrackRequestSchema(BaseModel):
    payload: dict[str, Any]
    local_created_at: datetime | None = None


class ResponseChangeRequestSchema(BaseModel):
    response_status: int | str
    actor: ActorRole | None = None


class ConfirmArrivalRequestSchema(BaseModel):
    actor: ActorRole | None = None


class MutationResultSchema(BaseModel):
    booking_id: int
    ok: bool
    message: str
    reason: str | None = None
    kind: str | None = None
    booking: BookingSchema | None = None

    @classmethod
    def from_result(cls, result: MutationResult, now: datetime, policy: EnginePolicy) -> "MutationResultSchema":
        return cls(
            booking_id=result.booking_id,
            ok=result.ok,
            message=result.describe(),
            reason=result.reason,
            kind=result.kind.value if result.kind else None,
            booking=BookingSchema.from_booking(result.booking, now, policy) if result.booking else None,
        )


class EventSchema(BaseModel):
    type: str
    booking_id: int
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: EngineEvent) -> "EventSchema":
        data = {k: v for k, v in vars(event).items() if k != "booking_id"}
        return cls(type=type(event).__name__, booking_id=event.booking_id, data=data)
