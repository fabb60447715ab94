from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workshop_booking.application.exceptions import BackendContractError
from workshop_booking.domain.entities.booking import BookingStatus, ResponseStatus, TrackedBooking

# Older endpoints report a kebab-case job status instead of the booking status.
_JOB_STATUS_ALIASES: dict[str, BookingStatus] = {
    "new": BookingStatus.PENDING,
    "upcoming": BookingStatus.CONFIRMED,
    "in-progress": BookingStatus.IN_PROGRESS,
    "ready": BookingStatus.READY_FOR_PICKUP,
    "completed": BookingStatus.COMPLETED,
    "cancelled": BookingStatus.CANCELLED,
    "canceled": BookingStatus.CANCELLED,
    "rejected": BookingStatus.REJECTED,
}

_STATUS_BY_KEY: dict[str, BookingStatus] = {s.value.lower(): s for s in BookingStatus}
_RESPONSE_BY_KEY: dict[str, ResponseStatus] = {s.name.lower(): s for s in ResponseStatus}


def parse_booking_status(raw: Any) -> BookingStatus:
    if isinstance(raw, BookingStatus):
        return raw
    key = str(raw or "").strip().lower()
    status = _STATUS_BY_KEY.get(key.replace("_", "").replace(" ", "")) or _JOB_STATUS_ALIASES.get(key)
    if status is None:
        raise BackendContractError(f"Unknown booking status: {raw!r}")
    return status


def parse_response_status(raw: Any) -> ResponseStatus:
    if raw is None or raw == "":
        return ResponseStatus.PENDING
    if isinstance(raw, ResponseStatus):
        return raw
    try:
        if isinstance(raw, int) or str(raw).strip().isdigit():
            return ResponseStatus(int(raw))
    except ValueError:
        raise BackendContractError(f"Unknown response status: {raw!r}")
    status = _RESPONSE_BY_KEY.get(str(raw).strip().lower())
    if status is None:
        raise BackendContractError(f"Unknown response status: {raw!r}")
    return status


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BookingPayload(BaseModel):
    """
    Raw booking payload as the backend sends it. This is the only place that
    knows about alternate field names; everything downstream sees TrackedBooking.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    booking_id: int | None = Field(default=None, alias="bookingId")
    exact_appointment_time: datetime | None = Field(default=None, alias="exactAppointmentTime")
    appointment_date: datetime | None = Field(default=None, alias="appointmentDate")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    status: str | None = None
    job_status: str | None = Field(default=None, alias="jobStatus")
    response_status: int | str | None = Field(default=None, alias="responseStatus")
    car_owner_confirmed: bool | None = Field(default=None, alias="carOwnerConfirmed")
    workshop_confirmed: bool | None = Field(default=None, alias="workshopConfirmed")
    both_confirmed: bool | None = Field(default=None, alias="bothConfirmed")

    @classmethod
    def from_raw(cls, payload: dict[str, Any]) -> "BookingPayload":
        body = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        try:
            return cls.model_validate(body)
        except ValidationError as e:
            raise BackendContractError(f"Malformed booking payload: {e.error_count()} error(s)") from e

    def to_tracked_booking(self, local_created_at: datetime | None = None) -> TrackedBooking:
        booking_id = self.booking_id if self.booking_id is not None else self.id
        if booking_id is None:
            raise BackendContractError("Booking payload has no id")

        appointment = self.exact_appointment_time or self.appointment_date
        if appointment is None:
            raise BackendContractError(f"Booking {booking_id} has no appointment time")

        created = self.created_at or local_created_at
        if created is None:
            raise BackendContractError(f"Booking {booking_id} has no creation time")

        raw_status = self.status if self.status else self.job_status
        status = parse_booking_status(raw_status) if raw_status else BookingStatus.PENDING

        owner = bool(self.car_owner_confirmed)
        counterparty = bool(self.workshop_confirmed)
        if self.both_confirmed:
            owner = counterparty = True
        if status is BookingStatus.IN_PROGRESS:
            # Confirmation flags belong to the arrival step that is already over.
            owner = counterparty = False

        return TrackedBooking(
            booking_id=int(booking_id),
            appointment_at=as_utc(appointment),
            created_at=as_utc(created),
            status=status,
            response_status=parse_response_status(self.response_status),
            owner_confirmed_arrival=owner,
            counterparty_confirmed_arrival=counterparty,
            local_created_at=as_utc(local_created_at) if local_created_at else None,
        )


def normalize_booking(payload: dict[str, Any], local_created_at: datetime | None = None) -> TrackedBooking:
    return BookingPayload.from_raw(payload).to_tracked_booking(local_created_at=local_created_at)
