from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0
from workshop_booking.application.dto.booking_payload import (
    normalize_booking,
    parse_booking_status,
    parse_response_status,
)
from workshop_booking.application.exceptions import BackendContractError
from workshop_booking.domain.entities.booking import BookingStatus, ResponseStatus


def _payload(**overrides):
    payload = {
        "bookingId": 42,
        "exactAppointmentTime": "2025-03-14T10:00:00Z",
        "createdAt": "2025-03-14T08:00:00Z",
        "status": "Pending",
        "responseStatus": 0,
    }
    payload.update(overrides)
    return payload


def test_normalizes_camel_case_payload():
    booking = normalize_booking(_payload())

    assert booking.booking_id == 42
    assert booking.appointment_at == T0 + timedelta(hours=2)
    assert booking.created_at == T0
    assert booking.status is BookingStatus.PENDING
    assert booking.response_status is ResponseStatus.PENDING
    assert booking.has_arrival_fired is False


def test_unwraps_data_envelope():
    booking = normalize_booking({"success": True, "data": _payload(status="Confirmed")})
    assert booking.status is BookingStatus.CONFIRMED


def test_alternate_field_names():
    payload = {
        "id": 7,
        "appointmentDate": "2025-03-14T10:00:00",
        "createdAt": "2025-03-14T08:00:00",
        "jobStatus": "in-progress",
    }
    booking = normalize_booking(payload)

    assert booking.booking_id == 7
    assert booking.appointment_at.tzinfo is not None
    assert booking.appointment_at == T0 + timedelta(hours=2)
    assert booking.status is BookingStatus.IN_PROGRESS


def test_status_field_wins_over_job_status():
    booking = normalize_booking(_payload(status="Confirmed", jobStatus="completed"))
    assert booking.status is BookingStatus.CONFIRMED


def test_offsets_are_converted_to_utc():
    booking = normalize_booking(_payload(exactAppointmentTime="2025-03-14T12:00:00+02:00"))
    assert booking.appointment_at == datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc)


def test_local_creation_time_is_kept_and_used_when_backend_omits_it():
    local = T0 + timedelta(minutes=5)
    payload = _payload()
    del payload["createdAt"]

    booking = normalize_booking(payload, local_created_at=local)

    assert booking.created_at == local
    assert booking.local_created_at == local
    assert booking.effective_created_at == local


def test_both_confirmed_flag_sets_both_parties():
    booking = normalize_booking(_payload(status="Confirmed", bothConfirmed=True))
    assert booking.owner_confirmed_arrival is True
    assert booking.counterparty_confirmed_arrival is True
    assert booking.both_confirmed is True


def test_in_progress_clears_confirmation_flags():
    booking = normalize_booking(_payload(status="InProgress", carOwnerConfirmed=True, workshopConfirmed=True))
    assert booking.owner_confirmed_arrival is False
    assert booking.counterparty_confirmed_arrival is False


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"exactAppointmentTime": "2025-03-14T10:00:00Z", "createdAt": "2025-03-14T08:00:00Z"}, "no id"),
        ({"bookingId": 1, "createdAt": "2025-03-14T08:00:00Z"}, "no appointment"),
        ({"bookingId": 1, "exactAppointmentTime": "2025-03-14T10:00:00Z"}, "no creation"),
        (_payload(exactAppointmentTime="tomorrow-ish"), "Malformed"),
        (_payload(status="Teleported"), "Unknown booking status"),
    ],
)
def test_contract_violations(payload, message):
    with pytest.raises(BackendContractError) as exc:
        normalize_booking(payload)
    assert message in str(exc.value)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Pending", BookingStatus.PENDING),
        ("ready_for_pickup", BookingStatus.READY_FOR_PICKUP),
        ("In Progress", BookingStatus.IN_PROGRESS),
        ("upcoming", BookingStatus.CONFIRMED),
        ("canceled", BookingStatus.CANCELLED),
        (BookingStatus.REJECTED, BookingStatus.REJECTED),
    ],
)
def test_parse_booking_status(raw, expected):
    assert parse_booking_status(raw) is expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ResponseStatus.PENDING),
        ("", ResponseStatus.PENDING),
        (1, ResponseStatus.ACCEPTED),
        ("2", ResponseStatus.DECLINED),
        ("Confirmed", ResponseStatus.CONFIRMED),
        ("expired", ResponseStatus.EXPIRED),
    ],
)
def test_parse_response_status(raw, expected):
    assert parse_response_status(raw) is expected


def test_unknown_response_status():
    with pytest.raises(BackendContractError):
        parse_response_status(9)
    with pytest.raises(BackendContractError):
        parse_response_status("maybe")
