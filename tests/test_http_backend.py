from __future__ import annotations

import json

import httpx
import pytest

from workshop_booking.application.exceptions import (
    BackendContractError,
    BackendConflictError,
    BackendTransportError,
)
from workshop_booking.domain.entities.booking import ActorRole, BookingStatus, ResponseStatus
from workshop_booking.infrastructure.backend.http_backend import HttpBookingBackend

BASE_URL = "https://backend.test/api"


def _backend(handler) -> HttpBookingBackend:
    return HttpBookingBackend(
        base_url=BASE_URL,
        api_token="secret-token",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_booking_unwraps_envelope_and_sends_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"success": True, "data": {"bookingId": 3, "status": "Pending"}})

    backend = _backend(handler)
    payload = await backend.fetch_booking(3)
    await backend.aclose()

    assert payload == {"bookingId": 3, "status": "Pending"}
    assert seen["url"] == f"{BASE_URL}/Booking/3/details"
    assert seen["auth"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_update_status_sends_status_and_reads_back_result():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"status": "Confirmed"}})

    backend = _backend(handler)
    result = await backend.update_status(3, BookingStatus.CONFIRMED)
    await backend.aclose()

    assert seen == {"method": "PUT", "path": "/api/Booking/3/status", "body": {"status": "Confirmed"}}
    assert result.status is BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_update_status_without_body_assumes_requested_status():
    backend = _backend(lambda request: httpx.Response(204))
    result = await backend.update_status(3, BookingStatus.READY_FOR_PICKUP)
    await backend.aclose()

    assert result.status is BookingStatus.READY_FOR_PICKUP


@pytest.mark.asyncio
async def test_update_response_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    backend = _backend(handler)
    await backend.update_response(8, ResponseStatus.DECLINED, ActorRole.CUSTOMER)
    await backend.aclose()

    assert seen["path"] == "/api/Booking/8/response"
    assert seen["body"] == {"responseStatus": 2, "changedBy": "customer"}


@pytest.mark.asyncio
async def test_confirm_arrival_parses_confirmation():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {"bothConfirmed": True, "carOwnerConfirmed": True, "workshopConfirmed": True},
            },
        )

    backend = _backend(handler)
    result = await backend.confirm_arrival(8, ActorRole.WORKSHOP)
    await backend.aclose()

    assert seen["body"] == {"bookingId": 8, "isConfirmed": True, "confirmedBy": "workshop"}
    assert result.both_confirmed is True
    assert result.resulting_status is BookingStatus.IN_PROGRESS
    assert result.owner_confirmed is True


@pytest.mark.asyncio
async def test_confirm_arrival_rejects_non_object_body():
    backend = _backend(lambda request: httpx.Response(200, json=["unexpected"]))
    with pytest.raises(BackendContractError):
        await backend.confirm_arrival(8, ActorRole.WORKSHOP)
    await backend.aclose()


@pytest.mark.asyncio
async def test_conflict_carries_server_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"message": "Booking already cancelled", "data": {"status": "Cancelled"}})

    backend = _backend(handler)
    with pytest.raises(BackendConflictError) as exc:
        await backend.update_status(3, BookingStatus.CONFIRMED)
    await backend.aclose()

    assert exc.value.current_status is BookingStatus.CANCELLED
    assert exc.value.status_code == 409
    assert str(exc.value) == "Booking already cancelled"


@pytest.mark.asyncio
async def test_server_error_becomes_transport_error():
    backend = _backend(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(BackendTransportError) as exc:
        await backend.update_status(3, BookingStatus.CONFIRMED)
    await backend.aclose()

    assert exc.value.status_code == 500
    assert str(exc.value) == "Booking service returned 500"


@pytest.mark.asyncio
async def test_conflict_without_status_is_plain_transport_error():
    backend = _backend(lambda request: httpx.Response(409, json={"message": "Try again"}))
    with pytest.raises(BackendTransportError) as exc:
        await backend.update_status(3, BookingStatus.CONFIRMED)
    await backend.aclose()

    assert not isinstance(exc.value, BackendConflictError)
    assert str(exc.value) == "Try again"


@pytest.mark.asyncio
async def test_success_false_is_a_failure():
    backend = _backend(lambda request: httpx.Response(200, json={"success": False, "message": "Locked"}))
    with pytest.raises(BackendTransportError, match="Locked"):
        await backend.update_response(3, ResponseStatus.ACCEPTED, ActorRole.WORKSHOP)
    await backend.aclose()


@pytest.mark.asyncio
async def test_network_error_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = _backend(handler)
    with pytest.raises(BackendTransportError, match="unreachable"):
        await backend.fetch_booking(3)
    await backend.aclose()
