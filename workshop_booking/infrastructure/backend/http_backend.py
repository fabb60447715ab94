from __future__ import annotations

import logging
from typing import Any

import httpx

from workshop_booking.application.dto.booking_payload import parse_booking_status
from workshop_booking.application.exceptions import (
    BackendContractError,
    BackendConflictError,
    BackendTransportError,
)
from workshop_booking.application.ports.booking_backend import (
    ArrivalConfirmation,
    BookingBackendPort,
    StatusUpdateResult,
)
from workshop_booking.core.config import settings
from workshop_booking.domain.entities.booking import ActorRole, BookingStatus, ResponseStatus


class HttpBookingBackend(BookingBackendPort):
    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.BOOKING_API_BASE_URL).rstrip("/")
        self._api_token = api_token if api_token is not None else settings.BOOKING_API_TOKEN
        headers = {"Authorization": f"Bearer {self._api_token}"} if self._api_token else {}
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout or settings.BOOKING_API_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    async def fetch_booking(self, booking_id: int) -> dict[str, Any]:
        data = await self._request("GET", f"/Booking/{booking_id}/details", booking_id)
        if not isinstance(data, dict):
            raise BackendContractError(f"Booking {booking_id} details are not an object")
        return data

    async def update_status(self, booking_id: int, new_status: BookingStatus) -> StatusUpdateResult:
        data = await self._request(
            "PUT",
            f"/Booking/{booking_id}/status",
            booking_id,
            json={"status": new_status.value},
        )
        raw_status = data.get("status") if isinstance(data, dict) else None
        status = parse_booking_status(raw_status) if raw_status else new_status
        self._logger.info(
            "Booking status updated",
            extra={"booking_id": booking_id, "status": status.value},
        )
        return StatusUpdateResult(booking_id=booking_id, status=status)

    async def update_response(
        self,
        booking_id: int,
        new_response_status: ResponseStatus,
        actor_role: ActorRole,
    ) -> None:
        await self._request(
            "PUT",
            f"/Booking/{booking_id}/response",
            booking_id,
            json={"responseStatus": int(new_response_status), "changedBy": actor_role.value},
        )

    async def confirm_arrival(self, booking_id: int, confirmed_by: ActorRole) -> ArrivalConfirmation:
        data = await self._request(
            "POST",
            "/Booking/confirm-appointment",
            booking_id,
            json={"bookingId": booking_id, "isConfirmed": True, "confirmedBy": confirmed_by.value},
        )
        if not isinstance(data, dict):
            raise BackendContractError(f"Confirmation response for booking {booking_id} is not an object")
        both = bool(data.get("bothConfirmed"))
        raw_status = data.get("status")
        if raw_status:
            status = parse_booking_status(raw_status)
        else:
            status = BookingStatus.IN_PROGRESS if both else BookingStatus.CONFIRMED
        return ArrivalConfirmation(
            booking_id=booking_id,
            both_confirmed=both or status is BookingStatus.IN_PROGRESS,
            resulting_status=status,
            owner_confirmed=data.get("carOwnerConfirmed"),
            counterparty_confirmed=data.get("workshopConfirmed"),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, booking_id: int, json: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            self._logger.error(
                "Booking backend unreachable",
                extra={"booking_id": booking_id, "path": path, "error": str(e)},
            )
            raise BackendTransportError(f"Booking service unreachable: {e}") from e

        body = _safe_json(response)
        if response.status_code == 409 and isinstance(body, dict):
            detail = body["data"] if isinstance(body.get("data"), dict) else body
            current = detail.get("status")
            if current:
                raise BackendConflictError(
                    body.get("message") or f"Booking {booking_id} changed on the server",
                    current_status=parse_booking_status(current),
                )

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            self._logger.error(
                "Booking backend request failed",
                extra={"booking_id": booking_id, "path": path, "status": response.status_code},
            )
            raise BackendTransportError(
                message or f"Booking service returned {response.status_code}",
                status_code=response.status_code,
            )

        if isinstance(body, dict) and body.get("success") is False:
            raise BackendTransportError(body.get("message") or "Booking service reported failure")
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body


def _safe_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
