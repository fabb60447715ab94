from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any

from workshop_booking.application.dto.booking_payload import parse_booking_status
from workshop_booking.application.exceptions import BackendConflictError, BackendTransportError
from workshop_booking.application.ports.booking_backend import (
    ArrivalConfirmation,
    BookingBackendPort,
    StatusUpdateResult,
)
from workshop_booking.domain.entities.booking import (
    TERMINAL_STATUSES,
    ActorRole,
    BookingStatus,
    ResponseStatus,
)


class MockBookingBackend(BookingBackendPort):
    """In-memory stand-in for the booking REST service."""

    def __init__(self, bookings: list[dict[str, Any]] | None = None) -> None:
        self._bookings: dict[int, dict[str, Any]] = {}
        self._failures: list[Exception] = []
        self.calls: list[tuple[str, int, Any]] = []
        self.gate: asyncio.Event | None = None
        self._logger = logging.getLogger(__name__)
        for payload in bookings or []:
            self.seed(payload)

    def seed(self, payload: dict[str, Any]) -> None:
        booking_id = int(payload.get("bookingId") or payload["id"])
        record = copy.deepcopy(payload)
        record.setdefault("status", BookingStatus.PENDING.value)
        record.setdefault("responseStatus", int(ResponseStatus.PENDING))
        record.setdefault("carOwnerConfirmed", False)
        record.setdefault("workshopConfirmed", False)
        self._bookings[booking_id] = record

    def fail_next(self, error: Exception | None = None, times: int = 1) -> None:
        for _ in range(times):
            self._failures.append(error or BackendTransportError("Booking service returned 500", status_code=500))

    def set_server_status(self, booking_id: int, status: BookingStatus) -> None:
        self._record(booking_id)["status"] = status.value

    def server_state(self, booking_id: int) -> dict[str, Any]:
        return copy.deepcopy(self._record(booking_id))

    async def fetch_booking(self, booking_id: int) -> dict[str, Any]:
        await self._before_call("fetch_booking", booking_id, None)
        return {"success": True, "data": copy.deepcopy(self._record(booking_id))}

    async def update_status(self, booking_id: int, new_status: BookingStatus) -> StatusUpdateResult:
        await self._before_call("update_status", booking_id, new_status)
        record = self._record(booking_id)
        current = parse_booking_status(record["status"])
        if current is new_status:
            return StatusUpdateResult(booking_id=booking_id, status=current)
        if current in TERMINAL_STATUSES:
            raise BackendConflictError(f"Booking {booking_id} is already {current.value}", current_status=current)
        record["status"] = new_status.value
        self._logger.info(
            "Mock booking status updated",
            extra={"booking_id": booking_id, "status": new_status.value},
        )
        return StatusUpdateResult(booking_id=booking_id, status=new_status)

    async def update_response(
        self,
        booking_id: int,
        new_response_status: ResponseStatus,
        actor_role: ActorRole,
    ) -> None:
        await self._before_call("update_response", booking_id, (new_response_status, actor_role))
        record = self._record(booking_id)
        record["responseStatus"] = int(new_response_status)
        record["responseChangedBy"] = actor_role.value

    async def confirm_arrival(self, booking_id: int, confirmed_by: ActorRole) -> ArrivalConfirmation:
        await self._before_call("confirm_arrival", booking_id, confirmed_by)
        record = self._record(booking_id)
        if confirmed_by is ActorRole.CUSTOMER:
            record["carOwnerConfirmed"] = True
        else:
            record["workshopConfirmed"] = True
        both = bool(record["carOwnerConfirmed"] and record["workshopConfirmed"])
        if both:
            record["status"] = BookingStatus.IN_PROGRESS.value
            record["responseStatus"] = int(ResponseStatus.CONFIRMED)
        return ArrivalConfirmation(
            booking_id=booking_id,
            both_confirmed=both,
            resulting_status=parse_booking_status(record["status"]),
            owner_confirmed=record["carOwnerConfirmed"],
            counterparty_confirmed=record["workshopConfirmed"],
        )

    async def _before_call(self, name: str, booking_id: int, args: Any) -> None:
        self.calls.append((name, booking_id, args))
        if self.gate is not None:
            await self.gate.wait()
        if self._failures:
            raise self._failures.pop(0)

    def _record(self, booking_id: int) -> dict[str, Any]:
        record = self._bookings.get(booking_id)
        if record is None:
            raise BackendTransportError(f"Booking {booking_id} not found", status_code=404)
        return record
