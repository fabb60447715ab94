from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from workshop_booking.application.dto.booking_payload import normalize_booking
from workshop_booking.application.exceptions import (
    ArrivalConfirmationRejected,
    BackendContractError,
    BackendConflictError,
    BackendTransportError,
    BookingNotTracked,
    RejectionKind,
    ResponseChangeRejected,
)
from workshop_booking.application.policies.lifecycle import LifecycleAction, check_transition
from workshop_booking.application.policies.response_policy import next_response_status
from workshop_booking.application.ports.booking_backend import BookingBackendPort
from workshop_booking.application.ports.booking_store import BookingStorePort
from workshop_booking.application.ports.clock import ClockPort
from workshop_booking.application.ports.notification_sink import NotificationSinkPort
from workshop_booking.domain.entities.booking import (
    ActorRole,
    BookingStatus,
    ResponseStatus,
    TrackedBooking,
)
from workshop_booking.domain.entities.events import ConfirmationExpired, MutationFailed, StatusChanged
from workshop_booking.domain.entities.policy import EnginePolicy

_MUTABLE_FIELDS = (
    "status",
    "response_status",
    "owner_confirmed_arrival",
    "counterparty_confirmed_arrival",
)


@dataclass(frozen=True)
class MutationResult:
    booking_id: int
    ok: bool
    booking: TrackedBooking | None
    reason: str | None = None
    kind: RejectionKind | None = None

    def describe(self) -> str:
        if self.ok or self.kind is None:
            return "OK"
        return f"{self.kind.label}: {self.reason}"


class MutationGateway:
    """
    Single writer of `status` and `response_status`.

    Each mutation snapshots the tracked booking, applies the change locally,
    then calls the backend. A failed call (transport error or unreadable reply)
    reverts the fields it changed and publishes MutationFailed; nothing is
    retried here. When the backend reports a different state than we
    believed, its value wins.
    """

    def __init__(
        self,
        store: BookingStorePort,
        backend: BookingBackendPort,
        sink: NotificationSinkPort,
        clock: ClockPort,
        policy: EnginePolicy | None = None,
        actor: ActorRole = ActorRole.WORKSHOP,
    ) -> None:
        self._store = store
        self._backend = backend
        self._sink = sink
        self._clock = clock
        self._policy = policy or EnginePolicy()
        self._actor = actor
        self._logger = logging.getLogger(__name__)

    @property
    def actor(self) -> ActorRole:
        return self._actor

    async def transition(
        self,
        booking_id: int,
        action: LifecycleAction,
        resync: bool = False,
    ) -> MutationResult:
        booking = self._require(booking_id)
        # Validated against the clock right now, not when the action was offered.
        target = check_transition(booking, action, self._clock.now(), self._policy)

        snapshot = booking
        optimistic = replace(booking, status=target)
        self._store.upsert(optimistic)
        self._sink.publish(StatusChanged(booking_id, snapshot.status, target))

        try:
            result = await self._backend.update_status(booking_id, target)
        except BackendConflictError as e:
            return self._accept_server_status(booking_id, e.current_status)
        except (BackendTransportError, BackendContractError) as e:
            return self._fail(snapshot, optimistic, target.value, e)

        if result.status is not target:
            self._logger.warning(
                "Backend reported a different status",
                extra={"booking_id": booking_id, "status": result.status.value},
            )
        # Server status wins over anything a concurrent rollback restored.
        self._overwrite_status(booking_id, result.status)

        if resync:
            await self._resync(booking_id)

        return MutationResult(booking_id=booking_id, ok=True, booking=self._untrack_if_done(booking_id))

    async def change_response(
        self,
        booking_id: int,
        requested: ResponseStatus,
        actor: ActorRole | None = None,
    ) -> MutationResult:
        booking = self._require(booking_id)
        if booking.is_settled:
            raise ResponseChangeRejected(
                f"booking is already {booking.status.value}", RejectionKind.ALREADY_HANDLED
            )
        decision = next_response_status(
            booking.response_status, requested, booking.appointment_at, self._clock.now()
        )
        if not decision.ok:
            raise ResponseChangeRejected(decision.reason or "response change not allowed", decision.kind)

        snapshot = booking
        optimistic = replace(booking, response_status=decision.status)
        self._store.upsert(optimistic)

        try:
            await self._backend.update_response(booking_id, decision.status, actor or self._actor)
        except (BackendTransportError, BackendContractError) as e:
            return self._fail(snapshot, optimistic, decision.status.name.title(), e)

        self._logger.info(
            "Booking response changed",
            extra={"booking_id": booking_id, "response": decision.status.name},
        )
        return MutationResult(booking_id=booking_id, ok=True, booking=self._store.get(booking_id))

    async def confirm_arrival(self, booking_id: int, actor: ActorRole | None = None) -> MutationResult:
        actor = actor or self._actor
        booking = self._require(booking_id)
        now = self._clock.now()
        if now < booking.appointment_at:
            raise ArrivalConfirmationRejected("appointment time has not arrived yet")
        if booking.is_settled:
            raise ArrivalConfirmationRejected(
                f"booking is already {booking.status.value}", RejectionKind.ALREADY_HANDLED
            )
        if booking.response_status is ResponseStatus.EXPIRED:
            raise ArrivalConfirmationRejected("confirmation deadline has passed")
        if booking.has_confirmed(actor):
            raise ArrivalConfirmationRejected(
                f"arrival already confirmed by {actor.value}", RejectionKind.ALREADY_HANDLED
            )

        snapshot = booking
        if actor is ActorRole.CUSTOMER:
            optimistic = replace(booking, owner_confirmed_arrival=True)
        else:
            optimistic = replace(booking, counterparty_confirmed_arrival=True)
        self._store.upsert(optimistic)

        try:
            result = await self._backend.confirm_arrival(booking_id, actor)
        except (BackendTransportError, BackendContractError) as e:
            return self._fail(snapshot, optimistic, "ArrivalConfirmed", e)

        current = self._store.get(booking_id)
        if current is None:
            return MutationResult(booking_id=booking_id, ok=True, booking=None)

        updated = replace(
            current,
            owner_confirmed_arrival=(
                current.owner_confirmed_arrival if result.owner_confirmed is None else result.owner_confirmed
            ),
            counterparty_confirmed_arrival=(
                current.counterparty_confirmed_arrival
                if result.counterparty_confirmed is None
                else result.counterparty_confirmed
            ),
        )
        if result.both_confirmed:
            updated = replace(
                updated,
                owner_confirmed_arrival=True,
                counterparty_confirmed_arrival=True,
                response_status=ResponseStatus.CONFIRMED,
            )
        if updated.status is not result.resulting_status:
            self._sink.publish(StatusChanged(booking_id, updated.status, result.resulting_status))
            updated = replace(updated, status=result.resulting_status)
        self._store.upsert(updated)

        if updated.both_confirmed:
            self._store.remove(booking_id)
            self._logger.info("Both parties confirmed arrival", extra={"booking_id": booking_id})
        else:
            self._untrack_if_done(booking_id)
        return MutationResult(booking_id=booking_id, ok=True, booking=updated)

    def expire_response(self, booking_id: int, deadline: datetime) -> None:
        booking = self._store.get(booking_id)
        if booking is None or booking.response_status in (ResponseStatus.EXPIRED, ResponseStatus.CONFIRMED):
            return
        self._store.upsert(replace(booking, response_status=ResponseStatus.EXPIRED))
        self._sink.publish(ConfirmationExpired(booking_id=booking_id, deadline=deadline))
        self._logger.warning(
            "Arrival confirmation expired",
            extra={"booking_id": booking_id, "deadline": deadline.isoformat()},
        )

    async def refresh(self, booking_id: int) -> TrackedBooking | None:
        """
        Re-read one booking from the backend and overwrite the local copy.
        Returns the fresh booking, or None when it is no longer worth tracking.
        """
        current = self._store.get(booking_id)
        payload = await self._backend.fetch_booking(booking_id)
        fresh = normalize_booking(payload, local_created_at=current.local_created_at if current else None)

        if current is not None:
            fresh = replace(fresh, has_arrival_fired=current.has_arrival_fired)
            if current.status is not fresh.status:
                self._sink.publish(StatusChanged(booking_id, current.status, fresh.status))

        if fresh.is_terminal or fresh.both_confirmed:
            self._store.remove(booking_id)
            return None
        self._store.upsert(fresh)
        return fresh

    def _require(self, booking_id: int) -> TrackedBooking:
        booking = self._store.get(booking_id)
        if booking is None:
            raise BookingNotTracked(booking_id)
        return booking

    def _fail(
        self,
        snapshot: TrackedBooking,
        optimistic: TrackedBooking,
        attempted: str,
        error: BackendTransportError | BackendContractError,
    ) -> MutationResult:
        reason = str(error) or "booking service error"
        self._rollback(snapshot, optimistic)
        self._sink.publish(MutationFailed(booking_id=snapshot.booking_id, attempted=attempted, reason=reason))
        self._logger.warning(
            "Booking mutation rolled back",
            extra={"booking_id": snapshot.booking_id, "attempted": attempted, "reason": reason},
        )
        return MutationResult(
            booking_id=snapshot.booking_id,
            ok=False,
            booking=self._store.get(snapshot.booking_id),
            reason=reason,
            kind=RejectionKind.SERVER_REJECTED,
        )

    def _rollback(self, snapshot: TrackedBooking, optimistic: TrackedBooking) -> None:
        """
        Undo only the fields this mutation changed, and only where they still
        hold the optimistic value. Writes made since by other mutations or by
        the tick (such as `has_arrival_fired`) are left alone.
        """
        current = self._store.get(snapshot.booking_id)
        if current is None:
            # Untracked while the request was in flight.
            return
        reverted = {
            name: getattr(snapshot, name)
            for name in _MUTABLE_FIELDS
            if getattr(optimistic, name) != getattr(snapshot, name)
            and getattr(current, name) == getattr(optimistic, name)
        }
        if reverted:
            self._store.upsert(replace(current, **reverted))

    def _accept_server_status(self, booking_id: int, server_status: BookingStatus) -> MutationResult:
        self._logger.info(
            "Booking already changed on the server",
            extra={"booking_id": booking_id, "status": server_status.value},
        )
        self._overwrite_status(booking_id, server_status)
        return MutationResult(
            booking_id=booking_id,
            ok=False,
            booking=self._untrack_if_done(booking_id),
            reason=f"booking is already {server_status.value}",
            kind=RejectionKind.ALREADY_HANDLED,
        )

    def _overwrite_status(self, booking_id: int, status: BookingStatus) -> None:
        current = self._store.get(booking_id)
        if current is None or current.status is status:
            return
        self._store.upsert(replace(current, status=status))
        self._sink.publish(StatusChanged(booking_id, current.status, status))

    async def _resync(self, booking_id: int) -> None:
        try:
            await self.refresh(booking_id)
        except (BackendTransportError, BackendContractError) as e:
            # The mutation itself succeeded; a stale copy is fixed by the next refresh.
            self._logger.warning("Resync after mutation failed", extra={"booking_id": booking_id, "error": str(e)})

    def _untrack_if_done(self, booking_id: int) -> TrackedBooking | None:
        booking = self._store.get(booking_id)
        if booking is not None and (booking.is_terminal or booking.both_confirmed):
            self._store.remove(booking_id)
        return booking
