from __future__ import annotations

import logging
from datetime import datetime

from workshop_booking.application.ports.booking_backend import BookingBackendPort
from workshop_booking.application.ports.booking_store import BookingStorePort, StoreChange
from workshop_booking.application.ports.clock import ClockPort
from workshop_booking.application.ports.notification_sink import NotificationSinkPort
from workshop_booking.application.scheduler import SchedulerHandle
from workshop_booking.application.use_cases.arrival_trigger import ArrivalTriggerEvaluator
from workshop_booking.application.use_cases.confirmation_deadline import ConfirmationDeadlineEvaluator
from workshop_booking.application.use_cases.mutation_gateway import MutationGateway
from workshop_booking.application.use_cases.tracking import BookingTracker
from workshop_booking.domain.entities.booking import ActorRole
from workshop_booking.domain.entities.policy import EnginePolicy


class BookingEngine:
    """Owns the store, the evaluators, the gateway and the tick scheduler."""

    def __init__(
        self,
        store: BookingStorePort,
        backend: BookingBackendPort,
        sink: NotificationSinkPort,
        clock: ClockPort,
        policy: EnginePolicy | None = None,
        actor: ActorRole = ActorRole.WORKSHOP,
        tick_interval: float = 1.0,
    ) -> None:
        self.policy = policy or EnginePolicy()
        self.store = store
        self.backend = backend
        self.sink = sink
        self.clock = clock
        self.tracker = BookingTracker(store)
        self.gateway = MutationGateway(store, backend, sink, clock, self.policy, actor)
        self.arrivals = ArrivalTriggerEvaluator(store, sink, self.policy)
        self.deadlines = ConfirmationDeadlineEvaluator(store, self.gateway, self.policy)
        self.scheduler = SchedulerHandle(clock, tick_interval)
        self.scheduler.add_callback(self.on_tick)
        self._logger = logging.getLogger(__name__)
        store.subscribe(self._log_store_change)

    def on_tick(self, now: datetime) -> None:
        self.arrivals.evaluate(now)
        self.deadlines.evaluate(now)

    def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        """Stop ticking and drop everything tracked, as on client unload."""
        await self.scheduler.stop()
        self.store.clear()

    async def aclose(self) -> None:
        await self.stop()
        await self.backend.aclose()

    def _log_store_change(self, change: StoreChange) -> None:
        self._logger.debug("Store changed", extra={"booking_id": change.booking_id, "change": change.kind})
