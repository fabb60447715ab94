from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, ".")

from workshop_booking.application.engine import BookingEngine
from workshop_booking.application.exceptions import TransitionRejected
from workshop_booking.application.policies.lifecycle import LifecycleAction
from workshop_booking.application.ports.clock import ClockPort
from workshop_booking.domain.entities.booking import ActorRole, ResponseStatus
from workshop_booking.infrastructure.backend.mock_backend import MockBookingBackend
from workshop_booking.infrastructure.notifications.event_bus import InProcessEventBus
from workshop_booking.infrastructure.store.memory_store import MemoryBookingStore


class SteppedClock(ClockPort):
    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


async def main() -> None:
    t0 = datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)
    clock = SteppedClock(t0)
    payload = {
        "bookingId": 1234,
        "exactAppointmentTime": (t0 + timedelta(hours=2)).isoformat(),
        "createdAt": t0.isoformat(),
        "status": "Pending",
        "responseStatus": 0,
    }
    backend = MockBookingBackend([payload])
    bus = InProcessEventBus()
    bus.subscribe(lambda event: print(f"  📣 {type(event).__name__}: {event}"))
    engine = BookingEngine(MemoryBookingStore(), backend, bus, clock)

    engine.tracker.track_payload(payload)
    print("✅ Tracking booking 1234, appointment at", t0 + timedelta(hours=2))

    print("\n1) Workshop accepts the booking")
    await engine.gateway.change_response(1234, ResponseStatus.ACCEPTED)
    await engine.gateway.transition(1234, LifecycleAction.CONFIRM)

    print("\n2) Customer tries to decline after accepting")
    try:
        await engine.gateway.change_response(1234, ResponseStatus.DECLINED, ActorRole.CUSTOMER)
    except TransitionRejected as e:
        print(f"  ❌ {e.describe()}")

    print("\n3) Backend outage during a status change")
    backend.fail_next()
    result = await engine.gateway.transition(1234, LifecycleAction.MARK_IN_PROGRESS)
    print(f"  ↩️  {result.describe()} -> status {engine.tracker.get(1234).status.value}")

    print("\n4) Ticking across the appointment instant")
    clock.advance(timedelta(hours=2) - timedelta(seconds=3))
    for _ in range(6):
        clock.advance(timedelta(seconds=1))
        now = engine.scheduler.tick()
        print(f"  ⏱  {now.time()} booking fired={engine.tracker.get(1234).has_arrival_fired}")

    print("\n5) Both parties confirm arrival")
    await engine.gateway.confirm_arrival(1234, ActorRole.WORKSHOP)
    await engine.gateway.confirm_arrival(1234, ActorRole.CUSTOMER)
    print(f"  ✅ still tracked: {engine.tracker.get(1234) is not None}")

    await engine.aclose()


if __name__ == "__main__":
    asyncio.run(main())
