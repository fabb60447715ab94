from __future__ import annotations

from datetime import datetime, timezone

from workshop_booking.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
