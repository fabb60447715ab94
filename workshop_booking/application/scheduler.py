from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from workshop_booking.application.ports.clock import ClockPort

TickCallback = Callable[[datetime], None]

TICK_JOB_ID = "booking-engine-tick"


class SchedulerHandle:
    """
    Repeating tick source owned by whoever composes the engine.

    The tick job is a coroutine, so APScheduler runs it on the event loop rather
    than in a worker thread. Callbacks run synchronously inside it and finish
    their store writes before any other callback or response handler runs.
    """

    def __init__(self, clock: ClockPort, interval_seconds: float = 1.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._clock = clock
        self._interval = interval_seconds
        self._callbacks: list[TickCallback] = []
        self._scheduler: AsyncIOScheduler | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def add_callback(self, callback: TickCallback) -> None:
        self._callbacks.append(callback)

    def start(self) -> None:
        if self.running:
            return
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self._tick_job,
            "interval",
            seconds=self._interval,
            id=TICK_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self._logger.info("Tick scheduler started", extra={"interval": self._interval})

    async def stop(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        if scheduler.running:
            scheduler.shutdown(wait=False)
        # Let cancelled job tasks unwind before the caller tears down the store.
        await asyncio.sleep(0)
        self._logger.info("Tick scheduler stopped")

    def tick(self) -> datetime:
        now = self._clock.now()
        for callback in list(self._callbacks):
            try:
                callback(now)
            except Exception:
                self._logger.exception(
                    "Tick callback failed",
                    extra={"callback": getattr(callback, "__name__", repr(callback))},
                )
        return now

    async def _tick_job(self) -> None:
        self.tick()
