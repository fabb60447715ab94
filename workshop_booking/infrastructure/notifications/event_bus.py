from __future__ import annotations

import logging
from collections import deque
from typing import Callable

from workshop_booking.application.ports.notification_sink import NotificationSinkPort
from workshop_booking.domain.entities.events import EngineEvent

EventHandler = Callable[[EngineEvent], None]


class InProcessEventBus(NotificationSinkPort):
    """
    Fan-out sink for engine events. Subscribers (UI, toast layer) decide how to
    deliver; a short history is kept for late readers such as the HTTP surface.
    """

    def __init__(self, history_limit: int = 100) -> None:
        self._handlers: list[EventHandler] = []
        self._history: deque[EngineEvent] = deque(maxlen=history_limit)
        self._logger = logging.getLogger(__name__)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: EngineEvent) -> None:
        self._history.append(event)
        self._logger.debug(
            "Engine event",
            extra={"event": type(event).__name__, "booking_id": event.booking_id},
        )
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                self._logger.exception(
                    "Event handler failed",
                    extra={"event": type(event).__name__, "booking_id": event.booking_id},
                )

    def recent(self, limit: int | None = None) -> list[EngineEvent]:
        events = list(self._history)
        return events[-limit:] if limit else events
