import logging

from workshop_booking.application.engine import BookingEngine
from workshop_booking.application.ports.booking_backend import BookingBackendPort
from workshop_booking.core.config import settings
from workshop_booking.infrastructure.backend.http_backend import HttpBookingBackend
from workshop_booking.infrastructure.backend.mock_backend import MockBookingBackend
from workshop_booking.infrastructure.clock.system_clock import SystemClock
from workshop_booking.infrastructure.notifications.event_bus import InProcessEventBus
from workshop_booking.infrastructure.store.memory_store import MemoryBookingStore


_engine: BookingEngine | None = None


def get_booking_backend() -> BookingBackendPort:
    logger = logging.getLogger(__name__)
    logger.info("ENV=%s", settings.ENV)

    if settings.ENV.lower() in {"dev", "local"} and not settings.BOOKING_API_TOKEN:
        logger.info("Using MockBookingBackend (token missing, ENV=dev/local)")
        return MockBookingBackend()

    logger.info("Using HttpBookingBackend at %s", settings.BOOKING_API_BASE_URL)
    return HttpBookingBackend()


def build_engine() -> BookingEngine:
    return BookingEngine(
        store=MemoryBookingStore(),
        backend=get_booking_backend(),
        sink=InProcessEventBus(),
        clock=SystemClock(),
        policy=settings.engine_policy(),
        actor=settings.ACTOR_ROLE,
        tick_interval=settings.TICK_INTERVAL_SECONDS,
    )


def get_engine() -> BookingEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def reset_engine() -> None:
    global _engine
    _engine = None
