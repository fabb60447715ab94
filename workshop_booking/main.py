import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workshop_booking.api.v1.bookings import router as bookings_router
from workshop_booking.application.engine import BookingEngine
from workshop_booking.core.config import settings
from workshop_booking.wiring.dependencies import get_engine, reset_engine

_CONTEXT_KEYS = ("booking_id", "status", "response", "attempted", "reason", "kind", "path", "error")


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    # Per-run job logs from the tick.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def create_app(engine: BookingEngine | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = engine or get_engine()
        app.state.engine.start()
        try:
            yield
        finally:
            await app.state.engine.aclose()
            if engine is None:
                reset_engine()

    app = FastAPI(title="Workshop Booking Engine", version="1.0.0", lifespan=lifespan)
    app.include_router(bookings_router, prefix="/bookings", tags=["bookings"])

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


configure_logging()
app = create_app()
