from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

from workshop_booking.domain.entities.booking import ActorRole
from workshop_booking.domain.entities.policy import EnginePolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BOOKING_API_BASE_URL: str = "https://localhost:44316/api"
    BOOKING_API_TOKEN: str | None = None
    BOOKING_API_TIMEOUT_SECONDS: float = 10.0

    ACTOR_ROLE: ActorRole = ActorRole.WORKSHOP

    TICK_INTERVAL_SECONDS: float = 1.0
    # Product policy windows
    ARRIVAL_WINDOW_SECONDS: int = 30
    CANCELLATION_WINDOW_HOURS: float = 12
    CONFIRMATION_DEADLINE_MINUTES: float = 15

    def engine_policy(self) -> EnginePolicy:
        return EnginePolicy(
            arrival_window=timedelta(seconds=self.ARRIVAL_WINDOW_SECONDS),
            cancellation_window=timedelta(hours=self.CANCELLATION_WINDOW_HOURS),
            confirmation_deadline=timedelta(minutes=self.CONFIRMATION_DEADLINE_MINUTES),
        )


settings = Settings()
