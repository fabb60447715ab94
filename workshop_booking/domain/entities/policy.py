from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class EnginePolicy:
    """Product policy windows. Built from settings, never read from globals."""

    arrival_window: timedelta = timedelta(seconds=30)
    cancellation_window: timedelta = timedelta(hours=12)
    confirmation_deadline: timedelta = timedelta(minutes=15)
