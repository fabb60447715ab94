from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from workshop_booking.domain.entities.booking import TrackedBooking


@dataclass(frozen=True)
class StoreChange:
    kind: str  # "upsert" | "remove" | "clear"
    booking_id: int | None
    booking: TrackedBooking | None = None


StoreListener = Callable[[StoreChange], None]


class BookingStorePort(ABC):
    @abstractmethod
    def upsert(self, booking: TrackedBooking) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, booking_id: int) -> TrackedBooking | None:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: int) -> TrackedBooking | None:
        raise NotImplementedError

    @abstractmethod
    def all(self) -> list[TrackedBooking]:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a listener called after every mutation.
        Returns a callable that unsubscribes it.
        """
        raise NotImplementedError
