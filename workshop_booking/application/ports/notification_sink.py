from abc import ABC, abstractmethod

from workshop_booking.domain.entities.events import EngineEvent


class NotificationSinkPort(ABC):
    @abstractmethod
    def publish(self, event: EngineEvent) -> None:
        raise NotImplementedError
