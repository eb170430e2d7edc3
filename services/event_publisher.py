"""
Sale event publishing.

The application service hands every event it collected from the aggregate to
a publisher, once, after the repository save succeeds. Delivery guarantees
belong to the publisher.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Protocol

from domain.events import SaleEvent

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, events: Iterable[SaleEvent]) -> None:
        ...


class LoggingEventPublisher:
    """Writes each event to the application log."""

    def publish(self, events: Iterable[SaleEvent]) -> None:
        for event in events:
            logger.info(
                "Sale event %s for sale %s (%s): %s",
                event.event_type,
                event.sale_number,
                event.sale_id,
                event.to_record(),
            )


class RecordingEventPublisher:
    """Keeps published events in memory, in publish order."""

    def __init__(self) -> None:
        self.events: List[SaleEvent] = []

    def publish(self, events: Iterable[SaleEvent]) -> None:
        self.events.extend(events)

    def clear(self) -> None:
        self.events.clear()


__all__ = ["EventPublisher", "LoggingEventPublisher", "RecordingEventPublisher"]
