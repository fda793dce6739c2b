"""Notification sink port.

Sinks receive each committed domain event. Delivery is best-effort: a
failing sink is logged and never fails the transition that produced the
event.
"""

from typing import Protocol

import structlog

from orderflow.domain.base import DomainEvent

logger = structlog.get_logger()


class NotificationSink(Protocol):
    """Receiver of order lifecycle notifications."""

    async def notify(self, event: DomainEvent) -> None:
        ...


class LoggingNotificationSink:
    """Sink that writes each event to the structured log."""

    async def notify(self, event: DomainEvent) -> None:
        logger.info("Order notification", **event.to_dict())


class RecordingNotificationSink:
    """Sink that keeps events in memory (for tests and local runs)."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def notify(self, event: DomainEvent) -> None:
        self.events.append(event)


async def publish_events(
    sink: NotificationSink | None,
    events: list[DomainEvent],
    request_id: str | None = None,
) -> None:
    """Deliver events to a sink, logging and dropping any failure.

    Args:
        sink: Destination; nothing happens when None.
        events: Events collected from a committed aggregate.
        request_id: Request ID for correlation.
    """
    if sink is None:
        return
    for event in events:
        try:
            await sink.notify(event)
        except Exception as e:
            logger.warning(
                "Notification delivery failed",
                event_type=event.event_type,
                aggregate_id=event.aggregate_id,
                error=str(e),
                request_id=request_id,
            )
