"""Notifier boundary: forwards selected events to an external delivery channel."""

from typing import Protocol

from ..config.logging import get_logger
from .event_bus import EventBus
from .events import (
    BreakoutDetectedEvent,
    DomainEvent,
    ErrorEvent,
    ScanCompletedEvent,
    TrackingStoppedEvent,
)

logger = get_logger(__name__)

NOTIFIED_EVENTS = (
    BreakoutDetectedEvent,
    ScanCompletedEvent,
    TrackingStoppedEvent,
    ErrorEvent,
)


class Notifier(Protocol):
    """Fire-and-forget sink for user-facing events."""

    def notify(self, event: DomainEvent) -> None: ...


class LogNotifier:
    """Notifier that writes events to the structured log."""

    def __init__(self):
        self.logger = logger.bind(component="log_notifier")

    def notify(self, event: DomainEvent) -> None:
        if isinstance(event, BreakoutDetectedEvent):
            self.logger.info(
                "Breakout detected",
                ticker=event.ticker,
                entry_price=round(event.entry_price, 2),
                current_price=round(event.current_price, 2),
                gain_percent=round(event.gain_percent, 2),
                strategy=event.strategy,
            )
        elif isinstance(event, ScanCompletedEvent):
            self.logger.info(
                "Scan completed",
                breakouts=len(event.breakout_list),
                waiting=len(event.waiting_list),
                total_scanned=event.total_scanned,
                error_count=event.error_count,
            )
        elif isinstance(event, ErrorEvent):
            self.logger.warning(
                "Scanner error",
                error_type=event.error_type,
                error=event.error_message,
                component=event.component,
            )
        else:
            self.logger.info("Event", **event.to_dict())


def register_notifier(event_bus: EventBus, notifier: Notifier) -> None:
    """Subscribe ``notifier`` to every user-facing event type."""

    def forward(event: DomainEvent) -> None:
        notifier.notify(event)

    forward.__name__ = f"notify_{type(notifier).__name__}"

    for event_type in NOTIFIED_EVENTS:
        event_bus.subscribe(event_type, forward)
