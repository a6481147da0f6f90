"""Event-driven boundary between the scanner core and its consumers."""

from .event_bus import EventBus
from .events import (
    AcquisitionProgressEvent,
    BreakoutDetectedEvent,
    DomainEvent,
    ErrorEvent,
    RequestsCancelledEvent,
    ScanCompletedEvent,
    TrackingStartedEvent,
    TrackingStoppedEvent,
)
from .notifier import LogNotifier, Notifier, register_notifier

__all__ = [
    # Events
    "DomainEvent",
    "ScanCompletedEvent",
    "BreakoutDetectedEvent",
    "AcquisitionProgressEvent",
    "TrackingStartedEvent",
    "TrackingStoppedEvent",
    "RequestsCancelledEvent",
    "ErrorEvent",
    # Event Bus
    "EventBus",
    # Notifier
    "Notifier",
    "LogNotifier",
    "register_notifier",
]
