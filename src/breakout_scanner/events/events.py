"""Domain events emitted by the scanner and tracker."""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4


@dataclass
class DomainEvent(ABC):
    """Base class for all domain events."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)
    event_version: str = "1.0"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result = {
            "event_type": self.__class__.__name__,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_version": self.event_version,
            "metadata": self.metadata,
        }

        # Add event-specific fields
        for field_name, field_value in self.__dict__.items():
            if field_name not in ["event_id", "timestamp", "event_version", "metadata"]:
                if isinstance(field_value, datetime):
                    result[field_name] = field_value.isoformat()
                else:
                    result[field_name] = field_value

        return result


@dataclass
class ScanCompletedEvent(DomainEvent):
    """Event triggered when a full-universe scan finishes."""

    breakout_list: List[Dict[str, Any]] = field(default_factory=list)
    waiting_list: List[Dict[str, Any]] = field(default_factory=list)
    total_scanned: int = 0
    error_count: int = 0
    duration_ms: float = 0.0


@dataclass
class BreakoutDetectedEvent(DomainEvent):
    """Event triggered when a watched candidate crosses its entry price."""

    ticker: str = ""
    entry_price: float = 0.0
    current_price: float = 0.0
    gain_percent: float = 0.0
    time: Optional[datetime] = None
    strategy: Optional[str] = None


@dataclass
class AcquisitionProgressEvent(DomainEvent):
    """Event triggered after each ticker of a collection pass."""

    processed: int = 0
    total: int = 0
    ticker: str = ""
    success: bool = True


@dataclass
class TrackingStartedEvent(DomainEvent):
    """Event triggered when real-time tracking starts."""

    candidate_count: int = 0
    interval_seconds: float = 0.0


@dataclass
class TrackingStoppedEvent(DomainEvent):
    """Event triggered when real-time tracking stops."""

    reason: str = "requested"
    breakout_count: int = 0


@dataclass
class RequestsCancelledEvent(DomainEvent):
    """Event triggered when pending upstream requests are cancelled."""

    keys: List[str] = field(default_factory=list)
    cancelled_count: int = 0


@dataclass
class ErrorEvent(DomainEvent):
    """Event triggered when an error occurs outside a per-ticker result."""

    error_type: str = ""
    error_message: str = ""
    component: str = ""
    operation: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
