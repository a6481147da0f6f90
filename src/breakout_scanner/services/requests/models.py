"""Data models for the request scheduler."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class SchedulerStatus:
    """Point-in-time view of the scheduler queues."""

    queued_count: int
    retrying_count: int
    in_flight_count: int
    failed_count: int
    queued_keys: List[str] = field(default_factory=list)
    retrying_keys: List[str] = field(default_factory=list)
    in_flight_keys: List[str] = field(default_factory=list)
    failed_keys: List[str] = field(default_factory=list)
    consecutive_rate_limits: int = 0
    is_active: bool = False

    @property
    def summary(self) -> str:
        return (
            f"in flight: {self.in_flight_count}, queued: {self.queued_count}, "
            f"retrying: {self.retrying_count}, failed: {self.failed_count}"
        )
