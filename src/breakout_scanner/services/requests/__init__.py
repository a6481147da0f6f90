"""Outbound request scheduling."""

from .models import SchedulerStatus
from .scheduler import Operation, RequestScheduler

__all__ = ["RequestScheduler", "SchedulerStatus", "Operation"]
