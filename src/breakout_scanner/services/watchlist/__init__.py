"""Real-time watchlist tracking."""

from .entry_strategy import create_simulated_order, determine_entry_strategy
from .models import (
    BreakoutRecord,
    EntryDecision,
    EntryStrategyType,
    OrderStatus,
    SimulatedOrder,
    TickResult,
    TrackerState,
    TrackerStatus,
    WatchCandidate,
)
from .tracker import (
    TRACKING_JOB_ID,
    WATCHLIST_CACHE_KEY,
    WatchlistTracker,
    breakouts_cache_key,
    orders_cache_key,
)

__all__ = [
    "WatchlistTracker",
    "WatchCandidate",
    "TrackerState",
    "TrackerStatus",
    "TickResult",
    "BreakoutRecord",
    "EntryDecision",
    "EntryStrategyType",
    "OrderStatus",
    "SimulatedOrder",
    "determine_entry_strategy",
    "create_simulated_order",
    "TRACKING_JOB_ID",
    "WATCHLIST_CACHE_KEY",
    "breakouts_cache_key",
    "orders_cache_key",
]
