"""Data models for real-time watchlist tracking."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class TrackerState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class EntryStrategyType(str, Enum):
    IMMEDIATE = "immediate"
    PARTIAL = "partial"
    PULLBACK = "pullback"
    OBSERVE = "observe"


class OrderStatus(str, Enum):
    SIMULATED = "SIMULATED"


@dataclass
class WatchCandidate:
    """
    A ticker being polled for a breakout.

    Only the tracker mutates candidates; ``has_breakout`` never goes back to
    False once set.
    """

    ticker: str
    entry_price: float
    stop_loss: float
    target1: float
    target2: float
    score: int
    prior_close: float = 0.0
    volatility_percent: float = 0.0
    has_breakout: bool = False
    breakout_time: Optional[datetime] = None
    breakout_price: Optional[float] = None
    current_price: Optional[float] = None
    last_check: Optional[datetime] = None
    added_at: Optional[datetime] = None

    @property
    def gain_percent(self) -> float:
        price = self.breakout_price if self.has_breakout else self.current_price
        if not price or self.entry_price <= 0:
            return 0.0
        return (price - self.entry_price) / self.entry_price * 100

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for name in ("breakout_time", "last_check", "added_at"):
            if data[name] is not None:
                data[name] = data[name].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatchCandidate":
        values = dict(data)
        for name in ("breakout_time", "last_check", "added_at"):
            if values.get(name):
                values[name] = datetime.fromisoformat(values[name])
        return cls(**values)


@dataclass(frozen=True)
class EntryDecision:
    """How to enter a position after a breakout."""

    strategy: EntryStrategyType
    breakout_gap_percent: float
    position_fraction: float
    entry_price: Optional[float]
    stop_loss: Optional[float]
    confidence: str
    note: str = ""


@dataclass
class SimulatedOrder:
    """Paper order record; never sent to a broker."""

    ticker: str
    quantity: int
    price: float
    original_entry_price: float
    stop_loss: float
    target1: float
    target2: float
    strategy: EntryStrategyType
    confidence: str
    risk_amount: float
    timestamp: datetime
    note: str = ""
    action: str = "BUY"
    status: OrderStatus = OrderStatus.SIMULATED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["strategy"] = self.strategy.value
        data["status"] = self.status.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class BreakoutRecord:
    ticker: str
    entry_price: float
    breakout_price: float
    gain_percent: float
    time: datetime
    strategy: EntryStrategyType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "entry_price": self.entry_price,
            "breakout_price": self.breakout_price,
            "gain_percent": self.gain_percent,
            "time": self.time.isoformat(),
            "strategy": self.strategy.value,
        }


@dataclass
class TickResult:
    """Outcome of one polling cycle."""

    checked: int = 0
    updated: List[str] = field(default_factory=list)
    new_breakouts: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    rate_limited: bool = False
    skipped_reason: Optional[str] = None


@dataclass
class TrackerStatus:
    state: TrackerState
    candidate_count: int
    breakout_count: int
    waiting_count: int
    interval_seconds: Optional[float]
    last_tick: Optional[datetime]
    consecutive_rate_limits: int
    should_pause: bool
