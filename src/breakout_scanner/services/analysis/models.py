"""Data models for breakout analysis."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Classification(str, Enum):
    BREAKOUT = "breakout"
    WAITING = "waiting"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    INVALID_PRICE = "invalid_price"
    INCONSISTENT_RANGE = "inconsistent_range"
    NO_RANGE = "no_range"
    VOLATILITY_OUT_OF_RANGE = "volatility_out_of_range"
    LOW_VOLUME = "low_volume"
    LOW_PRICE = "low_price"
    TOO_FAR_FROM_ENTRY = "too_far_from_entry"


@dataclass(frozen=True)
class ScoreWeights:
    """
    Tier table for the composite score.

    Band tiers are ``(low, high, points)`` checked in order, threshold tiers
    are ``(minimum, points)`` checked in order, proximity tiers are
    ``(max_gap_percent, points)``. The default table sums to 100.
    """

    volatility_bands: Tuple[Tuple[float, float, float], ...] = (
        (3.0, 5.0, 30),
        (2.0, 7.0, 20),
    )
    volatility_default: float = 10
    volume_tiers: Tuple[Tuple[float, float], ...] = (
        (10_000_000, 25),
        (5_000_000, 20),
        (2_000_000, 15),
        (1_000_000, 10),
    )
    volume_default: float = 0
    price_bands: Tuple[Tuple[float, float, float], ...] = (
        (50.0, 300.0, 20),
        (20.0, 500.0, 15),
    )
    price_default: float = 10
    proximity_tiers: Tuple[Tuple[float, float], ...] = (
        (1.0, 15),
        (3.0, 10),
        (5.0, 5),
    )
    proximity_default: float = 0
    risk_reward_multiplier: float = 5.0
    risk_reward_cap: float = 10.0


class StrategyParameters(BaseModel):
    """Parameters for one evaluation; immutable once built."""

    model_config = ConfigDict(frozen=True)

    breakout_factor: float = 0.6
    volatility_min: float = Field(default=2.0, ge=0)
    volatility_max: float = Field(default=8.0, ge=0)
    min_volume: int = Field(default=1_000_000, ge=0)
    min_price: float = Field(default=10.0, ge=0)
    proximity_percent: float = Field(default=2.0, ge=0)
    stop_loss_percents: Tuple[float, float, float] = (3.0, 5.0, 8.0)
    risk_reward_multiples: Tuple[float, float, float] = (1.5, 2.0, 3.0)
    weights: ScoreWeights = Field(default_factory=ScoreWeights)

    @field_validator("breakout_factor")
    @classmethod
    def clamp_breakout_factor(cls, v):
        """Factor must be positive; anything above 1 is clamped to 1."""
        if v <= 0:
            raise ValueError("Breakout factor must be positive")
        return min(v, 1.0)


@dataclass(frozen=True)
class Analysis:
    """
    Result of evaluating one PriceRecord.

    Price levels are 0.0 when the record could not be priced at all
    (``RejectionReason.INVALID_PRICE``).
    """

    ticker: str
    current_price: float
    prior_close: float
    entry_price: float
    stop_loss: float
    stop_losses: Dict[float, float]
    target1: float
    target2: float
    target3: float
    volatility_percent: float
    daily_range: float
    risk_reward_ratio: float
    prior_volume: int
    score: int
    classification: Classification
    rejection_reason: Optional[RejectionReason]
    gap_to_entry: float
    gap_percent: float
    confidence: str
    recommended_action: str

    @property
    def is_breakout(self) -> bool:
        return self.classification is Classification.BREAKOUT

    @property
    def is_waiting(self) -> bool:
        return self.classification is Classification.WAITING

    def to_dict(self) -> Dict[str, object]:
        return {
            "ticker": self.ticker,
            "current_price": self.current_price,
            "entry_price": round(self.entry_price, 2),
            "stop_loss": round(self.stop_loss, 2),
            "target1": round(self.target1, 2),
            "target2": round(self.target2, 2),
            "volatility_percent": round(self.volatility_percent, 2),
            "score": self.score,
            "classification": self.classification.value,
            "gap_percent": round(self.gap_percent, 2),
            "recommended_action": self.recommended_action,
        }
