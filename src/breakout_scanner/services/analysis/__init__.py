"""Breakout analysis: entry levels, filters, scoring and classification."""

from .analyzer import (
    PRICE_EPSILON,
    BreakoutAnalyzer,
    calculate_entry_price,
    is_breakout,
)
from .models import (
    Analysis,
    Classification,
    RejectionReason,
    ScoreWeights,
    StrategyParameters,
)
from .scoring import composite_score, confidence_for, recommended_action

__all__ = [
    "BreakoutAnalyzer",
    "calculate_entry_price",
    "is_breakout",
    "PRICE_EPSILON",
    "Analysis",
    "Classification",
    "RejectionReason",
    "ScoreWeights",
    "StrategyParameters",
    "composite_score",
    "confidence_for",
    "recommended_action",
]
