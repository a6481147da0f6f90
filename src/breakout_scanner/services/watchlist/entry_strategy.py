"""Post-breakout entry strategy and simulated order sizing."""

import math
from datetime import datetime
from typing import Optional

from .models import EntryDecision, EntryStrategyType, SimulatedOrder, WatchCandidate


def determine_entry_strategy(breakout_price: float, entry_price: float) -> EntryDecision:
    """
    Pick an entry strategy from how far price has run past the entry level.

    Up to 1% above entry buys a full position immediately, up to 2.5% buys
    half, up to 5% waits for a pullback to entry + 1%, and anything further
    is only observed.
    """
    gap = (breakout_price - entry_price) / entry_price * 100 if entry_price > 0 else 0.0

    if gap <= 1.0:
        return EntryDecision(
            strategy=EntryStrategyType.IMMEDIATE,
            breakout_gap_percent=gap,
            position_fraction=1.0,
            entry_price=breakout_price,
            stop_loss=entry_price * 0.98,
            confidence="high",
        )
    if gap <= 2.5:
        return EntryDecision(
            strategy=EntryStrategyType.PARTIAL,
            breakout_gap_percent=gap,
            position_fraction=0.5,
            entry_price=breakout_price,
            stop_loss=entry_price * 0.97,
            confidence="medium",
            note="Add the rest on a pullback",
        )
    if gap <= 5.0:
        pullback_price = entry_price * 1.01
        return EntryDecision(
            strategy=EntryStrategyType.PULLBACK,
            breakout_gap_percent=gap,
            position_fraction=0.75,
            entry_price=pullback_price,
            stop_loss=entry_price * 0.95,
            confidence="medium",
            note=f"Wait for a pullback from {breakout_price:.2f} to {pullback_price:.2f}",
        )
    return EntryDecision(
        strategy=EntryStrategyType.OBSERVE,
        breakout_gap_percent=gap,
        position_fraction=0.0,
        entry_price=None,
        stop_loss=None,
        confidence="low",
        note=f"Breakout gap of {gap:.1f}% is too extended to chase",
    )


def create_simulated_order(
    candidate: WatchCandidate,
    decision: EntryDecision,
    risk_amount: float,
    timestamp: datetime,
) -> Optional[SimulatedOrder]:
    """
    Size a paper order so that hitting the stop loses ``risk_amount``.

    Returns None for the observe strategy.
    """
    if decision.strategy is EntryStrategyType.OBSERVE:
        return None

    per_share_risk = decision.entry_price - decision.stop_loss
    base_quantity = math.floor(risk_amount / per_share_risk) if per_share_risk > 0 else 0
    quantity = max(1, math.floor(base_quantity * decision.position_fraction))

    return SimulatedOrder(
        ticker=candidate.ticker,
        quantity=quantity,
        price=decision.entry_price,
        original_entry_price=candidate.entry_price,
        stop_loss=decision.stop_loss,
        target1=candidate.target1,
        target2=candidate.target2,
        strategy=decision.strategy,
        confidence=decision.confidence,
        risk_amount=risk_amount * decision.position_fraction,
        timestamp=timestamp,
        note=decision.note,
    )
