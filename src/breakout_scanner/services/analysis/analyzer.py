"""Larry Williams volatility breakout analysis."""

from typing import Dict, Optional

from ..acquisition.models import PriceRecord
from .models import Analysis, Classification, RejectionReason, StrategyParameters
from .scoring import composite_score, confidence_for, recommended_action

PRICE_EPSILON = 0.01


def calculate_entry_price(
    prior_close: float, prior_high: float, prior_low: float, breakout_factor: float
) -> float:
    """Prior close plus ``breakout_factor`` of the prior day's range."""
    return prior_close + (prior_high - prior_low) * breakout_factor


def is_breakout(current_price: float, entry_price: float) -> bool:
    return current_price >= entry_price


def _floor(price: float) -> float:
    return max(PRICE_EPSILON, price)


class BreakoutAnalyzer:
    """
    Pure evaluation of a PriceRecord against StrategyParameters.

    Never raises for bad data; malformed records come back rejected with a
    reason code.
    """

    def __init__(self, params: Optional[StrategyParameters] = None):
        self.params = params or StrategyParameters()

    def analyze(
        self, record: PriceRecord, params: Optional[StrategyParameters] = None
    ) -> Analysis:
        params = params or self.params

        if (
            record.current_price <= 0
            or record.prior_close <= 0
            or record.prior_high <= 0
            or record.prior_low <= 0
            or record.prior_volume < 0
        ):
            return self._unpriced(record)

        daily_range = record.prior_high - record.prior_low
        volatility_percent = daily_range / record.prior_close * 100
        entry_price = calculate_entry_price(
            record.prior_close, record.prior_high, record.prior_low, params.breakout_factor
        )

        stop_losses: Dict[float, float] = {
            percent: _floor(entry_price * (1 - percent / 100))
            for percent in params.stop_loss_percents
        }
        # Targets are sized against the middle stop tier
        stop_loss = stop_losses[params.stop_loss_percents[1]]
        risk = entry_price - stop_loss
        target1, target2, target3 = (
            _floor(entry_price + k * risk) for k in params.risk_reward_multiples
        )
        risk_reward_ratio = (target1 - entry_price) / risk if risk > 0 else 0.0

        gap_to_entry = max(0.0, entry_price - record.current_price)
        gap_percent = gap_to_entry / entry_price * 100 if entry_price > 0 else 0.0

        score = composite_score(
            volatility_percent,
            record.prior_volume,
            record.prior_close,
            gap_percent,
            risk_reward_ratio,
            params.weights,
        )

        rejection = self._filter(record, params, daily_range, volatility_percent)
        if rejection is None:
            if is_breakout(record.current_price, entry_price):
                classification = Classification.BREAKOUT
            elif gap_percent <= params.proximity_percent:
                classification = Classification.WAITING
            else:
                classification = Classification.REJECTED
                rejection = RejectionReason.TOO_FAR_FROM_ENTRY
        else:
            classification = Classification.REJECTED

        confidence = confidence_for(score)
        return Analysis(
            ticker=record.ticker,
            current_price=record.current_price,
            prior_close=record.prior_close,
            entry_price=entry_price,
            stop_loss=stop_loss,
            stop_losses=stop_losses,
            target1=target1,
            target2=target2,
            target3=target3,
            volatility_percent=volatility_percent,
            daily_range=daily_range,
            risk_reward_ratio=risk_reward_ratio,
            prior_volume=record.prior_volume,
            score=score,
            classification=classification,
            rejection_reason=rejection,
            gap_to_entry=gap_to_entry,
            gap_percent=gap_percent,
            confidence=confidence,
            recommended_action=recommended_action(classification, confidence),
        )

    @staticmethod
    def _filter(
        record: PriceRecord,
        params: StrategyParameters,
        daily_range: float,
        volatility_percent: float,
    ) -> Optional[RejectionReason]:
        if daily_range < 0:
            return RejectionReason.INCONSISTENT_RANGE
        if daily_range == 0:
            return RejectionReason.NO_RANGE
        if not record.prior_low <= record.prior_close <= record.prior_high:
            return RejectionReason.INCONSISTENT_RANGE
        if not params.volatility_min <= volatility_percent <= params.volatility_max:
            return RejectionReason.VOLATILITY_OUT_OF_RANGE
        if record.prior_volume < params.min_volume:
            return RejectionReason.LOW_VOLUME
        if record.prior_close < params.min_price:
            return RejectionReason.LOW_PRICE
        return None

    @staticmethod
    def _unpriced(record: PriceRecord) -> Analysis:
        return Analysis(
            ticker=record.ticker,
            current_price=record.current_price,
            prior_close=record.prior_close,
            entry_price=0.0,
            stop_loss=0.0,
            stop_losses={},
            target1=0.0,
            target2=0.0,
            target3=0.0,
            volatility_percent=0.0,
            daily_range=0.0,
            risk_reward_ratio=0.0,
            prior_volume=record.prior_volume,
            score=0,
            classification=Classification.REJECTED,
            rejection_reason=RejectionReason.INVALID_PRICE,
            gap_to_entry=0.0,
            gap_percent=0.0,
            confidence="low",
            recommended_action="pass",
        )
