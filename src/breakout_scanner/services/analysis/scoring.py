"""Composite breakout score and the labels derived from it."""

from .models import Classification, ScoreWeights


def volatility_points(volatility_percent: float, weights: ScoreWeights) -> float:
    for low, high, points in weights.volatility_bands:
        if low <= volatility_percent <= high:
            return points
    return weights.volatility_default


def volume_points(volume: float, weights: ScoreWeights) -> float:
    for minimum, points in weights.volume_tiers:
        if volume >= minimum:
            return points
    return weights.volume_default


def price_points(price: float, weights: ScoreWeights) -> float:
    for low, high, points in weights.price_bands:
        if low <= price <= high:
            return points
    return weights.price_default


def proximity_points(gap_percent: float, weights: ScoreWeights) -> float:
    for max_gap, points in weights.proximity_tiers:
        if gap_percent <= max_gap:
            return points
    return weights.proximity_default


def risk_reward_points(ratio: float, weights: ScoreWeights) -> float:
    if ratio <= 0:
        return 0.0
    return min(weights.risk_reward_cap, ratio * weights.risk_reward_multiplier)


def composite_score(
    volatility_percent: float,
    volume: float,
    price: float,
    gap_percent: float,
    risk_reward_ratio: float,
    weights: ScoreWeights,
) -> int:
    """
    Weighted sum of the five scoring factors, clamped to 0-100.

    Args:
        volatility_percent: Prior day range as a percent of prior close
        volume: Prior day volume
        price: Prior close
        gap_percent: Distance below the entry price, in percent of entry
        risk_reward_ratio: Reward of the first target over the 5% stop risk

    Returns:
        Integer score between 0 and 100
    """
    total = (
        volatility_points(volatility_percent, weights)
        + volume_points(volume, weights)
        + price_points(price, weights)
        + proximity_points(gap_percent, weights)
        + risk_reward_points(risk_reward_ratio, weights)
    )
    return int(round(max(0.0, min(100.0, total))))


def confidence_for(score: int) -> str:
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"


_ACTIONS = {
    Classification.BREAKOUT: {"high": "strong-buy", "medium": "buy", "low": "weak-buy"},
    Classification.WAITING: {
        "high": "watch-closely",
        "medium": "watch",
        "low": "consider",
    },
}


def recommended_action(classification: Classification, confidence: str) -> str:
    return _ACTIONS.get(classification, {}).get(confidence, "pass")
