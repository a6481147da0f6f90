"""Core primitives shared by the services."""

from .market_clock import MarketClock, is_market_open, trading_day_key

__all__ = ["MarketClock", "is_market_open", "trading_day_key"]
