"""Larry Williams volatility-breakout scanner and real-time watchlist tracker."""

__version__ = "0.1.0"
