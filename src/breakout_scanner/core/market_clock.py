"""Wall clock and US equity market-hours calendar."""

from datetime import datetime, time
from typing import Callable, Optional
from zoneinfo import ZoneInfo

MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)
DEFAULT_MARKET_TIMEZONE = "America/New_York"


def is_market_open(
    now: datetime, timezone: str = DEFAULT_MARKET_TIMEZONE
) -> bool:
    """
    Check whether the regular trading session is open at ``now``.

    Weekends are closed; weekdays are open from 09:30 (inclusive) to 16:00
    (exclusive) exchange time. Naive datetimes are taken as exchange time.

    Args:
        now: Moment to check
        timezone: Exchange timezone name

    Returns:
        True if the market is open
    """
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(timezone))

    if now.weekday() >= 5:
        return False

    return MARKET_OPEN <= now.time() < MARKET_CLOSE


def trading_day_key(now: datetime, timezone: str = DEFAULT_MARKET_TIMEZONE) -> str:
    """ISO date of ``now`` in exchange time, used to partition caches by day."""
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(timezone))
    return now.date().isoformat()


class MarketClock:
    """Injectable clock bound to the exchange timezone."""

    def __init__(
        self,
        timezone: str = DEFAULT_MARKET_TIMEZONE,
        now_func: Optional[Callable[[], datetime]] = None,
    ):
        self.timezone = timezone
        self._tz = ZoneInfo(timezone)
        self._now_func = now_func

    def now(self) -> datetime:
        if self._now_func is not None:
            return self._now_func()
        return datetime.now(self._tz)

    def trading_day(self, now: Optional[datetime] = None) -> str:
        return trading_day_key(now or self.now(), self.timezone)

    def is_market_open(self, now: Optional[datetime] = None) -> bool:
        return is_market_open(now or self.now(), self.timezone)
