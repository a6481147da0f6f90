"""Shared test configuration and fixtures."""

import sys
from datetime import date, datetime
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

sys.path.append("src")

from breakout_scanner.config.settings import get_settings
from breakout_scanner.core.market_clock import MarketClock
from breakout_scanner.ormdb.database import Database
from breakout_scanner.services.acquisition.models import DailyBar, PriceRecord, PriceSeries
from breakout_scanner.services.cache.backends import MemoryKeyValueStore
from breakout_scanner.services.cache.cache_store import CacheStore
from breakout_scanner.services.requests.scheduler import RequestScheduler

NEW_YORK = ZoneInfo("America/New_York")


class MutableClock(MarketClock):
    """MarketClock whose time is set by the test."""

    def __init__(self, now: datetime):
        super().__init__("America/New_York", now_func=lambda: self.current)
        self.current = now


class FakePriceProvider:
    """Provider returning canned series and counting fetches per ticker."""

    name = "fake"

    def __init__(self, series: Optional[Dict[str, List[DailyBar]]] = None):
        self.series = dict(series or {})
        self.errors: Dict[str, Exception] = {}
        self.calls: Dict[str, int] = {}

    def set_bars(self, ticker: str, prior: tuple, current_close: float) -> None:
        """Set a two-day series: ``prior`` is (close, high, low, volume)."""
        close, high, low, volume = prior
        c = current_close
        self.series[ticker] = [
            DailyBar(date(2024, 1, 2), close, high, low, close, volume),
            DailyBar(date(2024, 1, 3), c, c, c, c, 0),
        ]

    async def fetch(self, ticker: str) -> PriceSeries:
        self.calls[ticker] = self.calls.get(ticker, 0) + 1
        if ticker in self.errors:
            raise self.errors[ticker]
        return PriceSeries(ticker=ticker, source=self.name, bars=self.series.get(ticker, []))


@pytest.fixture
def market_open_time():
    """Wednesday 10:00 New York time."""
    return datetime(2024, 1, 3, 10, 0, tzinfo=NEW_YORK)


@pytest.fixture
def clock(market_open_time):
    return MutableClock(market_open_time)


@pytest.fixture
def memory_cache(clock):
    return CacheStore(MemoryKeyValueStore(), now_func=clock.now)


@pytest.fixture
def fast_scheduler():
    """Request scheduler without pacing or retry delays."""
    return RequestScheduler(min_interval=0, max_retries=2, retry_delay=0, timeout=1.0)


@pytest.fixture
def fake_provider():
    return FakePriceProvider()


@pytest.fixture
def make_record():
    """Factory for PriceRecords around the 100/105/95 example day."""

    def _make(
        ticker: str = "TEST",
        current_price: float = 104.0,
        prior_close: float = 100.0,
        prior_high: float = 105.0,
        prior_low: float = 95.0,
        prior_volume: int = 5_000_000,
    ) -> PriceRecord:
        return PriceRecord(
            ticker=ticker,
            current_price=current_price,
            prior_close=prior_close,
            prior_high=prior_high,
            prior_low=prior_low,
            prior_volume=prior_volume,
            as_of="2024-01-03",
            source="test",
        )

    return _make


@pytest.fixture
def isolated_db(tmp_path):
    """Create an isolated SQLite database for testing."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.create_tables()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture(autouse=True)
def clean_settings_cache():
    """Clear the settings cache between tests to avoid state pollution."""
    yield
    get_settings.cache_clear()
