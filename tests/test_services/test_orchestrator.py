"""Tests for full-universe scans."""

import asyncio
import sys
from unittest.mock import AsyncMock, Mock

import pytest

sys.path.append("src")
from breakout_scanner.events.event_bus import EventBus
from breakout_scanner.events.events import ScanCompletedEvent
from breakout_scanner.exceptions import NetworkError, ScanInProgressError
from breakout_scanner.services.acquisition.collector import PriceCollector
from breakout_scanner.services.acquisition.models import CollectionResult
from breakout_scanner.services.analysis.analyzer import BreakoutAnalyzer
from breakout_scanner.services.analysis.models import StrategyParameters
from breakout_scanner.services.scan.models import ScanResult
from breakout_scanner.services.scan.orchestrator import (
    ScanOrchestrator,
    candidate_from_analysis,
    compute_statistics,
)

PRIOR = (100.0, 105.0, 95.0, 5_000_000)
PRIOR_HEAVY = (100.0, 105.0, 95.0, 12_000_000)


@pytest.fixture
def event_bus():
    return EventBus("test")


@pytest.fixture
def collector(fake_provider, fast_scheduler, memory_cache, clock):
    return PriceCollector(
        fake_provider, fast_scheduler, memory_cache, clock, batch_size=10, batch_delay=0
    )


@pytest.fixture
def orchestrator(collector, event_bus):
    return ScanOrchestrator(
        collector=collector,
        analyzer=BreakoutAnalyzer(StrategyParameters(volatility_max=12.0)),
        event_bus=event_bus,
    )


@pytest.fixture
def market(fake_provider):
    """One breakout, two waiting, one rejected and one failing ticker."""
    fake_provider.set_bars("BRK", PRIOR, 106.5)
    fake_provider.set_bars("WAIT", PRIOR, 105.0)
    fake_provider.set_bars("HEAVY", PRIOR_HEAVY, 105.0)
    fake_provider.set_bars("FAR", PRIOR, 95.0)
    fake_provider.errors["DOWN"] = NetworkError("unreachable", ticker="DOWN")
    return ["BRK", "WAIT", "HEAVY", "FAR", "DOWN"]


class TestScan:
    """Test scan classification and reporting."""

    @pytest.mark.asyncio
    async def test_classifies_every_ticker(self, orchestrator, market):
        result = await orchestrator.scan(market)

        assert [a.ticker for a in result.breakouts] == ["BRK"]
        assert {a.ticker for a in result.waiting} == {"WAIT", "HEAVY"}
        assert [a.ticker for a in result.rejected] == ["FAR"]
        assert [f.ticker for f in result.failures] == ["DOWN"]
        assert result.total_scanned == 5
        assert result.error_count == 1
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_lists_sorted_by_score(self, orchestrator, market):
        """Test higher scores come first."""
        result = await orchestrator.scan(market)

        assert [a.ticker for a in result.waiting] == ["HEAVY", "WAIT"]
        scores = [a.score for a in result.waiting]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_publishes_scan_completed(self, orchestrator, market, event_bus):
        events = []
        event_bus.subscribe(ScanCompletedEvent, events.append)

        await orchestrator.scan(market)
        await event_bus.drain()

        assert len(events) == 1
        assert events[0].total_scanned == 5
        assert events[0].error_count == 1
        assert [b["ticker"] for b in events[0].breakout_list] == ["BRK"]

    @pytest.mark.asyncio
    async def test_params_override_per_scan(self, orchestrator, market):
        """Test passing default parameters rejects the 10% volatility day."""
        result = await orchestrator.scan(market, params=StrategyParameters())

        assert result.breakouts == []
        assert result.waiting == []
        assert len(result.rejected) == 4

    @pytest.mark.asyncio
    async def test_last_result_is_kept(self, orchestrator, market):
        result = await orchestrator.scan(market)

        assert orchestrator.last_result is result
        assert result.summary()["breakouts"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_scan_is_refused(self, orchestrator):
        """Test a second scan while one is running raises ScanInProgressError."""
        release = asyncio.Event()

        async def slow_collect(tickers, bypass_cache=False, progress=None):
            await release.wait()
            return CollectionResult()

        orchestrator.collector.collect = AsyncMock(side_effect=slow_collect)
        first = asyncio.create_task(orchestrator.scan(["AAPL"]))
        await asyncio.sleep(0)

        assert orchestrator.is_scanning
        with pytest.raises(ScanInProgressError):
            await orchestrator.scan(["MSFT"])

        release.set()
        await first
        assert orchestrator.is_scanning is False

    @pytest.mark.asyncio
    async def test_scan_flag_cleared_after_error(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.scan()

        assert orchestrator.is_scanning is False

    @pytest.mark.asyncio
    async def test_uses_universe_when_no_tickers(self, collector, market):
        universe = Mock()
        universe.load = AsyncMock(return_value=["BRK", "WAIT"])
        orchestrator = ScanOrchestrator(
            collector, BreakoutAnalyzer(StrategyParameters(volatility_max=12.0)), universe
        )

        result = await orchestrator.scan()

        universe.load.assert_awaited_once()
        assert result.total_scanned == 2

    @pytest.mark.asyncio
    async def test_empty_scan(self, orchestrator):
        result = await orchestrator.scan([])

        assert result.total_scanned == 0
        assert result.statistics.breakout_rate == 0.0


class TestWatchlistSelection:
    """Test turning waiting analyses into watchlist candidates."""

    @pytest.mark.asyncio
    async def test_min_score_filters_candidates(self, orchestrator, market):
        result = await orchestrator.scan(market)
        heavy = next(a for a in result.waiting if a.ticker == "HEAVY")

        candidates = orchestrator.select_watchlist(result, min_score=heavy.score)

        assert [c.ticker for c in candidates] == ["HEAVY"]

    @pytest.mark.asyncio
    async def test_max_size_caps_candidates(self, orchestrator, market):
        result = await orchestrator.scan(market)

        candidates = orchestrator.select_watchlist(result, min_score=0, max_size=1)

        assert [c.ticker for c in candidates] == ["HEAVY"]

    @pytest.mark.asyncio
    async def test_breakouts_are_not_watched(self, orchestrator, market):
        result = await orchestrator.scan(market)

        candidates = orchestrator.select_watchlist(result, min_score=0)

        assert "BRK" not in [c.ticker for c in candidates]

    def test_candidate_carries_levels(self, make_record):
        analysis = BreakoutAnalyzer(StrategyParameters(volatility_max=12.0)).analyze(
            make_record(ticker="AAPL", current_price=105.0)
        )

        watched = candidate_from_analysis(analysis)

        assert watched.ticker == "AAPL"
        assert watched.entry_price == pytest.approx(106.0)
        assert watched.stop_loss == pytest.approx(100.7)
        assert watched.target1 == pytest.approx(113.95)
        assert watched.current_price == 105.0
        assert watched.has_breakout is False


class TestStatistics:
    @pytest.mark.asyncio
    async def test_rates_are_percent_of_total(self, orchestrator, market):
        result = await orchestrator.scan(market)
        stats = result.statistics

        assert stats.breakout_rate == pytest.approx(20.0)
        assert stats.waiting_rate == pytest.approx(40.0)
        assert stats.valid_rate == pytest.approx(60.0)
        assert len(stats.top_scores) == 3
        assert stats.top_scores[0][1] == max(s for _, s in stats.top_scores)

    def test_empty_result(self):
        stats = compute_statistics(ScanResult())

        assert stats.valid_rate == 0.0
        assert stats.top_scores == []
