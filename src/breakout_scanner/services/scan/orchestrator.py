"""Full-universe scan: collect, analyse, classify."""

import time
from typing import List, Optional

from ...config.logging import get_logger, log_performance
from ...events.event_bus import EventBus
from ...events.events import ScanCompletedEvent
from ...exceptions import ScanInProgressError
from ..acquisition.collector import PriceCollector, ProgressCallback
from ..acquisition.universe import UniverseLoader
from ..analysis.analyzer import BreakoutAnalyzer
from ..analysis.models import Analysis, Classification, StrategyParameters
from ..watchlist.models import WatchCandidate
from .models import ScanResult, ScanStatistics

logger = get_logger(__name__)


class ScanOrchestrator:
    """Runs one scan at a time over a ticker universe."""

    def __init__(
        self,
        collector: PriceCollector,
        analyzer: BreakoutAnalyzer,
        universe: Optional[UniverseLoader] = None,
        event_bus: Optional[EventBus] = None,
        watchlist_min_score: int = 60,
        max_watchlist_size: int = 30,
    ):
        self.collector = collector
        self.analyzer = analyzer
        self.universe = universe
        self.event_bus = event_bus
        self.watchlist_min_score = watchlist_min_score
        self.max_watchlist_size = max_watchlist_size
        self.last_result: Optional[ScanResult] = None
        self._scanning = False
        self.logger = logger.bind(component="scan_orchestrator")

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    async def scan(
        self,
        tickers: Optional[List[str]] = None,
        params: Optional[StrategyParameters] = None,
        bypass_cache: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> ScanResult:
        """
        Scan ``tickers`` (or the loaded universe) for breakouts.

        Args:
            tickers: Symbols to scan; the universe loader is used when omitted
            params: Strategy parameters for this scan
            bypass_cache: Force fresh prices
            progress: Optional per-ticker progress callback

        Returns:
            ScanResult with breakout and waiting lists sorted by score

        Raises:
            ScanInProgressError: If another scan is still running
        """
        if self._scanning:
            raise ScanInProgressError()

        self._scanning = True
        try:
            return await self._run(tickers, params, bypass_cache, progress)
        finally:
            self._scanning = False

    async def _run(
        self,
        tickers: Optional[List[str]],
        params: Optional[StrategyParameters],
        bypass_cache: bool,
        progress: Optional[ProgressCallback],
    ) -> ScanResult:
        started = time.perf_counter()

        if tickers is None:
            if self.universe is None:
                raise ValueError("No tickers given and no universe loader configured")
            tickers = await self.universe.load()

        self.logger.info("Starting scan", tickers=len(tickers), bypass_cache=bypass_cache)

        collection = await self.collector.collect(
            tickers, bypass_cache=bypass_cache, progress=progress
        )

        result = ScanResult(
            failures=list(collection.failures),
            total_scanned=collection.success_count + collection.error_count,
        )
        for record in collection.records:
            analysis = self.analyzer.analyze(record, params)
            if analysis.classification is Classification.BREAKOUT:
                result.breakouts.append(analysis)
            elif analysis.classification is Classification.WAITING:
                result.waiting.append(analysis)
            else:
                result.rejected.append(analysis)

        result.breakouts.sort(key=lambda a: a.score, reverse=True)
        result.waiting.sort(key=lambda a: a.score, reverse=True)
        result.statistics = compute_statistics(result)
        result.duration_ms = (time.perf_counter() - started) * 1000
        self.last_result = result

        log_performance(
            "scan",
            result.duration_ms,
            total_scanned=result.total_scanned,
            breakouts=len(result.breakouts),
            waiting=len(result.waiting),
            rejected=result.rejected_count,
            errors=result.error_count,
        )

        if self.event_bus is not None:
            await self.event_bus.publish(
                ScanCompletedEvent(
                    breakout_list=[a.to_dict() for a in result.breakouts],
                    waiting_list=[a.to_dict() for a in result.waiting],
                    total_scanned=result.total_scanned,
                    error_count=result.error_count,
                    duration_ms=result.duration_ms,
                )
            )

        return result

    def select_watchlist(
        self,
        result: ScanResult,
        min_score: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> List[WatchCandidate]:
        """Turn the best waiting analyses into watchlist candidates."""
        min_score = self.watchlist_min_score if min_score is None else min_score
        max_size = self.max_watchlist_size if max_size is None else max_size

        eligible = [a for a in result.waiting if a.score >= min_score]
        eligible.sort(key=lambda a: a.score, reverse=True)
        return [candidate_from_analysis(a) for a in eligible[:max_size]]


def candidate_from_analysis(analysis: Analysis) -> WatchCandidate:
    return WatchCandidate(
        ticker=analysis.ticker,
        entry_price=analysis.entry_price,
        stop_loss=analysis.stop_loss,
        target1=analysis.target1,
        target2=analysis.target2,
        score=analysis.score,
        prior_close=analysis.prior_close,
        volatility_percent=analysis.volatility_percent,
        current_price=analysis.current_price,
    )


def compute_statistics(result: ScanResult, top: int = 5) -> ScanStatistics:
    """Rates are percentages of the scanned total."""
    total = result.total_scanned
    if total == 0:
        return ScanStatistics()

    valid = result.breakouts + result.waiting
    ranked = sorted(valid, key=lambda a: a.score, reverse=True)
    return ScanStatistics(
        breakout_rate=len(result.breakouts) / total * 100,
        waiting_rate=len(result.waiting) / total * 100,
        valid_rate=len(valid) / total * 100,
        average_score=sum(a.score for a in valid) / len(valid) if valid else 0.0,
        top_scores=[(a.ticker, a.score) for a in ranked[:top]],
    )
