"""Batch price collection through the cache and request scheduler."""

import asyncio
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from ...config.logging import get_logger, log_performance
from ...core.market_clock import MarketClock
from ...events.event_bus import EventBus
from ...events.events import AcquisitionProgressEvent
from ...exceptions import BreakoutScannerError
from ..cache.cache_store import DAY_TTL_MINUTES, CacheStore, price_cache_key
from ..requests.scheduler import RequestScheduler
from .models import (
    AcquisitionFailure,
    AcquisitionProgress,
    CollectionResult,
    PriceRecord,
)
from .normalizer import normalize_series, normalize_tickers
from .providers import PriceProvider

logger = get_logger(__name__)

ProgressCallback = Callable[[AcquisitionProgress], None]
_Outcome = Tuple[Optional[PriceRecord], bool, Optional[BreakoutScannerError]]


class PriceCollector:
    """
    Collects normalised price records for a list of tickers.

    Cache entries are keyed by ticker and trading day, so a new session never
    sees yesterday's bars and repeated scans within a day cost one fetch per
    ticker.
    """

    def __init__(
        self,
        provider: PriceProvider,
        scheduler: RequestScheduler,
        cache: CacheStore,
        clock: MarketClock,
        event_bus: Optional[EventBus] = None,
        batch_size: int = 10,
        batch_delay: float = 1.0,
        cache_ttl_minutes: float = DAY_TTL_MINUTES,
    ):
        self.provider = provider
        self.scheduler = scheduler
        self.cache = cache
        self.clock = clock
        self.event_bus = event_bus
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.cache_ttl_minutes = cache_ttl_minutes
        self.logger = logger.bind(component="price_collector")

    async def collect(
        self,
        tickers: List[str],
        bypass_cache: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> CollectionResult:
        """
        Collect price records for ``tickers``.

        Args:
            tickers: Symbols to collect; normalised and de-duplicated
            bypass_cache: Skip cache reads (fresh results are still written)
            progress: Optional callback invoked after every ticker

        Returns:
            CollectionResult with records and per-ticker failures
        """
        symbols = normalize_tickers(tickers)
        result = CollectionResult()
        if not symbols:
            return result

        trading_day = self.clock.trading_day()
        total = len(symbols)
        processed = 0
        loop = asyncio.get_running_loop()
        started = loop.time()

        async def run(ticker: str) -> _Outcome:
            nonlocal processed
            record, from_cache, error = await self._collect_one(
                ticker, trading_day, bypass_cache
            )
            processed += 1
            await self._report_progress(
                AcquisitionProgress(
                    processed=processed,
                    total=total,
                    ticker=ticker,
                    success=error is None,
                ),
                progress,
            )
            return record, from_cache, error

        for start in range(0, total, self.batch_size):
            if start:
                await asyncio.sleep(self.batch_delay)

            batch = symbols[start : start + self.batch_size]
            outcomes = await asyncio.gather(*(run(ticker) for ticker in batch))

            for ticker, (record, from_cache, error) in zip(batch, outcomes):
                if error is not None:
                    result.failures.append(AcquisitionFailure(ticker=ticker, error=error))
                    continue
                result.records.append(record)
                if from_cache:
                    result.cache_hits += 1

        log_performance(
            "price_collection",
            (loop.time() - started) * 1000,
            total=total,
            collected=result.success_count,
            failed=result.error_count,
            cache_hits=result.cache_hits,
            bypass_cache=bypass_cache,
        )
        return result

    async def _collect_one(
        self, ticker: str, trading_day: str, bypass_cache: bool
    ) -> _Outcome:
        key = price_cache_key(ticker, trading_day)

        if not bypass_cache:
            cached = self._read_cache(key)
            if cached is not None:
                return cached, True, None

        async def fetch() -> PriceRecord:
            series = await self.provider.fetch(ticker)
            return normalize_series(series, trading_day)

        try:
            record = await self.scheduler.submit(ticker, fetch)
        except BreakoutScannerError as e:
            self.logger.warning(
                "Failed to collect price",
                ticker=ticker,
                error_type=e.error_type,
                error=e.message,
            )
            return None, False, e

        self.cache.set(key, record.model_dump(mode="json"), self.cache_ttl_minutes)
        return record, False, None

    def _read_cache(self, key: str) -> Optional[PriceRecord]:
        payload = self.cache.get(key)
        if payload is None:
            return None
        try:
            return PriceRecord.model_validate(payload)
        except ValidationError as e:
            self.logger.warning("Dropping invalid cached record", key=key, error=str(e))
            self.cache.invalidate(key)
            return None

    async def _report_progress(
        self, update: AcquisitionProgress, progress: Optional[ProgressCallback]
    ) -> None:
        if progress is not None:
            progress(update)
        if self.event_bus is not None:
            await self.event_bus.publish(
                AcquisitionProgressEvent(
                    processed=update.processed,
                    total=update.total,
                    ticker=update.ticker,
                    success=update.success,
                )
            )
