"""Real-time breakout tracking for a bounded watchlist."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ...config.logging import get_logger
from ...core.market_clock import MarketClock
from ...events.event_bus import EventBus
from ...events.events import (
    BreakoutDetectedEvent,
    ErrorEvent,
    RequestsCancelledEvent,
    TrackingStartedEvent,
    TrackingStoppedEvent,
)
from ..acquisition.collector import PriceCollector
from ..analysis.analyzer import is_breakout
from ..cache.cache_store import DAY_TTL_MINUTES, CacheStore
from ..requests.scheduler import RequestScheduler
from .entry_strategy import create_simulated_order, determine_entry_strategy
from .models import (
    BreakoutRecord,
    SimulatedOrder,
    TickResult,
    TrackerState,
    TrackerStatus,
    WatchCandidate,
)

logger = get_logger(__name__)

TRACKING_JOB_ID = "breakout_tracking"
WATCHLIST_CACHE_KEY = "breakout_watchlist"


def breakouts_cache_key(trading_day: str) -> str:
    return f"breakouts_{trading_day}"


def orders_cache_key(trading_day: str) -> str:
    return f"simulated_orders_{trading_day}"


class WatchlistTracker:
    """
    Polls a bounded set of candidates and detects the moment of breakout.

    Each candidate moves from waiting to breakout at most once. The tracker
    only runs while the market is open and stops itself otherwise.
    """

    def __init__(
        self,
        collector: PriceCollector,
        request_scheduler: RequestScheduler,
        job_scheduler: AsyncIOScheduler,
        cache: CacheStore,
        clock: MarketClock,
        event_bus: Optional[EventBus] = None,
        max_size: int = 30,
        interval_seconds: float = 30,
        risk_amount: float = 1000.0,
        rate_limit_pause_threshold: int = 3,
    ):
        self.collector = collector
        self.request_scheduler = request_scheduler
        self.job_scheduler = job_scheduler
        self.cache = cache
        self.clock = clock
        self.event_bus = event_bus
        self.max_size = max_size
        self.default_interval = interval_seconds
        self.risk_amount = risk_amount
        self.rate_limit_pause_threshold = rate_limit_pause_threshold

        self.state = TrackerState.IDLE
        self._candidates: Dict[str, WatchCandidate] = {}
        self._breakouts: List[BreakoutRecord] = []
        self._orders: List[SimulatedOrder] = []
        self._interval: Optional[float] = None
        self._last_tick: Optional[datetime] = None
        self._consecutive_rate_limits = 0

        self.logger = logger.bind(component="watchlist_tracker")

    # Watchlist management

    def build_watchlist(self, candidates: Iterable[WatchCandidate]) -> List[WatchCandidate]:
        """
        Replace the tracked set with the highest scoring candidates.

        Returns:
            Snapshot of the new watchlist
        """
        now = self.clock.now()
        selected: Dict[str, WatchCandidate] = {}
        for candidate in sorted(candidates, key=lambda c: c.score, reverse=True):
            if len(selected) >= self.max_size:
                break
            if candidate.ticker in selected:
                continue
            selected[candidate.ticker] = replace(
                candidate, added_at=candidate.added_at or now
            )

        self._candidates = selected
        self._persist_watchlist()

        self.logger.info("Watchlist rebuilt", size=len(selected), tickers=list(selected))
        return self.snapshot()

    def load_watchlist(self) -> int:
        """Restore the persisted watchlist; returns how many candidates were loaded."""
        payload = self.cache.get(WATCHLIST_CACHE_KEY)
        if not payload:
            return 0

        try:
            candidates = [WatchCandidate.from_dict(item) for item in payload]
        except (TypeError, ValueError, KeyError) as e:
            self.logger.warning("Discarding unreadable saved watchlist", error=str(e))
            self.cache.invalidate(WATCHLIST_CACHE_KEY)
            return 0

        self._candidates = {c.ticker: c for c in candidates[: self.max_size]}
        self.logger.info("Watchlist restored", size=len(self._candidates))
        return len(self._candidates)

    def _persist_watchlist(self) -> None:
        self.cache.set(
            WATCHLIST_CACHE_KEY,
            [c.to_dict() for c in self._candidates.values()],
            DAY_TTL_MINUTES,
        )

    def snapshot(self) -> List[WatchCandidate]:
        """Copies of the tracked candidates, best score first."""
        return [replace(c) for c in self._candidates.values()]

    def breakouts(self) -> List[BreakoutRecord]:
        return list(self._breakouts)

    def orders(self) -> List[SimulatedOrder]:
        return list(self._orders)

    # Tracking loop

    async def start(self, interval_seconds: Optional[float] = None) -> bool:
        """
        Start polling on an interval, with the first tick right away.

        Returns:
            True if tracking started
        """
        if self.state is TrackerState.TRACKING:
            self.logger.warning("Tracking already running")
            return False
        if not self._candidates:
            self.logger.warning("Cannot start tracking with an empty watchlist")
            return False
        if not self.clock.is_market_open():
            self.logger.info("Market is closed, not starting tracking")
            return False

        interval = interval_seconds or self.default_interval
        self.job_scheduler.add_job(
            self._scheduled_tick,
            trigger="interval",
            seconds=interval,
            id=TRACKING_JOB_ID,
            name="Breakout Tracking",
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
        )
        if not self.job_scheduler.running:
            self.job_scheduler.start()

        self.state = TrackerState.TRACKING
        self._interval = interval
        self._consecutive_rate_limits = 0

        self.logger.info(
            "Tracking started", candidates=len(self._candidates), interval_seconds=interval
        )
        await self._publish(
            TrackingStartedEvent(
                candidate_count=len(self._candidates), interval_seconds=interval
            )
        )
        return True

    async def stop(self, reason: str = "requested") -> None:
        """
        Stop polling and cancel outstanding requests for tracked tickers.

        Candidate state stays as last observed.
        """
        if self.state is TrackerState.IDLE:
            return

        self.state = TrackerState.IDLE
        self._interval = None
        try:
            self.job_scheduler.remove_job(TRACKING_JOB_ID)
        except JobLookupError:
            pass

        keys = list(self._candidates)
        cancelled = sum(self.request_scheduler.cancel(key) for key in keys)

        self.logger.info("Tracking stopped", reason=reason, cancelled_requests=cancelled)
        if cancelled:
            await self._publish(RequestsCancelledEvent(keys=keys, cancelled_count=cancelled))
        await self._publish(
            TrackingStoppedEvent(reason=reason, breakout_count=len(self._breakouts))
        )

    async def _scheduled_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            self.logger.error("Tracking tick failed", error=str(e), exc_info=True)
            await self._publish(
                ErrorEvent(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    component="watchlist_tracker",
                    operation="tick",
                )
            )
            return

        if self.state is TrackerState.TRACKING and self.should_pause:
            self.logger.warning(
                "Pausing tracking after repeated rate limiting",
                consecutive_rate_limits=self._consecutive_rate_limits,
            )
            await self.stop(reason="rate_limited")

    async def tick(self) -> TickResult:
        """
        Re-evaluate every tracked candidate against a fresh price.

        Per-ticker fetch failures are recorded in the result and leave the
        candidate untouched.
        """
        result = TickResult()
        now = self.clock.now()

        if not self.clock.is_market_open(now):
            result.skipped_reason = "market_closed"
            if self.state is TrackerState.TRACKING:
                await self.stop(reason="market_closed")
            return result

        candidates = self._candidates
        if not candidates:
            result.skipped_reason = "empty_watchlist"
            return result

        collection = await self.collector.collect(list(candidates), bypass_cache=True)
        result.checked = len(candidates)

        for failure in collection.failures:
            result.failures[failure.ticker] = failure.message
            self.logger.warning(
                "Price check failed",
                ticker=failure.ticker,
                error_type=failure.error_type,
                error=failure.message,
            )

        result.rate_limited = collection.rate_limited_count > 0
        if result.rate_limited:
            self._consecutive_rate_limits += 1
        else:
            self._consecutive_rate_limits = 0

        if candidates is not self._candidates:
            # Watchlist was rebuilt while prices were in flight
            result.skipped_reason = "watchlist_replaced"
            return result

        for record in collection.records:
            candidate = candidates.get(record.ticker)
            if candidate is None:
                continue

            candidate.current_price = record.current_price
            candidate.last_check = now
            result.updated.append(record.ticker)

            if not candidate.has_breakout and is_breakout(
                record.current_price, candidate.entry_price
            ):
                await self._handle_breakout(candidate, record.current_price, now)
                result.new_breakouts.append(record.ticker)

        self._last_tick = now
        if result.new_breakouts:
            self._persist_watchlist()

        self.logger.debug(
            "Tick completed",
            checked=result.checked,
            updated=len(result.updated),
            new_breakouts=result.new_breakouts,
            failures=len(result.failures),
        )
        return result

    async def _handle_breakout(
        self, candidate: WatchCandidate, price: float, now: datetime
    ) -> None:
        candidate.has_breakout = True
        candidate.breakout_time = now
        candidate.breakout_price = price

        decision = determine_entry_strategy(price, candidate.entry_price)
        order = create_simulated_order(candidate, decision, self.risk_amount, now)

        record = BreakoutRecord(
            ticker=candidate.ticker,
            entry_price=candidate.entry_price,
            breakout_price=price,
            gain_percent=candidate.gain_percent,
            time=now,
            strategy=decision.strategy,
        )
        trading_day = self.clock.trading_day(now)
        self._breakouts.append(record)
        self._append_persisted(breakouts_cache_key(trading_day), record.to_dict())
        if order is not None:
            self._orders.append(order)
            self._append_persisted(orders_cache_key(trading_day), order.to_dict())

        self.logger.info(
            "Breakout detected",
            ticker=candidate.ticker,
            entry_price=round(candidate.entry_price, 2),
            price=price,
            gain_percent=round(record.gain_percent, 2),
            strategy=decision.strategy.value,
            order_quantity=order.quantity if order else 0,
        )

        await self._publish(
            BreakoutDetectedEvent(
                ticker=candidate.ticker,
                entry_price=candidate.entry_price,
                current_price=price,
                gain_percent=record.gain_percent,
                time=now,
                strategy=decision.strategy.value,
            )
        )

    def _append_persisted(self, key: str, item: dict) -> None:
        items = self.cache.get(key) or []
        items.append(item)
        self.cache.set(key, items, DAY_TTL_MINUTES)

    async def _publish(self, event) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)

    # Status

    @property
    def consecutive_rate_limits(self) -> int:
        return self._consecutive_rate_limits

    @property
    def should_pause(self) -> bool:
        return self._consecutive_rate_limits >= self.rate_limit_pause_threshold

    def status(self) -> TrackerStatus:
        breakout_count = sum(1 for c in self._candidates.values() if c.has_breakout)
        return TrackerStatus(
            state=self.state,
            candidate_count=len(self._candidates),
            breakout_count=breakout_count,
            waiting_count=len(self._candidates) - breakout_count,
            interval_seconds=self._interval,
            last_tick=self._last_tick,
            consecutive_rate_limits=self._consecutive_rate_limits,
            should_pause=self.should_pause,
        )
