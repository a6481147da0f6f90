"""Composition root wiring the scanner components together."""

from typing import List, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config.logging import get_logger
from .config.settings import Settings
from .core.market_clock import MarketClock
from .events.event_bus import EventBus
from .events.events import RequestsCancelledEvent
from .events.notifier import LogNotifier, Notifier, register_notifier
from .ormdb.database import Database
from .scheduler import create_scheduler, shutdown_scheduler
from .services.acquisition.collector import PriceCollector
from .services.acquisition.providers import PriceProvider, build_price_provider
from .services.acquisition.universe import UniverseLoader
from .services.analysis.analyzer import BreakoutAnalyzer
from .services.cache.backends import KeyValueStore, SqlKeyValueStore
from .services.cache.cache_store import CacheStore
from .services.requests.scheduler import RequestScheduler
from .services.scan.models import ScanResult
from .services.scan.orchestrator import ScanOrchestrator
from .services.watchlist.models import WatchCandidate
from .services.watchlist.tracker import WatchlistTracker

logger = get_logger(__name__)


class BreakoutApp:
    """
    Owns every long-lived component and their lifetimes.

    Collaborators can be injected for tests; anything not given is built
    from settings.
    """

    def __init__(
        self,
        settings: Settings,
        backend: Optional[KeyValueStore] = None,
        provider: Optional[PriceProvider] = None,
        clock: Optional[MarketClock] = None,
        job_scheduler: Optional[AsyncIOScheduler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.settings = settings
        self.clock = clock or MarketClock(settings.market_timezone)

        self.database: Optional[Database] = None
        if backend is None:
            self.database = Database(
                settings.get_database_url(), echo=settings.database_echo_sql
            )
            self.database.create_tables()
            backend = SqlKeyValueStore(self.database)

        self.cache = CacheStore(backend, now_func=self.clock.now)
        self.event_bus = EventBus("breakout_scanner")
        register_notifier(self.event_bus, notifier or LogNotifier())

        self.request_scheduler = RequestScheduler(
            min_interval=settings.request_min_interval_seconds,
            max_retries=settings.request_max_retries,
            retry_delay=settings.request_retry_delay_seconds,
            timeout=settings.request_timeout_seconds,
        )
        self.provider = provider or build_price_provider(settings, client=http_client)
        self.collector = PriceCollector(
            provider=self.provider,
            scheduler=self.request_scheduler,
            cache=self.cache,
            clock=self.clock,
            event_bus=self.event_bus,
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay_seconds,
            cache_ttl_minutes=settings.price_cache_ttl_minutes,
        )
        self.analyzer = BreakoutAnalyzer(settings.strategy_parameters())
        self.universe = UniverseLoader(
            self.cache,
            url=settings.universe_url,
            client=http_client,
            ttl_minutes=settings.universe_cache_ttl_minutes,
            timeout=settings.request_timeout_seconds,
        )
        self.orchestrator = ScanOrchestrator(
            collector=self.collector,
            analyzer=self.analyzer,
            universe=self.universe,
            event_bus=self.event_bus,
            watchlist_min_score=settings.watchlist_min_score,
            max_watchlist_size=settings.max_watchlist_size,
        )

        self.job_scheduler = job_scheduler or create_scheduler(settings.market_timezone)
        self.tracker = WatchlistTracker(
            collector=self.collector,
            request_scheduler=self.request_scheduler,
            job_scheduler=self.job_scheduler,
            cache=self.cache,
            clock=self.clock,
            event_bus=self.event_bus,
            max_size=settings.max_watchlist_size,
            interval_seconds=settings.tracking_interval_seconds,
            risk_amount=settings.risk_amount,
            rate_limit_pause_threshold=settings.rate_limit_pause_threshold,
        )

        self.logger = logger.bind(component="breakout_app")

    async def scan(
        self, tickers: Optional[List[str]] = None, bypass_cache: bool = False
    ) -> ScanResult:
        return await self.orchestrator.scan(tickers, bypass_cache=bypass_cache)

    async def scan_and_build_watchlist(
        self, tickers: Optional[List[str]] = None
    ) -> List[WatchCandidate]:
        """Scan, then replace the watchlist with the best waiting candidates."""
        result = await self.orchestrator.scan(tickers)
        candidates = self.orchestrator.select_watchlist(result)
        return self.tracker.build_watchlist(candidates)

    async def cancel_all_requests(self) -> int:
        status = self.request_scheduler.status()
        keys = status.queued_keys + status.retrying_keys + status.in_flight_keys
        cancelled = self.request_scheduler.cancel_all()
        if cancelled:
            await self.event_bus.publish(
                RequestsCancelledEvent(keys=keys, cancelled_count=cancelled)
            )
        return cancelled

    async def shutdown(self) -> None:
        """Stop tracking, drop pending requests and release resources."""
        await self.tracker.stop(reason="shutdown")
        await self.cancel_all_requests()
        shutdown_scheduler(self.job_scheduler)
        await self.event_bus.drain()

        close = getattr(self.provider, "aclose", None)
        if close is not None:
            await close()
        if self.database is not None:
            self.database.dispose()

        self.logger.info("Application shut down")
