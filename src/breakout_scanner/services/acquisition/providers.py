"""Upstream daily price providers."""

import asyncio
from typing import List, Optional, Protocol

import httpx
import pandas as pd
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from ...config.logging import get_logger
from ...config.settings import Settings
from ...exceptions import (
    BreakoutScannerError,
    DataValidationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)
from .models import PriceSeries
from .normalizer import (
    MIN_USABLE_DAYS,
    bars_from_chart_payload,
    bars_from_dataframe,
    usable_bars,
)

logger = get_logger(__name__)


class PriceProvider(Protocol):
    """Anything that can fetch a short daily series for a ticker."""

    name: str

    async def fetch(self, ticker: str) -> PriceSeries: ...


class YFinanceProvider:
    """Daily bars through yfinance, run off the event loop."""

    name = "yfinance"

    def __init__(self, period: str = "5d", interval: str = "1d"):
        self.period = period
        self.interval = interval
        self.logger = logger.bind(component="yfinance_provider")

    def _history(self, ticker: str) -> pd.DataFrame:
        stock = yf.Ticker(ticker)
        return stock.history(period=self.period, interval=self.interval)

    async def fetch(self, ticker: str) -> PriceSeries:
        try:
            frame = await asyncio.to_thread(self._history, ticker)
        except YFRateLimitError as e:
            raise RateLimitError(self.name, ticker=ticker) from e
        except Exception as e:
            raise NetworkError(
                f"yfinance request failed for {ticker}: {e}",
                ticker=ticker,
                details={"source": self.name, "original_error": type(e).__name__},
            ) from e

        bars = bars_from_dataframe(frame)
        if not bars:
            raise DataValidationError(
                "No price data returned", ticker=ticker, details={"source": self.name}
            )

        self.logger.debug("Fetched daily bars", ticker=ticker, bars=len(bars))
        return PriceSeries(ticker=ticker, source=self.name, bars=bars)


class YahooChartProvider:
    """Daily bars straight from the Yahoo chart endpoint over httpx."""

    name = "yahoo_chart"

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart/",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": "Mozilla/5.0"}
        )
        self.logger = logger.bind(component="yahoo_chart_provider")

    async def fetch(self, ticker: str) -> PriceSeries:
        url = f"{self.base_url}{ticker}"
        try:
            response = await self._client.get(
                url, params={"range": "5d", "interval": "1d"}
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(ticker, self.timeout) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Chart request failed for {ticker}: {e}", ticker=ticker
            ) from e

        if response.status_code == 429:
            raise RateLimitError(self.name, ticker=ticker)
        if response.status_code >= 400:
            raise NetworkError(
                f"Chart request failed for {ticker} with HTTP {response.status_code}",
                ticker=ticker,
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DataValidationError(
                "Chart response is not JSON", ticker=ticker
            ) from e

        if not isinstance(payload, dict):
            raise DataValidationError("Malformed chart response", ticker=ticker)

        chart_error = (payload.get("chart") or {}).get("error")
        if chart_error:
            raise NetworkError(
                f"Chart API error for {ticker}",
                ticker=ticker,
                details={"error": chart_error},
            )

        bars = bars_from_chart_payload(ticker, payload)
        return PriceSeries(ticker=ticker, source=self.name, bars=bars)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class FallbackPriceProvider:
    """
    Try each provider in order and return the first usable series.

    A series with fewer than two positive closes counts as a failure, so the
    next provider gets a chance before normalisation rejects the ticker.
    """

    name = "fallback"

    def __init__(self, providers: List[PriceProvider]):
        if not providers:
            raise ValueError("At least one provider is required")
        self.providers = providers
        self.logger = logger.bind(component="fallback_provider")

    async def fetch(self, ticker: str) -> PriceSeries:
        last_error: Optional[BreakoutScannerError] = None
        for provider in self.providers:
            try:
                series = await provider.fetch(ticker)
                self._check_usable(series)
                return series
            except BreakoutScannerError as e:
                last_error = e
            except Exception as e:
                last_error = NetworkError(
                    f"{provider.name} failed for {ticker}: {e}",
                    ticker=ticker,
                    details={"source": provider.name, "original_error": type(e).__name__},
                )
            self.logger.warning(
                "Provider failed, trying next",
                ticker=ticker,
                provider=provider.name,
                error_type=last_error.error_type,
                error=last_error.message,
            )
        raise last_error

    @staticmethod
    def _check_usable(series: PriceSeries) -> None:
        valid_days = len(usable_bars(series))
        if valid_days < MIN_USABLE_DAYS:
            raise DataValidationError(
                "Insufficient price history",
                ticker=series.ticker,
                details={"valid_days": valid_days, "source": series.source},
            )

    async def aclose(self) -> None:
        for provider in self.providers:
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()


def build_price_provider(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> PriceProvider:
    """Create the configured provider chain."""
    providers: List[PriceProvider] = []
    for name in settings.price_providers:
        if name == "yfinance":
            providers.append(YFinanceProvider())
        elif name == "yahoo_chart":
            providers.append(
                YahooChartProvider(
                    base_url=settings.yahoo_chart_base_url,
                    client=client,
                    timeout=settings.request_timeout_seconds,
                )
            )

    if len(providers) == 1:
        return providers[0]
    return FallbackPriceProvider(providers)
