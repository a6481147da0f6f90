"""Ticker universe loading."""

import io
from typing import List, Optional

import httpx
import pandas as pd

from ...config.logging import get_logger
from ..cache.cache_store import CacheStore
from .normalizer import normalize_tickers

logger = get_logger(__name__)

UNIVERSE_CACHE_KEY = "stock_universe"

# Used when neither the cache nor the remote list is available
FALLBACK_TICKERS = [
    "AAPL", "MSFT", "AMZN", "NVDA", "GOOGL", "META", "TSLA", "BRK-B", "JPM", "V",
    "UNH", "XOM", "JNJ", "WMT", "MA", "PG", "HD", "CVX", "MRK", "ABBV",
    "LLY", "PEP", "KO", "AVGO", "COST", "ADBE", "CSCO", "MCD", "CRM", "ACN",
    "TMO", "BAC", "NFLX", "AMD", "LIN", "ABT", "DIS", "ORCL", "WFC", "INTC",
    "QCOM", "TXN", "PM", "CAT", "IBM", "GS", "AMGN", "HON", "BA", "NKE",
]


class UniverseLoader:
    """
    Resolves the list of tickers to scan.

    Order of preference is the cached list, then the remote CSV, then the
    built-in fallback list.
    """

    def __init__(
        self,
        cache: CacheStore,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        ttl_minutes: float = 7 * 24 * 60,
        timeout: float = 10.0,
    ):
        self.cache = cache
        self.url = url
        self.ttl_minutes = ttl_minutes
        self.timeout = timeout
        self._client = client
        self.logger = logger.bind(component="universe_loader")

    async def load(self, force_refresh: bool = False) -> List[str]:
        if not force_refresh:
            cached = self.cache.get(UNIVERSE_CACHE_KEY)
            if cached:
                return list(cached)

        if self.url:
            try:
                tickers = await self._download()
            except (httpx.HTTPError, ValueError) as e:
                self.logger.warning(
                    "Failed to download ticker universe, using fallback list",
                    url=self.url,
                    error=str(e),
                )
            else:
                if tickers:
                    self.cache.set(UNIVERSE_CACHE_KEY, tickers, self.ttl_minutes)
                    self.logger.info("Loaded ticker universe", count=len(tickers))
                    return tickers

        return list(FALLBACK_TICKERS)

    async def _download(self) -> List[str]:
        if self._client is not None:
            response = await self._client.get(self.url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url)
        response.raise_for_status()
        return parse_universe_csv(response.text)


def parse_universe_csv(text: str) -> List[str]:
    """
    Extract tickers from a CSV with a ``Symbol`` column (or the first column).

    Dots become dashes to match Yahoo share-class notation (BRK.B -> BRK-B).

    Raises:
        ValueError: If the text is not a usable CSV
    """
    try:
        frame = pd.read_csv(io.StringIO(text))
    except pd.errors.ParserError as e:
        raise ValueError(f"Unreadable universe CSV: {e}") from e
    except pd.errors.EmptyDataError:
        return []

    columns = {str(c).strip().lower(): c for c in frame.columns}
    column = columns.get("symbol") or columns.get("ticker") or frame.columns[0]

    symbols = [
        str(value).replace(".", "-")
        for value in frame[column].dropna().tolist()
    ]
    return normalize_tickers(symbols)
