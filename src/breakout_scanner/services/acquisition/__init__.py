"""Price acquisition: providers, normalisation and batch collection."""

from .collector import PriceCollector, ProgressCallback
from .models import (
    AcquisitionFailure,
    AcquisitionProgress,
    CollectionResult,
    DailyBar,
    PriceRecord,
    PriceSeries,
)
from .normalizer import normalize_series, normalize_tickers
from .providers import (
    FallbackPriceProvider,
    PriceProvider,
    YahooChartProvider,
    YFinanceProvider,
    build_price_provider,
)
from .universe import FALLBACK_TICKERS, UniverseLoader, parse_universe_csv

__all__ = [
    "PriceCollector",
    "ProgressCallback",
    "PriceRecord",
    "DailyBar",
    "PriceSeries",
    "AcquisitionFailure",
    "AcquisitionProgress",
    "CollectionResult",
    "normalize_series",
    "normalize_tickers",
    "PriceProvider",
    "YFinanceProvider",
    "YahooChartProvider",
    "FallbackPriceProvider",
    "build_price_provider",
    "UniverseLoader",
    "FALLBACK_TICKERS",
    "parse_universe_csv",
]
