"""Data models for price acquisition."""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...exceptions import BreakoutScannerError, RateLimitError


class PriceRecord(BaseModel):
    """One ticker's latest known daily bar, normalised from any provider."""

    model_config = ConfigDict(frozen=True)

    ticker: str
    current_price: float = Field(ge=0)
    prior_close: float = Field(ge=0)
    prior_high: float = Field(ge=0)
    prior_low: float = Field(ge=0)
    prior_volume: int = Field(ge=0)
    as_of: str
    source: str


@dataclass
class DailyBar:
    """Raw daily OHLCV row; any field may be missing upstream."""

    day: Optional[date]
    open: Optional[float]
    high: Optional[float]
    low: Optional[float]
    close: Optional[float]
    volume: Optional[float]


@dataclass
class PriceSeries:
    """Daily bars for one ticker as returned by a provider."""

    ticker: str
    source: str
    bars: List[DailyBar]


@dataclass
class AcquisitionFailure:
    """A ticker that could not be collected, with the reason."""

    ticker: str
    error: BreakoutScannerError

    @property
    def error_type(self) -> str:
        return self.error.error_type

    @property
    def message(self) -> str:
        return self.error.message


@dataclass
class AcquisitionProgress:
    processed: int
    total: int
    ticker: str
    success: bool


@dataclass
class CollectionResult:
    """Outcome of one collect() pass."""

    records: List[PriceRecord] = field(default_factory=list)
    failures: List[AcquisitionFailure] = field(default_factory=list)
    cache_hits: int = 0

    @property
    def success_count(self) -> int:
        return len(self.records)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def rate_limited_count(self) -> int:
        return sum(1 for f in self.failures if isinstance(f.error, RateLimitError))

    def by_ticker(self) -> Dict[str, PriceRecord]:
        return {record.ticker: record for record in self.records}
