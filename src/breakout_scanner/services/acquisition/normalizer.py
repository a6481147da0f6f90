"""Turn provider payloads into PriceRecords."""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from ...exceptions import DataValidationError
from .models import DailyBar, PriceRecord, PriceSeries

MIN_USABLE_DAYS = 2


def _clean(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def normalize_tickers(tickers: List[str]) -> List[str]:
    """Upper-case, strip and de-duplicate while keeping order."""
    seen = set()
    symbols = []
    for ticker in tickers:
        symbol = (ticker or "").strip().upper()
        if symbol and symbol not in seen:
            seen.add(symbol)
            symbols.append(symbol)
    return symbols


def bars_from_dataframe(frame: pd.DataFrame) -> List[DailyBar]:
    """Convert a yfinance history frame into DailyBars."""
    if frame is None or frame.empty:
        return []

    bars = []
    for index, row in frame.iterrows():
        day = index.date() if hasattr(index, "date") else None
        bars.append(
            DailyBar(
                day=day,
                open=_clean(row.get("Open")),
                high=_clean(row.get("High")),
                low=_clean(row.get("Low")),
                close=_clean(row.get("Close")),
                volume=_clean(row.get("Volume")),
            )
        )
    return bars


def bars_from_chart_payload(ticker: str, payload: Dict[str, Any]) -> List[DailyBar]:
    """
    Convert a Yahoo chart API response into DailyBars.

    Raises:
        DataValidationError: If the payload does not have the chart shape
    """
    try:
        result = payload["chart"]["result"][0]
        timestamps = result.get("timestamp") or []
        quote = result["indicators"]["quote"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise DataValidationError(
            "Malformed chart response", ticker=ticker, details={"error": str(e)}
        ) from e

    def column(name: str) -> List[Any]:
        values = quote.get(name) or []
        return list(values) + [None] * (len(timestamps) - len(values))

    opens, highs, lows = column("open"), column("high"), column("low")
    closes, volumes = column("close"), column("volume")

    bars = []
    for i, stamp in enumerate(timestamps):
        day = datetime.fromtimestamp(stamp, tz=timezone.utc).date() if stamp else None
        bars.append(
            DailyBar(
                day=day,
                open=_clean(opens[i]),
                high=_clean(highs[i]),
                low=_clean(lows[i]),
                close=_clean(closes[i]),
                volume=_clean(volumes[i]),
            )
        )
    return bars


def usable_bars(series: PriceSeries) -> List[DailyBar]:
    """Bars with a positive close, oldest first."""
    return [bar for bar in series.bars if bar.close is not None and bar.close > 0]


def normalize_series(series: PriceSeries, trading_day: str) -> PriceRecord:
    """
    Reduce a daily series to the latest close plus the prior day's bar.

    The last bar with a usable close supplies the current price; the bar
    before it is the prior day. Missing high/low fall back to that day's close
    and missing volume counts as zero.

    Raises:
        DataValidationError: With fewer than two usable trading days
    """
    valid = usable_bars(series)
    if len(valid) < MIN_USABLE_DAYS:
        raise DataValidationError(
            "Insufficient price history",
            ticker=series.ticker,
            details={"valid_days": len(valid), "source": series.source},
        )

    current, prior = valid[-1], valid[-2]
    prior_high = prior.high if prior.high is not None else prior.close
    prior_low = prior.low if prior.low is not None else prior.close

    try:
        return PriceRecord(
            ticker=series.ticker,
            current_price=current.close,
            prior_close=prior.close,
            prior_high=prior_high,
            prior_low=prior_low,
            prior_volume=int(prior.volume or 0),
            as_of=trading_day,
            source=series.source,
        )
    except ValueError as e:
        raise DataValidationError(
            "Price data out of range", ticker=series.ticker, details={"error": str(e)}
        ) from e
