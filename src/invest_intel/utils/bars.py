"""Price bar standardization utilities."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

import pandas as pd

from invest_intel.models import PriceBar

CANONICAL_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """
    Convert an ordered bar sequence to a DataFrame.

    Output columns (always, in this order): date, open, high, low, close, volume.
    Price columns are coerced to float; unparseable values become NaN.

    Args:
        bars: Bars ordered oldest first

    Returns:
        DataFrame with the canonical schema and a RangeIndex
    """
    df = pd.DataFrame(
        [
            {
                "date": bar.timestamp,
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
            }
            for bar in bars
        ],
        columns=CANONICAL_COLUMNS,
    )

    for col in CANONICAL_COLUMNS[1:]:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)

    return df


def bars_from_rows(rows: Iterable[dict[str, Any]]) -> list[PriceBar]:
    """
    Parse loose row dicts into PriceBars.

    Accepts 'date' or 'timestamp' keys holding ISO strings or datetimes.
    Missing open/high/low fall back to close.

    Raises:
        ValueError: If a row has no close or no parseable timestamp
    """
    bars: list[PriceBar] = []
    for i, row in enumerate(rows):
        raw_ts = row.get("timestamp", row.get("date"))
        if raw_ts is None:
            raise ValueError(f"Row {i} has no timestamp")
        timestamp = raw_ts if isinstance(raw_ts, datetime) else datetime.fromisoformat(str(raw_ts))

        if row.get("close") is None:
            raise ValueError(f"Row {i} has no close")
        close = float(row["close"])

        bars.append(
            PriceBar(
                timestamp=timestamp,
                open=float(row.get("open", close)),
                high=float(row.get("high", close)),
                low=float(row.get("low", close)),
                close=close,
                volume=float(row.get("volume") or 0.0),
            )
        )
    return bars
