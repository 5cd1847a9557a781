"""Shared signal plumbing: expiry table, ids and the generator protocol."""

import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Protocol

from invest_intel.models import PriceBar, Signal, Timeframe

# How long a signal stays actionable, keyed by the bar timeframe it was built on
EXPIRY_DURATIONS: dict[Timeframe, timedelta] = {
    Timeframe.M1: timedelta(minutes=5),
    Timeframe.M5: timedelta(minutes=15),
    Timeframe.M15: timedelta(minutes=45),
    Timeframe.H1: timedelta(hours=4),
    Timeframe.H4: timedelta(hours=12),
    Timeframe.D1: timedelta(days=3),
    Timeframe.W1: timedelta(days=7),
    Timeframe.MN1: timedelta(days=30),
}

# Nominal bar length in hours, used to bucket holding horizons
TIMEFRAME_HOURS: dict[Timeframe, float] = {
    Timeframe.M1: 0.25,
    Timeframe.M5: 1,
    Timeframe.M15: 3,
    Timeframe.H1: 12,
    Timeframe.H4: 48,
    Timeframe.D1: 168,
    Timeframe.W1: 504,
    Timeframe.MN1: 2160,
}


def expiry_for(timeframe: Timeframe, generated_at: datetime) -> datetime:
    return generated_at + EXPIRY_DURATIONS[timeframe]


def new_signal_id(prefix: str, symbol: str) -> str:
    return f"{prefix}_{symbol.upper()}_{uuid.uuid4().hex[:12]}"


class PriceSignalGenerator(Protocol):
    """Anything that turns a bar series into zero or one signal."""

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None: ...
