"""Volatility regime classification and volatility-driven signals."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

from invest_intel.models import (
    Direction,
    MarketRegime,
    PriceBar,
    Signal,
    SignalType,
    Timeframe,
    VolatilityMetadata,
    VolatilityMetrics,
    utcnow,
)
from invest_intel.signals.base import expiry_for, new_signal_id
from invest_intel.utils.bars import bars_to_frame
from invest_intel.utils.indicators import (
    calculate_historical_volatility,
    calculate_true_range,
    range_position,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VolatilityRules:
    min_bars: int = 50
    hv_period: int = 20
    atr_period: int = 14
    atr_short: int = 5
    atr_long: int = 20
    expanding_ratio: float = 1.2
    contracting_ratio: float = 0.8
    volatile_hv: float = 40
    volatile_atr_pct: float = 3
    quiet_hv: float = 15
    quiet_atr_pct: float = 1
    trending_hv_cap: float = 30
    fast_sma: int = 20
    slow_sma: int = 50
    range_lookback: int = 20
    range_upper: float = 0.8
    range_lower: float = 0.2
    reversion_deviation: float = 0.02
    confidence_scale: float = 4


def _mean_true_range(df: pd.DataFrame, period: int) -> float:
    tr = calculate_true_range(df["high"], df["low"], df["close"]).dropna().tail(period)
    return float(tr.mean()) if len(tr) else 0.0


class VolatilityRegimeAnalyzer:
    """
    Classifies volatility regime and emits breakout/continuation/reversion signals.

    ATR here is the plain mean of the last N true ranges.
    """

    def __init__(self, rules: VolatilityRules | None = None):
        self.rules = rules or VolatilityRules()

    def metrics(self, bars: Sequence[PriceBar]) -> VolatilityMetrics:
        """Volatility snapshot for the risk scorer and signal logic."""
        r = self.rules
        df = bars_to_frame(bars)
        close = df["close"]

        hv = calculate_historical_volatility(close, r.hv_period) or 0.0
        atr = _mean_true_range(df, r.atr_period)
        last_close = float(close.iloc[-1]) if len(close) else 0.0
        atr_percent = atr / last_close * 100 if last_close else 0.0

        atr_long = _mean_true_range(df, r.atr_long)
        atr_ratio = _mean_true_range(df, r.atr_short) / atr_long if atr_long else 1.0

        return VolatilityMetrics(
            historical_volatility=hv,
            atr=atr,
            atr_percent=atr_percent,
            atr_ratio=atr_ratio,
            regime=self._classify(close, hv, atr_percent),
            is_expanding=atr_ratio > r.expanding_ratio,
            is_contracting=atr_ratio < r.contracting_ratio,
        )

    def classify_regime(self, bars: Sequence[PriceBar]) -> MarketRegime:
        return self.metrics(bars).regime

    def _classify(self, close: pd.Series, hv: float, atr_percent: float) -> MarketRegime:
        r = self.rules
        if len(close) < r.min_bars:
            return MarketRegime.SIDEWAYS

        if hv > r.volatile_hv or atr_percent > r.volatile_atr_pct:
            return MarketRegime.VOLATILE
        if hv < r.quiet_hv and atr_percent < r.quiet_atr_pct:
            return MarketRegime.LOW_VOLATILITY

        fast = float(close.tail(r.fast_sma).mean())
        slow = float(close.tail(r.slow_sma).mean())
        if fast > slow and hv < r.trending_hv_cap:
            return MarketRegime.BULL
        if fast < slow and hv < r.trending_hv_cap:
            return MarketRegime.BEAR
        return MarketRegime.SIDEWAYS

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        r = self.rules
        if len(bars) < r.min_bars:
            logger.debug("%s: %d bars, volatility regime needs %d", symbol, len(bars), r.min_bars)
            return None

        metrics = self.metrics(bars)
        df = bars_to_frame(bars)
        close = df["close"]

        score = 0.0
        direction = Direction.NEUTRAL
        setup = "none"
        position = None

        # Quiet tape pressed against a range edge
        if metrics.is_contracting:
            position = range_position(close, df["high"], df["low"], r.range_lookback)
            if position is not None and position > r.range_upper:
                score, direction, setup = 2.0, Direction.LONG, "breakout"
            elif position is not None and position < r.range_lower:
                score, direction, setup = 2.0, Direction.SHORT, "breakout"

        if metrics.is_expanding and metrics.regime is MarketRegime.BULL:
            score, direction, setup = score + 1, Direction.LONG, "continuation"
        elif metrics.is_expanding and metrics.regime is MarketRegime.BEAR:
            score, direction, setup = score + 1, Direction.SHORT, "continuation"

        if metrics.regime is MarketRegime.LOW_VOLATILITY:
            mean = float(close.tail(r.fast_sma).mean())
            deviation = (float(close.iloc[-1]) - mean) / mean if mean else 0.0
            if deviation > r.reversion_deviation:
                score, direction, setup = 1.0, Direction.SHORT, "reversion"
            elif deviation < -r.reversion_deviation:
                score, direction, setup = 1.0, Direction.LONG, "reversion"

        if score < 1 or direction is Direction.NEUTRAL:
            logger.debug("%s: no volatility setup in %s regime", symbol, metrics.regime.value)
            return None

        generated_at = now or utcnow()
        return Signal(
            id=new_signal_id("vol", symbol),
            symbol=symbol,
            type=SignalType.VOLATILITY_BREAKOUT,
            direction=direction,
            confidence=min(score / r.confidence_scale, 1.0),
            timeframe=timeframe,
            generated_at=generated_at,
            expires_at=expiry_for(timeframe, generated_at),
            metadata=VolatilityMetadata(metrics=metrics, setup=setup, range_position=position),
        )
