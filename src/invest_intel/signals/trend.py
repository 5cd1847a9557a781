"""Trend-following signal generator (EMA crossover, swing structure, breakouts)."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

from invest_intel.models import (
    Breakout,
    Direction,
    MovingAverageCrossover,
    PriceBar,
    Signal,
    SignalType,
    Timeframe,
    TrendMetadata,
    TrendStructure,
    utcnow,
)
from invest_intel.signals.base import expiry_for, new_signal_id
from invest_intel.utils.bars import bars_to_frame
from invest_intel.utils.indicators import calculate_adx, calculate_ema, last_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendRules:
    min_bars: int = 50
    fast_ema: int = 20
    slow_ema: int = 50
    crossover_buffer: int = 5
    recent_cross_score: float = 3
    standing_cross_score: float = 1
    swing_window: int = 2
    swing_points: int = 4
    structure_weight: float = 2
    adx_period: int = 14
    adx_strong: float = 25
    adx_weak: float = 20
    adx_strong_multiplier: float = 1.2
    adx_weak_multiplier: float = 0.5
    breakout_lookback: int = 20
    breakout_weight: float = 2
    min_score: float = 2
    confidence_scale: float = 8


def _monotonic(points: list[float], rising: bool) -> bool:
    if len(points) < 2:
        return False
    pairs = zip(points, points[1:])
    return all(b > a for a, b in pairs) if rising else all(b < a for a, b in pairs)


class TrendFollowingSignalGenerator:
    """Scores trend persistence; ADX scales the structural score before breakouts add on."""

    def __init__(self, rules: TrendRules | None = None):
        self.rules = rules or TrendRules()

    def crossover(self, close: pd.Series) -> MovingAverageCrossover:
        r = self.rules
        if len(close) < r.slow_ema + r.crossover_buffer:
            return MovingAverageCrossover(None, None, "none", False)

        fast = calculate_ema(close, r.fast_ema)
        slow = calculate_ema(close, r.slow_ema)
        above_now = fast.iloc[-1] > slow.iloc[-1]
        above_before = fast.iloc[-2] > slow.iloc[-2]

        return MovingAverageCrossover(
            fast=float(fast.iloc[-1]),
            slow=float(slow.iloc[-1]),
            crossover="golden" if above_now else "death",
            recent_cross=bool(above_now != above_before),
        )

    def structure(self, high: pd.Series, low: pd.Series) -> TrendStructure:
        """Classify swing structure from the last few swing highs and lows."""
        r = self.rules
        w = r.swing_window
        highs, lows = high.tolist(), low.tolist()

        swing_highs: list[float] = []
        swing_lows: list[float] = []
        for i in range(w, len(highs) - w):
            neighbours = [j for j in range(i - w, i + w + 1) if j != i]
            if all(highs[i] > highs[j] for j in neighbours):
                swing_highs.append(highs[i])
            if all(lows[i] < lows[j] for j in neighbours):
                swing_lows.append(lows[i])

        recent_highs = swing_highs[-r.swing_points:]
        recent_lows = swing_lows[-r.swing_points:]
        hh, hl = _monotonic(recent_highs, True), _monotonic(recent_lows, True)
        lh, ll = _monotonic(recent_highs, False), _monotonic(recent_lows, False)

        trend, strength = "sideways", 0.0
        if hh and hl:
            trend, strength = "up", 0.8
        elif lh and ll:
            trend, strength = "down", 0.8
        elif hl and not lh:
            trend, strength = "up", 0.5
        elif lh and not hl:
            trend, strength = "down", 0.5

        return TrendStructure(
            trend=trend,
            strength=strength,
            higher_highs=hh,
            higher_lows=hl,
            lower_highs=lh,
            lower_lows=ll,
        )

    def breakout(self, df: pd.DataFrame) -> Breakout:
        """Close beyond the prior lookback range; strength is the overshoot as a share of range."""
        lookback = self.rules.breakout_lookback
        if len(df) < lookback:
            return Breakout("none", 0.0, None)

        prior = df.iloc[-lookback:-1]
        highest, lowest = float(prior["high"].max()), float(prior["low"].min())
        span = highest - lowest
        close = float(df["close"].iloc[-1])

        if close > highest:
            strength = min((close - highest) / span, 1.0) if span else 1.0
            return Breakout("up", strength, highest)
        if close < lowest:
            strength = min((lowest - close) / span, 1.0) if span else 1.0
            return Breakout("down", strength, lowest)
        return Breakout("none", 0.0, None)

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        r = self.rules
        if len(bars) < r.min_bars:
            logger.debug("%s: %d bars, trend following needs %d", symbol, len(bars), r.min_bars)
            return None

        df = bars_to_frame(bars)
        cross = self.crossover(df["close"])
        structure = self.structure(df["high"], df["low"])
        adx = last_value(calculate_adx(df["high"], df["low"], df["close"], r.adx_period)["adx"])
        breakout = self.breakout(df)

        score = 0.0
        if cross.crossover == "golden":
            score += r.recent_cross_score if cross.recent_cross else r.standing_cross_score
        elif cross.crossover == "death":
            score -= r.recent_cross_score if cross.recent_cross else r.standing_cross_score

        if structure.trend == "up":
            score += structure.strength * r.structure_weight
        elif structure.trend == "down":
            score -= structure.strength * r.structure_weight

        if adx is not None and adx > r.adx_strong:
            score *= r.adx_strong_multiplier
        elif adx is not None and adx < r.adx_weak:
            score *= r.adx_weak_multiplier

        if breakout.direction == "up":
            score += breakout.strength * r.breakout_weight
        elif breakout.direction == "down":
            score -= breakout.strength * r.breakout_weight

        if abs(score) < r.min_score:
            logger.debug("%s: trend score %.2f below threshold", symbol, score)
            return None

        generated_at = now or utcnow()
        return Signal(
            id=new_signal_id("tf", symbol),
            symbol=symbol,
            type=SignalType.TREND_FOLLOWING,
            direction=Direction.LONG if score > 0 else Direction.SHORT,
            confidence=min(abs(score) / r.confidence_scale, 1.0),
            timeframe=timeframe,
            generated_at=generated_at,
            expires_at=expiry_for(timeframe, generated_at),
            metadata=TrendMetadata(crossover=cross, structure=structure, adx=adx, breakout=breakout),
        )
