"""Mean-reversion signal generator (Bollinger, z-score, Keltner)."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from invest_intel.models import (
    BandReading,
    ChannelReading,
    Direction,
    MeanReversionMetadata,
    Overextension,
    PriceBar,
    Signal,
    SignalType,
    Timeframe,
    utcnow,
)
from invest_intel.signals.base import expiry_for, new_signal_id
from invest_intel.utils.bars import bars_to_frame
from invest_intel.utils.indicators import (
    calculate_bollinger,
    calculate_keltner,
    calculate_zscore,
    last_value,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeanReversionRules:
    min_bars: int = 20
    band_period: int = 20
    band_std: float = 2.0
    zscore_period: int = 20
    zscore_extreme: float = 2.0
    zscore_stretched: float = 1.5
    keltner_ema: int = 20
    keltner_atr: int = 10
    keltner_multiplier: float = 2.0
    band_weight: float = 2
    zscore_weight: float = 2
    zscore_stretched_weight: float = 1
    keltner_weight: float = 1
    squeeze_bandwidth: float = 5.0
    squeeze_factor: float = 0.5
    min_net_vote: float = 2
    confidence_scale: float = 6


def detect_overextension(z_score: float, percent_b: float, extreme: float = 2.0) -> Overextension:
    """Flag overbought/oversold when |z| exceeds ``extreme`` or %B leaves [0, 1]."""
    if z_score > extreme or percent_b > 1:
        return Overextension(True, "overbought", max(z_score, (percent_b - 0.5) * 4))
    if z_score < -extreme or percent_b < 0:
        return Overextension(True, "oversold", abs(min(z_score, (percent_b - 0.5) * 4)))
    return Overextension(False, "neutral", 0.0)


class MeanReversionSignalGenerator:
    """Fades stretched prices back toward their 20-bar mean."""

    def __init__(self, rules: MeanReversionRules | None = None):
        self.rules = rules or MeanReversionRules()

    def readings(self, bars: Sequence[PriceBar]) -> MeanReversionMetadata | None:
        r = self.rules
        df = bars_to_frame(bars)
        close, high, low = df["close"], df["high"], df["low"]

        bands = calculate_bollinger(close, r.band_period, r.band_std)
        band_values = {name: last_value(series) for name, series in bands.items()}
        if any(value is None for value in band_values.values()):
            return None
        bollinger = BandReading(**band_values)

        z_score = last_value(calculate_zscore(close, r.zscore_period)) or 0.0

        kc = calculate_keltner(high, low, close, r.keltner_ema, r.keltner_atr, r.keltner_multiplier)
        kc_upper, kc_middle, kc_lower = (last_value(kc[k]) for k in ("upper", "middle", "lower"))
        keltner = None
        if kc_upper is not None and kc_middle is not None and kc_lower is not None:
            keltner = ChannelReading(upper=kc_upper, middle=kc_middle, lower=kc_lower)

        return MeanReversionMetadata(
            bollinger=bollinger,
            z_score=z_score,
            keltner=keltner,
            overextension=detect_overextension(z_score, bollinger.percent_b, r.zscore_extreme),
            squeeze=bollinger.bandwidth < r.squeeze_bandwidth,
        )

    def vote(self, readings: MeanReversionMetadata, price: float) -> float:
        """Net vote; positive favours a long reversion."""
        r = self.rules
        score = 0.0

        if readings.bollinger.percent_b < 0:
            score += r.band_weight
        elif readings.bollinger.percent_b > 1:
            score -= r.band_weight

        z = readings.z_score
        if z < -r.zscore_extreme:
            score += r.zscore_weight
        elif z > r.zscore_extreme:
            score -= r.zscore_weight
        elif z < -r.zscore_stretched:
            score += r.zscore_stretched_weight
        elif z > r.zscore_stretched:
            score -= r.zscore_stretched_weight

        if readings.keltner is not None:
            if price < readings.keltner.lower:
                score += r.keltner_weight
            elif price > readings.keltner.upper:
                score -= r.keltner_weight

        # Narrow bands: a breakout is as likely as a reversion
        if readings.squeeze:
            score *= r.squeeze_factor

        return score

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        """Generate a mean-reversion signal, or None (short history or weak vote)."""
        if len(bars) < self.rules.min_bars:
            logger.debug("%s: %d bars, mean reversion needs %d", symbol, len(bars), self.rules.min_bars)
            return None

        readings = self.readings(bars)
        if readings is None:
            return None

        score = self.vote(readings, bars[-1].close)
        if abs(score) < self.rules.min_net_vote:
            logger.debug("%s: mean reversion score %.1f below threshold", symbol, score)
            return None

        generated_at = now or utcnow()
        return Signal(
            id=new_signal_id("mr", symbol),
            symbol=symbol,
            type=SignalType.MEAN_REVERSION,
            direction=Direction.LONG if score > 0 else Direction.SHORT,
            confidence=min(abs(score) / self.rules.confidence_scale, 1.0),
            timeframe=timeframe,
            generated_at=generated_at,
            expires_at=expiry_for(timeframe, generated_at),
            metadata=readings,
        )
