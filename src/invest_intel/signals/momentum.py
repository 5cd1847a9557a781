"""Momentum signal generator (RSI, MACD, Stochastic, ROC, ADX)."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from invest_intel.models import (
    Direction,
    MacdReading,
    MomentumMetadata,
    PriceBar,
    Signal,
    SignalType,
    StochasticReading,
    Timeframe,
    utcnow,
)
from invest_intel.signals.base import expiry_for, new_signal_id
from invest_intel.utils.bars import bars_to_frame
from invest_intel.utils.indicators import (
    calculate_adx,
    calculate_macd,
    calculate_roc,
    calculate_rsi,
    calculate_stochastic,
    last_value,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MomentumRules:
    """Indicator periods, vote thresholds and vote weights."""

    min_bars: int = 26
    rsi_period: int = 14
    rsi_oversold: float = 30
    rsi_overbought: float = 70
    rsi_weight: float = 2
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    macd_weight: float = 2
    stoch_k: int = 14
    stoch_d: int = 3
    stoch_oversold: float = 20
    stoch_overbought: float = 80
    stoch_weight: float = 1
    roc_period: int = 12
    roc_threshold: float = 5
    roc_weight: float = 1
    adx_period: int = 14
    adx_trending: float = 25
    adx_weight: float = 2
    min_net_vote: float = 2


class MomentumSignalGenerator:
    """
    Weighted vote across five momentum indicators.

    Each indicator that has enough history adds its weight to the total
    and, when its condition fires, to the bullish or bearish side. A
    signal is emitted when the net vote reaches ``min_net_vote``.
    """

    def __init__(self, rules: MomentumRules | None = None):
        self.rules = rules or MomentumRules()

    def readings(self, bars: Sequence[PriceBar]) -> MomentumMetadata:
        """Compute the latest indicator readings for a bar series."""
        r = self.rules
        df = bars_to_frame(bars)
        close, high, low = df["close"], df["high"], df["low"]

        # EMAs seed from the first bar so min_bars history yields a histogram
        macd = calculate_macd(close, r.macd_fast, r.macd_slow, r.macd_signal, min_periods=1)
        macd_value = last_value(macd["macd_line"])
        macd_signal = last_value(macd["signal_line"])
        macd_reading = None
        if macd_value is not None and macd_signal is not None:
            macd_reading = MacdReading(
                value=macd_value,
                signal=macd_signal,
                histogram=macd_value - macd_signal,
            )

        stoch = calculate_stochastic(high, low, close, r.stoch_k, r.stoch_d)
        k, d = last_value(stoch["k"]), last_value(stoch["d"])
        stoch_reading = StochasticReading(k=k, d=d) if k is not None and d is not None else None

        adx = calculate_adx(high, low, close, r.adx_period)

        return MomentumMetadata(
            rsi=last_value(calculate_rsi(close, r.rsi_period)),
            macd=macd_reading,
            stochastic=stoch_reading,
            roc=last_value(calculate_roc(close, r.roc_period)),
            adx=last_value(adx["adx"]),
            plus_di=last_value(adx["plus_di"]),
            minus_di=last_value(adx["minus_di"]),
        )

    def vote(self, readings: MomentumMetadata) -> tuple[float, float]:
        """
        Tally indicator votes.

        Returns:
            (net, total) where net = bullish - bearish weight
        """
        r = self.rules
        bullish = bearish = total = 0.0

        if readings.rsi is not None:
            if readings.rsi < r.rsi_oversold:
                bullish += r.rsi_weight
                total += r.rsi_weight
            elif readings.rsi > r.rsi_overbought:
                bearish += r.rsi_weight
                total += r.rsi_weight
            else:
                total += 1

        if readings.macd is not None:
            macd = readings.macd
            if macd.histogram > 0 and macd.value > macd.signal:
                bullish += r.macd_weight
            elif macd.histogram < 0 and macd.value < macd.signal:
                bearish += r.macd_weight
            total += r.macd_weight

        if readings.stochastic is not None:
            k, d = readings.stochastic.k, readings.stochastic.d
            if k < r.stoch_oversold and k > d:
                bullish += r.stoch_weight
            elif k > r.stoch_overbought and k < d:
                bearish += r.stoch_weight
            total += r.stoch_weight

        if readings.roc is not None:
            if readings.roc > r.roc_threshold:
                bullish += r.roc_weight
            elif readings.roc < -r.roc_threshold:
                bearish += r.roc_weight
            total += r.roc_weight

        if readings.adx is not None and readings.adx > r.adx_trending:
            plus_di = readings.plus_di or 0.0
            minus_di = readings.minus_di or 0.0
            # A DI tie votes bearish
            if plus_di > minus_di:
                bullish += r.adx_weight
            else:
                bearish += r.adx_weight
            total += r.adx_weight

        return bullish - bearish, total

    def signal_from_readings(
        self,
        symbol: str,
        readings: MomentumMetadata,
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        net, total = self.vote(readings)
        if total == 0 or abs(net) < self.rules.min_net_vote:
            logger.debug("%s: momentum net vote %.1f below threshold", symbol, net)
            return None

        generated_at = now or utcnow()
        return Signal(
            id=new_signal_id("mom", symbol),
            symbol=symbol,
            type=SignalType.MOMENTUM,
            direction=Direction.LONG if net > 0 else Direction.SHORT,
            confidence=min(abs(net) / total, 1.0),
            timeframe=timeframe,
            generated_at=generated_at,
            expires_at=expiry_for(timeframe, generated_at),
            metadata=readings,
        )

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        """
        Generate a momentum signal.

        Args:
            symbol: Asset symbol
            bars: Bars ordered oldest first
            timeframe: Bar timeframe (drives expiry)
            now: Generation time (default: current UTC time)

        Returns:
            Signal, or None when history is short or votes are inconclusive
        """
        if len(bars) < self.rules.min_bars:
            logger.debug("%s: %d bars, momentum needs %d", symbol, len(bars), self.rules.min_bars)
            return None
        return self.signal_from_readings(symbol, self.readings(bars), timeframe, now)
