"""Signal outcome tracking and historical performance analytics."""

import logging
import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import numpy as np

from invest_intel.memory.repository import InMemoryStore, Store
from invest_intel.models import (
    PriceDirection,
    Signal,
    SignalOutcome,
    SignalStrength,
    SignalType,
    Timeframe,
    clamp,
    utcnow,
)

logger = logging.getLogger(__name__)

# Samples needed before a bucket's win rate counts
MIN_SAMPLES = 5


@dataclass(frozen=True)
class SignalPerformance:
    total_signals: int = 0
    successful_signals: int = 0
    win_rate: float = 0.0
    avg_return: float = 0.0
    avg_holding_period: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    profit_factor: float = 0.0


@dataclass
class SignalAnalytics:
    by_type: dict[SignalType, SignalPerformance] = field(default_factory=dict)
    by_timeframe: dict[Timeframe, SignalPerformance] = field(default_factory=dict)
    by_strength: dict[SignalStrength, SignalPerformance] = field(default_factory=dict)
    overall: SignalPerformance = field(default_factory=SignalPerformance)


def performance_of(outcomes: list[SignalOutcome]) -> SignalPerformance:
    """
    Aggregate closed outcomes.

    Sharpe is mean over population stdev of returns (0 when flat). Profit
    factor is gross profit over gross loss, inf with profits and no
    losses, 0 with neither.
    """
    if not outcomes:
        return SignalPerformance()

    returns = np.array([o.actual_return for o in outcomes], dtype=float)
    std = float(returns.std())
    mean = float(returns.mean())
    profits = float(returns[returns > 0].sum())
    losses = abs(float(returns[returns < 0].sum()))
    if losses > 0:
        profit_factor = profits / losses
    else:
        profit_factor = math.inf if profits > 0 else 0.0

    successful = sum(1 for o in outcomes if o.success)
    return SignalPerformance(
        total_signals=len(outcomes),
        successful_signals=successful,
        win_rate=successful / len(outcomes),
        avg_return=mean,
        avg_holding_period=float(np.mean([o.holding_period for o in outcomes])),
        sharpe_ratio=mean / std if std > 0 else 0.0,
        max_drawdown=max(0.0, max(o.drawdown for o in outcomes)),
        profit_factor=profit_factor,
    )


class SignalPerformanceTracker:
    """
    Two-phase tracker: a signal is pending from ``track_signal`` until
    ``record_outcome`` closes it exactly once.
    """

    def __init__(self, pending: Store | None = None, outcomes: Store | None = None):
        self._pending = pending if pending is not None else InMemoryStore()
        self._outcomes = outcomes if outcomes is not None else InMemoryStore()
        self._lock = threading.Lock()

    def track_signal(self, signal: Signal) -> bool:
        """Start tracking a signal. Ids that already have an outcome are rejected."""
        with self._lock:
            if self._outcomes.get(signal.id) is not None:
                logger.warning("Signal %s already closed; not re-tracking", signal.id)
                return False
            self._pending.put(signal.id, signal)
        return True

    def record_outcome(
        self,
        signal_id: str,
        actual_direction: PriceDirection,
        actual_return: float,
        peak_return: float,
        drawdown: float,
        now: datetime | None = None,
    ) -> SignalOutcome | None:
        """Close a pending signal. Unknown or already-closed ids return None."""
        closed_at = now or utcnow()
        with self._lock:
            signal = self._pending.get(signal_id)
            if signal is None:
                logger.debug("No pending signal %s", signal_id)
                return None

            outcome = SignalOutcome(
                signal=signal,
                actual_direction=PriceDirection(actual_direction),
                actual_return=actual_return,
                holding_period=(closed_at - signal.generated_at) / timedelta(hours=1),
                peak_return=peak_return,
                drawdown=drawdown,
                closed_at=closed_at,
            )
            self._outcomes.put(signal_id, outcome)
            self._pending.delete(signal_id)
        return outcome

    def outcomes(self) -> list[SignalOutcome]:
        return self._outcomes.values()

    def analytics(self) -> SignalAnalytics:
        outcomes = self.outcomes()
        return SignalAnalytics(
            by_type={t: performance_of([o for o in outcomes if o.signal.type is t]) for t in SignalType},
            by_timeframe={
                tf: performance_of([o for o in outcomes if o.signal.timeframe is tf]) for tf in Timeframe
            },
            by_strength={
                s: performance_of([o for o in outcomes if o.signal.strength is s]) for s in SignalStrength
            },
            overall=performance_of(outcomes),
        )

    def best_performing_types(self) -> list[tuple[SignalType, SignalPerformance]]:
        """Types with enough samples, highest win rate first."""
        ranked = [
            (signal_type, perf)
            for signal_type, perf in self.analytics().by_type.items()
            if perf.total_signals >= MIN_SAMPLES
        ]
        return sorted(ranked, key=lambda item: item[1].win_rate, reverse=True)

    def signal_quality_score(self, signal: Signal) -> float:
        """
        Re-score a signal from history: type, timeframe and strength win
        rates (weights 40/20/20, each needing enough samples) plus its own
        confidence (weight 20), around a neutral 50.
        """
        analytics = self.analytics()
        score = 50.0
        for perf, weight in (
            (analytics.by_type.get(signal.type), 40),
            (analytics.by_timeframe.get(signal.timeframe), 20),
            (analytics.by_strength.get(signal.strength), 20),
        ):
            if perf is not None and perf.total_signals >= MIN_SAMPLES:
                score += (perf.win_rate - 0.5) * weight
        score += (signal.confidence - 0.5) * 20
        return clamp(score)

    def recent_outcomes(self, hours: float = 24, now: datetime | None = None) -> list[SignalOutcome]:
        cutoff = (now or utcnow()) - timedelta(hours=hours)
        recent = [o for o in self.outcomes() if o.closed_at >= cutoff]
        return sorted(recent, key=lambda o: o.closed_at, reverse=True)

    def pending_signals(self) -> list[Signal]:
        return self._pending.values()

    def expire_old_signals(self, now: datetime | None = None) -> int:
        """Drop pending signals past their expiry; returns how many were dropped."""
        now = now or utcnow()
        with self._lock:
            expired = [s.id for s in self._pending.values() if s.is_expired(now)]
            for signal_id in expired:
                self._pending.delete(signal_id)
        if expired:
            logger.info("Expired %d pending signals", len(expired))
        return len(expired)

    def export_data(self) -> dict[str, Any]:
        return {"outcomes": self.outcomes(), "pending": self.pending_signals()}

    def import_data(self, data: dict[str, Iterable[Any]]) -> None:
        """Replace tracker state with previously exported data."""
        with self._lock:
            self._outcomes.clear()
            self._pending.clear()
            for outcome in data.get("outcomes", []):
                self._outcomes.put(outcome.signal.id, outcome)
            for signal in data.get("pending", []):
                self._pending.put(signal.id, signal)
