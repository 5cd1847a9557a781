"""Event-driven signals: scheduled events, earnings and macro releases."""

import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from invest_intel.models import (
    Direction,
    EarningsData,
    EventImportance,
    EventMetadata,
    EventRead,
    ExpectedImpact,
    GuidanceChange,
    MacroEvent,
    MacroImpact,
    MarketEvent,
    Signal,
    SignalType,
    Timeframe,
    utcnow,
)
from invest_intel.signals.base import expiry_for, new_signal_id

logger = logging.getLogger(__name__)

# Macro series where an upside surprise is good news for risk assets
POSITIVE_IS_BULLISH = ("gdp", "employment", "retail-sales", "pmi")


@dataclass(frozen=True)
class EventRules:
    importance_weights: dict[EventImportance, float] = field(
        default_factory=lambda: {
            EventImportance.HIGH: 2.0,
            EventImportance.MEDIUM: 1.0,
            EventImportance.LOW: 0.5,
        }
    )
    near_days: int = 3
    near_multiplier: float = 1.5
    week_days: int = 7
    week_multiplier: float = 1.0
    far_multiplier: float = 0.5
    min_score: float = 1.0
    confidence_scale: float = 6.0
    earnings_blackout_days: int = 2
    surprise_threshold: float = 5.0


def days_until(when: datetime, now: datetime) -> int:
    """Whole days until ``when``, rounded up."""
    return math.ceil((when - now) / timedelta(days=1))


class EventCalendar:
    """Upcoming events, earnings dates and macro releases."""

    def __init__(self) -> None:
        self._events: list[MarketEvent] = []
        self._earnings: list[EarningsData] = []
        self._macro: list[MacroEvent] = []
        self._lock = threading.Lock()

    def add_event(self, event: MarketEvent) -> None:
        with self._lock:
            self._events.append(event)
            self._events.sort(key=lambda e: e.scheduled_at)

    def add_earnings(self, earnings: EarningsData) -> None:
        with self._lock:
            self._earnings.append(earnings)

    def add_macro_event(self, event: MacroEvent) -> None:
        with self._lock:
            self._macro.append(event)

    def upcoming(
        self,
        symbol: str | None = None,
        days: int = 7,
        now: datetime | None = None,
    ) -> list[MarketEvent]:
        """Events in [now, now + days]; with a symbol, only that symbol's events."""
        now = now or utcnow()
        cutoff = now + timedelta(days=days)
        return [
            e
            for e in self._events
            if now <= e.scheduled_at <= cutoff and (symbol is None or e.symbol == symbol.upper())
        ]

    def earnings_window(self, days: int = 14, now: datetime | None = None) -> list[EarningsData]:
        now = now or utcnow()
        cutoff = now + timedelta(days=days)
        return [e for e in self._earnings if now <= e.report_date <= cutoff]

    def macro_events(self, days: int = 7, now: datetime | None = None) -> list[MacroEvent]:
        now = now or utcnow()
        cutoff = now + timedelta(days=days)
        return [e for e in self._macro if now <= e.scheduled_at <= cutoff]


class EventSignalGenerator:
    """Aggregates scheduled events into one directional signal."""

    def __init__(self, rules: EventRules | None = None):
        self.rules = rules or EventRules()

    def event_weight(self, event: MarketEvent, now: datetime) -> float:
        r = self.rules
        weight = r.importance_weights.get(event.importance, 1.0)
        days_away = days_until(event.scheduled_at, now)
        if days_away <= r.near_days:
            return weight * r.near_multiplier
        if days_away <= r.week_days:
            return weight * r.week_multiplier
        return weight * r.far_multiplier

    def generate(
        self,
        symbol: str,
        events: list[MarketEvent],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        """
        Build an event-driven signal from symbol and market-wide events.

        Events with positive/negative expected impact push the score up or
        down by their weight; neutral and uncertain events only appear in
        the metadata.
        """
        symbol = symbol.upper()
        relevant = [e for e in events if e.symbol is None or e.symbol == symbol]
        if not relevant:
            return None

        now = now or utcnow()
        score = 0.0
        labels: list[str] = []
        for event in relevant:
            weight = self.event_weight(event, now)
            if event.expected_impact is ExpectedImpact.POSITIVE:
                score += weight
            elif event.expected_impact is ExpectedImpact.NEGATIVE:
                score -= weight
            labels.append(f"{event.type}: {event.title}")

        if abs(score) < self.rules.min_score:
            logger.debug("%s: event score %.2f below threshold", symbol, score)
            return None

        return Signal(
            id=new_signal_id("event", symbol),
            symbol=symbol,
            type=SignalType.EVENT_DRIVEN,
            direction=Direction.LONG if score > 0 else Direction.SHORT,
            confidence=min(abs(score) / self.rules.confidence_scale, 1.0),
            timeframe=timeframe,
            generated_at=now,
            expires_at=expiry_for(timeframe, now),
            metadata=EventMetadata(
                events=tuple(labels),
                event_count=len(relevant),
                aggregate_score=score,
            ),
        )

    def analyze_earnings_setup(self, earnings: EarningsData, now: datetime | None = None) -> EventRead:
        """Pre-earnings read from days-to-report and guidance changes."""
        now = now or utcnow()
        if days_until(earnings.report_date, now) < self.rules.earnings_blackout_days:
            return EventRead(
                Direction.NEUTRAL, 0.3, "Too close to earnings announcement for reliable signal"
            )
        if earnings.guidance is GuidanceChange.RAISED:
            return EventRead(Direction.LONG, 0.6, "Recent guidance raise suggests positive momentum")
        if earnings.guidance is GuidanceChange.LOWERED:
            return EventRead(Direction.SHORT, 0.6, "Lowered guidance suggests potential disappointment")
        return EventRead(Direction.NEUTRAL, 0.4, "Mixed signals ahead of earnings")

    def analyze_post_earnings(self, earnings: EarningsData) -> EventRead:
        """Post-report read: beat/miss on EPS and revenue, then guidance."""
        if earnings.eps_actual is None or earnings.revenue_actual is None:
            return EventRead(Direction.NEUTRAL, 0.0, "No earnings data available")

        eps_beat = earnings.eps_actual > earnings.eps_estimate
        revenue_beat = earnings.revenue_actual > earnings.revenue_estimate

        surprise = earnings.surprise
        if surprise is None and earnings.eps_estimate != 0:
            surprise = (earnings.eps_actual - earnings.eps_estimate) / abs(earnings.eps_estimate) * 100

        threshold = self.rules.surprise_threshold
        if surprise is not None and eps_beat and revenue_beat and surprise > threshold:
            return EventRead(
                Direction.LONG, 0.7, f"Beat on both EPS ({surprise:.1f}% surprise) and revenue"
            )
        if surprise is not None and not eps_beat and not revenue_beat and surprise < -threshold:
            return EventRead(
                Direction.SHORT, 0.7, f"Missed on both EPS ({surprise:.1f}% surprise) and revenue"
            )

        if earnings.guidance is GuidanceChange.RAISED:
            return EventRead(Direction.LONG, 0.6, "Guidance raised despite mixed results")
        if earnings.guidance is GuidanceChange.LOWERED:
            return EventRead(Direction.SHORT, 0.6, "Guidance lowered")
        return EventRead(Direction.NEUTRAL, 0.4, "Mixed earnings results")

    def analyze_macro_impact(
        self,
        event: MacroEvent,
        sensitivity: ExpectedImpact = ExpectedImpact.POSITIVE,
    ) -> MacroImpact:
        """
        Direction and size of a macro surprise for an asset.

        Args:
            event: Released macro event (needs actual and forecast)
            sensitivity: NEGATIVE for assets that move against the economy

        Returns:
            MacroImpact; neutral with magnitude 0 when values are missing
        """
        if event.actual is None or event.forecast is None:
            return MacroImpact(ExpectedImpact.NEUTRAL, 0.0)

        surprise = event.actual - event.forecast
        magnitude = abs(surprise) / (abs(event.forecast) or 1.0)

        positive_is_bullish = any(t in event.type.lower() for t in POSITIVE_IS_BULLISH)
        if surprise > 0:
            direction = ExpectedImpact.POSITIVE if positive_is_bullish else ExpectedImpact.NEGATIVE
        elif surprise < 0:
            direction = ExpectedImpact.NEGATIVE if positive_is_bullish else ExpectedImpact.POSITIVE
        else:
            direction = ExpectedImpact.NEUTRAL

        if sensitivity is ExpectedImpact.NEGATIVE and direction is not ExpectedImpact.NEUTRAL:
            direction = (
                ExpectedImpact.NEGATIVE
                if direction is ExpectedImpact.POSITIVE
                else ExpectedImpact.POSITIVE
            )

        return MacroImpact(direction, magnitude)
