"""Composite opportunity scoring and Opportunity assembly."""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from invest_intel.fundamentals import (
    GrowthFactorAnalyzer,
    QualityFactorAnalyzer,
    ValuationFactorAnalyzer,
)
from invest_intel.models import (
    Asset,
    Direction,
    FundamentalSnapshot,
    Opportunity,
    Signal,
    SignalStrength,
    clamp,
    utcnow,
)
from invest_intel.scoring.thesis import ThesisGenerator
from invest_intel.signals.base import TIMEFRAME_HOURS

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0

STRENGTH_MULTIPLIERS: dict[SignalStrength, float] = {
    SignalStrength.STRONG: 1.5,
    SignalStrength.MODERATE: 1.0,
    SignalStrength.WEAK: 0.5,
    SignalStrength.NEUTRAL: 0.25,
}

# (exclusive upper bound in hours, label)
HORIZON_BUCKETS: tuple[tuple[float, str], ...] = (
    (1, "Intraday"),
    (24, "1-3 Days"),
    (168, "1-2 Weeks"),
    (720, "1-3 Months"),
)
LONGEST_HORIZON = "3+ Months"
DEFAULT_HORIZON_HOURS = 168.0

LONG_INVALIDATION = (
    "Price breaks below recent support levels",
    "Volume dries up on attempted breakout",
    "Key technical indicators flip bearish",
)
SHORT_INVALIDATION = (
    "Price breaks above recent resistance levels",
    "Volume surge on attempted breakdown fails",
    "Key technical indicators flip bullish",
)
COMMON_INVALIDATION = (
    "Fundamental thesis changes materially",
    "Time horizon expires without expected move",
)


@dataclass(frozen=True)
class ScoringWeights:
    technical: float = 0.25
    fundamental: float = 0.20
    valuation: float = 0.20
    growth: float = 0.15
    catalyst: float = 0.10
    risk: float = 0.10


@dataclass(frozen=True)
class OpportunityScoreBreakdown:
    overall: float
    technical: float
    fundamental: float
    valuation: float
    growth: float
    catalyst: float
    risk: float
    risk_adjusted: float


def horizon_for_hours(hours: float) -> str:
    for bound, label in HORIZON_BUCKETS:
        if hours < bound:
            return label
    return LONGEST_HORIZON


def net_is_long(signals: Sequence[Signal]) -> bool:
    """True unless short signals outnumber long ones."""
    longs = sum(1 for s in signals if s.direction is Direction.LONG)
    shorts = sum(1 for s in signals if s.direction is Direction.SHORT)
    return longs >= shorts


class OpportunityScorer:
    """
    Weighs technical, fundamental, valuation, growth, catalyst and risk
    sub-scores into one 0-100 opportunity score.

    Risk enters inverted: (100 - risk) * weight.
    """

    def __init__(
        self,
        quality: QualityFactorAnalyzer | None = None,
        valuation: ValuationFactorAnalyzer | None = None,
        growth: GrowthFactorAnalyzer | None = None,
        thesis_generator: ThesisGenerator | None = None,
        weights: ScoringWeights | None = None,
    ):
        self.quality = quality or QualityFactorAnalyzer()
        self.valuation = valuation or ValuationFactorAnalyzer()
        self.growth = growth or GrowthFactorAnalyzer()
        self.thesis_generator = thesis_generator or ThesisGenerator(
            self.quality, self.valuation, self.growth
        )
        self.weights = weights or ScoringWeights()

    def score(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
        catalysts: Sequence[str] | None = None,
        weights: ScoringWeights | None = None,
        risk_score: float | None = None,
    ) -> OpportunityScoreBreakdown:
        """
        Score one asset.

        Args:
            asset: Asset being scored
            signals: Current signals for the asset
            fundamentals: Optional snapshot; absent sub-scores are neutral 50
            catalysts: Optional catalyst descriptions
            weights: Per-call override of the scorer's weights
            risk_score: Externally assessed risk (0-100); the built-in
                heuristic is used when omitted

        Returns:
            OpportunityScoreBreakdown with overall and risk-adjusted scores
        """
        w = weights or self.weights
        technical = self.technical_score(signals)
        if fundamentals is not None:
            fundamental = self.quality.score(fundamentals).overall
            valuation = self.valuation.score(fundamentals, asset.sector).overall
            growth = self.growth.score(fundamentals).overall
        else:
            fundamental = valuation = growth = NEUTRAL_SCORE
        catalyst = self.catalyst_score(catalysts or [])
        risk = clamp(risk_score) if risk_score is not None else self.risk_score(signals, fundamentals)

        overall = clamp(
            technical * w.technical
            + fundamental * w.fundamental
            + valuation * w.valuation
            + growth * w.growth
            + catalyst * w.catalyst
            + (100 - risk) * w.risk
        )
        return OpportunityScoreBreakdown(
            overall=overall,
            technical=technical,
            fundamental=fundamental,
            valuation=valuation,
            growth=growth,
            catalyst=catalyst,
            risk=risk,
            risk_adjusted=overall * (1 - risk / 200),
        )

    def technical_score(self, signals: Sequence[Signal]) -> float:
        """Strength-weighted directional confidence mapped onto 0-100, 50 neutral."""
        if not signals:
            return NEUTRAL_SCORE

        total = 0.0
        weight = 0.0
        for signal in signals:
            multiplier = STRENGTH_MULTIPLIERS[signal.strength]
            sign = {Direction.LONG: 1, Direction.SHORT: -1}.get(signal.direction, 0)
            total += signal.confidence * 100 * multiplier * sign
            weight += multiplier

        average = total / weight if weight else 0.0
        return clamp(NEUTRAL_SCORE + average / 2)

    def catalyst_score(self, catalysts: Sequence[str]) -> float:
        if not catalysts:
            return NEUTRAL_SCORE
        return NEUTRAL_SCORE + min(len(catalysts) * 15, 50)

    def risk_score(
        self,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
    ) -> float:
        """Quick heuristic risk from signal disagreement and balance-sheet stress."""
        risk = 30.0
        directions = {s.direction for s in signals}
        if Direction.LONG in directions and Direction.SHORT in directions:
            risk += 15

        avg_confidence = sum(s.confidence for s in signals) / len(signals) if signals else 0.5
        if avg_confidence < 0.5:
            risk += 20

        if fundamentals is not None:
            if fundamentals.debt_to_equity is not None and fundamentals.debt_to_equity > 2:
                risk += 15
            if fundamentals.current_ratio is not None and fundamentals.current_ratio < 1:
                risk += 20
            if fundamentals.net_margin is not None and fundamentals.net_margin < 0:
                risk += 15

        return min(100.0, risk)

    def generate_opportunity(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
        catalysts: Sequence[str] | None = None,
        risk_score: float | None = None,
        now: datetime | None = None,
    ) -> Opportunity:
        """Score the asset and bundle signals, thesis, horizon and invalidation rules."""
        breakdown = self.score(asset, signals, fundamentals, catalysts, risk_score=risk_score)
        thesis = self.thesis_generator.generate(asset, signals, fundamentals, catalysts)
        is_long = net_is_long(signals)

        base_return = (breakdown.overall - 50) / 10
        expected_return = base_return if is_long else -base_return

        opportunity = Opportunity(
            id=f"opp_{asset.symbol}_{uuid.uuid4().hex[:12]}",
            symbol=asset.symbol,
            asset=asset,
            signals=list(signals),
            thesis=thesis,
            opportunity_score=breakdown.overall,
            risk_score=breakdown.risk,
            expected_return=expected_return,
            time_horizon=self.time_horizon(signals),
            invalidation_conditions=self.invalidation_conditions(is_long),
            generated_at=now or utcnow(),
        )
        logger.debug(
            "%s: opportunity score %.1f, risk %.1f, horizon %s",
            asset.symbol,
            breakdown.overall,
            breakdown.risk,
            opportunity.time_horizon,
        )
        return opportunity

    def time_horizon(self, signals: Sequence[Signal]) -> str:
        if not signals:
            return horizon_for_hours(DEFAULT_HORIZON_HOURS)
        hours = [TIMEFRAME_HOURS.get(s.timeframe, 24.0) for s in signals]
        return horizon_for_hours(sum(hours) / len(hours))

    def invalidation_conditions(self, is_long: bool) -> list[str]:
        side = LONG_INVALIDATION if is_long else SHORT_INVALIDATION
        return [*side, *COMMON_INVALIDATION]
