"""Multi-factor risk scoring, drawdown estimate and position sizing."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from operator import gt, lt

from invest_intel.models import (
    Asset,
    AssetClass,
    Direction,
    FundamentalSnapshot,
    MarketRegime,
    RiskLevel,
    Signal,
    VolatilityMetrics,
    clamp,
)
from invest_intel.utils.validators import Tier, tier_delta

logger = logging.getLogger(__name__)

# Component score at or above which a factor is reported
FACTOR_THRESHOLD = 60.0

REGIME_RISK: dict[MarketRegime, float] = {
    MarketRegime.BULL: 30,
    MarketRegime.BEAR: 70,
    MarketRegime.SIDEWAYS: 40,
    MarketRegime.VOLATILE: 80,
    MarketRegime.LOW_VOLATILITY: 25,
}

ASSET_CLASS_RISK: dict[AssetClass, float] = {
    AssetClass.EQUITY: 0,
    AssetClass.ETF: -10,
    AssetClass.BOND: -20,
    AssetClass.CRYPTO: 30,
    AssetClass.COMMODITY: 10,
    AssetClass.FOREX: 5,
}

RISK_LEVEL_FLOORS: tuple[tuple[float, RiskLevel], ...] = (
    (75, RiskLevel.VERY_HIGH),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MODERATE),
    (25, RiskLevel.LOW),
)

# (exclusive lower bound on portfolio weight %, risk)
CONCENTRATION_STEPS: tuple[tuple[float, float], ...] = ((25, 90), (15, 70), (10, 50), (5, 30))


@dataclass(frozen=True)
class RiskWeights:
    market: float = 0.20
    asset: float = 0.15
    technical: float = 0.25
    fundamental: float = 0.20
    liquidity: float = 0.10
    concentration: float = 0.10


@dataclass(frozen=True)
class RiskRules:
    market_cap: tuple[Tier, ...] = ((lt, 300e6, 25), (lt, 2e9, 15), (gt, 100e9, -10))
    signal_confidence: tuple[Tier, ...] = ((lt, 0.4, 20), (lt, 0.6, 10), (gt, 0.8, -10))
    historical_volatility: tuple[Tier, ...] = ((gt, 40, 20), (gt, 25, 10), (lt, 15, -10))
    fundamentals: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "debt_to_equity": ((gt, 3, 25), (gt, 2, 15), (gt, 1, 5), (lt, 0.3, -10)),
            "current_ratio": ((lt, 0.8, 25), (lt, 1, 15), (gt, 2, -10)),
            "net_margin": ((lt, 0, 20), (lt, 5, 10), (gt, 20, -10)),
            "revenue_growth": ((lt, -10, 20), (lt, 0, 10)),
        }
    )
    dollar_volume: tuple[Tier, ...] = ((lt, 100e3, 40), (lt, 1e6, 25), (lt, 10e6, 10), (gt, 100e6, -15))
    mixed_signal_penalty: float = 15
    expanding_penalty: float = 10
    max_position_fraction: float = 0.25
    max_drawdown_cap: float = 50


@dataclass(frozen=True)
class RiskBreakdown:
    overall: float
    market: float
    asset: float
    technical: float
    fundamental: float
    liquidity: float
    concentration: float


@dataclass(frozen=True)
class RiskFactor:
    factor: str
    impact: float
    description: str


@dataclass
class RiskAssessment:
    score: RiskBreakdown
    level: RiskLevel
    factors: list[RiskFactor] = field(default_factory=list)
    mitigations: list[str] = field(default_factory=list)
    max_drawdown_estimate: float = 0.0


@dataclass(frozen=True)
class PositionSizeLimit:
    max_position_size: float
    max_position_percent: float
    rationale: str


def risk_level_for(score: float) -> RiskLevel:
    for floor, level in RISK_LEVEL_FLOORS:
        if score >= floor:
            return level
    return RiskLevel.VERY_LOW


class RiskScorer:
    """
    Weighted risk across market, asset, technical, fundamental, liquidity
    and concentration components. Higher is riskier.
    """

    def __init__(self, weights: RiskWeights | None = None, rules: RiskRules | None = None):
        self.weights = weights or RiskWeights()
        self.rules = rules or RiskRules()

    def assess(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
        volatility: VolatilityMetrics | None = None,
        market_regime: MarketRegime | None = None,
        portfolio_weight: float | None = None,
    ) -> RiskAssessment:
        """
        Assess risk for one asset.

        Args:
            asset: Asset under review
            signals: Current signals for the asset
            fundamentals: Optional snapshot (neutral 50 when omitted)
            volatility: Optional metrics from the volatility analyzer
            market_regime: Optional regime (neutral 50 when omitted)
            portfolio_weight: Optional position weight in percent

        Returns:
            RiskAssessment with breakdown, level, factors and mitigations
        """
        w = self.weights
        market = REGIME_RISK.get(market_regime, 50.0) if market_regime else 50.0
        asset_risk = self.asset_risk(asset)
        technical = self.technical_risk(signals, volatility)
        fundamental = self.fundamental_risk(fundamentals) if fundamentals else 50.0
        liquidity = self.liquidity_risk(asset)
        concentration = self.concentration_risk(portfolio_weight)

        overall = (
            market * w.market
            + asset_risk * w.asset
            + technical * w.technical
            + fundamental * w.fundamental
            + liquidity * w.liquidity
            + concentration * w.concentration
        )
        score = RiskBreakdown(
            overall=clamp(overall),
            market=market,
            asset=asset_risk,
            technical=technical,
            fundamental=fundamental,
            liquidity=liquidity,
            concentration=concentration,
        )

        return RiskAssessment(
            score=score,
            level=risk_level_for(score.overall),
            factors=self.factors(score, asset, fundamentals),
            mitigations=self.mitigations(score),
            max_drawdown_estimate=self.max_drawdown(score, volatility),
        )

    def asset_risk(self, asset: Asset) -> float:
        risk = 40 + ASSET_CLASS_RISK.get(asset.asset_class, 0)
        if asset.market_cap:
            risk += tier_delta(asset.market_cap, self.rules.market_cap)
        return clamp(risk)

    def technical_risk(
        self,
        signals: Sequence[Signal],
        volatility: VolatilityMetrics | None = None,
    ) -> float:
        r = self.rules
        risk = 40.0

        directions = {s.direction for s in signals}
        if Direction.LONG in directions and Direction.SHORT in directions:
            risk += r.mixed_signal_penalty

        avg_confidence = sum(s.confidence for s in signals) / len(signals) if signals else 0.5
        risk += tier_delta(avg_confidence, r.signal_confidence)

        if volatility is not None:
            risk += tier_delta(volatility.historical_volatility, r.historical_volatility)
            if volatility.is_expanding:
                risk += r.expanding_penalty

        return clamp(risk)

    def fundamental_risk(self, data: FundamentalSnapshot) -> float:
        risk = 40.0
        for name, tiers in self.rules.fundamentals.items():
            risk += tier_delta(getattr(data, name), tiers)
        return clamp(risk)

    def liquidity_risk(self, asset: Asset) -> float:
        risk = 30.0
        if asset.avg_volume is not None and asset.price is not None:
            risk += tier_delta(asset.avg_volume * asset.price, self.rules.dollar_volume)
        return clamp(risk)

    def concentration_risk(self, portfolio_weight: float | None) -> float:
        if not portfolio_weight:
            return 30.0
        for floor, risk in CONCENTRATION_STEPS:
            if portfolio_weight > floor:
                return risk
        return 15.0

    def factors(
        self,
        score: RiskBreakdown,
        asset: Asset,
        fundamentals: FundamentalSnapshot | None = None,
    ) -> list[RiskFactor]:
        """Components at or above the factor threshold, largest impact first."""
        candidates = [
            (score.market, "Market Conditions", "Elevated market volatility or bearish regime"),
            (score.asset, "Asset Class Risk", f"Higher inherent risk in {asset.asset_class.value} assets"),
            (score.technical, "Technical Uncertainty", "Mixed or low-confidence technical signals"),
            (
                score.fundamental if fundamentals else 0.0,
                "Fundamental Concerns",
                "Balance sheet or profitability issues",
            ),
            (score.liquidity, "Liquidity Risk", "Limited trading volume may impact execution"),
            (score.concentration, "Concentration Risk", "Position size relative to portfolio is high"),
        ]
        factors = [
            RiskFactor(factor=name, impact=impact, description=description)
            for impact, name, description in candidates
            if impact >= FACTOR_THRESHOLD
        ]
        return sorted(factors, key=lambda f: f.impact, reverse=True)

    def mitigations(self, score: RiskBreakdown) -> list[str]:
        mitigations: list[str] = []
        if score.overall >= FACTOR_THRESHOLD:
            mitigations.append("Consider reducing position size")
        if score.technical >= FACTOR_THRESHOLD:
            mitigations.append("Wait for clearer technical confirmation")
            mitigations.append("Use tighter stop-loss levels")
        if score.fundamental >= FACTOR_THRESHOLD:
            mitigations.append("Monitor upcoming earnings/filings closely")
            mitigations.append("Consider hedging with options if available")
        if score.liquidity >= FACTOR_THRESHOLD:
            mitigations.append("Use limit orders to manage execution")
            mitigations.append("Scale into position over time")
        if score.market >= FACTOR_THRESHOLD:
            mitigations.append("Consider portfolio hedges during volatile periods")
        if score.concentration >= FACTOR_THRESHOLD:
            mitigations.append("Reduce position size to improve diversification")
        return mitigations or ["Standard risk management practices apply"]

    def max_drawdown(self, score: RiskBreakdown, volatility: VolatilityMetrics | None = None) -> float:
        """Drawdown estimate in percent: 10 + overall/5 (+ HV/5), capped."""
        drawdown = 10 + score.overall / 100 * 20
        if volatility is not None:
            drawdown += volatility.historical_volatility / 5
        return min(drawdown, self.rules.max_drawdown_cap)

    def position_size_limit(
        self,
        risk: RiskAssessment,
        portfolio_value: float,
        max_risk_per_trade: float = 0.02,
    ) -> PositionSizeLimit:
        """
        Risk-discounted position cap.

        base = portfolio_value * max_risk_per_trade, scaled by
        (1 - overall/200) and divided by the drawdown fraction, then capped
        at a quarter of the portfolio.
        """
        if portfolio_value <= 0:
            return PositionSizeLimit(0.0, 0.0, "Cannot size position: portfolio value must be positive")

        drawdown = risk.max_drawdown_estimate
        multiplier = 1 - risk.score.overall / 200
        base = portfolio_value * max_risk_per_trade
        adjusted = base * multiplier / (drawdown / 100) if drawdown > 0 else base * multiplier
        size = min(adjusted, portfolio_value * self.rules.max_position_fraction)

        return PositionSizeLimit(
            max_position_size=size,
            max_position_percent=size / portfolio_value * 100,
            rationale=(
                f"Based on {risk.level.value} risk level and "
                f"{drawdown:.1f}% estimated max drawdown"
            ),
        )
