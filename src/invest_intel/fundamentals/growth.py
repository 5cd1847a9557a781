"""Growth factor analysis: realised growth, forward proxies, sustainability and PEG."""

from dataclasses import dataclass, field
from operator import gt, lt

from invest_intel.models import FundamentalSnapshot, clamp
from invest_intel.utils.validators import Tier, tier_delta

BASELINE = 50.0

# (exclusive lower bound on growth %, score); anything at or below -10 scores 10
GROWTH_RATE_SCORES: tuple[tuple[float, float], ...] = (
    (50, 95),
    (30, 85),
    (20, 75),
    (10, 60),
    (5, 50),
    (0, 40),
    (-10, 25),
)

# (exclusive lower bound on average growth %, profile)
PROFILE_FLOORS: tuple[tuple[float, str], ...] = (
    (40, "hyper-growth"),
    (20, "high-growth"),
    (8, "moderate-growth"),
    (0, "slow-growth"),
)

# (exclusive upper bound on PEG, verdict)
PEG_VERDICTS: tuple[tuple[float, str], ...] = (
    (0.5, "Significantly undervalued relative to growth"),
    (1, "Attractively valued relative to growth"),
    (1.5, "Fairly valued relative to growth"),
    (2, "Somewhat expensive relative to growth"),
)


@dataclass(frozen=True)
class GrowthRules:
    gross_margin: tuple[Tier, ...] = ((gt, 60, 10), (gt, 40, 5), (lt, 20, -10))
    operating_leverage: tuple[Tier, ...] = ((gt, 0.5, 10), (lt, 0.2, -10))
    implied_growth: tuple[Tier, ...] = ((gt, 0.2, 15), (gt, 0.1, 10), (lt, 0, -10))
    sustainability: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "gross_margin": ((gt, 50, 15), (gt, 35, 10), (lt, 20, -15)),
            "roe": ((gt, 20, 15), (gt, 10, 5), (lt, 0, -20)),
            "debt_to_equity": ((lt, 0.5, 10), (gt, 2, -15)),
            "fcf_yield": ((gt, 5, 10), (lt, 0, -15)),
        }
    )
    deceleration: float = 0.8
    one_year_factor: float = 0.9
    three_year_factor: float = 0.7
    turnaround_earnings_growth: float = 30
    turnaround_net_margin: float = 5


@dataclass(frozen=True)
class GrowthScore:
    overall: float
    revenue_growth: float
    earnings_growth: float
    future_growth: float


@dataclass(frozen=True)
class GrowthProjection:
    metric: str
    current: float
    projected_1y: float
    projected_3y: float
    confidence: float


@dataclass
class GrowthAnalysis:
    score: GrowthScore
    profile: str
    sustainability: float
    drivers: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    projections: list[GrowthProjection] = field(default_factory=list)


@dataclass(frozen=True)
class PegAssessment:
    """PEG verdict. When ``computable`` is False, ``peg`` is None and ``reason`` says why."""

    computable: bool
    peg: float | None
    assessment: str
    reason: str | None = None


def score_growth_rate(growth: float | None) -> float:
    if growth is None:
        return BASELINE
    for floor, score in GROWTH_RATE_SCORES:
        if growth > floor:
            return score
    return 10.0


class GrowthFactorAnalyzer:
    """Scores realised and implied growth and judges price against it."""

    def __init__(self, rules: GrowthRules | None = None):
        self.rules = rules or GrowthRules()

    def score(self, data: FundamentalSnapshot) -> GrowthScore:
        revenue = score_growth_rate(data.revenue_growth)
        earnings = score_growth_rate(data.earnings_growth)
        future = self._future(data)
        return GrowthScore(
            overall=clamp((revenue + earnings + future) / 3),
            revenue_growth=revenue,
            earnings_growth=earnings,
            future_growth=future,
        )

    def _future(self, data: FundamentalSnapshot) -> float:
        r = self.rules
        score = BASELINE + tier_delta(data.gross_margin, r.gross_margin)

        if data.operating_margin is not None and data.gross_margin:
            score += tier_delta(data.operating_margin / data.gross_margin, r.operating_leverage)

        # Forward P/E below trailing implies the market expects earnings to grow
        if data.forward_pe and data.pe is not None and data.pe > 0:
            implied = (data.pe - data.forward_pe) / data.forward_pe
            score += tier_delta(implied, r.implied_growth)

        return clamp(score)

    def profile(self, data: FundamentalSnapshot) -> str:
        r = self.rules
        revenue = data.revenue_growth or 0.0
        earnings = data.earnings_growth or 0.0

        if (
            earnings > r.turnaround_earnings_growth
            and data.net_margin is not None
            and data.net_margin < r.turnaround_net_margin
        ):
            return "turnaround"

        average = (revenue + earnings) / 2
        for floor, label in PROFILE_FLOORS:
            if average > floor:
                return label
        return "declining"

    def sustainability(self, data: FundamentalSnapshot) -> float:
        score = BASELINE
        for name, tiers in self.rules.sustainability.items():
            score += tier_delta(getattr(data, name), tiers)
        return clamp(score)

    def drivers(self, data: FundamentalSnapshot) -> list[str]:
        drivers: list[str] = []
        if data.revenue_growth is not None and data.revenue_growth > 15:
            drivers.append(f"Strong revenue momentum ({data.revenue_growth:.1f}% YoY)")
        if (
            data.earnings_growth is not None
            and data.revenue_growth is not None
            and data.earnings_growth > data.revenue_growth
        ):
            drivers.append("Operating leverage driving earnings growth faster than revenue")
        if data.gross_margin is not None and data.gross_margin > 50:
            drivers.append("High gross margins provide reinvestment capacity")
        if data.roe is not None and data.roe > 15:
            drivers.append(f"High return on equity ({data.roe:.1f}%) enables profitable reinvestment")
        if data.roic is not None and data.roic > 12:
            drivers.append("Strong ROIC indicates efficient capital deployment")
        return drivers or ["No clear growth drivers identified"]

    def risks(self, data: FundamentalSnapshot) -> list[str]:
        risks: list[str] = []
        if data.revenue_growth is not None and data.revenue_growth < 5:
            risks.append("Slowing revenue growth")
        if data.gross_margin is not None and data.gross_margin < 30:
            risks.append("Low gross margins limit growth investment capacity")
        if data.debt_to_equity is not None and data.debt_to_equity > 1.5:
            risks.append("High debt levels may constrain growth investment")
        if data.fcf_yield is not None and data.fcf_yield < 0:
            risks.append("Negative free cash flow - dependent on external funding")
        if (
            data.earnings_growth is not None
            and data.revenue_growth is not None
            and data.earnings_growth < data.revenue_growth - 10
        ):
            risks.append("Margin compression - earnings growing slower than revenue")
        return risks or ["No significant growth risks identified"]

    def projections(self, data: FundamentalSnapshot) -> list[GrowthProjection]:
        """1- and 3-year projections, discounted for deceleration."""
        r = self.rules
        confidence = self.sustainability(data) / 100
        projections: list[GrowthProjection] = []

        for metric, current, conf in (
            ("Revenue Growth", data.revenue_growth, confidence),
            ("Earnings Growth", data.earnings_growth, confidence * 0.9),
        ):
            if current is None:
                continue
            sustainable = min(current, current * r.deceleration)
            projections.append(
                GrowthProjection(
                    metric=metric,
                    current=current,
                    projected_1y=sustainable * r.one_year_factor,
                    projected_3y=sustainable * r.three_year_factor,
                    confidence=conf,
                )
            )

        if data.net_margin is not None:
            improvement = 1.0 if data.net_margin < 20 else 0.0
            projections.append(
                GrowthProjection(
                    metric="Net Margin",
                    current=data.net_margin,
                    projected_1y=data.net_margin + improvement,
                    projected_3y=data.net_margin + improvement * 2,
                    confidence=0.5,
                )
            )
        return projections

    def analyze(self, data: FundamentalSnapshot) -> GrowthAnalysis:
        return GrowthAnalysis(
            score=self.score(data),
            profile=self.profile(data),
            sustainability=self.sustainability(data),
            drivers=self.drivers(data),
            risks=self.risks(data),
            projections=self.projections(data),
        )

    def growth_adjusted_value(self, data: FundamentalSnapshot) -> PegAssessment:
        """
        PEG (P/E over earnings growth %) and a verdict.

        Missing P/E, missing growth, or non-positive growth short-circuits
        to a non-computable result instead of dividing.
        """
        if data.pe is None:
            return PegAssessment(False, None, "Cannot calculate PEG", "missing P/E ratio")
        if data.earnings_growth is None:
            return PegAssessment(False, None, "Cannot calculate PEG", "missing earnings growth")
        if data.earnings_growth <= 0:
            return PegAssessment(False, None, "Cannot calculate PEG", "negative or zero earnings growth")

        peg = data.pe / data.earnings_growth
        for bound, verdict in PEG_VERDICTS:
            if peg < bound:
                return PegAssessment(True, peg, verdict)
        return PegAssessment(True, peg, "Overvalued relative to growth")
