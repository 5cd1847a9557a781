"""Quality factor analysis: profitability, balance sheet, earnings quality, growth."""

from dataclasses import dataclass, field
from operator import gt, lt

from invest_intel.models import FundamentalSnapshot, clamp
from invest_intel.utils.validators import Tier, tier_delta

BASELINE = 50.0

GRADE_FLOORS: tuple[tuple[float, str], ...] = ((80, "A"), (65, "B"), (50, "C"), (35, "D"))

_OPERATING_MARGIN: tuple[Tier, ...] = ((gt, 25, 10), (gt, 15, 5), (lt, 5, -10))
_GROWTH_RATE: tuple[Tier, ...] = ((gt, 30, 20), (gt, 20, 15), (gt, 10, 10), (gt, 5, 5), (lt, 0, -15))


@dataclass(frozen=True)
class QualityRules:
    """Tier tables per sub-score, keyed by FundamentalSnapshot field."""

    profitability: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "roe": ((gt, 20, 15), (gt, 15, 10), (gt, 10, 5), (lt, 0, -20), (lt, 5, -10)),
            "roa": ((gt, 10, 10), (gt, 5, 5), (lt, 0, -15)),
            "roic": ((gt, 15, 15), (gt, 10, 10), (lt, 5, -10)),
            "operating_margin": _OPERATING_MARGIN,
        }
    )
    financial_strength: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "debt_to_equity": ((lt, 0.3, 15), (lt, 0.5, 10), (lt, 1, 5), (gt, 2, -15), (gt, 1.5, -10)),
            "current_ratio": ((gt, 2.5, 10), (gt, 1.5, 5), (lt, 1, -20), (lt, 1.2, -10)),
            "quick_ratio": ((gt, 1.5, 10), (gt, 1, 5), (lt, 0.5, -15)),
            "fcf_yield": ((gt, 8, 15), (gt, 5, 10), (gt, 2, 5), (lt, 0, -20)),
        }
    )
    earnings_quality: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "gross_margin": ((gt, 50, 15), (gt, 35, 10), (gt, 20, 5), (lt, 15, -10)),
            "net_margin": ((gt, 20, 15), (gt, 10, 10), (gt, 5, 5), (lt, 0, -20)),
            "operating_margin": _OPERATING_MARGIN,
        }
    )
    growth: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "revenue_growth": _GROWTH_RATE,
            "earnings_growth": _GROWTH_RATE,
        }
    )


@dataclass(frozen=True)
class QualityScore:
    overall: float
    profitability: float
    financial_strength: float
    earnings_quality: float
    growth: float


@dataclass
class QualityAnalysis:
    score: QualityScore
    grade: str
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    red_flags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class QualityComparison:
    winner: str  # "a" | "b" | "tie"
    components: dict[str, tuple[float, float, str]]


def grade_for(score: float) -> str:
    for floor, grade in GRADE_FLOORS:
        if score >= floor:
            return grade
    return "F"


def _score_table(data: FundamentalSnapshot, table: dict[str, tuple[Tier, ...]]) -> float:
    score = BASELINE
    for name, tiers in table.items():
        score += tier_delta(getattr(data, name), tiers)
    return clamp(score)


class QualityFactorAnalyzer:
    """Grades business quality from a fundamental snapshot."""

    def __init__(self, rules: QualityRules | None = None):
        self.rules = rules or QualityRules()

    def score(self, data: FundamentalSnapshot) -> QualityScore:
        profitability = _score_table(data, self.rules.profitability)
        financial_strength = _score_table(data, self.rules.financial_strength)
        earnings_quality = _score_table(data, self.rules.earnings_quality)
        growth = _score_table(data, self.rules.growth)
        overall = (profitability + financial_strength + earnings_quality + growth) / 4

        return QualityScore(
            overall=clamp(overall),
            profitability=profitability,
            financial_strength=financial_strength,
            earnings_quality=earnings_quality,
            growth=growth,
        )

    def analyze(self, data: FundamentalSnapshot) -> QualityAnalysis:
        """Score plus strengths, weaknesses, red flags and a letter grade."""
        score = self.score(data)
        strengths: list[str] = []
        weaknesses: list[str] = []
        red_flags: list[str] = []

        if data.roe is not None and data.roe > 15:
            strengths.append(f"Strong ROE of {data.roe:.1f}%")
        if data.gross_margin is not None and data.gross_margin > 40:
            strengths.append(f"High gross margin of {data.gross_margin:.1f}%")
        if data.current_ratio is not None and data.current_ratio > 2:
            strengths.append("Excellent liquidity position")
        if data.fcf_yield is not None and data.fcf_yield > 5:
            strengths.append("Strong free cash flow generation")

        if data.roe is not None and 0 < data.roe < 10:
            weaknesses.append("Below-average return on equity")
        if data.debt_to_equity is not None and data.debt_to_equity > 1:
            weaknesses.append("Elevated debt levels")
        if data.operating_margin is not None and data.operating_margin < 10:
            weaknesses.append("Low operating margins")

        if data.roe is not None and data.roe < 0:
            red_flags.append("Negative return on equity")
        if data.current_ratio is not None and data.current_ratio < 1:
            red_flags.append("Liquidity concerns - current ratio below 1")
        if data.debt_to_equity is not None and data.debt_to_equity > 3:
            red_flags.append("Extremely high debt levels")
        if data.net_margin is not None and data.net_margin < 0:
            red_flags.append("Operating at a loss")

        return QualityAnalysis(
            score=score,
            grade=grade_for(score.overall),
            strengths=strengths,
            weaknesses=weaknesses,
            red_flags=red_flags,
        )

    def compare(self, a: FundamentalSnapshot, b: FundamentalSnapshot) -> QualityComparison:
        """Component-by-component comparison; the side winning more components wins."""
        score_a, score_b = self.score(a), self.score(b)
        components: dict[str, tuple[float, float, str]] = {}
        for name in ("overall", "profitability", "financial_strength", "earnings_quality", "growth"):
            va, vb = getattr(score_a, name), getattr(score_b, name)
            components[name] = (va, vb, "a" if va > vb else "b" if vb > va else "tie")

        a_wins = sum(1 for _, _, w in components.values() if w == "a")
        b_wins = sum(1 for _, _, w in components.values() if w == "b")
        winner = "a" if a_wins > b_wins else "b" if b_wins > a_wins else "tie"
        return QualityComparison(winner=winner, components=components)
