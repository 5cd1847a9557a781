"""Valuation factor analysis against industry benchmark multiples."""

import logging
from dataclasses import dataclass, field
from operator import gt, lt

from invest_intel.models import FundamentalSnapshot, clamp
from invest_intel.utils.validators import Tier, tier_delta

logger = logging.getLogger(__name__)

BASELINE = 50.0


@dataclass(frozen=True)
class IndustryBenchmarks:
    pe: float
    forward_pe: float
    pb: float
    ps: float
    ev_to_ebitda: float
    peg: float


INDUSTRY_BENCHMARKS: dict[str, IndustryBenchmarks] = {
    "technology": IndustryBenchmarks(25, 22, 5, 6, 18, 1.5),
    "healthcare": IndustryBenchmarks(20, 18, 4, 4, 14, 1.8),
    "financials": IndustryBenchmarks(12, 11, 1.2, 3, 10, 1.2),
    "consumer": IndustryBenchmarks(22, 20, 4, 2, 12, 1.6),
    "industrials": IndustryBenchmarks(18, 16, 3, 1.5, 11, 1.4),
    "energy": IndustryBenchmarks(10, 9, 1.5, 1, 6, 1.0),
    "utilities": IndustryBenchmarks(18, 17, 1.8, 2, 10, 2.0),
    "realestate": IndustryBenchmarks(35, 32, 2, 8, 15, 2.5),
    "materials": IndustryBenchmarks(15, 13, 2, 1.2, 8, 1.3),
    "default": IndustryBenchmarks(20, 18, 3, 3, 12, 1.5),
}

# (upper bound on value/benchmark, percentile)
PERCENTILE_BUCKETS: tuple[tuple[float, float], ...] = (
    (0.5, 95),
    (0.75, 75),
    (1.0, 50),
    (1.25, 35),
    (1.5, 20),
)

ASSESSMENT_FLOORS: tuple[tuple[float, str], ...] = (
    (80, "deeply-undervalued"),
    (65, "undervalued"),
    (40, "fairly-valued"),
    (25, "overvalued"),
)


@dataclass(frozen=True)
class ValuationRules:
    # Relative tiers apply to value / industry benchmark
    relative: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "pe": ((lt, 0.6, 20), (lt, 0.8, 15), (lt, 1, 5), (gt, 1.5, -15), (gt, 1.2, -10)),
            "pb": ((lt, 0.5, 15), (lt, 0.8, 10), (lt, 1, 5), (gt, 2, -15)),
            "ev_to_ebitda": ((lt, 0.6, 15), (lt, 0.8, 10), (lt, 1, 5), (gt, 1.5, -15)),
        }
    )
    absolute: dict[str, tuple[Tier, ...]] = field(
        default_factory=lambda: {
            "peg": ((lt, 0.5, 25), (lt, 1, 15), (lt, 1.5, 5), (gt, 3, -20), (gt, 2, -10)),
            "fcf_yield": ((gt, 10, 20), (gt, 7, 15), (gt, 4, 5), (lt, 0, -15)),
            "dividend_yield": ((gt, 5, 10), (gt, 3, 5)),
        }
    )
    historical_pe: tuple[Tier, ...] = ((lt, 10, 15), (lt, 15, 10), (gt, 40, -15), (gt, 30, -10))
    historical_pb: tuple[Tier, ...] = ((lt, 1, 15), (lt, 1.5, 10), (gt, 8, -15), (gt, 5, -10))


@dataclass(frozen=True)
class ValuationScore:
    overall: float
    relative_value: float
    absolute_value: float
    historical_value: float


@dataclass(frozen=True)
class MultipleReading:
    value: float
    industry_avg: float
    percentile: float


@dataclass
class ValuationAnalysis:
    score: ValuationScore
    assessment: str
    multiples: dict[str, MultipleReading] = field(default_factory=dict)
    key_metrics: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FairValueEstimate:
    """Fair value per multiple. Without a price, fair_value is an index (100 = today)."""

    method: str
    fair_value: float
    upside: float


def benchmarks_for(industry: str | None) -> IndustryBenchmarks:
    """Benchmarks for an industry name; unknown names fall back to default."""
    key = (industry or "default").lower().replace(" ", "").replace("_", "")
    if key not in INDUSTRY_BENCHMARKS:
        logger.debug("No benchmarks for industry %r, using default", industry)
        return INDUSTRY_BENCHMARKS["default"]
    return INDUSTRY_BENCHMARKS[key]


def percentile_for(value: float, benchmark: float) -> float:
    ratio = value / benchmark
    for bound, percentile in PERCENTILE_BUCKETS:
        if ratio <= bound:
            return percentile
    return 5


def assessment_for(score: float) -> str:
    for floor, label in ASSESSMENT_FLOORS:
        if score >= floor:
            return label
    return "deeply-overvalued"


class ValuationFactorAnalyzer:
    """Scores cheapness on relative, absolute and historical axes."""

    def __init__(self, rules: ValuationRules | None = None):
        self.rules = rules or ValuationRules()

    def score(self, data: FundamentalSnapshot, industry: str | None = None) -> ValuationScore:
        bench = benchmarks_for(industry)
        relative = self._relative(data, bench)
        absolute = self._absolute(data)
        historical = self._historical(data)
        return ValuationScore(
            overall=clamp((relative + absolute + historical) / 3),
            relative_value=relative,
            absolute_value=absolute,
            historical_value=historical,
        )

    def _relative(self, data: FundamentalSnapshot, bench: IndustryBenchmarks) -> float:
        score = BASELINE
        factors = 0
        for name, tiers in self.rules.relative.items():
            value = getattr(data, name)
            if value is None or value <= 0:
                continue
            score += tier_delta(value / getattr(bench, name), tiers)
            factors += 1
        return clamp(score) if factors else BASELINE

    def _absolute(self, data: FundamentalSnapshot) -> float:
        score = BASELINE
        for name, tiers in self.rules.absolute.items():
            score += tier_delta(getattr(data, name), tiers)
        return clamp(score)

    def _historical(self, data: FundamentalSnapshot) -> float:
        # Absolute multiple levels stand in for the stock's own history
        score = BASELINE
        if data.pe is not None and data.pe > 0:
            score += tier_delta(data.pe, self.rules.historical_pe)
        score += tier_delta(data.pb, self.rules.historical_pb)
        return clamp(score)

    def multiples(self, data: FundamentalSnapshot, industry: str | None = None) -> dict[str, MultipleReading]:
        bench = benchmarks_for(industry)
        readings: dict[str, MultipleReading] = {}
        for name in ("pe", "pb", "ps", "ev_to_ebitda"):
            value = getattr(data, name)
            if value is None:
                continue
            avg = getattr(bench, name)
            readings[name] = MultipleReading(
                value=value, industry_avg=avg, percentile=percentile_for(value, avg)
            )
        return readings

    def analyze(self, data: FundamentalSnapshot, industry: str | None = None) -> ValuationAnalysis:
        """Score, assessment, benchmarked multiples and narrative bullets."""
        bench = benchmarks_for(industry)
        score = self.score(data, industry)
        key_metrics: list[str] = []
        concerns: list[str] = []

        if data.pe is not None and 0 < data.pe < bench.pe * 0.7:
            key_metrics.append(
                f"P/E of {data.pe:.1f} is {(1 - data.pe / bench.pe) * 100:.0f}% below industry average"
            )
        if data.peg is not None and 0 < data.peg < 1:
            key_metrics.append(f"PEG ratio of {data.peg:.2f} suggests undervaluation relative to growth")
        if data.pb is not None and 0 < data.pb < 1:
            key_metrics.append("Trading below book value")
        if data.fcf_yield is not None and data.fcf_yield > 8:
            key_metrics.append(f"High FCF yield of {data.fcf_yield:.1f}%")

        if data.pe is not None and data.pe > bench.pe * 1.5:
            concerns.append(f"P/E of {data.pe:.1f} is significantly above industry average")
        if data.peg is not None and data.peg > 2.5:
            concerns.append("High PEG ratio suggests overvaluation relative to growth")
        if data.ev_to_ebitda is not None and data.ev_to_ebitda > bench.ev_to_ebitda * 2:
            concerns.append("EV/EBITDA multiple is stretched")
        if data.ps is not None and data.ps > bench.ps * 2:
            concerns.append("High price-to-sales multiple")

        return ValuationAnalysis(
            score=score,
            assessment=assessment_for(score.overall),
            multiples=self.multiples(data, industry),
            key_metrics=key_metrics,
            concerns=concerns,
        )

    def fair_value(
        self,
        data: FundamentalSnapshot,
        industry: str | None = None,
        price: float | None = None,
    ) -> list[FairValueEstimate]:
        """
        Fair value implied by re-rating to the industry multiple.

        Args:
            data: Fundamental snapshot
            industry: Benchmark key (default bucket when unknown)
            price: Current price; when omitted fair values are indexed to 100

        Returns:
            One estimate per positive P/E and EV/EBITDA multiple
        """
        bench = benchmarks_for(industry)
        base = price if price is not None else 100.0
        estimates: list[FairValueEstimate] = []
        for method, value, fair_multiple in (
            ("P/E Multiple", data.pe, bench.pe),
            ("EV/EBITDA Multiple", data.ev_to_ebitda, bench.ev_to_ebitda),
        ):
            if value is None or value <= 0:
                continue
            adjustment = fair_multiple / value
            estimates.append(
                FairValueEstimate(method=method, fair_value=adjustment * base, upside=(adjustment - 1) * 100)
            )
        return estimates
