"""Per-symbol scan pipeline: signals, risk and opportunity scoring across a universe."""

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from time import perf_counter
from typing import Any

from invest_intel.models import (
    Asset,
    FundamentalSnapshot,
    MarketEvent,
    Opportunity,
    PriceBar,
    Signal,
    Timeframe,
    VolatilityMetrics,
    utcnow,
)
from invest_intel.scoring.opportunity import OpportunityScorer
from invest_intel.scoring.risk import RiskAssessment, RiskScorer
from invest_intel.signals.base import PriceSignalGenerator
from invest_intel.signals.events import EventSignalGenerator
from invest_intel.signals.mean_reversion import MeanReversionSignalGenerator
from invest_intel.signals.momentum import MomentumSignalGenerator
from invest_intel.signals.trend import TrendFollowingSignalGenerator
from invest_intel.signals.volatility import VolatilityRegimeAnalyzer

logger = logging.getLogger(__name__)

# Bounded fan-out for scans
_max_workers = int(os.environ.get("INVEST_MAX_WORKERS", "4"))


@dataclass(frozen=True)
class ScanInput:
    """Everything the engine needs for one symbol."""

    asset: Asset
    bars: Sequence[PriceBar]
    fundamentals: FundamentalSnapshot | None = None
    catalysts: tuple[str, ...] = ()
    portfolio_weight: float | None = None


@dataclass(frozen=True)
class ScanResult:
    opportunity: Opportunity
    risk: RiskAssessment
    volatility: VolatilityMetrics | None


@dataclass
class ScanReport:
    results: list[ScanResult] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def opportunities(self) -> list[Opportunity]:
        return [r.opportunity for r in self.results]


class OpportunityEngine:
    """
    Runs every generator over each symbol, assesses risk with the volatility
    snapshot and scores what fired. Results are ranked by opportunity score.
    """

    def __init__(
        self,
        generators: Sequence[PriceSignalGenerator] | None = None,
        volatility: VolatilityRegimeAnalyzer | None = None,
        events: EventSignalGenerator | None = None,
        risk: RiskScorer | None = None,
        scorer: OpportunityScorer | None = None,
        max_workers: int | None = None,
    ):
        self.volatility = volatility or VolatilityRegimeAnalyzer()
        self.generators: list[PriceSignalGenerator] = list(
            generators
            if generators is not None
            else (
                MomentumSignalGenerator(),
                MeanReversionSignalGenerator(),
                self.volatility,
                TrendFollowingSignalGenerator(),
            )
        )
        self.events = events or EventSignalGenerator()
        self.risk = risk or RiskScorer()
        self.scorer = scorer or OpportunityScorer()
        self.max_workers = max_workers or _max_workers

    def signals_for(
        self,
        item: ScanInput,
        timeframe: Timeframe,
        events: Sequence[MarketEvent] = (),
        now: datetime | None = None,
    ) -> list[Signal]:
        signals = [
            signal
            for generator in self.generators
            if (signal := generator.generate(item.asset.symbol, item.bars, timeframe, now)) is not None
        ]
        event_signal = self.events.generate(item.asset.symbol, list(events), timeframe, now)
        if event_signal is not None:
            signals.append(event_signal)
        return signals

    def analyze_symbol(
        self,
        item: ScanInput,
        timeframe: Timeframe = Timeframe.D1,
        events: Sequence[MarketEvent] = (),
        now: datetime | None = None,
    ) -> ScanResult | None:
        """
        Score one symbol.

        Returns:
            ScanResult, or None when no generator fired
        """
        symbol = item.asset.symbol
        signals = self.signals_for(item, timeframe, events, now)
        if not signals:
            logger.debug("%s: no signals, skipping", symbol)
            return None

        volatility = None
        if len(item.bars) >= self.volatility.rules.min_bars:
            volatility = self.volatility.metrics(item.bars)

        assessment = self.risk.assess(
            item.asset,
            signals,
            item.fundamentals,
            volatility=volatility,
            market_regime=volatility.regime if volatility else None,
            portfolio_weight=item.portfolio_weight,
        )
        opportunity = self.scorer.generate_opportunity(
            item.asset,
            signals,
            item.fundamentals,
            list(item.catalysts),
            risk_score=assessment.score.overall,
            now=now,
        )
        return ScanResult(opportunity=opportunity, risk=assessment, volatility=volatility)

    def scan(
        self,
        items: Sequence[ScanInput],
        timeframe: Timeframe = Timeframe.D1,
        events: Sequence[MarketEvent] = (),
        min_score: float = 0.0,
        now: datetime | None = None,
    ) -> ScanReport:
        """
        Scan a batch of symbols concurrently.

        Args:
            items: One ScanInput per symbol
            timeframe: Bar timeframe shared by every series
            events: Scheduled events; market-wide ones apply to every symbol
            min_score: Opportunities scoring below this are dropped
            now: Reference time for signal expiry and ids

        Returns:
            ScanReport with ranked results, skipped symbols and per-symbol failures
        """
        start_time = perf_counter()
        now = now or utcnow()
        report = ScanReport()

        def run(item: ScanInput) -> tuple[ScanInput, ScanResult | Exception | None]:
            try:
                return item, self.analyze_symbol(item, timeframe, events, now)
            except Exception as e:
                return item, e

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            outcomes = list(pool.map(run, items))

        for item, outcome in outcomes:
            symbol = item.asset.symbol
            if isinstance(outcome, Exception):
                logger.warning("%s: scan failed: %s", symbol, outcome)
                report.failures.append(
                    {"symbol": symbol, "error": type(outcome).__name__, "message": str(outcome)}
                )
            elif outcome is None or outcome.opportunity.opportunity_score < min_score:
                report.skipped.append(symbol)
            else:
                report.results.append(outcome)

        report.results.sort(key=lambda r: r.opportunity.opportunity_score, reverse=True)
        report.duration_ms = (perf_counter() - start_time) * 1000
        logger.info(
            "Scanned %d symbols: %d opportunities, %d skipped, %d failed",
            len(items),
            len(report.results),
            len(report.skipped),
            len(report.failures),
        )
        return report
