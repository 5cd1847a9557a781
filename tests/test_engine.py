"""Tests for the scan pipeline."""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from invest_intel.engine import OpportunityEngine, ScanInput
from invest_intel.models import (
    Asset,
    Direction,
    EventImportance,
    ExpectedImpact,
    MarketEvent,
    PriceBar,
    Signal,
    SignalType,
    Timeframe,
)
from invest_intel.scoring.risk import REGIME_RISK

BarFactory = Callable[..., list[PriceBar]]

REVERSION_CLOSES = [100.0, 101.0] * 10 + [90.0]


class FixedGenerator:
    """Returns a scripted signal, nothing, or raises, per symbol."""

    def __init__(self, plan: dict[str, tuple[Direction, float] | Exception]):
        self.plan = plan

    def generate(
        self,
        symbol: str,
        bars: Sequence[PriceBar],
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Signal | None:
        entry = self.plan.get(symbol)
        if entry is None:
            return None
        if isinstance(entry, Exception):
            raise entry
        direction, confidence = entry
        return Signal(
            id=f"fixed_{symbol}",
            symbol=symbol,
            type=SignalType.MOMENTUM,
            direction=direction,
            confidence=confidence,
            timeframe=timeframe,
            generated_at=now,
        )


def _item(symbol: str, bars: list[PriceBar], **kwargs) -> ScanInput:
    return ScanInput(asset=Asset(symbol=symbol, name=f"{symbol} Inc"), bars=bars, **kwargs)


class TestAnalyzeSymbol:
    """Tests for single-symbol analysis."""

    def test_reversion_setup(self, make_bars: BarFactory, now: datetime) -> None:
        """Test a stretched short history scores through the default generators."""
        engine = OpportunityEngine()

        result = engine.analyze_symbol(_item("aaa", make_bars(REVERSION_CLOSES)), now=now)

        assert result is not None
        assert result.opportunity.symbol == "AAA"
        assert [s.type for s in result.opportunity.signals] == [SignalType.MEAN_REVERSION]
        assert result.volatility is None
        assert result.opportunity.risk_score == result.risk.score.overall
        assert result.opportunity.generated_at == now

    def test_no_signals(self, make_bars: BarFactory, now: datetime) -> None:
        """Test a history too short for every generator yields None."""
        engine = OpportunityEngine()
        assert engine.analyze_symbol(_item("AAA", make_bars([100.0] * 19)), now=now) is None

    def test_volatility_feeds_risk(self, make_bars: BarFactory, now: datetime) -> None:
        """Test long histories carry a volatility snapshot whose regime drives market risk."""
        closes = [100.0 + i + (0.0, 1.5, 3.0, 1.5, 0.0, -1.5)[i % 6] for i in range(60)]
        engine = OpportunityEngine()

        result = engine.analyze_symbol(_item("AAA", make_bars(closes)), now=now)

        assert result is not None
        assert result.volatility is not None
        assert result.risk.score.market == REGIME_RISK[result.volatility.regime]

    def test_event_signal_added(self, make_bars: BarFactory, now: datetime) -> None:
        """Test market-wide events contribute an event-driven signal."""
        engine = OpportunityEngine(generators=[])
        event = MarketEvent(
            id="evt_1",
            type="product-launch",
            title="Launch",
            scheduled_at=now + timedelta(days=2),
            importance=EventImportance.HIGH,
            expected_impact=ExpectedImpact.POSITIVE,
        )

        result = engine.analyze_symbol(_item("AAA", make_bars([100.0] * 25)), events=[event], now=now)

        assert result is not None
        assert [s.type for s in result.opportunity.signals] == [SignalType.EVENT_DRIVEN]
        assert result.opportunity.signals[0].direction is Direction.LONG

    def test_catalysts_and_weight_flow_through(self, make_bars: BarFactory, now: datetime) -> None:
        """Test catalysts reach the thesis and portfolio weight reaches the risk."""
        engine = OpportunityEngine(generators=[FixedGenerator({"AAA": (Direction.LONG, 0.8)})])
        item = _item("AAA", make_bars([100.0] * 25), catalysts=("Buyback",), portfolio_weight=30)

        result = engine.analyze_symbol(item, now=now)

        assert result is not None
        assert result.opportunity.thesis.catalysts == ["Buyback"]
        assert result.risk.score.concentration == 90


class TestScan:
    """Tests for batch scans."""

    def test_ranking_skips_and_failures(self, make_bars: BarFactory, now: datetime) -> None:
        """Test results rank by score while quiet and failing symbols are reported."""
        generator = FixedGenerator(
            {
                "BBB": (Direction.SHORT, 0.9),
                "AAA": (Direction.LONG, 0.9),
                "BAD": ValueError("corrupt series"),
            }
        )
        engine = OpportunityEngine(generators=[generator], max_workers=2)
        bars = make_bars([100.0] * 25)

        report = engine.scan([_item(s, bars) for s in ("BBB", "CCC", "AAA", "BAD")], now=now)

        assert [o.symbol for o in report.opportunities] == ["AAA", "BBB"]
        assert report.skipped == ["CCC"]
        assert report.failures == [{"symbol": "BAD", "error": "ValueError", "message": "corrupt series"}]
        assert report.duration_ms >= 0

    def test_unexpected_error_does_not_abort(self, make_bars: BarFactory, now: datetime) -> None:
        """Test a non-value error on one symbol is recorded while the others still score."""
        generator = FixedGenerator({"AAA": (Direction.LONG, 0.9), "BAD": KeyError("close")})
        engine = OpportunityEngine(generators=[generator])
        bars = make_bars([100.0] * 25)

        report = engine.scan([_item("AAA", bars), _item("BAD", bars)], now=now)

        assert [o.symbol for o in report.opportunities] == ["AAA"]
        assert report.failures == [{"symbol": "BAD", "error": "KeyError", "message": "'close'"}]

    def test_min_score(self, make_bars: BarFactory, now: datetime) -> None:
        """Test opportunities under the minimum score are skipped."""
        generator = FixedGenerator({"AAA": (Direction.LONG, 0.9), "BBB": (Direction.SHORT, 0.9)})
        engine = OpportunityEngine(generators=[generator])
        bars = make_bars([100.0] * 25)

        full = engine.scan([_item("AAA", bars), _item("BBB", bars)], now=now)
        scores = [o.opportunity_score for o in full.opportunities]
        cutoff = sum(scores) / 2

        report = engine.scan([_item("AAA", bars), _item("BBB", bars)], min_score=cutoff, now=now)

        assert [o.symbol for o in report.opportunities] == ["AAA"]
        assert report.skipped == ["BBB"]

    def test_empty_scan(self, now: datetime) -> None:
        """Test scanning nothing returns an empty report."""
        report = OpportunityEngine().scan([], now=now)
        assert report.results == []
        assert report.skipped == []
        assert report.failures == []
