"""Pytest configuration and fixtures."""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

import pytest

from invest_intel.models import (
    Asset,
    AssetClass,
    Direction,
    FundamentalSnapshot,
    InvestmentThesis,
    Opportunity,
    PriceBar,
    Signal,
    SignalType,
    Timeframe,
)

BarFactory = Callable[..., list[PriceBar]]


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for expiry and window checks."""
    return datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_bars(now: datetime) -> BarFactory:
    """
    Factory building daily bars from closes.

    highs/lows default to close +/- spread; the last bar lands on ``now``.
    """

    def _make(
        closes: Sequence[float],
        highs: Sequence[float] | None = None,
        lows: Sequence[float] | None = None,
        spread: float = 1.0,
        volume: float = 1_000_000,
    ) -> list[PriceBar]:
        start = now - timedelta(days=len(closes) - 1)
        return [
            PriceBar(
                timestamp=start + timedelta(days=i),
                open=close,
                high=highs[i] if highs is not None else close + spread,
                low=lows[i] if lows is not None else close - spread,
                close=close,
                volume=volume,
            )
            for i, close in enumerate(closes)
        ]

    return _make


@pytest.fixture
def sample_asset() -> Asset:
    """Large-cap technology equity."""
    return Asset(
        symbol="aaa",
        name="Alpha Corp",
        asset_class=AssetClass.EQUITY,
        exchange="NASDAQ",
        sector="Technology",
        industry="Software",
        market_cap=150e9,
        avg_volume=5_000_000,
        price=120.0,
    )


@pytest.fixture
def healthy_fundamentals() -> FundamentalSnapshot:
    """Profitable, growing, conservatively financed company."""
    return FundamentalSnapshot(
        pe=22,
        forward_pe=19,
        pb=5,
        ps=6,
        ev_to_ebitda=16,
        debt_to_equity=0.4,
        current_ratio=2.1,
        quick_ratio=1.6,
        roe=24,
        roa=12,
        roic=18,
        gross_margin=60,
        operating_margin=28,
        net_margin=21,
        revenue_growth=18,
        earnings_growth=22,
        fcf_yield=4,
        dividend_yield=1,
    )


@pytest.fixture
def make_signal(now: datetime) -> Callable[..., Signal]:
    """Factory for signals with sensible defaults."""

    def _make(
        symbol: str = "AAA",
        direction: Direction = Direction.LONG,
        confidence: float = 0.6,
        signal_type: SignalType = SignalType.MOMENTUM,
        timeframe: Timeframe = Timeframe.D1,
        signal_id: str | None = None,
        generated_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> Signal:
        generated = generated_at or now
        return Signal(
            id=signal_id or f"sig_{symbol}_{signal_type.value}_{confidence}",
            symbol=symbol,
            type=signal_type,
            direction=direction,
            confidence=confidence,
            timeframe=timeframe,
            generated_at=generated,
            expires_at=expires_at or generated + timedelta(days=3),
        )

    return _make


@pytest.fixture
def make_opportunity(now: datetime, make_signal: Callable[..., Signal]) -> Callable[..., Opportunity]:
    """Factory for opportunities with fixed scores."""

    def _make(
        symbol: str = "AAA",
        score: float = 70.0,
        risk: float = 40.0,
        asset_class: AssetClass = AssetClass.EQUITY,
        horizon: str = "1-2 Weeks",
        direction: Direction = Direction.LONG,
        signal_types: Sequence[SignalType] = (SignalType.MOMENTUM,),
    ) -> Opportunity:
        asset = Asset(symbol=symbol, name=f"{symbol} Inc", asset_class=asset_class)
        return Opportunity(
            id=f"opp_{symbol}_{int(score)}",
            symbol=symbol,
            asset=asset,
            signals=[
                make_signal(symbol=symbol, direction=direction, signal_type=t, signal_id=f"{symbol}-{t.value}")
                for t in signal_types
            ],
            thesis=InvestmentThesis(summary=f"{symbol} setup. More detail follows."),
            opportunity_score=score,
            risk_score=risk,
            expected_return=(score - 50) / 10,
            time_horizon=horizon,
            generated_at=now,
        )

    return _make
