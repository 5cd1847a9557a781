"""Signal generation tool."""

from time import perf_counter
from typing import Any

from invest_intel.engine import OpportunityEngine, ScanInput
from invest_intel.models import Asset, utcnow
from invest_intel.utils.bars import bars_from_rows
from invest_intel.utils.inputs import events_from_rows
from invest_intel.utils.normalize import round_floats, to_jsonable
from invest_intel.utils.provenance import build_error_response, build_meta
from invest_intel.utils.validators import parse_timeframe

# Shortest history any generator accepts
MIN_BARS = 20

_engine = OpportunityEngine()


async def generate_signals(
    symbol: str,
    bars: list[dict[str, Any]],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Run every signal generator over a bar series.

    Args:
        symbol: Ticker symbol
        bars: OHLCV rows, oldest first
        timeframe: Bar timeframe (1m, 5m, 15m, 1h, 4h, 1d, 1w, 1M)
        events: Optional scheduled events for the event-driven generator

    Returns:
        Dict with signals, volatility snapshot and regime
    """
    start_time = perf_counter()

    try:
        tf = parse_timeframe(timeframe)
        parsed_bars = bars_from_rows(bars)
        parsed_events = events_from_rows(events)
    except (ValueError, TypeError) as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
            symbol=symbol,
        )

    if len(parsed_bars) < MIN_BARS:
        return build_error_response(
            error_type="insufficient_data",
            message=f"Need at least {MIN_BARS} bars, got {len(parsed_bars)}",
            symbol=symbol,
        )

    item = ScanInput(asset=Asset(symbol=symbol, name=symbol), bars=parsed_bars)
    signals = _engine.signals_for(item, tf, parsed_events, utcnow())

    volatility = None
    if len(parsed_bars) >= _engine.volatility.rules.min_bars:
        volatility = _engine.volatility.metrics(parsed_bars)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "symbol": item.asset.symbol,
        "timeframe": tf.value,
        "bar_count": len(parsed_bars),
        "signals": round_floats(to_jsonable(signals), 4),
        "volatility": round_floats(to_jsonable(volatility)),
        "regime": volatility.regime.value if volatility else None,
        "meta": build_meta("generate_signals", duration_ms),
    }
