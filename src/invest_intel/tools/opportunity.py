"""Opportunity scoring tool."""

import asyncio
from time import perf_counter
from typing import Any

from invest_intel.engine import OpportunityEngine, ScanInput, ScanResult
from invest_intel.models import FundamentalSnapshot, utcnow
from invest_intel.utils.bars import bars_from_rows
from invest_intel.utils.inputs import asset_from_mapping, events_from_rows
from invest_intel.utils.normalize import round_floats, to_jsonable
from invest_intel.utils.provenance import build_error_response, build_meta
from invest_intel.utils.validators import parse_timeframe

MIN_BARS = 20

_engine = OpportunityEngine()


def scan_input_from_mapping(data: dict[str, Any]) -> ScanInput:
    """
    Build a ScanInput from an asset mapping carrying 'bars' and optional
    'fundamentals', 'catalysts' and 'portfolio_weight'.

    Raises:
        ValueError: On malformed asset or bar data
    """
    weight = data.get("portfolio_weight")
    return ScanInput(
        asset=asset_from_mapping(data),
        bars=bars_from_rows(data.get("bars") or []),
        fundamentals=(
            FundamentalSnapshot.from_mapping(data["fundamentals"]) if data.get("fundamentals") else None
        ),
        catalysts=tuple(str(c) for c in data.get("catalysts") or []),
        portfolio_weight=float(weight) if weight is not None else None,
    )


def serialize_result(result: ScanResult) -> dict[str, Any]:
    opportunity = result.opportunity
    return {
        "opportunity": round_floats(to_jsonable(opportunity)),
        "risk": round_floats(to_jsonable(result.risk)),
        "one_liner": _engine.scorer.thesis_generator.one_liner(opportunity.thesis),
    }


async def score_opportunity(
    asset: dict[str, Any],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Score one asset end to end.

    Args:
        asset: Asset mapping (symbol, name, asset_class, sector, market_cap,
            avg_volume, bars, fundamentals, catalysts, portfolio_weight)
        timeframe: Bar timeframe
        events: Optional scheduled events

    Returns:
        Dict with the opportunity, its risk assessment and a one-line thesis
    """
    start_time = perf_counter()
    symbol = str(asset.get("symbol", "")) if isinstance(asset, dict) else ""

    try:
        tf = parse_timeframe(timeframe)
        item = scan_input_from_mapping(asset)
        parsed_events = events_from_rows(events)
    except (ValueError, TypeError, AttributeError) as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
            symbol=symbol or None,
        )

    if len(item.bars) < MIN_BARS:
        return build_error_response(
            error_type="insufficient_data",
            message=f"Need at least {MIN_BARS} bars, got {len(item.bars)}",
            symbol=item.asset.symbol,
        )

    now = utcnow()
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, lambda: _engine.analyze_symbol(item, tf, parsed_events, now))
    duration_ms = (perf_counter() - start_time) * 1000

    if result is None:
        return {
            "symbol": item.asset.symbol,
            "opportunity": None,
            "message": "No signals fired for this series",
            "meta": build_meta("score_opportunity", duration_ms),
        }

    return {
        "symbol": item.asset.symbol,
        **serialize_result(result),
        "meta": build_meta("score_opportunity", duration_ms),
    }
