"""Fundamental analysis tool."""

from time import perf_counter
from typing import Any

from invest_intel.fundamentals import (
    GrowthFactorAnalyzer,
    QualityFactorAnalyzer,
    ValuationFactorAnalyzer,
)
from invest_intel.models import FundamentalSnapshot
from invest_intel.utils.normalize import round_floats, to_jsonable
from invest_intel.utils.provenance import build_error_response, build_meta

_quality = QualityFactorAnalyzer()
_valuation = ValuationFactorAnalyzer()
_growth = GrowthFactorAnalyzer()


async def analyze_fundamentals(
    symbol: str,
    fundamentals: dict[str, Any],
    industry: str | None = None,
    price: float | None = None,
) -> dict[str, Any]:
    """
    Quality, valuation and growth analysis of a fundamental snapshot.

    Args:
        symbol: Ticker symbol
        fundamentals: Ratios in percent units (camelCase or snake_case keys)
        industry: Optional industry for benchmark selection
        price: Optional current price used as the fair-value base

    Returns:
        Dict with quality, valuation, growth, PEG and fair value sections
    """
    start_time = perf_counter()

    if not isinstance(fundamentals, dict):
        return build_error_response(
            error_type="invalid_parameters",
            message="fundamentals must be an object of ratio values",
            symbol=symbol,
        )

    data = FundamentalSnapshot.from_mapping(fundamentals)
    if data.is_empty():
        return build_error_response(
            error_type="insufficient_data",
            message="No recognised fundamental ratios supplied",
            symbol=symbol,
        )

    quality = _quality.analyze(data)
    valuation = _valuation.analyze(data, industry)
    growth = _growth.analyze(data)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "symbol": symbol.upper().strip(),
        "industry": industry,
        "quality": round_floats(to_jsonable(quality)),
        "valuation": round_floats(to_jsonable(valuation)),
        "growth": round_floats(to_jsonable(growth)),
        "peg": round_floats(to_jsonable(_growth.growth_adjusted_value(data))),
        "fair_value": round_floats(to_jsonable(_valuation.fair_value(data, industry, price))),
        "meta": build_meta("analyze_fundamentals", duration_ms),
    }
