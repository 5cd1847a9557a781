"""Utility modules."""

from invest_intel.utils.bars import bars_from_rows, bars_to_frame
from invest_intel.utils.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_historical_volatility,
    calculate_keltner,
    calculate_macd,
    calculate_roc,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_zscore,
)
from invest_intel.utils.normalize import round_floats, to_jsonable
from invest_intel.utils.provenance import build_error_response, build_meta
from invest_intel.utils.sanitize import sanitize_text
from invest_intel.utils.validators import check_rule, evaluate_operator, parse_timeframe

__all__ = [
    "bars_from_rows",
    "bars_to_frame",
    "calculate_adx",
    "calculate_atr",
    "calculate_bollinger",
    "calculate_ema",
    "calculate_historical_volatility",
    "calculate_keltner",
    "calculate_macd",
    "calculate_roc",
    "calculate_rsi",
    "calculate_sma",
    "calculate_stochastic",
    "calculate_zscore",
    "round_floats",
    "to_jsonable",
    "build_error_response",
    "build_meta",
    "sanitize_text",
    "check_rule",
    "evaluate_operator",
    "parse_timeframe",
]
