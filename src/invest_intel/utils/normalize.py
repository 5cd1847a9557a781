"""Normalization utilities for JSON-safe tool output.

Engine records are dataclasses holding enums, datetimes and floats. Tool
responses must survive any JSON parser, so this module flattens them with a
fixed contract:

1. Dataclasses become dicts keyed by field name
2. Enums become their string values
3. Datetimes become ISO-8601 strings, timedeltas become seconds
4. Tuples and sets become lists
5. NaN/inf become null and -0.0 becomes 0.0
"""

from __future__ import annotations

import dataclasses
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


def to_jsonable(obj: Any) -> Any:
    """Recursively convert engine records into JSON-safe primitives."""
    return _sanitize_nan_inf(_flatten(obj))


def round_floats(obj: Any, digits: int = 2) -> Any:
    """Round every float in a JSON-safe structure."""
    if isinstance(obj, dict):
        return {k: round_floats(v, digits) for k, v in obj.items()}
    if isinstance(obj, list):
        return [round_floats(item, digits) for item in obj]
    if isinstance(obj, float):
        return round(obj, digits)
    return obj


def _flatten(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _flatten(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, dict):
        return {str(_flatten(k)): _flatten(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_flatten(item) for item in obj]
    return obj


def _is_nan_or_inf(x: Any) -> bool:
    """Check if value is NaN or inf, handling numpy types safely."""
    try:
        # Works for float, numpy.float64, etc.
        return math.isnan(x) or math.isinf(x)
    except (TypeError, ValueError):
        # Not a numeric type that supports isnan/isinf
        return False


def _is_negative_zero(x: Any) -> bool:
    """Check if value is -0.0 (which creates diff noise)."""
    try:
        return x == 0.0 and math.copysign(1.0, x) < 0
    except (TypeError, ValueError):
        return False


def _sanitize_nan_inf(obj: Any) -> Any:
    """Recursively replace NaN, inf, -inf with None and -0.0 with 0.0."""
    if isinstance(obj, dict):
        return {k: _sanitize_nan_inf(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_sanitize_nan_inf(item) for item in obj]
    elif isinstance(obj, bool):
        return obj
    elif _is_nan_or_inf(obj):
        return None
    elif _is_negative_zero(obj):
        return 0.0
    return obj
