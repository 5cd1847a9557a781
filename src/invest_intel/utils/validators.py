"""Validation utilities and comparison helpers."""

import operator
from collections.abc import Callable

from invest_intel.models import DEFAULT_ASSET_CLASS, AssetClass, ComparisonOperator, Timeframe, parse_enum

# Allowlist for tool input validation
VALID_TIMEFRAMES = {tf.value for tf in Timeframe}

# Tolerance for the "==" operator on floats
EQUALITY_TOLERANCE = 0.001

COMPARATORS: dict[ComparisonOperator, Callable[[float, float], bool]] = {
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.LT: operator.lt,
    ComparisonOperator.GTE: operator.ge,
    ComparisonOperator.LTE: operator.le,
    ComparisonOperator.EQ: lambda a, b: abs(a - b) < EQUALITY_TOLERANCE,
}


def parse_timeframe(value: str | Timeframe) -> Timeframe:
    """
    Parse a timeframe string.

    Case matters only for "1M" (month) vs "1m" (minute).

    Raises:
        ValueError: If the timeframe is not recognised
    """
    if isinstance(value, Timeframe):
        return value
    cleaned = value.strip()
    if cleaned not in VALID_TIMEFRAMES:
        raise ValueError(
            f"Invalid timeframe '{value}'. Must be one of: {sorted(VALID_TIMEFRAMES)}"
        )
    return Timeframe(cleaned)


def parse_asset_class(value: str | AssetClass | None) -> AssetClass:
    """Parse an asset class string; None and unknown values default to equity."""
    return parse_enum(AssetClass, value, DEFAULT_ASSET_CLASS)


def check_rule(
    value: float | None,
    threshold: float,
    comparator: Callable[[float, float], bool] = operator.gt,
) -> bool | None:
    """
    Check a rule with nullable boolean semantics.

    If value is None, returns None (not False).

    Args:
        value: The value to check (may be None)
        threshold: The threshold to compare against
        comparator: Comparison function (default: operator.gt)

    Returns:
        True/False if value is not None, None otherwise
    """
    if value is None:
        return None
    return comparator(value, threshold)


def evaluate_operator(
    op: ComparisonOperator,
    current: float,
    threshold: float,
    previous: float | None = None,
) -> bool:
    """
    Evaluate a comparison operator against a threshold.

    crosses-above needs previous < threshold <= current; crosses-below needs
    previous > threshold >= current. Without a previous value the crossing
    operators never fire.
    """
    if op is ComparisonOperator.CROSSES_ABOVE:
        return previous is not None and previous < threshold and current >= threshold
    if op is ComparisonOperator.CROSSES_BELOW:
        return previous is not None and previous > threshold and current <= threshold
    return bool(check_rule(current, threshold, COMPARATORS[op]))


# (comparator, threshold, delta): first matching tier wins
Tier = tuple[Callable[[float, float], bool], float, float]


def tier_delta(value: float | None, tiers: tuple[Tier, ...]) -> float:
    """
    Score adjustment from an ordered tier table.

    Args:
        value: Metric value (None contributes nothing)
        tiers: Ordered (comparator, threshold, delta) rules

    Returns:
        Delta of the first tier whose rule holds, else 0
    """
    for comparator, threshold, delta in tiers:
        if check_rule(value, threshold, comparator):
            return delta
    return 0.0
