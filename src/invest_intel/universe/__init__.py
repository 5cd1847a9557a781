"""Asset universe and screening filters."""

from invest_intel.universe.filters import (
    ExchangeFilter,
    FilterCriteria,
    LiquidityFilter,
    MarketCapFilter,
    UniverseFilter,
)
from invest_intel.universe.universe import AssetUniverse

__all__ = [
    "AssetUniverse",
    "ExchangeFilter",
    "FilterCriteria",
    "LiquidityFilter",
    "MarketCapFilter",
    "UniverseFilter",
]
