"""Universe screening filters."""

import math
from dataclasses import dataclass

from invest_intel.models import Asset, AssetClass

# Market cap category ranges, [min, max)
MARKET_CAP_RANGES: dict[str, tuple[float, float]] = {
    "mega": (200_000_000_000, math.inf),
    "large": (10_000_000_000, 200_000_000_000),
    "mid": (2_000_000_000, 10_000_000_000),
    "small": (300_000_000, 2_000_000_000),
    "micro": (50_000_000, 300_000_000),
    "nano": (0, 50_000_000),
}


@dataclass(frozen=True)
class LiquidityFilter:
    min_daily_volume: float | None = None
    min_dollar_volume: float | None = None


@dataclass(frozen=True)
class MarketCapFilter:
    min: float | None = None
    max: float | None = None
    categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExchangeFilter:
    include: tuple[str, ...] | None = None
    exclude: tuple[str, ...] | None = None


@dataclass(frozen=True)
class FilterCriteria:
    """Combined screen. None means "do not filter on this"."""

    asset_classes: tuple[AssetClass, ...] | None = None
    exchanges: tuple[str, ...] | None = None
    sectors: tuple[str, ...] | None = None
    min_market_cap: float | None = None
    max_market_cap: float | None = None
    min_volume: float | None = None
    min_price: float | None = None
    max_price: float | None = None


def market_cap_category(market_cap: float | None) -> str:
    """Category name for a market cap, or "unknown"."""
    if market_cap is None or market_cap < 0:
        return "unknown"
    for category, (low, high) in MARKET_CAP_RANGES.items():
        if low <= market_cap < high:
            return category
    return "unknown"


class UniverseFilter:
    """Stateless asset screens. Missing numeric fields count as 0."""

    def filter_by_liquidity(self, assets: list[Asset], criteria: LiquidityFilter) -> list[Asset]:
        result = []
        for asset in assets:
            volume = asset.avg_volume or 0
            if criteria.min_daily_volume and volume < criteria.min_daily_volume:
                continue
            if criteria.min_dollar_volume and volume * (asset.price or 0) < criteria.min_dollar_volume:
                continue
            result.append(asset)
        return result

    def filter_by_market_cap(self, assets: list[Asset], criteria: MarketCapFilter) -> list[Asset]:
        result = []
        for asset in assets:
            cap = asset.market_cap or 0
            if criteria.min is not None and cap < criteria.min:
                continue
            if criteria.max is not None and cap > criteria.max:
                continue
            if criteria.categories and market_cap_category(cap) not in criteria.categories:
                continue
            result.append(asset)
        return result

    def filter_by_exchange(self, assets: list[Asset], criteria: ExchangeFilter) -> list[Asset]:
        result = []
        for asset in assets:
            if criteria.include is not None and asset.exchange not in criteria.include:
                continue
            if criteria.exclude is not None and asset.exchange in criteria.exclude:
                continue
            result.append(asset)
        return result

    def filter_by_asset_class(self, assets: list[Asset], classes: tuple[AssetClass, ...]) -> list[Asset]:
        if not classes:
            return list(assets)
        return [a for a in assets if a.asset_class in classes]

    def filter_by_price(
        self,
        assets: list[Asset],
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[Asset]:
        result = []
        for asset in assets:
            price = asset.price or 0
            if min_price is not None and price < min_price:
                continue
            if max_price is not None and price > max_price:
                continue
            result.append(asset)
        return result

    def filter_by_sector(self, assets: list[Asset], sectors: tuple[str, ...]) -> list[Asset]:
        if not sectors:
            return list(assets)
        return [a for a in assets if a.sector and a.sector in sectors]

    def apply_filters(self, assets: list[Asset], criteria: FilterCriteria) -> list[Asset]:
        """Apply every populated field of a FilterCriteria in turn."""
        result = list(assets)

        if criteria.asset_classes is not None:
            result = self.filter_by_asset_class(result, criteria.asset_classes)
        if criteria.exchanges is not None:
            result = self.filter_by_exchange(result, ExchangeFilter(include=criteria.exchanges))
        if criteria.sectors is not None:
            result = self.filter_by_sector(result, criteria.sectors)
        if criteria.min_market_cap is not None or criteria.max_market_cap is not None:
            result = self.filter_by_market_cap(
                result, MarketCapFilter(min=criteria.min_market_cap, max=criteria.max_market_cap)
            )
        if criteria.min_volume is not None:
            result = self.filter_by_liquidity(result, LiquidityFilter(min_daily_volume=criteria.min_volume))
        if criteria.min_price is not None or criteria.max_price is not None:
            result = self.filter_by_price(result, criteria.min_price, criteria.max_price)

        return result

    def create_screener(
        self,
        assets: list[Asset],
        liquidity: LiquidityFilter | None = None,
        market_cap: MarketCapFilter | None = None,
        exchange: ExchangeFilter | None = None,
        asset_classes: tuple[AssetClass, ...] | None = None,
        sectors: tuple[str, ...] | None = None,
        price_range: tuple[float | None, float | None] | None = None,
    ) -> list[Asset]:
        """Screen with explicit filter objects, applied in a fixed order."""
        result = list(assets)

        if liquidity is not None:
            result = self.filter_by_liquidity(result, liquidity)
        if market_cap is not None:
            result = self.filter_by_market_cap(result, market_cap)
        if exchange is not None:
            result = self.filter_by_exchange(result, exchange)
        if asset_classes is not None:
            result = self.filter_by_asset_class(result, asset_classes)
        if sectors is not None:
            result = self.filter_by_sector(result, sectors)
        if price_range is not None:
            result = self.filter_by_price(result, price_range[0], price_range[1])

        return result

    def market_cap_category(self, market_cap: float | None) -> str:
        return market_cap_category(market_cap)
