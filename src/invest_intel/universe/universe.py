"""Master asset set and named watchlists."""

import logging
import threading

from invest_intel.models import Asset

logger = logging.getLogger(__name__)


def _key(symbol: str) -> str:
    return symbol.upper().strip()


class AssetUniverse:
    """
    Holds tradable assets and user watchlists.

    Symbol lookups are case-insensitive. Watchlists store symbols, so an
    asset replaced in the universe is seen by every watchlist holding it.
    """

    def __init__(self, assets: list[Asset] | None = None):
        self._assets: dict[str, Asset] = {}
        self._watchlists: dict[str, list[str]] = {}
        self._lock = threading.Lock()
        for asset in assets or []:
            self.add(asset)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, symbol: str) -> bool:
        return _key(symbol) in self._assets

    def add(self, asset: Asset) -> None:
        """Add or replace an asset."""
        with self._lock:
            self._assets[asset.symbol] = asset

    def get(self, symbol: str) -> Asset | None:
        return self._assets.get(_key(symbol))

    def remove(self, symbol: str) -> bool:
        """Remove an asset; watchlists keep the symbol but skip it on resolve."""
        with self._lock:
            return self._assets.pop(_key(symbol), None) is not None

    def assets(self) -> list[Asset]:
        return list(self._assets.values())

    def create_watchlist(self, name: str, symbols: list[str] | None = None) -> None:
        """Create (or reset) a named watchlist."""
        with self._lock:
            self._watchlists[name] = []
        for symbol in symbols or []:
            self.add_to_watchlist(name, symbol)

    def add_to_watchlist(self, name: str, symbol: str) -> bool:
        """
        Add a symbol to a watchlist.

        Returns:
            False if the watchlist does not exist or already holds the symbol
        """
        key = _key(symbol)
        with self._lock:
            watchlist = self._watchlists.get(name)
            if watchlist is None or key in watchlist:
                return False
            watchlist.append(key)
            return True

    def remove_from_watchlist(self, name: str, symbol: str) -> bool:
        key = _key(symbol)
        with self._lock:
            watchlist = self._watchlists.get(name)
            if watchlist is None or key not in watchlist:
                return False
            watchlist.remove(key)
            return True

    def watchlists(self) -> list[str]:
        return sorted(self._watchlists)

    def watchlist_assets(self, name: str) -> list[Asset]:
        """Resolve a watchlist to assets, skipping symbols not in the universe."""
        resolved: list[Asset] = []
        for symbol in self._watchlists.get(name, []):
            asset = self._assets.get(symbol)
            if asset is None:
                logger.debug("Watchlist %s: %s not in universe, skipping", name, symbol)
                continue
            resolved.append(asset)
        return resolved
