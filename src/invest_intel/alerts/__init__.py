"""Opportunity digests and watchlist alerts."""

from invest_intel.alerts.digest import (
    DigestConfig,
    DigestGenerator,
    DigestSection,
    OpportunityDigest,
    format_timestamp,
)
from invest_intel.alerts.watchlist import WatchlistAlertManager, opportunity_priority

__all__ = [
    "DigestConfig",
    "DigestGenerator",
    "DigestSection",
    "OpportunityDigest",
    "format_timestamp",
    "WatchlistAlertManager",
    "opportunity_priority",
]
