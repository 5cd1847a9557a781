"""Technical and event signal generators."""

from invest_intel.signals.base import EXPIRY_DURATIONS, TIMEFRAME_HOURS, expiry_for
from invest_intel.signals.events import EventCalendar, EventRules, EventSignalGenerator
from invest_intel.signals.mean_reversion import MeanReversionRules, MeanReversionSignalGenerator
from invest_intel.signals.momentum import MomentumRules, MomentumSignalGenerator
from invest_intel.signals.trend import TrendFollowingSignalGenerator, TrendRules
from invest_intel.signals.volatility import VolatilityRegimeAnalyzer, VolatilityRules

__all__ = [
    "EXPIRY_DURATIONS",
    "TIMEFRAME_HOURS",
    "expiry_for",
    "EventCalendar",
    "EventRules",
    "EventSignalGenerator",
    "MeanReversionRules",
    "MeanReversionSignalGenerator",
    "MomentumRules",
    "MomentumSignalGenerator",
    "TrendFollowingSignalGenerator",
    "TrendRules",
    "VolatilityRegimeAnalyzer",
    "VolatilityRules",
]
