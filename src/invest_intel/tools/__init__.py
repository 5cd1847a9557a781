"""Investment intelligence tools."""

from invest_intel.tools.digest import build_digest
from invest_intel.tools.fundamentals import analyze_fundamentals
from invest_intel.tools.opportunity import score_opportunity
from invest_intel.tools.signals import generate_signals

__all__ = [
    "analyze_fundamentals",
    "build_digest",
    "generate_signals",
    "score_opportunity",
]
