"""Repositories and performance memory."""

from invest_intel.memory.repository import DiskStore, InMemoryStore, Store
from invest_intel.memory.signal_performance import (
    SignalAnalytics,
    SignalPerformance,
    SignalPerformanceTracker,
)
from invest_intel.memory.thesis_history import ThesisHistoryStore, ThesisPattern, ThesisPerformance

__all__ = [
    "DiskStore",
    "InMemoryStore",
    "Store",
    "SignalAnalytics",
    "SignalPerformance",
    "SignalPerformanceTracker",
    "ThesisHistoryStore",
    "ThesisPattern",
    "ThesisPerformance",
]
