"""Fundamental factor analyzers."""

from invest_intel.fundamentals.growth import (
    GrowthAnalysis,
    GrowthFactorAnalyzer,
    GrowthScore,
    PegAssessment,
)
from invest_intel.fundamentals.quality import QualityAnalysis, QualityFactorAnalyzer, QualityScore
from invest_intel.fundamentals.valuation import (
    INDUSTRY_BENCHMARKS,
    ValuationAnalysis,
    ValuationFactorAnalyzer,
    ValuationScore,
    benchmarks_for,
)

__all__ = [
    "GrowthAnalysis",
    "GrowthFactorAnalyzer",
    "GrowthScore",
    "PegAssessment",
    "QualityAnalysis",
    "QualityFactorAnalyzer",
    "QualityScore",
    "INDUSTRY_BENCHMARKS",
    "ValuationAnalysis",
    "ValuationFactorAnalyzer",
    "ValuationScore",
    "benchmarks_for",
]
