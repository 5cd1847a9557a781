"""Risk, opportunity and thesis scoring."""

from invest_intel.scoring.opportunity import (
    OpportunityScoreBreakdown,
    OpportunityScorer,
    ScoringWeights,
    horizon_for_hours,
)
from invest_intel.scoring.risk import (
    PositionSizeLimit,
    RiskAssessment,
    RiskBreakdown,
    RiskFactor,
    RiskScorer,
    RiskWeights,
)
from invest_intel.scoring.thesis import ThesisComponents, ThesisGenerator

__all__ = [
    "OpportunityScoreBreakdown",
    "OpportunityScorer",
    "ScoringWeights",
    "horizon_for_hours",
    "PositionSizeLimit",
    "RiskAssessment",
    "RiskBreakdown",
    "RiskFactor",
    "RiskScorer",
    "RiskWeights",
    "ThesisComponents",
    "ThesisGenerator",
]
