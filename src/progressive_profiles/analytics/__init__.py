"""
Read-only analytics over consolidated profiles.

- classification: personality labels, learning styles, seating preferences
- risk: per-profile risk detectors
- cohort: classroom summaries
- compatibility: pairwise grouping scores
- trends: linear extrapolation of score history
"""

from .classification import (
    classify_learning_style,
    next_assessment_recommendations,
    personality_label,
    seating_preferences_for,
    strengths_and_growth,
)
from .risk import assess_risks, overall_risk_level, profile_insights
from .cohort import analyze_cohort, dimension_averages, neutral_averages, summarize
from .compatibility import compatibility, compatibility_matrix
from .trends import predict, predict_dimension

__all__ = [
    "classify_learning_style",
    "next_assessment_recommendations",
    "personality_label",
    "seating_preferences_for",
    "strengths_and_growth",
    "assess_risks",
    "overall_risk_level",
    "profile_insights",
    "analyze_cohort",
    "dimension_averages",
    "neutral_averages",
    "summarize",
    "compatibility",
    "compatibility_matrix",
    "predict",
    "predict_dimension",
]
