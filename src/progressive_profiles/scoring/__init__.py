"""
Scoring: raw responses -> score vectors -> weighted contributions.
"""

from .extractor import extract_preferences, extract_scores, likert_points
from .questions import QUESTION_BANK, PREFERENCE_QUESTIONS, VARIANT_QUESTIONS, intended_coverage
from .weighting import (
    VARIANT_POLICIES,
    ContributionWeights,
    VariantPolicy,
    build_contribution,
    role_allowed,
    weigh,
)

__all__ = [
    "extract_scores",
    "extract_preferences",
    "likert_points",
    "QUESTION_BANK",
    "PREFERENCE_QUESTIONS",
    "VARIANT_QUESTIONS",
    "intended_coverage",
    "VARIANT_POLICIES",
    "VariantPolicy",
    "ContributionWeights",
    "weigh",
    "build_contribution",
    "role_allowed",
]
