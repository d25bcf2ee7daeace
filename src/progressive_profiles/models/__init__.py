"""
Core data models for progressive profiles.

This package contains:
- Score dimensions, assessment context enums and the raw answer union
- Contribution / consolidated profile / submission payload models
- Derived analytics schemas (risk factors, seating, trends, cohort summaries)
"""

from .scores import (
    SkillDimension,
    PreferenceDimension,
    AgeBand,
    AssessmentVariant,
    RespondentRole,
    ScoreVector,
    SCORE_MIN,
    SCORE_MAX,
    ALL_DIMENSIONS,
    ACADEMIC_DIMENSIONS,
    NumericAnswer,
    TextAnswer,
    ChoiceListAnswer,
    MissingAnswer,
    RawAnswer,
    parse_raw_answer,
)
from .profile import (
    Contribution,
    ProgressSample,
    ClassroomObservations,
    ConsolidatedProfile,
    SubmissionPayload,
    subject_key_for,
)
from .analytics import (
    RiskType,
    Severity,
    InterventionTimeline,
    LearningStyle,
    TrendDirection,
    RiskFactor,
    SeatingPreferences,
    ProfileInsights,
    TrendPrediction,
    CohortSummary,
)

__all__ = [
    # Scores and context
    "SkillDimension",
    "PreferenceDimension",
    "AgeBand",
    "AssessmentVariant",
    "RespondentRole",
    "ScoreVector",
    "SCORE_MIN",
    "SCORE_MAX",
    "ALL_DIMENSIONS",
    "ACADEMIC_DIMENSIONS",
    "NumericAnswer",
    "TextAnswer",
    "ChoiceListAnswer",
    "MissingAnswer",
    "RawAnswer",
    "parse_raw_answer",

    # Profiles
    "Contribution",
    "ProgressSample",
    "ClassroomObservations",
    "ConsolidatedProfile",
    "SubmissionPayload",
    "subject_key_for",

    # Analytics outputs
    "RiskType",
    "Severity",
    "InterventionTimeline",
    "LearningStyle",
    "TrendDirection",
    "RiskFactor",
    "SeatingPreferences",
    "ProfileInsights",
    "TrendPrediction",
    "CohortSummary",
]
