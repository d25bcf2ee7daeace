"""
Derived analytics schemas: risk factors, learning styles, seating preferences,
trend predictions and cohort summaries.

None of these are stored as ground truth; they are recomputed from the current
consolidated profile on every request.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class RiskType(str, Enum):
    LEARNING_STYLE_MISMATCH = "learning-style-mismatch"
    LOW_ENGAGEMENT = "low-engagement"
    SOCIAL_ISOLATION = "social-isolation"
    ACADEMIC_STRUGGLE = "academic-struggle"


class Severity(str, Enum):
    """Risk severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


class InterventionTimeline(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short-term"
    ONGOING = "ongoing"


class LearningStyle(str, Enum):
    CREATIVE = "creative"
    ANALYTICAL = "analytical"
    COLLABORATIVE = "collaborative"
    CONFIDENT = "confident"


class TrendDirection(str, Enum):
    """Trend direction indicators."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    UNKNOWN = "unknown"


class RiskFactor(BaseModel):
    """A recomputed-on-demand flag for a pattern that warrants attention."""
    id: str
    type: RiskType
    severity: Severity
    description: str
    indicators: List[str] = []
    interventions: List[str] = []
    timeline: InterventionTimeline


class SeatingPreferences(BaseModel):
    preferred_group_size: int = 4
    collaboration_comfort: str = "medium"  # high/medium/low
    focus_requirement: str = "moderate"  # quiet/moderate/stimulating
    energy_level: str = "medium"  # high/medium/low
    interaction_role: str = "collaborator"  # leader/collaborator/independent
    proximity_need: str = "flexible"  # close_to_teacher/near_peers/flexible


class ProfileInsights(BaseModel):
    """Per-profile analytics view used for grouping and cohort reports."""
    profile_id: str
    subject_name: str
    learning_style: Optional[LearningStyle] = None
    consolidated_scores: Dict[str, float] = {}
    engagement_level: Optional[float] = None
    participation_frequency: Optional[float] = None
    risk_factors: List[RiskFactor] = []
    seating_preferences: SeatingPreferences = SeatingPreferences()

    @property
    def max_severity(self) -> Optional[Severity]:
        if not self.risk_factors:
            return None
        return max((rf.severity for rf in self.risk_factors), key=lambda s: s.rank)


class TrendPrediction(BaseModel):
    """Linear extrapolation of one dimension's history."""
    dimension: str
    horizon: int
    sample_count: int
    insufficient_data: bool = False
    direction: TrendDirection = TrendDirection.UNKNOWN
    slope: Optional[float] = None
    intercept: Optional[float] = None
    predicted_normalized: Optional[float] = None
    predicted_value: Optional[float] = None
    confidence: int = 0


class StyleShare(BaseModel):
    style: LearningStyle
    count: int
    percentage: float


class StyleDistribution(BaseModel):
    distribution: List[StyleShare] = []
    unclassified_count: int = 0
    dominant_style: Optional[LearningStyle] = None
    underrepresented_styles: List[LearningStyle] = []
    recommendations: List[str] = []


class EngagementAnalysis(BaseModel):
    observed_count: int = 0
    overall_engagement: Optional[float] = None
    overall_participation: Optional[float] = None
    low_engagement_count: int = 0
    high_engagement_count: int = 0
    engagement_by_style: Dict[str, float] = {}
    recommendations: List[str] = []


class RiskDistribution(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0
    risk_types: Dict[str, int] = {}
    total_at_risk: int = 0
    risk_percentage: float = 0.0


class CohortSummary(BaseModel):
    """Classroom-level analytics over many consolidated profiles."""
    profile_count: int = 0
    dimension_averages: Dict[str, float] = {}
    learning_styles: StyleDistribution = StyleDistribution()
    engagement: EngagementAnalysis = EngagementAnalysis()
    risk: RiskDistribution = RiskDistribution()
    recommendations: List[str] = []
