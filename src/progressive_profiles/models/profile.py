"""
Profile data model: contributions, consolidated profiles and submission payloads.

A ConsolidatedProfile is the single authoritative record for one subject. Its
contribution history is append-only; the consolidation engine always returns a
new profile object instead of mutating the one it was given.
"""

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .scores import (
    ACADEMIC_DIMENSIONS,
    SCORE_MAX,
    AgeBand,
    AssessmentVariant,
    RespondentRole,
    clamp_percentage,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def subject_key_for(subject_name: str) -> str:
    """Normalize a subject name into the identity used for de-duplication."""
    return " ".join(subject_name.split()).casefold()


class Contribution(BaseModel):
    """One assessment submission's processed effect on a profile."""
    id: str = Field(default_factory=new_id)
    respondent_role: RespondentRole
    assessment_variant: AssessmentVariant
    respondent_name: Optional[str] = None
    score_vector: Dict[str, float] = {}
    weight: float = Field(..., ge=0.0, le=1.0)
    confidence_boost: float = Field(..., ge=0.0, le=100.0)
    dimensions_covered: FrozenSet[str] = frozenset()
    preferences: Dict[str, Union[str, List[str]]] = {}
    timestamp: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True


class ProgressSample(BaseModel):
    """One point in a subject's history for one metric."""
    date: datetime
    metric_name: str
    value: float
    max_value: float = SCORE_MAX

    @property
    def normalized(self) -> float:
        if self.max_value <= 0:
            return 0.0
        return self.value / self.max_value


class ClassroomObservations(BaseModel):
    """Optional classroom signals recorded alongside a profile (1-5 scales, compatibility 1-10)."""
    engagement_level: Optional[float] = Field(None, ge=1, le=5)
    participation_frequency: Optional[float] = Field(None, ge=1, le=5)
    peer_interaction_quality: Optional[float] = Field(None, ge=1, le=5)
    teaching_compatibility: Optional[float] = Field(None, ge=1, le=10)
    progress: List[ProgressSample] = []

    def merged_with(self, update: "ClassroomObservations") -> "ClassroomObservations":
        """Newer signals replace older ones; progress samples accumulate."""
        changes = update.model_dump(exclude={"progress"}, exclude_none=True)
        return self.model_copy(update={**changes, "progress": [*self.progress, *update.progress]})


class ConsolidatedProfile(BaseModel):
    """Authoritative merged profile for one subject."""
    id: str = Field(default_factory=new_id)
    subject_name: str
    subject_key: str
    age_band: AgeBand = AgeBand.AGE_5_6
    precise_age_months: Optional[int] = None

    consolidated_scores: Dict[str, float] = {}
    confidence_percentage: float = 0.0
    completeness_percentage: float = 0.0

    contributions: List[Contribution] = []
    role_counts: Dict[str, int] = {}
    preferences: Dict[str, Union[str, List[str]]] = {}
    personality_label: Optional[str] = None
    observations: ClassroomObservations = Field(default_factory=ClassroomObservations)

    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    @field_validator("confidence_percentage", "completeness_percentage")
    @classmethod
    def clamp_percentages(cls, v):
        return clamp_percentage(v)

    @property
    def total_assessments(self) -> int:
        return len(self.contributions)

    def count_for(self, role: Union[RespondentRole, str]) -> int:
        key = role.value if isinstance(role, RespondentRole) else role
        return self.role_counts.get(key, 0)

    def has_contribution(self, contribution_id: str) -> bool:
        return any(c.id == contribution_id for c in self.contributions)

    def covered_dimensions(self) -> FrozenSet[str]:
        covered = set()
        for contribution in self.contributions:
            covered.update(contribution.dimensions_covered)
        return frozenset(covered)

    def cumulative_weight(self, dimension: str) -> float:
        """Sum of weights of every recorded contribution that scored this dimension."""
        return sum(c.weight for c in self.contributions if dimension in c.dimensions_covered)

    def progress_samples(self, dimension: str) -> List[ProgressSample]:
        """Chronological samples for one dimension from assessments and recorded observations."""
        samples = [
            ProgressSample(
                date=c.timestamp,
                metric_name=dimension,
                value=c.score_vector[dimension],
            )
            for c in self.contributions
            if dimension in c.score_vector
        ]
        samples.extend(
            s for s in self.observations.progress
            if s.metric_name.casefold() == dimension.casefold()
        )
        return sorted(samples, key=lambda s: s.date)

    def academic_history(self) -> List[float]:
        """Chronological normalized mean of the academic dimensions per assessment."""
        history = []
        for contribution in sorted(self.contributions, key=lambda c: c.timestamp):
            values = [
                contribution.score_vector[d] / SCORE_MAX
                for d in ACADEMIC_DIMENSIONS
                if d in contribution.score_vector
            ]
            if values:
                history.append(sum(values) / len(values))
        return history


class SubmissionPayload(BaseModel):
    """Raw assessment submission as received from a collaborator."""
    subject_name: str
    assessment_variant: AssessmentVariant
    respondent_role: RespondentRole
    responses: Dict[str, Any]
    existing_profile_id: Optional[str] = None
    age_band: AgeBand = AgeBand.AGE_5_6
    precise_age_months: Optional[int] = None
    respondent_name: Optional[str] = None
    context: Dict[str, Any] = {}

    @field_validator("subject_name")
    @classmethod
    def validate_subject_name(cls, v):
        if not v or not v.strip():
            raise ValueError("subject_name must not be empty")
        return " ".join(v.split())

    @field_validator("responses", mode="before")
    @classmethod
    def validate_responses(cls, v):
        if not isinstance(v, dict) or not v:
            raise ValueError("responses must be a non-empty mapping of question id to answer")
        return {str(k): value for k, value in v.items()}

    @field_validator("age_band", mode="before")
    @classmethod
    def parse_age_band(cls, v):
        if v is None:
            return AgeBand.AGE_5_6
        return AgeBand.parse(v)

    @property
    def subject_key(self) -> str:
        return subject_key_for(self.subject_name)
