"""
Outbound operations: the entry points collaborators call.

ProfileService validates submissions, runs them through extraction, weighting
and consolidation, and serves the read-only analytics views. All store access
is bounded by ``StoreConfig.operation_timeout``.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import pydantic
from pydantic import BaseModel

from .analytics.classification import next_assessment_recommendations, strengths_and_growth
from .analytics.cohort import analyze_cohort, dimension_averages, neutral_averages
from .analytics.compatibility import compatibility
from .analytics.risk import assess_risks, profile_insights
from .analytics.trends import predict_dimension
from .config import Settings
from .consolidation.consolidators import Consolidator, create_consolidator
from .consolidation.engine import ConsolidationEngine, Subject
from .database.store import ProfileStore, bounded
from .errors import (
    ConflictError,
    ProfileEngineError,
    ProfileNotFoundError,
    ValidationError,
    VersionConflictError,
)
from .models.analytics import CohortSummary, RiskFactor, TrendPrediction
from .models.profile import ClassroomObservations, ConsolidatedProfile, SubmissionPayload, utcnow
from .models.scores import ALL_DIMENSIONS
from .scoring.questions import intended_coverage
from .scoring.weighting import build_contribution, role_allowed


logger = logging.getLogger(__name__)


class ContributionSummary(BaseModel):
    """What one submission added to the profile."""
    contribution_id: str
    respondent_role: str
    assessment_variant: str
    weight: float
    confidence_boost: float
    scores: Dict[str, float] = {}
    dimensions_covered: List[str] = []
    new_dimensions: List[str] = []
    intended_dimensions: List[str] = []
    confidence_percentage: float
    completeness_percentage: float
    total_assessments: int


class SubmissionResult(BaseModel):
    profile: ConsolidatedProfile
    is_new_profile: bool
    contribution_summary: ContributionSummary
    warnings: List[str] = []


class ConsolidationStatus(BaseModel):
    """Progress of a profile towards full, corroborated coverage."""
    profile_id: str
    subject_name: str
    total_assessments: int
    role_counts: Dict[str, int] = {}
    confidence_percentage: float
    completeness_percentage: float
    covered_dimensions: List[str] = []
    missing_dimensions: List[str] = []
    personality_label: Optional[str] = None
    strengths: List[str] = []
    growth_areas: List[str] = []
    recommendations: List[str] = []


def _validation_messages(error: pydantic.ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in e['loc']) or 'payload'}: {e['msg']}"
        for e in error.errors()
    ]


class ProfileService:
    """Submission and analytics entry points over a profile store."""

    def __init__(
        self,
        store: ProfileStore,
        settings: Optional[Settings] = None,
        consolidator: Optional[Consolidator] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.engine = ConsolidationEngine(self.settings.consolidation)
        self.consolidator = consolidator or create_consolidator(store, self.engine, self.settings.store)

    @property
    def timeout(self) -> float:
        return self.settings.store.operation_timeout

    # Submissions

    async def submit_assessment(
        self,
        payload: Union[SubmissionPayload, Mapping[str, Any]],
    ) -> SubmissionResult:
        """
        Validate a submission and merge it into the subject's profile.

        Raises:
            ValidationError: malformed payload or nothing scorable; no store access happened
            ProfileNotFoundError: ``existing_profile_id`` does not exist
            StoreUnavailableError: the store timed out or is unreachable
            ConflictError: concurrent writers kept colliding past the retry budget
        """
        payload = self._validate_payload(payload)

        contribution = build_contribution(payload)
        if not contribution.score_vector:
            raise ValidationError(
                "Submission contains no scorable responses for this age band",
                errors=[f"responses: no valid ratings for age band {payload.age_band.value}"],
            )

        subject = await self._resolve_subject(payload)
        result = await self.consolidator.consolidate(subject, contribution)
        profile = result.profile

        warnings = []
        try:
            await bounded(
                "record_submission",
                self.store.record_submission(profile.id, contribution, payload.responses),
                self.timeout,
            )
        except ProfileEngineError as e:
            logger.warning(f"Could not record submission {contribution.id} for profile {profile.id}: {e}")
            warnings.append("Submission details could not be recorded; the profile update was saved")

        covered_before = set()
        for c in profile.contributions:
            if c.id != contribution.id:
                covered_before.update(c.dimensions_covered)

        summary = ContributionSummary(
            contribution_id=contribution.id,
            respondent_role=contribution.respondent_role.value,
            assessment_variant=contribution.assessment_variant.value,
            weight=contribution.weight,
            confidence_boost=contribution.confidence_boost,
            scores=dict(contribution.score_vector),
            dimensions_covered=sorted(contribution.dimensions_covered),
            new_dimensions=sorted(contribution.dimensions_covered - covered_before),
            intended_dimensions=sorted(intended_coverage(payload.assessment_variant, payload.age_band)),
            confidence_percentage=profile.confidence_percentage,
            completeness_percentage=profile.completeness_percentage,
            total_assessments=profile.total_assessments,
        )
        logger.info(
            f"Recorded {summary.respondent_role} assessment for profile {profile.id} "
            f"(new={result.is_new}, confidence {profile.confidence_percentage:.1f}%, "
            f"completeness {profile.completeness_percentage:.1f}%)"
        )
        return SubmissionResult(
            profile=profile,
            is_new_profile=result.is_new,
            contribution_summary=summary,
            warnings=warnings,
        )

    def _validate_payload(self, payload: Union[SubmissionPayload, Mapping[str, Any]]) -> SubmissionPayload:
        if not isinstance(payload, SubmissionPayload):
            if not isinstance(payload, Mapping):
                raise ValidationError("Submission payload must be a mapping")
            try:
                payload = SubmissionPayload.model_validate(dict(payload))
            except pydantic.ValidationError as e:
                messages = _validation_messages(e)
                raise ValidationError(f"Invalid submission: {'; '.join(messages)}", errors=messages) from e

        if not role_allowed(payload.assessment_variant, payload.respondent_role):
            raise ValidationError(
                f"Respondent role '{payload.respondent_role.value}' cannot submit a "
                f"'{payload.assessment_variant.value}' assessment"
            )
        return payload

    async def _resolve_subject(self, payload: SubmissionPayload) -> Subject:
        if not payload.existing_profile_id:
            return Subject.from_payload(payload)

        existing = await self.get_profile(payload.existing_profile_id)
        return Subject(
            name=existing.subject_name,
            key=existing.subject_key,
            age_band=existing.age_band,
            precise_age_months=payload.precise_age_months,
        )

    # Profiles

    async def get_profile(self, profile_id: str) -> ConsolidatedProfile:
        profile = await bounded("get_profile", self.store.get_profile(profile_id), self.timeout)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return profile

    async def record_observations(
        self,
        profile_id: str,
        observations: Union[ClassroomObservations, Mapping[str, Any]],
    ) -> ConsolidatedProfile:
        """Merge classroom observations into a profile; newer signals win."""
        if not isinstance(observations, ClassroomObservations):
            try:
                observations = ClassroomObservations.model_validate(dict(observations))
            except pydantic.ValidationError as e:
                messages = _validation_messages(e)
                raise ValidationError(f"Invalid observations: {'; '.join(messages)}", errors=messages) from e

        max_retries = self.settings.consolidation.max_retries
        for attempt in range(max_retries + 1):
            profile = await self.get_profile(profile_id)
            changes = {
                "observations": profile.observations.merged_with(observations),
                "updated_at": utcnow(),
            }
            try:
                return await bounded(
                    "update_profile",
                    self.store.update_profile(profile_id, changes, expected_version=profile.version),
                    self.timeout,
                )
            except VersionConflictError as e:
                if attempt == max_retries:
                    raise ConflictError(profile.subject_key, attempt + 1) from e
                logger.info(f"Profile {profile_id} changed while recording observations, retrying")
        # range() above always returns or raises
        raise ConflictError(profile.subject_key, max_retries + 1)

    async def get_consolidation_status(self, profile_id: str) -> ConsolidationStatus:
        profile = await self.get_profile(profile_id)
        covered = profile.covered_dimensions()
        split = strengths_and_growth(profile.consolidated_scores)
        return ConsolidationStatus(
            profile_id=profile.id,
            subject_name=profile.subject_name,
            total_assessments=profile.total_assessments,
            role_counts=dict(profile.role_counts),
            confidence_percentage=profile.confidence_percentage,
            completeness_percentage=profile.completeness_percentage,
            covered_dimensions=[d for d in ALL_DIMENSIONS if d in covered],
            missing_dimensions=[d for d in ALL_DIMENSIONS if d not in covered],
            personality_label=profile.personality_label,
            strengths=split["strengths"],
            growth_areas=split["growth_areas"],
            recommendations=next_assessment_recommendations(profile),
        )

    # Analytics

    async def get_risk_report(
        self,
        profile_id: str,
        cohort_ids: Optional[List[str]] = None,
    ) -> List[RiskFactor]:
        """
        Risk factors for one profile, most severe first.

        Academic risk is measured against the cohort's averages when cohort ids
        are given, otherwise against the neutral midpoint of the scale.
        """
        profile = await self.get_profile(profile_id)
        averages = neutral_averages()
        if cohort_ids:
            cohort = await bounded("list_profiles", self.store.list_profiles(list(cohort_ids)), self.timeout)
            if cohort:
                averages = dimension_averages(cohort)
        return assess_risks(profile, averages)

    async def get_classroom_analytics(self, profile_ids: List[str]) -> CohortSummary:
        """Cohort summary; ids without a stored profile are skipped."""
        profiles = await bounded("list_profiles", self.store.list_profiles(list(profile_ids)), self.timeout)
        if len(profiles) < len(set(profile_ids)):
            logger.warning(f"{len(set(profile_ids)) - len(profiles)} requested profile(s) not found")
        return analyze_cohort(profiles)

    async def get_compatibility(self, profile_id_a: str, profile_id_b: str) -> float:
        profile_a = await self.get_profile(profile_id_a)
        profile_b = await self.get_profile(profile_id_b)
        averages = neutral_averages()
        return compatibility(profile_insights(profile_a, averages), profile_insights(profile_b, averages))

    async def get_trend(self, profile_id: str, dimension: str, horizon: int = 4) -> TrendPrediction:
        canonical = next((d for d in ALL_DIMENSIONS if d.casefold() == dimension.strip().casefold()), None)
        if canonical is None:
            raise ValidationError(f"Unknown dimension '{dimension}'")
        if horizon < 0:
            raise ValidationError("horizon must not be negative")
        profile = await self.get_profile(profile_id)
        return predict_dimension(profile, canonical, horizon)
