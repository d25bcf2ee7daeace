"""
Contribution weighting.

Weight and confidence boost are fixed per assessment variant: they express how
much one more observation of that kind should count, never how it scored.
"""

from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, NamedTuple, Optional

from ..models.profile import Contribution, SubmissionPayload
from ..models.scores import AgeBand, AssessmentVariant, RespondentRole, ScoreVector
from .extractor import extract_preferences, extract_scores


class VariantPolicy(NamedTuple):
    role: RespondentRole
    weight: float
    confidence_boost: float


class ContributionWeights(NamedTuple):
    weight: float
    confidence_boost: float
    dimensions_covered: FrozenSet[str]


VARIANT_POLICIES: Mapping[AssessmentVariant, VariantPolicy] = MappingProxyType({
    AssessmentVariant.PARENT_HOME: VariantPolicy(RespondentRole.PARENT, 0.6, 30.0),
    AssessmentVariant.TEACHER_CLASSROOM: VariantPolicy(RespondentRole.TEACHER, 0.8, 40.0),
    AssessmentVariant.STUDENT_SELF: VariantPolicy(RespondentRole.STUDENT, 0.3, 15.0),
    AssessmentVariant.GENERAL: VariantPolicy(RespondentRole.GENERAL, 1.0, 50.0),
})


def role_allowed(variant: AssessmentVariant, role: RespondentRole) -> bool:
    """A variant is answered by its target role; the general variant by anyone."""
    if variant is AssessmentVariant.GENERAL:
        return True
    return VARIANT_POLICIES[variant].role is role


def weigh(
    variant: AssessmentVariant,
    responses: Mapping[Any, Any],
    age_band: AgeBand = AgeBand.AGE_5_6,
    scores: Optional[ScoreVector] = None,
) -> ContributionWeights:
    """
    Compute weight, confidence boost and covered dimensions for one submission.

    ``dimensions_covered`` is exactly what the extractor produced for these
    responses, not the variant's intended coverage. Pass ``scores`` when they
    were already extracted to avoid doing it twice.
    """
    policy = VARIANT_POLICIES[variant]
    if scores is None:
        scores = extract_scores(responses, variant, age_band)
    return ContributionWeights(
        weight=policy.weight,
        confidence_boost=policy.confidence_boost,
        dimensions_covered=frozenset(scores),
    )


def build_contribution(payload: SubmissionPayload) -> Contribution:
    """Assemble an immutable Contribution from a validated payload."""
    scores = extract_scores(payload.responses, payload.assessment_variant, payload.age_band)
    weights = weigh(payload.assessment_variant, payload.responses, payload.age_band, scores=scores)
    return Contribution(
        respondent_role=payload.respondent_role,
        assessment_variant=payload.assessment_variant,
        respondent_name=payload.respondent_name,
        score_vector=scores,
        weight=weights.weight,
        confidence_boost=weights.confidence_boost,
        dimensions_covered=weights.dimensions_covered,
        preferences=extract_preferences(payload.responses),
    )
