"""
Consolidation engine: merge one contribution into a subject's profile.

The engine is pure. It never touches the store and never mutates the profile
it is given; every call returns a new ConsolidatedProfile (or the same object
when the contribution was already recorded).

Confidence rewards corroboration and penalizes conflict. For the dimensions a
contribution shares with the existing profile, the largest divergence between
the new value and the consolidated value decides the delta:

    divergence <= agreement_tolerance            -> +boost
    agreement_tolerance < d <= disagreement_thr  -> +boost scaled linearly to 0
    divergence > disagreement_threshold          -> -boost * conflict_penalty_ratio

Completeness grows only through evidence: a full share (100 / 8) for each
dimension observed for the first time, ``repeat_coverage_credit`` for each
dimension observed again.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, Mapping, NamedTuple, Optional

from ..config import ConsolidationConfig
from ..analytics.classification import personality_label
from ..models.profile import Contribution, ConsolidatedProfile, SubmissionPayload, utcnow
from ..models.scores import ALL_DIMENSIONS, AgeBand, clamp_percentage


logger = logging.getLogger(__name__)

DIMENSION_SHARE = 100.0 / len(ALL_DIMENSIONS)

# Fields a merge may change; everything else is fixed at creation
MERGE_FIELDS = (
    "consolidated_scores",
    "confidence_percentage",
    "completeness_percentage",
    "contributions",
    "role_counts",
    "preferences",
    "personality_label",
    "precise_age_months",
    "updated_at",
)


class Subject(NamedTuple):
    """Identity and age context used when a profile has to be created."""
    name: str
    key: str
    age_band: AgeBand = AgeBand.AGE_5_6
    precise_age_months: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: SubmissionPayload) -> "Subject":
        return cls(
            name=payload.subject_name,
            key=payload.subject_key,
            age_band=payload.age_band,
            precise_age_months=payload.precise_age_months,
        )


def max_divergence(existing: Mapping[str, float], incoming: Mapping[str, float]) -> Optional[float]:
    """Largest absolute difference over shared dimensions; None when nothing is shared."""
    shared = [d for d in incoming if d in existing]
    if not shared:
        return None
    return max(abs(incoming[d] - existing[d]) for d in shared)


def next_confidence(
    previous: float,
    existing_scores: Mapping[str, float],
    incoming_scores: Mapping[str, float],
    confidence_boost: float,
    config: ConsolidationConfig,
) -> float:
    """Confidence after one more observation, clamped to [0, 100]."""
    divergence = max_divergence(existing_scores, incoming_scores)

    if divergence is None or divergence <= config.agreement_tolerance:
        delta = confidence_boost
    elif divergence <= config.disagreement_threshold:
        span = config.disagreement_threshold - config.agreement_tolerance
        delta = confidence_boost * (config.disagreement_threshold - divergence) / span
    else:
        delta = -confidence_boost * config.conflict_penalty_ratio

    return clamp_percentage(previous + delta)


def next_completeness(
    previous: float,
    covered_before: FrozenSet[str],
    newly_covered: Iterable[str],
    config: ConsolidationConfig,
) -> float:
    """Completeness after one more observation, capped at 100; never decreases."""
    newly_covered = frozenset(newly_covered)
    first_time = len(newly_covered - covered_before)
    repeated = len(newly_covered & covered_before)
    gained = first_time * DIMENSION_SHARE + repeated * config.repeat_coverage_credit
    return min(100.0, max(previous, previous + gained))


class ConsolidationEngine:
    """Pure merge of contributions into consolidated profiles."""

    def __init__(self, config: Optional[ConsolidationConfig] = None):
        self.config = config or ConsolidationConfig()

    def consolidate(
        self,
        existing: Optional[ConsolidatedProfile],
        contribution: Contribution,
        subject: Optional[Subject] = None,
    ) -> ConsolidatedProfile:
        """
        Merge a contribution into a profile, creating one when none exists.

        Args:
            existing: Current profile for the subject, or None
            contribution: Contribution to record
            subject: Subject identity; required when ``existing`` is None

        Returns:
            A new profile, or ``existing`` itself when the contribution id is
            already recorded
        """
        if existing is None:
            if subject is None:
                raise ValueError("A subject is required to create a profile")
            return self._create(subject, contribution)

        if existing.has_contribution(contribution.id):
            logger.debug(f"Contribution {contribution.id} already recorded on profile {existing.id}")
            return existing

        return self._merge(existing, contribution, subject)

    def _create(self, subject: Subject, contribution: Contribution) -> ConsolidatedProfile:
        scores = dict(contribution.score_vector)
        now = utcnow()
        profile = ConsolidatedProfile(
            subject_name=subject.name,
            subject_key=subject.key,
            age_band=subject.age_band,
            precise_age_months=subject.precise_age_months,
            consolidated_scores=scores,
            confidence_percentage=clamp_percentage(contribution.confidence_boost),
            completeness_percentage=next_completeness(0.0, frozenset(), contribution.dimensions_covered, self.config),
            contributions=[contribution],
            role_counts={contribution.respondent_role.value: 1},
            preferences=dict(contribution.preferences),
            personality_label=personality_label(scores),
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Created profile {profile.id} for '{subject.key}' "
            f"({len(scores)} dimensions, confidence {profile.confidence_percentage:.1f}%)"
        )
        return profile

    def _merge(
        self,
        existing: ConsolidatedProfile,
        contribution: Contribution,
        subject: Optional[Subject],
    ) -> ConsolidatedProfile:
        scores = self._blend_scores(existing, contribution)

        confidence = next_confidence(
            existing.confidence_percentage,
            existing.consolidated_scores,
            contribution.score_vector,
            contribution.confidence_boost,
            self.config,
        )
        completeness = next_completeness(
            existing.completeness_percentage,
            existing.covered_dimensions(),
            contribution.dimensions_covered,
            self.config,
        )

        role = contribution.respondent_role.value
        role_counts = dict(existing.role_counts)
        role_counts[role] = role_counts.get(role, 0) + 1

        precise_age = existing.precise_age_months
        if subject is not None and subject.precise_age_months is not None:
            precise_age = subject.precise_age_months

        changes = {
            "consolidated_scores": scores,
            "confidence_percentage": confidence,
            "completeness_percentage": completeness,
            "contributions": [*existing.contributions, contribution],
            "role_counts": role_counts,
            "preferences": {**existing.preferences, **contribution.preferences},
            "personality_label": personality_label(scores),
            "precise_age_months": precise_age,
            "updated_at": utcnow(),
        }
        logger.debug(
            f"Merged {role} contribution into profile {existing.id}: "
            f"confidence {existing.confidence_percentage:.1f} -> {confidence:.1f}, "
            f"completeness {existing.completeness_percentage:.1f} -> {completeness:.1f}"
        )
        return existing.model_copy(update=changes)

    @staticmethod
    def _blend_scores(existing: ConsolidatedProfile, contribution: Contribution) -> Dict[str, float]:
        """Weighted running average per dimension, keyed by cumulative weight to date."""
        scores = dict(existing.consolidated_scores)
        for dimension, value in contribution.score_vector.items():
            prior_weight = existing.cumulative_weight(dimension)
            if dimension not in scores or prior_weight <= 0:
                scores[dimension] = value
                continue
            total_weight = prior_weight + contribution.weight
            if total_weight <= 0:
                continue
            blended = (scores[dimension] * prior_weight + value * contribution.weight) / total_weight
            scores[dimension] = round(blended, 2)
        return scores

    @staticmethod
    def merge_changes(profile: ConsolidatedProfile) -> Dict[str, Any]:
        """The fields a store must persist to apply a merge."""
        return {field: getattr(profile, field) for field in MERGE_FIELDS}
