"""
Tests for the per-profile risk detectors.
"""

import pytest

from progressive_profiles.analytics.risk import (
    assess_risks,
    detect_academic_struggle,
    detect_learning_style_mismatch,
    detect_low_engagement,
    detect_social_isolation,
    is_declining,
    overall_risk_level,
    profile_insights,
)
from progressive_profiles.models.analytics import (
    InterventionTimeline,
    LearningStyle,
    RiskType,
    Severity,
)
from progressive_profiles.models.profile import ClassroomObservations

from factories import make_contribution, make_profile


ACADEMIC_AVERAGES = {"Communication": 4.0, "Content": 4.0, "Critical Thinking": 4.0}


def observed(**signals):
    return ClassroomObservations(**signals)


class TestLearningStyleMismatch:
    """Test the teaching compatibility detector."""

    @pytest.mark.parametrize("compatibility,severity,timeline", [
        (3, Severity.HIGH, InterventionTimeline.IMMEDIATE),
        (5, Severity.MEDIUM, InterventionTimeline.SHORT_TERM),
        (6.5, Severity.LOW, InterventionTimeline.SHORT_TERM),
    ])
    def test_severity_bands(self, compatibility, severity, timeline):
        profile = make_profile({"Math": 3.0}, observations=observed(teaching_compatibility=compatibility))
        risk = detect_learning_style_mismatch(profile, LearningStyle.CREATIVE)

        assert risk.type is RiskType.LEARNING_STYLE_MISMATCH
        assert risk.severity is severity
        assert risk.timeline is timeline
        assert risk.id == f"learning-mismatch-{profile.id}"
        assert "Provide open-ended projects and creative choices" in risk.interventions

    def test_compatible_enough(self):
        profile = make_profile({"Math": 3.0}, observations=observed(teaching_compatibility=7))
        assert detect_learning_style_mismatch(profile, LearningStyle.CREATIVE) is None

    def test_no_observation_no_signal(self):
        assert detect_learning_style_mismatch(make_profile({"Math": 3.0}), LearningStyle.CREATIVE) is None


class TestLowEngagement:
    """Test the engagement detector."""

    def test_both_low_is_medium(self):
        profile = make_profile({"Math": 3.0}, observations=observed(engagement_level=2.5, participation_frequency=2.5))
        risk = detect_low_engagement(profile)
        assert risk.severity is Severity.MEDIUM
        assert "Engagement level: 2.5/5" in risk.indicators

    def test_very_low_is_high(self):
        profile = make_profile({"Math": 3.0}, observations=observed(engagement_level=2, participation_frequency=2.5))
        assert detect_low_engagement(profile).severity is Severity.HIGH

    def test_one_signal_healthy(self):
        profile = make_profile({"Math": 3.0}, observations=observed(engagement_level=3, participation_frequency=1))
        assert detect_low_engagement(profile) is None

    def test_missing_signal(self):
        profile = make_profile({"Math": 3.0}, observations=observed(engagement_level=1))
        assert detect_low_engagement(profile) is None


class TestSocialIsolation:
    """Test the peer interaction detector."""

    def test_high(self):
        profile = make_profile({"Collaboration": 1.5}, observations=observed(peer_interaction_quality=2))
        risk = detect_social_isolation(profile, LearningStyle.COLLABORATIVE)
        assert risk.severity is Severity.HIGH
        assert risk.timeline is InterventionTimeline.ONGOING

    def test_medium(self):
        profile = make_profile({"Collaboration": 2.0}, observations=observed(peer_interaction_quality=2.5))
        assert detect_social_isolation(profile, LearningStyle.CREATIVE).severity is Severity.MEDIUM

    def test_never_for_analytical_learners(self):
        profile = make_profile({"Collaboration": 1.0}, observations=observed(peer_interaction_quality=1))
        assert detect_social_isolation(profile, LearningStyle.ANALYTICAL) is None

    def test_unscored_collaboration(self):
        profile = make_profile({"Math": 2.0}, observations=observed(peer_interaction_quality=1))
        assert detect_social_isolation(profile, LearningStyle.CREATIVE) is None


class TestAcademicStruggle:
    """Test the cohort comparison detector."""

    def test_gap_bands(self):
        low = make_profile({"Communication": 3.2, "Content": 3.2})
        medium = make_profile({"Communication": 2.8, "Content": 2.8})
        high = make_profile({"Communication": 2.0, "Content": 2.0})

        assert detect_academic_struggle(low, ACADEMIC_AVERAGES).severity is Severity.LOW
        assert detect_academic_struggle(medium, ACADEMIC_AVERAGES).severity is Severity.MEDIUM
        assert detect_academic_struggle(high, ACADEMIC_AVERAGES).severity is Severity.HIGH

    def test_small_gap_ignored(self):
        profile = make_profile({"Content": 3.7})
        assert detect_academic_struggle(profile, ACADEMIC_AVERAGES) is None

    def test_no_cohort_no_signal(self):
        assert detect_academic_struggle(make_profile({"Content": 1.0}), None) is None
        assert detect_academic_struggle(make_profile({"Content": 1.0}), {}) is None

    def test_only_shared_dimensions_compared(self):
        profile = make_profile({"Math": 1.0, "Literacy": 1.0})
        assert detect_academic_struggle(profile, ACADEMIC_AVERAGES) is None

    def test_decline_escalates(self):
        history = [
            make_contribution({"Content": 4.0}, days=0),
            make_contribution({"Content": 3.5}, days=1),
            make_contribution({"Content": 3.0}, days=2),
        ]
        profile = make_profile({"Content": 3.2}, contributions=history)

        risk = detect_academic_struggle(profile, ACADEMIC_AVERAGES)

        assert risk.severity is Severity.MEDIUM
        assert "Declining progress trend observed" in risk.indicators

    def test_is_declining(self):
        assert is_declining([0.9, 0.8, 0.7])
        assert is_declining([0.5, 0.9, 0.8, 0.7])
        assert not is_declining([0.9, 0.8, 0.8])
        assert not is_declining([0.9, 0.8])


class TestAssessRisks:
    """Test the combined report."""

    def test_sorted_most_severe_first(self):
        profile = make_profile(
            {"Communication": 3.2, "Content": 3.2},
            observations=observed(engagement_level=1, participation_frequency=1),
        )
        risks = assess_risks(profile, ACADEMIC_AVERAGES)

        assert [r.type for r in risks] == [RiskType.LOW_ENGAGEMENT, RiskType.ACADEMIC_STRUGGLE]
        assert overall_risk_level(risks) is Severity.HIGH

    def test_clean_profile(self):
        assert assess_risks(make_profile({"Math": 4.0, "Literacy": 4.0})) == []
        assert overall_risk_level([]) is None

    def test_profile_insights(self):
        profile = make_profile({"Critical Thinking": 4.5, "Content": 4.0}, label="Analytical Scholar",
                               observations=observed(engagement_level=3.0))
        insights = profile_insights(profile)

        assert insights.learning_style is LearningStyle.ANALYTICAL
        assert insights.seating_preferences.focus_requirement == "quiet"
        assert insights.engagement_level == 3.0
        assert insights.max_severity is None
