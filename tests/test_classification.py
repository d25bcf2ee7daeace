"""
Tests for personality labels, learning styles and recommendations.
"""

import pytest

from progressive_profiles.analytics.classification import (
    FALLBACK_LABEL,
    classify_learning_style,
    next_assessment_recommendations,
    personality_label,
    seating_preferences_for,
    strengths_and_growth,
)
from progressive_profiles.models.analytics import LearningStyle, SeatingPreferences
from progressive_profiles.models.scores import RespondentRole

from factories import make_contribution, make_profile


class TestPersonalityLabel:
    """Test labels from the two strongest dimensions."""

    @pytest.mark.parametrize("scores,label", [
        ({"Communication": 5.0, "Collaboration": 4.0, "Math": 2.0}, "Social Communicator"),
        ({"Collaboration": 4.0, "Communication": 5.0}, "Social Communicator"),
        ({"Critical Thinking": 4.5, "Content": 4.0, "Literacy": 1.0}, "Analytical Scholar"),
        ({"Literacy": 5.0, "Math": 5.0}, "Academic All-Star"),
    ])
    def test_pairs(self, scores, label):
        assert personality_label(scores) == label

    def test_single_dimension_falls_back(self):
        assert personality_label({"Math": 5.0}) == FALLBACK_LABEL
        assert personality_label({}) == FALLBACK_LABEL

    def test_ties_use_dimension_order(self):
        scores = {"Math": 3.0, "Literacy": 3.0, "Communication": 3.0}
        assert personality_label(scores) == "Language Leader"


class TestStrengthsAndGrowth:
    """Test the strengths / growth split."""

    def test_threshold_split(self):
        result = strengths_and_growth({"Math": 4.5, "Literacy": 4.0, "Confidence": 2.5, "Content": 3.5})
        assert result == {"strengths": ["Math", "Literacy"], "growth_areas": ["Confidence"]}

    def test_fallback_without_strengths(self):
        result = strengths_and_growth({"Math": 3.5, "Literacy": 3.0, "Confidence": 2.0, "Content": 2.5})
        assert result == {"strengths": ["Math", "Literacy"], "growth_areas": ["Content", "Confidence"]}


class TestLearningStyle:
    """Test learning style classification."""

    def test_from_label_keyword(self):
        profile = make_profile({"Math": 2.0}, label="Creative Problem Solver")
        assert classify_learning_style(profile) is LearningStyle.CREATIVE

    @pytest.mark.parametrize("dimension,style", [
        ("Creative Innovation", LearningStyle.CREATIVE),
        ("Math", LearningStyle.ANALYTICAL),
        ("Collaboration", LearningStyle.COLLABORATIVE),
        ("Confidence", LearningStyle.CONFIDENT),
    ])
    def test_from_primary_dimension(self, dimension, style):
        profile = make_profile({dimension: 4.5, "Literacy": 2.0}, label="Some Learner")
        assert classify_learning_style(profile) is style

    def test_unscored_profile(self):
        assert classify_learning_style(make_profile({}, contributions=[])) is None

    def test_seating(self):
        assert seating_preferences_for(LearningStyle.ANALYTICAL).proximity_need == "close_to_teacher"
        assert seating_preferences_for(LearningStyle.CONFIDENT).interaction_role == "leader"
        assert seating_preferences_for(None) == SeatingPreferences()


class TestRecommendations:
    """Test next-assessment recommendations."""

    def test_single_parent_assessment(self):
        profile = make_profile({"Math": 3.0}).model_copy(update={"role_counts": {"parent": 1}})
        recommendations = next_assessment_recommendations(profile)

        assert "Consider adding a teacher assessment for classroom behavior insights" in recommendations
        assert "Additional assessments will increase profile confidence and accuracy" in recommendations
        assert not any("parent assessment" in r for r in recommendations)

    def test_well_covered_profile(self):
        contributions = [
            make_contribution({"Math": 3.0}, role=RespondentRole.PARENT),
            make_contribution({"Math": 3.0}, role=RespondentRole.TEACHER),
        ]
        profile = make_profile({"Math": 3.0}, contributions=contributions).model_copy(update={
            "role_counts": {"parent": 1, "teacher": 1},
            "completeness_percentage": 87.5,
        })
        assert next_assessment_recommendations(profile) == []
