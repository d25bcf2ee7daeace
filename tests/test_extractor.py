"""
Tests for score extraction from raw responses.
"""

import math

import pytest

from progressive_profiles.errors import ComputationError
from progressive_profiles.models.scores import (
    AgeBand,
    AssessmentVariant,
    ChoiceListAnswer,
    MissingAnswer,
    NumericAnswer,
    TextAnswer,
    parse_raw_answer,
)
from progressive_profiles.scoring.extractor import (
    _answer_points,
    extract_preferences,
    extract_scores,
    likert_points,
    points_to_score,
)
from progressive_profiles.scoring.questions import intended_coverage, parse_question_id, question_applies


PARENT = AssessmentVariant.PARENT_HOME


class TestRawAnswers:
    """Test classification of loosely typed answers."""

    @pytest.mark.parametrize("value,expected", [
        (4, NumericAnswer(4.0)),
        (2.5, NumericAnswer(2.5)),
        ("visual", TextAnswer("visual")),
        (["art", "music"], ChoiceListAnswer(("art", "music"))),
    ])
    def test_known_shapes(self, value, expected):
        assert parse_raw_answer(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, math.nan, math.inf, "  ", [], {"a": 1}])
    def test_unusable_values_are_missing(self, value):
        assert isinstance(parse_raw_answer(value), MissingAnswer)


class TestLikertMapping:
    """Test rating to evidence-point mapping."""

    @pytest.mark.parametrize("rating,points", [(5, 1.0), (4, 0.5), (3, 0.5), (2, 0.0), (1, 0.0)])
    def test_points(self, rating, points):
        assert likert_points(rating) == points

    def test_unknown_answer_variant_is_a_defect(self):
        with pytest.raises(ComputationError):
            _answer_points(object())

    def test_points_to_score_range(self):
        assert points_to_score([1.0, 1.0]) == 5.0
        assert points_to_score([0.0]) == 1.0
        assert points_to_score([1.0, 0.5]) == 4.0


class TestExtractScores:
    """Test extract_scores."""

    def test_groups_answers_by_dimension(self):
        scores = extract_scores({"1": 5, "2": 4, "4": 3}, PARENT, AgeBand.AGE_5_6)
        assert scores == {"Communication": 4.0, "Collaboration": 3.0}

    def test_integer_keys_accepted(self):
        assert extract_scores({1: 5}, PARENT, AgeBand.AGE_5_6) == {"Communication": 5.0}

    def test_unanswered_dimensions_are_absent(self):
        scores = extract_scores({"22": 1}, PARENT, AgeBand.AGE_5_6)
        assert scores == {"Math": 1.0}
        assert "Communication" not in scores

    def test_invalid_answers_skipped(self):
        responses = {"1": True, "2": math.nan, "3": 7, "4": "often", "5": None, "7": 5}
        assert extract_scores(responses, PARENT, AgeBand.AGE_5_6) == {"Content": 5.0}

    def test_unknown_and_malformed_ids_skipped(self):
        responses = {"999": 5, "abc": 5, "": 5, "1": 5}
        assert extract_scores(responses, PARENT, AgeBand.AGE_5_6) == {"Communication": 5.0}

    def test_preference_questions_not_scored(self):
        assert extract_scores({"25": 5, "26": "visual"}, PARENT, AgeBand.AGE_5_6) == {}

    def test_age_band_filters_questions(self):
        """Question 12 starts at 5-6 and 29 at 6-8."""
        responses = {"12": 5, "29": 5}
        assert extract_scores(responses, PARENT, AgeBand.AGE_3_4) == {}
        assert extract_scores(responses, PARENT, AgeBand.AGE_5_6) == {"Critical Thinking": 5.0}
        assert extract_scores(responses, PARENT, AgeBand.AGE_6_8) == {
            "Critical Thinking": 5.0,
            "Communication": 5.0,
        }

    def test_answers_not_filtered_by_variant(self):
        """Question 3 is not on the parent form but still counts as evidence."""
        assert extract_scores({"3": 5}, PARENT, AgeBand.AGE_5_6) == {"Communication": 5.0}

    @pytest.mark.parametrize("responses", [None, [], "1=5", 42, {}])
    def test_never_raises(self, responses):
        assert extract_scores(responses, PARENT, AgeBand.AGE_5_6) == {}

    def test_non_decimal_digit_keys_are_skipped(self):
        scores = extract_scores({"²": 5, "1": 5}, PARENT, AgeBand.AGE_5_6)
        assert scores == extract_scores({"1": 5}, PARENT, AgeBand.AGE_5_6)


class TestExtractPreferences:
    """Test extract_preferences."""

    def test_text_and_choices(self):
        responses = {"1": 5, "25": "hands-on", "26": ["visual", "kinesthetic"], "27": None}
        assert extract_preferences(responses) == {
            "Engagement": "hands-on",
            "Modality": ["visual", "kinesthetic"],
        }

    def test_non_mapping(self):
        assert extract_preferences(None) == {}


class TestQuestionBank:
    """Test question bank helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("7", 7), (" 12 ", 12), (3, 3), (True, None), ("x", None), (1.5, None), ("²", None), ("-3", None),
    ])
    def test_parse_question_id(self, raw, expected):
        assert parse_question_id(raw) == expected

    def test_question_applies(self):
        assert question_applies(1, AgeBand.AGE_3_4)
        assert not question_applies(31, AgeBand.AGE_6_8)
        assert question_applies(31, AgeBand.AGE_8_10)
        assert not question_applies(25, AgeBand.AGE_5_6)

    def test_intended_coverage_student(self):
        coverage = intended_coverage(AssessmentVariant.STUDENT_SELF, AgeBand.AGE_5_6)
        assert coverage == frozenset({"Communication", "Collaboration", "Content", "Creative Innovation",
                                      "Confidence", "Literacy", "Math"})

    def test_intended_coverage_general_covers_all(self):
        assert len(intended_coverage(AssessmentVariant.GENERAL, AgeBand.AGE_5_6)) == 8
