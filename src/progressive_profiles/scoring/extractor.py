"""
Score extraction: raw response map -> score vector.

Every response is classified into a RawAnswer variant first; only Likert
ratings (1-5) to questions that apply to the subject's age band are scored.
Anything else is skipped and logged at debug level. Dimensions without a valid
answer are left out of the vector rather than defaulted, so "not observed" stays
distinguishable from "scored low".
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Union

from ..errors import ComputationError
from ..models.scores import (
    SCORE_MAX,
    SCORE_MIN,
    AgeBand,
    AssessmentVariant,
    ChoiceListAnswer,
    MissingAnswer,
    NumericAnswer,
    RawAnswer,
    ScoreVector,
    TextAnswer,
    parse_raw_answer,
)
from .questions import PREFERENCE_QUESTIONS, QUESTION_BANK, parse_question_id, question_applies


logger = logging.getLogger(__name__)

LIKERT_MIN = 1.0
LIKERT_MAX = 5.0


def likert_points(rating: float) -> float:
    """Map a 1-5 rating onto 0 / 0.5 / 1.0 evidence points."""
    if rating >= 5:
        return 1.0
    if rating >= 3:
        return 0.5
    return 0.0


def points_to_score(points: List[float]) -> float:
    """Average evidence points scaled onto the 1-5 score range."""
    average = sum(points) / len(points)
    return round(SCORE_MIN + average * (SCORE_MAX - SCORE_MIN), 2)


def _answer_points(answer: RawAnswer) -> Union[float, None]:
    if isinstance(answer, NumericAnswer):
        if LIKERT_MIN <= answer.value <= LIKERT_MAX:
            return likert_points(answer.value)
        return None
    if isinstance(answer, (TextAnswer, ChoiceListAnswer, MissingAnswer)):
        return None
    # New RawAnswer variants must be handled explicitly above
    raise ComputationError(f"Unhandled answer variant: {type(answer).__name__}")


def extract_scores(
    responses: Mapping[Any, Any],
    variant: AssessmentVariant,
    age_band: AgeBand,
) -> ScoreVector:
    """
    Turn a raw response map into a score vector.

    Args:
        responses: Question id -> raw answer (any JSON shape)
        variant: Assessment variant the responses belong to
        age_band: Subject's age band

    Returns:
        Dimension name -> score (1.0-5.0) for dimensions with at least one valid answer
    """
    if not isinstance(responses, Mapping):
        return {}

    points_by_dimension: Dict[str, List[float]] = defaultdict(list)
    skipped = 0

    for raw_id, raw_value in responses.items():
        question_id = parse_question_id(raw_id)
        if question_id is None or question_id in PREFERENCE_QUESTIONS:
            continue
        if not question_applies(question_id, age_band):
            skipped += 1
            continue

        points = _answer_points(parse_raw_answer(raw_value))
        if points is None:
            skipped += 1
            continue
        points_by_dimension[QUESTION_BANK[question_id].dimension.value].append(points)

    if skipped:
        logger.debug(f"Skipped {skipped} unscorable response(s) for {variant.value}/{age_band.value}")

    return {dimension: points_to_score(points) for dimension, points in points_by_dimension.items()}


def extract_preferences(responses: Mapping[Any, Any]) -> Dict[str, Union[str, List[str]]]:
    """Collect text / choice-list answers to the preference questions."""
    if not isinstance(responses, Mapping):
        return {}

    preferences: Dict[str, Union[str, List[str]]] = {}
    for raw_id, raw_value in responses.items():
        question_id = parse_question_id(raw_id)
        if question_id not in PREFERENCE_QUESTIONS:
            continue
        answer = parse_raw_answer(raw_value)
        key = PREFERENCE_QUESTIONS[question_id].value
        if isinstance(answer, TextAnswer):
            preferences[key] = answer.text
        elif isinstance(answer, ChoiceListAnswer):
            preferences[key] = list(answer.choices)
    return preferences
