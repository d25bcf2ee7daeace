"""
Score dimensions, assessment context enums and the raw answer union.

Raw responses arrive as loosely typed JSON (numbers, strings, lists, nulls).
``parse_raw_answer`` turns each one into exactly one ``RawAnswer`` variant so
the extractor can dispatch on type instead of coercing values implicitly.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple, Union


class SkillDimension(str, Enum):
    """Scored skill dimensions (6Cs plus academic skills)."""
    COMMUNICATION = "Communication"
    COLLABORATION = "Collaboration"
    CONTENT = "Content"
    CRITICAL_THINKING = "Critical Thinking"
    CREATIVE_INNOVATION = "Creative Innovation"
    CONFIDENCE = "Confidence"
    LITERACY = "Literacy"
    MATH = "Math"


class PreferenceDimension(str, Enum):
    """Learning preferences that are recorded but never scored."""
    ENGAGEMENT = "Engagement"
    MODALITY = "Modality"
    SOCIAL = "Social"
    INTERESTS = "Interests"


class AgeBand(str, Enum):
    """Age bands used by the question bank."""
    AGE_3_4 = "3-4"
    AGE_4_5 = "4-5"
    AGE_5_6 = "5-6"
    AGE_6_8 = "6-8"
    AGE_8_10 = "8-10"
    AGE_10_PLUS = "10+"

    @classmethod
    def parse(cls, value: Any) -> "AgeBand":
        """Parse an age band, accepting the legacy ``5+``/``6+`` labels."""
        if isinstance(value, cls):
            return value
        aliases = {"5+": cls.AGE_5_6, "6+": cls.AGE_6_8}
        if value in aliases:
            return aliases[value]
        return cls(value)


class AssessmentVariant(str, Enum):
    """Kinds of assessment a respondent can submit."""
    PARENT_HOME = "parent_home"
    TEACHER_CLASSROOM = "teacher_classroom"
    STUDENT_SELF = "student_self"
    GENERAL = "general"


class RespondentRole(str, Enum):
    """Who filled in the assessment."""
    PARENT = "parent"
    TEACHER = "teacher"
    STUDENT = "student"
    GENERAL = "general"


ScoreVector = Dict[str, float]

SCORE_MIN = 1.0
SCORE_MAX = 5.0

ALL_DIMENSIONS: Tuple[str, ...] = tuple(d.value for d in SkillDimension)
ACADEMIC_DIMENSIONS: Tuple[str, ...] = (
    SkillDimension.COMMUNICATION.value,
    SkillDimension.CONTENT.value,
    SkillDimension.CRITICAL_THINKING.value,
)


@dataclass(frozen=True)
class NumericAnswer:
    value: float


@dataclass(frozen=True)
class TextAnswer:
    text: str


@dataclass(frozen=True)
class ChoiceListAnswer:
    choices: Tuple[str, ...]


@dataclass(frozen=True)
class MissingAnswer:
    """Absent, null or malformed answer."""
    reason: str = "missing"


RawAnswer = Union[NumericAnswer, TextAnswer, ChoiceListAnswer, MissingAnswer]


def parse_raw_answer(value: Any) -> RawAnswer:
    """Classify one raw response value. Never raises."""
    if value is None:
        return MissingAnswer()
    # bool is an int subclass; a checkbox is not a Likert rating
    if isinstance(value, bool):
        return MissingAnswer("boolean")
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return MissingAnswer("non-finite")
        return NumericAnswer(float(value))
    if isinstance(value, str):
        text = value.strip()
        return TextAnswer(text) if text else MissingAnswer("empty")
    if isinstance(value, (list, tuple)):
        choices = tuple(str(v).strip() for v in value if isinstance(v, str) and v.strip())
        return ChoiceListAnswer(choices) if choices else MissingAnswer("empty")
    return MissingAnswer(f"unsupported type {type(value).__name__}")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_percentage(value: float) -> float:
    return clamp(value, 0.0, 100.0)
