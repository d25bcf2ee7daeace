"""
Question bank: which skill dimension each question scores, which age bands it
applies to, and which questions each assessment variant asks.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, NamedTuple, Optional

from ..models.scores import AgeBand, AssessmentVariant, PreferenceDimension, SkillDimension


class Question(NamedTuple):
    dimension: SkillDimension
    age_bands: FrozenSet[AgeBand]


_ALL_AGES = frozenset(AgeBand)
_FROM_4 = frozenset({AgeBand.AGE_4_5, AgeBand.AGE_5_6, AgeBand.AGE_6_8, AgeBand.AGE_8_10, AgeBand.AGE_10_PLUS})
_FROM_5 = frozenset({AgeBand.AGE_5_6, AgeBand.AGE_6_8, AgeBand.AGE_8_10, AgeBand.AGE_10_PLUS})
_FROM_6 = frozenset({AgeBand.AGE_6_8, AgeBand.AGE_8_10, AgeBand.AGE_10_PLUS})
_FROM_8 = frozenset({AgeBand.AGE_8_10, AgeBand.AGE_10_PLUS})

_COMM = SkillDimension.COMMUNICATION
_COLLAB = SkillDimension.COLLABORATION
_CONTENT = SkillDimension.CONTENT
_CT = SkillDimension.CRITICAL_THINKING
_CI = SkillDimension.CREATIVE_INNOVATION
_CONF = SkillDimension.CONFIDENCE
_LIT = SkillDimension.LITERACY
_MATH = SkillDimension.MATH

QUESTION_BANK: Mapping[int, Question] = MappingProxyType({
    # Core questions, three per dimension
    1: Question(_COMM, _ALL_AGES),
    2: Question(_COMM, _ALL_AGES),
    3: Question(_COMM, _ALL_AGES),
    4: Question(_COLLAB, _ALL_AGES),
    5: Question(_COLLAB, _ALL_AGES),
    6: Question(_COLLAB, _FROM_4),
    7: Question(_CONTENT, _ALL_AGES),
    8: Question(_CONTENT, _ALL_AGES),
    9: Question(_CONTENT, _FROM_4),
    10: Question(_CT, _FROM_4),
    11: Question(_CT, _ALL_AGES),
    12: Question(_CT, _FROM_5),
    13: Question(_CI, _ALL_AGES),
    14: Question(_CI, _ALL_AGES),
    15: Question(_CI, _FROM_4),
    16: Question(_CONF, _ALL_AGES),
    17: Question(_CONF, _FROM_4),
    18: Question(_CONF, _ALL_AGES),
    19: Question(_LIT, _ALL_AGES),
    20: Question(_LIT, _ALL_AGES),
    21: Question(_LIT, _FROM_4),
    22: Question(_MATH, _ALL_AGES),
    23: Question(_MATH, _ALL_AGES),
    24: Question(_MATH, _FROM_4),
    # Extended questions for older children
    29: Question(_COMM, _FROM_6),
    30: Question(_COMM, _FROM_6),
    31: Question(_COMM, _FROM_8),
    32: Question(_COLLAB, _FROM_6),
    33: Question(_COLLAB, _FROM_8),
    34: Question(_COLLAB, _FROM_8),
    35: Question(_CONTENT, _FROM_6),
    36: Question(_CONTENT, _FROM_6),
    37: Question(_CONTENT, _FROM_8),
    38: Question(_CT, _FROM_6),
    39: Question(_CT, _FROM_8),
    40: Question(_CT, _FROM_8),
    41: Question(_CI, _FROM_6),
    42: Question(_CI, _FROM_8),
    43: Question(_CI, _FROM_8),
    44: Question(_CONF, _FROM_6),
    45: Question(_CONF, _FROM_6),
    46: Question(_CONF, _FROM_8),
    47: Question(_LIT, _FROM_6),
    48: Question(_LIT, _FROM_6),
    49: Question(_LIT, _FROM_8),
    50: Question(_MATH, _FROM_6),
    51: Question(_MATH, _FROM_8),
    52: Question(_MATH, _FROM_8),
})

EXTENDED_QUESTION_IDS: FrozenSet[int] = frozenset(qid for qid in QUESTION_BANK if qid >= 29)

PREFERENCE_QUESTIONS: Mapping[int, PreferenceDimension] = MappingProxyType({
    25: PreferenceDimension.ENGAGEMENT,
    26: PreferenceDimension.MODALITY,
    27: PreferenceDimension.SOCIAL,
    28: PreferenceDimension.INTERESTS,
})

# Core questions each variant asks; extended questions are open to every variant.
# Only used to report intended coverage, answers are never filtered by variant.
VARIANT_QUESTIONS: Mapping[AssessmentVariant, FrozenSet[int]] = MappingProxyType({
    AssessmentVariant.PARENT_HOME: frozenset({1, 2, 4, 7, 11, 13, 14, 16, 17, 19, 20, 21, 22, 23, 24}),
    AssessmentVariant.TEACHER_CLASSROOM: frozenset({1, 3, 4, 5, 8, 9, 10, 12, 19, 21, 22, 24}),
    AssessmentVariant.STUDENT_SELF: frozenset({1, 5, 9, 13, 17, 21, 22}),
    AssessmentVariant.GENERAL: frozenset(qid for qid in QUESTION_BANK if qid < 25),
})


def parse_question_id(raw_id) -> Optional[int]:
    """Parse a response key into a question id; None when it is not an integer id."""
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, int):
        return raw_id
    if isinstance(raw_id, str) and raw_id.strip().isdecimal():
        return int(raw_id.strip())
    return None


def question_applies(question_id: int, age_band: AgeBand) -> bool:
    """True when the question scores a dimension for this age band."""
    question = QUESTION_BANK.get(question_id)
    return question is not None and age_band in question.age_bands


def intended_coverage(variant: AssessmentVariant, age_band: AgeBand) -> FrozenSet[str]:
    """Dimensions a fully answered assessment of this variant would cover."""
    return frozenset(
        QUESTION_BANK[qid].dimension.value
        for qid in VARIANT_QUESTIONS[variant] | EXTENDED_QUESTION_IDS
        if question_applies(qid, age_band)
    )
