"""
Pairwise compatibility for grouping and seating.

Score starts from a neutral 5 and is adjusted by learning styles, skill
complementarity, risk factors and energy levels, then clamped to [0, 10].
"""

from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

from ..models.analytics import LearningStyle, ProfileInsights, RiskType, Severity
from ..models.scores import ALL_DIMENSIONS, clamp


BASE_SCORE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0
COMPLEMENTARITY_CAP = 2.0

_S = LearningStyle

# Full table over ordered style pairs
STYLE_COMPATIBILITY: Mapping[Tuple[LearningStyle, LearningStyle], float] = MappingProxyType({
    (_S.CREATIVE, _S.CREATIVE): 1,
    (_S.CREATIVE, _S.ANALYTICAL): -1,
    (_S.CREATIVE, _S.COLLABORATIVE): 2,
    (_S.CREATIVE, _S.CONFIDENT): 1,
    (_S.ANALYTICAL, _S.CREATIVE): -1,
    (_S.ANALYTICAL, _S.ANALYTICAL): 1,
    (_S.ANALYTICAL, _S.COLLABORATIVE): 0,
    (_S.ANALYTICAL, _S.CONFIDENT): 0,
    (_S.COLLABORATIVE, _S.CREATIVE): 2,
    (_S.COLLABORATIVE, _S.ANALYTICAL): 0,
    (_S.COLLABORATIVE, _S.COLLABORATIVE): 2,
    (_S.COLLABORATIVE, _S.CONFIDENT): 1,
    (_S.CONFIDENT, _S.CREATIVE): 1,
    (_S.CONFIDENT, _S.ANALYTICAL): 0,
    (_S.CONFIDENT, _S.COLLABORATIVE): 1,
    (_S.CONFIDENT, _S.CONFIDENT): 0,
})


def style_adjustment(a: Optional[LearningStyle], b: Optional[LearningStyle]) -> float:
    if a is None or b is None:
        return 0.0
    return float(STYLE_COMPATIBILITY[(a, b)])


def complementarity(scores_a: Mapping[str, float], scores_b: Mapping[str, float]) -> float:
    """
    +1 per shared dimension where one is much stronger (|diff| >= 2), +0.5 where
    both are strong (>= 4) and close; capped at 2.
    """
    total = 0.0
    for dimension in ALL_DIMENSIONS:
        if dimension not in scores_a or dimension not in scores_b:
            continue
        a, b = scores_a[dimension], scores_b[dimension]
        diff = abs(a - b)
        if diff >= 2:
            total += 1.0
        elif diff <= 1 and a >= 4 and b >= 4:
            total += 0.5
    return min(COMPLEMENTARITY_CAP, total)


def risk_adjustment(a: ProfileInsights, b: ProfileInsights) -> float:
    high_a = any(rf.severity is Severity.HIGH for rf in a.risk_factors)
    high_b = any(rf.severity is Severity.HIGH for rf in b.risk_factors)
    if high_a and high_b:
        return -3.0

    isolated_a = any(rf.type is RiskType.SOCIAL_ISOLATION for rf in a.risk_factors)
    isolated_b = any(rf.type is RiskType.SOCIAL_ISOLATION for rf in b.risk_factors)
    if isolated_a != isolated_b:
        return 2.0
    return 0.0


def energy_adjustment(a: ProfileInsights, b: ProfileInsights) -> float:
    energy_a = a.seating_preferences.energy_level or "medium"
    energy_b = b.seating_preferences.energy_level or "medium"
    if energy_a == energy_b:
        return 1.0
    if {energy_a, energy_b} == {"high", "low"}:
        return -2.0
    return 0.0


def compatibility(a: ProfileInsights, b: ProfileInsights) -> float:
    """Compatibility of two profiles on a 0-10 scale."""
    score = (
        BASE_SCORE
        + style_adjustment(a.learning_style, b.learning_style)
        + complementarity(a.consolidated_scores, b.consolidated_scores)
        + risk_adjustment(a, b)
        + energy_adjustment(a, b)
    )
    return clamp(score, MIN_SCORE, MAX_SCORE)


def compatibility_matrix(insights: Sequence[ProfileInsights]) -> List[List[float]]:
    """Pairwise scores; the diagonal is 0."""
    return [
        [0.0 if i == j else compatibility(a, b) for j, b in enumerate(insights)]
        for i, a in enumerate(insights)
    ]
