"""
Profile classification: personality labels, strengths/growth areas, learning
style, seating preferences and next-assessment recommendations.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from ..models.analytics import LearningStyle, SeatingPreferences
from ..models.profile import ConsolidatedProfile
from ..models.scores import ALL_DIMENSIONS, RespondentRole, SkillDimension


FALLBACK_LABEL = "Unique Learner"
STRENGTH_THRESHOLD = 4.0
GROWTH_THRESHOLD = 3.0


def _pair(a: SkillDimension, b: SkillDimension) -> FrozenSet[str]:
    return frozenset({a.value, b.value})


_D = SkillDimension

# Keyed by unordered pair of the two strongest dimensions
PERSONALITY_LABELS: Mapping[FrozenSet[str], str] = MappingProxyType({
    _pair(_D.COMMUNICATION, _D.COLLABORATION): "Social Communicator",
    _pair(_D.COMMUNICATION, _D.CREATIVE_INNOVATION): "Creative Storyteller",
    _pair(_D.COMMUNICATION, _D.CONFIDENCE): "Confident Leader",
    _pair(_D.COMMUNICATION, _D.CONTENT): "Knowledge Communicator",
    _pair(_D.COMMUNICATION, _D.CRITICAL_THINKING): "Thoughtful Communicator",
    _pair(_D.COMMUNICATION, _D.LITERACY): "Language Leader",
    _pair(_D.COMMUNICATION, _D.MATH): "Mathematical Communicator",
    _pair(_D.COLLABORATION, _D.CREATIVE_INNOVATION): "Creative Collaborator",
    _pair(_D.COLLABORATION, _D.CONFIDENCE): "Natural Leader",
    _pair(_D.COLLABORATION, _D.CONTENT): "Team Scholar",
    _pair(_D.COLLABORATION, _D.CRITICAL_THINKING): "Strategic Partner",
    _pair(_D.COLLABORATION, _D.LITERACY): "Reading Partner",
    _pair(_D.COLLABORATION, _D.MATH): "Math Team Player",
    _pair(_D.CREATIVE_INNOVATION, _D.CRITICAL_THINKING): "Creative Problem Solver",
    _pair(_D.CREATIVE_INNOVATION, _D.CONFIDENCE): "Fearless Creator",
    _pair(_D.CREATIVE_INNOVATION, _D.CONTENT): "Innovative Learner",
    _pair(_D.CREATIVE_INNOVATION, _D.LITERACY): "Creative Writer",
    _pair(_D.CREATIVE_INNOVATION, _D.MATH): "Mathematical Innovator",
    _pair(_D.CRITICAL_THINKING, _D.CONTENT): "Analytical Scholar",
    _pair(_D.CRITICAL_THINKING, _D.CONFIDENCE): "Bold Analyst",
    _pair(_D.CRITICAL_THINKING, _D.LITERACY): "Critical Reader",
    _pair(_D.CRITICAL_THINKING, _D.MATH): "Mathematical Thinker",
    _pair(_D.CONFIDENCE, _D.CONTENT): "Confident Scholar",
    _pair(_D.CONFIDENCE, _D.LITERACY): "Reading Champion",
    _pair(_D.CONFIDENCE, _D.MATH): "Math Confident",
    _pair(_D.LITERACY, _D.MATH): "Academic All-Star",
    _pair(_D.CONTENT, _D.LITERACY): "Knowledge Reader",
    _pair(_D.CONTENT, _D.MATH): "Mathematical Scholar",
})

PRIMARY_DIMENSION_STYLES: Mapping[SkillDimension, LearningStyle] = MappingProxyType({
    _D.CREATIVE_INNOVATION: LearningStyle.CREATIVE,
    _D.CRITICAL_THINKING: LearningStyle.ANALYTICAL,
    _D.CONTENT: LearningStyle.ANALYTICAL,
    _D.LITERACY: LearningStyle.ANALYTICAL,
    _D.MATH: LearningStyle.ANALYTICAL,
    _D.COLLABORATION: LearningStyle.COLLABORATIVE,
    _D.COMMUNICATION: LearningStyle.COLLABORATIVE,
    _D.CONFIDENCE: LearningStyle.CONFIDENT,
})

SEATING_BY_STYLE: Mapping[LearningStyle, SeatingPreferences] = MappingProxyType({
    LearningStyle.CREATIVE: SeatingPreferences(
        preferred_group_size=4,
        collaboration_comfort="medium",
        focus_requirement="stimulating",
        energy_level="high",
        interaction_role="collaborator",
        proximity_need="near_peers",
    ),
    LearningStyle.ANALYTICAL: SeatingPreferences(
        preferred_group_size=2,
        collaboration_comfort="low",
        focus_requirement="quiet",
        energy_level="low",
        interaction_role="independent",
        proximity_need="close_to_teacher",
    ),
    LearningStyle.COLLABORATIVE: SeatingPreferences(
        preferred_group_size=4,
        collaboration_comfort="high",
        focus_requirement="moderate",
        energy_level="medium",
        interaction_role="collaborator",
        proximity_need="near_peers",
    ),
    LearningStyle.CONFIDENT: SeatingPreferences(
        preferred_group_size=4,
        collaboration_comfort="high",
        focus_requirement="moderate",
        energy_level="high",
        interaction_role="leader",
        proximity_need="flexible",
    ),
})


def _ranked(scores: Mapping[str, float]) -> List[Tuple[str, float]]:
    """Known dimensions, strongest first; ties keep the canonical dimension order."""
    known = [(d, scores[d]) for d in ALL_DIMENSIONS if isinstance(scores.get(d), (int, float))]
    return sorted(known, key=lambda item: -item[1])


def personality_label(scores: Mapping[str, float]) -> str:
    """Label from the two strongest dimensions."""
    ranked = _ranked(scores)
    if len(ranked) < 2:
        return FALLBACK_LABEL
    return PERSONALITY_LABELS.get(frozenset({ranked[0][0], ranked[1][0]}), FALLBACK_LABEL)


def strengths_and_growth(scores: Mapping[str, float]) -> Dict[str, List[str]]:
    """
    Split dimensions into strengths (>= 4.0) and growth areas (< 3.0).

    When nothing reaches the strength threshold the two strongest and two
    weakest dimensions are reported instead.
    """
    ranked = _ranked(scores)
    strengths = [d for d, v in ranked if v >= STRENGTH_THRESHOLD]
    growth = [d for d, v in ranked if v < GROWTH_THRESHOLD]
    if not strengths:
        return {
            "strengths": [d for d, _ in ranked[:2]],
            "growth_areas": [d for d, _ in ranked[-2:]],
        }
    return {"strengths": strengths, "growth_areas": growth}


def classify_learning_style(profile: ConsolidatedProfile) -> Optional[LearningStyle]:
    """
    Learning style from the personality label keyword, else from the primary dimension.

    Returns None for a profile without any scores.
    """
    label = (profile.personality_label or "").lower()
    for style in LearningStyle:
        if style.value in label:
            return style

    ranked = _ranked(profile.consolidated_scores)
    if not ranked:
        return None
    return PRIMARY_DIMENSION_STYLES[SkillDimension(ranked[0][0])]


def seating_preferences_for(style: Optional[LearningStyle]) -> SeatingPreferences:
    if style is None:
        return SeatingPreferences()
    return SEATING_BY_STYLE.get(style, SeatingPreferences())


def next_assessment_recommendations(profile: ConsolidatedProfile) -> List[str]:
    """Suggest which assessments would strengthen the profile next."""
    recommendations = []
    if profile.count_for(RespondentRole.PARENT) == 0:
        recommendations.append("Consider adding a parent assessment for home behavior insights")
    if profile.count_for(RespondentRole.TEACHER) == 0:
        recommendations.append("Consider adding a teacher assessment for classroom behavior insights")
    if profile.total_assessments == 1:
        recommendations.append("Additional assessments will increase profile confidence and accuracy")
    if profile.completeness_percentage < 80:
        recommendations.append("Complete assessment or add context-specific assessments for fuller profile")
    return recommendations
