"""
Risk assessment: four independent detectors over a consolidated profile.

Each detector returns one RiskFactor or None. Missing inputs (no classroom
observations, an unscored dimension, no cohort averages) mean "no signal" for
that detector, never an error.
"""

import logging
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from ..models.analytics import (
    InterventionTimeline,
    LearningStyle,
    ProfileInsights,
    RiskFactor,
    RiskType,
    Severity,
)
from ..models.profile import ConsolidatedProfile
from ..models.scores import ACADEMIC_DIMENSIONS, SkillDimension
from .classification import classify_learning_style, seating_preferences_for


logger = logging.getLogger(__name__)

COMPATIBILITY_THRESHOLD = 7.0
ENGAGEMENT_THRESHOLD = 2.5
PARTICIPATION_THRESHOLD = 2.5
PEER_INTERACTION_THRESHOLD = 2.5
COLLABORATION_THRESHOLD = 2.0
ACADEMIC_GAP_THRESHOLD = 0.5
DECLINE_WINDOW = 3

STYLE_INTERVENTIONS: Mapping[LearningStyle, Tuple[str, ...]] = MappingProxyType({
    LearningStyle.CREATIVE: (
        "Provide open-ended projects and creative choices",
        "Use arts integration and visual representations",
        "Allow for multiple solution pathways",
        "Incorporate storytelling and imagination",
        "Offer flexible deadlines when possible",
    ),
    LearningStyle.ANALYTICAL: (
        "Provide clear, step-by-step instructions",
        "Use graphic organizers and structured frameworks",
        "Explain the reasoning behind procedures",
        "Offer additional processing time",
        "Use data and concrete examples",
    ),
    LearningStyle.COLLABORATIVE: (
        "Incorporate regular group work and discussions",
        "Use think-pair-share strategies",
        "Provide peer learning opportunities",
        "Allow for collaborative problem-solving",
        "Create structured social interactions",
    ),
    LearningStyle.CONFIDENT: (
        "Provide leadership and mentoring opportunities",
        "Offer challenging extension activities",
        "Use student as peer helper or tutor",
        "Encourage goal-setting and self-advocacy",
        "Provide presentation and sharing opportunities",
    ),
})

_ESCALATION = {Severity.LOW: Severity.MEDIUM, Severity.MEDIUM: Severity.HIGH, Severity.HIGH: Severity.HIGH}


def _short_term_unless_high(severity: Severity) -> InterventionTimeline:
    return InterventionTimeline.IMMEDIATE if severity is Severity.HIGH else InterventionTimeline.SHORT_TERM


def _fmt(value: float) -> str:
    return f"{value:g}"


def detect_learning_style_mismatch(
    profile: ConsolidatedProfile,
    style: Optional[LearningStyle],
) -> Optional[RiskFactor]:
    compatibility = profile.observations.teaching_compatibility
    if compatibility is None or compatibility >= COMPATIBILITY_THRESHOLD:
        return None

    if compatibility < 4:
        severity = Severity.HIGH
    elif compatibility < 6:
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW

    style_name = style.value if style else "Current"
    return RiskFactor(
        id=f"learning-mismatch-{profile.id}",
        type=RiskType.LEARNING_STYLE_MISMATCH,
        severity=severity,
        description=f"{style_name.capitalize()} learning style may not align well with current teaching approach",
        indicators=[
            f"Teaching compatibility: {_fmt(compatibility)}/10",
            "Lower engagement during certain activity types",
            "Struggles with default instructional methods",
        ],
        interventions=list(STYLE_INTERVENTIONS.get(style, ())) if style else [],
        timeline=_short_term_unless_high(severity),
    )


def detect_low_engagement(profile: ConsolidatedProfile) -> Optional[RiskFactor]:
    engagement = profile.observations.engagement_level
    participation = profile.observations.participation_frequency
    if engagement is None or participation is None:
        return None
    if engagement > ENGAGEMENT_THRESHOLD or participation > PARTICIPATION_THRESHOLD:
        return None

    severity = Severity.HIGH if engagement <= 2 or participation <= 2 else Severity.MEDIUM
    return RiskFactor(
        id=f"engagement-{profile.id}",
        type=RiskType.LOW_ENGAGEMENT,
        severity=severity,
        description="Student showing signs of disengagement from classroom activities",
        indicators=[
            f"Engagement level: {_fmt(engagement)}/5",
            f"Participation frequency: {_fmt(participation)}/5",
            "Limited voluntary participation",
        ],
        interventions=[
            "Incorporate student interests into lessons",
            "Provide choice in learning activities",
            "Use interactive and hands-on approaches",
            "Set achievable short-term goals",
            "Offer frequent positive reinforcement",
        ],
        timeline=_short_term_unless_high(severity),
    )


def detect_social_isolation(
    profile: ConsolidatedProfile,
    style: Optional[LearningStyle],
) -> Optional[RiskFactor]:
    """
    Low peer interaction together with a low Collaboration score.

    Never fires for analytical learners: lower collaboration is typical of that
    style rather than a warning sign.
    """
    if style is LearningStyle.ANALYTICAL:
        return None

    peer = profile.observations.peer_interaction_quality
    collaboration = profile.consolidated_scores.get(SkillDimension.COLLABORATION.value)
    if peer is None or collaboration is None:
        return None
    if peer > PEER_INTERACTION_THRESHOLD or collaboration > COLLABORATION_THRESHOLD:
        return None

    severity = Severity.HIGH if peer <= 2 or collaboration <= 1 else Severity.MEDIUM
    return RiskFactor(
        id=f"social-isolation-{profile.id}",
        type=RiskType.SOCIAL_ISOLATION,
        severity=severity,
        description="Student may be experiencing social isolation or difficulty connecting with peers",
        indicators=[
            f"Peer interaction quality: {_fmt(peer)}/5",
            f"Collaboration score: {_fmt(collaboration)}/5",
            "Reluctance to participate in group activities",
        ],
        interventions=[
            "Facilitate structured peer interactions",
            "Assign compatible group partners",
            "Use peer buddy systems",
            "Teach social skills explicitly",
            "Create opportunities for shared interests",
        ],
        timeline=InterventionTimeline.ONGOING,
    )


def is_declining(history: List[float]) -> bool:
    """True when the last three samples strictly decrease."""
    if len(history) < DECLINE_WINDOW:
        return False
    recent = history[-DECLINE_WINDOW:]
    return all(earlier > later for earlier, later in zip(recent, recent[1:]))


def detect_academic_struggle(
    profile: ConsolidatedProfile,
    cohort_averages: Optional[Mapping[str, float]],
) -> Optional[RiskFactor]:
    if not cohort_averages:
        return None

    dimensions = [
        d for d in ACADEMIC_DIMENSIONS
        if d in profile.consolidated_scores and d in cohort_averages
    ]
    if not dimensions:
        return None

    subject_mean = sum(profile.consolidated_scores[d] for d in dimensions) / len(dimensions)
    cohort_mean = sum(cohort_averages[d] for d in dimensions) / len(dimensions)
    gap = cohort_mean - subject_mean
    if gap < ACADEMIC_GAP_THRESHOLD:
        return None

    if gap > 1.5:
        severity = Severity.HIGH
    elif gap > 1.0:
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW

    declining = is_declining(profile.academic_history())
    if declining:
        severity = _ESCALATION[severity]

    return RiskFactor(
        id=f"academic-struggle-{profile.id}",
        type=RiskType.ACADEMIC_STRUGGLE,
        severity=severity,
        description="Student may be struggling to keep up with academic expectations",
        indicators=[
            "Overall academic performance below classroom average",
            f"Performance gap: {gap:.1f} points",
            "Declining progress trend observed" if declining else "Consistent performance concerns",
        ],
        interventions=[
            "Provide additional scaffolding for complex concepts",
            "Break down assignments into smaller steps",
            "Use multi-sensory learning approaches",
            "Offer additional practice opportunities",
            "Consider peer tutoring or mentoring",
        ],
        timeline=_short_term_unless_high(severity),
    )


def assess_risks(
    profile: ConsolidatedProfile,
    cohort_averages: Optional[Mapping[str, float]] = None,
    style: Optional[LearningStyle] = None,
) -> List[RiskFactor]:
    """
    Run every detector and return the risks found, most severe first.

    Args:
        profile: Consolidated profile to scan
        cohort_averages: Dimension -> cohort mean, used by the academic detector
        style: Learning style; classified from the profile when omitted
    """
    if style is None:
        style = classify_learning_style(profile)

    found = (
        detect_learning_style_mismatch(profile, style),
        detect_low_engagement(profile),
        detect_social_isolation(profile, style),
        detect_academic_struggle(profile, cohort_averages),
    )
    risks = [risk for risk in found if risk is not None]
    risks.sort(key=lambda risk: risk.severity.rank, reverse=True)

    if risks:
        logger.debug(f"Profile {profile.id}: {len(risks)} risk factor(s), highest {risks[0].severity.value}")
    return risks


def overall_risk_level(risks: List[RiskFactor]) -> Optional[Severity]:
    """Highest severity among the risk factors, None when there are none."""
    if not risks:
        return None
    return max((risk.severity for risk in risks), key=lambda severity: severity.rank)


def profile_insights(
    profile: ConsolidatedProfile,
    cohort_averages: Optional[Mapping[str, float]] = None,
) -> ProfileInsights:
    """Per-profile analytics view consumed by the cohort and compatibility engines."""
    style = classify_learning_style(profile)
    return ProfileInsights(
        profile_id=profile.id,
        subject_name=profile.subject_name,
        learning_style=style,
        consolidated_scores=dict(profile.consolidated_scores),
        engagement_level=profile.observations.engagement_level,
        participation_frequency=profile.observations.participation_frequency,
        risk_factors=assess_risks(profile, cohort_averages, style),
        seating_preferences=seating_preferences_for(style),
    )
