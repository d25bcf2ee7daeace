"""
Classroom-level analytics over many consolidated profiles.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..models.analytics import (
    CohortSummary,
    EngagementAnalysis,
    LearningStyle,
    ProfileInsights,
    RiskDistribution,
    Severity,
    StyleDistribution,
    StyleShare,
)
from ..models.profile import ConsolidatedProfile
from ..models.scores import ALL_DIMENSIONS
from .risk import overall_risk_level, profile_insights


logger = logging.getLogger(__name__)

# Neutral midpoint of the score scale, used when no cohort is given
DEFAULT_COHORT_AVERAGE = 3.0

DOMINANT_SHARE = 40.0
UNDERREPRESENTED_SHARE = 15.0
ENGAGEMENT_FOCUS_CUTOFF = 3.5
LOW_ENGAGEMENT_CUTOFF = 3.0
RISK_PERCENTAGE_CUTOFF = 20.0


def _mean(values: Sequence[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def dimension_averages(profiles: Iterable[ConsolidatedProfile]) -> Dict[str, float]:
    """Mean consolidated score per dimension over the profiles that cover it."""
    values: Dict[str, List[float]] = defaultdict(list)
    for profile in profiles:
        for dimension, score in profile.consolidated_scores.items():
            values[dimension].append(score)
    return {d: round(sum(values[d]) / len(values[d]), 2) for d in ALL_DIMENSIONS if values.get(d)}


def neutral_averages() -> Dict[str, float]:
    return {d: DEFAULT_COHORT_AVERAGE for d in ALL_DIMENSIONS}


def analyze_learning_styles(insights: Sequence[ProfileInsights]) -> StyleDistribution:
    total = len(insights)
    if total == 0:
        return StyleDistribution()

    counts = Counter(i.learning_style for i in insights if i.learning_style is not None)
    shares = [
        StyleShare(style=style, count=counts[style], percentage=round(counts[style] / total * 100, 1))
        for style in LearningStyle
        if counts[style]
    ]

    dominant_candidates = [s for s in shares if s.percentage > DOMINANT_SHARE]
    dominant = max(dominant_candidates, key=lambda s: s.percentage).style if dominant_candidates else None

    recommendations = []
    for share in shares:
        if share.percentage > DOMINANT_SHARE:
            recommendations.append(
                f"High {share.style.value} population - ensure activities cater to this majority "
                f"while supporting other styles"
            )
        elif share.percentage < UNDERREPRESENTED_SHARE:
            recommendations.append(
                f"Small {share.style.value} group - ensure these students receive targeted support"
            )

    return StyleDistribution(
        distribution=shares,
        unclassified_count=total - sum(counts.values()),
        dominant_style=dominant,
        underrepresented_styles=[s.style for s in shares if s.percentage < UNDERREPRESENTED_SHARE],
        recommendations=recommendations,
    )


def analyze_engagement(insights: Sequence[ProfileInsights]) -> EngagementAnalysis:
    engagement = [i.engagement_level for i in insights if i.engagement_level is not None]
    participation = [i.participation_frequency for i in insights if i.participation_frequency is not None]

    by_style: Dict[str, List[float]] = defaultdict(list)
    for insight in insights:
        if insight.learning_style is not None and insight.engagement_level is not None:
            by_style[insight.learning_style.value].append(insight.engagement_level)
    style_averages = {style: round(sum(v) / len(v), 2) for style, v in by_style.items()}

    overall = _mean(engagement)
    recommendations = []
    if overall is not None and overall < LOW_ENGAGEMENT_CUTOFF:
        recommendations.append("Overall engagement is low - consider more interactive and varied teaching methods")
    for style, average in style_averages.items():
        if average < LOW_ENGAGEMENT_CUTOFF:
            recommendations.append(
                f"{style.capitalize()} learners showing low engagement - "
                f"incorporate more {style}-friendly activities"
            )

    return EngagementAnalysis(
        observed_count=len(engagement),
        overall_engagement=round(overall, 2) if overall is not None else None,
        overall_participation=round(_mean(participation), 2) if participation else None,
        low_engagement_count=sum(1 for e in engagement if e <= 2),
        high_engagement_count=sum(1 for e in engagement if e >= 4),
        engagement_by_style=style_averages,
        recommendations=recommendations,
    )


def analyze_risk(insights: Sequence[ProfileInsights]) -> RiskDistribution:
    total = len(insights)
    if total == 0:
        return RiskDistribution()

    distribution = RiskDistribution()
    risk_types: Counter = Counter()
    for insight in insights:
        level = overall_risk_level(insight.risk_factors)
        if level is Severity.HIGH:
            distribution.high += 1
        elif level is Severity.MEDIUM:
            distribution.medium += 1
        else:
            distribution.low += 1
        risk_types.update(rf.type.value for rf in insight.risk_factors)

    distribution.risk_types = dict(risk_types)
    distribution.total_at_risk = distribution.high + distribution.medium
    distribution.risk_percentage = round(distribution.total_at_risk / total * 100, 1)
    return distribution


def teaching_recommendations(
    styles: StyleDistribution,
    engagement: EngagementAnalysis,
    risk: RiskDistribution,
) -> List[str]:
    recommendations = []

    if styles.dominant_style is not None:
        share = next(s for s in styles.distribution if s.style is styles.dominant_style)
        recommendations.append(
            f"Consider incorporating more {share.style.value} learning activities "
            f"({share.percentage:g}% of class)"
        )

    if engagement.overall_engagement is not None and engagement.overall_engagement < ENGAGEMENT_FOCUS_CUTOFF:
        recommendations.append("Focus on increasing overall classroom engagement through varied instructional methods")

    if risk.risk_percentage > RISK_PERCENTAGE_CUTOFF:
        recommendations.append("Consider implementing classroom-wide support strategies due to higher risk percentage")

    for style, average in engagement.engagement_by_style.items():
        if average < LOW_ENGAGEMENT_CUTOFF:
            recommendations.append(f"Increase {style} learning opportunities to boost engagement for this group")

    return recommendations


def summarize(
    insights: Sequence[ProfileInsights],
    averages: Optional[Mapping[str, float]] = None,
) -> CohortSummary:
    """Cohort summary from already-built per-profile insights."""
    if not insights:
        return CohortSummary()

    styles = analyze_learning_styles(insights)
    engagement = analyze_engagement(insights)
    risk = analyze_risk(insights)
    return CohortSummary(
        profile_count=len(insights),
        dimension_averages=dict(averages or {}),
        learning_styles=styles,
        engagement=engagement,
        risk=risk,
        recommendations=teaching_recommendations(styles, engagement, risk),
    )


def analyze_cohort(profiles: Sequence[ConsolidatedProfile]) -> CohortSummary:
    """
    Classroom summary over a list of profiles.

    Risk factors are computed against the cohort's own dimension averages.
    An empty cohort yields an empty summary.
    """
    if not profiles:
        return CohortSummary()

    averages = dimension_averages(profiles)
    insights = [profile_insights(profile, averages) for profile in profiles]
    summary = summarize(insights, averages)
    logger.info(f"Analyzed cohort of {summary.profile_count}: {summary.risk.total_at_risk} at risk")
    return summary
