"""
Trend extrapolation over a dimension's history.

Fits an ordinary least-squares line through the normalized values (value /
max_value) of the latest samples against their index, then extrapolates
``horizon`` steps past the last sample.

Confidence blends two saturating terms:
    60% sample count   min(1, n / 10)
    40% trend strength min(1, 10 * |slope|)
so a pronounced trend over many samples scores highest.
"""

import logging
from typing import Sequence

import numpy as np
from scipy import stats

from ..models.analytics import TrendDirection, TrendPrediction
from ..models.profile import ConsolidatedProfile, ProgressSample
from ..models.scores import SCORE_MAX, SCORE_MIN, clamp


logger = logging.getLogger(__name__)

MIN_SAMPLES = 3
MAX_SAMPLES = 10
DIRECTION_THRESHOLD = 0.05
SAMPLE_WEIGHT = 0.6
STRENGTH_WEIGHT = 0.4


def trend_confidence(sample_count: int, slope: float) -> int:
    sample_term = min(1.0, sample_count / MAX_SAMPLES)
    strength_term = min(1.0, abs(slope) * 10)
    return round(100 * (SAMPLE_WEIGHT * sample_term + STRENGTH_WEIGHT * strength_term))


def classify_slope(slope: float) -> TrendDirection:
    if slope > DIRECTION_THRESHOLD:
        return TrendDirection.IMPROVING
    if slope < -DIRECTION_THRESHOLD:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def predict(samples: Sequence[ProgressSample], horizon: int = 4, dimension: str = "") -> TrendPrediction:
    """
    Extrapolate a dimension ``horizon`` steps ahead.

    Fewer than three samples give an explicit insufficient-data result with
    zero confidence and no predicted value.
    """
    if horizon < 0:
        raise ValueError("horizon must not be negative")

    finite = [s for s in samples if np.isfinite(s.normalized)]
    ordered = sorted(finite, key=lambda s: s.date)[-MAX_SAMPLES:]
    dimension = dimension or (ordered[0].metric_name if ordered else "")

    if len(ordered) < MIN_SAMPLES:
        return TrendPrediction(
            dimension=dimension,
            horizon=horizon,
            sample_count=len(ordered),
            insufficient_data=True,
        )

    x = np.arange(len(ordered), dtype=float)
    y = np.array([s.normalized for s in ordered], dtype=float)
    fit = stats.linregress(x, y)
    slope = float(fit.slope)
    intercept = float(fit.intercept)

    predicted_normalized = clamp(intercept + slope * (len(ordered) - 1 + horizon), 0.0, 1.0)
    predicted_value = clamp(predicted_normalized * SCORE_MAX, SCORE_MIN, SCORE_MAX)

    prediction = TrendPrediction(
        dimension=dimension,
        horizon=horizon,
        sample_count=len(ordered),
        direction=classify_slope(slope),
        slope=round(slope, 4),
        intercept=round(intercept, 4),
        predicted_normalized=round(predicted_normalized, 4),
        predicted_value=round(predicted_value, 2),
        confidence=trend_confidence(len(ordered), slope),
    )
    logger.debug(
        f"Trend for {dimension}: slope {slope:.3f} over {len(ordered)} samples, "
        f"predicted {prediction.predicted_value}"
    )
    return prediction


def predict_dimension(profile: ConsolidatedProfile, dimension: str, horizon: int = 4) -> TrendPrediction:
    """Trend of one dimension of a profile's assessment and observation history."""
    return predict(profile.progress_samples(dimension), horizon, dimension)
