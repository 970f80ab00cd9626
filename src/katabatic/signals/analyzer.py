"""Probability aggregation, confidence tiers and go/maybe/skip recommendations."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import timedelta, tzinfo

from katabatic.common.types import from_epoch_ms
from katabatic.config import get_settings
from katabatic.forecasting.base import DEFAULT_CRITERIA, Criteria
from katabatic.forecasting.factors import Factors, WaveEnhancement, analyze_factors
from katabatic.forecasting.windows import extract_window
from katabatic.signals.formatters import generate_detailed_analysis, generate_explanation
from katabatic.signals.models import (
    BestTimeWindow,
    ConfidenceTier,
    Prediction,
    Recommendation,
    WeatherConditions,
)
from katabatic.weather.models import ForecastBundle

# Factor weights. They sum to 0.95, so the score is normalised by the total.
FACTOR_WEIGHTS: dict[str, float] = {
    "precipitation": 0.25,
    "sky_conditions": 0.25,
    "pressure_change": 0.20,
    "temperature_differential": 0.15,
    "wave_pattern": 0.10,
}

# Points subtracted from a failing factor's confidence before weighting
_FAILING_FACTOR_PENALTY = 20


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_probability(factors: Factors) -> int:
    """Combine factor confidences into an integer probability (0-100).

    Failing factors still contribute, less a flat penalty. The weighted mean
    is then boosted when several factors (or the key pairs) agree.
    """
    weighted_score = 0.0
    total_weight = 0.0

    for name, factor in factors.items():
        weight = FACTOR_WEIGHTS[name]
        if factor.meets:
            weighted_score += factor.confidence * weight
        else:
            weighted_score += max(0.0, factor.confidence - _FAILING_FACTOR_PENALTY) * weight
        total_weight += weight

    base_probability = weighted_score / total_weight if total_weight > 0 else 0.0

    met = factors.met_count
    if met >= 4:
        multiplier = 1.15
    elif met >= 3:
        multiplier = 1.10
    else:
        multiplier = 1.0

    # Dry and clear together is the most diagnostic combination
    if factors.precipitation.meets and factors.sky_conditions.meets:
        multiplier += 0.05

    if factors.wave_pattern.wave_enhancement is WaveEnhancement.POSITIVE:
        multiplier += 0.08

    return min(100, _round_half_up(base_probability * multiplier))


def confidence_score(factors: Factors) -> int:
    """Mean factor confidence, rounded to an integer."""
    confidences = [f.confidence for f in factors]
    return _round_half_up(sum(confidences) / len(confidences))


def determine_confidence(factors: Factors) -> ConfidenceTier:
    """Tier from how many factors are individually confident and the overall mean."""
    confidences = [f.confidence for f in factors]
    high_count = sum(1 for c in confidences if c > 70)
    avg_confidence = sum(confidences) / len(confidences)

    if high_count >= 3 and avg_confidence > 75:
        return ConfidenceTier.HIGH
    if high_count >= 2 and avg_confidence > 60:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def recommend(probability: int, confidence: ConfidenceTier) -> Recommendation:
    """Map probability and confidence tier to go/maybe/skip. First matching rule wins."""
    if probability >= 70 and confidence is not ConfidenceTier.LOW:
        return Recommendation.GO
    if probability >= 50 and confidence is ConfidenceTier.HIGH:
        return Recommendation.GO
    if probability >= 40:
        return Recommendation.MAYBE
    return Recommendation.SKIP


def find_best_time_window(
    bundle: ForecastBundle,
    criteria: Criteria,
    tz: tzinfo,
    confidence: float,
) -> BestTimeWindow | None:
    """Anchor the prediction window on the next dawn covered by the valley forecast."""
    window = criteria.prediction_window
    in_window = extract_window(bundle.valley.hourly_forecast, window, tz)
    if not in_window:
        return None

    first = from_epoch_ms(in_window[0].timestamp, tz)
    day = first.date()
    if window.wraps_midnight and first.hour <= window.end_hour:
        day -= timedelta(days=1)

    start, end = window.bounds_on(day, tz)
    return BestTimeWindow(start=start, end=end, confidence=confidence)


def analyze_prediction(
    bundle: ForecastBundle,
    criteria: Criteria | Mapping[str, object] | None = None,
    tz: tzinfo | None = None,
) -> Prediction:
    """Analyse a forecast bundle and return a katabatic wind prediction.

    Args:
        bundle: valley and mountain forecast series
        criteria: a full Criteria, or a partial mapping merged over the defaults
        tz: reference time zone for window hours; defaults to the configured zone

    Returns:
        A new Prediction. Identical inputs always produce an identical Prediction.
    """
    if isinstance(criteria, Criteria):
        active = criteria
    else:
        active = DEFAULT_CRITERIA.merge(criteria)
    if tz is None:
        tz = get_settings().tz

    factors = analyze_factors(bundle, active, tz)
    probability = calculate_probability(factors)
    tier = determine_confidence(factors)
    score = confidence_score(factors)
    recommendation = recommend(probability, tier)

    return Prediction(
        probability=probability,
        confidence=tier,
        confidence_score=score,
        factors=factors,
        recommendation=recommendation,
        explanation=generate_explanation(factors, probability, recommendation),
        detailed_analysis=generate_detailed_analysis(factors, bundle.data_source),
        best_time_window=find_best_time_window(bundle, active, tz, score),
    )


def snapshot_conditions(bundle: ForecastBundle, prediction: Prediction) -> WeatherConditions:
    """Ambient conditions recorded with a logged prediction."""
    temp = prediction.factors.temperature_differential
    return WeatherConditions(
        valley_temp=temp.valley_temp,
        mountain_temp=temp.mountain_temp,
        temp_differential=temp.differential,
        precipitation=prediction.factors.precipitation.value,
        cloud_cover=prediction.factors.sky_conditions.average_cloud_cover,
        pressure=bundle.valley.current.pressure,
    )
