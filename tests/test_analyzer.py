"""Tests for probability aggregation, confidence tiers and recommendations."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_bundle, make_series
from katabatic.forecasting.base import DEFAULT_CRITERIA, Criteria
from katabatic.forecasting.factors import (
    Factors,
    PrecipitationFactor,
    PressureFactor,
    PressureTrend,
    SkyConditionsFactor,
    TemperatureDifferentialFactor,
    WaveEnhancement,
    WavePatternFactor,
)
from katabatic.forecasting.windows import TimeWindow
from katabatic.signals.analyzer import (
    FACTOR_WEIGHTS,
    _round_half_up,
    analyze_prediction,
    calculate_probability,
    confidence_score,
    determine_confidence,
    recommend,
    snapshot_conditions,
)
from katabatic.signals.models import ConfidenceTier, Recommendation


def _factors(confidences, meets):
    """Factors with the given per-factor confidences and verdicts.

    The wave pattern is positive exactly when it meets.
    """
    c_precip, c_sky, c_press, c_temp, c_wave = confidences
    m_precip, m_sky, m_press, m_temp, m_wave = meets
    return Factors(
        precipitation=PrecipitationFactor(m_precip, 0.0, 25.0, c_precip),
        sky_conditions=SkyConditionsFactor(m_sky, 100.0, 0.0, c_sky),
        pressure_change=PressureFactor(m_press, 2.0, PressureTrend.RISING, 0.3, c_press),
        temperature_differential=TemperatureDifferentialFactor(m_temp, 4.0, 8.0, 4.0, c_temp),
        wave_pattern=WavePatternFactor(
            m_wave, "test", 300.0,
            WaveEnhancement.POSITIVE if m_wave else WaveEnhancement.NEUTRAL,
            1.0, c_wave,
        ),
    )


# ---------- calculate_probability ----------


class TestCalculateProbability:
    def test_weights_sum(self):
        assert sum(FACTOR_WEIGHTS.values()) == pytest.approx(0.95)

    def test_all_failing_low_confidence(self):
        factors = _factors([20] * 5, [False] * 5)
        assert calculate_probability(factors) == 0

    def test_all_met_with_boosts(self):
        # 50 base * (1.15 + 0.05 dry/clear + 0.08 positive wave)
        factors = _factors([50] * 5, [True] * 5)
        assert calculate_probability(factors) == 64

    def test_three_met_with_dry_clear_combo(self):
        factors = _factors([60, 60, 60, 40, 40], [True, True, True, False, False])
        # (15 + 15 + 12 + 3 + 2) / 0.95 * 1.15
        assert calculate_probability(factors) == 57

    def test_two_met_no_boost(self):
        factors = _factors([20, 20, 80, 80, 20], [False, False, True, True, False])
        # (16 + 12) / 0.95
        assert calculate_probability(factors) == 29

    def test_clamped_to_100(self):
        factors = _factors([100] * 5, [True] * 5)
        assert calculate_probability(factors) == 100

    def test_rounds_half_up(self):
        assert _round_half_up(0.5) == 1
        assert _round_half_up(2.5) == 3
        assert _round_half_up(2.49) == 2

    def test_integer_in_range(self, favorable_bundle, unfavorable_bundle, utc):
        for bundle in (favorable_bundle, unfavorable_bundle):
            probability = analyze_prediction(bundle, tz=utc).probability
            assert isinstance(probability, int)
            assert 0 <= probability <= 100


# ---------- confidence ----------


class TestDetermineConfidence:
    def test_high(self):
        assert determine_confidence(_factors([80, 80, 80, 70, 70], [True] * 5)) is ConfidenceTier.HIGH

    def test_medium_when_mean_too_low_for_high(self):
        assert determine_confidence(_factors([80, 80, 80, 60, 60], [True] * 5)) is ConfidenceTier.MEDIUM

    def test_low_when_mean_too_low(self):
        assert determine_confidence(_factors([90, 90, 30, 30, 30], [True] * 5)) is ConfidenceTier.LOW

    def test_exactly_70_is_not_high_confidence(self):
        assert determine_confidence(_factors([70] * 5, [True] * 5)) is ConfidenceTier.LOW

    def test_confidence_score_is_rounded_mean(self):
        assert confidence_score(_factors([80, 100, 100, 100, 90], [True] * 5)) == 94
        assert confidence_score(_factors([0, 20, 25, 30, 20], [False] * 5)) == 19


# ---------- recommend ----------


@pytest.mark.parametrize("probability,tier,expected", [
    (39, ConfidenceTier.LOW, Recommendation.SKIP),
    (40, ConfidenceTier.LOW, Recommendation.MAYBE),
    (49, ConfidenceTier.LOW, Recommendation.MAYBE),
    (50, ConfidenceTier.LOW, Recommendation.MAYBE),
    (69, ConfidenceTier.LOW, Recommendation.MAYBE),
    (70, ConfidenceTier.LOW, Recommendation.MAYBE),
    (100, ConfidenceTier.LOW, Recommendation.MAYBE),
    (39, ConfidenceTier.MEDIUM, Recommendation.SKIP),
    (40, ConfidenceTier.MEDIUM, Recommendation.MAYBE),
    (49, ConfidenceTier.MEDIUM, Recommendation.MAYBE),
    (50, ConfidenceTier.MEDIUM, Recommendation.MAYBE),
    (69, ConfidenceTier.MEDIUM, Recommendation.MAYBE),
    (70, ConfidenceTier.MEDIUM, Recommendation.GO),
    (39, ConfidenceTier.HIGH, Recommendation.SKIP),
    (40, ConfidenceTier.HIGH, Recommendation.MAYBE),
    (49, ConfidenceTier.HIGH, Recommendation.MAYBE),
    (50, ConfidenceTier.HIGH, Recommendation.GO),
    (69, ConfidenceTier.HIGH, Recommendation.GO),
    (70, ConfidenceTier.HIGH, Recommendation.GO),
])
def test_recommend(probability, tier, expected):
    assert recommend(probability, tier) is expected


# ---------- analyze_prediction ----------


class TestAnalyzePrediction:
    def test_favorable(self, good_prediction):
        assert good_prediction.probability == 100
        assert good_prediction.confidence is ConfidenceTier.HIGH
        assert good_prediction.confidence_score == 94
        assert good_prediction.recommendation is Recommendation.GO
        assert good_prediction.explanation.startswith("Strong conditions! 5/5 factors favorable")
        assert good_prediction.predicted_good

    def test_unfavorable(self, poor_prediction):
        assert poor_prediction.probability == 3
        assert poor_prediction.confidence is ConfidenceTier.LOW
        assert poor_prediction.confidence_score == 19
        assert poor_prediction.recommendation is Recommendation.SKIP
        assert poor_prediction.explanation.startswith("Poor conditions. Only 0/5")
        assert not poor_prediction.predicted_good

    def test_deterministic(self, favorable_bundle, utc):
        assert analyze_prediction(favorable_bundle, tz=utc) == analyze_prediction(favorable_bundle, tz=utc)

    def test_partial_criteria_merged(self, unfavorable_bundle, utc):
        prediction = analyze_prediction(
            unfavorable_bundle, {"max_precipitation_probability": 90}, tz=utc,
        )
        assert prediction.factors.precipitation.meets
        assert prediction.factors.precipitation.threshold == 90.0
        # Other criteria keep their defaults
        assert not prediction.factors.sky_conditions.meets

    def test_full_criteria(self, favorable_bundle, utc):
        criteria = Criteria(min_temperature_differential=10.0)
        prediction = analyze_prediction(favorable_bundle, criteria, tz=utc)
        assert not prediction.factors.temperature_differential.meets

    def test_unknown_criteria_rejected(self, favorable_bundle, utc):
        with pytest.raises(ValueError, match="Unknown criteria"):
            analyze_prediction(favorable_bundle, {"max_wind": 5}, tz=utc)

    def test_best_time_window(self, good_prediction):
        window = good_prediction.best_time_window
        assert window is not None
        assert window.start == datetime(2025, 6, 14, 6, tzinfo=timezone.utc)
        assert window.end == datetime(2025, 6, 14, 8, tzinfo=timezone.utc)
        assert window.confidence == good_prediction.confidence_score

    def test_no_best_window_without_dawn_hours(self, utc):
        bundle = make_bundle(make_series("Morrison", hours=3), make_series("Evergreen", hours=3))
        prediction = analyze_prediction(bundle, tz=utc)
        assert prediction.best_time_window is None

    def test_wrapping_window_anchors_previous_day(self, favorable_bundle, utc):
        criteria = DEFAULT_CRITERIA.merge({"prediction_window": {"start": "23:00", "end": "01:00"}})
        prediction = analyze_prediction(favorable_bundle, criteria, tz=utc)
        window = prediction.best_time_window
        assert window.start == datetime(2025, 6, 13, 23, tzinfo=timezone.utc)
        assert window.end == datetime(2025, 6, 14, 1, tzinfo=timezone.utc)

    def test_detailed_analysis_reports_source(self, favorable_bundle, utc):
        mock = make_bundle(favorable_bundle.valley, favorable_bundle.mountain, data_source="mock")
        prediction = analyze_prediction(mock, tz=utc)
        assert prediction.detailed_analysis.endswith("Data Quality: Mock")


class TestCriteria:
    def test_merge_converts_values(self):
        merged = DEFAULT_CRITERIA.merge({
            "min_pressure_change": "2",
            "clear_sky_window": {"start": "01:00", "end": "04:00"},
        })
        assert merged.min_pressure_change == 2.0
        assert merged.clear_sky_window == TimeWindow("01:00", "04:00")
        assert merged.prediction_window == DEFAULT_CRITERIA.prediction_window

    def test_merge_empty_returns_self(self):
        assert DEFAULT_CRITERIA.merge({}) is DEFAULT_CRITERIA
        assert DEFAULT_CRITERIA.merge(None) is DEFAULT_CRITERIA

    def test_merge_keeps_time_window_instance(self):
        window = TimeWindow("05:00", "07:00")
        assert DEFAULT_CRITERIA.merge({"prediction_window": window}).prediction_window is window

    @pytest.mark.parametrize("value", ["06:00-08:00", ("06:00", "08:00"), {"start": "06:00"}])
    def test_merge_rejects_malformed_window(self, value):
        with pytest.raises(ValueError, match="prediction_window"):
            DEFAULT_CRITERIA.merge({"prediction_window": value})

    @pytest.mark.parametrize("name", [
        "max_precipitation_probability", "min_pressure_change", "min_temperature_differential",
    ])
    def test_divisors_must_be_positive(self, name):
        with pytest.raises(ValueError, match=name):
            Criteria(**{name: 0})


def test_snapshot_conditions(favorable_bundle, good_prediction):
    conditions = snapshot_conditions(favorable_bundle, good_prediction)
    assert conditions.valley_temp == pytest.approx(8.0)
    assert conditions.mountain_temp == pytest.approx(2.0)
    assert conditions.temp_differential == pytest.approx(6.0)
    assert conditions.precipitation == 5.0
    assert conditions.cloud_cover == pytest.approx(10.0)
    assert conditions.pressure == 1015.0
