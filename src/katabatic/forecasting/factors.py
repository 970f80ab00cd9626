"""The five independent factor analyzers.

Each analyzer is a pure function of a ForecastBundle and Criteria and yields
a pass/fail verdict, the measured value(s), and a 0-100 confidence. The
confidence formulas are empirically tuned and must be reproduced exactly.

Empty windows never raise: window helpers signal DataGapError and each
analyzer substitutes a fixed fallback.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum

import numpy as np

from katabatic.common.errors import DataGapError
from katabatic.forecasting.base import Criteria
from katabatic.forecasting.windows import TimeWindow, extract_window, window_values
from katabatic.weather.models import ForecastBundle, WeatherPoint

logger = logging.getLogger(__name__)

# Cloud cover (%) below which an hour counts as clear
_CLEAR_CLOUD_COVER = 30.0

# Pressure is compared between the first point and this index (~6h later)
_PRESSURE_LOOKAHEAD = 6

# Changes smaller than this (hPa) are reported as a stable trend
_PRESSURE_DEAD_BAND = 1.0


class PressureTrend(Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class WaveEnhancement(Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class PrecipitationFactor:
    meets: bool
    value: float
    threshold: float
    confidence: float
    data_source: str = "noaa"


@dataclass(frozen=True)
class SkyConditionsFactor:
    meets: bool
    clear_period_coverage: float
    average_cloud_cover: float
    confidence: float
    data_source: str = "noaa"


@dataclass(frozen=True)
class PressureFactor:
    meets: bool
    change: float
    trend: PressureTrend
    rate: float
    confidence: float
    data_source: str = "openweather"


@dataclass(frozen=True)
class TemperatureDifferentialFactor:
    meets: bool
    differential: float
    valley_temp: float
    mountain_temp: float
    confidence: float
    data_source: str = "noaa"


@dataclass(frozen=True)
class WavePatternFactor:
    meets: bool
    transport_wind_analysis: str
    mixing_height: float | None
    wave_enhancement: WaveEnhancement
    directional_consistency: float
    confidence: float
    data_source: str = "noaa"


@dataclass(frozen=True)
class Factors:
    """All five factor results, iterated in weighting order."""

    precipitation: PrecipitationFactor
    sky_conditions: SkyConditionsFactor
    pressure_change: PressureFactor
    temperature_differential: TemperatureDifferentialFactor
    wave_pattern: WavePatternFactor

    def items(self) -> list[tuple[str, FactorResult]]:
        return [
            ("precipitation", self.precipitation),
            ("sky_conditions", self.sky_conditions),
            ("pressure_change", self.pressure_change),
            ("temperature_differential", self.temperature_differential),
            ("wave_pattern", self.wave_pattern),
        ]

    def __iter__(self) -> Iterator[FactorResult]:
        return iter(factor for _, factor in self.items())

    @property
    def met_count(self) -> int:
        return sum(1 for f in self if f.meets)


FactorResult = (
    PrecipitationFactor
    | SkyConditionsFactor
    | PressureFactor
    | TemperatureDifferentialFactor
    | WavePatternFactor
)


def _clamp(confidence: float) -> float:
    return float(min(100.0, max(0.0, confidence)))


def is_downslope(direction: float) -> bool:
    """NW through NE: [270, 360] or [0, 90] degrees."""
    return 270 <= direction <= 360 or 0 <= direction <= 90


def _window_max(points: list[WeatherPoint], window: TimeWindow, tz: tzinfo, attr: str) -> float:
    try:
        values = window_values(extract_window(points, window, tz), lambda p: getattr(p, attr))
    except DataGapError:
        return 0.0
    return float(np.max(values))


def _window_mean(points: list[WeatherPoint], window: TimeWindow, tz: tzinfo, attr: str) -> float:
    try:
        values = window_values(extract_window(points, window, tz), lambda p: getattr(p, attr))
    except DataGapError:
        return 0.0
    return float(np.mean(values))


def _cloud_cover_for_window(
    points: list[WeatherPoint], window: TimeWindow, tz: tzinfo,
) -> tuple[float, float]:
    """(average cloud cover, clear percentage) for a window.

    An empty window is treated as fully overcast.
    """
    try:
        covers = window_values(extract_window(points, window, tz), lambda p: p.cloud_cover)
    except DataGapError:
        return 100.0, 0.0
    clear = sum(1 for c in covers if c < _CLEAR_CLOUD_COVER)
    return float(np.mean(covers)), clear / len(covers) * 100


def analyze_precipitation(
    bundle: ForecastBundle, criteria: Criteria, tz: tzinfo,
) -> PrecipitationFactor:
    """Worst precipitation chance over the clear-sky and prediction windows (valley)."""
    forecast = bundle.valley.hourly_forecast
    value = max(
        _window_max(forecast, criteria.clear_sky_window, tz, "precipitation_probability"),
        _window_max(forecast, criteria.prediction_window, tz, "precipitation_probability"),
    )
    threshold = criteria.max_precipitation_probability
    meets = value <= threshold

    if meets:
        confidence = min(100.0, 100 - (value / threshold) * 100)
    else:
        confidence = max(0.0, 100 - ((value - threshold) / threshold) * 100)

    return PrecipitationFactor(
        meets=meets,
        value=value,
        threshold=threshold,
        confidence=_clamp(confidence),
    )


def analyze_sky_conditions(
    bundle: ForecastBundle, criteria: Criteria, tz: tzinfo,
) -> SkyConditionsFactor:
    """Clear-sky coverage during the pre-dawn window, averaged over both sites."""
    valley_avg, valley_clear = _cloud_cover_for_window(
        bundle.valley.hourly_forecast, criteria.clear_sky_window, tz,
    )
    mountain_avg, mountain_clear = _cloud_cover_for_window(
        bundle.mountain.hourly_forecast, criteria.clear_sky_window, tz,
    )

    average_cloud_cover = (valley_avg + mountain_avg) / 2
    coverage = (valley_clear + mountain_clear) / 2
    meets = coverage >= criteria.min_cloud_cover_clear_period

    if meets:
        confidence = min(100.0, coverage * 1.3)
    else:
        confidence = max(20.0, coverage * 1.2)

    return SkyConditionsFactor(
        meets=meets,
        clear_period_coverage=coverage,
        average_cloud_cover=average_cloud_cover,
        confidence=_clamp(confidence),
    )


def pressure_trend(forecast: list[WeatherPoint]) -> tuple[PressureTrend, float, float]:
    """Compute (trend, change hPa, rate hPa/h) over the first ~6 hours.

    Raises:
        DataGapError: fewer than two points
    """
    if len(forecast) < 2:
        raise DataGapError("pressure trend needs at least two points")

    first = forecast[0]
    last = forecast[min(_PRESSURE_LOOKAHEAD, len(forecast) - 1)]
    change = last.pressure - first.pressure
    hours = (last.timestamp - first.timestamp) / (1000 * 60 * 60)
    rate = change / hours if hours > 0 else 0.0

    if abs(change) < _PRESSURE_DEAD_BAND:
        trend = PressureTrend.STABLE
    elif change > 0:
        trend = PressureTrend.RISING
    else:
        trend = PressureTrend.FALLING
    return trend, change, rate


def analyze_pressure_change(
    bundle: ForecastBundle, criteria: Criteria, tz: tzinfo,
) -> PressureFactor:
    """Magnitude of the valley pressure change, either direction."""
    minimum = criteria.min_pressure_change
    try:
        trend, change, rate = pressure_trend(bundle.valley.hourly_forecast)
    except DataGapError:
        logger.debug("Insufficient pressure data for %s", bundle.valley.name)
        return PressureFactor(
            meets=0.0 >= minimum,
            change=0.0,
            trend=PressureTrend.STABLE,
            rate=0.0,
            confidence=0.0,
        )

    magnitude = abs(change)
    meets = magnitude >= minimum
    if meets:
        confidence = min(100.0, (magnitude / minimum) * 75)
    else:
        confidence = max(25.0, (magnitude / minimum) * 65)

    return PressureFactor(
        meets=meets,
        change=change,
        trend=trend,
        rate=rate,
        confidence=_clamp(confidence),
    )


def analyze_temperature_differential(
    bundle: ForecastBundle, criteria: Criteria, tz: tzinfo,
) -> TemperatureDifferentialFactor:
    """Valley minus mountain mean temperature over the prediction window.

    Only a warmer valley counts; the comparison is one-directional.
    """
    valley_temp = _window_mean(
        bundle.valley.hourly_forecast, criteria.prediction_window, tz, "temperature",
    )
    mountain_temp = _window_mean(
        bundle.mountain.hourly_forecast, criteria.prediction_window, tz, "temperature",
    )
    differential = valley_temp - mountain_temp
    minimum = criteria.min_temperature_differential
    meets = differential >= minimum

    if meets:
        confidence = min(100.0, (differential / minimum) * 65)
    else:
        confidence = max(30.0, (differential / minimum) * 55)

    return TemperatureDifferentialFactor(
        meets=meets,
        differential=differential,
        valley_temp=valley_temp,
        mountain_temp=mountain_temp,
        confidence=_clamp(confidence),
    )


def analyze_wave_pattern(
    bundle: ForecastBundle, criteria: Criteria, tz: tzinfo,
) -> WavePatternFactor:
    """Downslope wind consistency and shear between the two sites at dawn."""
    valley_winds = extract_window(bundle.valley.hourly_forecast, criteria.prediction_window, tz)
    mountain_winds = extract_window(bundle.mountain.hourly_forecast, criteria.prediction_window, tz)

    try:
        valley_speeds = window_values(valley_winds, lambda p: p.wind_speed)
    except DataGapError:
        return WavePatternFactor(
            meets=False,
            transport_wind_analysis="No wind data in prediction window",
            mixing_height=None,
            wave_enhancement=WaveEnhancement.NEGATIVE,
            directional_consistency=0.0,
            confidence=0.0,
        )

    avg_valley_wind = float(np.mean(valley_speeds))
    try:
        avg_mountain_wind = float(np.mean(window_values(mountain_winds, lambda p: p.wind_speed)))
    except DataGapError:
        avg_mountain_wind = 0.0

    downslope = sum(1 for p in valley_winds if is_downslope(p.wind_direction))
    consistency = downslope / len(valley_winds)
    wind_shear = abs(avg_valley_wind - avg_mountain_wind)
    mixing_height = 500 + wind_shear * 100 if wind_shear > 2 else 300.0

    pct = f"{consistency * 100:.0f}%"
    if consistency > 0.7 and avg_valley_wind < 5 and wind_shear < 3:
        enhancement = WaveEnhancement.POSITIVE
        analysis = f"Favorable: {pct} downslope wind consistency, low shear"
    elif consistency < 0.3 or avg_valley_wind > 8:
        enhancement = WaveEnhancement.NEGATIVE
        analysis = f"Unfavorable: {pct} downslope winds, high speeds"
    else:
        enhancement = WaveEnhancement.NEUTRAL
        analysis = f"Neutral: {pct} downslope winds, moderate conditions"

    meets = enhancement is WaveEnhancement.POSITIVE
    if meets:
        confidence = min(90.0, consistency * 100 + (5 - min(avg_valley_wind, 5)) * 10)
    else:
        confidence = max(20.0, 60 - max(0.0, avg_valley_wind - 5) * 10)

    return WavePatternFactor(
        meets=meets,
        transport_wind_analysis=analysis,
        mixing_height=mixing_height,
        wave_enhancement=enhancement,
        directional_consistency=consistency,
        confidence=_clamp(confidence),
    )


def analyze_factors(bundle: ForecastBundle, criteria: Criteria, tz: tzinfo) -> Factors:
    """Run all five analyzers."""
    return Factors(
        precipitation=analyze_precipitation(bundle, criteria, tz),
        sky_conditions=analyze_sky_conditions(bundle, criteria, tz),
        pressure_change=analyze_pressure_change(bundle, criteria, tz),
        temperature_differential=analyze_temperature_differential(bundle, criteria, tz),
        wave_pattern=analyze_wave_pattern(bundle, criteria, tz),
    )
