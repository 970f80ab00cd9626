"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from katabatic.common.storage import MemoryStore
from katabatic.common.types import to_epoch_ms
from katabatic.signals.analyzer import analyze_prediction
from katabatic.signals.tracker import PredictionTracker
from katabatic.weather.models import ForecastBundle, LocationSeries, WeatherPoint

# Forecast series start at midnight UTC so hour index == local hour in UTC
SERIES_START = datetime(2025, 6, 14, tzinfo=timezone.utc)


def make_point(hour: int, **overrides) -> WeatherPoint:
    """An hourly point at SERIES_START + *hour* with calm, clear defaults."""
    values = dict(
        timestamp=to_epoch_ms(SERIES_START + timedelta(hours=hour)),
        temperature=10.0,
        pressure=1015.0,
        precipitation_probability=0.0,
        cloud_cover=0.0,
        wind_speed=2.0,
        wind_direction=300.0,
        humidity=50.0,
    )
    values.update(overrides)
    return WeatherPoint(**values)


def make_series(name: str, hours: int = 24, **fields) -> LocationSeries:
    """A LocationSeries of *hours* points.

    Each keyword is either a constant or a callable of the hour index.
    """
    points = []
    for hour in range(hours):
        values = {k: (v(hour) if callable(v) else v) for k, v in fields.items()}
        points.append(make_point(hour, **values))
    return LocationSeries(name=name, current=points[0], hourly_forecast=points)


def make_bundle(valley: LocationSeries, mountain: LocationSeries, data_source: str = "api"):
    return ForecastBundle(valley=valley, mountain=mountain, data_source=data_source)


class FakeClock:
    """Settable clock for tracker tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def favorable_bundle():
    """Dry, clear, rising pressure, warm valley, light downslope winds."""
    valley = make_series(
        "Morrison",
        precipitation_probability=5.0,
        cloud_cover=10.0,
        pressure=lambda h: 1015.0 + 0.5 * h,
        temperature=8.0,
        wind_speed=2.0,
        wind_direction=300.0,
    )
    mountain = make_series(
        "Evergreen",
        precipitation_probability=5.0,
        cloud_cover=10.0,
        temperature=2.0,
        wind_speed=3.0,
        wind_direction=290.0,
    )
    return make_bundle(valley, mountain)


@pytest.fixture
def unfavorable_bundle():
    """Wet, overcast, flat pressure, cold valley, strong southerly winds."""
    valley = make_series(
        "Morrison",
        precipitation_probability=80.0,
        cloud_cover=90.0,
        pressure=1015.0,
        temperature=2.0,
        wind_speed=10.0,
        wind_direction=180.0,
    )
    mountain = make_series(
        "Evergreen",
        precipitation_probability=80.0,
        cloud_cover=90.0,
        temperature=4.0,
        wind_speed=3.0,
        wind_direction=180.0,
    )
    return make_bundle(valley, mountain)


@pytest.fixture
def good_prediction(favorable_bundle, utc):
    return analyze_prediction(favorable_bundle, tz=utc)


@pytest.fixture
def poor_prediction(unfavorable_bundle, utc):
    return analyze_prediction(unfavorable_bundle, tz=utc)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 20, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def tracker(store, clock, utc):
    return PredictionTracker(store, update_threshold=15, tz=utc, clock=clock)


def with_probability(prediction, probability: int, **changes):
    """Copy of *prediction* with a different probability (and other fields)."""
    return replace(prediction, probability=probability, **changes)
