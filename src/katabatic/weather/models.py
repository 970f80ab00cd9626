"""Weather data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class WeatherPoint:
    """A single forecast or observation sample.

    Attributes:
        timestamp: epoch milliseconds
        temperature: degrees Celsius
        pressure: hPa
        precipitation_probability: 0-100 %
        cloud_cover: 0-100 %
        wind_speed: m/s
        wind_direction: degrees, 0-360
        humidity: 0-100 %
        weather_description: provider text, may be empty
    """

    timestamp: int
    temperature: float
    pressure: float
    precipitation_probability: float
    cloud_cover: float
    wind_speed: float
    wind_direction: float
    humidity: float
    weather_description: str = ""


@dataclass(frozen=True)
class LocationSeries:
    """Current conditions plus hourly forecast for one site.

    The hourly forecast is trusted to be in chronological order.
    """

    name: str
    current: WeatherPoint
    hourly_forecast: list[WeatherPoint] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastBundle:
    """Valley (Morrison) and mountain reference series analysed together.

    Attributes:
        valley: the site where the dawn wind is expected
        mountain: the upslope reference site
        data_source: "api", "cache" or "mock", reported in detailed analysis
    """

    valley: LocationSeries
    mountain: LocationSeries
    data_source: str = "api"


@dataclass(frozen=True)
class WindObservation:
    """An observed wind reading from a lake station, used to grade outcomes."""

    time: datetime
    wind_speed_mph: float
    wind_direction: float
