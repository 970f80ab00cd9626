"""Load forecast bundles and wind observations from JSON documents.

This is the boundary where loosely-typed provider payloads become typed
models; anything that does not fit is rejected with a ValueError.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from katabatic.weather.models import ForecastBundle, WindObservation

logger = logging.getLogger(__name__)

_BUNDLE = TypeAdapter(ForecastBundle)
_OBSERVATIONS = TypeAdapter(list[WindObservation])


def parse_forecast_bundle(data: object) -> ForecastBundle:
    """Validate a decoded JSON object as a ForecastBundle.

    Expected shape::

        {"valley": {"name": ..., "current": {...}, "hourly_forecast": [...]},
         "mountain": {...}, "data_source": "api"}

    Raises:
        ValueError: the payload does not match
    """
    try:
        bundle = _BUNDLE.validate_python(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid forecast payload: {exc}") from exc

    logger.debug(
        "Loaded forecast: %s (%d points), %s (%d points)",
        bundle.valley.name, len(bundle.valley.hourly_forecast),
        bundle.mountain.name, len(bundle.mountain.hourly_forecast),
    )
    return bundle


def parse_observations(data: object) -> list[WindObservation]:
    """Validate a decoded JSON list of {time, wind_speed_mph, wind_direction}.

    Raises:
        ValueError: the payload does not match
    """
    try:
        return _OBSERVATIONS.validate_python(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid observations payload: {exc}") from exc


def load_forecast_bundle(path: Path) -> ForecastBundle:
    """Read and validate a forecast bundle JSON file."""
    return parse_forecast_bundle(json.loads(path.read_text(encoding="utf-8")))


def load_observations(path: Path) -> list[WindObservation]:
    """Read and validate an observations JSON file."""
    return parse_observations(json.loads(path.read_text(encoding="utf-8")))
