"""Grade a dawn window from observed lake-station wind readings."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone, tzinfo

import numpy as np

from katabatic.forecasting.factors import is_downslope
from katabatic.forecasting.windows import TimeWindow
from katabatic.signals.models import Outcome, Prediction, ResultType
from katabatic.weather.models import WindObservation

logger = logging.getLogger(__name__)


def outcome_from_observations(
    observations: Iterable[WindObservation],
    day: date,
    window: TimeWindow,
    tz: tzinfo,
    *,
    success_mph: float = 15.0,
    success_fraction: float = 0.7,
    source: str = "soda-lake",
    observed_at: datetime | None = None,
) -> Outcome | None:
    """Build an Outcome from readings taken during *day*'s dawn window.

    Unlike forecast windows, observations are matched on full clock time,
    start and end inclusive. The morning is a success when at least
    *success_fraction* of the readings reach *success_mph*.

    Returns:
        The Outcome, or None when no reading falls in the window.
    """
    start, end = window.bounds_on(day, tz)
    readings = [
        o for o in observations
        if start <= (o.time if o.time.tzinfo else o.time.replace(tzinfo=tz)) <= end
    ]
    if not readings:
        logger.info("No observations between %s and %s", start.isoformat(), end.isoformat())
        return None

    speeds = np.array([o.wind_speed_mph for o in readings], dtype=np.float64)
    directions = np.array([o.wind_direction for o in readings], dtype=np.float64)

    good_share = float(np.mean(speeds >= success_mph))
    downslope_share = sum(1 for d in directions if is_downslope(d)) / len(readings)
    avg_speed = float(np.mean(speeds))
    success = good_share >= success_fraction

    return Outcome(
        observed_at=observed_at or datetime.now(timezone.utc),
        wind_speed=avg_speed,
        wind_direction=float(np.mean(directions)),
        max_speed=float(np.max(speeds)),
        min_speed=float(np.min(speeds)),
        data_points=len(readings),
        success=success,
        source=source,
        notes=(
            f"Dawn winds: {avg_speed:.1f} mph avg, {good_share * 100:.1f}% good winds, "
            f"{downslope_share * 100:.1f}% downslope direction"
        ),
    )


def classify_result(prediction: Prediction, outcome: Outcome) -> ResultType:
    """Correct, false positive (predicted good, was poor) or false negative."""
    if prediction.predicted_good == outcome.success:
        return ResultType.CORRECT
    if prediction.predicted_good:
        return ResultType.FALSE_POSITIVE
    return ResultType.FALSE_NEGATIVE
