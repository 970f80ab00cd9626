"""Clock-time window extraction over hourly forecast series."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from katabatic.common.errors import DataGapError
from katabatic.common.types import from_epoch_ms
from katabatic.weather.models import WeatherPoint

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def _parse_hhmm(value: str) -> tuple[int, int]:
    match = _HHMM.match(value.strip())
    if match is None:
        raise ValueError(f"expected HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"time out of range: {value!r}")
    return hour, minute


@dataclass(frozen=True)
class TimeWindow:
    """A daily clock-time window such as 02:00-05:00.

    A window whose start hour is after its end hour wraps midnight.
    """

    start: str
    end: str

    def __post_init__(self) -> None:
        _parse_hhmm(self.start)
        _parse_hhmm(self.end)

    @property
    def start_hour(self) -> int:
        return _parse_hhmm(self.start)[0]

    @property
    def end_hour(self) -> int:
        return _parse_hhmm(self.end)[0]

    @property
    def start_time(self) -> tuple[int, int]:
        return _parse_hhmm(self.start)

    @property
    def end_time(self) -> tuple[int, int]:
        return _parse_hhmm(self.end)

    @property
    def wraps_midnight(self) -> bool:
        return self.start_hour > self.end_hour

    def bounds_on(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        """Concrete start and end datetimes of this window starting on *day*."""
        start = datetime.combine(day, time(*self.start_time), tzinfo=tz)
        end_day = day + timedelta(days=1) if self.wraps_midnight else day
        end = datetime.combine(end_day, time(*self.end_time), tzinfo=tz)
        return start, end

    def contains_hour(self, hour: int) -> bool:
        # Hour only: 06:30-08:15 matches hours 6..8
        if self.wraps_midnight:
            return hour >= self.start_hour or hour <= self.end_hour
        return self.start_hour <= hour <= self.end_hour


def extract_window(
    points: Iterable[WeatherPoint],
    window: TimeWindow,
    tz: tzinfo,
) -> list[WeatherPoint]:
    """Return points whose local hour in *tz* falls inside *window* (inclusive)."""
    return [
        p for p in points
        if window.contains_hour(from_epoch_ms(p.timestamp, tz).hour)
    ]


def window_values(
    points: list[WeatherPoint],
    getter: Callable[[WeatherPoint], float],
) -> list[float]:
    """Project a window onto one field.

    Raises:
        DataGapError: the window is empty
    """
    if not points:
        raise DataGapError("no forecast points in window")
    return [getter(p) for p in points]
