"""Prediction criteria and their defaults."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace

from katabatic.forecasting.windows import TimeWindow

_WINDOW_FIELDS = ("clear_sky_window", "prediction_window")


@dataclass(frozen=True)
class Criteria:
    """Thresholds for the five-factor katabatic analysis.

    Attributes:
        max_precipitation_probability: highest acceptable precip chance (%)
        min_cloud_cover_clear_period: required clear share of the pre-dawn window (%)
        min_pressure_change: minimum |pressure change| over ~6h (hPa)
        min_temperature_differential: valley minus mountain, dawn window (°C)
        min_wave_pattern_score: wave enhancement threshold (informational)
        clear_sky_window: pre-dawn radiative cooling window
        prediction_window: dawn window the forecast targets
        minimum_confidence: overall confidence floor (0-100)
    """

    max_precipitation_probability: float = 25.0
    min_cloud_cover_clear_period: float = 45.0
    min_pressure_change: float = 1.0
    min_temperature_differential: float = 3.5
    min_wave_pattern_score: float = 50.0
    clear_sky_window: TimeWindow = field(default_factory=lambda: TimeWindow("02:00", "05:00"))
    prediction_window: TimeWindow = field(default_factory=lambda: TimeWindow("06:00", "08:00"))
    minimum_confidence: float = 50.0

    def __post_init__(self) -> None:
        # These thresholds divide the measured values in the confidence formulas
        for name in (
            "max_precipitation_probability",
            "min_pressure_change",
            "min_temperature_differential",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")

    def merge(self, overrides: Mapping[str, object] | None = None) -> Criteria:
        """Return a copy with *overrides* applied over these values.

        Window overrides may be TimeWindow instances or {"start", "end"} mappings.

        Raises:
            ValueError: an override names an unknown criterion, or a window
                override is not a TimeWindow or a {"start", "end"} mapping
        """
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown criteria: {', '.join(sorted(unknown))}")

        changes: dict[str, object] = {}
        for key, value in overrides.items():
            if key in _WINDOW_FIELDS:
                if isinstance(value, Mapping):
                    if "start" not in value or "end" not in value:
                        raise ValueError(f"{key} needs both 'start' and 'end'")
                    value = TimeWindow(start=str(value["start"]), end=str(value["end"]))
                elif not isinstance(value, TimeWindow):
                    raise ValueError(
                        f"{key} must be a TimeWindow or a start/end mapping, got {value!r}"
                    )
            else:
                value = float(value)  # type: ignore[arg-type]
            changes[key] = value
        return replace(self, **changes)


DEFAULT_CRITERIA = Criteria()
