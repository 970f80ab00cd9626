"""Application configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Update thresholds (probability points) for same-day prediction replacement
_PRODUCTION_UPDATE_THRESHOLD = 15
_DEV_UPDATE_THRESHOLD = 10


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="KATABATIC_",
    )

    # SQLite database path for the prediction store
    db_path: Path = Path.home() / ".katabatic" / "predictions.db"

    # Key the prediction collection is stored under
    storage_key: str = "wind_predictions"

    # Reference time zone for forecast hours and calendar dates
    timezone: str = "America/Denver"

    # Development mode uses a more permissive update threshold
    dev_mode: bool = False

    # Explicit update threshold; overrides the dev/production default
    update_threshold: int | None = None

    # Retention cap for stored predictions
    max_stored_predictions: int = 100

    # Observed wind speed (mph) that counts as a good reading
    success_wind_mph: float = 15.0

    # Share of dawn readings that must be good for the morning to succeed
    success_fraction: float = 0.7

    @field_validator("timezone")
    @classmethod
    def _timezone_known(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone {v!r}") from exc
        return v

    @field_validator("update_threshold")
    @classmethod
    def _update_threshold_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= 100:
            raise ValueError(f"update_threshold must be in [0, 100], got {v}")
        return v

    @field_validator("max_stored_predictions")
    @classmethod
    def _max_stored_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_stored_predictions must be >= 1, got {v}")
        return v

    @field_validator("success_fraction")
    @classmethod
    def _success_fraction_in_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"success_fraction must be in (0, 1], got {v}")
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def resolved_update_threshold(self) -> int:
        """Threshold used by the tracker when replacing a same-day prediction."""
        if self.update_threshold is not None:
            return self.update_threshold
        return _DEV_UPDATE_THRESHOLD if self.dev_mode else _PRODUCTION_UPDATE_THRESHOLD


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
