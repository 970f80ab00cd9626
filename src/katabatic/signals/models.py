"""Prediction, outcome and tracking report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from katabatic.forecasting.factors import Factors


class ConfidenceTier(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(Enum):
    GO = "go"
    MAYBE = "maybe"
    SKIP = "skip"


class ResultType(Enum):
    """How a resolved prediction compares with what happened."""

    CORRECT = "correct"
    FALSE_POSITIVE = "false_positive"  # predicted good, actual bad
    FALSE_NEGATIVE = "false_negative"  # predicted bad, actual good


@dataclass(frozen=True)
class BestTimeWindow:
    start: datetime
    end: datetime
    confidence: float


@dataclass(frozen=True)
class Prediction:
    """A katabatic wind prediction for one dawn window.

    Attributes:
        probability: integer 0-100
        confidence: discrete confidence tier
        confidence_score: rounded mean of the five factor confidences (0-100)
        factors: the five factor results
        recommendation: go / maybe / skip
        explanation: one-line summary
        detailed_analysis: per-factor breakdown
        best_time_window: target dawn window, None when the forecast has no dawn hours
    """

    probability: int
    confidence: ConfidenceTier
    confidence_score: int
    factors: Factors
    recommendation: Recommendation
    explanation: str
    detailed_analysis: str
    best_time_window: BestTimeWindow | None = None

    @property
    def predicted_good(self) -> bool:
        """50%+ counts as a prediction of good conditions."""
        return self.probability >= 50


@dataclass(frozen=True)
class WeatherConditions:
    """Ambient conditions snapshot stored alongside a logged prediction."""

    valley_temp: float
    mountain_temp: float
    temp_differential: float
    precipitation: float
    cloud_cover: float
    pressure: float


@dataclass(frozen=True)
class Outcome:
    """Observed dawn conditions for a predicted day.

    Attributes:
        observed_at: when the outcome was recorded
        wind_speed: average observed speed (mph)
        wind_direction: average observed direction (degrees)
        max_speed: highest reading (mph)
        min_speed: lowest reading (mph)
        data_points: number of readings used
        success: the morning met the good-wind bar
        source: "soda-lake", "standley-lake" or "user-report"
        notes: free text
    """

    observed_at: datetime
    wind_speed: float
    wind_direction: float
    max_speed: float
    min_speed: float
    data_points: int
    success: bool
    source: str = "soda-lake"
    notes: str | None = None


@dataclass
class PredictionEntry:
    """A persisted prediction, keyed by the calendar date it is for."""

    id: str
    created_at: datetime
    target_date: date
    prediction: Prediction
    conditions: WeatherConditions | None = None
    outcome: Outcome | None = None


@dataclass
class CalibrationBucket:
    """One 10-point confidence band of the calibration curve.

    Attributes:
        predicted: mean stated confidence of entries in the band
        actual: empirical success rate (%) of entries in the band
        count: number of resolved entries in the band
    """

    predicted: float
    actual: float
    count: int


@dataclass
class AccuracyReport:
    total_predictions: int = 0
    correct_predictions: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    accuracy: float = 0.0
    brier_score: float | None = None
    confidence_calibration: dict[str, CalibrationBucket] = field(default_factory=dict)


@dataclass
class TrendPoint:
    day: date
    predicted: int
    actual: bool | None
    accurate: bool | None


@dataclass
class TrendSummary:
    total_days: int = 0
    accurate_days: int = 0
    accuracy_rate: float = 0.0


@dataclass
class TrendReport:
    trends: list[TrendPoint] = field(default_factory=list)
    summary: TrendSummary = field(default_factory=TrendSummary)


@dataclass
class DedupeResult:
    removed: int
    kept: int


@dataclass
class DateBreakdown:
    day: date
    count: int
    entries: list[tuple[str, datetime, int]]


@dataclass
class DebugStats:
    total_predictions: int
    unique_dates: int
    duplicates: int
    date_breakdown: list[DateBreakdown]
