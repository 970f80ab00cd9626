"""Prediction text and output formatters: explanations, Rich tables, JSON."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from katabatic.forecasting.factors import Factors
from katabatic.signals.models import (
    AccuracyReport,
    Prediction,
    PredictionEntry,
    Recommendation,
    TrendReport,
)

_SHORT_LABELS = {
    "precipitation": "rain",
    "sky_conditions": "clear sky",
    "pressure_change": "pressure",
    "temperature_differential": "temp diff",
    "wave_pattern": "wave pattern",
}

_DATA_QUALITY = {"api": "Live API", "cache": "Cached"}

_CHECK = "✅"
_CROSS = "❌"

_RECOMMENDATION_STYLE = {
    Recommendation.GO: "bold green",
    Recommendation.MAYBE: "yellow",
    Recommendation.SKIP: "red",
}


def generate_explanation(
    factors: Factors, probability: int, recommendation: Recommendation,
) -> str:
    """One-line summary of the prediction."""
    met = [_SHORT_LABELS[name] for name, factor in factors.items() if factor.meets]
    listed = ", ".join(met)

    if recommendation is Recommendation.GO:
        return (
            f"Strong conditions! {len(met)}/5 factors favorable ({listed}). "
            f"{probability}% prediction confidence."
        )
    if recommendation is Recommendation.MAYBE:
        return (
            f"Mixed conditions. {len(met)}/5 factors favorable ({listed}). "
            f"{probability}% prediction - check closer to dawn."
        )
    return (
        f"Poor conditions. Only {len(met)}/5 factors favorable. "
        f"{probability}% prediction suggests waiting for better conditions."
    )


def _mark(meets: bool) -> str:
    return _CHECK if meets else _CROSS


def generate_detailed_analysis(factors: Factors, data_source: str) -> str:
    """Multi-line per-factor breakdown."""
    p = factors.precipitation
    s = factors.sky_conditions
    pr = factors.pressure_change
    t = factors.temperature_differential
    w = factors.wave_pattern
    lines = [
        "5-FACTOR ANALYSIS",
        f"PRECIPITATION: {_mark(p.meets)} {p.value:.0f}% chance ({p.data_source.upper()})",
        f"CLEAR SKY: {_mark(s.meets)} {s.clear_period_coverage:.0f}% clear period ({s.data_source.upper()})",
        f"PRESSURE: {_mark(pr.meets)} {pr.change:+.1f} hPa, {pr.trend.value} ({pr.data_source.upper()})",
        f"TEMP DIFF: {_mark(t.meets)} {t.differential:.1f}°C ({t.data_source.upper()})",
        f"WAVE PATTERN: {_mark(w.meets)} {w.transport_wind_analysis} ({w.data_source.upper()})",
        "",
        f"Data Quality: {_DATA_QUALITY.get(data_source, 'Mock')}",
    ]
    return "\n".join(lines)


def format_prediction(prediction: Prediction, console: Console | None = None) -> None:
    """Print a prediction with its factor table."""
    if console is None:
        console = Console()

    style = _RECOMMENDATION_STYLE[prediction.recommendation]
    console.print(
        f"[{style}]{prediction.recommendation.value.upper()}[/{style}] "
        f"{prediction.probability}% "
        f"(confidence: {prediction.confidence.value}, score {prediction.confidence_score})"
    )
    console.print(prediction.explanation)

    table = Table(title="Factors", show_lines=True)
    table.add_column("Factor", width=24)
    table.add_column("Meets", justify="center", width=5)
    table.add_column("Confidence", justify="right", width=10)
    table.add_column("Source", width=11)

    for name, factor in prediction.factors.items():
        table.add_row(
            name.replace("_", " "),
            _mark(factor.meets),
            f"{factor.confidence:.0f}",
            factor.data_source,
        )
    console.print(table)

    window = prediction.best_time_window
    if window is not None:
        console.print(
            f"Best window: {window.start:%Y-%m-%d %H:%M} - {window.end:%H:%M} "
            f"({window.confidence:.0f}%)"
        )


def prediction_to_dict(prediction: Prediction) -> dict:
    """Flat JSON-friendly view of a prediction."""
    window = prediction.best_time_window
    return {
        "probability": prediction.probability,
        "confidence": prediction.confidence.value,
        "confidence_score": prediction.confidence_score,
        "recommendation": prediction.recommendation.value,
        "explanation": prediction.explanation,
        "factors": {
            name: {"meets": factor.meets, "confidence": round(factor.confidence, 1)}
            for name, factor in prediction.factors.items()
        },
        "best_time_window": None if window is None else {
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
            "confidence": window.confidence,
        },
    }


def format_json(prediction: Prediction) -> str:
    """Format a prediction as a JSON string."""
    return json.dumps(prediction_to_dict(prediction), indent=2)


def format_accuracy(report: AccuracyReport, console: Console | None = None) -> None:
    """Print accuracy counts and the confidence calibration curve."""
    if console is None:
        console = Console()

    console.print("[bold]Prediction Accuracy[/bold]")
    console.print(f"  Resolved predictions: {report.total_predictions}")
    if report.total_predictions == 0:
        console.print("  Accuracy:             N/A (no resolved outcomes)")
        return
    console.print(f"  Correct:              {report.correct_predictions}")
    console.print(f"  False positives:      {report.false_positives}")
    console.print(f"  False negatives:      {report.false_negatives}")
    console.print(f"  Accuracy:             {report.accuracy:.1f}%")
    if report.brier_score is not None:
        console.print(f"  Brier score:          {report.brier_score:.3f}")

    table = Table(title="Confidence Calibration")
    table.add_column("Band", width=8)
    table.add_column("Stated", justify="right", width=7)
    table.add_column("Actual", justify="right", width=7)
    table.add_column("Count", justify="right", width=6)
    for band in sorted(report.confidence_calibration, key=lambda k: int(k.split("-")[0])):
        bucket = report.confidence_calibration[band]
        table.add_row(band, f"{bucket.predicted:.0f}%", f"{bucket.actual:.0f}%", str(bucket.count))
    console.print(table)


def format_trends(report: TrendReport, console: Console | None = None) -> None:
    """Print one row per day with predicted probability and result."""
    if console is None:
        console = Console()

    if not report.trends:
        console.print("[yellow]No predictions in the selected period.[/yellow]")
        return

    table = Table(title="Recent Predictions")
    table.add_column("Date", width=10)
    table.add_column("Predicted", justify="right", width=9)
    table.add_column("Actual", width=6)
    table.add_column("Accurate", width=8)
    for point in report.trends:
        actual = "-" if point.actual is None else ("good" if point.actual else "poor")
        accurate = "-" if point.accurate is None else _mark(point.accurate)
        table.add_row(point.day.isoformat(), f"{point.predicted}%", actual, accurate)
    console.print(table)

    s = report.summary
    console.print(
        f"\n[dim]{s.accurate_days}/{s.total_days} resolved day(s) accurate "
        f"({s.accuracy_rate:.0f}%)[/dim]"
    )


def format_entry_line(entry: PredictionEntry) -> str:
    """Short single-line description of a stored entry."""
    status = "pending" if entry.outcome is None else (
        "good" if entry.outcome.success else "poor"
    )
    return (
        f"{entry.target_date.isoformat()} {entry.prediction.probability}% "
        f"{entry.prediction.recommendation.value} ({status}) {entry.id}"
    )
