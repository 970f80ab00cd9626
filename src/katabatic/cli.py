"""Typer CLI: katabatic analyze, verify, stats, trends, dedupe, list, clear."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from katabatic.config import get_settings
from katabatic.signals.tracker import PredictionTracker

app = typer.Typer(
    name="katabatic",
    help="Dawn katabatic wind predictions and accuracy tracking",
    no_args_is_help=True,
)
console = Console()


def _tracker() -> PredictionTracker:
    return PredictionTracker.from_settings()


def _parse_criteria(pairs: list[str]) -> dict[str, object]:
    """Turn KEY=VALUE options into criteria overrides (windows as START-END)."""
    overrides: dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}")
        key = key.strip().replace("-", "_")
        if key.endswith("_window"):
            start, _, end = value.partition("-")
            overrides[key] = {"start": start, "end": end}
        else:
            overrides[key] = value
    return overrides


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def analyze(
    forecast: Path = typer.Argument(help="Forecast bundle JSON file"),
    output: str = typer.Option(
        "table", "--output", "-o",
        help="Output format: table, json",
    ),
    log: bool = typer.Option(
        False, "--log",
        help="Store the prediction for its target date",
    ),
    criteria: Optional[list[str]] = typer.Option(
        None, "--criteria", "-c",
        help="Override a criterion, e.g. max_precipitation_probability=30",
    ),
) -> None:
    """Analyse a forecast and print the katabatic wind prediction."""
    from katabatic.signals.analyzer import analyze_prediction, snapshot_conditions
    from katabatic.signals.formatters import format_json, format_prediction
    from katabatic.weather.loader import load_forecast_bundle

    settings = get_settings()
    try:
        bundle = load_forecast_bundle(forecast)
        prediction = analyze_prediction(bundle, _parse_criteria(criteria or []), settings.tz)
    except (OSError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    if output == "json":
        console.print(format_json(prediction), soft_wrap=True)
    else:
        format_prediction(prediction, console)

    if not log:
        return

    if prediction.best_time_window is not None:
        target = prediction.best_time_window.start.date()
    else:
        target = datetime.now(settings.tz).date() + timedelta(days=1)

    async def _run() -> str:
        tracker = _tracker()
        return await tracker.log_prediction(
            target, prediction, snapshot_conditions(bundle, prediction),
        )

    entry_id = asyncio.run(_run())
    console.print(f"[dim]Logged as {entry_id}[/dim]")


@app.command()
def verify(
    observations: Path = typer.Argument(help="Observed wind readings JSON file"),
    day: Optional[str] = typer.Option(
        None, "--date", "-d",
        help="Dawn to grade (YYYY-MM-DD), defaults to today",
    ),
    source: str = typer.Option(
        "soda-lake", "--source",
        help="Observation source: soda-lake, standley-lake, user-report",
    ),
) -> None:
    """Grade a stored prediction against observed dawn winds."""
    from katabatic.forecasting.base import DEFAULT_CRITERIA
    from katabatic.signals.models import ResultType
    from katabatic.signals.outcomes import classify_result, outcome_from_observations
    from katabatic.weather.loader import load_observations

    settings = get_settings()
    target = date.fromisoformat(day) if day else datetime.now(settings.tz).date()
    try:
        readings = load_observations(observations)
    except (OSError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    async def _run() -> None:
        tracker = _tracker()
        entry = await tracker.find_pending_outcome(target)
        if entry is None:
            console.print(f"[yellow]No pending prediction for {target.isoformat()}.[/yellow]")
            return

        outcome = outcome_from_observations(
            readings, target, DEFAULT_CRITERIA.prediction_window, settings.tz,
            success_mph=settings.success_wind_mph,
            success_fraction=settings.success_fraction,
            source=source,
        )
        if outcome is None:
            console.print("[yellow]No observations inside the dawn window.[/yellow]")
            return

        await tracker.update_outcome(entry.id, outcome)
        result = classify_result(entry.prediction, outcome)
        color = "green" if result is ResultType.CORRECT else "red"
        console.print(
            f"Predicted {entry.prediction.probability}%, observed "
            f"{outcome.wind_speed:.1f} mph avg ({'good' if outcome.success else 'poor'}) "
            f"-> [{color}]{result.value.replace('_', ' ')}[/{color}]"
        )

    asyncio.run(_run())


@app.command()
def stats() -> None:
    """Show prediction accuracy and confidence calibration."""
    from katabatic.signals.formatters import format_accuracy

    async def _run() -> None:
        report = await _tracker().accuracy_report()
        format_accuracy(report, console)

    asyncio.run(_run())


@app.command()
def trends(
    days: int = typer.Option(7, "--days", help="Number of days to look back"),
) -> None:
    """Show recent daily predictions against outcomes."""
    from katabatic.signals.formatters import format_trends

    async def _run() -> None:
        report = await _tracker().trends(days)
        format_trends(report, console)

    asyncio.run(_run())


@app.command()
def dedupe() -> None:
    """Keep only the most recent prediction for each date."""

    async def _run() -> None:
        result = await _tracker().deduplicate()
        console.print(f"Removed {result.removed} duplicate(s), kept {result.kept}.")

    asyncio.run(_run())


@app.command(name="list")
def list_entries() -> None:
    """List stored predictions."""
    from katabatic.signals.formatters import format_entry_line

    async def _run() -> None:
        tracker = _tracker()
        entries = await tracker.all_entries()
        if not entries:
            console.print("[yellow]No stored predictions.[/yellow]")
            return
        for entry in sorted(entries, key=lambda e: e.target_date):
            console.print(format_entry_line(entry))

        debug = await tracker.debug_stats()
        if debug.duplicates:
            console.print(
                f"[yellow]{debug.duplicates} duplicate(s) across "
                f"{debug.unique_dates} date(s); run 'katabatic dedupe'.[/yellow]"
            )

    asyncio.run(_run())


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", help="Confirm deletion"),
) -> None:
    """Delete all stored predictions."""
    if not yes:
        console.print("[yellow]Refusing to clear without --yes.[/yellow]")
        raise typer.Exit(code=1)

    async def _run() -> None:
        await _tracker().clear()

    asyncio.run(_run())
    console.print("Cleared all predictions.")


if __name__ == "__main__":
    app()
