"""Historical prediction and outcome tracker over a single key-value blob.

All entries live in one JSON array stored under one key. Every operation
is a read-modify-write of that array and assumes a single writer.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone, tzinfo

from pydantic import TypeAdapter, ValidationError

from katabatic.common.errors import NotFoundError, PersistenceReadError
from katabatic.common.storage import KeyValueStore, SqliteStore
from katabatic.common.types import calendar_date, to_epoch_ms
from katabatic.config import Settings, get_settings
from katabatic.signals.models import (
    AccuracyReport,
    CalibrationBucket,
    DateBreakdown,
    DebugStats,
    DedupeResult,
    Outcome,
    Prediction,
    PredictionEntry,
    TrendPoint,
    TrendReport,
    TrendSummary,
    WeatherConditions,
)

logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(list[PredictionEntry])


def is_prediction_accurate(prediction: Prediction, outcome: Outcome) -> bool:
    """A prediction is accurate when its good/bad call matches the outcome."""
    return prediction.predicted_good == outcome.success


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _latest(entries: list[PredictionEntry]) -> PredictionEntry:
    return max(entries, key=lambda e: e.created_at)


class PredictionTracker:
    """Persists predictions per calendar date and scores them against outcomes.

    Args:
        store: key-value persistence collaborator
        update_threshold: minimum probability change (points) that replaces
            an existing prediction for the same date
        max_entries: retention cap; the oldest target dates are dropped first
        tz: reference zone used to turn datetimes into calendar dates
        storage_key: key the JSON array is stored under
        clock: returns the current aware datetime
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        update_threshold: int = 15,
        max_entries: int = 100,
        tz: tzinfo = timezone.utc,
        storage_key: str = "wind_predictions",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._update_threshold = update_threshold
        self._max_entries = max_entries
        self._tz = tz
        self._key = storage_key
        self._clock = clock or _utcnow

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, store: KeyValueStore | None = None,
    ) -> PredictionTracker:
        """Build a tracker from application settings (SQLite store by default)."""
        settings = settings or get_settings()
        return cls(
            store if store is not None else SqliteStore(settings.db_path),
            update_threshold=settings.resolved_update_threshold,
            max_entries=settings.max_stored_predictions,
            tz=settings.tz,
            storage_key=settings.storage_key,
        )

    @property
    def update_threshold(self) -> int:
        return self._update_threshold

    async def _load(self) -> list[PredictionEntry]:
        """Read all entries. Unreadable or corrupt data is treated as empty."""
        try:
            raw = await self._store.get(self._key)
        except PersistenceReadError as exc:
            logger.warning("Failed to read predictions, starting empty: %s", exc)
            return []
        if not raw:
            return []
        try:
            return _ENTRIES.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored predictions are corrupt (%d errors), starting empty",
                exc.error_count(),
            )
            return []

    async def _save(self, entries: list[PredictionEntry]) -> None:
        await self._store.set(self._key, _ENTRIES.dump_json(entries).decode())

    async def all_entries(self) -> list[PredictionEntry]:
        """Get all stored entries."""
        return await self._load()

    async def log_prediction(
        self,
        target_date: date | datetime,
        prediction: Prediction,
        conditions: WeatherConditions | None = None,
    ) -> str:
        """Record a prediction for a calendar date. Returns the entry id.

        If the date already has an entry, it is replaced in place only when the
        probability moved by at least the update threshold; otherwise the
        existing entry is left untouched.

        Raises:
            PersistenceWriteError: the store rejected the write
        """
        day = calendar_date(target_date, self._tz)
        entries = await self._load()

        same_day = [e for e in entries if e.target_date == day]
        if same_day:
            existing = _latest(same_day)
            diff = abs(existing.prediction.probability - prediction.probability)
            if diff < self._update_threshold:
                logger.debug(
                    "Keeping prediction %s for %s (change %d < %d)",
                    existing.id, day, diff, self._update_threshold,
                )
                return existing.id

            logger.info(
                "Updating prediction for %s: %d%% -> %d%% (threshold %d)",
                day, existing.prediction.probability, prediction.probability,
                self._update_threshold,
            )
            existing.prediction = prediction
            existing.created_at = self._clock()
            if conditions is not None:
                existing.conditions = conditions
            await self._save(entries)
            return existing.id

        now = self._clock()
        entry = PredictionEntry(
            id=f"{day.isoformat()}-{to_epoch_ms(now)}",
            created_at=now,
            target_date=day,
            prediction=prediction,
            conditions=conditions,
        )
        if len(entries) >= self._max_entries:
            # The new entry is always kept, even when its date is the oldest
            entries.sort(key=lambda e: (e.target_date, e.created_at))
            dropped = len(entries) - self._max_entries + 1
            del entries[:dropped]
            logger.debug("Dropped %d oldest prediction(s)", dropped)
        entries.append(entry)

        await self._save(entries)
        logger.info(
            "Logged prediction %s: %d%% (%s)",
            entry.id, prediction.probability, prediction.confidence.value,
        )
        return entry.id

    async def update_outcome(self, entry_id: str, outcome: Outcome) -> None:
        """Attach (or overwrite) the observed outcome of an entry.

        Raises:
            NotFoundError: no entry has this id
            PersistenceWriteError: the store rejected the write
        """
        entries = await self._load()
        entry = next((e for e in entries if e.id == entry_id), None)
        if entry is None:
            raise NotFoundError(entry_id)

        entry.outcome = outcome
        await self._save(entries)
        logger.info(
            "Recorded outcome for %s: predicted %d%%, success=%s, accurate=%s",
            entry_id, entry.prediction.probability, outcome.success,
            is_prediction_accurate(entry.prediction, outcome),
        )

    async def entries_for_date(self, day: date | datetime) -> list[PredictionEntry]:
        """Get all entries targeting a calendar date."""
        target = calendar_date(day, self._tz)
        return [e for e in await self._load() if e.target_date == target]

    async def find_pending_outcome(self, day: date | datetime) -> PredictionEntry | None:
        """Most recent entry for *day* that has no outcome yet."""
        pending = [e for e in await self.entries_for_date(day) if e.outcome is None]
        if not pending:
            return None
        return _latest(pending)

    async def accuracy_report(self) -> AccuracyReport:
        """Accuracy counts, Brier score and calibration over resolved entries."""
        entries = await self._load()
        resolved = [e for e in entries if e.outcome is not None]
        if not resolved:
            return AccuracyReport()

        report = AccuracyReport(total_predictions=len(resolved))
        bands: dict[str, list[tuple[int, bool]]] = defaultdict(list)
        squared_errors = []

        for entry, outcome in ((e, e.outcome) for e in resolved if e.outcome is not None):
            predicted_good = entry.prediction.predicted_good

            if predicted_good == outcome.success:
                report.correct_predictions += 1
            elif predicted_good:
                report.false_positives += 1
            else:
                report.false_negatives += 1

            score = entry.prediction.confidence_score
            low = (score // 10) * 10
            bands[f"{low}-{low + 9}"].append((score, outcome.success))
            squared_errors.append(
                (entry.prediction.probability / 100 - float(outcome.success)) ** 2
            )

        report.accuracy = report.correct_predictions / len(resolved) * 100
        report.brier_score = sum(squared_errors) / len(squared_errors)
        for band, members in bands.items():
            report.confidence_calibration[band] = CalibrationBucket(
                predicted=sum(score for score, _ in members) / len(members),
                actual=sum(100 for _, success in members if success) / len(members),
                count=len(members),
            )
        return report

    async def trends(self, days: int = 7) -> TrendReport:
        """Daily predicted-versus-actual for target dates in the last *days* days.

        Uses the most recently created entry for each date. An unreadable
        store yields an empty report.
        """
        entries = await self._load()

        cutoff = calendar_date(self._clock(), self._tz) - timedelta(days=days)
        by_day: dict[date, list[PredictionEntry]] = defaultdict(list)
        for entry in entries:
            if entry.target_date >= cutoff:
                by_day[entry.target_date].append(entry)

        points = []
        for day in sorted(by_day):
            latest = _latest(by_day[day])
            outcome = latest.outcome
            points.append(TrendPoint(
                day=day,
                predicted=latest.prediction.probability,
                actual=outcome.success if outcome is not None else None,
                accurate=(
                    is_prediction_accurate(latest.prediction, outcome)
                    if outcome is not None else None
                ),
            ))

        completed = [p for p in points if p.actual is not None]
        accurate = sum(1 for p in completed if p.accurate)
        summary = TrendSummary(
            total_days=len(completed),
            accurate_days=accurate,
            accuracy_rate=accurate / len(completed) * 100 if completed else 0.0,
        )
        return TrendReport(trends=points, summary=summary)

    async def deduplicate(self) -> DedupeResult:
        """Collapse to one entry per date, keeping the most recently created.

        Raises:
            PersistenceWriteError: the store rejected the write
        """
        entries = await self._load()
        by_day: dict[date, PredictionEntry] = {}
        for entry in entries:
            current = by_day.get(entry.target_date)
            if current is None or entry.created_at > current.created_at:
                by_day[entry.target_date] = entry

        kept = [by_day[day] for day in sorted(by_day)]
        removed = len(entries) - len(kept)
        if removed > 0:
            await self._save(kept)
            logger.info(
                "Removed %d duplicate prediction(s), %d remain", removed, len(kept),
            )
        return DedupeResult(removed=removed, kept=len(kept))

    async def debug_stats(self) -> DebugStats:
        """Per-date entry counts, for spotting duplicates."""
        entries = await self._load()
        by_day: dict[date, list[PredictionEntry]] = defaultdict(list)
        for entry in entries:
            by_day[entry.target_date].append(entry)

        breakdown = [
            DateBreakdown(
                day=day,
                count=len(group),
                entries=[(e.id, e.created_at, e.prediction.probability) for e in group],
            )
            for day, group in sorted(by_day.items())
        ]
        return DebugStats(
            total_predictions=len(entries),
            unique_dates=len(by_day),
            duplicates=len(entries) - len(by_day),
            date_breakdown=breakdown,
        )

    async def clear(self) -> None:
        """Delete all stored entries.

        Raises:
            PersistenceWriteError: the store rejected the removal
        """
        await self._store.remove(self._key)
        logger.info("Cleared all prediction data")
