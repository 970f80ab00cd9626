"""Shared type aliases and time helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import TypeAlias

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]

# Epoch milliseconds, as delivered by the weather provider
EpochMs: TypeAlias = int


def from_epoch_ms(timestamp: EpochMs, tz: tzinfo) -> datetime:
    """Convert epoch milliseconds to an aware datetime in *tz*."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).astimezone(tz)


def to_epoch_ms(moment: datetime) -> EpochMs:
    """Convert an aware datetime to epoch milliseconds."""
    return int(round(moment.timestamp() * 1000))


def calendar_date(value: date | datetime, tz: tzinfo) -> date:
    """Calendar day of *value* in the reference zone *tz*.

    Naive datetimes are taken to already be in *tz*. Plain dates pass through.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value
