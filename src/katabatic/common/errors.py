"""Exception hierarchy for the prediction engine."""

from __future__ import annotations


class KatabaticError(Exception):
    """Base class for all engine errors."""


class DataGapError(KatabaticError):
    """A forecast window has no usable points.

    Raised by window helpers and handled inside the factor analyzers,
    which substitute their documented fallbacks.
    """


class NotFoundError(KatabaticError, KeyError):
    """No prediction entry with the requested id."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"Prediction not found: {self.entry_id}"


class PersistenceError(KatabaticError):
    """The key-value store failed."""


class PersistenceReadError(PersistenceError):
    """Reading from the store failed."""


class PersistenceWriteError(PersistenceError):
    """Writing to (or removing from) the store failed."""
