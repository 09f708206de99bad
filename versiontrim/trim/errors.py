"""Run-aborting errors raised by the trimming engine.

Every exception here stops the run before any version is deleted. Per-item
and per-chunk failures are counted instead of raised.
"""

from __future__ import annotations

from typing import Optional


class TrimError(Exception):
    """Base class for fatal trimming errors."""


class RunBlocked(TrimError):
    """The retention policy changed too recently to trim safely."""

    def __init__(self, minutes_since_change: int, cooldown_minutes: int) -> None:
        self.minutes_since_change = minutes_since_change
        self.cooldown_minutes = cooldown_minutes
        super().__init__(
            f"Retention policy changed {minutes_since_change} minute(s) ago; "
            f"wait until {cooldown_minutes} minutes have passed before trimming"
        )


class ConfirmationDeclined(TrimError):
    """The operator did not supply the delete confirmation phrase."""

    def __init__(self) -> None:
        super().__init__("Delete confirmation phrase not accepted; run aborted")


class CollectionNotFound(TrimError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Collection '{name}' not found")


class NoTargetCollections(TrimError):
    def __init__(self) -> None:
        super().__init__("No target collections resolved")


class EnumerationError(TrimError):
    """A page of items could not be fetched; the collection is incomplete."""

    def __init__(self, collection: str, cause: Optional[Exception] = None) -> None:
        self.collection = collection
        message = f"Enumeration of '{collection}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class NoItemsDiscovered(TrimError):
    def __init__(self) -> None:
        super().__init__("No files discovered in target collections")
