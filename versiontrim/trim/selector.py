"""Selection of deletable historical versions."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from versiontrim.models.collection import ObjectVersion


def compute_cutoff(now: datetime, older_than_days: int) -> datetime:
    """Return the trim boundary; computed once per run and held constant."""
    if older_than_days < 0:
        raise ValueError("older_than_days cannot be negative")
    return now - timedelta(days=older_than_days)


def select_deletable(versions: Iterable[ObjectVersion], cutoff: datetime) -> list[ObjectVersion]:
    """Return versions that are not current and were created strictly before cutoff."""
    return [v for v in versions if not v.is_current and v.created_at < cutoff]
