"""Trim operation model.

Represents a complete trimming run with its mode, counters and size accounting.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RunMode(Enum):
    """Effective run mode decided by the safety gate."""

    DRY_RUN = "DryRun"
    DELETE = "Delete"


class RunStatus(Enum):
    """Run outcome.

    planned: dry run finished (nothing mutated)
    completed: delete run finished with no failures
    partial: delete run finished with failed or policy-blocked versions
    stopped: operator quit between batches
    failed: fatal error during discovery
    """

    PLANNED = "planned"
    COMPLETED = "completed"
    PARTIAL = "partial"
    STOPPED = "stopped"
    FAILED = "failed"


class SizePhase(Enum):
    BEFORE = "Before"
    AFTER = "After"


@dataclass(frozen=True)
class SizeSnapshot:
    """Total bytes across a collection at one point of a run.

    Attributes:
        run_id: Run identifier used to correlate before/after rows
        phase: Before or After the batch loop
        collection: Collection name
        total_bytes: Sum of all stored version sizes
        taken_at: When the measurement finished
    """

    run_id: str
    phase: SizePhase
    collection: str
    total_bytes: int
    taken_at: datetime

    @property
    def megabytes(self) -> float:
        return round(self.total_bytes / (1024 * 1024), 2)


@dataclass
class TrimOperation:
    """Trim run entity and end-of-run summary.

    Attributes:
        run_id: Unique identifier for the run
        mode: Effective mode (dry run or delete)
        status: Run outcome
        older_than_days: Age threshold used for the cutoff
        cutoff: Versions created before this instant were eligible
        collections: Target collection names
        base_url: Store endpoint the run talked to
        files_scanned: Items whose versions were inspected
        files_with_eligible: Items with at least one eligible version
        versions_planned: Versions recorded as planned (dry run)
        versions_deleted: Versions deleted (delete mode)
        versions_failed: Versions that failed after all retries
        versions_policy_blocked: Versions the store refused for policy reasons
        items_skipped_error: Items whose versions could not be loaded
        total_items: Items discovered by enumeration
        batches_run: Batches started
        size_before: Bytes before the run (None if not measured)
        size_after: Bytes after the run (None if not measured)
        started_at: When the run started
        completed_at: When the run finished (optional)
    """

    run_id: str
    mode: RunMode
    status: RunStatus
    older_than_days: int
    cutoff: datetime
    started_at: datetime
    collections: list[str]
    base_url: Optional[str] = None
    files_scanned: int = 0
    files_with_eligible: int = 0
    versions_planned: int = 0
    versions_deleted: int = 0
    versions_failed: int = 0
    versions_policy_blocked: int = 0
    items_skipped_error: int = 0
    total_items: int = 0
    batches_run: int = 0
    size_before: Optional[int] = None
    size_after: Optional[int] = None
    completed_at: Optional[datetime] = None

    @property
    def reclaimed_bytes(self) -> Optional[int]:
        """Bytes reclaimed (before - after); negative values are kept as-is."""
        if self.size_before is None or self.size_after is None:
            return None
        return self.size_before - self.size_after

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def is_dry_run(self) -> bool:
        return self.mode == RunMode.DRY_RUN

    def finalize(self, completed_at: datetime, stopped: bool = False) -> None:
        """Set the final status and completion time.

        Args:
            completed_at: When the run finished
            stopped: True when the operator quit between batches
        """
        self.completed_at = completed_at

        if stopped:
            self.status = RunStatus.STOPPED
        elif self.mode == RunMode.DRY_RUN:
            self.status = RunStatus.PLANNED
        elif self.versions_failed or self.versions_policy_blocked:
            self.status = RunStatus.PARTIAL
        else:
            self.status = RunStatus.COMPLETED

        self.validate()

    def validate(self) -> bool:
        """Validate operation invariants.

        Validation rules:
            - dry runs never delete
            - delete runs never plan
            - files_with_eligible <= files_scanned
            - completed_at must not precede started_at

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.mode == RunMode.DRY_RUN and self.versions_deleted:
            raise ValueError("Dry run cannot delete versions")

        if self.mode == RunMode.DELETE and self.versions_planned:
            raise ValueError("Delete run cannot record planned versions")

        if self.files_with_eligible > self.files_scanned:
            raise ValueError("More files with eligible versions than files scanned")

        if self.completed_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        return True
