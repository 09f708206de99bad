"""Audit storage for trim runs.

Stores and retrieves run summaries in YAML format for later review.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from versiontrim.models.trim_operation import TrimOperation


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class AuditStorage:
    """Run audit log storage and retrieval.

    Stores one YAML file per run, organized by year/month.

    Storage structure:
        ~/.versiontrim/audit-logs/
            2026/
                10/
                    run-run_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.versiontrim/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".versiontrim" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_run(self, operation: TrimOperation) -> Path:
        """Write the summary of a finished run.

        Overwrites an existing log with the same run ID.

        Returns:
            Path of the written audit file
        """
        year_month_dir = self.storage_dir / str(operation.started_at.year) / f"{operation.started_at.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "version_trim",
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            "run": {
                "run_id": operation.run_id,
                "mode": operation.mode.value,
                "status": operation.status.value,
                "base_url": operation.base_url,
                "collections": operation.collections,
                "older_than_days": operation.older_than_days,
                "cutoff": _iso(operation.cutoff),
                "started_at": _iso(operation.started_at),
                "completed_at": _iso(operation.completed_at),
                "duration_seconds": operation.duration_seconds,
                "total_items": operation.total_items,
                "batches_run": operation.batches_run,
                "files_scanned": operation.files_scanned,
                "files_with_eligible": operation.files_with_eligible,
                "versions_planned": operation.versions_planned,
                "versions_deleted": operation.versions_deleted,
                "versions_failed": operation.versions_failed,
                "versions_policy_blocked": operation.versions_policy_blocked,
                "items_skipped_error": operation.items_skipped_error,
                "size_before": operation.size_before,
                "size_after": operation.size_after,
                "reclaimed_bytes": operation.reclaimed_bytes,
            },
        }

        audit_file = year_month_dir / f"run-{operation.run_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.dump(audit_data, f, default_flow_style=False, sort_keys=False)
        return audit_file

    def get_run(self, run_id: str) -> Optional[dict]:
        """Retrieve a run audit log by ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/run-{run_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)
        return None

    def query_runs(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> list[dict]:
        """Query runs started within a date range.

        Args:
            since: Start (inclusive, timezone-aware), None for all
            until: End (inclusive, timezone-aware), None for all

        Returns:
            Audit logs ordered by start time
        """
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/run-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            started_at = datetime.fromisoformat(audit_data["run"]["started_at"])
            if since and started_at < since:
                continue
            if until and started_at > until:
                continue

            results.append(audit_data)

        results.sort(key=lambda data: data["run"]["started_at"])
        return results
