"""Append-only CSV sinks for version actions and size snapshots.

Both sinks write a header row only when the file is created. A sink built
with ``path=None`` discards records, so callers never need to check whether
logging was requested.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Optional

from versiontrim.models.trim_operation import SizeSnapshot
from versiontrim.models.version_record import VersionRecord

ACTION_FIELDS = [
    "Timestamp",
    "Action",
    "Collection",
    "ObjectReference",
    "VersionId",
    "VersionLabel",
    "VersionCreated",
    "Result",
    "Message",
]

SIZE_FIELDS = ["Timestamp", "RunId", "BaseUrl", "Collection", "Phase", "Bytes", "MB"]


def _timestamp(value) -> str:
    return value.isoformat()


class _CsvSink:
    fields: list[str] = []

    def __init__(self, path: Optional[str]) -> None:
        self.path = Path(path).expanduser() if path else None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def _append(self, row: list) -> None:
        if self.path is None:
            return

        is_new = not self.path.exists() or self.path.stat().st_size == 0
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            if is_new:
                writer.writerow(self.fields)
            writer.writerow(row)


class VersionActionLog(_CsvSink):
    """One row per planned, deleted or failed version."""

    fields = ACTION_FIELDS

    def write(self, record: VersionRecord) -> None:
        self._append(
            [
                _timestamp(record.timestamp),
                record.action.value,
                record.collection,
                record.reference,
                record.version_id,
                record.version_label,
                _timestamp(record.version_created),
                record.result.value,
                record.message or "",
            ]
        )


class SizeLog(_CsvSink):
    """One row per collection per size snapshot."""

    fields = SIZE_FIELDS

    def write(self, snapshot: SizeSnapshot, base_url: str) -> None:
        self._append(
            [
                _timestamp(snapshot.taken_at),
                snapshot.run_id,
                base_url,
                snapshot.collection,
                snapshot.phase.value,
                snapshot.total_bytes,
                f"{snapshot.megabytes:.2f}",
            ]
        )
