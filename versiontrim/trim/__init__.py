"""Historical version trimming engine.

This module discovers versioned objects, selects historical versions older
than a cutoff and deletes them in bounded, resumable batches behind safety
gates.

Classes:
    VersionTrimmer: Main orchestrator for trim runs
    SafetyGate: First-run dry run, policy cooldown and delete confirmation
    BatchScheduler: Count- and time-bounded batching
    VersionTrimExecutor: Chunked deletes with retry and failure classification
    RunStateStore: Durable first-run marker
    AuditStorage: Run audit log storage and retrieval
"""

from __future__ import annotations

from versiontrim.trim.audit import AuditStorage
from versiontrim.trim.executor import VersionTrimExecutor
from versiontrim.trim.safety import SafetyGate
from versiontrim.trim.scheduler import BatchScheduler
from versiontrim.trim.state import RunStateStore
from versiontrim.trim.trimmer import VersionTrimmer

__all__ = [
    "VersionTrimmer",
    "SafetyGate",
    "BatchScheduler",
    "VersionTrimExecutor",
    "RunStateStore",
    "AuditStorage",
]
