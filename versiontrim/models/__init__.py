"""Data models for collections, versions, run state and trim operations."""

from __future__ import annotations

from versiontrim.models.collection import Collection, ObjectItem, ObjectVersion
from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.models.run_state import RunState
from versiontrim.models.trim_operation import RunMode, RunStatus, SizePhase, SizeSnapshot, TrimOperation
from versiontrim.models.version_record import VersionAction, VersionRecord, VersionResult

__all__ = [
    "Collection",
    "ObjectItem",
    "ObjectVersion",
    "RetentionPolicy",
    "RunMode",
    "RunState",
    "RunStatus",
    "SizePhase",
    "SizeSnapshot",
    "TrimOperation",
    "VersionAction",
    "VersionRecord",
    "VersionResult",
]
