"""Versioned object store collaborators."""

from __future__ import annotations

from versiontrim.store.base import DeleteFailure, StoreError, VersionStore, is_policy_blocked
from versiontrim.store.s3 import S3VersionStore

__all__ = [
    "VersionStore",
    "StoreError",
    "DeleteFailure",
    "S3VersionStore",
    "is_policy_blocked",
]
