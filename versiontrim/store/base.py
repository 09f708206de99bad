"""Versioned object store interface.

The trimming engine talks to the store only through ``VersionStore``. The
shipped implementation is ``versiontrim.store.s3.S3VersionStore``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional

from versiontrim.models.collection import Collection, ObjectItem, ObjectVersion
from versiontrim.models.retention_policy import RetentionPolicy

# Error codes the store uses when refusing a delete for retention reasons
POLICY_ERROR_CODES = frozenset({"ObjectLocked", "RetentionViolation", "LegalHold"})

# Best-effort fallback when the store only reports a generic code (e.g. AccessDenied)
POLICY_MESSAGE_PATTERN = re.compile(r"retention|hold|record|object lock", re.IGNORECASE)


def is_policy_blocked(code: Optional[str], message: Optional[str]) -> bool:
    """Whether a store error reads as a retention refusal.

    Structured codes win; the message pattern is a heuristic for stores
    that report retention refusals as generic access errors.
    """
    if code in POLICY_ERROR_CODES:
        return True
    return bool(POLICY_MESSAGE_PATTERN.search(message or ""))


class StoreError(Exception):
    """Failure talking to the versioned object store.

    Attributes:
        code: Store error code when available (e.g. "SlowDown")
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class DeleteFailure:
    """A version the store refused or failed to delete.

    Attributes:
        version_id: Version that was not deleted
        code: Structured error code from the store
        message: Error text from the store
    """

    version_id: str
    code: str
    message: str

    @property
    def is_policy_blocked(self) -> bool:
        """Whether the store refused the delete because of a retention rule."""
        return is_policy_blocked(self.code, self.message)


class VersionStore(ABC):
    """Remote versioned-object store collaborator."""

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Endpoint/base URL of the current session."""

    @abstractmethod
    def list_collections(self) -> list[Collection]:
        """Return every collection visible to the session."""

    @abstractmethod
    def iter_item_pages(self, collection: Collection, page_size: int) -> Iterator[list[ObjectItem]]:
        """Yield pages of items in a collection.

        Raises:
            StoreError: If a page cannot be fetched
        """

    @abstractmethod
    def list_versions(self, item: ObjectItem) -> list[ObjectVersion]:
        """Return all stored versions of an item.

        Raises:
            StoreError: If version metadata cannot be loaded
        """

    @abstractmethod
    def delete_versions(self, item: ObjectItem, versions: list[ObjectVersion]) -> list[DeleteFailure]:
        """Delete versions of an item in one request.

        Returns:
            Versions that were not deleted (empty list on full success)

        Raises:
            StoreError: If the whole request failed (throttling, timeout)
        """

    @abstractmethod
    def collection_size(self, collection: Collection) -> int:
        """Return total bytes stored in a collection, all versions included."""

    @abstractmethod
    def get_retention_policy(self) -> Optional[RetentionPolicy]:
        """Return the tenant retention policy, or None if none is configured."""

    @abstractmethod
    def update_retention_policy(self, policy: RetentionPolicy) -> RetentionPolicy:
        """Store a new tenant retention policy and return it with its change time."""
