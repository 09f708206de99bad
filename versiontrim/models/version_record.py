"""Version action record model.

Individual version action (planned or attempted delete) with its result.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from versiontrim.models.collection import ObjectItem, ObjectVersion
from versiontrim.models.trim_operation import RunMode


class VersionAction(Enum):
    DRY_RUN = "DryRun"
    DELETE = "Delete"

    @classmethod
    def for_mode(cls, mode: RunMode) -> "VersionAction":
        return cls.DRY_RUN if mode == RunMode.DRY_RUN else cls.DELETE


class VersionResult(Enum):
    """Outcome of a single version action."""

    PLANNED = "Planned"
    DELETED = "Deleted"
    FAILED = "Failed"
    POLICY_BLOCKED = "PolicyBlocked"


@dataclass(frozen=True)
class VersionRecord:
    """Version action record.

    Dry-run and delete-mode records share this shape so logs of the two modes
    can be compared line by line.

    Validation rules:
        - action=DryRun: result must be Planned
        - action=Delete: result cannot be Planned
        - result Failed/PolicyBlocked requires a message

    Attributes:
        timestamp: When the action was recorded (UTC)
        action: DryRun or Delete
        collection: Collection name
        reference: Object reference path/key
        version_id: Version identifier
        version_label: Version label
        version_created: Version creation timestamp
        result: Planned, Deleted, Failed or PolicyBlocked
        message: Error text or note (optional)
    """

    timestamp: datetime
    action: VersionAction
    collection: str
    reference: str
    version_id: str
    version_label: str
    version_created: datetime
    result: VersionResult
    message: Optional[str] = None

    @classmethod
    def for_version(
        cls,
        item: ObjectItem,
        version: ObjectVersion,
        action: VersionAction,
        result: VersionResult,
        timestamp: datetime,
        message: Optional[str] = None,
    ) -> "VersionRecord":
        return cls(
            timestamp=timestamp,
            action=action,
            collection=item.collection,
            reference=item.reference,
            version_id=version.version_id,
            version_label=version.label,
            version_created=version.created_at,
            result=result,
            message=message,
        )

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.action == VersionAction.DRY_RUN and self.result != VersionResult.PLANNED:
            raise ValueError("Dry-run records must have Planned result")

        if self.action == VersionAction.DELETE and self.result == VersionResult.PLANNED:
            raise ValueError("Delete records cannot have Planned result")

        if self.result in (VersionResult.FAILED, VersionResult.POLICY_BLOCKED) and not self.message:
            raise ValueError(f"{self.result.value} result requires a message")

        return True
