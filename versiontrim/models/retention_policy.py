"""Tenant retention policy model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class RetentionPolicy:
    """Tenant-wide version retention policy.

    The trimmer only displays and forwards these values. Eligibility is
    computed from the explicit age cutoff, and the store enforces any hard
    retention rules on its own.

    Attributes:
        auto_expiration_enabled: Store trims versions automatically
        max_major_versions: Maximum major versions retained (None = unlimited)
        expire_after_days: Versions older than this expire (None = never)
        last_modified_utc: When the policy was last changed (None = unknown)
    """

    auto_expiration_enabled: bool = False
    max_major_versions: Optional[int] = None
    expire_after_days: Optional[int] = None
    last_modified_utc: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert policy to its stored document form (without timestamp)."""
        return {
            "AutoExpirationEnabled": self.auto_expiration_enabled,
            "MaxMajorVersions": self.max_major_versions,
            "ExpireAfterDays": self.expire_after_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], last_modified_utc: Optional[datetime] = None) -> "RetentionPolicy":
        return cls(
            auto_expiration_enabled=bool(data.get("AutoExpirationEnabled", False)),
            max_major_versions=data.get("MaxMajorVersions"),
            expire_after_days=data.get("ExpireAfterDays"),
            last_modified_utc=last_modified_utc,
        )

    def validate(self) -> bool:
        """Validate policy values.

        Returns:
            True if validation passes

        Raises:
            ValueError: If a limit is negative
        """
        if self.max_major_versions is not None and self.max_major_versions < 0:
            raise ValueError("max_major_versions cannot be negative")
        if self.expire_after_days is not None and self.expire_after_days < 0:
            raise ValueError("expire_after_days cannot be negative")
        return True
