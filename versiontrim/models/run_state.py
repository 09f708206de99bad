"""Persisted run state model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

STATE_FIELD = "LastDryRunUtc"


@dataclass
class RunState:
    """Marker recording that a run has completed at least once.

    The field name is kept as "LastDryRunUtc" for compatibility with existing
    state files, although every completed run (dry or not) updates it.

    Attributes:
        last_run_utc: UTC timestamp of the last completed run
    """

    last_run_utc: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {STATE_FIELD: self.last_run_utc.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunState":
        """Create state from its JSON form.

        Raises:
            ValueError: If the timestamp field is missing or malformed
        """
        raw = data.get(STATE_FIELD)
        if not raw:
            raise ValueError(f"State file is missing '{STATE_FIELD}'")

        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return cls(last_run_utc=parsed)
