"""Durable run state file."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from versiontrim.models.run_state import RunState

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"


class RunStateStore:
    """Reads and overwrites the single run-state JSON object.

    Attributes:
        path: State file location
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[RunState]:
        """Return the recorded state, or None if no run has completed.

        An unreadable state file is treated as "no prior run", which keeps
        the next run in dry-run mode.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return RunState.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

    def has_prior_run(self) -> bool:
        return self.load() is not None

    def save(self, completed_at: datetime) -> RunState:
        """Overwrite the state file with the completion time of a run."""
        state = RunState(last_run_utc=completed_at)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f)
        tmp_path.replace(self.path)

        logger.info(f"Recorded completed run at {state.to_dict()}")
        return state
