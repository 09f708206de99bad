"""Before/after storage size measurement."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from versiontrim.models.collection import Collection
from versiontrim.models.trim_operation import SizePhase, SizeSnapshot
from versiontrim.store.base import VersionStore
from versiontrim.trim.sinks import SizeLog

logger = logging.getLogger(__name__)


def reclaimed(before: int, after: int) -> int:
    """Bytes reclaimed. Negative when other writers added data during the run."""
    return before - after


class SizeAccountant:
    """Best-effort storage snapshots for a run.

    Sums every stored version of each target collection at one point in time.
    Concurrent writers are not accounted for.

    Attributes:
        store: Versioned object store
        run_id: Identifier correlating before/after rows
        size_log: Size CSV sink
    """

    def __init__(
        self,
        store: VersionStore,
        run_id: str,
        size_log: SizeLog,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.run_id = run_id
        self.size_log = size_log
        self._now = now

    def snapshot(self, collections: list[Collection], phase: SizePhase) -> int:
        """Measure the target collections and log one row per collection.

        Returns:
            Total bytes across all collections
        """
        total = 0
        for collection in collections:
            size = self.store.collection_size(collection)
            snapshot = SizeSnapshot(
                run_id=self.run_id,
                phase=phase,
                collection=collection.name,
                total_bytes=size,
                taken_at=self._now(),
            )
            self.size_log.write(snapshot, self.store.base_url)
            logger.info(f"{phase.value} size of {collection.name}: {snapshot.megabytes} MB")
            total += size
        return total
