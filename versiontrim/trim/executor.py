"""Per-item version trimming with chunked, retried deletes.

Each item is handled on its own: a failure to load its versions skips the
item, and a chunk that keeps failing is recorded and left behind. Neither
stops the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from versiontrim.models.collection import ObjectItem, ObjectVersion
from versiontrim.models.trim_operation import RunMode
from versiontrim.models.version_record import VersionAction, VersionRecord, VersionResult
from versiontrim.store.base import DeleteFailure, StoreError, VersionStore, is_policy_blocked
from versiontrim.trim.retry import RetryPolicy
from versiontrim.trim.selector import select_deletable
from versiontrim.trim.sinks import VersionActionLog

logger = logging.getLogger(__name__)

DEFAULT_VERSION_BATCH_SIZE = 50
DEFAULT_CHUNK_PAUSE_MS = 250


@dataclass
class ItemOutcome:
    """Counters for one processed item."""

    loaded: bool = True
    eligible: int = 0
    planned: int = 0
    deleted: int = 0
    failed: int = 0
    policy_blocked: int = 0
    records: list[VersionRecord] = field(default_factory=list)


def chunked(versions: list[ObjectVersion], size: int) -> list[list[ObjectVersion]]:
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [versions[i : i + size] for i in range(0, len(versions), size)]


class VersionTrimExecutor:
    """Plans or deletes the eligible versions of single items.

    Attributes:
        store: Versioned object store
        action_log: Version action CSV sink
        retry_policy: Backoff policy for delete chunks
        version_batch_size: Versions per delete request
        chunk_pause_ms: Pause between delete requests
    """

    def __init__(
        self,
        store: VersionStore,
        action_log: VersionActionLog,
        retry_policy: RetryPolicy,
        version_batch_size: int = DEFAULT_VERSION_BATCH_SIZE,
        chunk_pause_ms: int = DEFAULT_CHUNK_PAUSE_MS,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.action_log = action_log
        self.retry_policy = retry_policy
        self.version_batch_size = version_batch_size
        self.chunk_pause_ms = chunk_pause_ms
        self._sleep = sleep
        self._now = now

    def process_item(self, item: ObjectItem, cutoff: datetime, mode: RunMode) -> ItemOutcome:
        """Trim one item.

        Args:
            item: Item to process
            cutoff: Run-wide trim boundary
            mode: Effective run mode

        Returns:
            ItemOutcome with counters and the records written
        """
        try:
            versions = self.store.list_versions(item)
        except StoreError as e:
            logger.warning(f"Skipping {item.collection}/{item.reference}: {e}")
            return ItemOutcome(loaded=False)

        deletable = select_deletable(versions, cutoff)
        outcome = ItemOutcome(eligible=len(deletable))
        if not deletable:
            return outcome

        action = VersionAction.for_mode(mode)
        if mode == RunMode.DRY_RUN:
            for version in deletable:
                self._record(outcome, item, version, action, VersionResult.PLANNED)
            outcome.planned = len(deletable)
            logger.info(f"Planned {len(deletable)} version(s) of {item.collection}/{item.reference}")
            return outcome

        chunks = chunked(deletable, self.version_batch_size)
        for index, chunk in enumerate(chunks):
            self._delete_chunk(item, chunk, action, outcome)
            if index < len(chunks) - 1 and self.chunk_pause_ms > 0:
                self._sleep(self.chunk_pause_ms / 1000)

        return outcome

    def _delete_chunk(
        self, item: ObjectItem, chunk: list[ObjectVersion], action: VersionAction, outcome: ItemOutcome
    ) -> None:
        """Delete a chunk, retrying the versions that are still failing."""
        pending = {v.version_id: v for v in chunk}
        failures: dict[str, DeleteFailure] = {}

        def attempt() -> list[DeleteFailure]:
            result = self.store.delete_versions(item, list(pending.values()))
            failed_ids = {f.version_id for f in result}
            for version_id in list(pending):
                if version_id not in failed_ids:
                    del pending[version_id]
                    failures.pop(version_id, None)
            for failure in result:
                failures[failure.version_id] = failure
            return result

        description = f"delete of {len(chunk)} version(s) of {item.collection}/{item.reference}"
        retry = self.retry_policy.run(attempt, is_success=lambda result: not result, description=description)

        # A request-level error on the last attempt applies to every pending version
        request_error = retry.error
        for version in chunk:
            if version.version_id not in pending:
                self._record(outcome, item, version, action, VersionResult.DELETED)
                outcome.deleted += 1
                continue

            failure = failures.get(version.version_id)
            if failure is not None and failure.is_policy_blocked:
                message = f"{failure.code}: {failure.message}"
            elif request_error is not None and is_policy_blocked(
                getattr(request_error, "code", None), str(request_error)
            ):
                message = str(request_error) or "Delete refused"
            else:
                if request_error is not None:
                    message = str(request_error) or repr(request_error)
                elif failure is not None:
                    message = f"{failure.code}: {failure.message}"
                else:
                    message = "Delete failed"
                logger.error(
                    f"Failed to delete {item.reference} version {version.label} "
                    f"after {retry.attempts} attempt(s): {message}"
                )
                self._record(outcome, item, version, action, VersionResult.FAILED, message)
                outcome.failed += 1
                continue

            logger.warning(f"Policy blocked delete of {item.reference} version {version.label}: {message}")
            self._record(outcome, item, version, action, VersionResult.POLICY_BLOCKED, message)
            outcome.policy_blocked += 1

    def _record(
        self,
        outcome: ItemOutcome,
        item: ObjectItem,
        version: ObjectVersion,
        action: VersionAction,
        result: VersionResult,
        message: Optional[str] = None,
    ) -> None:
        record = VersionRecord.for_version(item, version, action, result, timestamp=self._now(), message=message)
        record.validate()
        self.action_log.write(record)
        outcome.records.append(record)
