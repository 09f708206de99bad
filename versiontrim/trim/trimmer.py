"""Version trimmer for historical-version cleanup runs.

Main orchestrator tying the safety gate, discovery, batching, execution and
size accounting together.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from versiontrim.models.collection import Collection, ObjectItem
from versiontrim.models.trim_operation import RunMode, RunStatus, SizePhase, TrimOperation
from versiontrim.store.base import StoreError, VersionStore
from versiontrim.trim.audit import AuditStorage
from versiontrim.trim.enumerator import ItemEnumerator
from versiontrim.trim.errors import TrimError
from versiontrim.trim.executor import DEFAULT_CHUNK_PAUSE_MS, DEFAULT_VERSION_BATCH_SIZE, ItemOutcome, VersionTrimExecutor
from versiontrim.trim.resolver import CollectionResolver
from versiontrim.trim.retry import DEFAULT_MAX_ATTEMPTS, RetryPolicy
from versiontrim.trim.safety import ConfirmationProvider, SafetyGate
from versiontrim.trim.scheduler import DEFAULT_BATCH_PERCENT, DEFAULT_MAX_BATCH_MINUTES, BatchScheduler, BatchWindow
from versiontrim.trim.selector import compute_cutoff
from versiontrim.trim.sinks import SizeLog, VersionActionLog
from versiontrim.trim.sizing import SizeAccountant
from versiontrim.trim.state import RunStateStore

logger = logging.getLogger(__name__)

DEFAULT_OLDER_THAN_DAYS = 45

# Called after each batch (except the last); returns False to stop the run
BatchCheckpoint = Callable[[BatchWindow, TrimOperation], bool]


@dataclass
class TrimSettings:
    """Parameters of one run.

    Attributes:
        older_than_days: Age threshold for historical versions
        collection: Single collection to target (optional)
        name_filter: Collection names to restrict discovery to
        delete: Delete requested (subject to the safety gate)
        batch_percent: Share of items per batch
        max_batch_minutes: Time budget per batch
        auto_continue: Skip the operator checkpoint between batches
        bypass_batching: Process everything in one unbounded batch
        version_batch_size: Versions per delete request
        chunk_pause_ms: Pause between delete requests
        max_retry_attempts: Attempts per delete request
    """

    older_than_days: int = DEFAULT_OLDER_THAN_DAYS
    collection: Optional[str] = None
    name_filter: list[str] = field(default_factory=list)
    delete: bool = False
    batch_percent: int = DEFAULT_BATCH_PERCENT
    max_batch_minutes: int = DEFAULT_MAX_BATCH_MINUTES
    auto_continue: bool = False
    bypass_batching: bool = False
    version_batch_size: int = DEFAULT_VERSION_BATCH_SIZE
    chunk_pause_ms: int = DEFAULT_CHUNK_PAUSE_MS
    max_retry_attempts: int = DEFAULT_MAX_ATTEMPTS


class VersionTrimmer:
    """Trimming run orchestrator.

    Attributes:
        store: Versioned object store (one session for the whole run)
        state_store: Durable first-run marker
        gate: Safety gate
        action_log: Version action sink
        size_log: Size snapshot sink
        audit_storage: Run summary storage (optional)
    """

    def __init__(
        self,
        store: VersionStore,
        state_store: RunStateStore,
        gate: Optional[SafetyGate] = None,
        action_log: Optional[VersionActionLog] = None,
        size_log: Optional[SizeLog] = None,
        audit_storage: Optional[AuditStorage] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.state_store = state_store
        self.gate = gate or SafetyGate()
        self.action_log = action_log or VersionActionLog(None)
        self.size_log = size_log or SizeLog(None)
        self.audit_storage = audit_storage
        self.resolver = CollectionResolver()
        self.enumerator = ItemEnumerator(store)
        self._sleep = sleep
        self._clock = clock
        self._now = now

    def run(
        self,
        settings: TrimSettings,
        confirmation: Optional[ConfirmationProvider] = None,
        checkpoint: Optional[BatchCheckpoint] = None,
    ) -> TrimOperation:
        """Execute a trimming run.

        Args:
            settings: Run parameters
            confirmation: Supplies the delete confirmation phrase
            checkpoint: Operator decision between batches (None = continue)

        Returns:
            TrimOperation summarising the run

        Raises:
            RunBlocked: Retention policy changed within the cooldown
            ConfirmationDeclined: Delete mode not confirmed
            CollectionNotFound, NoTargetCollections: Nothing to target
            EnumerationError: A page of items could not be fetched
            NoItemsDiscovered: Target collections hold no files
        """
        now = self._now()

        policy = self.store.get_retention_policy()
        decision = self.gate.decide(
            has_prior_run=self.state_store.has_prior_run(),
            delete_requested=settings.delete,
            last_policy_change_utc=policy.last_modified_utc if policy else None,
            now=now,
        )
        if decision.forced_dry_run:
            logger.warning("No previous run recorded; delete request overridden, running as dry run")
        mode = self.gate.enforce(decision, confirmation, policy)

        collections = self.resolver.resolve(settings.collection, settings.name_filter, self.store.list_collections())
        cutoff = compute_cutoff(now, settings.older_than_days)
        run_id = f"run_{uuid.uuid4()}"

        operation = TrimOperation(
            run_id=run_id,
            mode=mode,
            status=RunStatus.PLANNED,
            older_than_days=settings.older_than_days,
            cutoff=cutoff,
            started_at=now,
            collections=[c.name for c in collections],
            base_url=self.store.base_url,
        )
        logger.info(
            f"Run {run_id} started in {mode.value} mode against {operation.base_url}; "
            f"trimming versions created before {cutoff.isoformat()}"
        )

        accountant = SizeAccountant(self.store, run_id, self.size_log, now=self._now)
        operation.size_before = self._measure(accountant, collections, SizePhase.BEFORE)

        try:
            items = self.enumerator.collect(collections)
        except TrimError:
            operation.status = RunStatus.FAILED
            operation.completed_at = self._now()
            if self.audit_storage is not None:
                self.audit_storage.log_run(operation)
            raise
        operation.total_items = len(items)

        executor = self._build_executor(settings)
        stopped = self._run_batches(items, settings, mode, cutoff, executor, operation, checkpoint)

        operation.size_after = self._measure(accountant, collections, SizePhase.AFTER)
        operation.finalize(self._now(), stopped=stopped)

        if self.audit_storage is not None:
            self.audit_storage.log_run(operation)
        self.state_store.save(operation.completed_at)

        logger.info(f"Run {run_id} finished with status {operation.status.value}")
        return operation

    def _build_executor(self, settings: TrimSettings) -> VersionTrimExecutor:
        return VersionTrimExecutor(
            store=self.store,
            action_log=self.action_log,
            retry_policy=RetryPolicy(max_attempts=settings.max_retry_attempts, sleep=self._sleep),
            version_batch_size=settings.version_batch_size,
            chunk_pause_ms=settings.chunk_pause_ms,
            sleep=self._sleep,
            now=self._now,
        )

    def _run_batches(
        self,
        items: list[ObjectItem],
        settings: TrimSettings,
        mode: RunMode,
        cutoff: datetime,
        executor: VersionTrimExecutor,
        operation: TrimOperation,
        checkpoint: Optional[BatchCheckpoint],
    ) -> bool:
        """Process the work list batch by batch.

        Returns:
            True if the operator stopped the run early
        """
        scheduler = BatchScheduler(
            batch_percent=settings.batch_percent,
            max_batch_minutes=settings.max_batch_minutes,
            bypass=settings.bypass_batching,
            clock=self._clock,
        )

        total = len(items)
        cursor = 0
        number = 0

        while cursor < total:
            number += 1
            window = scheduler.window_at(number, cursor, total)
            clock = scheduler.start_clock()
            operation.batches_run += 1
            logger.info(f"Batch {number}: items {window.start + 1}-{window.end} of {total}")

            index = window.start
            while index < window.end:
                # The first item always runs so a batch can never be empty
                if index > window.start and clock.should_stop():
                    logger.info(
                        f"Batch {number} reached its {settings.max_batch_minutes} minute limit "
                        f"after {index - window.start} item(s)"
                    )
                    break
                self._apply(operation, executor.process_item(items[index], cutoff, mode))
                index += 1

            cursor = index
            processed = BatchWindow(number=number, start=window.start, end=index)

            if cursor < total and not settings.auto_continue and checkpoint is not None:
                if not checkpoint(processed, operation):
                    logger.warning(f"Run stopped by operator after batch {number}; {total - cursor} item(s) left untouched")
                    return True

        return False

    @staticmethod
    def _apply(operation: TrimOperation, outcome: ItemOutcome) -> None:
        if not outcome.loaded:
            operation.items_skipped_error += 1
            return

        operation.files_scanned += 1
        if outcome.eligible:
            operation.files_with_eligible += 1
        operation.versions_planned += outcome.planned
        operation.versions_deleted += outcome.deleted
        operation.versions_failed += outcome.failed
        operation.versions_policy_blocked += outcome.policy_blocked

    @staticmethod
    def _measure(accountant: SizeAccountant, collections: list[Collection], phase: SizePhase) -> Optional[int]:
        try:
            return accountant.snapshot(collections, phase)
        except StoreError as e:
            logger.warning(f"{phase.value} size snapshot failed: {e}")
            return None
