"""Tests for VersionTrimExecutor.

Test coverage for dry-run planning, chunked deletes, retries and failure
classification.
"""

from __future__ import annotations

import csv
from pathlib import Path
from unittest.mock import Mock

import pytest

from tests.fixtures.stores import NOW, InMemoryVersionStore, make_version
from versiontrim.models.trim_operation import RunMode
from versiontrim.models.version_record import VersionAction, VersionResult
from versiontrim.trim.executor import VersionTrimExecutor, chunked
from versiontrim.trim.retry import RetryPolicy
from versiontrim.trim.selector import compute_cutoff
from versiontrim.trim.sinks import VersionActionLog

CUTOFF = compute_cutoff(NOW, 45)

LOCK_MESSAGE = "Access Denied because object protected by object lock."


def _old_versions(count: int) -> list:
    versions = [make_version(f"old-{i}", 100 + i) for i in range(count)]
    versions.append(make_version("current", 200, is_current=True))
    return versions


@pytest.fixture
def sleep() -> Mock:
    return Mock()


def _executor(store, sleep, tmp_path: Path = None, **kwargs) -> VersionTrimExecutor:
    log = VersionActionLog(str(tmp_path / "actions.csv") if tmp_path else None)
    return VersionTrimExecutor(
        store=store,
        action_log=log,
        retry_policy=RetryPolicy(max_attempts=kwargs.pop("max_attempts", 5), sleep=sleep),
        sleep=sleep,
        now=lambda: NOW,
        **kwargs,
    )


class TestChunked:
    def test_chunks_preserve_order(self) -> None:
        versions = _old_versions(5)[:5]

        chunks = chunked(versions, 2)

        assert [len(c) for c in chunks] == [2, 2, 1]
        assert [v for c in chunks for v in c] == versions

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            chunked([], 0)


class TestVersionTrimExecutorDryRun:
    """Test suite for dry-run planning."""

    def test_dry_run_plans_without_mutation(self, store: InMemoryVersionStore, sleep: Mock, tmp_path: Path) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(3) + [make_version("recent", 3)])

        outcome = _executor(store, sleep, tmp_path).process_item(item, CUTOFF, RunMode.DRY_RUN)

        assert outcome.planned == 3
        assert outcome.deleted == 0
        assert store.delete_calls == []
        assert len(store.remaining_version_ids("Docs", "a.txt")) == 5
        assert all(r.action == VersionAction.DRY_RUN and r.result == VersionResult.PLANNED for r in outcome.records)

    def test_dry_run_writes_action_rows(self, store: InMemoryVersionStore, sleep: Mock, tmp_path: Path) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(2))

        _executor(store, sleep, tmp_path).process_item(item, CUTOFF, RunMode.DRY_RUN)

        with open(tmp_path / "actions.csv", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [row["Result"] for row in rows] == ["Planned", "Planned"]
        assert {row["VersionId"] for row in rows} == {"old-0", "old-1"}
        assert rows[0]["Action"] == "DryRun"
        assert rows[0]["Collection"] == "Docs"
        assert rows[0]["ObjectReference"] == "a.txt"

    def test_no_eligible_versions_is_silent(self, store: InMemoryVersionStore, sleep: Mock, tmp_path: Path) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", [make_version("v1", 1), make_version("v2", 0, is_current=True)])

        outcome = _executor(store, sleep, tmp_path).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.loaded is True
        assert outcome.eligible == 0
        assert outcome.records == []
        assert store.delete_calls == []
        assert not (tmp_path / "actions.csv").exists()

    def test_version_load_failure_skips_item(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "broken.txt", _old_versions(2))
        store.version_load_failures.add("broken.txt")

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.loaded is False
        assert outcome.records == []


class TestVersionTrimExecutorDelete:
    """Test suite for delete mode."""

    def test_deletes_in_chunks_with_pause(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(120))

        outcome = _executor(store, sleep, version_batch_size=50, chunk_pause_ms=250).process_item(
            item, CUTOFF, RunMode.DELETE
        )

        assert outcome.deleted == 120
        assert [len(call) for call in store.delete_calls] == [50, 50, 20]
        assert store.remaining_version_ids("Docs", "a.txt") == ["current"]
        # One pause between each pair of chunks, none after the last
        assert [c.args[0] for c in sleep.call_args_list] == [0.25, 0.25]

    def test_transient_request_error_is_retried(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(3))
        store.request_errors = 2

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.deleted == 3
        assert outcome.failed == 0
        assert len(store.delete_calls) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2, 4]

    def test_only_failing_versions_are_resubmitted(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(3))
        store.delete_errors["old-1"] = [("InternalError", "We encountered an internal error")]

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.deleted == 3
        assert store.delete_calls == [["old-0", "old-1", "old-2"], ["old-1"]]

    def test_exhausted_retries_mark_failed(self, store: InMemoryVersionStore, sleep: Mock, tmp_path: Path) -> None:
        """Test a chunk that keeps failing is tried 5 times with 2, 4, 8, 16 second waits."""
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(2))
        store.request_errors = 99

        outcome = _executor(store, sleep, tmp_path).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.failed == 2
        assert outcome.deleted == 0
        assert len(store.delete_calls) == 5
        assert [c.args[0] for c in sleep.call_args_list] == [2, 4, 8, 16]
        assert all(r.result == VersionResult.FAILED for r in outcome.records)
        assert "SlowDown" in outcome.records[0].message

    def test_policy_blocked_by_structured_code(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(2))
        store.permanent_errors["old-0"] = ("ObjectLocked", "Object is locked")

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.deleted == 1
        assert outcome.policy_blocked == 1
        assert outcome.failed == 0
        blocked = [r for r in outcome.records if r.result == VersionResult.POLICY_BLOCKED]
        assert blocked[0].version_id == "old-0"

    def test_policy_blocked_by_message_text(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(1))
        store.permanent_errors["old-0"] = ("AccessDenied", LOCK_MESSAGE)

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.policy_blocked == 1
        assert outcome.failed == 0

    @pytest.mark.parametrize(
        "code,message",
        [
            ("AccessDenied", "Failed to delete versions: AccessDenied - object is under legal hold / retention"),
            ("ObjectLocked", "Failed to delete versions: ObjectLocked - Object is WORM protected"),
        ],
    )
    def test_request_level_refusal_is_policy_blocked(
        self, store: InMemoryVersionStore, sleep: Mock, code: str, message: str
    ) -> None:
        """Test a retention refusal of the whole request classifies every pending version."""
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(2))
        store.request_errors = 99
        store.request_error = (code, message)

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.policy_blocked == 2
        assert outcome.failed == 0
        assert len(store.delete_calls) == 5
        assert all(r.result == VersionResult.POLICY_BLOCKED for r in outcome.records)
        assert outcome.records[0].message == message

    def test_per_version_block_kept_when_last_request_fails(self, sleep: Mock) -> None:
        """Test a lock reported on an early attempt is not hidden by later throttling."""

        class ThrottledAfterFirstCall(InMemoryVersionStore):
            def delete_versions(self, item, versions):
                result = super().delete_versions(item, versions)
                self.request_errors = 99
                return result

        store = ThrottledAfterFirstCall()
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(2))
        store.permanent_errors["old-0"] = ("ObjectLocked", "Object is locked")

        outcome = _executor(store, sleep).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.deleted == 1
        assert outcome.policy_blocked == 1
        assert outcome.failed == 0
        blocked = [r for r in outcome.records if r.result == VersionResult.POLICY_BLOCKED]
        assert blocked[0].message == "ObjectLocked: Object is locked"

    def test_unknown_failure_is_failed_not_blocked(self, store: InMemoryVersionStore, sleep: Mock) -> None:
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(1))
        store.permanent_errors["old-0"] = ("AccessDenied", "Access Denied")

        outcome = _executor(store, sleep, max_attempts=3).process_item(item, CUTOFF, RunMode.DELETE)

        assert outcome.failed == 1
        assert outcome.policy_blocked == 0
        assert outcome.records[0].message == "AccessDenied: Access Denied"

    def test_record_shape_matches_dry_run(self, store: InMemoryVersionStore, sleep: Mock, tmp_path: Path) -> None:
        """Test dry-run and delete rows differ only in action and result."""
        store.add_collection("Docs")
        item = store.add_item("Docs", "a.txt", _old_versions(1))
        dry_log = tmp_path / "dry"
        dry_log.mkdir()
        delete_log = tmp_path / "delete"
        delete_log.mkdir()

        _executor(store, sleep, dry_log).process_item(item, CUTOFF, RunMode.DRY_RUN)
        _executor(store, sleep, delete_log).process_item(item, CUTOFF, RunMode.DELETE)

        with open(dry_log / "actions.csv", newline="") as f:
            dry_rows = list(csv.DictReader(f))
        with open(delete_log / "actions.csv", newline="") as f:
            delete_rows = list(csv.DictReader(f))

        assert list(dry_rows[0].keys()) == list(delete_rows[0].keys())
        for key in ("Timestamp", "Collection", "ObjectReference", "VersionId", "VersionLabel", "VersionCreated"):
            assert dry_rows[0][key] == delete_rows[0][key]
        assert (dry_rows[0]["Result"], delete_rows[0]["Result"]) == ("Planned", "Deleted")
