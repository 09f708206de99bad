"""Tests for RetryPolicy."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from versiontrim.store.base import StoreError
from versiontrim.trim.retry import RetryPolicy


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert [policy.delay(n) for n in range(1, 5)] == [2, 4, 8, 16]

    def test_invalid_attempts(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_success_first_try_does_not_sleep(self) -> None:
        sleep = Mock()
        policy = RetryPolicy(sleep=sleep)

        outcome = policy.run(lambda: "ok")

        assert outcome.ok is True
        assert outcome.value == "ok"
        assert outcome.attempts == 1
        sleep.assert_not_called()

    def test_retries_exceptions_with_exponential_backoff(self) -> None:
        sleep = Mock()
        fn = Mock(side_effect=[StoreError("throttled"), StoreError("throttled"), "done"])
        policy = RetryPolicy(sleep=sleep)

        outcome = policy.run(fn)

        assert outcome.ok is True
        assert outcome.value == "done"
        assert outcome.attempts == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2, 4]

    def test_exhaustion_returns_last_error(self) -> None:
        sleep = Mock()
        fn = Mock(side_effect=StoreError("timeout"))
        policy = RetryPolicy(max_attempts=5, sleep=sleep)

        outcome = policy.run(fn)

        assert outcome.ok is False
        assert str(outcome.error) == "timeout"
        assert outcome.attempts == 5
        assert fn.call_count == 5
        # No sleep after the final attempt
        assert [c.args[0] for c in sleep.call_args_list] == [2, 4, 8, 16]

    def test_rejected_results_are_retried(self) -> None:
        sleep = Mock()
        fn = Mock(side_effect=[["v1"], ["v1"], []])
        policy = RetryPolicy(sleep=sleep)

        outcome = policy.run(fn, is_success=lambda result: not result)

        assert outcome.ok is True
        assert outcome.attempts == 3

    def test_rejected_result_kept_on_exhaustion(self) -> None:
        policy = RetryPolicy(max_attempts=2, sleep=Mock())

        outcome = policy.run(lambda: ["v1"], is_success=lambda result: not result)

        assert outcome.ok is False
        assert outcome.value == ["v1"]
        assert outcome.error is None
