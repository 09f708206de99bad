"""Retry policy with exponential backoff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a retried call.

    Attributes:
        ok: True if an attempt succeeded
        value: Return value of the successful attempt
        error: Last error if every attempt failed
        attempts: Attempts made
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 0


class RetryPolicy:
    """Calls a fallible function until it succeeds or attempts run out.

    The wait before attempt n+1 is ``base ** n`` seconds (2, 4, 8, 16 with the
    defaults).

    Attributes:
        max_attempts: Total attempts, first call included
        base: Backoff base in seconds
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base: float = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base = base
        self._sleep = sleep

    def delay(self, attempt: int) -> float:
        return self.base**attempt

    def run(
        self,
        fn: Callable[[], T],
        is_success: Callable[[T], bool] = lambda _: True,
        description: str = "call",
    ) -> RetryOutcome[T]:
        """Run ``fn`` with backoff.

        An attempt fails when ``fn`` raises or when ``is_success`` rejects its
        result. The last rejected result is returned in ``value``.

        Args:
            fn: Function to call
            is_success: Predicate on the result of an attempt
            description: Text used in log messages

        Returns:
            RetryOutcome; never raises for errors raised by ``fn``
        """
        value: Optional[T] = None
        error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                value = fn()
                error = None
                if is_success(value):
                    return RetryOutcome(ok=True, value=value, attempts=attempt)
            except Exception as e:
                error = e
                logger.debug(f"{description} raised on attempt {attempt}/{self.max_attempts}: {e}")

            if attempt < self.max_attempts:
                wait_time = self.delay(attempt)
                logger.info(f"Retrying {description} in {wait_time:g}s (attempt {attempt + 1}/{self.max_attempts})")
                self._sleep(wait_time)

        return RetryOutcome(ok=False, value=value, error=error, attempts=self.max_attempts)
