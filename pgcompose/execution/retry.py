from __future__ import annotations

from dataclasses import dataclass
import random
import time
from typing import Any, Callable, TypeVar

from pgcompose.execution.errors import ExecutionError, TransientExecutionError

T = TypeVar("T")


# ==================================================
# Retry Policy
# ==================================================


@dataclass(slots=True)
class RetryPolicy:
    """
    Retry policy for transactions that fail with serialization or deadlock errors.
    Each retry waits a random delay between min_delay_ms and max_delay_ms.
    """

    max_attempts: int = 5
    min_delay_ms: float = 25
    max_delay_ms: float = 250

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.min_delay_ms < 0:
            raise ValueError("min_delay_ms must be >= 0")
        if self.max_delay_ms < self.min_delay_ms:
            raise ValueError("max_delay_ms must be >= min_delay_ms")

    def delay_seconds(self, random_fn: Callable[[], float] = random.random) -> float:
        spread = self.max_delay_ms - self.min_delay_ms
        return (self.min_delay_ms + spread * random_fn()) / 1000


def run_with_retry(
    *,
    operation: Callable[[], T],
    normalize_error: Callable[[Exception], ExecutionError | None],
    policy: RetryPolicy,
    sleep_fn: Callable[[float], Any] = time.sleep,
    random_fn: Callable[[], float] = random.random,
    on_retry: Callable[[ExecutionError, int, float], Any] | None = None,
    on_giveup: Callable[[ExecutionError, int], Any] | None = None,
) -> T:
    """
    Runs an operation, retrying transient driver failures.

    normalize_error returns None for exceptions that did not come from the driver; those
    propagate unchanged and are never retried.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except Exception as exc:
            normalized = normalize_error(exc)
            if normalized is None:
                raise
            if attempt >= policy.max_attempts or not isinstance(normalized, TransientExecutionError):
                if on_giveup is not None:
                    on_giveup(normalized, attempt)
                if normalized is exc:
                    raise
                raise normalized from exc
            delay = policy.delay_seconds(random_fn)
            if on_retry is not None:
                on_retry(normalized, attempt, delay)
            if delay > 0:
                sleep_fn(delay)
            attempt += 1
