"""Exponential backoff around arbitrary operations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time
from typing import Generic, TypeVar

from .errors import SubstackError
from .logging import get_logger
from .models import ErrorKind

logger = get_logger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """Result of a retried operation: either a value or the last failure."""

    value: T | None = None
    error: Exception | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        if self.error is None:
            return None
        if isinstance(self.error, SubstackError):
            return self.error.kind
        return ErrorKind.UNEXPECTED

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def backoff_delay(initial_delay: float, attempt: int) -> float:
    """Delay slept after failed ``attempt`` (1-based)."""
    return initial_delay * (2 ** (attempt - 1))


def run_with_backoff(
    operation: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    *,
    sleep: SleepFn = time.sleep,
) -> RetryOutcome[T]:
    """Run ``operation`` up to ``max_retries`` times and report the outcome without raising."""
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1.")

    last_error: Exception | None = None
    for attempt in range(1, max_retries + 1):
        logger.debug("Attempt %d of %d", attempt, max_retries)
        try:
            return RetryOutcome(value=operation(), attempts=attempt)
        except Exception as exc:
            last_error = exc
            if attempt >= max_retries:
                break
            delay = backoff_delay(initial_delay, attempt)
            logger.warning(
                "Error: %s. Retrying in %.1fs (attempt %d/%d)", exc, delay, attempt, max_retries
            )
            sleep(delay)

    logger.warning("Max retries (%d) reached. Final error: %s", max_retries, last_error)
    return RetryOutcome(error=last_error, attempts=max_retries)


def retry_with_backoff(
    operation: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    *,
    sleep: SleepFn = time.sleep,
) -> T:
    """Like :func:`run_with_backoff` but returns the value or re-raises the last error unchanged."""
    return run_with_backoff(operation, max_retries, initial_delay, sleep=sleep).unwrap()
