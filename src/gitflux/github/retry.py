"""Retry/backoff controller for single fetch attempts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..config import FetchConfig
from ..exceptions import CancellationError, GitHubAPIError, is_retryable
from ..logging_config import get_logger
from .cancellation import CancellationToken, Sleeper, cancellable_sleep

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, cap_delay: float) -> float:
    """Delay before retrying after failed attempt ``attempt`` (0-indexed)."""
    return min(base_delay * (2**attempt), cap_delay)


def with_retry(
    attempt_fn: Callable[[], T],
    max_attempts: int,
    *,
    base_delay: float = 1.0,
    cap_delay: float = 30.0,
    token: Optional[CancellationToken] = None,
    sleep: Sleeper = cancellable_sleep,
    label: str = "request",
) -> T:
    """Run ``attempt_fn`` until it succeeds, fails fatally, or attempts run out.

    Only rate-limit and transient transport errors are retried. Any other
    error is raised on first occurrence. After ``max_attempts`` retryable
    failures the last error is raised unchanged.

    Args:
        attempt_fn: One attempt; raises a GitHubAPIError on failure
        max_attempts: Total attempts including the first
        base_delay: Seconds before the first retry; doubles each time
        cap_delay: Upper bound on any single delay
        token: Cancellation signal, checked before every attempt and
            observed while a delay is pending
        sleep: Cancellable sleep primitive (injected in tests)
        label: Description used in log messages

    Raises:
        CancellationError: If cancelled before an attempt or during a delay
        GitHubAPIError: The fatal error, or the last retryable one
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    token = token or CancellationToken()

    last_error: Optional[GitHubAPIError] = None
    for attempt in range(max_attempts):
        token.raise_if_cancelled()
        try:
            return attempt_fn()
        except GitHubAPIError as exc:
            if not is_retryable(exc):
                raise
            last_error = exc

        if attempt + 1 >= max_attempts:
            break

        delay = backoff_delay(attempt, base_delay, cap_delay)
        logger.warning(
            "%s failed (%s). Retrying in %.1fs (attempt %d/%d)",
            label,
            last_error,
            delay,
            attempt + 1,
            max_attempts,
        )
        if sleep(delay, token):
            raise CancellationError(token.reason or "Request was cancelled during retry backoff")

    assert last_error is not None
    logger.warning("%s failed after %d attempts: %s", label, max_attempts, last_error)
    raise last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Bundled retry settings, usually built from :class:`FetchConfig`."""

    max_attempts: int = 4
    base_delay: float = 1.0
    cap_delay: float = 30.0

    @classmethod
    def from_config(cls, config: FetchConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            cap_delay=config.cap_delay_seconds,
        )

    def call(
        self,
        attempt_fn: Callable[[], T],
        token: Optional[CancellationToken] = None,
        sleep: Sleeper = cancellable_sleep,
        label: str = "request",
    ) -> T:
        return with_retry(
            attempt_fn,
            self.max_attempts,
            base_delay=self.base_delay,
            cap_delay=self.cap_delay,
            token=token,
            sleep=sleep,
            label=label,
        )
