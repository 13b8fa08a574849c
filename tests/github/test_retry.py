"""Tests for gitflux.github.retry module."""

import pytest

from gitflux.config import FetchConfig
from gitflux.exceptions import (
    CancellationError,
    HTTPStatusError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
    ValidationError,
)
from gitflux.github.cancellation import CancellationToken
from gitflux.github.retry import RetryPolicy, backoff_delay, with_retry


class FlakyAttempt:
    """Fails with ``error`` for the first ``failures`` calls, then returns "ok"."""

    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or TransientNetworkError("connection reset")
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestBackoffDelay:
    def test_doubles_from_base(self):
        assert [backoff_delay(n, 1.0, 100.0) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        assert backoff_delay(10, 1.0, 30.0) == 30.0


class TestWithRetry:
    """Retry classification, backoff and exhaustion."""

    @pytest.mark.parametrize("k", [0, 1, 2, 3])
    def test_succeeds_after_k_retryable_failures(self, k, no_sleep):
        attempt = FlakyAttempt(failures=k)
        result = with_retry(attempt, max_attempts=k + 1, base_delay=1.0, cap_delay=60.0, sleep=no_sleep)

        assert result == "ok"
        assert attempt.calls == k + 1
        assert sum(no_sleep.delays) >= sum(2**i for i in range(k))

    def test_delays_follow_capped_exponential(self, no_sleep):
        attempt = FlakyAttempt(failures=4)
        with_retry(attempt, max_attempts=5, base_delay=1.0, cap_delay=5.0, sleep=no_sleep)
        assert no_sleep.delays == [1.0, 2.0, 4.0, 5.0]

    def test_exhaustion_returns_last_error_verbatim(self, no_sleep):
        errors = [TransientNetworkError("first"), TransientNetworkError("second")]
        calls = iter(errors)

        def attempt():
            raise next(calls)

        with pytest.raises(TransientNetworkError) as excinfo:
            with_retry(attempt, max_attempts=2, sleep=no_sleep)
        assert excinfo.value is errors[1]

    def test_max_attempts_not_above_failures(self, no_sleep):
        attempt = FlakyAttempt(failures=3, error=RateLimitError())
        with pytest.raises(RateLimitError):
            with_retry(attempt, max_attempts=3, sleep=no_sleep)
        assert attempt.calls == 3
        # No delay after the final failure
        assert len(no_sleep.delays) == 2

    @pytest.mark.parametrize(
        "error",
        [
            NotFoundError("/repos/a/b"),
            HTTPStatusError("Bad credentials", status=401),
            ValidationError("a b", "malformed owner"),
        ],
    )
    def test_fatal_errors_are_not_retried(self, error, no_sleep):
        attempt = FlakyAttempt(failures=5, error=error)
        with pytest.raises(type(error)):
            with_retry(attempt, max_attempts=5, sleep=no_sleep)
        assert attempt.calls == 1
        assert no_sleep.delays == []

    def test_rate_limit_is_retried(self, no_sleep):
        attempt = FlakyAttempt(failures=1, error=RateLimitError())
        assert with_retry(attempt, max_attempts=2, sleep=no_sleep) == "ok"

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            with_retry(lambda: "ok", max_attempts=0)


class TestCancellation:
    def test_cancelled_before_first_attempt(self, no_sleep):
        token = CancellationToken()
        token.cancel()
        attempt = FlakyAttempt(failures=0)

        with pytest.raises(CancellationError):
            with_retry(attempt, max_attempts=3, token=token, sleep=no_sleep)
        assert attempt.calls == 0

    def test_cancelled_during_backoff(self):
        token = CancellationToken()
        attempt = FlakyAttempt(failures=5)

        def cancelling_sleep(seconds, tok):
            tok.cancel("user abort")
            return True

        with pytest.raises(CancellationError, match="user abort"):
            with_retry(attempt, max_attempts=5, token=token, sleep=cancelling_sleep)
        assert attempt.calls == 1

    def test_real_sleep_returns_immediately_when_cancelled(self):
        token = CancellationToken()

        def attempt():
            token.cancel()
            raise TransientNetworkError("timeout")

        # An hour-long backoff: the pending wait must be abandoned at once
        with pytest.raises(CancellationError):
            with_retry(attempt, max_attempts=2, base_delay=3600.0, cap_delay=3600.0, token=token)


class TestRetryPolicy:
    def test_from_config(self):
        policy = RetryPolicy.from_config(
            FetchConfig(max_attempts=2, base_delay_seconds=0.5, cap_delay_seconds=4.0)
        )
        assert policy == RetryPolicy(max_attempts=2, base_delay=0.5, cap_delay=4.0)

    def test_call_delegates(self, no_sleep):
        attempt = FlakyAttempt(failures=1)
        assert RetryPolicy(max_attempts=2).call(attempt, sleep=no_sleep) == "ok"
        assert no_sleep.delays == [1.0]
