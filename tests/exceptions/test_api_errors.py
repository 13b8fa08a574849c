"""Tests for the remote API error taxonomy."""

from datetime import datetime, timezone

import pytest

from gitflux.exceptions import (
    CancellationError,
    ConfigurationError,
    GitFluxError,
    GitHubAPIError,
    HTTPStatusError,
    InvalidConfigError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
    ValidationError,
    is_retryable,
)
from gitflux.exceptions.api import reset_from_epoch
from gitflux.github.rate import RateEnvelope


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("x", "bad"),
            RateLimitError(),
            TransientNetworkError("timeout"),
            NotFoundError("/repos/a/b"),
            HTTPStatusError("boom", status=401),
            CancellationError(),
        ],
    )
    def test_all_api_errors_share_a_base(self, error):
        assert isinstance(error, GitHubAPIError)
        assert isinstance(error, GitFluxError)

    def test_configuration_errors_are_not_api_errors(self):
        error = InvalidConfigError("fetch.per_page", 500, "too large")
        assert isinstance(error, ConfigurationError)
        assert not isinstance(error, GitHubAPIError)
        assert error.details["reason"] == "too large"


class TestRetryClassification:
    @pytest.mark.parametrize(
        "error, retryable",
        [
            (RateLimitError(), True),
            (TransientNetworkError("reset"), True),
            (ValidationError("x", "bad"), False),
            (NotFoundError("/x"), False),
            (HTTPStatusError("teapot", status=418), False),
            (CancellationError(), False),
            (ValueError("not ours"), False),
        ],
    )
    def test_is_retryable(self, error, retryable):
        assert is_retryable(error) is retryable


class TestDetails:
    def test_rate_limit_carries_reset(self):
        reset = datetime(2024, 1, 1, tzinfo=timezone.utc)
        error = RateLimitError(reset_at=reset, status=403)
        assert error.reset_at == reset
        assert error.details["reset_at"] == reset.isoformat()
        assert "status=403" in str(error)

    def test_not_found_carries_resource_and_rate(self):
        rate = RateEnvelope(remaining=1, limit=60, reset=0)
        error = NotFoundError("/repos/a/b", rate=rate)
        assert error.status == 404
        assert error.resource == "/repos/a/b"
        assert error.rate is rate

    def test_details_render_after_the_message(self):
        error = GitFluxError("Fetch failed", {"status": "502", "path": "/repos/a/b"})
        assert str(error) == "Fetch failed [status=502; path=/repos/a/b]"
        assert error.message == "Fetch failed"

    def test_validation_error_names_its_subject(self):
        assert str(ValidationError("x", "bad")).startswith("Invalid repository reference: 'x'")
        window = ValidationError("2w", "unknown preset", subject="time window")
        assert str(window) == "Invalid time window: '2w' [reason=unknown preset]"
        assert not is_retryable(window)

    def test_plain_message_without_details(self):
        assert str(CancellationError("Interrupted by user")) == "Interrupted by user"

    @pytest.mark.parametrize("value, expected", [("0", 0), ("1700000000.0", 1700000000), (None, None), ("soon", None)])
    def test_reset_from_epoch(self, value, expected):
        reset = reset_from_epoch(value)
        assert (reset.timestamp() if reset else None) == expected
