"""Tests for gitflux.github.rate module."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from gitflux.github.rate import DEFAULT_LIMIT, RateEnvelope

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _envelope_resetting_in(seconds: float) -> RateEnvelope:
    return RateEnvelope(remaining=10, limit=5000, reset=int((NOW + timedelta(seconds=seconds)).timestamp()))


class TestInvariant:
    """0 <= remaining <= limit."""

    def test_valid_envelope(self):
        env = RateEnvelope(remaining=10, limit=60, reset=0)
        assert env.remaining == 10

    def test_remaining_above_limit_rejected(self):
        with pytest.raises(ValueError):
            RateEnvelope(remaining=61, limit=60, reset=0)

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValueError):
            RateEnvelope(remaining=-1, limit=60, reset=0)


class TestFromHeaders:
    """Tests for building envelopes from response headers."""

    def test_parses_all_fields(self):
        env = RateEnvelope.from_headers(
            {"x-ratelimit-remaining": "42", "x-ratelimit-limit": "60", "x-ratelimit-reset": "1700000000"}
        )
        assert env == RateEnvelope(remaining=42, limit=60, reset=1700000000)

    def test_missing_headers_returns_none(self):
        assert RateEnvelope.from_headers({}) is None

    def test_unparsable_remaining_returns_none(self):
        assert RateEnvelope.from_headers({"x-ratelimit-remaining": "lots"}) is None

    def test_missing_limit_uses_default(self):
        env = RateEnvelope.from_headers({"x-ratelimit-remaining": "3"})
        assert env.limit == DEFAULT_LIMIT

    def test_values_are_clamped(self):
        env = RateEnvelope.from_headers({"x-ratelimit-remaining": "99", "x-ratelimit-limit": "60"})
        assert env.remaining == 60
        env = RateEnvelope.from_headers({"x-ratelimit-remaining": "-5", "x-ratelimit-limit": "60"})
        assert env.remaining == 0

    def test_case_insensitive_plain_dict(self):
        env = RateEnvelope.from_headers({"X-RateLimit-Remaining": "7", "X-RateLimit-Limit": "60"})
        assert env.remaining == 7

    def test_httpx_headers(self):
        headers = httpx.Headers({"X-RateLimit-Remaining": "8", "X-RateLimit-Limit": "60"})
        assert RateEnvelope.from_headers(headers).remaining == 8


class TestThresholds:
    def test_below(self):
        env = RateEnvelope(remaining=49, limit=5000, reset=0)
        assert env.below(50)
        assert not env.below(49)

    def test_exhausted(self):
        assert RateEnvelope(remaining=0, limit=60, reset=0).is_exhausted
        assert not RateEnvelope(remaining=1, limit=60, reset=0).is_exhausted

    def test_reset_at_is_utc(self):
        env = RateEnvelope(remaining=0, limit=60, reset=0)
        assert env.reset_at == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestDescribeReset:
    """Human-readable reset countdown, rounding up."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (-30, "Now"),
            (0, "Now"),
            (30, "1 minute"),
            (60, "1 minute"),
            (61, "2 minutes"),
            (59 * 60, "59 minutes"),
            (60 * 60, "1 hour"),
            (61 * 60, "2 hours"),
            (3 * 3600, "3 hours"),
        ],
    )
    def test_describe(self, seconds, expected):
        assert _envelope_resetting_in(seconds).describe_reset(NOW) == expected
