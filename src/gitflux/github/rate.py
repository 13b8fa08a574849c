"""Rate envelope: remaining/limit/reset snapshot reported by the remote API."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Authenticated REST quota; used when a response omits x-ratelimit-limit
DEFAULT_LIMIT = 5000


@dataclass(frozen=True)
class RateEnvelope:
    """Quota snapshot taken from one response.

    Invariant: ``0 <= remaining <= limit``.
    """

    remaining: int
    limit: int
    reset: int  # unix seconds

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("limit must be non-negative")
        if not 0 <= self.remaining <= self.limit:
            raise ValueError(
                f"remaining must be between 0 and limit ({self.remaining}/{self.limit})"
            )

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional[RateEnvelope]:
        """Build an envelope from x-ratelimit-* headers.

        Returns None when the response carries no rate information. Values
        outside the invariant are clamped rather than rejected, since the
        headers are outside our control.
        """
        raw_remaining = _header(headers, "x-ratelimit-remaining")
        if raw_remaining is None:
            return None
        try:
            remaining = int(raw_remaining)
        except ValueError:
            return None

        try:
            limit = int(_header(headers, "x-ratelimit-limit") or DEFAULT_LIMIT)
        except ValueError:
            limit = DEFAULT_LIMIT
        try:
            reset = int(float(_header(headers, "x-ratelimit-reset") or 0))
        except ValueError:
            reset = 0

        limit = max(limit, 0)
        remaining = min(max(remaining, 0), limit)
        return cls(remaining=remaining, limit=limit, reset=max(reset, 0))

    @property
    def reset_at(self) -> datetime:
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)

    @property
    def is_exhausted(self) -> bool:
        return self.remaining <= 0

    def below(self, threshold: int) -> bool:
        """True when remaining quota has fallen under ``threshold``."""
        return self.remaining < threshold

    def describe_reset(self, now: Optional[datetime] = None) -> str:
        """Human-readable time until the quota resets ("Now", "5 minutes", ...)."""
        now = now or datetime.now(timezone.utc)
        diff_minutes = math.ceil((self.reset_at - now).total_seconds() / 60)

        if diff_minutes <= 0:
            return "Now"
        if diff_minutes == 1:
            return "1 minute"
        if diff_minutes < 60:
            return f"{diff_minutes} minutes"

        hours = math.ceil(diff_minutes / 60)
        return "1 hour" if hours == 1 else f"{hours} hours"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; httpx.Headers is not
        for key, candidate in headers.items():
            if key.lower() == name:
                return candidate
    return value
