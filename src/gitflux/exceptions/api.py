"""Remote API exceptions: validation, quota, transport, and cancellation.

The client layer (transport, retry controller, paginated fetcher) only ever
raises these kinds. Retry classification lives in :func:`is_retryable`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from .base import GitFluxError

if TYPE_CHECKING:
    from ..github.rate import RateEnvelope


class GitHubAPIError(GitFluxError):
    """Base class for errors raised while talking to the remote API."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        rate: Optional[RateEnvelope] = None,
        details: Optional[dict[str, str]] = None,
    ):
        details = dict(details or {})
        if status is not None:
            details.setdefault("status", str(status))
        super().__init__(message, details=details)
        self.status = status
        self.rate = rate


class ValidationError(GitHubAPIError):
    """Raised for malformed caller input (owner/repo, time window). Never retried."""

    def __init__(self, value: str, reason: str, subject: str = "repository reference"):
        super().__init__(
            f"Invalid {subject}: {value!r}",
            details={"reason": reason},
        )
        self.value = value
        self.reason = reason
        self.subject = subject


class RateLimitError(GitHubAPIError):
    """Raised when the remote quota is exhausted."""

    def __init__(
        self,
        reset_at: Optional[datetime] = None,
        status: Optional[int] = None,
        rate: Optional[RateEnvelope] = None,
        message: str = "GitHub API rate limit exceeded",
    ):
        details = {}
        if reset_at is not None:
            details["reset_at"] = reset_at.isoformat()
        super().__init__(message, status=status, rate=rate, details=details)
        self.reset_at = reset_at


class TransientNetworkError(GitHubAPIError):
    """Raised for timeouts, connection resets and temporarily unavailable servers."""

    pass


class NotFoundError(GitHubAPIError):
    """Raised when the repository or resource does not exist. Never retried."""

    def __init__(self, resource: str, rate: Optional[RateEnvelope] = None):
        super().__init__(
            f"Not found: {resource}",
            status=404,
            rate=rate,
            details={"resource": resource},
        )
        self.resource = resource


class HTTPStatusError(GitHubAPIError):
    """Raised for any other 4xx/5xx response, including auth failures."""

    pass


class CancellationError(GitHubAPIError):
    """Raised when the caller cancelled the work. Not a failure to report."""

    def __init__(self, message: str = "Request was cancelled"):
        super().__init__(message)


def is_retryable(exc: BaseException) -> bool:
    """Return True for errors worth another attempt (quota, transport)."""
    return isinstance(exc, (RateLimitError, TransientNetworkError))


def reset_from_epoch(value: Optional[str]) -> Optional[datetime]:
    """Convert an epoch-seconds header value to an aware datetime."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(float(value)), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None
