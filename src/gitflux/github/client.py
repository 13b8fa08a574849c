"""GitHub REST API transport.

Thin synchronous httpx wrapper: one GET per call, rate envelope extracted
from every response, and every failure mapped to the typed errors in
:mod:`gitflux.exceptions.api`. No retrying here; that is the job of
:mod:`gitflux.github.retry`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

import httpx

from ..config import FetchConfig
from ..exceptions import (
    GitHubAPIError,
    HTTPStatusError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
)
from ..exceptions.api import reset_from_epoch
from ..logging_config import get_logger
from .mapping import map_repository
from .models import RepoRef, RepositoryInfo
from .rate import RateEnvelope

logger = get_logger(__name__)

_TRANSIENT_STATUSES = frozenset({500, 502, 503, 504})

# Opaque credential: a token string or any httpx auth flow
Credential = Union[str, httpx.Auth, None]


@dataclass(frozen=True)
class ApiResponse:
    data: Any
    rate: Optional[RateEnvelope]
    status: int


class GitHubClient:
    """GitHub REST API client using httpx.

    Attributes:
        base_url: API root
        last_rate: Envelope from the most recent response on this client

    Example:
        >>> with GitHubClient(token) as client:
        ...     info = client.get_repository(RepoRef("octocat", "Hello-World"))
    """

    def __init__(
        self,
        credential: Credential = None,
        config: Optional[FetchConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Args:
            credential: Token string or httpx.Auth; None for unauthenticated access
            config: Transport settings (base URL, timeout, user agent)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or FetchConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.last_rate: Optional[RateEnvelope] = None

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self.config.user_agent,
        }
        auth: Optional[httpx.Auth] = None
        if isinstance(credential, str):
            headers["Authorization"] = f"Bearer {credential}"
        elif credential is not None:
            auth = credential

        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            auth=auth,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            transport=transport,
        )
        logger.debug("GitHub client initialized (authenticated=%s)", credential is not None)

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> ApiResponse:
        """Issue one GET and return the parsed body with its rate envelope.

        Raises:
            NotFoundError: 404
            RateLimitError: 429, or 403 with exhausted quota / rate-limit message
            TransientNetworkError: timeouts, connection failures, 500/502/503/504
            HTTPStatusError: any other error status
        """
        try:
            response = self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Request timed out: GET {path}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Network error: GET {path}: {e}") from e

        rate = RateEnvelope.from_headers(response.headers)
        if rate is not None:
            self.last_rate = rate

        if response.status_code >= 400:
            raise self._error_for(response, path, rate)

        try:
            data = response.json()
        except ValueError as e:
            raise HTTPStatusError(
                f"Malformed JSON body from GET {path}", status=response.status_code, rate=rate
            ) from e

        return ApiResponse(data=data, rate=rate, status=response.status_code)

    def get_repository(self, ref: RepoRef) -> RepositoryInfo:
        response = self.get(f"/repos/{ref.owner}/{ref.name}")
        try:
            return map_repository(response.data)
        except ValueError as e:
            raise HTTPStatusError(
                f"Unexpected repository payload for {ref}: {e}", status=response.status
            ) from e

    def _error_for(
        self, response: httpx.Response, path: str, rate: Optional[RateEnvelope]
    ) -> GitHubAPIError:
        status = response.status_code
        message = _error_message(response)

        if status == 404:
            return NotFoundError(path, rate=rate)

        if status == 429 or (
            status == 403
            and (
                (rate is not None and rate.is_exhausted)
                or "rate limit" in message.lower()
            )
        ):
            reset_at = _retry_after(response) or reset_from_epoch(
                response.headers.get("x-ratelimit-reset")
            )
            logger.warning(
                "Rate limited on GET %s (resets %s)",
                path,
                reset_at.isoformat() if reset_at else "unknown",
            )
            return RateLimitError(reset_at=reset_at, status=status, rate=rate)

        if status in _TRANSIENT_STATUSES:
            return TransientNetworkError(
                f"GitHub API temporarily unavailable: GET {path}", status=status, rate=rate
            )

        return HTTPStatusError(
            f"GitHub API error {status}: {message or response.reason_phrase}",
            status=status,
            rate=rate,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json() if response.content else {}
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


def _retry_after(response: httpx.Response) -> Optional[datetime]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = int(value)
    except ValueError:
        return None
    return datetime.fromtimestamp(time.time() + seconds, tz=timezone.utc)
