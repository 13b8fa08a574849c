"""Cooperative cancellation token and cancellable sleep."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..exceptions import CancellationError

# (seconds, token) -> True when the wait was cut short by cancellation
Sleeper = Callable[[float, "CancellationToken"], bool]


class CancellationToken:
    """A single cancellation signal shared down one call chain.

    Checked before each page request, before each attempt, and while any
    delay is pending. Never interrupts a request already in flight.

    Usage:
        token = CancellationToken()
        threading.Timer(5.0, token.cancel).start()
        result = fetcher.fetch(ResourceKind.COMMITS, ref, window, options=FetchOptions(token=token))
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "Request was cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError(self._reason or "Request was cancelled")


def cancellable_sleep(seconds: float, token: CancellationToken) -> bool:
    return token.wait(seconds)
