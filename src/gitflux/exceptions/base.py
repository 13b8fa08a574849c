"""Root of the gitflux exception tree."""

from collections.abc import Mapping
from typing import Optional


class GitFluxError(Exception):
    """Any error gitflux raises deliberately.

    ``details`` carries short context (HTTP status, reset time, offending
    value); it is appended to the message as ``key=value`` pairs.
    """

    def __init__(self, message: str, details: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, str] = dict(details or {})

    def __str__(self) -> str:
        context = "; ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} [{context}]" if context else self.message
