"""Exception hierarchy for GitFlux."""

from .api import (
    CancellationError,
    GitHubAPIError,
    HTTPStatusError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
    ValidationError,
    is_retryable,
)
from .base import GitFluxError
from .config import ConfigurationError, InvalidConfigError

__all__ = [
    "GitFluxError",
    "GitHubAPIError",
    "ValidationError",
    "RateLimitError",
    "TransientNetworkError",
    "NotFoundError",
    "HTTPStatusError",
    "CancellationError",
    "is_retryable",
    "ConfigurationError",
    "InvalidConfigError",
]
