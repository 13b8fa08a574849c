"""GitHub REST API access: transport, retry, pagination and typed records."""

from .cancellation import CancellationToken, cancellable_sleep
from .client import ApiResponse, GitHubClient
from .fetcher import (
    FetchOptions,
    FetchProgress,
    FetchResult,
    PaginatedFetcher,
    ResourceKind,
    StopReason,
)
from .models import (
    BranchStatus,
    FileChange,
    FileStatus,
    PRState,
    RawBranchRecord,
    RawCommitRecord,
    RawPullRequestRecord,
    RawReviewRecord,
    RepoRef,
    RepositoryInfo,
    ReviewOutcome,
    parse_repo_ref,
)
from .rate import RateEnvelope
from .retry import RetryPolicy, backoff_delay, with_retry

__all__ = [
    "ApiResponse",
    "BranchStatus",
    "CancellationToken",
    "FetchOptions",
    "FetchProgress",
    "FetchResult",
    "FileChange",
    "FileStatus",
    "GitHubClient",
    "PRState",
    "PaginatedFetcher",
    "RateEnvelope",
    "RawBranchRecord",
    "RawCommitRecord",
    "RawPullRequestRecord",
    "RawReviewRecord",
    "RepoRef",
    "RepositoryInfo",
    "ResourceKind",
    "RetryPolicy",
    "ReviewOutcome",
    "StopReason",
    "backoff_delay",
    "cancellable_sleep",
    "parse_repo_ref",
    "with_retry",
]
