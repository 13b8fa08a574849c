"""Typed records produced from remote API responses.

Every wire response is mapped into one of these immutable types right after
it is parsed (see :mod:`gitflux.github.mapping`); nothing loosely typed flows
into aggregation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..exceptions import ValidationError
from ..window import as_utc


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class BranchStatus(str, Enum):
    ACTIVE = "active"
    STALE = "stale"
    MERGED = "merged"


class PRState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class ReviewOutcome(str, Enum):
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"


def _normalize_instants(record: object, *names: str) -> None:
    """Store timestamps as aware UTC; naive values are taken to be UTC."""
    for name in names:
        value = getattr(record, name)
        if isinstance(value, datetime):
            object.__setattr__(record, name, as_utc(value))


@dataclass(frozen=True)
class FileChange:
    path: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    status: FileStatus = FileStatus.MODIFIED
    previous_path: Optional[str] = None


@dataclass(frozen=True)
class RawCommitRecord:
    sha: str
    author: str  # login when the commit is linked to an account, else the git name
    timestamp: datetime  # author date, UTC
    message: str = ""
    files: tuple[FileChange, ...] = ()
    has_file_detail: bool = False  # list endpoints omit files; detail fetch sets this

    def __post_init__(self) -> None:
        _normalize_instants(self, "timestamp")

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


@dataclass(frozen=True)
class RawBranchRecord:
    name: str
    commit_sha: str
    last_commit_at: Optional[datetime] = None
    last_commit_author: Optional[str] = None
    last_commit_message: str = ""
    ahead: int = 0
    behind: int = 0
    is_default: bool = False
    protected: bool = False

    def __post_init__(self) -> None:
        _normalize_instants(self, "last_commit_at")


@dataclass(frozen=True)
class RawPullRequestRecord:
    number: int
    title: str
    state: PRState
    author: str
    created_at: datetime
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    is_draft: bool = False
    reviewers: tuple[str, ...] = ()
    additions: int = 0
    deletions: int = 0
    labels: tuple[str, ...] = ()
    has_size_detail: bool = False  # list endpoint omits additions/deletions

    def __post_init__(self) -> None:
        _normalize_instants(self, "created_at", "merged_at", "closed_at")

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions

    @property
    def time_to_merge_hours(self) -> Optional[float]:
        if self.merged_at is None:
            return None
        return (self.merged_at - self.created_at).total_seconds() / 3600


@dataclass(frozen=True)
class RawReviewRecord:
    pr_number: int
    reviewer: str
    outcome: ReviewOutcome
    submitted_at: datetime

    def __post_init__(self) -> None:
        _normalize_instants(self, "submitted_at")


@dataclass(frozen=True)
class RepositoryInfo:
    full_name: str
    default_branch: str
    size: int = 0  # KB, as reported
    private: bool = False
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0

    @property
    def visibility(self) -> str:
        return "private" if self.private else "public"


# GitHub login rules: alphanumerics and single hyphens, no leading/trailing hyphen
_OWNER_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")
_REPO_RE = re.compile(r"^[A-Za-z0-9._-]{1,100}$")

_URL_PATTERNS = (
    re.compile(r"^https?://(?:www\.)?github\.com/([^/]+)/([^/]+?)/?$"),
    re.compile(r"^github\.com/([^/]+)/([^/]+?)/?$"),
    re.compile(r"^([^/]+)/([^/]+)$"),
)


@dataclass(frozen=True)
class RepoRef:
    """Validated owner/repo pair."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not _OWNER_RE.match(self.owner or ""):
            raise ValidationError(f"{self.owner}/{self.name}", "malformed owner")
        if self.name in (".", "..") or not _REPO_RE.match(self.name or ""):
            raise ValidationError(f"{self.owner}/{self.name}", "malformed repository name")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


def parse_repo_ref(text: str) -> RepoRef:
    """Parse ``owner/repo``, ``github.com/owner/repo`` or a full URL.

    Raises:
        ValidationError: If the text is not a recognizable repository reference
    """
    candidate = (text or "").strip()
    for pattern in _URL_PATTERNS:
        match = pattern.match(candidate)
        if match:
            owner, repo = match.groups()
            if repo.endswith(".git"):
                repo = repo[: -len(".git")]
            return RepoRef(owner, repo)
    raise ValidationError(text, "expected owner/repo or a github.com URL")
