"""Result types of the aggregation pipeline.

Every result carries a ``skipped`` count: records the transform could not
use (missing or unparsable timestamps) are dropped and counted rather than
raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..github.models import BranchStatus


class TrendTag(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class SizeBucket(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"


class Period(str, Enum):
    DAY = "day"
    WEEK = "week"  # ISO week, keyed YYYY-Www
    MONTH = "month"


# --- Heatmap ---


@dataclass(frozen=True)
class HeatmapBucket:
    day: date
    weekday: int  # 0 = Sunday ... 6 = Saturday
    count: int
    authors: frozenset[str] = frozenset()


@dataclass(frozen=True)
class HeatmapResult:
    """Per-day commit counts, ordered by date.

    Only days with at least one commit have a bucket.
    """

    buckets: tuple[HeatmapBucket, ...]
    total_commits: int
    peak_day: Optional[HeatmapBucket]
    mean_per_day: float
    skipped: int = 0

    @property
    def start(self) -> Optional[date]:
        return self.buckets[0].day if self.buckets else None

    @property
    def end(self) -> Optional[date]:
        return self.buckets[-1].day if self.buckets else None

    @property
    def active_days(self) -> int:
        return len(self.buckets)


# --- Contributor trends ---


@dataclass(frozen=True)
class TrendPoint:
    day: date
    count: int
    trend: TrendTag


@dataclass(frozen=True)
class ContributorTrend:
    author: str
    series: tuple[TrendPoint, ...]
    total_commits: int
    first_commit_at: datetime
    last_commit_at: datetime


@dataclass(frozen=True)
class ContributorTrendResult:
    """One zero-filled daily series per author over the shared date axis."""

    contributors: tuple[ContributorTrend, ...]
    dates: tuple[date, ...]
    total_commits: int
    active_contributors: int  # committed within the last 30 days of the window
    skipped: int = 0


@dataclass(frozen=True)
class PeriodBucket:
    key: str  # 2024-01-05, 2024-W01 or 2024-01
    count: int
    authors: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommitActivityResult:
    """Commit counts grouped by day, ISO week or month, oldest first."""

    period: Period
    buckets: tuple[PeriodBucket, ...]
    total_commits: int
    skipped: int = 0


# --- File changes ---


@dataclass(frozen=True)
class FileChangeStat:
    path: str
    change_count: int  # commits touching the file
    lines_changed: int
    percentage: float  # of all file changes; unrounded
    last_changed: datetime
    is_deleted: bool
    category: str
    extension: str
    trend: tuple[tuple[date, int], ...] = ()


@dataclass(frozen=True)
class CategoryStat:
    category: str
    count: int
    percentage: float


@dataclass(frozen=True)
class FileChangeAnalysis:
    files: tuple[FileChangeStat, ...]  # ranked by change_count, descending
    categories: tuple[CategoryStat, ...]
    total_changes: int
    total_lines_changed: int
    diversity_score: int
    hotspots: tuple[str, ...] = ()
    recently_active: tuple[str, ...] = ()
    stale: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    daily_trend: tuple[tuple[date, int], ...] = ()
    skipped: int = 0

    @property
    def total_files(self) -> int:
        return len(self.files)


# --- Branches ---


@dataclass(frozen=True)
class BranchHealth:
    name: str
    status: BranchStatus
    health_score: int
    last_commit_at: datetime
    last_commit_author: Optional[str]
    ahead: int
    behind: int
    is_default: bool = False
    protected: bool = False
    age_days: float = 0.0


@dataclass(frozen=True)
class BranchAnalyticsResult:
    branches: tuple[BranchHealth, ...]  # most recent commit first
    total: int
    active: int
    merged: int
    stale: int
    mean_health: float
    skipped: int = 0


# --- Pull requests ---


@dataclass(frozen=True)
class PRContributorStats:
    author: str
    pr_count: int
    lines_changed: int
    mean_time_to_merge_hours: Optional[float]


@dataclass(frozen=True)
class PRTimelinePoint:
    day: date
    opened: int = 0
    merged: int = 0
    closed: int = 0  # closed without merging


@dataclass(frozen=True)
class PRAnalyticsResult:
    total: int
    open: int
    closed: int
    merged: int
    draft: int
    merge_rate: float  # percent of all PRs
    mean_time_to_merge_hours: Optional[float]
    median_time_to_merge_hours: Optional[float]
    mean_size: float
    size_buckets: dict[SizeBucket, int] = field(default_factory=dict)
    unsized: int = 0  # PRs without additions/deletions, not in size_buckets
    timeline: tuple[PRTimelinePoint, ...] = ()
    top_contributors: tuple[PRContributorStats, ...] = ()
    mean_prs_per_week: float = 0.0  # over Sunday-started weeks with at least one PR
    peak_weekday: Optional[str] = None
    peak_weekday_count: int = 0
    skipped: int = 0


# --- Reviews ---


@dataclass(frozen=True)
class ReviewerStats:
    reviewer: str
    review_count: int
    approvals: int
    change_requests: int
    comments: int
    approval_rate: float  # percent
    change_request_rate: float  # percent
    mean_response_hours: Optional[float]


@dataclass(frozen=True)
class ReviewPattern:
    day: date
    reviews: int = 0
    approvals: int = 0
    change_requests: int = 0
    comments: int = 0


@dataclass(frozen=True)
class ReviewAnalyticsResult:
    total_reviews: int
    reviewed_prs: int
    mean_reviews_per_pr: float
    mean_time_to_first_review_hours: Optional[float]
    mean_time_to_approval_hours: Optional[float]
    outcome_totals: dict[str, int] = field(default_factory=dict)
    reviewers: tuple[ReviewerStats, ...] = ()
    reviewer_diversity: int = 0
    daily_pattern: tuple[ReviewPattern, ...] = ()
    skipped: int = 0
