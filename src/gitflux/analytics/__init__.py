"""Aggregation pipeline: pure transforms from raw records to analytics.

Every transform takes records plus an optional time window, never raises on
an individual malformed record, and reports how many records it skipped.
"""

from .branches import analyze_branches, branch_age_days, branch_health_score, classify_status
from .contributors import aggregate_commits_by_period, contributor_trends, period_key, trend_tag
from .files import analyze_file_changes, categorize_file
from .heatmap import build_heatmap, weekday_index
from .models import (
    BranchAnalyticsResult,
    BranchHealth,
    CategoryStat,
    CommitActivityResult,
    ContributorTrend,
    ContributorTrendResult,
    FileChangeAnalysis,
    FileChangeStat,
    HeatmapBucket,
    HeatmapResult,
    Period,
    PeriodBucket,
    PRAnalyticsResult,
    PRContributorStats,
    PRTimelinePoint,
    ReviewAnalyticsResult,
    ReviewerStats,
    ReviewPattern,
    SizeBucket,
    TrendPoint,
    TrendTag,
)
from .pulls import analyze_pull_requests, categorize_pr_size, opening_cadence
from .reviews import analyze_reviews
from .serialize import to_json, to_jsonable

__all__ = [
    "BranchAnalyticsResult",
    "BranchHealth",
    "CategoryStat",
    "CommitActivityResult",
    "ContributorTrend",
    "ContributorTrendResult",
    "FileChangeAnalysis",
    "FileChangeStat",
    "HeatmapBucket",
    "HeatmapResult",
    "Period",
    "PeriodBucket",
    "PRAnalyticsResult",
    "PRContributorStats",
    "PRTimelinePoint",
    "ReviewAnalyticsResult",
    "ReviewPattern",
    "ReviewerStats",
    "SizeBucket",
    "TrendPoint",
    "TrendTag",
    "aggregate_commits_by_period",
    "analyze_branches",
    "analyze_file_changes",
    "analyze_pull_requests",
    "analyze_reviews",
    "branch_age_days",
    "branch_health_score",
    "build_heatmap",
    "categorize_file",
    "categorize_pr_size",
    "classify_status",
    "contributor_trends",
    "opening_cadence",
    "period_key",
    "to_json",
    "to_jsonable",
    "trend_tag",
    "weekday_index",
]
