"""Contributor trend lines and commit activity grouped by period."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..github.models import RawCommitRecord
from ..window import TimeWindow, filter_by_window
from .models import (
    CommitActivityResult,
    ContributorTrend,
    ContributorTrendResult,
    Period,
    PeriodBucket,
    TrendPoint,
    TrendTag,
)

# Trend tags look this many points back (a 3-point window)
TREND_LOOKBACK = 2
ACTIVE_CONTRIBUTOR_DAYS = 30


def trend_tag(counts: Sequence[int], index: int) -> TrendTag:
    """Compare point ``index`` with the first point of its 3-point window."""
    first = counts[max(0, index - TREND_LOOKBACK)]
    last = counts[index]
    if last > first:
        return TrendTag.UP
    if last < first:
        return TrendTag.DOWN
    return TrendTag.STABLE


def contributor_trends(
    commits: Iterable[RawCommitRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
) -> ContributorTrendResult:
    """Group commits by author into zero-filled daily series.

    The date axis is the union of days on which anyone committed, so every
    series has the same length. Contributors are ordered by total commits
    (descending), then by name.
    """
    window = window or TimeWindow.all_time()
    selected, skipped = filter_by_window(commits, window, lambda c: c.timestamp, now)

    per_author: dict[str, dict[date, int]] = defaultdict(lambda: defaultdict(int))
    first_seen: dict[str, datetime] = {}
    last_seen: dict[str, datetime] = {}
    for commit in selected:
        per_author[commit.author][commit.timestamp.date()] += 1
        if commit.author not in first_seen or commit.timestamp < first_seen[commit.author]:
            first_seen[commit.author] = commit.timestamp
        if commit.author not in last_seen or commit.timestamp > last_seen[commit.author]:
            last_seen[commit.author] = commit.timestamp

    dates = tuple(sorted({day for days in per_author.values() for day in days}))

    contributors = []
    for author, days in per_author.items():
        counts = [days.get(day, 0) for day in dates]
        series = tuple(
            TrendPoint(day=day, count=counts[i], trend=trend_tag(counts, i))
            for i, day in enumerate(dates)
        )
        contributors.append(
            ContributorTrend(
                author=author,
                series=series,
                total_commits=sum(counts),
                first_commit_at=first_seen[author],
                last_commit_at=last_seen[author],
            )
        )
    contributors.sort(key=lambda c: (-c.total_commits, c.author))

    # Activity is judged against the window end, or the latest commit when
    # the window is open-ended
    reference = window.until or max(last_seen.values(), default=None)
    active = 0
    if reference is not None:
        cutoff = reference - timedelta(days=ACTIVE_CONTRIBUTOR_DAYS)
        active = sum(1 for c in contributors if c.last_commit_at >= cutoff)

    return ContributorTrendResult(
        contributors=tuple(contributors),
        dates=dates,
        total_commits=len(selected),
        active_contributors=active,
        skipped=skipped,
    )


def period_key(day: date, period: Period) -> str:
    if period is Period.WEEK:
        iso_year, week, _ = day.isocalendar()
        return f"{iso_year}-W{week:02d}"
    if period is Period.MONTH:
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def aggregate_commits_by_period(
    commits: Iterable[RawCommitRecord],
    period: Union[Period, str] = Period.DAY,
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
) -> CommitActivityResult:
    """Count commits and distinct authors per day, ISO week or month.

    Weeks use the ISO year, so 2024-12-30 falls in ``2025-W01``.
    """
    period = Period(period)
    selected, skipped = filter_by_window(
        commits, window or TimeWindow.all_time(), lambda c: c.timestamp, now
    )

    counts: dict[str, int] = defaultdict(int)
    authors: dict[str, set[str]] = defaultdict(set)
    for commit in selected:
        key = period_key(commit.timestamp.date(), period)
        counts[key] += 1
        authors[key].add(commit.author)

    return CommitActivityResult(
        period=period,
        buckets=tuple(
            PeriodBucket(key=key, count=counts[key], authors=tuple(sorted(authors[key])))
            for key in sorted(counts)
        ),
        total_commits=len(selected),
        skipped=skipped,
    )
