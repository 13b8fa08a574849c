"""Commit activity heatmap: per-day commit counts with contributing authors."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from typing import Optional

from ..github.models import RawCommitRecord
from ..window import TimeWindow, filter_by_window
from .models import HeatmapBucket, HeatmapResult


def weekday_index(day: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return day.isoweekday() % 7


def build_heatmap(
    commits: Iterable[RawCommitRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
) -> HeatmapResult:
    """Bucket commits by UTC calendar day.

    Args:
        commits: Commit records in any order
        window: Records outside ``[since, until)`` are excluded (default: all time)
        now: Reference instant for an open-ended window

    Returns:
        HeatmapResult whose bucket counts sum to ``total_commits``. The peak
        day is the bucket with the highest count, earliest date on ties;
        ``mean_per_day`` divides by the inclusive span from first to last
        bucket.
    """
    selected, skipped = filter_by_window(
        commits, window or TimeWindow.all_time(), lambda c: c.timestamp, now
    )

    counts: dict[date, int] = defaultdict(int)
    authors: dict[date, set[str]] = defaultdict(set)
    for commit in selected:
        day = commit.timestamp.date()
        counts[day] += 1
        authors[day].add(commit.author)

    buckets = tuple(
        HeatmapBucket(
            day=day,
            weekday=weekday_index(day),
            count=counts[day],
            authors=frozenset(authors[day]),
        )
        for day in sorted(counts)
    )

    total = len(selected)
    if not buckets:
        return HeatmapResult(buckets=(), total_commits=0, peak_day=None, mean_per_day=0.0, skipped=skipped)

    # max() keeps the first maximal element, and buckets are date-ordered
    peak = max(buckets, key=lambda b: b.count)
    span_days = max(1, (buckets[-1].day - buckets[0].day).days + 1)

    return HeatmapResult(
        buckets=buckets,
        total_commits=total,
        peak_day=peak,
        mean_per_day=total / span_days,
        skipped=skipped,
    )
