"""Pull request analytics: state counts, merge timing, sizes and weekly cadence."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Optional

from ..github.models import PRState, RawPullRequestRecord
from ..math import Statistics
from ..window import TimeWindow, filter_by_window
from .heatmap import weekday_index
from .models import PRAnalyticsResult, PRContributorStats, PRTimelinePoint, SizeBucket

# Inclusive upper bounds; first match wins, anything larger is XL
_SIZE_BOUNDS = (
    (10, SizeBucket.XS),
    (50, SizeBucket.S),
    (200, SizeBucket.M),
    (500, SizeBucket.L),
)

TOP_CONTRIBUTORS = 10

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def categorize_pr_size(lines_changed: int) -> SizeBucket:
    for bound, bucket in _SIZE_BOUNDS:
        if lines_changed <= bound:
            return bucket
    return SizeBucket.XL


def opening_cadence(created: Iterable[date]) -> tuple[float, Optional[str], int]:
    """Mean PRs per active week and the busiest weekday.

    Weeks start on Sunday and only weeks with at least one PR count. Ties
    for the busiest weekday go to the earliest day of the week.

    Returns:
        (mean PRs per week, weekday name or None, PRs opened on that weekday)
    """
    per_week: dict[date, int] = defaultdict(int)
    per_weekday = [0] * 7
    for day in created:
        weekday = weekday_index(day)
        per_week[day - timedelta(days=weekday)] += 1
        per_weekday[weekday] += 1

    if not per_week:
        return 0.0, None, 0
    peak = max(range(7), key=lambda i: (per_weekday[i], -i))
    return sum(per_week.values()) / len(per_week), WEEKDAY_NAMES[peak], per_weekday[peak]


def analyze_pull_requests(
    pulls: Iterable[RawPullRequestRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
    top: int = TOP_CONTRIBUTORS,
) -> PRAnalyticsResult:
    """Aggregate pull requests created within the window.

    Size statistics only cover PRs whose additions/deletions are known;
    the rest are reported in ``unsized`` so that the size histogram plus
    ``unsized`` still adds up to ``total``. Time-to-merge only covers
    merged PRs.
    """
    selected, skipped = filter_by_window(
        pulls, window or TimeWindow.all_time(), lambda p: p.created_at, now
    )

    states = {state: 0 for state in PRState}
    size_buckets = {bucket: 0 for bucket in SizeBucket}
    sizes: list[int] = []
    merge_hours: list[float] = []
    timeline: dict[date, dict[str, int]] = defaultdict(lambda: {"opened": 0, "merged": 0, "closed": 0})
    by_author: dict[str, list[RawPullRequestRecord]] = defaultdict(list)

    for pr in selected:
        states[pr.state] += 1
        if pr.has_size_detail:
            size_buckets[categorize_pr_size(pr.lines_changed)] += 1
            sizes.append(pr.lines_changed)
        hours = pr.time_to_merge_hours
        if hours is not None:
            merge_hours.append(max(0.0, hours))

        timeline[pr.created_at.date()]["opened"] += 1
        if pr.merged_at is not None:
            timeline[pr.merged_at.date()]["merged"] += 1
        elif pr.closed_at is not None:
            timeline[pr.closed_at.date()]["closed"] += 1

        by_author[pr.author].append(pr)

    contributors = []
    for author, prs in by_author.items():
        hours = [max(0.0, p.time_to_merge_hours) for p in prs if p.time_to_merge_hours is not None]
        contributors.append(
            PRContributorStats(
                author=author,
                pr_count=len(prs),
                lines_changed=sum(p.lines_changed for p in prs if p.has_size_detail),
                mean_time_to_merge_hours=Statistics.mean(hours),
            )
        )
    contributors.sort(key=lambda c: (-c.pr_count, c.author))

    total = len(selected)
    per_week, peak_weekday, peak_count = opening_cadence(pr.created_at.date() for pr in selected)
    return PRAnalyticsResult(
        total=total,
        open=states[PRState.OPEN],
        closed=states[PRState.CLOSED],
        merged=states[PRState.MERGED],
        draft=sum(1 for pr in selected if pr.is_draft),
        merge_rate=Statistics.percentage(states[PRState.MERGED], total),
        mean_time_to_merge_hours=Statistics.mean(merge_hours),
        median_time_to_merge_hours=Statistics.median(merge_hours),
        mean_size=Statistics.mean(sizes) or 0.0,
        size_buckets=size_buckets,
        unsized=total - len(sizes),
        timeline=tuple(PRTimelinePoint(day=day, **counts) for day, counts in sorted(timeline.items())),
        top_contributors=tuple(contributors[:top]),
        mean_prs_per_week=per_week,
        peak_weekday=peak_weekday,
        peak_weekday_count=peak_count,
        skipped=skipped,
    )
