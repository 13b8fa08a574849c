"""Review analytics: timing, per-reviewer quality and daily pattern."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Optional

from ..github.models import RawPullRequestRecord, RawReviewRecord, ReviewOutcome
from ..math import Entropy, Statistics
from ..window import TimeWindow, filter_by_window
from .models import ReviewAnalyticsResult, ReviewerStats, ReviewPattern


def _hours_between(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / 3600)


def analyze_reviews(
    reviews: Iterable[RawReviewRecord],
    pulls: Sequence[RawPullRequestRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
) -> ReviewAnalyticsResult:
    """Aggregate reviews submitted within the window.

    Args:
        reviews: Reviews of ``pulls``
        pulls: The pull requests whose reviews were collected; they provide
            creation times and the denominator of ``mean_reviews_per_pr``
        window: Applied to review submission time
        now: Reference instant for an open-ended window

    Time-to-first-review and time-to-approval are measured from PR creation
    in fractional hours. PRs without any review (or approval) are left out
    of the respective mean; reviews of PRs not in ``pulls`` count toward
    totals but not toward timing.
    """
    selected, skipped = filter_by_window(
        reviews, window or TimeWindow.all_time(), lambda r: r.submitted_at, now
    )
    created = {pr.number: pr.created_at for pr in pulls}

    first_review: dict[int, datetime] = {}
    first_approval: dict[int, datetime] = {}
    by_reviewer: dict[str, list[RawReviewRecord]] = defaultdict(list)
    daily: dict[date, dict[str, int]] = defaultdict(
        lambda: {"reviews": 0, "approvals": 0, "change_requests": 0, "comments": 0}
    )
    outcomes = {outcome: 0 for outcome in ReviewOutcome}

    for review in selected:
        number = review.pr_number
        if number not in first_review or review.submitted_at < first_review[number]:
            first_review[number] = review.submitted_at
        if review.outcome is ReviewOutcome.APPROVED and (
            number not in first_approval or review.submitted_at < first_approval[number]
        ):
            first_approval[number] = review.submitted_at

        by_reviewer[review.reviewer].append(review)
        outcomes[review.outcome] += 1

        day = daily[review.submitted_at.date()]
        day["reviews"] += 1
        if review.outcome is ReviewOutcome.APPROVED:
            day["approvals"] += 1
        elif review.outcome is ReviewOutcome.CHANGES_REQUESTED:
            day["change_requests"] += 1
        else:
            day["comments"] += 1

    to_first_review = [
        _hours_between(created[n], at) for n, at in first_review.items() if n in created
    ]
    to_approval = [
        _hours_between(created[n], at) for n, at in first_approval.items() if n in created
    ]

    reviewers = []
    for name, items in by_reviewer.items():
        count = len(items)
        approvals = sum(1 for r in items if r.outcome is ReviewOutcome.APPROVED)
        change_requests = sum(1 for r in items if r.outcome is ReviewOutcome.CHANGES_REQUESTED)
        response = [
            _hours_between(created[r.pr_number], r.submitted_at) for r in items if r.pr_number in created
        ]
        reviewers.append(
            ReviewerStats(
                reviewer=name,
                review_count=count,
                approvals=approvals,
                change_requests=change_requests,
                comments=count - approvals - change_requests,
                approval_rate=Statistics.percentage(approvals, count),
                change_request_rate=Statistics.percentage(change_requests, count),
                mean_response_hours=Statistics.mean(response),
            )
        )
    reviewers.sort(key=lambda r: (-r.review_count, r.reviewer))

    total = len(selected)
    return ReviewAnalyticsResult(
        total_reviews=total,
        reviewed_prs=len(first_review),
        mean_reviews_per_pr=total / len(pulls) if pulls else 0.0,
        mean_time_to_first_review_hours=Statistics.mean(to_first_review),
        mean_time_to_approval_hours=Statistics.mean(to_approval),
        outcome_totals={outcome.value: count for outcome, count in outcomes.items()},
        reviewers=tuple(reviewers),
        reviewer_diversity=Entropy.diversity_score({r.reviewer: r.review_count for r in reviewers}),
        daily_pattern=tuple(ReviewPattern(day=d, **counts) for d, counts in sorted(daily.items())),
        skipped=skipped,
    )
