"""Branch status classification and health scoring."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from ..config import DEFAULT_HEALTH, HealthConfig
from ..github.models import BranchStatus, RawBranchRecord
from ..math import Statistics
from ..window import TimeWindow, as_utc, filter_by_window, utc_now
from .models import BranchAnalyticsResult, BranchHealth


def branch_age_days(last_commit_at: datetime, now: datetime) -> float:
    """Days since the branch's latest commit; never negative."""
    return max(0.0, (as_utc(now) - as_utc(last_commit_at)).total_seconds() / 86400)


def classify_status(
    branch: RawBranchRecord, age_days: float, health: HealthConfig = DEFAULT_HEALTH
) -> BranchStatus:
    """Default branch is always active; a branch with nothing ahead of the
    default branch is merged; otherwise recency decides."""
    if branch.is_default:
        return BranchStatus.ACTIVE
    if branch.ahead == 0:
        return BranchStatus.MERGED
    if age_days <= health.active_days:
        return BranchStatus.ACTIVE
    return BranchStatus.STALE


def branch_health_score(
    age_days: float,
    behind: int,
    status: BranchStatus,
    health: HealthConfig = DEFAULT_HEALTH,
) -> int:
    """
    Compute the 0-100 health score of a branch.

    score = recency + divergence + bonus, where
        recency    = recency_weight                                 if age ≤ fresh_days
                   = recency_weight · (stale − age)/(stale − fresh)  if fresh < age < stale
                   = 0                                              otherwise
        divergence = divergence_weight · (1 − min(1, behind / behind_threshold))
        bonus      = active_bonus if status is active else 0

    Non-increasing in ``behind`` with age and status held fixed.
    """
    if age_days <= health.fresh_days:
        recency = float(health.recency_weight)
    elif age_days >= health.stale_days:
        recency = 0.0
    else:
        span = health.stale_days - health.fresh_days
        recency = health.recency_weight * (health.stale_days - age_days) / span

    skew = min(1.0, max(0, behind) / health.behind_threshold)
    divergence = health.divergence_weight * (1.0 - skew)

    bonus = health.active_bonus if status is BranchStatus.ACTIVE else 0

    return max(0, min(100, round(recency + divergence + bonus)))


def analyze_branches(
    branches: Iterable[RawBranchRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
    health: HealthConfig = DEFAULT_HEALTH,
) -> BranchAnalyticsResult:
    """Score every branch that has latest-commit metadata.

    Branches without a latest-commit timestamp (not enriched) are skipped
    and counted. The window applies to the latest-commit timestamp.
    """
    now = as_utc(now or utc_now())
    selected, skipped = filter_by_window(
        branches, window or TimeWindow.all_time(), lambda b: b.last_commit_at, now
    )

    scored = []
    for branch in selected:
        age = branch_age_days(branch.last_commit_at, now)
        status = classify_status(branch, age, health)
        scored.append(
            BranchHealth(
                name=branch.name,
                status=status,
                health_score=branch_health_score(age, branch.behind, status, health),
                last_commit_at=branch.last_commit_at,
                last_commit_author=branch.last_commit_author,
                ahead=branch.ahead,
                behind=branch.behind,
                is_default=branch.is_default,
                protected=branch.protected,
                age_days=age,
            )
        )
    scored.sort(key=lambda b: (-b.last_commit_at.timestamp(), b.name))

    counts = {status: 0 for status in BranchStatus}
    for b in scored:
        counts[b.status] += 1

    return BranchAnalyticsResult(
        branches=tuple(scored),
        total=len(scored),
        active=counts[BranchStatus.ACTIVE],
        merged=counts[BranchStatus.MERGED],
        stale=counts[BranchStatus.STALE],
        mean_health=Statistics.mean([b.health_score for b in scored]) or 0.0,
        skipped=skipped,
    )
