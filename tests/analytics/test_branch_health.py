"""Tests for gitflux.analytics.branches module."""

from datetime import datetime, timedelta, timezone

import pytest

from gitflux.analytics.branches import (
    analyze_branches,
    branch_age_days,
    branch_health_score,
    classify_status,
)
from gitflux.config import HealthConfig
from gitflux.github.models import BranchStatus
from gitflux.window import TimeWindow

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def days_ago(n):
    return NOW - timedelta(days=n)


class TestClassifyStatus:
    def test_default_branch_always_active(self, make_branch):
        branch = make_branch("main", days_ago(400), ahead=0, is_default=True)
        assert classify_status(branch, 400) is BranchStatus.ACTIVE

    def test_nothing_ahead_is_merged(self, make_branch):
        assert classify_status(make_branch("done", days_ago(1), ahead=0), 1) is BranchStatus.MERGED

    def test_recency(self, make_branch):
        branch = make_branch("feature", days_ago(1), ahead=3)
        assert classify_status(branch, 30) is BranchStatus.ACTIVE
        assert classify_status(branch, 31) is BranchStatus.STALE


class TestBranchHealthScore:
    def test_fresh_active_even_branch_scores_hundred(self):
        assert branch_health_score(0, 0, BranchStatus.ACTIVE) == 100

    def test_ancient_far_behind_stale_scores_zero(self):
        assert branch_health_score(365, 500, BranchStatus.STALE) == 0

    def test_recency_decays_linearly(self):
        # Halfway between fresh (7) and stale (90): 30 recency + 25 divergence
        assert branch_health_score(48.5, 0, BranchStatus.STALE) == 55

    @pytest.mark.parametrize("status", list(BranchStatus))
    @pytest.mark.parametrize("age", [0, 10, 45, 89, 200])
    def test_non_increasing_in_behind(self, status, age):
        scores = [branch_health_score(age, behind, status) for behind in range(0, 120, 3)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert all(0 <= s <= 100 for s in scores)

    def test_custom_weights(self):
        health = HealthConfig(recency_weight=50, divergence_weight=50, active_bonus=0)
        assert branch_health_score(0, 25, BranchStatus.ACTIVE, health) == 75

    def test_invalid_weights(self):
        with pytest.raises(ValueError, match="sum to 100"):
            HealthConfig(recency_weight=90)


class TestAnalyzeBranches:
    def test_summary(self, make_branch):
        branches = [
            make_branch("main", days_ago(1), ahead=0, is_default=True),
            make_branch("feature", days_ago(3), ahead=2, behind=5),
            make_branch("old", days_ago(200), ahead=4, behind=80),
            make_branch("shipped", days_ago(10), ahead=0),
        ]
        result = analyze_branches(branches, now=NOW)

        assert [b.name for b in result.branches] == ["main", "feature", "shipped", "old"]
        assert (result.total, result.active, result.merged, result.stale) == (4, 2, 1, 1)
        by_name = {b.name: b for b in result.branches}
        assert by_name["main"].health_score == 100
        assert by_name["old"].health_score == 0
        assert by_name["feature"].age_days == pytest.approx(3)
        assert result.mean_health == pytest.approx(
            sum(b.health_score for b in result.branches) / 4
        )

    def test_branches_without_date_are_skipped(self, make_branch):
        result = analyze_branches([make_branch("x", None), make_branch("y", days_ago(1))], now=NOW)
        assert result.total == 1
        assert result.skipped == 1

    def test_window_applies_to_last_commit(self, make_branch):
        branches = [make_branch("new", days_ago(5)), make_branch("ancient", days_ago(300))]
        result = analyze_branches(branches, TimeWindow.resolve("90d", NOW), NOW)
        assert [b.name for b in result.branches] == ["new"]

    def test_empty(self):
        result = analyze_branches([], now=NOW)
        assert result.total == 0
        assert result.mean_health == 0.0

    def test_age_never_negative(self):
        assert branch_age_days(NOW + timedelta(hours=1), NOW) == 0.0
