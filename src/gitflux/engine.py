"""Analysis entry points: fetch, filter, aggregate, memoize.

Each entry point accepts ``(repo, window, options)`` and returns an
:class:`AnalysisOutcome` instead of raising for remote API failures, so
callers can render partial data with an "incomplete results" notice.

Example:
    >>> with RepositoryAnalyzer(credential=token) as analyzer:
    ...     outcome = analyzer.heatmap("octocat/Hello-World", window="90d")
    ...     if outcome.ok:
    ...         print(outcome.result.total_commits, outcome.truncated)
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, Optional, TypeVar, Union

import httpx

from .analytics import (
    BranchAnalyticsResult,
    CommitActivityResult,
    ContributorTrendResult,
    FileChangeAnalysis,
    HeatmapResult,
    Period,
    PRAnalyticsResult,
    ReviewAnalyticsResult,
    aggregate_commits_by_period,
    analyze_branches,
    analyze_file_changes,
    analyze_pull_requests,
    analyze_reviews,
    build_heatmap,
    contributor_trends,
)
from .cache import ResultCache
from .config import GitFluxConfig
from .exceptions import CancellationError, GitHubAPIError, ValidationError
from .github.cancellation import Sleeper, cancellable_sleep
from .github.client import Credential, GitHubClient
from .github.fetcher import FetchOptions, FetchResult, PaginatedFetcher
from .github.models import (
    RawBranchRecord,
    RawCommitRecord,
    RawPullRequestRecord,
    RawReviewRecord,
    RepoRef,
    RepositoryInfo,
    parse_repo_ref,
)
from .github.rate import RateEnvelope
from .github.retry import RetryPolicy
from .logging_config import get_logger
from .window import TimeWindow, WindowPreset, as_utc, ceil_minute, filter_by_window, utc_now

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

RepoLike = Union[str, RepoRef]
WindowLike = Union[TimeWindow, WindowPreset, str, None]


@dataclass(frozen=True)
class AnalysisOutcome(Generic[T]):
    """Result of one entry point.

    Attributes:
        result: The analytics structure, or None when ``error`` is set
        rate: Latest rate envelope observed while serving the request
        error: Typed API error (validation, not found, rate limit, ...)
        truncated: A budget, the rate threshold or cancellation cut
            collection short; ``result`` covers partial data
        skipped: Records that could not be mapped or aggregated
    """

    result: Optional[T]
    rate: Optional[RateEnvelope] = None
    error: Optional[GitHubAPIError] = None
    truncated: bool = False
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, CancellationError)

    @property
    def incomplete(self) -> bool:
        return self.truncated or self.skipped > 0


@dataclass(frozen=True)
class BranchPRAnalysis:
    branches: BranchAnalyticsResult
    pulls: PRAnalyticsResult
    reviews: ReviewAnalyticsResult


@dataclass(frozen=True)
class _Collected(Generic[R]):
    """Records gathered for one analysis, with how the gathering went."""

    records: tuple[R, ...]
    rate: Optional[RateEnvelope]
    truncated: bool
    skipped: int

    @classmethod
    def of(cls, fetched: FetchResult[R]) -> _Collected[R]:
        return cls(fetched.records, fetched.rate, fetched.truncated, fetched.skipped)

    def then(self, fetched: FetchResult[Any], records: tuple[R, ...]) -> _Collected[R]:
        return _Collected(
            records=records,
            rate=fetched.rate or self.rate,
            truncated=self.truncated or fetched.truncated,
            skipped=self.skipped + fetched.skipped,
        )


class RepositoryAnalyzer:
    """Owns a client, a fetcher and a result cache; serves analysis requests.

    Safe to share across threads: the cache is the only mutable shared
    state and it is lock-protected. Each fetch keeps its own rate envelope.
    """

    def __init__(
        self,
        credential: Credential = None,
        config: Optional[GitFluxConfig] = None,
        client: Optional[GitHubClient] = None,
        cache: Optional[ResultCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Sleeper = cancellable_sleep,
    ) -> None:
        """
        Args:
            credential: Opaque credential handed to the client
            config: Configuration (defaults when None)
            client: Pre-built client (overrides credential/transport)
            cache: Shared result cache (one is built from config when None)
            transport: httpx transport for the built client (tests)
            sleep: Cancellable sleep used for backoff and page delays
        """
        self.config = config or GitFluxConfig()
        self.client = client or GitHubClient(credential, self.config.fetch, transport)
        self.fetcher = PaginatedFetcher(
            self.client, RetryPolicy.from_config(self.config.fetch), sleep=sleep
        )
        self.cache = cache or ResultCache(
            max_entries=self.config.cache_max_entries, enabled=self.config.cache_enabled
        )

    def __enter__(self) -> RepositoryAnalyzer:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    # --- Entry points ---

    def repository(
        self, repo: RepoLike, options: Optional[FetchOptions] = None
    ) -> AnalysisOutcome[RepositoryInfo]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[RepositoryInfo]:
            info, rate = self.fetcher.fetch_repository(ref, self._options(options))
            return AnalysisOutcome(info, rate)

        return self._run("repository", repo, None, None, body)

    def heatmap(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[HeatmapResult]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[HeatmapResult]:
            commits = _Collected.of(self.fetcher.fetch_commits(ref, window, self._options(options)))
            key = ResultCache.fingerprint(
                "heatmap", (c.sha for c in commits.records), window, _scope(ref, window, now)
            )
            result = self.cache.get_or_compute(key, lambda: build_heatmap(commits.records, window, now))
            return _outcome(result, commits)

        return self._run("heatmap", repo, window, now, body)

    def contributor_trends(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[ContributorTrendResult]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[ContributorTrendResult]:
            commits = _Collected.of(self.fetcher.fetch_commits(ref, window, self._options(options)))
            key = ResultCache.fingerprint(
                "contributors", (c.sha for c in commits.records), window, _scope(ref, window, now)
            )
            result = self.cache.get_or_compute(
                key, lambda: contributor_trends(commits.records, window, now)
            )
            return _outcome(result, commits)

        return self._run("contributor_trends", repo, window, now, body)

    def commit_activity(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        period: Union[Period, str] = Period.WEEK,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[CommitActivityResult]:
        """Commit counts per day, ISO week or month."""
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[CommitActivityResult]:
            grouping = _resolve_period(period)
            commits = _Collected.of(self.fetcher.fetch_commits(ref, window, self._options(options)))
            key = ResultCache.fingerprint(
                "activity",
                (c.sha for c in commits.records),
                window,
                {**_scope(ref, window, now), "period": grouping.value},
            )
            result = self.cache.get_or_compute(
                key, lambda: aggregate_commits_by_period(commits.records, grouping, window, now)
            )
            return _outcome(result, commits)

        return self._run("commit_activity", repo, window, now, body)

    def file_changes(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[FileChangeAnalysis]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[FileChangeAnalysis]:
            commits = self._collect_commit_files(ref, window, self._options(options))
            key = ResultCache.fingerprint(
                "files",
                (c.sha for c in commits.records),
                window,
                _scope(ref, window, now, timed=True),
            )
            result = self.cache.get_or_compute(
                key, lambda: analyze_file_changes(commits.records, window, now)
            )
            return _outcome(result, commits)

        return self._run("file_changes", repo, window, now, body)

    def branch_analytics(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[BranchAnalyticsResult]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[BranchAnalyticsResult]:
            branches = self._collect_branches(ref, self._options(options))
            return _outcome(self._branch_result(ref, branches, window, now), branches)

        return self._run("branch_analytics", repo, window, now, body)

    def pr_analytics(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[PRAnalyticsResult]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[PRAnalyticsResult]:
            pulls = self._collect_pulls(ref, window, now, self._options(options))
            return _outcome(self._pr_result(ref, pulls, window, now), pulls)

        return self._run("pr_analytics", repo, window, now, body)

    def review_analytics(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[ReviewAnalyticsResult]:
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[ReviewAnalyticsResult]:
            opts = self._options(options)
            pulls = self._collect_pulls(ref, window, now, opts, hydrate=False)
            reviewed, reviews = self._collect_reviews(ref, pulls, window, now, opts)
            return _outcome(self._review_result(ref, reviews, reviewed, window, now), reviews)

        return self._run("review_analytics", repo, window, now, body)

    def branch_pr_analysis(
        self,
        repo: RepoLike,
        window: WindowLike = WindowPreset.ALL,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisOutcome[BranchPRAnalysis]:
        """Branch, PR and review analytics from one round of fetching.

        Branches and pull requests are fetched concurrently; reviews follow
        once the pull requests are known. The reported envelope is the one
        with the least remaining quota.
        """
        def body(ref: RepoRef, window: TimeWindow, now: datetime) -> AnalysisOutcome[BranchPRAnalysis]:
            opts = self._options(options)
            with ThreadPoolExecutor(max_workers=min(2, self.config.fetch.workers)) as pool:
                branch_future = pool.submit(self._collect_branches, ref, opts)
                pull_future = pool.submit(self._collect_pulls, ref, window, now, opts)
                branches = branch_future.result()
                pulls = pull_future.result()
            reviewed, reviews = self._collect_reviews(ref, pulls, window, now, opts)

            analysis = BranchPRAnalysis(
                branches=self._branch_result(ref, branches, window, now),
                pulls=self._pr_result(ref, pulls, window, now),
                reviews=self._review_result(ref, reviews, reviewed, window, now),
            )
            parts = (branches, pulls, reviews)
            skipped = (
                sum(p.skipped for p in parts)
                + analysis.branches.skipped
                + analysis.pulls.skipped
                + analysis.reviews.skipped
            )
            return AnalysisOutcome(
                analysis,
                rate=_lowest_rate(p.rate for p in parts),
                truncated=any(p.truncated for p in parts),
                skipped=skipped,
            )

        return self._run("branch_pr_analysis", repo, window, now, body)

    # --- Collection ---

    def _options(self, options: Optional[FetchOptions]) -> FetchOptions:
        return options or FetchOptions.from_config(self.config.fetch)

    def _collect_commit_files(
        self, ref: RepoRef, window: TimeWindow, options: FetchOptions
    ) -> _Collected[RawCommitRecord]:
        listed = _Collected.of(self.fetcher.fetch_commits(ref, window, options))
        hydrated = self.fetcher.hydrate_commit_files(
            ref, listed.records, options.with_budget(self.config.fetch.max_commit_details)
        )
        return listed.then(hydrated, hydrated.records)

    def _collect_branches(self, ref: RepoRef, options: FetchOptions) -> _Collected[RawBranchRecord]:
        info, _ = self.fetcher.fetch_repository(ref, options)
        listed = _Collected.of(self.fetcher.fetch_branches(ref, info.default_branch, options))
        # Default branch first so it is always enriched within the budget
        ordered = sorted(listed.records, key=lambda b: not b.is_default)
        enriched = self.fetcher.enrich_branches(
            ref,
            ordered,
            info.default_branch,
            options.with_budget(self.config.fetch.max_branches),
        )
        return listed.then(enriched, enriched.records)

    def _collect_pulls(
        self,
        ref: RepoRef,
        window: TimeWindow,
        now: datetime,
        options: FetchOptions,
        hydrate: bool = True,
    ) -> _Collected[RawPullRequestRecord]:
        listed = _Collected.of(self.fetcher.fetch_pulls(ref, options))
        if not hydrate:
            return listed
        # Only PRs inside the window are worth a detail request
        in_window, _ = filter_by_window(listed.records, window, lambda p: p.created_at, now)
        hydrated = self.fetcher.hydrate_pull_sizes(
            ref, in_window, options.with_budget(self.config.fetch.max_pr_details)
        )
        sized = {pr.number: pr for pr in hydrated.records}
        return listed.then(hydrated, tuple(sized.get(pr.number, pr) for pr in listed.records))

    def _collect_reviews(
        self,
        ref: RepoRef,
        pulls: _Collected[RawPullRequestRecord],
        window: TimeWindow,
        now: datetime,
        options: FetchOptions,
    ) -> tuple[tuple[RawPullRequestRecord, ...], _Collected[RawReviewRecord]]:
        """Fetch reviews for the most recent in-window PRs.

        Returns:
            (the PRs whose reviews were requested, the collected reviews)
        """
        in_window, _ = filter_by_window(pulls.records, window, lambda p: p.created_at, now)
        recent = sorted(in_window, key=lambda p: p.created_at, reverse=True)
        targets = tuple(recent[: self.config.fetch.max_review_prs])
        fetched = self.fetcher.fetch_reviews_for(
            ref, [pr.number for pr in targets], options.with_budget(len(targets))
        )
        truncated = pulls.truncated or fetched.truncated or len(recent) > len(targets)
        reviews = _Collected(
            records=fetched.records,
            rate=fetched.rate or pulls.rate,
            truncated=truncated,
            skipped=fetched.skipped,
        )
        # The fan-out walks targets in order, so the first `pages` were reached
        return targets[: fetched.pages], reviews

    # --- Aggregation (memoized) ---

    def _branch_result(
        self, ref: RepoRef, branches: _Collected[RawBranchRecord], window: TimeWindow, now: datetime
    ) -> BranchAnalyticsResult:
        health = self.config.health
        key = ResultCache.fingerprint(
            "branches",
            (f"{b.name}@{b.commit_sha}:{b.ahead}/{b.behind}" for b in branches.records),
            window,
            {**_scope(ref, window, now, timed=True), "health": repr(health)},
        )
        return self.cache.get_or_compute(
            key, lambda: analyze_branches(branches.records, window, now, health)
        )

    def _pr_result(
        self, ref: RepoRef, pulls: _Collected[RawPullRequestRecord], window: TimeWindow, now: datetime
    ) -> PRAnalyticsResult:
        key = ResultCache.fingerprint(
            "pulls",
            (f"{p.number}:{p.state.value}:{p.lines_changed if p.has_size_detail else '?'}" for p in pulls.records),
            window,
            _scope(ref, window, now),
        )
        return self.cache.get_or_compute(key, lambda: analyze_pull_requests(pulls.records, window, now))

    def _review_result(
        self,
        ref: RepoRef,
        reviews: _Collected[RawReviewRecord],
        reviewed: tuple[RawPullRequestRecord, ...],
        window: TimeWindow,
        now: datetime,
    ) -> ReviewAnalyticsResult:
        identifiers = [f"pr:{p.number}" for p in reviewed] + [
            f"{r.pr_number}:{r.reviewer}:{r.submitted_at.isoformat()}" for r in reviews.records
        ]
        key = ResultCache.fingerprint("reviews", identifiers, window, _scope(ref, window, now))
        return self.cache.get_or_compute(
            key, lambda: analyze_reviews(reviews.records, reviewed, window, now)
        )

    # --- Plumbing ---

    def _run(
        self,
        operation: str,
        repo: RepoLike,
        window: WindowLike,
        now: Optional[datetime],
        body: Callable[[RepoRef, TimeWindow, datetime], AnalysisOutcome[T]],
    ) -> AnalysisOutcome[T]:
        """Resolve inputs, run ``body`` and turn typed API errors into outcomes."""
        try:
            # Without an explicit instant, calls within one minute share "now"
            now = as_utc(now) if now is not None else ceil_minute(utc_now())
            ref = repo if isinstance(repo, RepoRef) else parse_repo_ref(repo)
            resolved = _resolve_window(window, now)
            logger.info("Running %s for %s (%s)", operation, ref, resolved.bounds_key())
            outcome = body(ref, resolved, now)
        except CancellationError as e:
            logger.info("%s cancelled before any data was collected", operation)
            return AnalysisOutcome(None, rate=e.rate or self.client.last_rate, error=e, truncated=True)
        except GitHubAPIError as e:
            logger.error("%s failed: %s", operation, e)
            return AnalysisOutcome(None, rate=e.rate or self.client.last_rate, error=e)

        if outcome.incomplete:
            logger.warning(
                "%s returned partial data (truncated=%s, skipped=%d)",
                operation,
                outcome.truncated,
                outcome.skipped,
            )
        return outcome


def _resolve_window(window: WindowLike, now: datetime) -> TimeWindow:
    if window is None:
        return TimeWindow.all_time()
    if isinstance(window, TimeWindow):
        return window
    try:
        return TimeWindow.resolve(window, now)
    except ValueError as e:
        choices = ", ".join(p.value for p in WindowPreset)
        raise ValidationError(str(window), f"expected one of {choices}", subject="time window") from e


def _resolve_period(period: Union[Period, str]) -> Period:
    try:
        return Period(period)
    except ValueError as e:
        choices = ", ".join(p.value for p in Period)
        raise ValidationError(str(period), f"expected one of {choices}", subject="period") from e


def _outcome(result: Any, collected: _Collected[Any]) -> AnalysisOutcome[Any]:
    return AnalysisOutcome(
        result,
        rate=collected.rate,
        truncated=collected.truncated,
        skipped=collected.skipped + result.skipped,
    )


def _scope(ref: RepoRef, window: TimeWindow, now: datetime, timed: bool = False) -> dict[str, str]:
    """Fingerprint extras: what an aggregation reads besides its records.

    An open-ended window is cut at ``now``, so that cut joins the key.
    ``timed`` analyses also measure ages from ``now``.
    """
    extra = {"repo": ref.full_name}
    if timed:
        extra["at"] = now.isoformat()
    elif window.until is None:
        extra["until"] = window.effective_until(now).isoformat()
    return extra


def _lowest_rate(rates: Any) -> Optional[RateEnvelope]:
    known = [r for r in rates if r is not None]
    if not known:
        return None
    return min(known, key=lambda r: r.remaining)


__all__ = [
    "AnalysisOutcome",
    "BranchPRAnalysis",
    "RepositoryAnalyzer",
]
