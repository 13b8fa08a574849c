"""Paginated fetcher: one resource kind, page by page, within a budget.

Pagination stops at the first of:
    - a short page (fewer than ``per_page`` items): end of data, complete
    - ``max_items`` records collected (or ``max_pages`` requested)
    - remaining quota below ``rate_limit_threshold``
    - cancellation observed (before a request or during the inter-page delay)

Every early stop returns the records already collected, tagged truncated.
Pages are requested and appended strictly in page order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar
from urllib.parse import quote

from ..config import FetchConfig
from ..exceptions import CancellationError, HTTPStatusError, NotFoundError
from ..logging_config import get_logger
from ..window import TimeWindow
from .cancellation import CancellationToken, Sleeper, cancellable_sleep
from .client import ApiResponse, GitHubClient
from .mapping import (
    RecordMappingError,
    map_branch,
    map_commit,
    map_pull_request,
    map_records,
    map_repository,
    map_review,
)
from .models import (
    RawBranchRecord,
    RawCommitRecord,
    RawPullRequestRecord,
    RawReviewRecord,
    RepoRef,
    RepositoryInfo,
)
from .rate import RateEnvelope
from .retry import RetryPolicy

logger = get_logger(__name__)

T = TypeVar("T")
I = TypeVar("I")


class ResourceKind(str, Enum):
    COMMITS = "commits"
    BRANCHES = "branches"
    PULLS = "pulls"
    REVIEWS = "reviews"


_PATHS = {
    ResourceKind.COMMITS: "/repos/{owner}/{repo}/commits",
    ResourceKind.BRANCHES: "/repos/{owner}/{repo}/branches",
    ResourceKind.PULLS: "/repos/{owner}/{repo}/pulls",
    ResourceKind.REVIEWS: "/repos/{owner}/{repo}/pulls/{number}/reviews",
}


class StopReason(str, Enum):
    END_OF_DATA = "end_of_data"
    MAX_ITEMS = "max_items"
    MAX_PAGES = "max_pages"
    RATE_LIMIT = "rate_limit"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchProgress:
    """Advisory progress snapshot. Never affects control flow."""

    kind: str
    processed: int
    estimated_total: int
    page: int


ProgressCallback = Callable[[FetchProgress], None]


@dataclass(frozen=True)
class FetchOptions:
    max_items: int = 1000
    max_pages: Optional[int] = None
    rate_limit_threshold: int = 50
    page_delay: float = 0.1
    token: CancellationToken = field(default_factory=CancellationToken)
    progress: Optional[ProgressCallback] = None

    def __post_init__(self) -> None:
        if self.max_items < 0:
            raise ValueError("max_items must be non-negative")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")

    @classmethod
    def from_config(
        cls,
        config: FetchConfig,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> FetchOptions:
        return cls(
            max_items=config.max_items,
            max_pages=config.max_pages,
            rate_limit_threshold=config.rate_limit_threshold,
            page_delay=config.page_delay_seconds,
            token=token or CancellationToken(),
            progress=progress,
        )

    def with_budget(self, max_items: int, max_pages: Optional[int] = None) -> FetchOptions:
        return replace(self, max_items=max_items, max_pages=max_pages)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    records: tuple[T, ...]
    rate: Optional[RateEnvelope]
    stop_reason: StopReason
    pages: int = 0
    skipped: int = 0

    @property
    def complete(self) -> bool:
        return self.stop_reason is StopReason.END_OF_DATA

    @property
    def truncated(self) -> bool:
        return not self.complete


class PaginatedFetcher:
    """Budgeted, cancellable pagination over the GitHub REST API.

    Each page request is wrapped by the retry controller. The rate envelope
    is refreshed from every successful response and consulted before the
    next page is requested; envelopes are never shared between fetches.
    """

    def __init__(
        self,
        client: GitHubClient,
        retry: Optional[RetryPolicy] = None,
        sleep: Sleeper = cancellable_sleep,
    ) -> None:
        self.client = client
        self.retry = retry or RetryPolicy.from_config(client.config)
        self._sleep = sleep

    # --- Pagination ---

    def fetch(
        self,
        kind: ResourceKind,
        ref: RepoRef,
        window: Optional[TimeWindow] = None,
        page: int = 1,
        per_page: Optional[int] = None,
        options: Optional[FetchOptions] = None,
        *,
        pr_number: Optional[int] = None,
        default_branch: Optional[str] = None,
    ) -> FetchResult[Any]:
        """Fetch one resource kind page by page.

        Args:
            kind: Resource to list
            ref: Repository
            window: Server-side since/until filter (commits only)
            page: First page to request (1-based)
            per_page: Page size, 1-100 (defaults to the client config)
            options: Budget, threshold, delay, cancellation and progress
            pr_number: Required for REVIEWS
            default_branch: Marks the default branch when listing BRANCHES

        Returns:
            FetchResult with records in page order

        Raises:
            CancellationError: If cancelled before any page was collected
            GitHubAPIError: Fatal errors, or retryable ones after the last attempt
        """
        per_page = per_page or self.client.config.per_page
        if not 1 <= per_page <= 100:
            raise ValueError("per_page must be between 1 and 100")
        if page < 1:
            raise ValueError("page must be at least 1")
        if kind is ResourceKind.REVIEWS and pr_number is None:
            raise ValueError("pr_number is required for reviews")

        options = options or FetchOptions()
        token = options.token
        path = _PATHS[kind].format(owner=ref.owner, repo=ref.name, number=pr_number)
        base_params = self._params_for(kind, window)
        mapper = self._mapper_for(kind, pr_number, default_branch)

        records: list[Any] = []
        rate: Optional[RateEnvelope] = None
        pages = 0
        skipped = 0
        current = page
        label = f"GET {path}"

        if options.max_items == 0:
            return FetchResult((), None, StopReason.MAX_ITEMS)

        while True:
            if token.cancelled:
                if pages == 0:
                    token.raise_if_cancelled()
                reason = StopReason.CANCELLED
                break

            params = {**base_params, "page": current, "per_page": per_page}
            try:
                response = self.retry.call(
                    lambda: self.client.get(path, params=params),
                    token=token,
                    sleep=self._sleep,
                    label=f"{label} page {current}",
                )
            except CancellationError:
                if pages == 0:
                    raise
                reason = StopReason.CANCELLED
                break

            items = _as_list(response, path)
            pages += 1
            if response.rate is not None:
                rate = response.rate

            mapped, bad = map_records(items, mapper, label=kind.value)
            skipped += bad
            room = options.max_items - len(records)
            records.extend(mapped[:room])

            full_page = len(items) >= per_page
            self._report(
                options,
                FetchProgress(
                    kind=kind.value,
                    processed=len(records),
                    estimated_total=(
                        min(options.max_items, len(records) + per_page) if full_page else len(records)
                    ),
                    page=current,
                ),
            )
            logger.debug("%s page %d: %d items (%d total)", kind.value, current, len(items), len(records))

            if len(mapped) > room:
                reason = StopReason.MAX_ITEMS
                break
            if not full_page:
                reason = StopReason.END_OF_DATA
                break
            if len(records) >= options.max_items:
                reason = StopReason.MAX_ITEMS
                break
            if options.max_pages is not None and pages >= options.max_pages:
                reason = StopReason.MAX_PAGES
                break
            if rate is not None and rate.below(options.rate_limit_threshold):
                logger.warning(
                    "Rate limit low (%d/%d remaining); stopping %s after page %d",
                    rate.remaining,
                    rate.limit,
                    kind.value,
                    current,
                )
                reason = StopReason.RATE_LIMIT
                break
            if options.page_delay > 0 and self._sleep(options.page_delay, token):
                reason = StopReason.CANCELLED
                break
            current += 1

        if reason is not StopReason.END_OF_DATA:
            logger.info(
                "Fetch of %s for %s truncated (%s) at %d records", kind.value, ref, reason.value, len(records)
            )
        return FetchResult(tuple(records), rate, reason, pages=pages, skipped=skipped)

    def fetch_commits(
        self, ref: RepoRef, window: Optional[TimeWindow] = None, options: Optional[FetchOptions] = None
    ) -> FetchResult[RawCommitRecord]:
        return self.fetch(ResourceKind.COMMITS, ref, window, options=options)

    def fetch_branches(
        self, ref: RepoRef, default_branch: Optional[str] = None, options: Optional[FetchOptions] = None
    ) -> FetchResult[RawBranchRecord]:
        return self.fetch(ResourceKind.BRANCHES, ref, options=options, default_branch=default_branch)

    def fetch_pulls(
        self, ref: RepoRef, options: Optional[FetchOptions] = None
    ) -> FetchResult[RawPullRequestRecord]:
        return self.fetch(ResourceKind.PULLS, ref, options=options)

    def fetch_repository(
        self, ref: RepoRef, options: Optional[FetchOptions] = None
    ) -> tuple[RepositoryInfo, Optional[RateEnvelope]]:
        """Repository metadata plus the envelope of that response."""
        response = self._get(f"/repos/{ref.owner}/{ref.name}", options)
        try:
            return map_repository(response.data), response.rate
        except (RecordMappingError, AttributeError) as e:
            raise HTTPStatusError(
                f"Unexpected repository payload for {ref}: {e}", status=response.status, rate=response.rate
            ) from e

    # --- Detail fan-out ---

    def hydrate_commit_files(
        self,
        ref: RepoRef,
        commits: Sequence[RawCommitRecord],
        options: Optional[FetchOptions] = None,
    ) -> FetchResult[RawCommitRecord]:
        """Fetch file-level detail for each commit that lacks it.

        Only hydrated commits are returned (in input order).
        """
        def fetch_one(commit: RawCommitRecord) -> tuple[list[RawCommitRecord], Optional[RateEnvelope]]:
            if commit.has_file_detail:
                return [commit], None
            response = self._get(f"/repos/{ref.owner}/{ref.name}/commits/{_segment(commit.sha)}", options)
            return [map_commit(response.data)], response.rate

        return self._fan_out(commits, fetch_one, options, label="commit detail")

    def enrich_branches(
        self,
        ref: RepoRef,
        branches: Sequence[RawBranchRecord],
        default_branch: str,
        options: Optional[FetchOptions] = None,
    ) -> FetchResult[RawBranchRecord]:
        """Add latest-commit metadata and ahead/behind counts to listed branches."""
        def fetch_one(branch: RawBranchRecord) -> tuple[list[RawBranchRecord], Optional[RateEnvelope]]:
            detail = self._get(f"/repos/{ref.owner}/{ref.name}/branches/{_segment(branch.name)}", options)
            enriched = map_branch(detail.data, default_branch)
            rate = detail.rate
            if not enriched.is_default:
                compare = self._get(
                    f"/repos/{ref.owner}/{ref.name}/compare/"
                    f"{_segment(default_branch)}...{_segment(branch.name)}",
                    options,
                )
                rate = compare.rate or rate
                data = compare.data if isinstance(compare.data, dict) else {}
                ahead, behind = data.get("ahead_by"), data.get("behind_by")
                if not isinstance(ahead, int) or not isinstance(behind, int):
                    raise RecordMappingError(f"compare for {branch.name} lacks ahead/behind counts")
                enriched = replace(enriched, ahead=ahead, behind=behind)
            return [replace(enriched, protected=enriched.protected or branch.protected)], rate

        return self._fan_out(branches, fetch_one, options, label="branch detail")

    def hydrate_pull_sizes(
        self,
        ref: RepoRef,
        pulls: Sequence[RawPullRequestRecord],
        options: Optional[FetchOptions] = None,
    ) -> FetchResult[RawPullRequestRecord]:
        """Fetch additions/deletions for pull requests listed without them."""
        def fetch_one(pr: RawPullRequestRecord) -> tuple[list[RawPullRequestRecord], Optional[RateEnvelope]]:
            if pr.has_size_detail:
                return [pr], None
            response = self._get(f"/repos/{ref.owner}/{ref.name}/pulls/{pr.number}", options)
            return [map_pull_request(response.data)], response.rate

        return self._fan_out(pulls, fetch_one, options, label="pull request detail")

    def fetch_reviews_for(
        self,
        ref: RepoRef,
        pr_numbers: Sequence[int],
        options: Optional[FetchOptions] = None,
    ) -> FetchResult[RawReviewRecord]:
        """Fetch the reviews of each listed pull request."""
        options = options or FetchOptions()
        skipped_reviews = 0
        partial: Optional[StopReason] = None

        def fetch_one(number: int) -> tuple[list[RawReviewRecord], Optional[RateEnvelope]]:
            nonlocal skipped_reviews, partial
            result = self.fetch(
                ResourceKind.REVIEWS,
                ref,
                options=replace(options, max_items=10_000, max_pages=None, progress=None),
                pr_number=number,
            )
            skipped_reviews += result.skipped
            if result.truncated and partial is None:
                partial = result.stop_reason
            return list(result.records), result.rate

        result = self._fan_out(pr_numbers, fetch_one, options, label="pull request reviews")
        reason = result.stop_reason
        # A PR whose own review pages were cut short leaves the whole set partial
        if partial is not None and reason is StopReason.END_OF_DATA:
            reason = partial
        return replace(result, stop_reason=reason, skipped=result.skipped + skipped_reviews)

    def _fan_out(
        self,
        items: Sequence[I],
        fetch_one: Callable[[I], tuple[list[T], Optional[RateEnvelope]]],
        options: Optional[FetchOptions],
        label: str,
    ) -> FetchResult[T]:
        """Run one detail fetch per item under the pagination stop rules.

        ``options.max_items`` bounds the number of items processed. Items whose
        detail is missing (404) or malformed are skipped and counted. Unlike
        :meth:`fetch`, cancellation never raises here: the caller already
        holds the listing this is enriching.
        """
        options = options or FetchOptions()
        token = options.token
        budget = min(len(items), options.max_items)
        records: list[T] = []
        rate: Optional[RateEnvelope] = None
        skipped = 0
        processed = 0
        reason = StopReason.END_OF_DATA

        for index, item in enumerate(items):
            if index >= budget:
                reason = StopReason.MAX_ITEMS
                break
            if token.cancelled:
                reason = StopReason.CANCELLED
                break
            try:
                found, item_rate = fetch_one(item)
            except CancellationError:
                reason = StopReason.CANCELLED
                break
            except (NotFoundError, RecordMappingError) as e:
                skipped += 1
                logger.debug("Skipping %s: %s", label, e)
                found, item_rate = [], None
            records.extend(found)
            processed += 1
            if item_rate is not None:
                rate = item_rate

            self._report(
                options,
                FetchProgress(kind=label, processed=processed, estimated_total=budget, page=processed),
            )

            if processed >= budget:
                if budget < len(items):
                    reason = StopReason.MAX_ITEMS
                break
            if rate is not None and rate.below(options.rate_limit_threshold):
                logger.warning(
                    "Rate limit low (%d remaining); stopping %s after %d of %d",
                    rate.remaining,
                    label,
                    processed,
                    len(items),
                )
                reason = StopReason.RATE_LIMIT
                break
            if item_rate is not None and options.page_delay > 0 and self._sleep(options.page_delay, token):
                reason = StopReason.CANCELLED
                break

        if reason is not StopReason.END_OF_DATA:
            logger.info("%s fan-out truncated (%s) after %d of %d", label, reason.value, processed, len(items))
        return FetchResult(tuple(records), rate, reason, pages=processed, skipped=skipped)

    # --- Helpers ---

    def _get(self, path: str, options: Optional[FetchOptions]) -> ApiResponse:
        token = options.token if options is not None else None
        return self.retry.call(
            lambda: self.client.get(path), token=token, sleep=self._sleep, label=f"GET {path}"
        )

    @staticmethod
    def _params_for(kind: ResourceKind, window: Optional[TimeWindow]) -> dict[str, Any]:
        if kind is ResourceKind.COMMITS:
            return window.query_params() if window is not None else {}
        if kind is ResourceKind.PULLS:
            return {"state": "all", "sort": "created", "direction": "desc"}
        return {}

    @staticmethod
    def _mapper_for(
        kind: ResourceKind, pr_number: Optional[int], default_branch: Optional[str]
    ) -> Callable[[Any], Any]:
        if kind is ResourceKind.COMMITS:
            return map_commit
        if kind is ResourceKind.BRANCHES:
            return lambda payload: map_branch(payload, default_branch)
        if kind is ResourceKind.PULLS:
            return map_pull_request
        assert pr_number is not None
        return lambda payload: map_review(payload, pr_number)

    @staticmethod
    def _report(options: FetchOptions, progress: FetchProgress) -> None:
        if options.progress is None:
            return
        try:
            options.progress(progress)
        except Exception as e:
            # Progress is advisory; a failing observer must not stop the fetch
            logger.warning("Progress callback failed: %s", e)


def _as_list(response: ApiResponse, path: str) -> list[Any]:
    if not isinstance(response.data, list):
        raise HTTPStatusError(
            f"Expected a JSON array from GET {path}", status=response.status, rate=response.rate
        )
    return response.data


def _segment(value: str) -> str:
    """Percent-encode a ref or sha for use in a URL path (``/`` is kept)."""
    return quote(value, safe="/")
