"""Map parsed JSON payloads into typed records.

Each ``map_*`` function raises :class:`RecordMappingError` when a payload
cannot be turned into a record; :func:`map_records` quarantines those
payloads and reports how many were skipped.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from ..logging_config import get_logger
from ..window import as_utc
from .models import (
    FileChange,
    FileStatus,
    PRState,
    RawBranchRecord,
    RawCommitRecord,
    RawPullRequestRecord,
    RawReviewRecord,
    RepositoryInfo,
    ReviewOutcome,
)

logger = get_logger(__name__)

T = TypeVar("T")


class RecordMappingError(ValueError):
    """A payload did not have the shape of the record it should map to."""


_FILE_STATUS = {
    "added": FileStatus.ADDED,
    "removed": FileStatus.DELETED,
    "deleted": FileStatus.DELETED,
    "renamed": FileStatus.RENAMED,
    "modified": FileStatus.MODIFIED,
    "changed": FileStatus.MODIFIED,
    "copied": FileStatus.MODIFIED,
    "unchanged": FileStatus.MODIFIED,
}

_REVIEW_OUTCOME = {
    "APPROVED": ReviewOutcome.APPROVED,
    "CHANGES_REQUESTED": ReviewOutcome.CHANGES_REQUESTED,
    "COMMENTED": ReviewOutcome.COMMENTED,
}


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value:
        raise RecordMappingError(f"expected timestamp string, got {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise RecordMappingError(f"unparsable timestamp {value!r}") from e


def _optional_timestamp(value: Any) -> Optional[datetime]:
    return None if value is None else parse_timestamp(value)


def _require(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict) or key not in current or current[key] is None:
            raise RecordMappingError(f"missing field {'.'.join(path)}")
        current = current[key]
    return current


def _get(payload: Any, *path: str) -> Any:
    try:
        return _require(payload, *path)
    except RecordMappingError:
        return None


def _int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordMappingError(f"expected number, got {value!r}")
    return int(value)


def map_file_change(payload: Any) -> FileChange:
    path = _require(payload, "filename")
    additions = _int(payload.get("additions"))
    deletions = _int(payload.get("deletions"))
    changes = payload.get("changes")
    return FileChange(
        path=str(path),
        additions=additions,
        deletions=deletions,
        changes=_int(changes) if changes is not None else additions + deletions,
        status=_FILE_STATUS.get(str(payload.get("status", "modified")), FileStatus.MODIFIED),
        previous_path=payload.get("previous_filename"),
    )


def map_commit(payload: Any) -> RawCommitRecord:
    """Map a commit list item or a commit detail payload."""
    sha = _require(payload, "sha")
    timestamp = parse_timestamp(_require(payload, "commit", "author", "date"))
    author = _get(payload, "author", "login") or _get(payload, "commit", "author", "name")
    if not author:
        raise RecordMappingError(f"commit {sha} has no author identity")

    files_payload = payload.get("files")
    files: tuple[FileChange, ...] = ()
    if files_payload is not None:
        if not isinstance(files_payload, list):
            raise RecordMappingError(f"commit {sha} files is not a list")
        files = tuple(map_file_change(f) for f in files_payload)

    return RawCommitRecord(
        sha=str(sha),
        author=str(author),
        timestamp=timestamp,
        message=str(_get(payload, "commit", "message") or ""),
        files=files,
        has_file_detail=files_payload is not None,
    )


def map_branch(payload: Any, default_branch: Optional[str] = None) -> RawBranchRecord:
    """Map a branch list item (name + sha) or a branch detail payload."""
    name = str(_require(payload, "name"))
    date_value = _get(payload, "commit", "commit", "author", "date")
    return RawBranchRecord(
        name=name,
        commit_sha=str(_require(payload, "commit", "sha")),
        last_commit_at=_optional_timestamp(date_value),
        last_commit_author=(
            _get(payload, "commit", "author", "login")
            or _get(payload, "commit", "commit", "author", "name")
        ),
        last_commit_message=str(_get(payload, "commit", "commit", "message") or ""),
        is_default=default_branch is not None and name == default_branch,
        protected=bool(payload.get("protected", False)),
    )


def map_pull_request(payload: Any) -> RawPullRequestRecord:
    number = _require(payload, "number")
    merged_at = _optional_timestamp(payload.get("merged_at"))
    raw_state = str(_require(payload, "state"))
    if merged_at is not None:
        state = PRState.MERGED
    elif raw_state in ("open", "closed"):
        state = PRState(raw_state)
    else:
        raise RecordMappingError(f"PR #{number} has unknown state {raw_state!r}")

    reviewers = tuple(
        str(r["login"])
        for r in payload.get("requested_reviewers") or []
        if isinstance(r, dict) and r.get("login")
    )
    labels = tuple(
        str(label["name"])
        for label in payload.get("labels") or []
        if isinstance(label, dict) and label.get("name")
    )
    has_size = "additions" in payload or "deletions" in payload

    return RawPullRequestRecord(
        number=_int(number),
        title=str(payload.get("title") or ""),
        state=state,
        author=str(_require(payload, "user", "login")),
        created_at=parse_timestamp(_require(payload, "created_at")),
        merged_at=merged_at,
        closed_at=_optional_timestamp(payload.get("closed_at")),
        is_draft=bool(payload.get("draft", False)),
        reviewers=reviewers,
        additions=_int(payload.get("additions")),
        deletions=_int(payload.get("deletions")),
        labels=labels,
        has_size_detail=has_size,
    )


def map_review(payload: Any, pr_number: int) -> RawReviewRecord:
    raw_state = str(_require(payload, "state"))
    outcome = _REVIEW_OUTCOME.get(raw_state)
    if outcome is None:
        # PENDING and DISMISSED reviews carry no usable outcome
        raise RecordMappingError(f"review state {raw_state!r} is not an outcome")
    return RawReviewRecord(
        pr_number=pr_number,
        reviewer=str(_require(payload, "user", "login")),
        outcome=outcome,
        submitted_at=parse_timestamp(_require(payload, "submitted_at")),
    )


def map_repository(payload: Any) -> RepositoryInfo:
    return RepositoryInfo(
        full_name=str(_require(payload, "full_name")),
        default_branch=str(_require(payload, "default_branch")),
        size=_int(payload.get("size")),
        private=bool(payload.get("private", False)),
        description=payload.get("description"),
        language=payload.get("language"),
        stars=_int(payload.get("stargazers_count")),
        forks=_int(payload.get("forks_count")),
    )


def map_records(
    payloads: Iterable[Any], mapper: Callable[[Any], T], label: str = "record"
) -> tuple[list[T], int]:
    """Map payloads, quarantining the ones that fail.

    Returns:
        (mapped records in input order, skipped count)
    """
    records: list[T] = []
    skipped = 0
    for payload in payloads:
        try:
            records.append(mapper(payload))
        except (RecordMappingError, KeyError, TypeError, AttributeError) as e:
            skipped += 1
            logger.debug("Skipping malformed %s: %s", label, e)
    if skipped:
        logger.info("Skipped %d malformed %s payload(s)", skipped, label)
    return records, skipped
