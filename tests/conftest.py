"""Shared test fixtures for GitFlux tests."""

from urllib.parse import parse_qs

import httpx
import pytest

from gitflux.github.models import (
    FileChange,
    FileStatus,
    PRState,
    RawBranchRecord,
    RawCommitRecord,
    RawPullRequestRecord,
    RawReviewRecord,
    ReviewOutcome,
)

RESET_EPOCH = 1_700_000_000


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ---------------------------------------------------------------------------
# Fake GitHub API served through httpx.MockTransport
# ---------------------------------------------------------------------------


class FakeGitHub:
    """In-memory GitHub REST API.

    Lists registered with ``add_list`` are paginated by the ``page`` and
    ``per_page`` query parameters. Every response carries rate-limit headers;
    ``remaining`` drops by one per request unless ``fixed_remaining`` is set.
    """

    def __init__(self, remaining=5000, limit=5000):
        self.remaining = remaining
        self.limit = limit
        self.fixed_remaining = False
        self.requests = []
        self._lists = {}
        self._bodies = {}
        self._handlers = {}

    def add_list(self, path, items):
        self._lists[path] = list(items)

    def add_json(self, path, body, status=200):
        self._bodies[path] = (status, body)

    def add_handler(self, path, fn):
        """``fn(request, fake) -> httpx.Response`` for full control."""
        self._handlers[path] = fn

    def calls(self, path):
        return [r for r in self.requests if r.url.path == path]

    def rate_headers(self):
        return {
            "x-ratelimit-remaining": str(self.remaining),
            "x-ratelimit-limit": str(self.limit),
            "x-ratelimit-reset": str(RESET_EPOCH),
        }

    def __call__(self, request):
        self.requests.append(request)
        if not self.fixed_remaining:
            self.remaining = max(0, self.remaining - 1)
        path = request.url.path

        if path in self._handlers:
            return self._handlers[path](request, self)
        if path in self._bodies:
            status, body = self._bodies[path]
            return httpx.Response(status, json=body, headers=self.rate_headers())
        if path in self._lists:
            query = parse_qs(request.url.query.decode())
            page = int(query.get("page", ["1"])[0])
            per_page = int(query.get("per_page", ["30"])[0])
            start = (page - 1) * per_page
            chunk = self._lists[path][start : start + per_page]
            return httpx.Response(200, json=chunk, headers=self.rate_headers())
        return httpx.Response(404, json={"message": "Not Found"}, headers=self.rate_headers())

    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def no_sleep():
    """Sleeper that records requested delays instead of waiting."""

    class Recorder:
        def __init__(self):
            self.delays = []

        def __call__(self, seconds, token):
            self.delays.append(seconds)
            return token.cancelled

    return Recorder()


# ---------------------------------------------------------------------------
# Wire payloads
# ---------------------------------------------------------------------------


class Payloads:
    """Builders for GitHub REST JSON payloads."""

    @staticmethod
    def commit(sha, author="alice", date="2024-01-01T12:00:00Z", message="change", files=None):
        payload = {
            "sha": sha,
            "author": {"login": author},
            "commit": {
                "author": {"name": author.title(), "date": date},
                "message": message,
            },
        }
        if files is not None:
            payload["files"] = files
        return payload

    @staticmethod
    def file(filename, additions=1, deletions=0, status="modified"):
        return {
            "filename": filename,
            "additions": additions,
            "deletions": deletions,
            "changes": additions + deletions,
            "status": status,
        }

    @staticmethod
    def branch(name, sha="abc123", protected=False):
        return {"name": name, "commit": {"sha": sha}, "protected": protected}

    @staticmethod
    def branch_detail(name, date, sha="abc123", author="alice"):
        return {
            "name": name,
            "protected": False,
            "commit": {
                "sha": sha,
                "author": {"login": author},
                "commit": {"author": {"name": author, "date": date}, "message": "tip"},
            },
        }

    @staticmethod
    def pull(
        number,
        state="open",
        created="2024-01-01T00:00:00Z",
        merged=None,
        closed=None,
        author="alice",
        draft=False,
        additions=None,
        deletions=None,
    ):
        payload = {
            "number": number,
            "title": f"PR {number}",
            "state": state,
            "user": {"login": author},
            "created_at": created,
            "merged_at": merged,
            "closed_at": closed,
            "draft": draft,
            "requested_reviewers": [],
            "labels": [],
        }
        if additions is not None:
            payload["additions"] = additions
            payload["deletions"] = deletions or 0
        return payload

    @staticmethod
    def review(user, state="APPROVED", submitted="2024-01-01T02:00:00Z"):
        return {"user": {"login": user}, "state": state, "submitted_at": submitted}

    @staticmethod
    def repository(full_name="octo/repo", default_branch="main"):
        return {
            "full_name": full_name,
            "default_branch": default_branch,
            "size": 1024,
            "private": False,
            "description": "demo",
            "language": "Python",
            "stargazers_count": 3,
            "forks_count": 1,
        }


@pytest.fixture
def payloads():
    return Payloads


# ---------------------------------------------------------------------------
# Typed records
# ---------------------------------------------------------------------------


@pytest.fixture
def make_commit():
    def _make(sha, author, timestamp, files=None):
        return RawCommitRecord(
            sha=sha,
            author=author,
            timestamp=timestamp,
            message=f"commit {sha}",
            files=tuple(files or ()),
            has_file_detail=files is not None,
        )

    return _make


@pytest.fixture
def make_file():
    def _make(path, additions=1, deletions=0, status=FileStatus.MODIFIED):
        return FileChange(
            path=path,
            additions=additions,
            deletions=deletions,
            changes=additions + deletions,
            status=status,
        )

    return _make


@pytest.fixture
def make_branch():
    def _make(name, last_commit_at, ahead=1, behind=0, is_default=False):
        return RawBranchRecord(
            name=name,
            commit_sha=f"sha-{name}",
            last_commit_at=last_commit_at,
            last_commit_author="alice",
            ahead=ahead,
            behind=behind,
            is_default=is_default,
        )

    return _make


@pytest.fixture
def make_pull():
    def _make(
        number,
        created_at,
        state=PRState.OPEN,
        merged_at=None,
        closed_at=None,
        author="alice",
        additions=0,
        deletions=0,
        sized=True,
        draft=False,
    ):
        return RawPullRequestRecord(
            number=number,
            title=f"PR {number}",
            state=state,
            author=author,
            created_at=created_at,
            merged_at=merged_at,
            closed_at=closed_at,
            is_draft=draft,
            additions=additions,
            deletions=deletions,
            has_size_detail=sized,
        )

    return _make


@pytest.fixture
def make_review():
    def _make(pr_number, reviewer, submitted_at, outcome=ReviewOutcome.APPROVED):
        return RawReviewRecord(
            pr_number=pr_number,
            reviewer=reviewer,
            outcome=outcome,
            submitted_at=submitted_at,
        )

    return _make


# ---------------------------------------------------------------------------
# Distributions (entropy tests)
# ---------------------------------------------------------------------------


@pytest.fixture
def uniform_distribution():
    """Uniform distribution over 4 events."""
    return {"a": 25, "b": 25, "c": 25, "d": 25}


@pytest.fixture
def skewed_distribution():
    """Heavily skewed distribution."""
    return {"a": 97, "b": 1, "c": 1, "d": 1}


@pytest.fixture
def single_event_distribution():
    """Distribution with a single event."""
    return {"a": 100}


@pytest.fixture
def empty_distribution():
    """Empty distribution."""
    return {}


@pytest.fixture
def known_distribution():
    """Distribution with known entropy: fair coin = 1.0 bit."""
    return {"heads": 50, "tails": 50}
