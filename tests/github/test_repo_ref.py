"""Tests for repository reference parsing and validation."""

import pytest

from gitflux.exceptions import ValidationError
from gitflux.github.models import RepoRef, parse_repo_ref


class TestParseRepoRef:
    @pytest.mark.parametrize(
        "text",
        [
            "octocat/Hello-World",
            "  octocat/Hello-World  ",
            "github.com/octocat/Hello-World",
            "https://github.com/octocat/Hello-World",
            "https://www.github.com/octocat/Hello-World/",
            "http://github.com/octocat/Hello-World.git",
        ],
    )
    def test_accepted_forms(self, text):
        assert parse_repo_ref(text) == RepoRef("octocat", "Hello-World")

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "octocat",
            "octocat/Hello-World/issues",
            "https://gitlab.com/octocat/Hello-World",
            "-octo/repo",
            "octo-/repo",
            "oc--to/repo",
            "octo/re po",
            "octo/..",
        ],
    )
    def test_rejected(self, text):
        with pytest.raises(ValidationError):
            parse_repo_ref(text)

    def test_dots_and_underscores_in_name(self):
        assert parse_repo_ref("octo/my_repo.js").name == "my_repo.js"


class TestRepoRef:
    def test_full_name(self):
        ref = RepoRef("octo", "repo")
        assert ref.full_name == "octo/repo"
        assert str(ref) == "octo/repo"

    def test_owner_length_limit(self):
        RepoRef("a" * 39, "repo")
        with pytest.raises(ValidationError):
            RepoRef("a" * 40, "repo")

    def test_validation_error_is_not_retryable(self):
        from gitflux.exceptions import is_retryable

        with pytest.raises(ValidationError) as excinfo:
            RepoRef("", "repo")
        assert not is_retryable(excinfo.value)
        assert excinfo.value.reason == "malformed owner"
