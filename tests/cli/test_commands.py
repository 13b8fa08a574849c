"""Tests for the gitflux command line interface."""

import pytest
from typer.testing import CliRunner

from gitflux.cli import _common, app
from gitflux.engine import RepositoryAnalyzer

runner = CliRunner()


@pytest.fixture(autouse=True)
def fake_environment(tmp_path, monkeypatch, fake_github, no_sleep, payloads):
    """Route every analyzer built by the CLI to the in-memory API."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    def build(credential=None, config=None):
        return RepositoryAnalyzer(
            credential=credential, config=config, transport=fake_github.transport(), sleep=no_sleep
        )

    monkeypatch.setattr(_common, "RepositoryAnalyzer", build)
    fake_github.add_list(
        "/repos/octo/repo/commits",
        [
            payloads.commit("c1", author="a", date="2024-01-01T09:00:00Z"),
            payloads.commit("c2", author="b", date="2024-01-01T15:00:00Z"),
            payloads.commit("c3", author="a", date="2024-01-02T12:00:00Z"),
        ],
    )
    fake_github.add_json("/repos/octo/repo", payloads.repository())


class TestCommands:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("heatmap", "trends", "activity", "files", "branches", "pulls", "reviews", "repo"):
            assert name in result.output

    def test_heatmap_prints_json(self):
        result = runner.invoke(app, ["heatmap", "octo/repo"])
        assert result.exit_code == 0, result.output
        assert '"total_commits": 3' in result.stdout

    def test_trends(self):
        result = runner.invoke(app, ["trends", "octo/repo", "--window", "all"])
        assert result.exit_code == 0, result.output
        assert '"author": "a"' in result.stdout

    def test_activity_by_month(self):
        result = runner.invoke(app, ["activity", "octo/repo", "--period", "month"])
        assert result.exit_code == 0, result.output
        assert '"key": "2024-01"' in result.stdout
        assert '"period": "month"' in result.stdout

    def test_repo(self):
        result = runner.invoke(app, ["repo", "https://github.com/octo/repo"])
        assert result.exit_code == 0, result.output
        assert '"default_branch": "main"' in result.stdout

    def test_token_is_sent(self, fake_github):
        runner.invoke(app, ["repo", "octo/repo", "--token", "s3cret"])
        assert fake_github.requests[0].headers["authorization"] == "Bearer s3cret"

    def test_max_items_marks_incomplete(self):
        result = runner.invoke(app, ["heatmap", "octo/repo", "--max-items", "2"])
        assert result.exit_code == 0, result.output
        assert '"total_commits": 2' in result.stdout
        assert "incomplete" in result.output


class TestFailures:
    def test_invalid_repository(self):
        result = runner.invoke(app, ["heatmap", "nope"])
        assert result.exit_code == _common.EXIT_ERROR
        assert "Invalid repository reference" in result.output

    def test_missing_repository(self):
        result = runner.invoke(app, ["heatmap", "octo/missing"])
        assert result.exit_code == _common.EXIT_ERROR
        assert "Not found" in result.output

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["heatmap", "octo/repo", "--config", str(tmp_path / "none.toml")])
        assert result.exit_code == _common.EXIT_ERROR
        assert "Configuration error" in result.output

    def test_unknown_window(self):
        result = runner.invoke(app, ["heatmap", "octo/repo", "--window", "2w"])
        assert result.exit_code != 0
