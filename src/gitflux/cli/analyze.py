"""Analysis commands: one per engine entry point, JSON on stdout."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ..analytics import Period
from ..window import WindowPreset
from . import app
from ._common import run_analysis

RepoArg = Annotated[str, typer.Argument(help="OWNER/REPO or a github.com URL")]
WindowOpt = Annotated[
    WindowPreset,
    typer.Option("--window", "-w", help="Time window: 30d, 90d, 3m, 6m, 1y or all"),
]
TokenOpt = Annotated[
    Optional[str],
    typer.Option(
        "--token",
        envvar="GITHUB_TOKEN",
        help="GitHub token (default: $GITHUB_TOKEN)",
        show_default=False,
    ),
]
MaxItemsOpt = Annotated[
    Optional[int],
    typer.Option("--max-items", min=1, help="Maximum records fetched per resource kind"),
]
ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to a gitflux.toml file", dir_okay=False),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging on stderr")]
QuietOpt = Annotated[bool, typer.Option("--quiet", "-q", help="Only errors on stderr")]


@app.command()
def heatmap(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """
    Daily commit activity heatmap.

    [bold cyan]Examples:[/bold cyan]

      gitflux heatmap octocat/Hello-World

      gitflux heatmap https://github.com/octocat/Hello-World --window 90d
    """
    run_analysis(
        lambda analyzer, options: analyzer.heatmap(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def trends(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """Per-contributor daily commit trend lines."""
    run_analysis(
        lambda analyzer, options: analyzer.contributor_trends(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def activity(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    period: Annotated[
        Period, typer.Option("--period", "-p", help="Group by day, week (ISO) or month")
    ] = Period.WEEK,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """
    Commit counts and active authors per day, week or month.

    [bold cyan]Examples:[/bold cyan]

      gitflux activity octocat/Hello-World --period month --window 1y
    """
    run_analysis(
        lambda analyzer, options: analyzer.commit_activity(repo, window, period, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def files(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.LAST_30_DAYS,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """
    Most changed files and file-type breakdown.

    Needs one extra request per commit for file detail, bounded by
    [bold]fetch.max_commit_details[/bold].
    """
    run_analysis(
        lambda analyzer, options: analyzer.file_changes(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def branches(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """Branch status (active/stale/merged) and health scores."""
    run_analysis(
        lambda analyzer, options: analyzer.branch_analytics(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def pulls(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """Pull request states, merge timing and size buckets."""
    run_analysis(
        lambda analyzer, options: analyzer.pr_analytics(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def reviews(
    repo: RepoArg,
    window: WindowOpt = WindowPreset.ALL,
    token: TokenOpt = None,
    max_items: MaxItemsOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """Review timing, reviewer statistics and daily review pattern."""
    run_analysis(
        lambda analyzer, options: analyzer.review_analytics(repo, window, options),
        token=token,
        max_items=max_items,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def repo(
    repo: RepoArg,
    token: TokenOpt = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """Repository metadata (default branch, size, visibility)."""
    run_analysis(
        lambda analyzer, options: analyzer.repository(repo, options),
        token=token,
        max_items=None,
        config=config,
        verbose=verbose,
        quiet=quiet,
    )
