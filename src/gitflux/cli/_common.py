"""Shared CLI helpers."""

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from rich.console import Console

from ..analytics import to_json
from ..config import GitFluxConfig, load_config
from ..engine import AnalysisOutcome, RepositoryAnalyzer
from ..exceptions import ConfigurationError, RateLimitError
from ..github import CancellationToken, FetchOptions
from ..logging_config import setup_logging

console = Console()
err_console = Console(stderr=True)

EXIT_ERROR = 1
EXIT_CANCELLED = 130


def resolve_config(
    config: Optional[Path] = None,
    max_items: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> GitFluxConfig:
    """Build configuration from CLI options."""
    overrides: dict[str, Any] = {}
    if max_items is not None:
        overrides["fetch"] = {"max_items": max_items}
    return load_config(config_file=config, verbose=verbose, quiet=quiet, **overrides)


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancellation for the duration of the block.

    The in-flight request finishes; collection then stops and whatever was
    gathered is reported as truncated.
    """
    def handler(signum: int, frame: Any) -> None:
        token.cancel("Interrupted by user")

    try:
        previous = signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not in the main thread (e.g. embedded); leave SIGINT alone
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def run_analysis(
    call: Callable[[RepositoryAnalyzer, FetchOptions], AnalysisOutcome[Any]],
    *,
    token: Optional[str],
    max_items: Optional[int],
    config: Optional[Path],
    verbose: bool,
    quiet: bool,
) -> None:
    """Load config, run one analysis and print its outcome."""
    setup_logging(verbose=verbose, quiet=quiet)
    try:
        settings = resolve_config(config, max_items, verbose, quiet)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)

    cancel = CancellationToken()
    with RepositoryAnalyzer(credential=token, config=settings) as analyzer:
        with cancel_on_interrupt(cancel):
            outcome = call(analyzer, FetchOptions.from_config(settings.fetch, token=cancel))

    emit_outcome(outcome, quiet=quiet)
    if cancel.cancelled:
        raise typer.Exit(EXIT_CANCELLED)


def emit_outcome(outcome: AnalysisOutcome[Any], quiet: bool = False) -> None:
    """Print the result as JSON on stdout; notices and errors go to stderr."""
    if outcome.error is not None:
        if outcome.cancelled:
            err_console.print("[yellow]Cancelled before any data was collected[/yellow]")
            raise typer.Exit(EXIT_CANCELLED)
        err_console.print(f"[red]Error:[/red] {outcome.error}")
        if isinstance(outcome.error, RateLimitError) and outcome.rate is not None:
            err_console.print(f"Rate limit resets in {outcome.rate.describe_reset()}")
        raise typer.Exit(EXIT_ERROR)

    console.print_json(to_json(outcome.result))

    if outcome.incomplete:
        err_console.print(
            "[yellow]Results may be incomplete[/yellow] "
            f"(truncated={outcome.truncated}, skipped records={outcome.skipped})"
        )
    if outcome.rate is not None and not quiet:
        err_console.print(
            f"[dim]Rate limit: {outcome.rate.remaining}/{outcome.rate.limit} remaining, "
            f"resets in {outcome.rate.describe_reset()}[/dim]"
        )
