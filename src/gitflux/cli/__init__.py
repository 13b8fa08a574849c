"""CLI entry point: registers all subcommands."""

import typer

from ._common import console

app = typer.Typer(
    name="gitflux",
    help="GitFlux - GitHub repository activity analytics",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .analyze import (  # noqa: F401, E402
    branches as _branches,
    files as _files,
    heatmap as _heatmap,
    pulls as _pulls,
    repo as _repo,
    reviews as _reviews,
    trends as _trends,
)

__all__ = ["app", "console"]
