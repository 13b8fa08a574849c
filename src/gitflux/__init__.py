"""
GitFlux - GitHub repository activity analytics

Pulls commit, branch, pull-request and review history from the GitHub REST
API (paginated, rate-limit aware, retried, cancellable) and aggregates it
into heatmaps, contributor trends, file-change rankings, branch health
scores and PR/review analytics.
"""

__version__ = "0.3.0"

from .cache import ResultCache
from .config import FetchConfig, GitFluxConfig, HealthConfig, load_config
from .engine import AnalysisOutcome, BranchPRAnalysis, RepositoryAnalyzer
from .github import CancellationToken, FetchOptions, GitHubClient, RepoRef, parse_repo_ref
from .window import TimeWindow, WindowPreset

__all__ = [
    "RepositoryAnalyzer",  # Main entry point
    "AnalysisOutcome",
    "BranchPRAnalysis",
    "CancellationToken",
    "FetchConfig",
    "FetchOptions",
    "GitFluxConfig",
    "GitHubClient",
    "HealthConfig",
    "RepoRef",
    "ResultCache",
    "TimeWindow",
    "WindowPreset",
    "load_config",
    "parse_repo_ref",
]
