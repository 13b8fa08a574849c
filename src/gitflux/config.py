"""Configuration loading and management for GitFlux.

Configuration sources are merged in priority order:
    1. Defaults (defined in the dataclasses below)
    2. Global config (~/.gitflux.toml)
    3. Project config (./gitflux.toml)
    4. Explicit config file
    5. Environment variables (GITFLUX_* prefix)
    6. Keyword overrides (typically CLI flags)

Example:
    >>> config = load_config(verbose=True)
    >>> config.verbosity
    'verbose'
    >>> config.fetch.per_page
    100
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError

Verbosity = Literal["quiet", "normal", "verbose"]

# GitHub caps per_page at 100 for every list endpoint we use
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class FetchConfig:
    """Remote API access, pagination budget and retry tuning.

    The numeric defaults are tunable starting points, not load-bearing
    constants.

    Attributes:
        Transport:
            base_url: API root (override for GitHub Enterprise)
            timeout_seconds: Per-request timeout
            user_agent: User-Agent header sent with every request

        Pagination budget:
            per_page: Items requested per page (1-100)
            max_items: Ceiling on records returned per resource kind
            max_pages: Optional ceiling on pages requested (None = no limit)
            rate_limit_threshold: Stop paginating once remaining quota drops below this
            page_delay_seconds: Pause between consecutive page requests

        Retry/backoff:
            max_attempts: Total attempts per request (first try included)
            base_delay_seconds: Backoff before retry n is base * 2**n ...
            cap_delay_seconds: ... capped at this value

        Detail fan-out:
            max_commit_details: Commits hydrated with file-level detail
            max_branches: Branches enriched with latest-commit and compare data
            max_pr_details: Pull requests fetched individually for their size
            max_review_prs: Pull requests whose reviews are fetched
            workers: Threads used to fetch independent resource kinds
    """

    base_url: str = "https://api.github.com"
    timeout_seconds: float = 10.0
    user_agent: str = "gitflux/0.3"

    per_page: int = MAX_PER_PAGE
    max_items: int = 1000
    max_pages: Optional[int] = None
    rate_limit_threshold: int = 50
    page_delay_seconds: float = 0.1

    max_attempts: int = 4
    base_delay_seconds: float = 1.0
    cap_delay_seconds: float = 30.0

    max_commit_details: int = 200
    max_branches: int = 50
    max_pr_details: int = 200
    max_review_prs: int = 50
    workers: int = 3

    def __post_init__(self) -> None:
        if not 1 <= self.per_page <= MAX_PER_PAGE:
            raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}")
        if self.max_items < 1:
            raise ValueError("max_items must be at least 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.rate_limit_threshold < 0:
            raise ValueError("rate_limit_threshold must be non-negative")
        if self.page_delay_seconds < 0:
            raise ValueError("page_delay_seconds must be non-negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be non-negative")
        if self.cap_delay_seconds < self.base_delay_seconds:
            raise ValueError("cap_delay_seconds must be >= base_delay_seconds")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        for name in (
            "max_commit_details", "max_branches", "max_pr_details", "max_review_prs"
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")


@dataclass(frozen=True)
class HealthConfig:
    """Branch health scoring parameters.

    A branch earns up to ``recency_weight`` points for freshness (full credit
    within ``fresh_days``, decaying linearly to zero at ``stale_days``), up to
    ``divergence_weight`` points for staying close to the default branch
    (losing credit in proportion to ``behind / behind_threshold``), and
    ``active_bonus`` points when its status is active.
    """

    fresh_days: int = 7
    stale_days: int = 90
    active_days: int = 30
    behind_threshold: int = 50

    # Must sum to 100
    recency_weight: int = 60
    divergence_weight: int = 25
    active_bonus: int = 15

    def __post_init__(self) -> None:
        if self.fresh_days < 0:
            raise ValueError("fresh_days must be non-negative")
        if self.stale_days <= self.fresh_days:
            raise ValueError("stale_days must be greater than fresh_days")
        if self.active_days < 0:
            raise ValueError("active_days must be non-negative")
        if self.behind_threshold < 1:
            raise ValueError("behind_threshold must be at least 1")
        for name in ("recency_weight", "divergence_weight", "active_bonus"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        total = self.recency_weight + self.divergence_weight + self.active_bonus
        if total != 100:
            raise ValueError(f"Health weights must sum to 100, got {total}")


DEFAULT_HEALTH = HealthConfig()


@dataclass(frozen=True)
class GitFluxConfig:
    """Top-level configuration.

    Attributes:
        fetch: Remote API access and budgets
        health: Branch health scoring
        cache_enabled: Memoize aggregation results in-process
        cache_max_entries: LRU bound of the result cache
        verbosity: Logging verbosity level
    """

    fetch: FetchConfig = field(default_factory=FetchConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    cache_enabled: bool = True
    cache_max_entries: int = 32
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        if self.cache_max_entries < 0:
            raise ValueError("cache_max_entries must be non-negative")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError("verbosity must be one of quiet, normal, verbose")

    def with_fetch(self, **changes: Any) -> GitFluxConfig:
        """Return a copy with some FetchConfig fields replaced."""
        return replace(self, fetch=replace(self.fetch, **changes))


_NESTED = {"fetch": FetchConfig, "health": HealthConfig}


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> GitFluxConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides. Top-level fields by name; nested
            fields as ``fetch={...}`` / ``health={...}`` dicts. The CLI
            flags ``verbose`` and ``quiet`` map onto ``verbosity``.

    Returns:
        Validated GitFluxConfig instance

    Raises:
        ConfigurationError: If a config file is missing or invalid
    """
    merged: dict[str, Any] = {"fetch": {}, "health": {}}

    global_config = Path.home() / ".gitflux.toml"
    if global_config.exists():
        _merge(merged, _load_toml_file(global_config), global_config)

    project_config = Path.cwd() / "gitflux.toml"
    if project_config.exists():
        _merge(merged, _load_toml_file(project_config), project_config)

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        _merge(merged, _load_toml_file(config_file), config_file)

    _merge(merged, _load_env_vars(), "environment")

    if "verbose" in overrides:
        if overrides.pop("verbose"):
            overrides["verbosity"] = "verbose"
    if "quiet" in overrides:
        if overrides.pop("quiet"):
            overrides["verbosity"] = "quiet"
    _merge(merged, overrides, "overrides")

    try:
        nested = {name: cls(**merged.pop(name)) for name, cls in _NESTED.items()}
        return GitFluxConfig(**nested, **merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _merge(target: dict[str, Any], source: dict[str, Any], origin: Any) -> None:
    for key, value in source.items():
        if key in _NESTED:
            if not isinstance(value, dict):
                raise ConfigurationError(f"[{key}] must be a table in {origin}")
            target[key].update(value)
        else:
            target[key] = value


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from GITFLUX_* environment variables.

    Top-level fields use ``GITFLUX_<FIELD>`` (e.g. GITFLUX_CACHE_ENABLED);
    nested fields use ``GITFLUX_FETCH_<FIELD>`` and ``GITFLUX_HEALTH_<FIELD>``
    (e.g. GITFLUX_FETCH_MAX_ITEMS=500).
    """
    result: dict[str, Any] = {}

    for f in fields(GitFluxConfig):
        if f.name in _NESTED:
            continue
        parsed = _env_for(f"GITFLUX_{f.name.upper()}", GitFluxConfig, f.name)
        if parsed is not None:
            result[f.name] = parsed

    for section, cls in _NESTED.items():
        values = {}
        for f in fields(cls):
            parsed = _env_for(f"GITFLUX_{section.upper()}_{f.name.upper()}", cls, f.name)
            if parsed is not None:
                values[f.name] = parsed
        if values:
            result[section] = values

    return result


def _env_for(env_key: str, cls: type, field_name: str) -> Any:
    env_value = os.environ.get(env_key)
    if env_value is None:
        return None
    type_hint = get_type_hints(cls).get(field_name)
    if type_hint is None:
        return None
    try:
        return _parse_env_value(env_value, type_hint)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {env_key}: {e}") from e


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If the file cannot be parsed
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}") from e
