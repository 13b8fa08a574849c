"""Time windows: canonical presets resolved to closed-open [since, until)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, TypeVar, Union

T = TypeVar("T")


class WindowPreset(str, Enum):
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    ONE_YEAR = "1y"
    ALL = "all"


_PRESET_DAYS = {
    WindowPreset.LAST_30_DAYS: 30,
    WindowPreset.LAST_90_DAYS: 90,
    WindowPreset.THREE_MONTHS: 90,
    WindowPreset.SIX_MONTHS: 180,
    WindowPreset.ONE_YEAR: 365,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """Closed-open interval. ``since=None`` is the unbounded past;
    ``until=None`` means "now" at the time the window is applied."""

    since: Optional[datetime] = None
    until: Optional[datetime] = None
    preset: Optional[WindowPreset] = None

    def __post_init__(self) -> None:
        if self.since is not None:
            object.__setattr__(self, "since", as_utc(self.since))
        if self.until is not None:
            object.__setattr__(self, "until", as_utc(self.until))
        if self.since is not None and self.until is not None and self.since > self.until:
            raise ValueError("since must not be after until")

    @classmethod
    def resolve(
        cls, preset: Union[WindowPreset, str], now: Optional[datetime] = None
    ) -> TimeWindow:
        """Resolve a preset against ``now``.

        The anchor is ``now`` rounded up to the next whole minute, so every
        resolution within the same minute yields identical bounds (and the
        same cache fingerprint) while still covering everything up to now.
        """
        preset = WindowPreset(preset)
        anchor = ceil_minute(as_utc(now or utc_now()))
        days = _PRESET_DAYS.get(preset)
        since = anchor - timedelta(days=days) if days is not None else None
        return cls(since=since, until=anchor, preset=preset)

    @classmethod
    def all_time(cls) -> TimeWindow:
        return cls(preset=WindowPreset.ALL)

    def effective_until(self, now: Optional[datetime] = None) -> datetime:
        return self.until if self.until is not None else as_utc(now or utc_now())

    def contains(self, instant: datetime, now: Optional[datetime] = None) -> bool:
        instant = as_utc(instant)
        if self.since is not None and instant < self.since:
            return False
        return instant < self.effective_until(now)

    def contains_date(self, day: date, now: Optional[datetime] = None) -> bool:
        """Day-granularity membership: the day's midnight falls in the window."""
        midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        return self.contains(midnight, now)

    def bounds_key(self) -> str:
        """Stable textual form of the resolved bounds (for fingerprints)."""
        since = self.since.isoformat() if self.since else "-inf"
        until = self.until.isoformat() if self.until else "now"
        return f"{since}..{until}"

    def query_params(self) -> dict[str, str]:
        """``since``/``until`` query parameters in the API's ISO-8601 form."""
        params = {}
        if self.since is not None:
            params["since"] = _iso_z(self.since)
        if self.until is not None:
            params["until"] = _iso_z(self.until)
        return params


def filter_by_window(
    records: Iterable[T],
    window: TimeWindow,
    key: Callable[[T], Optional[datetime]],
    now: Optional[datetime] = None,
) -> tuple[list[T], int]:
    """Keep records whose timestamp falls in ``window``.

    Records whose key is missing or not a datetime are dropped and counted
    as skipped rather than raising.

    Returns:
        (kept records in input order, skipped count)
    """
    until = window.effective_until(now)
    kept: list[T] = []
    skipped = 0
    for record in records:
        try:
            instant = key(record)
        except (AttributeError, TypeError, ValueError):
            skipped += 1
            continue
        if not isinstance(instant, datetime):
            skipped += 1
            continue
        instant = as_utc(instant)
        if window.since is not None and instant < window.since:
            continue
        if instant >= until:
            continue
        kept.append(record)
    return kept, skipped


def ceil_minute(value: datetime) -> datetime:
    floored = value.replace(second=0, microsecond=0)
    if floored == value:
        return floored
    return floored + timedelta(minutes=1)


def _iso_z(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")
