"""File-change ranking, file-type breakdown and file lifecycle buckets."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import PurePosixPath
from typing import Optional

from ..github.models import FileStatus, RawCommitRecord
from ..math import Entropy, Statistics
from ..window import TimeWindow, filter_by_window
from .models import CategoryStat, FileChangeAnalysis, FileChangeStat

OTHER_CATEGORY = "Other"

_CATEGORIES = {
    # Code
    "js": "JavaScript",
    "jsx": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "c": "C",
    "cs": "C#",
    "php": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "swift": "Swift",
    "kt": "Kotlin",
    # Web
    "html": "HTML",
    "css": "CSS",
    "scss": "CSS",
    "sass": "CSS",
    "less": "CSS",
    # Config
    "json": "Config",
    "xml": "Config",
    "yml": "Config",
    "yaml": "Config",
    "toml": "Config",
    "ini": "Config",
    # Documentation
    "md": "Documentation",
    "txt": "Documentation",
    "rst": "Documentation",
    # Images
    "png": "Images",
    "jpg": "Images",
    "jpeg": "Images",
    "gif": "Images",
    "svg": "Images",
    "webp": "Images",
}

HOTSPOT_MEAN_FACTOR = 1.5
HOTSPOT_MIN_CHANGES = 5
RECENT_DAYS = 30
STALE_DAYS = 90


def categorize_file(path: str) -> tuple[str, str]:
    """Return ``(extension, category)`` for a file path.

    The extension is lower-cased without the dot; files without one (and
    unknown extensions) fall into ``Other``.
    """
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return suffix, _CATEGORIES.get(suffix, OTHER_CATEGORY)


@dataclass
class _FileAccumulator:
    change_count: int = 0
    lines_changed: int = 0
    last_changed: Optional[datetime] = None
    is_deleted: bool = False
    per_day: dict[date, int] = field(default_factory=lambda: defaultdict(int))


def analyze_file_changes(
    commits: Iterable[RawCommitRecord],
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
) -> FileChangeAnalysis:
    """Rank files by how many commits touched them.

    Only commits carrying file-level detail contribute; commits without it
    are counted in ``skipped`` along with unparsable records. A file is
    flagged deleted when the most recent commit touching it removed it.

    Args:
        commits: Commit records, hydrated with file detail
        window: Time window applied to commit timestamps
        now: Reference instant for the open-ended window end and for the
            recently-active / stale buckets
    """
    window = window or TimeWindow.all_time()
    selected, skipped = filter_by_window(commits, window, lambda c: c.timestamp, now)
    detailed = [c for c in selected if c.has_file_detail]
    skipped += len(selected) - len(detailed)

    files: dict[str, _FileAccumulator] = defaultdict(_FileAccumulator)
    daily: dict[date, int] = defaultdict(int)
    # Chronological so the latest touch decides the deletion flag
    for commit in sorted(detailed, key=lambda c: c.timestamp):
        day = commit.timestamp.date()
        for change in commit.files:
            acc = files[change.path]
            acc.change_count += 1
            acc.lines_changed += change.changes
            acc.last_changed = commit.timestamp
            acc.is_deleted = change.status is FileStatus.DELETED
            acc.per_day[day] += 1
            daily[day] += 1

    total_changes = sum(acc.change_count for acc in files.values())
    total_lines = sum(acc.lines_changed for acc in files.values())

    stats = []
    for path, acc in files.items():
        extension, category = categorize_file(path)
        stats.append(
            FileChangeStat(
                path=path,
                change_count=acc.change_count,
                lines_changed=acc.lines_changed,
                percentage=Statistics.percentage(acc.change_count, total_changes),
                last_changed=acc.last_changed,
                is_deleted=acc.is_deleted,
                category=category,
                extension=extension,
                trend=tuple(sorted(acc.per_day.items())),
            )
        )
    stats.sort(key=lambda s: (-s.change_count, s.path))

    category_counts: dict[str, int] = defaultdict(int)
    for stat in stats:
        category_counts[stat.category] += stat.change_count
    categories = tuple(
        CategoryStat(
            category=name,
            count=count,
            percentage=Statistics.percentage(count, total_changes),
        )
        for name, count in sorted(category_counts.items(), key=lambda kv: (-kv[1], kv[0]))
    )

    reference = window.effective_until(now)
    hotspot_floor = max(
        HOTSPOT_MEAN_FACTOR * (total_changes / len(stats)) if stats else 0.0,
        HOTSPOT_MIN_CHANGES,
    )
    live = [s for s in stats if not s.is_deleted]

    return FileChangeAnalysis(
        files=tuple(stats),
        categories=categories,
        total_changes=total_changes,
        total_lines_changed=total_lines,
        diversity_score=Entropy.diversity_score(category_counts),
        hotspots=tuple(s.path for s in live if s.change_count >= hotspot_floor),
        recently_active=tuple(
            s.path for s in live if reference - s.last_changed <= timedelta(days=RECENT_DAYS)
        ),
        stale=tuple(s.path for s in live if reference - s.last_changed > timedelta(days=STALE_DAYS)),
        deleted=tuple(s.path for s in stats if s.is_deleted),
        daily_trend=tuple(sorted(daily.items())),
        skipped=skipped,
    )
