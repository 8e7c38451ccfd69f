"""Aggregations over a collection of merged changes."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from gerry_core.bulk import BulkResult, StopReason
from gerry_core.models import Change


@dataclass(frozen=True)
class Statistic:
    name: str
    count: int
    repo_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _ranked(counts: Counter, repos: dict[str, set[str]] | None = None) -> list[Statistic]:
    stats = [Statistic(name, count, len(repos.get(name, ())) if repos else 0) for name, count in counts.items()]
    return sorted(stats, key=lambda s: (-s.count, s.name))


def by_repository(changes: Iterable[Change]) -> list[Statistic]:
    counts = Counter(c.project for c in changes if c.project)
    return _ranked(counts)


def by_author(changes: Iterable[Change]) -> list[Statistic]:
    """Changes per owner, with the number of distinct repositories each touched."""
    counts: Counter[str] = Counter()
    repos: dict[str, set[str]] = {}
    for change in changes:
        if not change.owner or change.owner == "unknown":
            continue
        counts[change.owner] += 1
        if change.project:
            repos.setdefault(change.owner, set()).add(change.project)
    return _ranked(counts, repos)


def month_of(timestamp: str) -> str | None:
    """``YYYY-MM`` from the date portion of a Gerrit timestamp, ignoring time of day."""
    date_part = timestamp.replace("T", " ").split(" ", 1)[0]
    pieces = date_part.split("-")
    if len(pieces) < 2 or not pieces[0] or not pieces[1]:
        return None
    return f"{pieces[0]}-{pieces[1]}"


def timeline(changes: Iterable[Change]) -> list[Statistic]:
    """Changes per calendar month of submission (update time when unsubmitted), oldest first."""
    counts: Counter[str] = Counter()
    for change in changes:
        month = month_of(change.submitted or change.updated)
        if month:
            counts[month] += 1
    return sorted((Statistic(month, count) for month, count in counts.items()), key=lambda s: s.name)


@dataclass
class AnalysisReport:
    start_date: str
    end_date: str
    changes: list[Change]
    repository: str | None = None
    stop_reason: StopReason = StopReason.EXHAUSTED
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"))

    @property
    def total_changes(self) -> int:
        return len(self.changes)

    @property
    def complete(self) -> bool:
        return self.stop_reason not in (StopReason.SAFETY_CAP, StopReason.INTERRUPTED)

    @property
    def by_repository(self) -> list[Statistic]:
        return by_repository(self.changes)

    @property
    def by_author(self) -> list[Statistic]:
        return by_author(self.changes)

    @property
    def timeline(self) -> list[Statistic]:
        return timeline(self.changes)


def build_report(
    result: BulkResult,
    start_date: str,
    end_date: str,
    repository: str | None = None,
) -> AnalysisReport:
    return AnalysisReport(
        start_date=start_date,
        end_date=end_date,
        changes=list(result.changes),
        repository=repository,
        stop_reason=result.stop_reason,
    )
