"""The benchmark history document.

This module provides HistoryDocument, the in-memory form of the store: a
repository identifier, the last update instant and, per benchmark group,
the run records ordered by ``recorded_at``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import Field, field_serializer, field_validator

from benchstore.core.types import (
    EPOCH,
    RunRecord,
    WireModel,
    coerce_instant,
    to_epoch_millis,
    truncate_to_millis,
    utc_now,
)
from benchstore.history.series import BenchmarkSeries, build_series, series_names

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


class HistoryDocument(WireModel):
    """Durable benchmark history for one repository.

    Attributes:
        last_update: When the store was last written (wire name ``lastUpdate``).
        repo_url: Repository identifier (wire name ``repoUrl``).
        entries: Run records per benchmark group, ascending by ``recorded_at``.

    Example:
        >>> document = HistoryDocument.empty("https://github.com/org/repo")
        >>> document.runs("Benchmark")
        []
    """

    last_update: datetime = Field(default=EPOCH, alias="lastUpdate")
    repo_url: str = Field(default="", alias="repoUrl")
    entries: dict[str, list[RunRecord]] = Field(default_factory=dict)

    @field_validator("last_update", mode="before")
    @classmethod
    def _coerce_last_update(cls, value: Any) -> Any:
        return coerce_instant(value)

    @field_validator("last_update")
    @classmethod
    def _normalize_last_update(cls, value: datetime) -> datetime:
        return truncate_to_millis(value.astimezone(timezone.utc))

    @field_validator("entries")
    @classmethod
    def _order_entries(cls, value: dict[str, list[RunRecord]]) -> dict[str, list[RunRecord]]:
        # Older files are in append order only; the sort is stable.
        return {group: sorted(runs, key=lambda run: run.recorded_at) for group, runs in value.items()}

    @field_serializer("last_update")
    def _serialize_last_update(self, value: datetime) -> int:
        return to_epoch_millis(value)

    @classmethod
    def empty(cls, repo_url: str = "") -> HistoryDocument:
        """Create the document of a store that has never been written."""
        return cls(last_update=utc_now(), repo_url=repo_url, entries={})

    @property
    def groups(self) -> list[str]:
        return list(self.entries)

    def runs(self, group: str) -> list[RunRecord]:
        """Runs of a group in chronological order (a copy)."""
        return list(self.entries.get(group, []))

    def run_count(self) -> int:
        return sum(len(runs) for runs in self.entries.values())

    def find(self, commit_id: str, group: str | None = None, tool: str | None = None) -> list[RunRecord]:
        """Find runs for a commit, optionally restricted to a group and tool."""
        groups = [group] if group is not None else self.groups
        found: list[RunRecord] = []
        for name in groups:
            for run in self.entries.get(name, []):
                if run.commit_id == commit_id and (tool is None or run.tool == tool):
                    found.append(run)
        return found

    def commit_exists(self, commit_id: str, group: str | None = None) -> bool:
        """Check whether any run for the commit is stored."""
        return bool(self.find(commit_id, group=group))

    def series(self, group: str, name: str, unit: str | None = None) -> BenchmarkSeries:
        """Project one benchmark's history out of a group."""
        return build_series(self.entries.get(group, []), name, unit=unit)

    def benchmark_names(self, group: str) -> list[str]:
        return series_names(self.entries.get(group, []))

    def with_runs(self, group: str, runs: Sequence[RunRecord], *, touched_at: datetime) -> HistoryDocument:
        """Copy of the document with one group's runs replaced."""
        entries = dict(self.entries)
        entries[group] = list(runs)
        return self.with_entries(entries, touched_at=touched_at)

    def with_entries(self, entries: Mapping[str, Sequence[RunRecord]], *, touched_at: datetime) -> HistoryDocument:
        """Copy of the document with all groups replaced."""
        return self.model_copy(
            update={
                "entries": {group: list(runs) for group, runs in entries.items()},
                "last_update": truncate_to_millis(touched_at.astimezone(timezone.utc)),
            }
        )
