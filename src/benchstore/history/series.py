"""Per-benchmark views over the history.

A BenchmarkSeries is derived from the stored runs on demand and never
persisted, so the run list stays the single source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime

    from benchstore.core.types import Measurement, RunRecord


@dataclass(frozen=True)
class SeriesPoint:
    """One measurement together with the run that produced it."""

    run: RunRecord
    measurement: Measurement

    @property
    def recorded_at(self) -> datetime:
        return self.run.recorded_at

    @property
    def value(self) -> float:
        return self.measurement.value

    @property
    def commit_id(self) -> str:
        return self.run.commit_id


@dataclass(frozen=True)
class BenchmarkSeries:
    """History of one benchmark name, ascending by ``recorded_at``.

    Example:
        >>> series = document.series("Benchmark", "frame processing/whole")
        >>> series.latest.value
        8459380.0
    """

    name: str
    points: tuple[SeriesPoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SeriesPoint]:
        return iter(self.points)

    def __bool__(self) -> bool:
        return bool(self.points)

    @property
    def latest(self) -> SeriesPoint | None:
        return self.points[-1] if self.points else None

    def values(self) -> list[float]:
        return [point.value for point in self.points]

    def tail(self, count: int) -> BenchmarkSeries:
        """The last ``count`` points."""
        return BenchmarkSeries(self.name, self.points[-count:] if count > 0 else ())


def build_series(runs: Iterable[RunRecord], name: str, unit: str | None = None) -> BenchmarkSeries:
    """Build the series of a benchmark name.

    Args:
        runs: Runs of one group.
        name: Benchmark name.
        unit: If given, only points with this unit label are kept, so a
            benchmark whose unit changed starts a fresh series.

    Returns:
        The series, ordered by ``recorded_at`` (stable for ties).
    """
    points = []
    for run in runs:
        measurement = run.measurement(name)
        if measurement is None:
            continue
        if unit is not None and measurement.unit != unit:
            continue
        points.append(SeriesPoint(run=run, measurement=measurement))
    points.sort(key=lambda point: point.recorded_at)
    return BenchmarkSeries(name=name, points=tuple(points))


def series_names(runs: Iterable[RunRecord]) -> list[str]:
    """All benchmark names in first-seen order, including retired ones."""
    names: dict[str, None] = {}
    for run in runs:
        for measurement in run.measurements:
            names.setdefault(measurement.name, None)
    return list(names)
