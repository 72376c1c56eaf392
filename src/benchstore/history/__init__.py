"""Benchmark history module for benchstore.

This module provides the history document, per-benchmark series, the
merger that appends runs under the store lock, and retention.

Example:
    >>> from benchstore.history import Merger
    >>> from benchstore.storage import JSONHistoryStore
    >>>
    >>> merger = Merger(JSONHistoryStore("dev/bench/data.js"))
    >>> result = merger.append(run, group="Benchmark")
    >>> series = result.document.series("Benchmark", "frame processing/whole")
"""

from __future__ import annotations

from benchstore.history.document import HistoryDocument
from benchstore.history.merger import AppendResult, AppendStatus, Merger, insert_ordered, merge_run
from benchstore.history.retention import PruneReport, prune, select_prunable
from benchstore.history.series import BenchmarkSeries, SeriesPoint, build_series

__all__ = [
    "AppendResult",
    "AppendStatus",
    "BenchmarkSeries",
    "HistoryDocument",
    "Merger",
    "PruneReport",
    "SeriesPoint",
    "build_series",
    "insert_ordered",
    "merge_run",
    "prune",
    "select_prunable",
]
