"""Reconciles newly submitted runs with the stored history.

The merge protocol is: acquire the store lock, read the current document,
check for an idempotent resubmission, insert the run in chronological
position, write atomically, release the lock.
"""

from __future__ import annotations

import bisect
import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from benchstore.core.exceptions import ConflictWarning
from benchstore.core.types import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from benchstore.core.types import RunRecord
    from benchstore.history.document import HistoryDocument
    from benchstore.storage.base import StorageProtocol

logger = logging.getLogger(__name__)


class AppendStatus(str, Enum):
    """Outcome of merging a run."""

    APPENDED = "appended"
    DUPLICATE = "duplicate"
    REPLACED = "replaced"


@dataclass
class AppendResult:
    """Result of merging one run.

    Attributes:
        status: Whether the run was appended, ignored as a duplicate, or
            replaced an earlier submission of the same commit and tool.
        group: Benchmark group the run belongs to.
        run: The run as stored. For a duplicate this is the earlier record.
        document: The document after the merge, read inside the lock.
        replaced: Runs removed by a last-writer-wins replacement.
        conflict: Warning describing a divergent resubmission, if any.
    """

    status: AppendStatus
    group: str
    run: RunRecord
    document: HistoryDocument
    replaced: list[RunRecord]
    conflict: ConflictWarning | None = None

    @property
    def changed(self) -> bool:
        return self.status is not AppendStatus.DUPLICATE


def insert_ordered(runs: Sequence[RunRecord], run: RunRecord) -> list[RunRecord]:
    """Insert a run after every run recorded at or before it."""
    keys = [existing.recorded_at for existing in runs]
    index = bisect.bisect_right(keys, run.recorded_at)
    return [*runs[:index], run, *runs[index:]]


def merge_run(document: HistoryDocument, run: RunRecord, group: str, *, now: datetime) -> AppendResult:
    """Merge a run into a document without touching storage.

    Args:
        document: Current document.
        run: Submitted run.
        group: Benchmark group.
        now: Ingest time, recorded as the document's last update.

    Returns:
        AppendResult carrying the merged document.
    """
    runs = sorted(document.runs(group), key=lambda existing: existing.recorded_at)
    previous = [existing for existing in runs if existing.same_submission(run)]

    for existing in previous:
        if existing.same_content(run):
            logger.info(
                f"Run for commit {run.provenance.short_id} ({run.tool}) already recorded in '{group}', nothing to do"
            )
            return AppendResult(
                status=AppendStatus.DUPLICATE,
                group=group,
                run=existing,
                document=document,
                replaced=[],
            )

    conflict: ConflictWarning | None = None
    if previous:
        remaining = [existing for existing in runs if not existing.same_submission(run)]
        conflict = ConflictWarning(
            f"Commit {run.commit_id} ({run.tool}) was resubmitted to '{group}' with a different "
            f"measurement set; replacing {len(previous)} earlier run(s)"
        )
        logger.warning(str(conflict))
        status = AppendStatus.REPLACED
    else:
        remaining = runs
        status = AppendStatus.APPENDED

    merged = document.with_runs(group, insert_ordered(remaining, run), touched_at=now)
    logger.info(
        f"Recorded {len(run.measurements)} measurements for commit {run.provenance.short_id} "
        f"({run.tool}) in '{group}' ({status.value})"
    )
    return AppendResult(
        status=status,
        group=group,
        run=run,
        document=merged,
        replaced=previous,
        conflict=conflict,
    )


class Merger:
    """Appends runs to a store under its exclusive lock.

    Example:
        >>> merger = Merger(JSONHistoryStore("dev/bench/data.js"))
        >>> result = merger.append(run, group="Benchmark")
        >>> result.status
        <AppendStatus.APPENDED: 'appended'>
    """

    def __init__(self, store: StorageProtocol, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize with a storage backend.

        Args:
            store: Storage backend providing load, write and lock.
            clock: Source of the ingest time.
        """
        self._store = store
        self._clock = clock

    def append(self, run: RunRecord, group: str) -> AppendResult:
        """Merge a run into the store.

        Resubmitting the same commit with the same tool and the same
        measurements is a no-op. Resubmitting it with different measurements
        replaces the earlier run and issues a ConflictWarning.

        Args:
            run: The run to record. Ownership passes to the store.
            group: Benchmark group.

        Returns:
            AppendResult with the merged document.

        Raises:
            LockTimeoutError: If the lock is not acquired in time.
            StoreIOError: If the store cannot be read or written.
            SchemaError: If the stored document is malformed; nothing is written.
        """
        with self._store.lock():
            document = self._store.load()
            result = merge_run(document, run, group, now=self._clock())
            if result.changed:
                self._store.write(result.document)

        if result.conflict is not None:
            warnings.warn(result.conflict, stacklevel=2)
        return result
