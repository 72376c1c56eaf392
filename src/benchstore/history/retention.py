"""Retention for the benchmark history.

Pruning is an operator action and is never triggered by an ingest.
Every removed run is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from benchstore.core.exceptions import ValidationError
from benchstore.core.types import utc_now

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from benchstore.core.types import RunRecord
    from benchstore.storage.base import StorageProtocol

logger = logging.getLogger(__name__)


@dataclass
class PruneReport:
    """Result of a prune.

    Attributes:
        removed: Removed runs per group.
        kept: Number of remaining runs per examined group.
        dry_run: True if nothing was written.
    """

    removed: dict[str, list[RunRecord]] = field(default_factory=dict)
    kept: dict[str, int] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def total_removed(self) -> int:
        return sum(len(runs) for runs in self.removed.values())


def select_prunable(
    runs: Sequence[RunRecord],
    *,
    max_items: int | None = None,
    cutoff: datetime | None = None,
) -> tuple[list[RunRecord], list[RunRecord]]:
    """Split chronologically ordered runs into kept and removed.

    Args:
        runs: Runs of one group, ascending by ``recorded_at``.
        max_items: Keep at most this many of the newest runs.
        cutoff: Remove runs recorded before this instant.

    Returns:
        Tuple of (kept, removed), both in chronological order.
    """
    kept = list(runs)
    removed: list[RunRecord] = []
    if cutoff is not None:
        removed.extend(run for run in kept if run.recorded_at < cutoff)
        kept = [run for run in kept if run.recorded_at >= cutoff]
    if max_items is not None and len(kept) > max_items:
        overflow = len(kept) - max_items
        removed.extend(kept[:overflow])
        kept = kept[overflow:]
    removed.sort(key=lambda run: run.recorded_at)
    return kept, removed


def prune(
    store: StorageProtocol,
    *,
    max_items: int | None = None,
    older_than: timedelta | None = None,
    group: str | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> PruneReport:
    """Remove old runs from a store.

    Args:
        store: Storage backend.
        max_items: Keep at most this many runs per group.
        older_than: Remove runs recorded more than this long ago.
        group: Only prune this group (None for all).
        dry_run: Report what would be removed without writing.
        now: Reference time for ``older_than`` (default: current time).

    Returns:
        PruneReport describing the removed runs.

    Raises:
        ValidationError: If neither limit is given or a limit is invalid.
        LockTimeoutError: If the lock is not acquired in time.
        StoreIOError: If the store cannot be read or written.
        SchemaError: If the stored document is malformed.
    """
    if max_items is None and older_than is None:
        raise ValidationError("prune needs max_items and/or older_than")
    if max_items is not None and max_items < 0:
        raise ValidationError(f"max_items must be >= 0, got {max_items}")
    if older_than is not None and older_than <= timedelta(0):
        raise ValidationError(f"older_than must be positive, got {older_than}")

    reference = now or utc_now()
    cutoff = reference - older_than if older_than is not None else None
    report = PruneReport(dry_run=dry_run)

    with store.lock():
        document = store.load()
        entries = {name: document.runs(name) for name in document.groups}
        targets = [group] if group is not None else list(entries)

        for name in targets:
            if name not in entries:
                logger.warning(f"Group '{name}' not found, nothing to prune")
                continue
            kept, removed = select_prunable(entries[name], max_items=max_items, cutoff=cutoff)
            report.kept[name] = len(kept)
            if not removed:
                continue
            report.removed[name] = removed
            entries[name] = kept
            verb = "Would remove" if dry_run else "Removed"
            for run in removed:
                logger.info(
                    f"{verb} run of commit {run.commit_id} ({run.tool}) recorded at "
                    f"{run.recorded_at.isoformat()} from '{name}'"
                )

        if report.total_removed and not dry_run:
            store.write(document.with_entries(entries, touched_at=reference))

    logger.info(f"Pruned {report.total_removed} run(s){' (dry run)' if dry_run else ''}")
    return report
