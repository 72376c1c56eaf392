"""Unit tests for history retention."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import pytest
import time_machine

from benchstore.core.exceptions import ValidationError
from benchstore.history.retention import prune, select_prunable

if TYPE_CHECKING:
    from pathlib import Path

    from benchstore.storage import JSONHistoryStore

DAY = timedelta(days=1)
BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def populated(store: JSONHistoryStore, make_run: Any) -> JSONHistoryStore:
    """Store with ten daily runs in 'Benchmark' and two in 'Memory'."""
    for index in range(10):
        store.append(make_run(index + 1, recorded_at=BASE + index * DAY), "Benchmark")
    for index in range(2):
        store.append(make_run(index + 1, recorded_at=BASE + index * DAY), "Memory")
    return store


class TestSelectPrunable:
    """Tests for select_prunable."""

    def test_max_items_keeps_newest(self, make_run: Any) -> None:
        runs = [make_run(i) for i in range(1, 6)]
        kept, removed = select_prunable(runs, max_items=2)
        assert kept == runs[3:]
        assert removed == runs[:3]

    def test_cutoff(self, make_run: Any) -> None:
        runs = [make_run(i, recorded_at=BASE + i * DAY) for i in range(5)]
        kept, removed = select_prunable(runs, cutoff=BASE + 2 * DAY)
        assert kept == runs[2:]
        assert removed == runs[:2]

    def test_both_limits(self, make_run: Any) -> None:
        runs = [make_run(i, recorded_at=BASE + i * DAY) for i in range(6)]
        kept, removed = select_prunable(runs, max_items=2, cutoff=BASE + DAY)
        assert kept == runs[4:]
        assert removed == runs[:4]

    def test_nothing_to_remove(self, make_run: Any) -> None:
        runs = [make_run(1)]
        assert select_prunable(runs, max_items=5) == (runs, [])


class TestPrune:
    """Tests for prune."""

    def test_requires_a_limit(self, store: JSONHistoryStore) -> None:
        with pytest.raises(ValidationError, match="max_items and/or older_than"):
            prune(store)

    def test_rejects_negative_max_items(self, store: JSONHistoryStore) -> None:
        with pytest.raises(ValidationError):
            prune(store, max_items=-1)

    @pytest.mark.parametrize("older_than", [timedelta(days=-1), timedelta(0)])
    def test_rejects_non_positive_older_than(self, populated: JSONHistoryStore, older_than: timedelta) -> None:
        with pytest.raises(ValidationError, match="older_than must be positive"):
            prune(populated, older_than=older_than)

        assert populated.load().run_count() == 12

    def test_max_items_per_group(self, populated: JSONHistoryStore) -> None:
        report = prune(populated, max_items=3)

        assert report.total_removed == 7
        assert report.kept == {"Benchmark": 3, "Memory": 2}
        document = populated.load()
        assert len(document.runs("Benchmark")) == 3
        assert document.runs("Benchmark")[0].recorded_at == BASE + 7 * DAY

    def test_single_group(self, populated: JSONHistoryStore) -> None:
        report = prune(populated, max_items=1, group="Memory")
        assert list(report.removed) == ["Memory"]
        assert len(populated.load().runs("Benchmark")) == 10

    def test_unknown_group(self, populated: JSONHistoryStore) -> None:
        assert prune(populated, max_items=1, group="Missing").total_removed == 0

    @time_machine.travel(datetime(2025, 1, 11, tzinfo=timezone.utc), tick=False)
    def test_older_than(self, populated: JSONHistoryStore) -> None:
        report = prune(populated, older_than=timedelta(days=5))

        # Runs from Jan 1-5 are older than five days on Jan 11
        assert report.total_removed == 5 + 2
        assert len(populated.load().runs("Benchmark")) == 5

    def test_explicit_now(self, populated: JSONHistoryStore) -> None:
        report = prune(populated, older_than=2 * DAY, now=BASE + 9 * DAY, group="Benchmark")
        assert report.total_removed == 7

    def test_dry_run_writes_nothing(self, populated: JSONHistoryStore, store_path: Path) -> None:
        before = store_path.read_text(encoding="utf-8")

        report = prune(populated, max_items=1, dry_run=True)

        assert report.dry_run
        assert report.total_removed == 10
        assert store_path.read_text(encoding="utf-8") == before

    def test_removals_are_logged(self, populated: JSONHistoryStore, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level("INFO", logger="benchstore")
        prune(populated, max_items=8, group="Benchmark")
        removed = [record for record in caplog.records if record.message.startswith("Removed run of commit")]
        assert len(removed) == 2

    def test_store_method_delegates(self, populated: JSONHistoryStore) -> None:
        assert populated.prune(max_items=5, group="Benchmark").total_removed == 5
