"""Shared fixtures for benchstore tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import pytest

from benchstore.core.types import RunRecord
from benchstore.storage import JSONHistoryStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

START = datetime(2025, 3, 28, 13, 34, 45, tzinfo=timezone.utc)


def commit_sha(index: int) -> str:
    """Deterministic 40-hex commit id."""
    return f"{index:040x}"


SAMPLE_ENTRY: dict[str, Any] = {
    "commit": {
        "author": {"email": "dev@example.com", "name": "Dev Eloper", "username": "dev"},
        "committer": {"email": "noreply@github.com", "name": "GitHub", "username": "web-flow"},
        "distinct": True,
        "id": "d9903faa4086fa2e6cb10b717262fd10829c8db2",
        "message": "Merge pull request #201 from dev/tracing-improvements",
        "timestamp": "2025-03-28T14:30:07+01:00",
        "tree_id": "dfcc635e6f84ac02f5b4b4a290c43312c6bef357",
        "url": "https://github.com/example/project/commit/d9903faa4086fa2e6cb10b717262fd10829c8db2",
    },
    "date": 1743168885972,
    "tool": "cargo",
    "benches": [
        {"name": "frame processing/whole", "value": 8459380, "range": "± 9153", "unit": "ns/iter"},
    ],
}


@pytest.fixture
def sample_entry() -> dict[str, Any]:
    """A stored run as the chart data file holds it."""
    return {
        **SAMPLE_ENTRY,
        "commit": {**SAMPLE_ENTRY["commit"]},
        "benches": [dict(bench) for bench in SAMPLE_ENTRY["benches"]],
    }


@pytest.fixture
def make_run() -> Callable[..., RunRecord]:
    """Factory for run records.

    ``make_run(3, value=500_000)`` builds the run of commit 3, recorded three
    minutes after START, with one ``parse`` benchmark.
    """

    def _make(
        index: int = 1,
        *,
        value: float = 500_000.0,
        variability: float | None = 2_000.0,
        unit: str = "ns/iter",
        name: str = "parse",
        tool: str = "cargo",
        benches: list[dict[str, Any]] | None = None,
        recorded_at: datetime | None = None,
        **extra: Any,
    ) -> RunRecord:
        if benches is None:
            bench: dict[str, Any] = {"name": name, "value": value, "unit": unit}
            if variability is not None:
                bench["variability"] = variability
            benches = [bench]
        return RunRecord.model_validate(
            {
                "commit": {
                    "id": commit_sha(index),
                    "message": f"commit {index}",
                    "timestamp": "2025-03-28T14:30:07+01:00",
                    "author": {"name": "Dev", "email": "dev@example.com"},
                },
                "date": recorded_at or START + timedelta(minutes=index),
                "tool": tool,
                "benches": benches,
                **extra,
            }
        )

    return _make


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Path of a history file that does not exist yet."""
    return tmp_path / "dev" / "bench" / "data.js"


@pytest.fixture
def store(store_path: Path) -> JSONHistoryStore:
    """A store on a fresh path, with a short lock timeout."""
    return JSONHistoryStore.open(store_path, repo_url="https://github.com/example/project", lock_timeout=5.0)
