"""Unit tests for reporters."""

from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING, Any

import pytest

from benchstore.history.document import HistoryDocument
from benchstore.history.merger import merge_run
from benchstore.history.series import build_series
from benchstore.regression import RegressionDetector, RegressionResult
from benchstore.reporters import ConsoleReporter, JSONReporter, MarkdownReporter
from benchstore.reporters.console import format_value

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def result(make_run: Any) -> RegressionResult:
    """Check of a run with one regression, one stable and one new benchmark."""
    previous = make_run(
        1,
        benches=[
            {"name": "frame processing/whole", "value": 500_000, "unit": "ns/iter", "variability": 2_000},
            {"name": "decode", "value": 492_000, "unit": "ns/iter", "variability": 2_000},
        ],
    )
    current = make_run(
        2,
        benches=[
            {"name": "frame processing/whole", "value": 850_000, "unit": "ns/iter", "variability": 9_000},
            {"name": "decode", "value": 490_000, "unit": "ns/iter", "variability": 2_000},
            {"name": "render", "value": 12.5, "unit": "ms"},
        ],
    )
    return RegressionDetector().detect([previous, current], current, group="Benchmark")


class TestFormatValue:
    """Tests for format_value."""

    def test_integral(self) -> None:
        assert format_value(8_459_380.0) == "8,459,380"

    def test_fractional(self) -> None:
        assert format_value(12.5) == "12.5"


class TestConsoleReporter:
    """Tests for ConsoleReporter."""

    def test_report_result(self, result: RegressionResult) -> None:
        output = io.StringIO()
        ConsoleReporter(output=output).report_result(result)
        text = output.getvalue()

        assert "Regression check for" in text
        assert "REGRESSED (critical)" in text
        assert "stable" in text
        assert "new" in text
        assert "regressed: 1" in text
        assert "\033[" not in text

    def test_report_series(self, make_run: Any) -> None:
        series = build_series([make_run(1, value=10.0), make_run(2, value=12.0)], "parse")
        output = io.StringIO()
        ConsoleReporter(output=output).report_series(series)
        text = output.getvalue()

        assert "(2 points)" in text
        assert "12 ns/iter" in text
        assert "± 2000" in text

    def test_warn(self) -> None:
        output = io.StringIO()
        ConsoleReporter(output=output).warn("replaced earlier run")
        assert "[!] replaced earlier run" in output.getvalue()


class TestMarkdownReporter:
    """Tests for MarkdownReporter."""

    def test_table(self, result: RegressionResult) -> None:
        text = MarkdownReporter().report(result)

        assert text.startswith("## Benchmark: `Benchmark`")
        assert "**1 regression(s) detected.**" in text
        assert "| Benchmark | Current | Baseline | Ratio | Status |" in text
        assert "| `frame processing/whole` | 850,000 ns/iter (± 9,000) | 500,000 ns/iter | 1.70 |" in text
        assert "🔴 regressed (critical)" in text
        assert "🆕 no history" in text

    def test_only_flagged(self, result: RegressionResult) -> None:
        text = MarkdownReporter(only_flagged=True).report(result)
        assert "`decode`" not in text
        assert "`frame processing/whole`" in text

    def test_nothing_flagged(self, make_run: Any) -> None:
        run = make_run(1)
        text = MarkdownReporter(only_flagged=True).report(RegressionDetector().detect([run], run))
        assert "No changes to report." in text


class TestJSONReporter:
    """Tests for JSONReporter."""

    def test_report(self, result: RegressionResult) -> None:
        data = json.loads(JSONReporter().report(result))

        assert "timestamp" in data
        assert data["result"]["group"] == "Benchmark"
        assert data["result"]["counts"] == {
            "improved": 0,
            "stable": 1,
            "regressed": 1,
            "insufficient_history": 1,
        }
        assert "ingest" not in data

    def test_report_with_ingest(self, result: RegressionResult, make_run: Any) -> None:
        appended = merge_run(HistoryDocument.empty(), make_run(2), "Benchmark", now=make_run(2).recorded_at)
        data = JSONReporter(indent=None).to_dict(result, appended)
        assert data["ingest"] == {"status": "appended", "group": "Benchmark", "conflict": None, "runs_in_group": 1}

    def test_report_to_file(self, result: RegressionResult, tmp_path: Path) -> None:
        path = tmp_path / "reports" / "check.json"
        JSONReporter().report_to_file(result, path)
        assert json.loads(path.read_text(encoding="utf-8"))["result"]["has_regressions"] is True
