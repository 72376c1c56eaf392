"""JSON reporter for benchstore.

This module provides JSON output for regression verdicts, suitable for
CI pipelines and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from benchstore.history.merger import AppendResult
    from benchstore.regression.models import RegressionResult


class JSONReporter:
    """Reporter that outputs regression verdicts as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(result))
        {
          "timestamp": "2025-03-28T13:34:45+00:00",
          "result": {"group": "Benchmark", ...}
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def to_dict(self, result: RegressionResult, append: AppendResult | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {"timestamp": self._get_timestamp(), "result": result.to_dict()}
        if append is not None:
            data["ingest"] = {
                "status": append.status.value,
                "group": append.group,
                "conflict": str(append.conflict) if append.conflict is not None else None,
                "runs_in_group": len(append.document.runs(append.group)),
            }
        return data

    def report(self, result: RegressionResult, append: AppendResult | None = None) -> str:
        """Generate a JSON report.

        Args:
            result: Verdicts of a checked run.
            append: Ingest outcome, if the run was merged.

        Returns:
            JSON string.
        """
        return json.dumps(self.to_dict(result, append), indent=self.indent, ensure_ascii=False)

    def report_to_file(self, result: RegressionResult, path: Path | str, append: AppendResult | None = None) -> None:
        """Write a JSON report to a file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(result, append), encoding="utf-8")
