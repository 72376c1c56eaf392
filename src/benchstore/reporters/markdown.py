"""Markdown reporter for CI comments.

Renders a regression result as a table a CI job can post as a commit or
pull request comment. Posting is left to the CI job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from benchstore.regression.models import Verdict
from benchstore.reporters.console import format_value

if TYPE_CHECKING:
    from benchstore.regression.models import MeasurementVerdict, RegressionResult

_ICONS = {
    Verdict.IMPROVED: "🟢 improved",
    Verdict.STABLE: "⚪ stable",
    Verdict.REGRESSED: "🔴 regressed",
    Verdict.INSUFFICIENT_HISTORY: "🆕 no history",
}


def _cell(item: MeasurementVerdict) -> tuple[str, str, str, str]:
    current = f"{format_value(item.current_value)} {item.unit}"
    if item.current_variability:
        current += f" (± {format_value(item.current_variability)})"
    if item.baseline is None:
        return current, "-", "-", _ICONS[item.verdict]
    baseline = f"{format_value(item.baseline.value)} {item.unit}"
    ratio = f"{item.ratio:.2f}" if item.ratio is not None else "-"
    status = _ICONS[item.verdict]
    if item.severity == "critical":
        status += " (critical)"
    return current, baseline, ratio, status


class MarkdownReporter:
    """Render verdicts as a markdown table.

    Attributes:
        only_flagged: Only list regressed and improved measurements.

    Example:
        >>> print(MarkdownReporter().report(result))
        ## Benchmark: `Benchmark`
        ...
    """

    def __init__(self, only_flagged: bool = False) -> None:
        self.only_flagged = only_flagged

    def report(self, result: RegressionResult) -> str:
        """Render the result.

        Args:
            result: Verdicts of a checked run.

        Returns:
            Markdown text.
        """
        lines = [
            f"## Benchmark: `{result.group}`",
            "",
            f"Commit `{result.commit_id}` ({result.tool}), threshold "
            f"{result.thresholds.threshold * 100:g}%, baseline {result.thresholds.baseline.value}.",
            "",
        ]
        if result.has_regressions:
            lines.append(f"**{len(result.regressions)} regression(s) detected.**")
            lines.append("")

        verdicts = result.verdicts
        if self.only_flagged:
            verdicts = [item for item in verdicts if item.verdict in (Verdict.REGRESSED, Verdict.IMPROVED)]
        if not verdicts:
            lines.append("No changes to report.")
            return "\n".join(lines) + "\n"

        lines.append("| Benchmark | Current | Baseline | Ratio | Status |")
        lines.append("|-----------|---------|----------|-------|--------|")
        for item in verdicts:
            current, baseline, ratio, status = _cell(item)
            name = item.name.replace("|", "\\|")
            lines.append(f"| `{name}` | {current} | {baseline} | {ratio} | {status} |")
        return "\n".join(lines) + "\n"
