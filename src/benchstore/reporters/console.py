"""Console reporter for benchstore.

This module provides terminal output for regression verdicts and
benchmark series, with colored status markers.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from benchstore.regression.models import Verdict

if TYPE_CHECKING:
    from benchstore.history.series import BenchmarkSeries
    from benchstore.regression.models import MeasurementVerdict, RegressionResult


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"


STATUS_MARKERS: dict[Verdict, tuple[str, str]] = {
    Verdict.IMPROVED: ("improved", Colors.GREEN),
    Verdict.STABLE: ("stable", Colors.DIM),
    Verdict.REGRESSED: ("REGRESSED", Colors.RED),
    Verdict.INSUFFICIENT_HISTORY: ("new", Colors.BLUE),
}


def format_value(value: float) -> str:
    """Compact display of a measurement value."""
    if value == int(value) and abs(value) < 1e15:
        return f"{int(value):,}"
    return f"{value:,.4g}"


class ConsoleReporter:
    """Reporter that prints verdicts and series to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report_result(result)
          Regression check for d9903fa (cargo) in 'Benchmark'
          frame processing/whole   8,459,380 ns/iter   +0.4%   stable
    """

    def __init__(self, use_colors: bool = True, output: TextIO | None = None) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.use_colors = use_colors and _supports_color(output or sys.stdout)
        self.output = output or sys.stdout

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    def _verdict_row(self, item: MeasurementVerdict, name_width: int) -> str:
        label, color = STATUS_MARKERS[item.verdict]
        if item.severity == "critical":
            label = "REGRESSED (critical)"
        change = f"{item.change_percent:+.1f}%" if item.change_percent is not None else "-"
        value = f"{format_value(item.current_value)} {item.unit}"
        return f"  {item.name:<{name_width}}  {value:>22}  {change:>8}  {self._color(label, color)}"

    def report_result(self, result: RegressionResult) -> None:
        """Print one line per measurement plus a count summary.

        Args:
            result: Verdicts of a checked run.
        """
        self._print()
        self._print(
            self._color(f"  Regression check for {result.commit_id[:7]} ({result.tool}) in '{result.group}'", Colors.BOLD)
        )
        self._print(
            self._color(
                f"  threshold {result.thresholds.threshold * 100:.1f}%, baseline {result.thresholds.baseline.value}",
                Colors.DIM,
            )
        )
        self._print()

        if not result.verdicts:
            self._print("  No measurements in run.")
            return

        name_width = max(len(item.name) for item in result.verdicts)
        for item in result.verdicts:
            self._print(self._verdict_row(item, name_width))

        counts = result.counts()
        self._print()
        self._print(
            "  "
            + ", ".join(f"{verdict.value.replace('_', ' ')}: {counts[verdict.value]}" for verdict in Verdict)
        )

    def report_series(self, series: BenchmarkSeries, unit: str | None = None) -> None:
        """Print the history of one benchmark, oldest first.

        Args:
            series: The benchmark series.
            unit: Unit label to display (defaults to each point's unit).
        """
        self._print()
        self._print(self._color(f"  {series.name}", Colors.BOLD))
        self._print(self._color(f"  ({len(series)} points)", Colors.DIM))
        self._print()
        for point in series:
            when = point.recorded_at.strftime("%Y-%m-%d %H:%M:%S")
            measurement = point.measurement
            value = f"{format_value(measurement.value)} {unit or measurement.unit}"
            self._print(f"  {when}  {point.commit_id[:7]}  {value:>22}  {measurement.range or ''}")

    def warn(self, text: str) -> None:
        """Print a warning line."""
        self._print(self._color(f"  [!] {text}", Colors.YELLOW))


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False

    import os

    if os.environ.get("NO_COLOR"):
        return False

    return os.environ.get("TERM") != "dumb"
