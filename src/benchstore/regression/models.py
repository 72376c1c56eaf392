"""Models for regression detection.

This module provides dataclasses for detection thresholds, per-measurement
verdicts and the result of checking one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from benchstore.core.config import Settings


class Verdict(str, Enum):
    """Classification of a measurement against its baseline."""

    IMPROVED = "improved"
    STABLE = "stable"
    REGRESSED = "regressed"
    INSUFFICIENT_HISTORY = "insufficient_history"


class BaselineStrategy(str, Enum):
    """How the comparison point is chosen from history."""

    PREVIOUS = "previous"
    ROLLING = "rolling"


@dataclass
class RegressionThresholds:
    """Thresholds for regression detection.

    A change is significant only if the relative delta exceeds ``threshold``
    and, with ``use_noise_floor``, the absolute change exceeds the combined
    variability of both measurements.

    Attributes:
        threshold: Relative change threshold (default 5%).
        critical_multiplier: Multiplier of threshold for critical severity (default 2x).
        use_noise_floor: Require the change to exceed the combined variability.
        baseline: Baseline strategy (previous point or rolling mean).
        window: Number of prior points in a rolling baseline.

    Example:
        >>> thresholds = RegressionThresholds(threshold=0.10)
        >>> thresholds.threshold
        0.1
    """

    threshold: float = 0.05
    critical_multiplier: float = 2.0
    use_noise_floor: bool = True
    baseline: BaselineStrategy = BaselineStrategy.PREVIOUS
    window: int = 5

    def __post_init__(self) -> None:
        # Values loaded from YAML arrive with whatever type the file gave them.
        try:
            self.threshold = float(self.threshold)
            self.critical_multiplier = float(self.critical_multiplier)
            self.window = int(self.window)
        except (TypeError, ValueError) as e:
            raise ValueError(f"numeric threshold values must be numbers: {e}") from e
        if not isinstance(self.use_noise_floor, bool):
            raise ValueError(f"use_noise_floor must be true or false, got {self.use_noise_floor!r}")
        self.baseline = BaselineStrategy(self.baseline)
        if self.threshold <= 0:
            raise ValueError(f"threshold must be > 0, got {self.threshold}")
        if self.critical_multiplier < 1:
            raise ValueError(f"critical_multiplier must be >= 1, got {self.critical_multiplier}")
        if self.window < 1:
            raise ValueError(f"window must be >= 1, got {self.window}")

    @classmethod
    def from_settings(cls, settings: Settings) -> RegressionThresholds:
        """Build thresholds from application settings."""
        return cls(
            threshold=settings.threshold,
            critical_multiplier=settings.critical_multiplier,
            baseline=BaselineStrategy(settings.baseline),
            window=settings.rolling_window,
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> RegressionThresholds:
        """Load thresholds from a YAML file.

        The file may hold the keys at the top level or under ``regression:``.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If a value is invalid.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {path}")

        section = data.get("regression", data)
        if not isinstance(section, dict):
            raise ValueError(f"Expected a mapping under 'regression' in {path}")
        known = {"threshold", "critical_multiplier", "use_noise_floor", "baseline", "window"}
        return cls(**{key: value for key, value in section.items() if key in known})


@dataclass
class Baseline:
    """Comparison point for one measurement.

    Attributes:
        value: Baseline value (a single point or a rolling mean).
        variability: Baseline variability.
        points: Number of history points behind the baseline.
        commit_id: Commit of the most recent point used.
    """

    value: float
    variability: float
    points: int = 1
    commit_id: str | None = None


@dataclass
class MeasurementVerdict:
    """Verdict for one measurement of a run.

    Attributes:
        name: Benchmark name.
        unit: Display unit.
        verdict: Classification.
        current_value: Value in the checked run.
        current_variability: Variability in the checked run.
        lower_is_better: Polarity used for the classification.
        baseline: Comparison point, if any.
        delta: Relative change ``(current - baseline) / |baseline|``.
        noise_floor: Combined variability of both measurements.
        severity: "warning" or "critical" for regressions.
    """

    name: str
    unit: str
    verdict: Verdict
    current_value: float
    current_variability: float
    lower_is_better: bool
    baseline: Baseline | None = None
    delta: float | None = None
    noise_floor: float | None = None
    severity: Literal["warning", "critical"] | None = None

    @property
    def change_percent(self) -> float | None:
        return self.delta * 100 if self.delta is not None else None

    @property
    def ratio(self) -> float | None:
        """current / baseline, the ratio chart comments show."""
        if self.baseline is None or self.baseline.value == 0:
            return None
        return self.current_value / self.baseline.value

    @property
    def message(self) -> str:
        """Human-readable description of the verdict."""
        if self.baseline is None or self.delta is None:
            return f"{self.name}: no comparable history"
        direction = "increased" if self.delta > 0 else "decreased"
        return (
            f"{self.name} {direction} by {abs(self.delta) * 100:.1f}% "
            f"({self.baseline.value:g} -> {self.current_value:g} {self.unit}): {self.verdict.value}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "unit": self.unit,
            "verdict": self.verdict.value,
            "severity": self.severity,
            "current": {"value": self.current_value, "variability": self.current_variability},
            "baseline": (
                {
                    "value": self.baseline.value,
                    "variability": self.baseline.variability,
                    "points": self.baseline.points,
                    "commit": self.baseline.commit_id,
                }
                if self.baseline is not None
                else None
            ),
            "delta": self.delta,
            "noise_floor": self.noise_floor,
            "lower_is_better": self.lower_is_better,
        }


@dataclass
class RegressionResult:
    """Verdicts for every measurement of one run.

    Example:
        >>> result = detector.detect(document.runs("Benchmark"), run)
        >>> if result.has_regressions:
        ...     print(result.summary())
    """

    group: str
    commit_id: str
    tool: str
    verdicts: list[MeasurementVerdict]
    thresholds: RegressionThresholds
    timestamp: datetime = field(default_factory=datetime.now)

    def by_verdict(self, verdict: Verdict) -> list[MeasurementVerdict]:
        return [item for item in self.verdicts if item.verdict is verdict]

    @property
    def regressions(self) -> list[MeasurementVerdict]:
        return self.by_verdict(Verdict.REGRESSED)

    @property
    def improvements(self) -> list[MeasurementVerdict]:
        return self.by_verdict(Verdict.IMPROVED)

    @property
    def has_regressions(self) -> bool:
        return bool(self.regressions)

    @property
    def has_critical(self) -> bool:
        return any(item.severity == "critical" for item in self.verdicts)

    def counts(self) -> dict[str, int]:
        """Number of measurements per verdict."""
        return {verdict.value: len(self.by_verdict(verdict)) for verdict in Verdict}

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        counts = self.counts()
        lines = [
            f"Regression check for {self.commit_id[:7]} ({self.tool}) in '{self.group}'",
            "  "
            + ", ".join(f"{verdict.value.replace('_', ' ')}: {counts[verdict.value]}" for verdict in Verdict),
        ]
        flagged = [item for item in self.verdicts if item.verdict in (Verdict.REGRESSED, Verdict.IMPROVED)]
        if flagged:
            lines.append("")
            for item in flagged:
                marker = f"[{(item.severity or item.verdict.value).upper()}]"
                lines.append(f"  {marker} {item.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "commit": self.commit_id,
            "tool": self.tool,
            "threshold": self.thresholds.threshold,
            "baseline_strategy": self.thresholds.baseline.value,
            "counts": self.counts(),
            "has_regressions": self.has_regressions,
            "verdicts": [item.to_dict() for item in self.verdicts],
        }
