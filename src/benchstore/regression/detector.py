"""Regression detector for benchmark runs.

This module provides the RegressionDetector class, which classifies each
measurement of a run against a baseline taken from the prior history of
the same benchmark name and unit.
"""

from __future__ import annotations

import logging
from statistics import fmean
from typing import TYPE_CHECKING

from benchstore.core.types import UnitKind
from benchstore.history.series import build_series
from benchstore.regression.models import (
    Baseline,
    BaselineStrategy,
    MeasurementVerdict,
    RegressionResult,
    RegressionThresholds,
    Verdict,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchstore.core.types import Measurement, RunRecord

logger = logging.getLogger(__name__)

# Harnesses whose custom units grow as performance improves
BIGGER_IS_BETTER_TOOLS: frozenset[str] = frozenset(
    {"customBiggerIsBetter", "benchmarkjs", "benchmarkluau", "pytest"},
)


def lower_is_better(measurement: Measurement, tool: str) -> bool:
    """Polarity of a measurement.

    Time units are lower-is-better and throughput units higher-is-better.
    Custom units follow the harness: lower-is-better unless the tool
    reports bigger-is-better numbers.
    """
    kind = measurement.kind
    if kind is UnitKind.TIME:
        return True
    if kind is UnitKind.THROUGHPUT:
        return False
    return tool not in BIGGER_IS_BETTER_TOOLS


def prior_runs(runs: Sequence[RunRecord], run: RunRecord) -> list[RunRecord]:
    """Runs that precede ``run`` in a group's history.

    If the run is stored, everything before its position. Otherwise every
    run recorded at or before it, excluding earlier submissions of the same
    commit and tool.
    """
    for index, candidate in enumerate(runs):
        if candidate == run:
            return list(runs[:index])
    return [
        candidate
        for candidate in runs
        if candidate.recorded_at <= run.recorded_at and not candidate.same_submission(run)
    ]


class RegressionDetector:
    """Classify the measurements of a run against their history.

    Attributes:
        thresholds: Thresholds and baseline strategy.

    Example:
        >>> detector = RegressionDetector(RegressionThresholds(threshold=0.05))
        >>> result = detector.detect(document.runs("Benchmark"), run, group="Benchmark")
        >>> for item in result.regressions:
        ...     print(item.message)
    """

    def __init__(self, thresholds: RegressionThresholds | None = None) -> None:
        """Initialize detector.

        Args:
            thresholds: Thresholds for regression detection. Defaults to RegressionThresholds().
        """
        self.thresholds = thresholds or RegressionThresholds()

    def select_baseline(self, history: Sequence[RunRecord], measurement: Measurement) -> Baseline | None:
        """Choose the comparison point for a measurement.

        Only points with the same name and the same unit label count, so a
        renamed benchmark or a changed unit starts without history.

        Args:
            history: Prior runs, ascending by ``recorded_at``.
            measurement: Measurement being checked.

        Returns:
            The baseline, or None if there is no comparable history.
        """
        series = build_series(history, measurement.name, unit=measurement.unit)
        if not series:
            return None

        if self.thresholds.baseline is BaselineStrategy.ROLLING:
            window = series.tail(self.thresholds.window)
        else:
            window = series.tail(1)

        points = window.points
        return Baseline(
            value=fmean(point.value for point in points),
            variability=fmean(point.measurement.effective_variability for point in points),
            points=len(points),
            commit_id=points[-1].commit_id,
        )

    def classify(
        self,
        current: Measurement,
        baseline: Baseline | None,
        *,
        lower_is_better: bool = True,
    ) -> MeasurementVerdict:
        """Classify one measurement against a baseline.

        The relative delta is normalized to a worsening (positive is worse)
        before thresholds are applied. A change is only flagged when it
        exceeds the threshold and the combined noise of both measurements.

        Args:
            current: Measurement being checked.
            baseline: Comparison point, or None.
            lower_is_better: Polarity of the measurement.

        Returns:
            The verdict for the measurement.
        """
        variability = current.effective_variability
        if baseline is None or baseline.value == 0:
            return MeasurementVerdict(
                name=current.name,
                unit=current.unit,
                verdict=Verdict.INSUFFICIENT_HISTORY,
                current_value=current.value,
                current_variability=variability,
                lower_is_better=lower_is_better,
                baseline=baseline,
            )

        difference = current.value - baseline.value
        delta = difference / abs(baseline.value)
        worsening = delta if lower_is_better else -delta
        noise_floor = variability + baseline.variability

        exceeds_threshold = abs(delta) > self.thresholds.threshold
        exceeds_noise = abs(difference) > noise_floor if self.thresholds.use_noise_floor else True

        severity = None
        if exceeds_threshold and exceeds_noise:
            if worsening > 0:
                verdict = Verdict.REGRESSED
                critical = worsening > self.thresholds.threshold * self.thresholds.critical_multiplier
                severity = "critical" if critical else "warning"
            else:
                verdict = Verdict.IMPROVED
        else:
            verdict = Verdict.STABLE

        return MeasurementVerdict(
            name=current.name,
            unit=current.unit,
            verdict=verdict,
            current_value=current.value,
            current_variability=variability,
            lower_is_better=lower_is_better,
            baseline=baseline,
            delta=delta,
            noise_floor=noise_floor,
            severity=severity,
        )

    def detect(self, runs: Sequence[RunRecord], run: RunRecord, group: str = "") -> RegressionResult:
        """Classify every measurement of a run.

        Args:
            runs: History of the run's group, ascending by ``recorded_at``.
                May or may not already contain ``run``.
            run: The run to check.
            group: Group name, for reporting.

        Returns:
            RegressionResult with one verdict per measurement, in run order.
        """
        history = prior_runs(runs, run)
        verdicts = []
        for measurement in run.measurements:
            baseline = self.select_baseline(history, measurement)
            verdict = self.classify(
                measurement,
                baseline,
                lower_is_better=lower_is_better(measurement, run.tool),
            )
            if verdict.verdict is Verdict.REGRESSED:
                logger.warning(verdict.message)
            else:
                logger.debug(verdict.message)
            verdicts.append(verdict)

        return RegressionResult(
            group=group,
            commit_id=run.commit_id,
            tool=run.tool,
            verdicts=verdicts,
            thresholds=self.thresholds,
        )
