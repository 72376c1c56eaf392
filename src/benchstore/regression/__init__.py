"""Regression detection module for benchstore.

This module classifies the measurements of a run as improved, stable,
regressed or lacking history, relative to earlier runs.

Example:
    >>> from benchstore.regression import RegressionDetector, RegressionThresholds
    >>>
    >>> detector = RegressionDetector(RegressionThresholds(threshold=0.05))
    >>> result = detector.detect(document.runs("Benchmark"), run, group="Benchmark")
    >>> if result.has_regressions:
    ...     print(result.summary())
"""

from __future__ import annotations

from benchstore.regression.detector import (
    BIGGER_IS_BETTER_TOOLS,
    RegressionDetector,
    lower_is_better,
    prior_runs,
)
from benchstore.regression.models import (
    Baseline,
    BaselineStrategy,
    MeasurementVerdict,
    RegressionResult,
    RegressionThresholds,
    Verdict,
)

__all__ = [
    "BIGGER_IS_BETTER_TOOLS",
    "Baseline",
    "BaselineStrategy",
    "MeasurementVerdict",
    "RegressionDetector",
    "RegressionResult",
    "RegressionThresholds",
    "Verdict",
    "lower_is_better",
    "prior_runs",
]
