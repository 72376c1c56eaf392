"""Unit tests for regression detection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from benchstore.core.config import Settings
from benchstore.core.types import Measurement
from benchstore.regression import (
    Baseline,
    BaselineStrategy,
    RegressionDetector,
    RegressionThresholds,
    Verdict,
    lower_is_better,
    prior_runs,
)

if TYPE_CHECKING:
    from pathlib import Path


def measurement(value: float, variability: float = 0.0, unit: str = "ns/iter", name: str = "parse") -> Measurement:
    return Measurement(name=name, value=value, unit=unit, variability=variability)


# =============================================================================
# RegressionThresholds
# =============================================================================


class TestRegressionThresholds:
    """Tests for RegressionThresholds."""

    def test_defaults(self) -> None:
        thresholds = RegressionThresholds()
        assert thresholds.threshold == 0.05
        assert thresholds.critical_multiplier == 2.0
        assert thresholds.use_noise_floor is True
        assert thresholds.baseline is BaselineStrategy.PREVIOUS
        assert thresholds.window == 5

    def test_baseline_coerced_from_string(self) -> None:
        assert RegressionThresholds(baseline="rolling").baseline is BaselineStrategy.ROLLING  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "kwargs",
        [{"threshold": 0}, {"threshold": -0.1}, {"critical_multiplier": 0.5}, {"window": 0}],
    )
    def test_invalid_values(self, kwargs: dict[str, Any]) -> None:
        with pytest.raises(ValueError):
            RegressionThresholds(**kwargs)

    def test_from_settings(self) -> None:
        settings = Settings(threshold=0.1, critical_multiplier=3.0, baseline="rolling", rolling_window=7)
        thresholds = RegressionThresholds.from_settings(settings)
        assert thresholds.threshold == 0.1
        assert thresholds.critical_multiplier == 3.0
        assert thresholds.baseline is BaselineStrategy.ROLLING
        assert thresholds.window == 7

    def test_from_yaml_section(self, tmp_path: Path) -> None:
        config = tmp_path / "benchstore.yaml"
        config.write_text(
            "regression:\n  threshold: 0.1\n  baseline: rolling\n  window: 3\n  unknown: ignored\n",
            encoding="utf-8",
        )
        thresholds = RegressionThresholds.from_yaml(config)
        assert thresholds.threshold == 0.1
        assert thresholds.baseline is BaselineStrategy.ROLLING
        assert thresholds.window == 3

    def test_from_yaml_top_level(self, tmp_path: Path) -> None:
        config = tmp_path / "thresholds.yml"
        config.write_text("threshold: 0.2\nuse_noise_floor: false\n", encoding="utf-8")
        thresholds = RegressionThresholds.from_yaml(config)
        assert thresholds.threshold == 0.2
        assert thresholds.use_noise_floor is False

    def test_from_yaml_quoted_numbers(self, tmp_path: Path) -> None:
        config = tmp_path / "quoted.yaml"
        config.write_text('threshold: "0.1"\nwindow: "3"\n', encoding="utf-8")
        thresholds = RegressionThresholds.from_yaml(config)
        assert thresholds.threshold == 0.1
        assert thresholds.window == 3

    @pytest.mark.parametrize("content", ["threshold: abc\n", "window: [3]\n", "use_noise_floor: maybe\n"])
    def test_from_yaml_mistyped_values(self, tmp_path: Path, content: str) -> None:
        config = tmp_path / "mistyped.yaml"
        config.write_text(content, encoding="utf-8")
        with pytest.raises(ValueError):
            RegressionThresholds.from_yaml(config)

    def test_from_yaml_empty(self, tmp_path: Path) -> None:
        config = tmp_path / "empty.yaml"
        config.write_text("", encoding="utf-8")
        assert RegressionThresholds.from_yaml(config) == RegressionThresholds()

    def test_from_yaml_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            RegressionThresholds.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_not_a_mapping(self, tmp_path: Path) -> None:
        config = tmp_path / "list.yaml"
        config.write_text("- 0.1\n- 0.2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Expected a mapping"):
            RegressionThresholds.from_yaml(config)

    def test_from_yaml_invalid_yaml(self, tmp_path: Path) -> None:
        config = tmp_path / "broken.yaml"
        config.write_text("threshold: [0.1\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            RegressionThresholds.from_yaml(config)


# =============================================================================
# Polarity
# =============================================================================


class TestPolarity:
    """Tests for lower_is_better."""

    def test_time_is_lower_better(self) -> None:
        assert lower_is_better(measurement(1.0, unit="ns/iter"), "cargo")

    def test_throughput_is_higher_better(self) -> None:
        assert not lower_is_better(measurement(1.0, unit="ops/sec"), "cargo")

    def test_custom_follows_tool(self) -> None:
        custom = measurement(1.0, unit="score")
        assert lower_is_better(custom, "customSmallerIsBetter")
        assert not lower_is_better(custom, "customBiggerIsBetter")


# =============================================================================
# Classification
# =============================================================================


class TestClassify:
    """Tests for RegressionDetector.classify."""

    def test_large_slowdown_is_regression(self) -> None:
        """500000 ± 2000 -> 850000 ± 9000 is a critical regression."""
        detector = RegressionDetector()
        verdict = detector.classify(measurement(850_000, 9_000), Baseline(value=500_000, variability=2_000))

        assert verdict.verdict is Verdict.REGRESSED
        assert verdict.delta == pytest.approx(0.7)
        assert verdict.noise_floor == 11_000
        assert verdict.severity == "critical"
        assert verdict.ratio == pytest.approx(1.7)

    def test_small_change_is_stable(self) -> None:
        """492000 -> 490000 with 2000 variability is noise."""
        detector = RegressionDetector()
        verdict = detector.classify(measurement(490_000, 2_000), Baseline(value=492_000, variability=2_000))
        assert verdict.verdict is Verdict.STABLE
        assert verdict.severity is None

    def test_speedup_is_improvement(self) -> None:
        detector = RegressionDetector()
        verdict = detector.classify(measurement(400_000, 1_000), Baseline(value=500_000, variability=1_000))
        assert verdict.verdict is Verdict.IMPROVED
        assert verdict.change_percent == pytest.approx(-20.0)

    def test_change_within_noise_is_stable(self) -> None:
        """Exceeding the threshold is not enough when the noise is larger."""
        detector = RegressionDetector()
        verdict = detector.classify(measurement(120, 30), Baseline(value=100, variability=30))
        assert verdict.delta == pytest.approx(0.2)
        assert verdict.verdict is Verdict.STABLE

    def test_noise_floor_can_be_disabled(self) -> None:
        detector = RegressionDetector(RegressionThresholds(use_noise_floor=False))
        verdict = detector.classify(measurement(120, 30), Baseline(value=100, variability=30))
        assert verdict.verdict is Verdict.REGRESSED

    def test_warning_severity(self) -> None:
        detector = RegressionDetector()
        verdict = detector.classify(measurement(108), Baseline(value=100, variability=0))
        assert verdict.verdict is Verdict.REGRESSED
        assert verdict.severity == "warning"

    def test_throughput_drop_is_regression(self) -> None:
        detector = RegressionDetector()
        verdict = detector.classify(
            measurement(800, 5, unit="ops/sec"),
            Baseline(value=1_000, variability=5),
            lower_is_better=False,
        )
        assert verdict.verdict is Verdict.REGRESSED

    def test_throughput_gain_is_improvement(self) -> None:
        detector = RegressionDetector()
        verdict = detector.classify(
            measurement(1_200, 5, unit="ops/sec"),
            Baseline(value=1_000, variability=5),
            lower_is_better=False,
        )
        assert verdict.verdict is Verdict.IMPROVED

    def test_no_baseline(self) -> None:
        verdict = RegressionDetector().classify(measurement(100), None)
        assert verdict.verdict is Verdict.INSUFFICIENT_HISTORY
        assert verdict.delta is None
        assert "no comparable history" in verdict.message

    def test_zero_baseline(self) -> None:
        verdict = RegressionDetector().classify(measurement(100), Baseline(value=0, variability=0))
        assert verdict.verdict is Verdict.INSUFFICIENT_HISTORY
        assert verdict.ratio is None

    def test_exact_threshold_is_stable(self) -> None:
        verdict = RegressionDetector().classify(measurement(105), Baseline(value=100, variability=0))
        assert verdict.verdict is Verdict.STABLE


# =============================================================================
# Detection over history
# =============================================================================


class TestDetect:
    """Tests for RegressionDetector.detect."""

    def test_first_run_has_no_history(self, make_run: Any) -> None:
        run = make_run(1)
        result = RegressionDetector().detect([run], run, group="Benchmark")

        assert [item.verdict for item in result.verdicts] == [Verdict.INSUFFICIENT_HISTORY]
        assert not result.has_regressions

    def test_previous_baseline(self, make_run: Any) -> None:
        runs = [make_run(1, value=100_000), make_run(2, value=500_000), make_run(3, value=850_000, variability=9_000)]
        result = RegressionDetector().detect(runs, runs[2], group="Benchmark")

        verdict = result.verdicts[0]
        assert verdict.baseline is not None
        assert verdict.baseline.value == 500_000
        assert verdict.baseline.commit_id == runs[1].commit_id
        assert result.has_regressions
        assert result.has_critical

    def test_unstored_run_compared_to_latest(self, make_run: Any) -> None:
        runs = [make_run(1, value=500_000), make_run(2, value=500_000)]
        candidate = make_run(3, value=300_000)
        result = RegressionDetector().detect(runs, candidate)
        assert result.improvements

    def test_rolling_baseline(self, make_run: Any) -> None:
        runs = [make_run(i, value=v, variability=10) for i, v in enumerate([100, 200, 300, 400, 500], start=1)]
        current = make_run(6, value=700, variability=10)
        detector = RegressionDetector(RegressionThresholds(baseline=BaselineStrategy.ROLLING, window=3))

        baseline = detector.select_baseline(runs, current.measurements[0])

        assert baseline is not None
        assert baseline.value == 400
        assert baseline.points == 3
        assert detector.detect(runs, current).regressions

    def test_unit_change_starts_fresh(self, make_run: Any) -> None:
        runs = [make_run(1, unit="ns/iter", value=500)]
        current = make_run(2, unit="us/iter", value=0.6)
        result = RegressionDetector().detect(runs, current)
        assert result.verdicts[0].verdict is Verdict.INSUFFICIENT_HISTORY

    def test_new_benchmark_in_run(self, make_run: Any) -> None:
        runs = [make_run(1, value=500)]
        current = make_run(
            2,
            benches=[
                {"name": "parse", "value": 500, "unit": "ns/iter"},
                {"name": "render", "value": 40, "unit": "ns/iter"},
            ],
        )
        result = RegressionDetector().detect(runs, current)
        assert [item.verdict for item in result.verdicts] == [Verdict.STABLE, Verdict.INSUFFICIENT_HISTORY]

    def test_prior_runs_excludes_earlier_submission(self, make_run: Any) -> None:
        first = make_run(1, value=100)
        resubmitted = make_run(1, value=200)
        assert prior_runs([first], resubmitted) == []

    def test_prior_runs_for_stored_run(self, make_run: Any) -> None:
        runs = [make_run(1), make_run(2), make_run(3)]
        assert prior_runs(runs, runs[1]) == runs[:1]

    def test_result_summary_and_dict(self, make_run: Any) -> None:
        runs = [make_run(1, value=500_000, variability=2_000), make_run(2, value=850_000, variability=9_000)]
        result = RegressionDetector().detect(runs, runs[1], group="Benchmark")

        summary = result.summary()
        assert "[CRITICAL]" in summary
        assert "parse increased by 70.0%" in summary

        data = result.to_dict()
        assert data["has_regressions"] is True
        assert data["counts"]["regressed"] == 1
        assert data["verdicts"][0]["baseline"]["value"] == 500_000
