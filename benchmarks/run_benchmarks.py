#!/usr/bin/env python3
"""benchstore performance benchmarks.

Measures the hot paths of an ingest at different history sizes:
- merging a run into a document
- detecting regressions against the history
- decoding and encoding the chart data file

Results are written in the customSmallerIsBetter format, so they can be
fed back into benchstore itself.

Usage:
    python benchmarks/run_benchmarks.py
    python benchmarks/run_benchmarks.py --sizes 100 1000 --repeat 20
    python benchmarks/run_benchmarks.py --output results/bench.json
"""

from __future__ import annotations

import argparse
import json
import statistics
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from benchstore.core.types import RunRecord
    from benchstore.history.document import HistoryDocument

START = datetime(2025, 1, 1, tzinfo=timezone.utc)
BENCHMARKS_PER_RUN = 25


@dataclass
class TimingResult:
    """Timing of one operation, in the customSmallerIsBetter shape."""

    name: str
    value: float
    unit: str
    variability: float


def make_run(index: int) -> RunRecord:
    """Synthetic run for commit ``index`` with a slow drift."""
    from benchstore.core.types import RunRecord

    return RunRecord.model_validate(
        {
            "commit": {
                "id": f"{index:040x}",
                "message": f"commit {index}",
                "timestamp": (START + timedelta(hours=index)).isoformat(),
            },
            "date": START + timedelta(hours=index, minutes=5),
            "tool": "cargo",
            "benches": [
                {
                    "name": f"bench_{b}",
                    "value": 1_000_000 + 500 * b + 10 * index,
                    "unit": "ns/iter",
                    "variability": 2_000,
                }
                for b in range(BENCHMARKS_PER_RUN)
            ],
        }
    )


def make_document(size: int) -> HistoryDocument:
    from benchstore.history.document import HistoryDocument

    return HistoryDocument.empty("https://github.com/example/project").with_runs(
        "Benchmark", [make_run(i) for i in range(size)], touched_at=START
    )


def measure(name: str, operation: Callable[[], Any], repeat: int) -> TimingResult:
    """Run ``operation`` ``repeat`` times and report the mean in microseconds."""
    samples = []
    for _ in range(repeat):
        started = time.perf_counter()
        operation()
        samples.append((time.perf_counter() - started) * 1_000_000)
    return TimingResult(
        name=name,
        value=round(statistics.mean(samples), 2),
        unit="us",
        variability=round(statistics.stdev(samples), 2) if len(samples) > 1 else 0.0,
    )


def run_benchmarks(sizes: list[int], repeat: int) -> list[TimingResult]:
    from benchstore.history.merger import merge_run
    from benchstore.regression import RegressionDetector, RegressionThresholds
    from benchstore.storage.codec import decode, encode

    print("=" * 60)
    print("benchstore Performance Benchmarks")
    print("=" * 60)

    results = []
    for size in sizes:
        print(f"\nHistory of {size} runs ({BENCHMARKS_PER_RUN} benchmarks each)")
        print("-" * 40)
        document = make_document(size)
        candidate = make_run(size)
        runs = document.runs("Benchmark")
        text = encode(document)
        rolling = RegressionDetector(RegressionThresholds(baseline="rolling", window=10))  # type: ignore[arg-type]

        for name, operation in (
            (f"merge/{size}", lambda: merge_run(document, candidate, "Benchmark", now=START)),
            (f"detect previous/{size}", lambda: RegressionDetector().detect(runs, candidate)),
            (f"detect rolling/{size}", lambda: rolling.detect(runs, candidate)),
            (f"decode/{size}", lambda: decode(text)),
            (f"encode/{size}", lambda: encode(document)),
        ):
            result = measure(name, operation, repeat)
            print(f"  {result.name:<24} {result.value:>12} {result.unit} (+/- {result.variability})")
            results.append(result)

    return results


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run benchstore performance benchmarks")
    parser.add_argument("--sizes", type=int, nargs="+", default=[100, 1000], help="History sizes to measure")
    parser.add_argument("--repeat", type=int, default=10, help="Repetitions per operation")
    parser.add_argument("--output", "-o", type=Path, help="Output JSON file path")

    args = parser.parse_args()

    try:
        results = run_benchmarks(args.sizes, args.repeat)
    except KeyboardInterrupt:
        print("\nBenchmark interrupted.")
        sys.exit(1)

    output_path = args.output or Path(__file__).parent / "results" / f"{datetime.now().strftime('%Y-%m-%d')}.json"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps([asdict(r) for r in results], indent=2))
    print(f"\nResults saved to: {output_path}")
    print(f"Ingest with: benchstore ingest {output_path} --format customSmallerIsBetter --commit <sha>")


if __name__ == "__main__":
    main()
