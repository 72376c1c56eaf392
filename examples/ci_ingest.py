"""Example of recording a CI benchmark run from Python.

This example builds provenance from the GitHub push event, parses
``cargo bench`` output, appends the run to the history under the store
lock and fails the job on a regression. It is the library form of:

    benchstore ingest bench.txt --format cargo --commit-file $GITHUB_EVENT_PATH --fail-on-regression
"""

import logging
import os
import sys
import warnings

from benchstore import ConflictWarning, JSONHistoryStore, RegressionDetector, RegressionThresholds
from benchstore.ingest import CARGO, build_provenance, load_commit_file, load_run
from benchstore.reporters import ConsoleReporter, MarkdownReporter

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


def main() -> int:
    # 1. Who produced the numbers
    commit = load_commit_file(os.environ.get("GITHUB_EVENT_PATH", "event.json"))
    provenance = build_provenance(commit)

    # 2. The numbers themselves
    run = load_run("bench.txt", CARGO, provenance=provenance)

    # 3. Record them; concurrent jobs are serialized by the store lock
    store = JSONHistoryStore.open(
        "gh-pages/dev/bench/data.js",
        repo_url=f"https://github.com/{os.environ.get('GITHUB_REPOSITORY', 'org/repo')}",
    )
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConflictWarning)
        appended = store.append(run, group="Benchmark")
    for warning in caught:
        print(f"warning: {warning.message}")

    # 4. Compare against the history read inside the lock
    detector = RegressionDetector(RegressionThresholds(threshold=0.05, baseline="rolling", window=5))
    result = detector.detect(appended.document.runs("Benchmark"), appended.run, group="Benchmark")

    ConsoleReporter().report_result(result)
    with open("benchmark-comment.md", "w", encoding="utf-8") as f:
        f.write(MarkdownReporter(only_flagged=True).report(result))

    return 1 if result.has_regressions else 0


if __name__ == "__main__":
    sys.exit(main())
