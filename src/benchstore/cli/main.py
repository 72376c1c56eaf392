"""Main CLI entry point for benchstore.

This module defines the Typer application and all CLI commands. It is the
only place where errors are turned into exit codes and user messages.
"""

from __future__ import annotations

import json
import logging
import sys
import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from benchstore import __version__
from benchstore.core.config import Settings
from benchstore.core.exceptions import (
    BenchstoreError,
    ConflictWarning,
    LockTimeoutError,
    SchemaError,
    StoreIOError,
    ValidationError,
)

if TYPE_CHECKING:
    from benchstore.core.types import RunRecord
    from benchstore.history.merger import AppendResult
    from benchstore.regression import RegressionResult, RegressionThresholds
    from benchstore.storage import JSONHistoryStore

# Create the main Typer app
app = typer.Typer(
    name="benchstore",
    help="benchstore: benchmark history store and regression detector for CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
}

EXIT_OK = 0
EXIT_REGRESSION = 1
EXIT_VALIDATION = 2
EXIT_SCHEMA = 3
EXIT_LOCK_TIMEOUT = 4
EXIT_IO = 5

_EXIT_CODES: list[tuple[type[BaseException], int]] = [
    (ValidationError, EXIT_VALIDATION),
    (SchemaError, EXIT_SCHEMA),
    (LockTimeoutError, EXIT_LOCK_TIMEOUT),
    (StoreIOError, EXIT_IO),
]

logger = logging.getLogger(__name__)


def exit_code_for(error: BaseException) -> int:
    """Exit code for an error raised below the entry point."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return EXIT_IO


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Report typed errors and exit with their code."""
    try:
        yield
    except BenchstoreError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(exit_code_for(e)) from e


def _settings() -> Settings:
    """Load settings from the environment, exiting on invalid values."""
    from pydantic import ValidationError as PydanticValidationError

    from benchstore.core.types import describe_errors

    try:
        return Settings()
    except PydanticValidationError as e:
        typer.echo(f"Error: invalid BENCHSTORE_ setting: {describe_errors(e)}", err=True)
        raise typer.Exit(EXIT_VALIDATION) from e


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchstore v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """benchstore: benchmark history store and regression detector.

    Ingest CI benchmark runs into a durable history, detect regressions and
    export the chart data file.
    """
    state["json"] = json_output
    state["no_color"] = no_color

    level = "DEBUG" if verbose else _settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchstore v{__version__}")


StoreOption = Annotated[
    Path | None,
    typer.Option("--store", "-s", help="History file (default: BENCHSTORE_STORE_PATH or dev/bench/data.js)."),
]
GroupOption = Annotated[
    str | None,
    typer.Option("--group", "-g", help="Benchmark group name (default: BENCHSTORE_GROUP or Benchmark)."),
]
FormatOption = Annotated[
    str,
    typer.Option(
        "--format",
        "-f",
        help="Input format: entry, cargo, customSmallerIsBetter or customBiggerIsBetter.",
    ),
]
CommitFileOption = Annotated[
    Path | None,
    typer.Option("--commit-file", help="JSON file with the commit (push event payload or commit object)."),
]
CommitOption = Annotated[str | None, typer.Option("--commit", help="Commit id.")]
MessageOption = Annotated[str | None, typer.Option("--message", help="Commit message.")]
TimestampOption = Annotated[str | None, typer.Option("--timestamp", help="RFC 3339 commit timestamp.")]
AuthorNameOption = Annotated[str | None, typer.Option("--author-name", help="Commit author name.")]
AuthorEmailOption = Annotated[str | None, typer.Option("--author-email", help="Commit author email.")]
CommitUrlOption = Annotated[str | None, typer.Option("--commit-url", help="Commit URL.")]
ThresholdOption = Annotated[
    float | None,
    typer.Option("--threshold", help="Relative change threshold, e.g. 0.05 for five percent."),
]
BaselineOption = Annotated[
    str | None,
    typer.Option("--baseline", help="Baseline strategy: previous or rolling."),
]
ThresholdsFileOption = Annotated[
    Path | None,
    typer.Option("--thresholds-file", help="YAML file with regression thresholds."),
]
SummaryOption = Annotated[
    Path | None,
    typer.Option("--summary", help="Write a markdown summary for a CI comment to this file."),
]


def _open_store(settings: Settings, store: Path | None, repo_url: str | None = None) -> JSONHistoryStore:
    from benchstore.storage import JSONHistoryStore

    return JSONHistoryStore.open(
        store or Path(settings.store_path),
        repo_url=repo_url or settings.repo_url,
        lock_timeout=settings.lock_timeout_seconds,
        js_variable=settings.js_variable,
    )


def _thresholds(
    settings: Settings,
    threshold: float | None,
    baseline: str | None,
    thresholds_file: Path | None,
) -> RegressionThresholds:
    from benchstore.regression import BaselineStrategy, RegressionThresholds

    try:
        if thresholds_file is not None:
            thresholds = RegressionThresholds.from_yaml(thresholds_file)
        else:
            thresholds = RegressionThresholds.from_settings(settings)
        overrides: dict[str, Any] = {}
        if threshold is not None:
            overrides["threshold"] = threshold
        if baseline is not None:
            overrides["baseline"] = BaselineStrategy(baseline)
        if overrides:
            thresholds = replace(thresholds, **overrides)
    except (OSError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid regression thresholds: {e}") from e
    return thresholds


def _read_run(
    input_file: Path,
    fmt: str,
    commit_file: Path | None,
    commit_id: str | None,
    message: str | None,
    timestamp: str | None,
    author_name: str | None,
    author_email: str | None,
    commit_url: str | None,
) -> RunRecord:
    from benchstore.ingest import ENTRY, build_provenance, load_commit_file, load_run

    overrides = {
        "commit_id": commit_id,
        "message": message,
        "timestamp": timestamp,
        "author_name": author_name,
        "author_email": author_email,
        "url": commit_url,
    }
    provenance = None
    if commit_file is not None or any(value is not None for value in overrides.values()):
        commit = load_commit_file(commit_file) if commit_file is not None else None
        provenance = build_provenance(commit, **overrides)
    elif fmt != ENTRY:
        raise ValidationError(f"Format {fmt!r} needs --commit-file or --commit")
    return load_run(input_file, fmt, provenance=provenance)


def _report(
    result: RegressionResult,
    append: AppendResult | None = None,
    summary: Path | None = None,
) -> None:
    from benchstore.reporters import ConsoleReporter, JSONReporter, MarkdownReporter

    if state["json"]:
        typer.echo(JSONReporter().report(result, append))
    else:
        reporter = ConsoleReporter(use_colors=not state["no_color"])
        if append is not None and append.conflict is not None:
            reporter.warn(str(append.conflict))
        reporter.report_result(result)

    if summary is not None:
        with _handle_errors():
            try:
                summary.parent.mkdir(parents=True, exist_ok=True)
                summary.write_text(MarkdownReporter().report(result), encoding="utf-8")
            except OSError as e:
                raise StoreIOError(f"Cannot write summary {summary}: {e}") from e


@app.command()
def ingest(
    input_file: Annotated[Path, typer.Argument(help="Harness output to ingest.")],
    fmt: FormatOption = "entry",
    store: StoreOption = None,
    group: GroupOption = None,
    repo_url: Annotated[str | None, typer.Option("--repo-url", help="Repository URL for a new store.")] = None,
    commit_file: CommitFileOption = None,
    commit_id: CommitOption = None,
    message: MessageOption = None,
    timestamp: TimestampOption = None,
    author_name: AuthorNameOption = None,
    author_email: AuthorEmailOption = None,
    commit_url: CommitUrlOption = None,
    threshold: ThresholdOption = None,
    baseline: BaselineOption = None,
    thresholds_file: ThresholdsFileOption = None,
    summary: SummaryOption = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option("--fail-on-regression", help="Exit with code 1 if a regression is detected."),
    ] = False,
) -> None:
    """Record a benchmark run and check it for regressions.

    Examples:
        benchstore ingest run.json
        benchstore ingest bench.txt --format cargo --commit-file $GITHUB_EVENT_PATH
        benchstore --json ingest run.json --fail-on-regression
    """
    from benchstore.regression import RegressionDetector

    settings = _settings()
    group_name = group or settings.group
    with _handle_errors():
        thresholds = _thresholds(settings, threshold, baseline, thresholds_file)
        run = _read_run(
            input_file, fmt, commit_file, commit_id, message, timestamp, author_name, author_email, commit_url
        )
        history = _open_store(settings, store, repo_url)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConflictWarning)
            appended = history.append(run, group_name)

        # verdicts come from the document written inside the lock
        detector = RegressionDetector(thresholds)
        result = detector.detect(appended.document.runs(group_name), appended.run, group=group_name)

    _report(result, appended, summary)
    if fail_on_regression and result.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def check(
    input_file: Annotated[Path, typer.Argument(help="Harness output to check.")],
    fmt: FormatOption = "entry",
    store: StoreOption = None,
    group: GroupOption = None,
    commit_file: CommitFileOption = None,
    commit_id: CommitOption = None,
    message: MessageOption = None,
    timestamp: TimestampOption = None,
    author_name: AuthorNameOption = None,
    author_email: AuthorEmailOption = None,
    commit_url: CommitUrlOption = None,
    threshold: ThresholdOption = None,
    baseline: BaselineOption = None,
    thresholds_file: ThresholdsFileOption = None,
    summary: SummaryOption = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option("--fail-on-regression", help="Exit with code 1 if a regression is detected."),
    ] = False,
) -> None:
    """Check a benchmark run for regressions without recording it.

    Reads a snapshot of the store without taking the write lock.

    Example:
        benchstore check run.json --threshold 0.1
    """
    from benchstore.regression import RegressionDetector

    settings = _settings()
    group_name = group or settings.group
    with _handle_errors():
        thresholds = _thresholds(settings, threshold, baseline, thresholds_file)
        run = _read_run(
            input_file, fmt, commit_file, commit_id, message, timestamp, author_name, author_email, commit_url
        )
        document = _open_store(settings, store).load()
        result = RegressionDetector(thresholds).detect(document.runs(group_name), run, group=group_name)

    _report(result, summary=summary)
    if fail_on_regression and result.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def export(
    output: Annotated[Path, typer.Argument(help="Target file (.js for data.js, anything else for JSON).")],
    store: StoreOption = None,
    js: Annotated[bool, typer.Option("--js", help="Force data.js output.")] = False,
    plain_json: Annotated[bool, typer.Option("--plain-json", help="Force plain JSON output.")] = False,
) -> None:
    """Export the history in the chart renderer's schema.

    The output format follows the target's suffix unless forced.

    Example:
        benchstore export site/dev/bench/data.js
    """
    from benchstore.storage import Exporter

    settings = _settings()
    as_js = True if js else False if plain_json else None
    with _handle_errors():
        document = _open_store(settings, store).load()
        try:
            path = Exporter(js_variable=settings.js_variable).export_to(document, output, as_js=as_js)
        except OSError as e:
            raise StoreIOError(f"Cannot write {output}: {e}") from e

    if state["json"]:
        typer.echo(json.dumps({"output": str(path), "runs": document.run_count(), "groups": document.groups}))
    else:
        typer.echo(f"Exported {document.run_count()} runs to {path}")


@app.command()
def prune(
    store: StoreOption = None,
    group: Annotated[str | None, typer.Option("--group", "-g", help="Only prune this group.")] = None,
    max_items: Annotated[
        int | None,
        typer.Option("--max-items", help="Keep at most this many runs per group."),
    ] = None,
    older_than_days: Annotated[
        float | None,
        typer.Option("--older-than-days", help="Remove runs recorded more than this many days ago."),
    ] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would be removed.")] = False,
) -> None:
    """Remove old runs from the history.

    Examples:
        benchstore prune --max-items 200
        benchstore prune --older-than-days 365 --dry-run
    """
    settings = _settings()
    older_than = timedelta(days=older_than_days) if older_than_days is not None else None
    with _handle_errors():
        report = _open_store(settings, store).prune(
            max_items=max_items,
            older_than=older_than,
            group=group,
            dry_run=dry_run,
        )

    if state["json"]:
        typer.echo(
            json.dumps(
                {
                    "dry_run": report.dry_run,
                    "removed": {
                        name: [{"commit": run.commit_id, "date": run.to_wire()["date"]} for run in runs]
                        for name, runs in report.removed.items()
                    },
                    "kept": report.kept,
                },
                indent=2,
            )
        )
        return

    verb = "Would remove" if dry_run else "Removed"
    typer.echo(f"{verb} {report.total_removed} run(s)")
    for name, runs in report.removed.items():
        for run in runs:
            typer.echo(f"  {name}: {run.commit_id[:7]} {run.recorded_at.isoformat()}")


@app.command()
def series(
    name: Annotated[str, typer.Argument(help="Benchmark name.")],
    store: StoreOption = None,
    group: GroupOption = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Show only the last N points.")] = 20,
) -> None:
    """Show the history of one benchmark.

    Example:
        benchstore series "frame processing/whole" --limit 10
    """
    from benchstore.reporters import ConsoleReporter

    settings = _settings()
    group_name = group or settings.group
    with _handle_errors():
        document = _open_store(settings, store).load()
    history = document.series(group_name, name).tail(limit)

    if not history:
        typer.echo(f"No history for '{name}' in group '{group_name}'", err=True)
        raise typer.Exit(EXIT_VALIDATION)

    if state["json"]:
        points = [
            {
                "commit": point.commit_id,
                "date": point.run.to_wire()["date"],
                **point.measurement.to_wire(),
            }
            for point in history
        ]
        typer.echo(json.dumps({"group": group_name, "name": name, "points": points}, indent=2, ensure_ascii=False))
        return

    ConsoleReporter(use_colors=not state["no_color"]).report_series(history)


if __name__ == "__main__":
    app()
