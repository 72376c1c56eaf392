"""Parsers for benchmark harness output.

Each parser turns one harness run into a RunRecord. The harness itself is
not run here; only its already computed summary statistics are read.

Supported formats:
    entry: one JSON object shaped like a stored run.
    customSmallerIsBetter / customBiggerIsBetter: a JSON array of
        ``{name, value, unit, range?, variability?}`` objects.
    cargo: libtest ``cargo bench`` output, also written by criterion's
        ``--output-format bencher``.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from benchstore.core.exceptions import ValidationError
from benchstore.core.types import RunRecord, describe_errors

if TYPE_CHECKING:
    from benchstore.core.types import Provenance

logger = logging.getLogger(__name__)

ENTRY = "entry"
CARGO = "cargo"
CUSTOM_SMALLER_IS_BETTER = "customSmallerIsBetter"
CUSTOM_BIGGER_IS_BETTER = "customBiggerIsBetter"

FORMATS: tuple[str, ...] = (ENTRY, CARGO, CUSTOM_SMALLER_IS_BETTER, CUSTOM_BIGGER_IS_BETTER)

# test frame processing/whole ... bench:   8,459,380 ns/iter (+/- 9,153)
_CARGO_LINE = re.compile(
    r"^test\s+(?P<name>.+?)\s+\.\.\.\s+bench:\s+(?P<value>[0-9,._]+)\s+(?P<unit>\S+/\S+)\s+"
    r"\(\+/-\s+(?P<deviation>[0-9,._]+)\)",
)


def _number(text: str) -> float:
    return float(text.replace(",", "").replace("_", ""))


def _load_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{source}: invalid JSON: {e}") from e


def _validate_run(data: dict[str, Any], source: str) -> RunRecord:
    try:
        return RunRecord.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"{source}: {describe_errors(e)}") from e


def parse_entry(
    data: Any,
    *,
    provenance: Provenance | None = None,
    recorded_at: datetime | None = None,
    source: str = "<entry>",
) -> RunRecord:
    """Parse one stored-run shaped object.

    Args:
        data: Parsed JSON object with ``commit``, ``tool``, ``benches`` and
            optionally ``date``.
        provenance: Used when the object carries no ``commit``.
        recorded_at: Ingest time, used when the object carries no ``date``.
        source: Name used in error messages.

    Raises:
        ValidationError: If the object is not a valid run.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"{source}: expected a JSON object, got {type(data).__name__}")
    data = dict(data)
    if "commit" not in data and provenance is not None:
        data["commit"] = provenance.to_wire()
    if "date" not in data and recorded_at is not None:
        data["date"] = recorded_at
    return _validate_run(data, source)


def parse_custom(
    data: Any,
    *,
    tool: str,
    provenance: Provenance,
    recorded_at: datetime | None = None,
    source: str = "<custom>",
) -> RunRecord:
    """Parse a custom JSON array of measurements.

    Raises:
        ValidationError: If the array or one of its items is invalid.
    """
    if not isinstance(data, list):
        raise ValidationError(f"{source}: expected a JSON array of benchmarks, got {type(data).__name__}")
    run: dict[str, Any] = {"commit": provenance.to_wire(), "tool": tool, "benches": data}
    if recorded_at is not None:
        run["date"] = recorded_at
    return _validate_run(run, source)


def parse_cargo(
    text: str,
    *,
    provenance: Provenance,
    recorded_at: datetime | None = None,
    source: str = "<cargo>",
) -> RunRecord:
    """Parse ``cargo bench`` / criterion bencher output.

    Raises:
        ValidationError: If no benchmark line is found.
    """
    benches = []
    for line in text.splitlines():
        match = _CARGO_LINE.match(line.strip())
        if match is None:
            continue
        deviation = _number(match.group("deviation"))
        benches.append(
            {
                "name": match.group("name").strip(),
                "value": _number(match.group("value")),
                "range": f"± {match.group('deviation').replace(',', '')}",
                "unit": match.group("unit"),
                "variability": deviation,
            }
        )
    if not benches:
        raise ValidationError(f"{source}: no benchmark results found in cargo output")
    logger.debug(f"Parsed {len(benches)} cargo benchmarks from {source}")

    run: dict[str, Any] = {"commit": provenance.to_wire(), "tool": CARGO, "benches": benches}
    if recorded_at is not None:
        run["date"] = recorded_at
    return _validate_run(run, source)


def parse_run(
    text: str,
    fmt: str = ENTRY,
    *,
    provenance: Provenance | None = None,
    recorded_at: datetime | None = None,
    source: str = "<input>",
) -> RunRecord:
    """Parse harness output in any supported format.

    Args:
        text: Raw harness output.
        fmt: One of FORMATS.
        provenance: Commit provenance; required for all formats but ``entry``.
        recorded_at: Ingest time (default: now).
        source: Name used in error messages.

    Returns:
        The parsed run.

    Raises:
        ValidationError: If the format is unknown or the input invalid.
    """
    if fmt not in FORMATS:
        raise ValidationError(f"Unknown input format {fmt!r}, expected one of: {', '.join(FORMATS)}")
    if fmt == ENTRY:
        return parse_entry(_load_json(text, source), provenance=provenance, recorded_at=recorded_at, source=source)
    if provenance is None:
        raise ValidationError(f"Format {fmt!r} needs commit provenance (commit file or commit id)")
    if fmt == CARGO:
        return parse_cargo(text, provenance=provenance, recorded_at=recorded_at, source=source)
    return parse_custom(
        _load_json(text, source), tool=fmt, provenance=provenance, recorded_at=recorded_at, source=source
    )


def load_run(
    path: Path | str,
    fmt: str = ENTRY,
    *,
    provenance: Provenance | None = None,
    recorded_at: datetime | None = None,
) -> RunRecord:
    """Read and parse a harness output file.

    Raises:
        ValidationError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e
    return parse_run(text, fmt, provenance=provenance, recorded_at=recorded_at, source=str(path))
