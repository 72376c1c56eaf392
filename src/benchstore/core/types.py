"""Core type definitions for benchstore.

This module defines the records that make up a benchmark history:
measurements, commit provenance and run records. Every record is a
pydantic model whose aliases match the chart data file, and every record
keeps unknown keys in an extension bag so newer tooling's fields survive
a round-trip through this version.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)
from typing_extensions import Self

if TYPE_CHECKING:
    from pydantic import ValidationError as PydanticValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_COMMIT_ID = re.compile(r"^(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})$")

# "± 9153", "+/- 1,204", "stddev: 0.0012", "± 3.5%"
_RANGE = re.compile(
    r"(?:±|\+/-|\+-|stddev:?)\s*([0-9][0-9_,]*(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?)\s*(%)?",
)

_TIME_UNITS = frozenset({"ns", "us", "µs", "μs", "ms", "s", "sec", "secs", "second", "seconds", "min"})
_PER_OPERATION = frozenset({"", "iter", "iteration", "op", "ops", "call", "run"})
_PER_SECOND = frozenset({"s", "sec", "second", "seconds"})


# ============================================================================
# Time helpers
# ============================================================================


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision, which the wire format cannot carry."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def to_epoch_millis(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    delta = value - EPOCH
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


def from_epoch_millis(value: float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return truncate_to_millis(EPOCH + timedelta(milliseconds=value))


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp.

    Args:
        value: Timestamp such as ``2025-03-28T14:30:07+01:00`` or ``...Z``.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the value is not an offset-qualified ISO 8601 timestamp.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return parsed


def coerce_instant(value: Any) -> Any:
    """Accept epoch millis, ISO strings or datetimes for an instant field."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return from_epoch_millis(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return from_epoch_millis(int(text))
        return parse_timestamp(text)
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def describe_errors(error: PydanticValidationError) -> str:
    """Render pydantic errors as one line per failing location."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


# ============================================================================
# Units
# ============================================================================


class UnitKind(str, Enum):
    """Classification of a measurement's unit.

    TIME units get worse as they grow, THROUGHPUT units get better as they
    grow. CUSTOM units carry no inherent polarity.
    """

    TIME = "time"
    THROUGHPUT = "throughput"
    CUSTOM = "custom"


def classify_unit(unit: str) -> UnitKind:
    """Classify a display unit label.

    Example:
        >>> classify_unit("ns/iter")
        <UnitKind.TIME: 'time'>
        >>> classify_unit("ops/sec")
        <UnitKind.THROUGHPUT: 'throughput'>
    """
    label = unit.strip().lower()
    head, _, tail = label.partition("/")
    if head in _TIME_UNITS and tail in _PER_OPERATION:
        return UnitKind.TIME
    if tail in _PER_SECOND or label.endswith("per second"):
        return UnitKind.THROUGHPUT
    return UnitKind.CUSTOM


def parse_range(text: str | None, value: float | None = None) -> float | None:
    """Derive a variability from a range display string.

    Only used for records that predate the raw ``variability`` field.

    Args:
        text: Display string such as ``"± 9153"``.
        value: Central value, used when the range is a percentage.

    Returns:
        The parsed variability, or None if the string carries no number.
    """
    if not text:
        return None
    match = _RANGE.search(text)
    if match is None:
        return None
    number = float(match.group(1).replace(",", "").replace("_", ""))
    if match.group(2):
        if value is None:
            return None
        return abs(value) * number / 100
    return number


def format_range(variability: float) -> str:
    """Render a variability as the chart's range display string."""
    number = f"{variability:f}".rstrip("0").rstrip(".")
    return f"± {number}"


# ============================================================================
# Records
# ============================================================================


class WireModel(BaseModel):
    """Base for records stored in the history file.

    Unknown keys are kept in ``model_extra`` and written back on export.
    Optional fields that were never supplied are omitted from the output
    instead of being written as null.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    @property
    def extensions(self) -> dict[str, Any]:
        """Fields this version does not know about."""
        return dict(self.model_extra or {})

    @model_serializer(mode="wrap")
    def _omit_unset_optionals(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data: dict[str, Any] = handler(self)
        for name, info in type(self).model_fields.items():
            if name in self.model_fields_set or getattr(self, name) is not None:
                continue
            data.pop(info.alias or name, None)
            data.pop(name, None)
        return data

    def to_wire(self) -> dict[str, Any]:
        """Dump the record with wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class Person(WireModel):
    """Commit author or committer.

    Example:
        >>> Person(email="dev@example.com", name="Dev", username="dev")
    """

    email: str | None = None
    name: str | None = None
    username: str | None = None


class Provenance(WireModel):
    """Commit provenance of a run.

    Attributes:
        author: Commit author.
        committer: Commit committer.
        distinct: True if this commit alone triggered the run, False if batched.
        commit_id: Full commit object name (wire name ``id``).
        message: Commit message.
        timestamp: RFC 3339 commit timestamp, kept verbatim.
        tree_id: Tree object name, if known.
        url: Commit URL, if known.
    """

    author: Person = Field(default_factory=Person)
    committer: Person = Field(default_factory=Person)
    distinct: bool = True
    commit_id: str = Field(..., alias="id")
    message: str = ""
    timestamp: str
    tree_id: str | None = None
    url: str | None = None

    @field_validator("commit_id")
    @classmethod
    def _check_commit_id(cls, value: str) -> str:
        if not _COMMIT_ID.match(value):
            raise ValueError(f"commit id must be a 40 or 64 character hex object name, got {value!r}")
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _check_timestamp(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.isoformat()
        if isinstance(value, str):
            parse_timestamp(value)
        return value

    @property
    def committed_at(self) -> datetime:
        """Commit timestamp as a datetime."""
        return parse_timestamp(self.timestamp)

    @property
    def short_id(self) -> str:
        return self.commit_id[:7]


class Measurement(WireModel):
    """One benchmark's outcome within a run.

    Attributes:
        name: Benchmark name, unique within a run.
        value: Central value (mean, median, ...).
        range: Display string for the variability, e.g. ``"± 9153"``.
        unit: Display unit label, e.g. ``"ns/iter"``.
        variability: Raw variability (standard error, CI half-width, ...).

    Example:
        >>> m = Measurement(name="frame processing/whole", value=8459380, unit="ns/iter", variability=9153)
        >>> m.range
        '± 9153'
        >>> m.kind
        <UnitKind.TIME: 'time'>
    """

    name: str = Field(..., min_length=1)
    value: float
    range: str | None = None
    unit: str = Field(..., min_length=1)
    variability: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_range(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("range") is None and data.get("variability") is not None:
            variability = data["variability"]
            if isinstance(variability, (int, float)) and not isinstance(variability, bool):
                data = {**data, "range": format_range(float(variability))}
        return data

    @field_validator("value")
    @classmethod
    def _check_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("value must be a finite number")
        return value

    @field_validator("variability")
    @classmethod
    def _check_variability(cls, value: float | None) -> float | None:
        if value is None:
            return value
        if not math.isfinite(value) or value < 0:
            raise ValueError("variability must be a finite number >= 0")
        return value

    @model_validator(mode="after")
    def _check_polarity_bound(self) -> Self:
        if self.kind is not UnitKind.CUSTOM and self.value < 0:
            raise ValueError(f"value must be >= 0 for {self.kind.value} units, got {self.value}")
        return self

    @property
    def kind(self) -> UnitKind:
        return classify_unit(self.unit)

    @property
    def effective_variability(self) -> float:
        """Raw variability, falling back to the parsed range string."""
        if self.variability is not None:
            return self.variability
        parsed = parse_range(self.range, self.value)
        return parsed if parsed is not None else 0.0

    def fingerprint(self) -> tuple[str, float, str, float]:
        return (self.name, self.value, self.unit, self.effective_variability)


class RunRecord(WireModel):
    """All measurements produced by one CI run.

    Attributes:
        provenance: Commit the run measured (wire name ``commit``).
        recorded_at: When the store ingested the run (wire name ``date``,
            epoch milliseconds). Not necessarily after the commit time.
        tool: Identifier of the benchmarking harness.
        measurements: Ordered measurements (wire name ``benches``).

    Example:
        >>> run = RunRecord.model_validate(entry_from_data_js)
        >>> run.commit_id
        'd9903faa4086fa2e6cb10b717262fd10829c8db2'
    """

    provenance: Provenance = Field(..., alias="commit")
    recorded_at: datetime = Field(default_factory=utc_now, alias="date")
    tool: str = Field(..., min_length=1)
    measurements: list[Measurement] = Field(..., alias="benches")

    @field_validator("recorded_at", mode="before")
    @classmethod
    def _coerce_recorded_at(cls, value: Any) -> Any:
        return coerce_instant(value)

    @field_validator("recorded_at")
    @classmethod
    def _normalize_recorded_at(cls, value: datetime) -> datetime:
        return truncate_to_millis(value.astimezone(timezone.utc))

    @field_serializer("recorded_at")
    def _serialize_recorded_at(self, value: datetime) -> int:
        return to_epoch_millis(value)

    @model_validator(mode="after")
    def _check_unique_names(self) -> Self:
        seen: set[str] = set()
        for measurement in self.measurements:
            if measurement.name in seen:
                raise ValueError(f"duplicate measurement name in run: {measurement.name!r}")
            seen.add(measurement.name)
        return self

    @property
    def commit_id(self) -> str:
        return self.provenance.commit_id

    def measurement(self, name: str) -> Measurement | None:
        """Get a measurement by name."""
        for measurement in self.measurements:
            if measurement.name == name:
                return measurement
        return None

    def measurement_set(self) -> frozenset[tuple[str, float, str, float]]:
        """Content of the run used for idempotency checks."""
        return frozenset(m.fingerprint() for m in self.measurements)

    def same_submission(self, other: RunRecord) -> bool:
        """True if both runs measure the same commit with the same tool."""
        return self.commit_id == other.commit_id and self.tool == other.tool

    def same_content(self, other: RunRecord) -> bool:
        """True if both runs carry identical measurement sets."""
        return self.measurement_set() == other.measurement_set()
