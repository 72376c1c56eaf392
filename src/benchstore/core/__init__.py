"""Core module for benchstore.

This module contains the record types, exceptions and configuration used
throughout the library.
"""

from __future__ import annotations

from benchstore.core.config import Settings
from benchstore.core.exceptions import (
    BenchstoreError,
    ConflictWarning,
    LockTimeoutError,
    SchemaError,
    StoreIOError,
    ValidationError,
)
from benchstore.core.types import (
    Measurement,
    Person,
    Provenance,
    RunRecord,
    UnitKind,
    classify_unit,
    parse_range,
)

__all__ = [
    "BenchstoreError",
    "ConflictWarning",
    "LockTimeoutError",
    "Measurement",
    "Person",
    "Provenance",
    "RunRecord",
    "SchemaError",
    "Settings",
    "StoreIOError",
    "UnitKind",
    "ValidationError",
    "classify_unit",
    "parse_range",
]
