"""benchstore: benchmark history store and regression detector for CI."""

from __future__ import annotations

from benchstore.core.exceptions import (
    BenchstoreError,
    ConflictWarning,
    LockTimeoutError,
    SchemaError,
    StoreIOError,
    ValidationError,
)
from benchstore.core.types import Measurement, Person, Provenance, RunRecord, UnitKind
from benchstore.history import (
    AppendResult,
    AppendStatus,
    BenchmarkSeries,
    HistoryDocument,
    Merger,
    PruneReport,
)
from benchstore.regression import (
    RegressionDetector,
    RegressionResult,
    RegressionThresholds,
    Verdict,
)
from benchstore.storage import Exporter, JSONHistoryStore

__version__ = "0.4.0"

__all__ = [
    # Records
    "Measurement",
    "Person",
    "Provenance",
    "RunRecord",
    "UnitKind",
    # History
    "AppendResult",
    "AppendStatus",
    "BenchmarkSeries",
    "HistoryDocument",
    "Merger",
    "PruneReport",
    # Storage
    "Exporter",
    "JSONHistoryStore",
    # Regression detection
    "RegressionDetector",
    "RegressionResult",
    "RegressionThresholds",
    "Verdict",
    # Errors
    "BenchstoreError",
    "ConflictWarning",
    "LockTimeoutError",
    "SchemaError",
    "StoreIOError",
    "ValidationError",
    # Version
    "__version__",
]
