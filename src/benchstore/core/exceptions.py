"""Custom exceptions for benchstore.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchstoreError for easy catching, with the
exception of ConflictWarning which is a warning and never stops an ingest.
"""

from __future__ import annotations


class BenchstoreError(Exception):
    """Base exception for all benchstore errors.

    Example:
        >>> try:
        ...     store.append(run, group="Benchmark")
        ... except BenchstoreError as e:
        ...     print(f"benchstore error: {e}")
    """


class StoreIOError(BenchstoreError, OSError):
    """Raised when the history store cannot be read or written.

    Fatal: the top-level entry point exits non-zero.

    Example:
        >>> raise StoreIOError("Cannot write dev/bench/data.js: Permission denied")
    """


class LockTimeoutError(BenchstoreError):
    """Raised when the store's write lock cannot be acquired in time.

    Recoverable: the caller may retry with backoff or fail the CI step.

    Example:
        >>> raise LockTimeoutError("Timed out after 30.0s waiting for dev/bench/data.js.lock")
    """


class SchemaError(BenchstoreError):
    """Raised when an existing store does not match the expected schema.

    The store is never overwritten when this is raised, so history is not
    truncated by a bad read.

    Example:
        >>> raise SchemaError("entries.Benchmark[3].benches: field required")
    """


class ValidationError(BenchstoreError, ValueError):
    """Raised when a submitted run violates a record invariant.

    The run is rejected before any merge happens.

    Example:
        >>> raise ValidationError("frame/whole: value must be >= 0 for time units")
    """


class ConflictWarning(UserWarning):
    """Issued when a commit is resubmitted with a different measurement set.

    The later submission replaces the earlier one (last writer wins).
    """
