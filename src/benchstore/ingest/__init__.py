"""Ingestion of benchmark harness output."""

from __future__ import annotations

from benchstore.ingest.parsers import (
    CARGO,
    CUSTOM_BIGGER_IS_BETTER,
    CUSTOM_SMALLER_IS_BETTER,
    ENTRY,
    FORMATS,
    load_run,
    parse_cargo,
    parse_custom,
    parse_entry,
    parse_run,
)
from benchstore.ingest.provenance import build_provenance, load_commit_file

__all__ = [
    "CARGO",
    "CUSTOM_BIGGER_IS_BETTER",
    "CUSTOM_SMALLER_IS_BETTER",
    "ENTRY",
    "FORMATS",
    "build_provenance",
    "load_commit_file",
    "load_run",
    "parse_cargo",
    "parse_custom",
    "parse_entry",
    "parse_run",
]
