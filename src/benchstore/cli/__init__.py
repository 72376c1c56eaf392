"""Command-line interface for benchstore."""

from __future__ import annotations

from benchstore.cli.main import app

__all__ = ["app"]
