"""Reporters for regression verdicts and benchmark series."""

from __future__ import annotations

from benchstore.reporters.console import ConsoleReporter
from benchstore.reporters.json import JSONReporter
from benchstore.reporters.markdown import MarkdownReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
    "MarkdownReporter",
]
