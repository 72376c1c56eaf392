"""Codec for the chart data file.

This module converts HistoryDocument to and from the structure the chart
renderer reads: plain JSON, or the same JSON assigned to a global in a
``data.js`` script.

Example:
    >>> document = decode(Path("dev/bench/data.js").read_text())
    >>> text = encode(document, js_variable="window.BENCHMARK_DATA")
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from benchstore.core.exceptions import SchemaError
from benchstore.core.types import describe_errors
from benchstore.history.document import HistoryDocument
from benchstore.storage.atomic import atomic_write_text

logger = logging.getLogger(__name__)

DEFAULT_JS_VARIABLE = "window.BENCHMARK_DATA"

_JS_ASSIGNMENT = re.compile(r"^\s*(?:(?:var|let|const)\s+)?[A-Za-z_$][\w$.]*\s*=\s*")


def _strip_js(text: str) -> str:
    """Remove a leading ``name =`` assignment and a trailing semicolon."""
    body = text.strip()
    if body.startswith("{"):
        return body
    match = _JS_ASSIGNMENT.match(body)
    if match is None:
        return body
    body = body[match.end() :].rstrip()
    if body.endswith(";"):
        body = body[:-1]
    return body


def decode(text: str, *, source: str = "<string>") -> HistoryDocument:
    """Parse a history document.

    Args:
        text: JSON text, optionally wrapped in a JavaScript assignment.
        source: Name used in error messages.

    Returns:
        The decoded document.

    Raises:
        SchemaError: If the text is not a valid history document.
    """
    try:
        data = json.loads(_strip_js(text))
    except json.JSONDecodeError as e:
        raise SchemaError(f"{source}: invalid JSON: {e}") from e
    return decode_data(data, source=source)


def decode_data(data: Any, *, source: str = "<data>") -> HistoryDocument:
    """Validate an already-parsed history structure.

    Raises:
        SchemaError: If the structure is not a valid history document.
    """
    if not isinstance(data, dict):
        raise SchemaError(f"{source}: expected an object at the top level, got {type(data).__name__}")
    try:
        return HistoryDocument.model_validate(data)
    except PydanticValidationError as e:
        raise SchemaError(f"{source}: {describe_errors(e)}") from e


def encode(document: HistoryDocument, *, js_variable: str | None = None, indent: int | None = 2) -> str:
    """Serialize a history document.

    Args:
        document: Document to serialize.
        js_variable: If given, emit ``<js_variable> = {...}`` for data.js.
        indent: JSON indentation level (None for compact).

    Returns:
        The serialized text, newline terminated.
    """
    body = json.dumps(document.to_wire(), indent=indent, ensure_ascii=False)
    if js_variable:
        return f"{js_variable} = {body}\n"
    return f"{body}\n"


class Exporter:
    """Exports the history in the renderer's schema and imports it back.

    The read path accepts files written by older versions; unknown fields
    are carried through to the write path unchanged.

    Attributes:
        js_variable: Variable assigned when exporting to a ``.js`` target.
        indent: JSON indentation level.

    Example:
        >>> exporter = Exporter()
        >>> exporter.export_to(store.load(), "site/dev/bench/data.js")
        >>> document = exporter.import_from("site/dev/bench/data.js")
    """

    def __init__(self, js_variable: str = DEFAULT_JS_VARIABLE, indent: int | None = 2) -> None:
        """Initialize Exporter.

        Args:
            js_variable: Variable assigned in data.js output.
            indent: JSON indentation level. Defaults to 2.
        """
        self.js_variable = js_variable
        self.indent = indent

    def export_document(self, document: HistoryDocument) -> dict[str, Any]:
        """Produce the external structure of a document."""
        return document.to_wire()

    def import_document(self, data: dict[str, Any] | str) -> HistoryDocument:
        """Read a structure produced by this or an older version.

        Args:
            data: Parsed structure or serialized text.

        Raises:
            SchemaError: If the data is not a valid history document.
        """
        if isinstance(data, str):
            return decode(data)
        return decode_data(data)

    def render(self, document: HistoryDocument, *, as_js: bool = False) -> str:
        """Serialize a document as JSON or data.js text."""
        return encode(document, js_variable=self.js_variable if as_js else None, indent=self.indent)

    def export_to(self, document: HistoryDocument, path: Path | str, *, as_js: bool | None = None) -> Path:
        """Write a document to a file atomically.

        Args:
            document: Document to write.
            path: Target file.
            as_js: Force data.js (True) or JSON (False). Defaults to the
                file suffix.

        Returns:
            The written path.
        """
        path = Path(path)
        if as_js is None:
            as_js = path.suffix == ".js"
        atomic_write_text(path, self.render(document, as_js=as_js))
        logger.info(f"Exported {document.run_count()} runs in {len(document.groups)} groups to {path}")
        return path

    def import_from(self, path: Path | str) -> HistoryDocument:
        """Read a document from a JSON or data.js file.

        Raises:
            SchemaError: If the file content is malformed.
            OSError: If the file cannot be read.
        """
        path = Path(path)
        return decode(path.read_text(encoding="utf-8"), source=str(path))
