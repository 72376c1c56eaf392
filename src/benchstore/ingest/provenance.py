"""Commit provenance for ingested runs.

Provenance comes from a commit JSON file (a push event payload or a bare
commit object) and/or explicit values, explicit values winning.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from benchstore.core.exceptions import ValidationError
from benchstore.core.types import Provenance, describe_errors, utc_now


def load_commit_file(path: Path | str) -> dict[str, Any]:
    """Read a commit object from a JSON file.

    Accepts a push event payload (``head_commit``), an object with a
    ``commit`` key, or a bare commit object.

    Raises:
        ValidationError: If the file is not JSON or holds no commit object.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read commit file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Commit file {path} does not hold a JSON object")

    for key in ("head_commit", "commit"):
        candidate = data.get(key)
        if isinstance(candidate, dict) and "id" in candidate:
            return candidate
    if "id" in data:
        return data
    raise ValidationError(f"Commit file {path} holds no commit object with an 'id'")


def build_provenance(
    commit: dict[str, Any] | None = None,
    *,
    commit_id: str | None = None,
    message: str | None = None,
    timestamp: str | None = None,
    author_name: str | None = None,
    author_email: str | None = None,
    author_username: str | None = None,
    url: str | None = None,
    distinct: bool | None = None,
) -> Provenance:
    """Build provenance from a commit object and explicit overrides.

    The committer defaults to the author. The timestamp defaults to the
    current time when neither source provides one.

    Raises:
        ValidationError: If the result is not valid provenance.
    """
    data: dict[str, Any] = dict(commit or {})

    author = dict(data.get("author") or {})
    for key, value in (("name", author_name), ("email", author_email), ("username", author_username)):
        if value is not None:
            author[key] = value
    if author:
        data["author"] = author
        data.setdefault("committer", dict(author))

    overrides = {"id": commit_id, "message": message, "timestamp": timestamp, "url": url, "distinct": distinct}
    data.update({key: value for key, value in overrides.items() if value is not None})
    data.setdefault("timestamp", utc_now().isoformat())

    if "id" not in data:
        raise ValidationError("A commit id is required (commit file or explicit id)")
    try:
        return Provenance.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid commit provenance: {describe_errors(e)}") from e
