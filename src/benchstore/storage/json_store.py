"""JSON file storage for the benchmark history.

This module provides the file-backed history store. The file is the sole
source of truth; every operation reloads it, and every mutation happens
under the store's lock and is written with an atomic rename.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from benchstore.core.exceptions import StoreIOError
from benchstore.history.document import HistoryDocument
from benchstore.storage.atomic import atomic_write_text
from benchstore.storage.codec import DEFAULT_JS_VARIABLE, decode, encode
from benchstore.storage.lock import store_lock

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from datetime import timedelta

    from benchstore.core.types import RunRecord
    from benchstore.history.merger import AppendResult
    from benchstore.history.retention import PruneReport

logger = logging.getLogger(__name__)


class JSONHistoryStore:
    """File-backed history store.

    ``.js`` paths are written as ``window.BENCHMARK_DATA = {...}`` so the
    chart page can load them directly; any other path is plain JSON.

    Example:
        >>> store = JSONHistoryStore.open("dev/bench/data.js", repo_url="https://github.com/org/repo")
        >>> result = store.append(run, group="Benchmark")
        >>> store.commit_exists(run.commit_id)
        True
    """

    def __init__(
        self,
        path: str | Path = "dev/bench/data.js",
        *,
        repo_url: str | None = None,
        lock_timeout: float = 30.0,
        js_variable: str = DEFAULT_JS_VARIABLE,
    ) -> None:
        """Initialize the store.

        Args:
            path: Path to the history file.
            repo_url: Repository URL written into a new store.
            lock_timeout: Maximum wait for the write lock in seconds.
            js_variable: Variable assigned when the path ends in ``.js``.
        """
        self._path = Path(path)
        self._repo_url = repo_url
        self._lock_timeout = lock_timeout
        self._js_variable = js_variable if self._path.suffix == ".js" else None

    @classmethod
    def open(
        cls,
        location: str | Path,
        *,
        repo_url: str | None = None,
        lock_timeout: float = 30.0,
        js_variable: str = DEFAULT_JS_VARIABLE,
    ) -> JSONHistoryStore:
        """Open a store, tolerating a location that does not exist yet.

        Args:
            location: Path to the history file.
            repo_url: Repository URL written into a new store.
            lock_timeout: Maximum wait for the write lock in seconds.
            js_variable: Variable assigned when the path ends in ``.js``.

        Returns:
            The store.

        Raises:
            StoreIOError: If the location exists but cannot be read.
        """
        store = cls(location, repo_url=repo_url, lock_timeout=lock_timeout, js_variable=js_variable)
        path = store.path
        if path.exists():
            if not path.is_file():
                raise StoreIOError(f"History location is not a file: {path}")
            try:
                with path.open("rb"):
                    pass
            except OSError as e:
                raise StoreIOError(f"Cannot read {path}: {e}") from e
        else:
            logger.info(f"No history at {path}, a new store will be created on first append")
        return store

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout

    def load(self) -> HistoryDocument:
        """Read a point-in-time snapshot of the store.

        Returns:
            The stored document, or an empty one if the file does not exist.

        Raises:
            StoreIOError: If the file cannot be read.
            SchemaError: If the file is malformed.
        """
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return HistoryDocument.empty(self._repo_url or "")
        except OSError as e:
            raise StoreIOError(f"Cannot read {self._path}: {e}") from e

        if not content.strip():
            logger.warning(f"History file {self._path} is empty, treating it as a new store")
            return HistoryDocument.empty(self._repo_url or "")

        return decode(content, source=str(self._path))

    def write(self, document: HistoryDocument) -> None:
        """Replace the stored document atomically.

        Raises:
            StoreIOError: If the file cannot be written.
        """
        if not document.repo_url and self._repo_url:
            document = document.model_copy(update={"repo_url": self._repo_url})
        content = encode(document, js_variable=self._js_variable)
        try:
            atomic_write_text(self._path, content)
        except OSError as e:
            raise StoreIOError(f"Cannot write {self._path}: {e}") from e
        logger.debug(f"Wrote {document.run_count()} runs to {self._path}")

    def lock(self) -> AbstractContextManager[None]:
        """Hold the store's exclusive write lock."""
        return store_lock(self._path, timeout=self._lock_timeout)

    def commit_exists(self, commit_id: str, group: str | None = None) -> bool:
        """Check whether a run for the commit is stored.

        Args:
            commit_id: Commit object name.
            group: Restrict the check to one group (None for all).
        """
        return self.load().commit_exists(commit_id, group=group)

    def append(self, run: RunRecord, group: str) -> AppendResult:
        """Merge a run into the store under the write lock.

        See Merger.append for the idempotency and conflict rules.
        """
        from benchstore.history.merger import Merger

        return Merger(self).append(run, group)

    def prune(
        self,
        *,
        max_items: int | None = None,
        older_than: timedelta | None = None,
        group: str | None = None,
        dry_run: bool = False,
    ) -> PruneReport:
        """Remove old runs. See retention.prune."""
        from benchstore.history.retention import prune

        return prune(self, max_items=max_items, older_than=older_than, group=group, dry_run=dry_run)
