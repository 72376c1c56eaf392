"""Base protocol for history storage backends.

This module defines the StorageProtocol that the merger and the
retention operations work against.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from benchstore.history.document import HistoryDocument


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for history storage backends.

    A backend offers a point-in-time snapshot read, an atomic whole-document
    write and an exclusive cross-process lock. Every mutation must happen
    while the lock is held.

    Example:
        >>> isinstance(JSONHistoryStore("dev/bench/data.js"), StorageProtocol)
        True
    """

    def load(self) -> HistoryDocument:
        """Read the current document.

        Returns:
            The stored document, or an empty one if nothing is stored yet.

        Raises:
            StoreIOError: If the store cannot be read.
            SchemaError: If the stored data is malformed.
        """
        ...

    def write(self, document: HistoryDocument) -> None:
        """Replace the stored document atomically.

        Args:
            document: The document to persist.

        Raises:
            StoreIOError: If the store cannot be written.
        """
        ...

    def lock(self) -> AbstractContextManager[None]:
        """Hold the store's exclusive write lock for the duration of a block.

        Raises:
            LockTimeoutError: If the lock is not acquired in time.
        """
        ...
