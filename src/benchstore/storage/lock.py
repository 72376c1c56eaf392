"""Cross-process write lock for a history file."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from filelock import FileLock, Timeout

from benchstore.core.exceptions import LockTimeoutError, StoreIOError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def lock_path_for(path: Path | str) -> Path:
    """Lock file guarding a store: ``<store>.lock`` next to it."""
    path = Path(path)
    return path.with_name(f"{path.name}.lock")


@contextmanager
def store_lock(path: Path | str, timeout: float, poll_interval: float = 0.05) -> Iterator[None]:
    """Hold the exclusive lock of a store.

    Args:
        path: Path of the store file (not of the lock file).
        timeout: Maximum wait in seconds.
        poll_interval: Delay between acquisition attempts.

    Raises:
        LockTimeoutError: If the lock is not acquired within ``timeout``.
        StoreIOError: If the lock file cannot be created.
    """
    lock_file = lock_path_for(path)
    try:
        lock_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StoreIOError(f"Cannot create directory for {lock_file}: {e}") from e

    lock = FileLock(str(lock_file), timeout=timeout)
    try:
        lock.acquire(poll_interval=poll_interval)
    except Timeout as e:
        raise LockTimeoutError(f"Timed out after {timeout}s waiting for {lock_file}") from e
    except OSError as e:
        raise StoreIOError(f"Cannot lock {lock_file}: {e}") from e

    logger.debug(f"Acquired {lock_file}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Released {lock_file}")
