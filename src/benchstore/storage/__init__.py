"""Storage backends for the benchmark history.

Example:
    >>> from benchstore.storage import JSONHistoryStore
    >>> store = JSONHistoryStore.open("dev/bench/data.js")
    >>> document = store.load()
"""

from __future__ import annotations

from benchstore.storage.base import StorageProtocol
from benchstore.storage.codec import DEFAULT_JS_VARIABLE, Exporter, decode, encode
from benchstore.storage.json_store import JSONHistoryStore

__all__ = [
    "DEFAULT_JS_VARIABLE",
    "Exporter",
    "JSONHistoryStore",
    "StorageProtocol",
    "decode",
    "encode",
]
