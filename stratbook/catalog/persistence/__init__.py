from __future__ import annotations

from .base import ByteStore, MemoryStore
from .json_file import JsonFileStore
from .sqlite import SQLiteStore

__all__ = [
    "ByteStore",
    "JsonFileStore",
    "MemoryStore",
    "SQLiteStore",
]
