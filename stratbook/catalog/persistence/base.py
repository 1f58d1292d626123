from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ByteStore(Protocol):
    """Whole-collection blob store.

    `load` returns None when nothing has been saved yet or the read failed;
    `save` reports success instead of raising.
    """

    def load(self) -> bytes | None: ...

    def save(self, data: bytes) -> bool: ...


class MemoryStore:
    """In-process store, handy for tests and throwaway sessions."""

    def __init__(self, data: bytes | None = None, *, fail_saves: bool = False) -> None:
        self.data = data
        self.fail_saves = fail_saves
        self.saves = 0

    def load(self) -> bytes | None:
        return self.data

    def save(self, data: bytes) -> bool:
        if self.fail_saves:
            return False
        self.data = bytes(data)
        self.saves += 1
        return True
