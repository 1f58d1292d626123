from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from .logging_utils import get_json_logger
from .models import Strategy

DEFAULT_WINDOW_MS = 6000


@dataclass(frozen=True)
class UndoEntry:
    strategy: Strategy
    index: int
    recorded_at: float


class UndoBuffer:
    """Single-slot holder for the most recently deleted strategy.

    An entry stays undoable for `window_ms` of clock time after `record`.
    Expiry is checked against `clock` on every access, so the buffer needs no
    background thread. When an asyncio loop is given, a `call_later` timer
    additionally clears the entry from the loop once the window passes.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        *,
        clock: Callable[[], float] = time.monotonic,
        loop: asyncio.AbstractEventLoop | None = None,
        on_expire: Callable[[UndoEntry], None] | None = None,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.window_ms = window_ms
        self._clock = clock
        self._loop = loop
        self._on_expire = on_expire
        self._entry: UndoEntry | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._logger = get_json_logger("undo", static_fields={"window_ms": window_ms})

    def record(self, strategy: Strategy, index: int) -> UndoEntry:
        """Buffer a deleted strategy, replacing whatever was pending."""
        self.cancel()
        if self._entry is not None:
            self._logger.info("undo_discarded", extra={"strategy_id": self._entry.strategy.id})
        self._entry = UndoEntry(strategy.model_copy(deep=True), index, self._clock())
        if self._loop is not None:
            self._timer = self._loop.call_later(self.window_ms / 1000.0, self._on_timer)
        return self._entry

    def peek(self) -> UndoEntry | None:
        self._expire_if_due()
        return self._entry

    @property
    def pending(self) -> bool:
        return self.peek() is not None

    def remaining_ms(self) -> int:
        entry = self.peek()
        if entry is None:
            return 0
        elapsed_ms = (self._clock() - entry.recorded_at) * 1000.0
        return max(0, round(self.window_ms - elapsed_ms))

    def take(self) -> UndoEntry | None:
        """Pop the pending entry if it is still inside its window."""
        entry = self.peek()
        if entry is None:
            return None
        self._entry = None
        self.cancel()
        return entry

    def cancel(self) -> None:
        """Cancel the expiry timer; safe to call repeatedly."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire_if_due(self) -> None:
        entry = self._entry
        if entry is None:
            return
        if (self._clock() - entry.recorded_at) * 1000.0 >= self.window_ms:
            self._expire()

    def _on_timer(self) -> None:
        self._timer = None
        if self._entry is not None:
            self._expire()

    def _expire(self) -> None:
        entry = self._entry
        self._entry = None
        self.cancel()
        if entry is None:
            return
        self._logger.info("undo_expired", extra={"strategy_id": entry.strategy.id})
        if self._on_expire is not None:
            self._on_expire(entry)
