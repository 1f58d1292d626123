from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator, Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError, StoreError
from .logging_utils import get_json_logger
from .models import Meta, Strategy, StrategyFields, dump_collection, load_collection, utcnow
from .persistence.base import ByteStore
from .undo import UndoBuffer
from .validation import ensure_valid, validate_fields


def new_strategy_id() -> str:
    return str(uuid.uuid4())


class StrategyRepository:
    """Authoritative, ordered collection of strategies.

    Every mutation validates first, swaps in new immutable objects and then
    writes the whole collection to the store. A failed write keeps the
    in-memory change and sets `dirty` so callers can warn that it may not
    survive a restart.
    """

    def __init__(
        self,
        store: ByteStore,
        *,
        undo: UndoBuffer | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_strategy_id,
    ) -> None:
        self.store = store
        self.undo_buffer = undo or UndoBuffer()
        self.dirty = False
        self._clock = clock
        self._id_factory = id_factory
        self._items: list[Strategy] = []
        self._logger = get_json_logger(
            "repository", static_fields={"correlation_id": uuid.uuid4().hex}
        )

    # --- reads ---

    def list(self) -> list[Strategy]:
        return list(self._items)

    def find_by_id(self, strategy_id: str) -> Strategy | None:
        for s in self._items:
            if s.id == strategy_id:
                return s
        return None

    def index_of(self, strategy_id: str) -> int:
        for i, s in enumerate(self._items):
            if s.id == strategy_id:
                return i
        return -1

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, strategy_id: object) -> bool:
        return isinstance(strategy_id, str) and self.index_of(strategy_id) >= 0

    def __iter__(self) -> Iterator[Strategy]:
        return iter(self.list())

    # --- mutations ---

    def create(self, fields: StrategyFields | Mapping[str, Any]) -> Strategy:
        valid = ensure_valid(fields)
        strategy_id = self._id_factory()
        while strategy_id in self:
            strategy_id = self._id_factory()
        now = self._clock()
        strategy = Strategy.model_validate(
            {
                **valid.model_dump(),
                "id": strategy_id,
                "meta": Meta(created_at=now, updated_at=now, version=1),
            }
        )
        self._items.append(strategy)
        self._logger.info("create", extra={"op": "create", "strategy_id": strategy_id})
        self.persist()
        return strategy

    def update(self, strategy_id: str, fields: StrategyFields | Mapping[str, Any]) -> Strategy:
        index = self.index_of(strategy_id)
        if index < 0:
            raise NotFoundError(strategy_id)
        valid = ensure_valid(fields)
        previous = self._items[index]
        updated_at = self._clock()
        if updated_at <= previous.meta.updated_at:
            updated_at = previous.meta.updated_at + timedelta(microseconds=1)
        strategy = Strategy.model_validate(
            {
                **valid.model_dump(),
                "id": previous.id,
                "meta": Meta(
                    created_at=previous.meta.created_at,
                    updated_at=updated_at,
                    version=previous.meta.version + 1,
                ),
            }
        )
        self._items[index] = strategy
        self._logger.info(
            "update",
            extra={"op": "update", "strategy_id": strategy_id, "version": strategy.meta.version},
        )
        self.persist()
        return strategy

    def delete(self, strategy_id: str) -> Strategy:
        index = self.index_of(strategy_id)
        if index < 0:
            raise NotFoundError(strategy_id)
        removed = self._items.pop(index)
        self.undo_buffer.record(removed, index)
        self._logger.info("delete", extra={"op": "delete", "strategy_id": strategy_id, "index": index})
        self.persist()
        return removed

    def undo(self) -> Strategy | None:
        """Reinsert the last deleted strategy if its undo window is still open.

        The recorded index is clamped to the current length, so a collection
        that shrank in the meantime gets the strategy appended at the end.
        Returns None when there is nothing to undo.
        """
        entry = self.undo_buffer.take()
        if entry is None:
            self._logger.debug("undo_noop", extra={"op": "undo"})
            return None
        strategy = entry.strategy
        if strategy.id in self:
            # Ids stay unique; a record with this id came back some other way.
            self._logger.warning("undo_conflict", extra={"op": "undo", "strategy_id": strategy.id})
            return None
        index = min(entry.index, len(self._items))
        self._items.insert(index, strategy)
        self._logger.info("undo", extra={"op": "undo", "strategy_id": strategy.id, "index": index})
        self.persist()
        return strategy

    # --- persistence ---

    def persist(self, *, strict: bool = False) -> bool:
        ok = self.store.save(dump_collection(self._items))
        self.dirty = not ok
        if not ok:
            self._logger.warning("persist_failed", extra={"op": "persist", "strategies": len(self._items)})
            if strict:
                raise StoreError("could not save strategy collection")
        return ok

    def restore(self) -> int:
        """Replace the collection with what the store holds.

        Missing or malformed data yields an empty collection; nothing is raised.
        """
        data = self.store.load()
        if not data:
            self._items = []
            self.dirty = False
            self._logger.info("restore", extra={"op": "restore", "strategies": 0})
            return 0
        try:
            items = load_collection(data)
            for s in items:
                ok, reason = validate_fields(s)
                if not ok:
                    raise ValueError(f"invalid stored strategy {s.id}: {reason}")
        except (PydanticValidationError, ValueError) as exc:
            self._logger.warning(
                "restore_malformed", extra={"op": "restore", "error": str(exc).splitlines()[0]}
            )
            items = []
        self._items = items
        self.dirty = False
        self._logger.info("restore", extra={"op": "restore", "strategies": len(items)})
        return len(items)
