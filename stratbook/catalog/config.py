from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

from .logging_utils import get_json_logger
from .persistence import ByteStore, JsonFileStore, MemoryStore, SQLiteStore
from .persistence.sqlite import DEFAULT_KEY
from .query import DEFAULT_DATE_FORMAT, SelectionEngine
from .repository import StrategyRepository
from .undo import DEFAULT_WINDOW_MS, UndoBuffer
from .workbench import StrategyWorkbench

STORE_KINDS = ("json", "sqlite", "memory")


@dataclass
class CatalogConfig:
    """Runtime settings, from the environment or given explicitly."""

    store: str = "json"
    store_path: Path | None = None
    store_key: str = DEFAULT_KEY
    undo_window_ms: int = DEFAULT_WINDOW_MS
    date_format: str = DEFAULT_DATE_FORMAT

    def resolved_store_path(self) -> Path:
        if self.store_path is not None:
            return self.store_path
        suffix = "sqlite" if self.store == "sqlite" else "json"
        return Path("user_data") / "catalog" / f"strategies.{suffix}"


def load_config() -> CatalogConfig:
    logger = get_json_logger("config", static_fields={"op": "load_config"})

    store = os.getenv("STRATBOOK_STORE", "json").strip().lower()
    if store not in STORE_KINDS:
        logger.warning("unknown_store_kind", extra={"value": store})
        store = "json"
    logger.debug("loaded_store", extra={"value": store})

    raw_path = os.getenv("STRATBOOK_STORE_PATH", "").strip()
    store_path = Path(raw_path) if raw_path else None
    logger.debug("loaded_store_path", extra={"value": raw_path or None})

    key = os.getenv("STRATBOOK_STORE_KEY", "").strip() or DEFAULT_KEY
    logger.debug("loaded_store_key", extra={"value": key})

    raw_window = os.getenv("STRATBOOK_UNDO_WINDOW_MS", str(DEFAULT_WINDOW_MS))
    try:
        window = int(raw_window)
    except ValueError:
        window = DEFAULT_WINDOW_MS
    if window <= 0:
        window = DEFAULT_WINDOW_MS
    logger.debug("loaded_undo_window_ms", extra={"value": window})

    date_format = os.getenv("STRATBOOK_DATE_FORMAT", "") or DEFAULT_DATE_FORMAT
    logger.debug("loaded_date_format", extra={"value": date_format})

    return CatalogConfig(
        store=store,
        store_path=store_path,
        store_key=key,
        undo_window_ms=window,
        date_format=date_format,
    )


def open_store(cfg: CatalogConfig) -> ByteStore:
    if cfg.store == "memory":
        return MemoryStore()
    if cfg.store == "sqlite":
        return SQLiteStore(cfg.resolved_store_path(), key=cfg.store_key)
    return JsonFileStore(cfg.resolved_store_path())


def open_session(
    cfg: CatalogConfig | None = None,
    *,
    store: ByteStore | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> StrategyWorkbench:
    """Wire store, repository, undo buffer and selection into a workbench.

    The repository is restored from the store before it is returned.
    """
    cfg = cfg or load_config()
    repository = StrategyRepository(
        store or open_store(cfg),
        undo=UndoBuffer(cfg.undo_window_ms, loop=loop),
    )
    repository.restore()
    return StrategyWorkbench(repository, SelectionEngine(repository, date_format=cfg.date_format))
