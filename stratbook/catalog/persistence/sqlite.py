from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..logging_utils import get_json_logger

DEFAULT_KEY = "trading_strategies_v1"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    updated_utc TEXT
)
"""


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_path)


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(SCHEMA)
    conn.commit()


class SQLiteStore:
    """Key/value store holding the whole collection as one blob row.

    A connection is opened per call; the catalog reads once at start-up and
    writes once per mutation.
    """

    def __init__(self, db_path: Path | str, key: str = DEFAULT_KEY) -> None:
        self.db_path = Path(db_path)
        self.key = key

    def load(self) -> bytes | None:
        logger = get_json_logger("store", static_fields={"op": "load", "db_path": str(self.db_path)})
        if not self.db_path.exists():
            return None
        try:
            conn = connect(self.db_path)
            try:
                ensure_schema(conn)
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (self.key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.warning("store_read_failed", extra={"error": str(exc), "key": self.key})
            return None
        if row is None:
            return None
        value = row[0]
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    def save(self, data: bytes) -> bool:
        logger = get_json_logger("store", static_fields={"op": "save", "db_path": str(self.db_path)})
        try:
            conn = connect(self.db_path)
            try:
                ensure_schema(conn)
                conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_utc) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_utc=excluded.updated_utc
                    """,
                    (self.key, sqlite3.Binary(data), datetime.now(tz=timezone.utc).isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            logger.warning("store_write_failed", extra={"error": str(exc), "key": self.key})
            return False
        return True
