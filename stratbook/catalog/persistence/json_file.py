from __future__ import annotations

import os
import tempfile
from pathlib import Path

from ..logging_utils import get_json_logger


class JsonFileStore:
    """Keep the serialized collection in a single JSON file.

    Writes go to a temporary sibling file that replaces the target, so a
    crash mid-write never leaves a truncated collection behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> bytes | None:
        logger = get_json_logger("store", static_fields={"op": "load", "path": str(self.path)})
        if not self.path.exists():
            logger.debug("store_empty")
            return None
        try:
            return self.path.read_bytes()
        except OSError as exc:
            logger.warning("store_read_failed", extra={"error": str(exc)})
            return None

    def save(self, data: bytes) -> bool:
        logger = get_json_logger("store", static_fields={"op": "save", "path": str(self.path)})
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.warning("store_write_failed", extra={"error": str(exc)})
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        logger.debug("saved", extra={"bytes": len(data)})
        return True
