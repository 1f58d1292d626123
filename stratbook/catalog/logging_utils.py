from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}

_TRUTHY = {"1", "true", "yes"}


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Extra fields passed via ``extra=`` or a ``LoggerAdapter`` are flattened
    into the payload when they are JSON friendly; paths and datetimes are
    stringified, anything else is dropped.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if isinstance(value, (str, int, float, bool)) or value is None:
                payload[key] = value
            elif isinstance(value, (Path, datetime)):
                payload[key] = str(value)
            elif isinstance(value, (list, tuple, dict)):
                try:
                    json.dumps(value)
                except (TypeError, ValueError):
                    continue
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its static fields with per-call `extra`."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_json_logger(
    name: str,
    *,
    log_path: Path | None = None,
    level: int = logging.INFO,
    static_fields: dict[str, Any] | None = None,
) -> ContextAdapter:
    """Create or fetch a JSON logger under the ``stratbook`` namespace.

    Env overrides (used only when `log_path` is None):
      - LOG_JSON_TO_FILE: when truthy ("1", "true", "yes"), log to a file.
      - LOG_FILE: path to the JSONL file (default: "user_data/logs/stratbook.jsonl").
      - LOG_LEVEL: level name, e.g. "DEBUG".

    `static_fields` are injected into every record; `CORRELATION_ID` from the
    environment is added unless a correlation id is already given.
    """
    full_name = name if name.startswith("stratbook") else f"stratbook.{name}"
    logger = logging.getLogger(full_name)

    env_level = os.getenv("LOG_LEVEL", "").strip().upper()
    if env_level and isinstance(logging.getLevelName(env_level), int):
        level = logging.getLevelName(env_level)
    logger.setLevel(level)

    if not logger.handlers:
        target = log_path
        if target is None and os.getenv("LOG_JSON_TO_FILE", "").strip().lower() in _TRUTHY:
            target = Path(os.getenv("LOG_FILE", "user_data/logs/stratbook.jsonl"))

        if target is not None:
            target.parent.mkdir(parents=True, exist_ok=True)
            handler: logging.Handler = logging.FileHandler(target, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    fields = dict(static_fields or {})
    cid = os.getenv("CORRELATION_ID", "").strip()
    if cid and "correlation_id" not in fields:
        fields["correlation_id"] = cid
    return ContextAdapter(logger, extra=fields)
