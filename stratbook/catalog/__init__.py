from __future__ import annotations

"""Personal catalog of trading-strategy records.

- Models and validation (pydantic)
- Repository with optimistic versioning and single-level undo
- Selection / search and plain-data views
- Persistence (JSON file, SQLite blob)
"""

from .config import CatalogConfig, load_config, open_session, open_store
from .errors import CatalogError, NotFoundError, StoreError, ValidationError
from .forms import extract_fields, form_from_strategy, split_csv, split_lines
from .models import Management, Meta, Strategy, StrategyFields
from .query import SelectionEngine
from .repository import StrategyRepository
from .undo import UndoBuffer, UndoEntry
from .validation import NAME_MAX_LEN, validate_fields
from .workbench import Outcome, StrategyWorkbench

__all__ = [
    "NAME_MAX_LEN",
    "CatalogConfig",
    "CatalogError",
    "Management",
    "Meta",
    "NotFoundError",
    "Outcome",
    "SelectionEngine",
    "StoreError",
    "Strategy",
    "StrategyFields",
    "StrategyRepository",
    "StrategyWorkbench",
    "UndoBuffer",
    "UndoEntry",
    "ValidationError",
    "extract_fields",
    "form_from_strategy",
    "load_config",
    "open_session",
    "open_store",
    "split_csv",
    "split_lines",
    "validate_fields",
]
