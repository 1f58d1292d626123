from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import CatalogError, NotFoundError, ValidationError
from .forms import extract_fields, form_from_strategy
from .models import Strategy
from .query import SelectionEngine
from .repository import StrategyRepository
from .views import ListItem, StrategyDetail, list_item, raw_view, structured_view

PERSIST_WARNING = "Changes could not be saved and may be lost on restart."


@dataclass(frozen=True)
class Outcome:
    ok: bool
    message: str
    strategy: Strategy | None = None
    field: str | None = None
    warning: str | None = None


class StrategyWorkbench:
    """Event-level entry point for a UI: new, select, edit, save, delete, undo, search.

    Returns plain data (`Outcome`, `ListItem`, `StrategyDetail`, form dicts)
    and knows nothing about widgets.
    """

    def __init__(self, repository: StrategyRepository, selection: SelectionEngine | None = None) -> None:
        self.repository = repository
        self.selection = selection or SelectionEngine(repository)
        self.editing_new = False

    def _warning(self) -> str | None:
        return PERSIST_WARNING if self.repository.dirty else None

    # --- list / search ---

    def items(self, query: str | None = None) -> list[ListItem]:
        selected = self.selection.selected_id
        return [
            list_item(s, selected=s.id == selected, date_format=self.selection.date_format)
            for s in self.selection.filter(query)
        ]

    def search(self, query: str) -> list[ListItem]:
        return self.items(query)

    # --- selection / editing ---

    def new(self) -> dict[str, Any]:
        """Start a blank form; the next save creates a strategy."""
        self.editing_new = True
        return form_from_strategy(extract_fields({}))

    def select(self, strategy_id: str) -> Strategy | None:
        self.editing_new = False
        return self.selection.select(strategy_id)

    def edit(self) -> dict[str, Any] | None:
        current = self.selection.current
        if current is None:
            return None
        self.editing_new = False
        return form_from_strategy(current)

    def save(self, form: Mapping[str, Any]) -> Outcome:
        current = None if self.editing_new else self.selection.current
        try:
            fields = extract_fields(form)
            if current is None:
                strategy = self.repository.create(fields)
            else:
                strategy = self.repository.update(current.id, fields)
        except ValidationError as exc:
            return Outcome(False, exc.reason, field=exc.field)
        except NotFoundError as exc:
            self.selection.clear()
            return Outcome(False, str(exc))
        self.editing_new = False
        self.selection.select(strategy.id)
        return Outcome(True, "Strategy saved successfully!", strategy, warning=self._warning())

    def delete(self, strategy_id: str | None = None) -> Outcome:
        target = strategy_id or self.selection.selected_id
        if not target:
            return Outcome(False, "Please select a strategy to delete.")
        try:
            removed = self.repository.delete(target)
        except CatalogError as exc:
            return Outcome(False, str(exc))
        if self.selection.selected_id == removed.id:
            self.selection.clear()
        return Outcome(True, f'Deleted "{removed.name}"', removed, warning=self._warning())

    def undo(self) -> Outcome:
        restored = self.repository.undo()
        if restored is None:
            return Outcome(False, "Nothing to undo")
        self.selection.select(restored.id)
        return Outcome(True, f'Restored "{restored.name}"', restored, warning=self._warning())

    # --- read-only views of the current strategy ---

    def structured_view(self) -> StrategyDetail | None:
        current = self.selection.current
        return structured_view(current) if current is not None else None

    def raw_view(self) -> str | None:
        current = self.selection.current
        return raw_view(current) if current is not None else None
