from __future__ import annotations

from datetime import datetime

from .models import Strategy
from .repository import StrategyRepository

DEFAULT_DATE_FORMAT = "%x"


def local_date(ts: datetime, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Render a timestamp as a date in the local timezone."""
    return ts.astimezone().strftime(date_format)


def tags_text(strategy: Strategy) -> str:
    return ", ".join(strategy.tags)


class SelectionEngine:
    """Tracks the current strategy and derives filtered lists.

    Only the selected id is kept; `current` looks it up again on every access
    so an update or delete is reflected immediately. Never mutates the
    repository.
    """

    def __init__(self, repository: StrategyRepository, *, date_format: str | None = None) -> None:
        self.repository = repository
        self.date_format = date_format or DEFAULT_DATE_FORMAT
        self.selected_id: str | None = None

    def select(self, strategy_id: str | None) -> Strategy | None:
        strategy = self.repository.find_by_id(strategy_id) if strategy_id else None
        self.selected_id = strategy.id if strategy is not None else None
        return strategy

    def clear(self) -> None:
        self.selected_id = None

    @property
    def current(self) -> Strategy | None:
        if self.selected_id is None:
            return None
        strategy = self.repository.find_by_id(self.selected_id)
        if strategy is None:
            self.selected_id = None
        return strategy

    def searchable_text(self, strategy: Strategy) -> tuple[str, str, str]:
        """Name, joined tags and updated date, lower-cased, as shown in the list."""
        return (
            strategy.name.lower(),
            tags_text(strategy).lower(),
            local_date(strategy.meta.updated_at, self.date_format).lower(),
        )

    def filter(self, query: str | None) -> list[Strategy]:
        term = (query or "").lower()
        items = self.repository.list()
        if not term:
            return items
        return [s for s in items if any(term in text for text in self.searchable_text(s))]
