from __future__ import annotations


class CatalogError(Exception):
    """Base class for recoverable strategy catalog errors."""


class ValidationError(CatalogError):
    """Candidate fields violate a strategy invariant. Nothing was changed."""

    def __init__(self, reason: str, *, field: str | None = "name") -> None:
        super().__init__(reason)
        self.reason = reason
        self.field = field


class NotFoundError(CatalogError):
    """An operation referenced an id that is not in the collection."""

    def __init__(self, strategy_id: str) -> None:
        super().__init__(f"strategy not found: {strategy_id}")
        self.strategy_id = strategy_id


class StoreError(CatalogError):
    """The persistent store could not be read or written."""
