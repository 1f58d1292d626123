from __future__ import annotations

from stratbook.catalog.query import SelectionEngine, local_date
from stratbook.catalog.repository import StrategyRepository


def _seed(repo: StrategyRepository) -> list[str]:
    return [
        repo.create({"name": "Breakout", "tags": ["trend", "Momentum"]}).id,
        repo.create({"name": "Mean Reversion", "tags": ["range"]}).id,
        repo.create({"name": "Scalper"}).id,
    ]


def test_empty_query_returns_everything_in_order(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """An empty query keeps the whole collection in order."""
    ids = _seed(repo)
    assert [s.id for s in selection.filter("")] == ids
    assert [s.id for s in selection.filter(None)] == ids


def test_filter_is_case_insensitive_over_name_and_tags(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Filtering ignores case and looks at names and tags."""
    _seed(repo)
    assert [s.name for s in selection.filter("BREAK")] == ["Breakout"]
    assert [s.name for s in selection.filter("momentum")] == ["Breakout"]
    assert [s.name for s in selection.filter("RANGE")] == ["Mean Reversion"]


def test_tags_are_matched_as_joined_text(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Tags are searched as one comma-joined string."""
    _seed(repo)
    assert [s.name for s in selection.filter("trend, mom")] == ["Breakout"]


def test_filter_matches_updated_date(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """The formatted updated date is searchable."""
    _seed(repo)
    first = repo.list()[0]
    date_text = local_date(first.meta.updated_at, "%Y-%m-%d")
    assert len(selection.filter(date_text)) == 3


def test_filter_without_match_is_empty(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """No match gives an empty result."""
    _seed(repo)
    assert selection.filter("nothing-like-this") == []


def test_filter_does_not_mutate(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Filtering leaves the collection alone."""
    _seed(repo)
    before = repo.list()
    selection.filter("trend")
    assert repo.list() == before


def test_select_and_current(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Selecting an id makes it current."""
    ids = _seed(repo)
    s = selection.select(ids[1])
    assert s is not None and s.name == "Mean Reversion"
    assert selection.current == s

    updated = repo.update(ids[1], {"name": "MR v2"})
    assert selection.current == updated


def test_select_unknown_clears_currency(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Selecting an unknown id clears the selection."""
    ids = _seed(repo)
    selection.select(ids[0])
    assert selection.select("missing") is None
    assert selection.current is None
    assert selection.selected_id is None


def test_current_follows_delete(repo: StrategyRepository, selection: SelectionEngine) -> None:
    """Deleting the current record clears the selection."""
    ids = _seed(repo)
    selection.select(ids[2])
    repo.delete(ids[2])
    assert selection.current is None
