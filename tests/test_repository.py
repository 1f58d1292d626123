from __future__ import annotations

import pytest

from stratbook.catalog.errors import NotFoundError, StoreError, ValidationError
from stratbook.catalog.models import load_collection
from stratbook.catalog.persistence import MemoryStore
from stratbook.catalog.repository import StrategyRepository


def test_create_sets_meta_and_persists(repo: StrategyRepository, store: MemoryStore) -> None:
    """Create stamps meta and saves the collection."""
    s = repo.create({"name": "Breakout", "tags": ["trend", "breakout"]})

    found = repo.find_by_id(s.id)
    assert found == s
    assert found.meta.version == 1
    assert found.meta.created_at == found.meta.updated_at
    assert store.saves == 1
    assert [x.id for x in load_collection(store.data)] == [s.id]


def test_create_appends_in_order(repo: StrategyRepository) -> None:
    """Created records keep insertion order with unique ids."""
    ids = [repo.create({"name": n}).id for n in ("A", "B", "C")]
    assert [s.id for s in repo.list()] == ids
    assert len(set(ids)) == 3


@pytest.mark.parametrize("name", ["", "  ", "y" * 81])
def test_invalid_create_leaves_collection_unchanged(
    repo: StrategyRepository, store: MemoryStore, name: str
) -> None:
    """A rejected create neither adds nor saves."""
    repo.create({"name": "Keep"})
    before = repo.list()

    with pytest.raises(ValidationError):
        repo.create({"name": name})

    assert repo.list() == before
    assert store.saves == 1


def test_update_bumps_version_and_timestamp(repo: StrategyRepository, clock) -> None:
    """Update replaces fields, bumps version and moves updatedAt."""
    s = repo.create({"name": "Breakout", "tags": ["trend"], "description": "first"})
    clock.advance(minutes=5)

    u = repo.update(s.id, {"name": "Breakout v2"})

    assert u.id == s.id
    assert u.meta.version == 2
    assert u.meta.created_at == s.meta.created_at
    assert u.meta.updated_at > s.meta.updated_at
    # complete replacement, not a patch
    assert u.tags == ()
    assert u.description == ""
    assert repo.find_by_id(s.id) == u
    assert s.name == "Breakout"


def test_update_keeps_position(repo: StrategyRepository) -> None:
    """An updated record stays at its index."""
    a, b, c = (repo.create({"name": n}) for n in ("A", "B", "C"))
    repo.update(b.id, {"name": "B2"})
    assert [s.name for s in repo.list()] == ["A", "B2", "C"]


def test_update_changes_timestamp_on_frozen_clock(repo: StrategyRepository) -> None:
    """updatedAt moves even if the clock has not."""
    s = repo.create({"name": "A"})
    u = repo.update(s.id, {"name": "A"})
    assert u.meta.updated_at > s.meta.updated_at


@pytest.mark.parametrize("name", ["", "  ", "y" * 81])
def test_update_errors_do_not_mutate(repo: StrategyRepository, store: MemoryStore, name: str) -> None:
    """A rejected update leaves the record and the store untouched."""
    s = repo.create({"name": "A"})

    with pytest.raises(NotFoundError):
        repo.update("missing", {"name": "B"})
    with pytest.raises(ValidationError):
        repo.update(s.id, {"name": name})

    assert repo.list() == [s]
    assert store.saves == 1


def test_delete_and_not_found(repo: StrategyRepository) -> None:
    """Delete removes once, then raises NotFoundError."""
    s = repo.create({"name": "A"})
    assert repo.delete(s.id) == s
    assert repo.find_by_id(s.id) is None
    with pytest.raises(NotFoundError):
        repo.delete(s.id)


def test_list_is_a_snapshot(repo: StrategyRepository) -> None:
    """Changing the returned list does not change the repository."""
    repo.create({"name": "A"})
    snapshot = repo.list()
    snapshot.clear()
    assert len(repo) == 1


def test_persist_failure_keeps_mutation_and_flags_dirty(clock) -> None:
    """A failed save keeps the change and sets dirty."""
    store = MemoryStore(fail_saves=True)
    repo = StrategyRepository(store, clock=clock)

    s = repo.create({"name": "A"})

    assert repo.find_by_id(s.id) == s
    assert repo.dirty
    with pytest.raises(StoreError):
        repo.persist(strict=True)

    store.fail_saves = False
    assert repo.persist()
    assert not repo.dirty


def test_restore_round_trip(repo: StrategyRepository, store: MemoryStore, clock) -> None:
    """A fresh repository restores what another saved."""
    repo.create(
        {
            "name": "Full",
            "tags": ["x"],
            "entry_rules": ["a", "b"],
            "management": {"trailing_stop": {"enabled": True, "multiplier": "2.5"}},
        }
    )
    repo.create({"name": "Other"})

    fresh = StrategyRepository(store, clock=clock)
    assert fresh.restore() == 2
    assert fresh.list() == repo.list()


@pytest.mark.parametrize(
    "data",
    [b"not json", b'{"a": 1}', b'[{"name": "no id"}]', b"[1, 2]"],
)
def test_restore_malformed_is_empty(data: bytes, clock) -> None:
    """Malformed data restores an empty collection."""
    repo = StrategyRepository(MemoryStore(data), clock=clock)
    assert repo.restore() == 0
    assert repo.list() == []


def test_restore_rejects_duplicate_ids(repo: StrategyRepository, store: MemoryStore, clock) -> None:
    """Duplicate ids in storage restore an empty collection."""
    s = repo.create({"name": "A"})
    store.data = b"[" + s.model_dump_json(by_alias=True).encode() + b"," + s.model_dump_json(by_alias=True).encode() + b"]"
    fresh = StrategyRepository(store, clock=clock)
    assert fresh.restore() == 0


@pytest.mark.parametrize("name", ["", "   ", "z" * 81])
def test_restore_rejects_records_with_invalid_names(
    repo: StrategyRepository, store: MemoryStore, clock, name: str
) -> None:
    """Stored records that would fail validation restore an empty collection."""
    repo.create({"name": "Good"})
    bad = repo.create({"name": "Bad"})
    store.data = store.data.replace(b'"name":"Bad"', b'"name":"' + name.encode() + b'"')
    assert bad.id.encode() in store.data

    fresh = StrategyRepository(store, clock=clock)
    assert fresh.restore() == 0
    assert fresh.list() == []


def test_restore_of_empty_store_clears_dirty(clock) -> None:
    """Restoring from an empty store resets the unsaved-changes flag."""
    store = MemoryStore(fail_saves=True)
    repo = StrategyRepository(store, clock=clock)
    repo.create({"name": "A"})
    assert repo.dirty

    store.data = None
    assert repo.restore() == 0
    assert not repo.dirty


def test_stored_sequences_cannot_be_changed_in_place(repo: StrategyRepository) -> None:
    """Tags and rules of a stored record are immutable."""
    s = repo.create({"name": "A", "tags": ["x"], "entry_rules": ["r"]})
    found = repo.find_by_id(s.id)

    assert isinstance(found.tags, tuple)
    with pytest.raises(AttributeError):
        found.tags.append("y")
    with pytest.raises(AttributeError):
        found.entry_rules.append("y")
    assert repo.find_by_id(s.id).tags == ("x",)


def test_restore_accepts_browser_timestamps(clock) -> None:
    """Data saved by the browser version restores."""
    data = (
        b'[{"id": "abc", "name": "Legacy", "tags": ["t"], "management": {"trailing_stop":'
        b' {"enabled": true, "multiplier": 2}, "scale_out": {"enabled": false, "percent_first": ""},'
        b' "dca": {"enabled": false}, "manual": {"enabled": false}},'
        b' "meta": {"createdAt": "2024-01-02T03:04:05.678Z", "updatedAt": "2024-01-02T03:04:05.678Z", "version": 3}}]'
    )
    repo = StrategyRepository(MemoryStore(data), clock=clock)
    assert repo.restore() == 1
    s = repo.find_by_id("abc")
    assert s.meta.version == 3
    assert s.meta.created_at.tzinfo is not None
    assert s.management.trailing_stop.multiplier == "2"
    assert s.entry_rules == ()


def test_scenario_create_update_delete_undo(repo: StrategyRepository, clock) -> None:
    """A full create, update, delete and undo cycle."""
    other = repo.create({"name": "Other"})
    s = repo.create({"name": "Breakout", "tags": ["trend", "breakout"]})
    assert s.meta.version == 1

    clock.advance(seconds=30)
    u = repo.update(s.id, {"name": "Breakout v2", "tags": ["trend"]})
    assert u.meta.version == 2
    assert u.name == "Breakout v2"
    assert u.meta.created_at == s.meta.created_at

    repo.delete(s.id)
    assert repo.find_by_id(s.id) is None

    restored = repo.undo()
    assert restored == u
    assert repo.find_by_id(s.id) == u
    assert [x.id for x in repo.list()] == [other.id, s.id]
