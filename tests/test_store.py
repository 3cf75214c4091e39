"""
Variable store tests - persistence, ordering and optimistic revision checks.
"""

import pytest

from curator.core.db import health_check
from curator.core.errors import Conflict, NotFound
from curator.core.schema import CategorySet, Option
from curator.core.store import VariableStore


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "taxonomy.db")


@pytest.fixture
def store(db_path):
    """Empty store on a temporary database."""
    return VariableStore(db_path, seed=False)


def genre(option_id, label):
    return Option(id=option_id, category="genres", label=label)


class TestReadsAndWrites:

    def test_new_store_is_empty_at_revision_zero(self, store, db_path):
        assert health_check(db_path) is True
        assert store.revision() == 0
        assert store.list("genres") == []

    def test_put_then_get(self, store):
        revision = store.put(genre("rock", "Rock"))

        assert revision == 1
        assert store.get("genres", "rock") == genre("rock", "Rock")

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.get("genres", "missing")

    def test_unknown_category_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.list("instruments")

    def test_list_keeps_insertion_order(self, store):
        for option_id, label in [("rock", "Rock"), ("pop", "Pop"), ("jazz", "Jazz")]:
            store.put(genre(option_id, label))

        assert [o.id for o in store.list("genres")] == ["rock", "pop", "jazz"]

    def test_overwrite_keeps_position(self, store):
        store.put(genre("rock", "Rock"))
        store.put(genre("pop", "Pop"))
        store.put(genre("rock", "Rock & Roll"))

        options = store.list("genres")
        assert [o.id for o in options] == ["rock", "pop"]
        assert options[0].label == "Rock & Roll"

    def test_extra_fields_round_trip(self, store):
        tempo = Option(id="slow", category="tempos", label="Slow", extra={"bpmRange": "60-80 BPM"})
        store.put(tempo)

        assert store.get("tempos", "slow").extra == {"bpmRange": "60-80 BPM"}

    def test_delete(self, store):
        store.put(genre("rock", "Rock"))
        revision = store.delete("genres", "rock")

        assert revision == 2
        with pytest.raises(NotFound):
            store.get("genres", "rock")

    def test_delete_missing_leaves_revision_unchanged(self, store):
        store.put(genre("rock", "Rock"))

        with pytest.raises(NotFound):
            store.delete("genres", "missing")
        assert store.revision() == 1

    def test_list_children_filters_by_parent(self, store):
        store.put(genre("pop", "Pop"))
        store.put(genre("rock", "Rock"))
        store.put(Option(id="indie_pop", category="subgenres", label="Indie Pop", parent_id="pop"))
        store.put(Option(id="hard_rock", category="subgenres", label="Hard Rock", parent_id="rock"))

        assert [o.id for o in store.list_children("pop")] == ["indie_pop"]


class TestRevisions:

    def test_every_mutation_advances_revision_by_one(self, store):
        store.put(genre("rock", "Rock"))
        store.put(genre("pop", "Pop"))
        store.delete("genres", "pop")

        assert store.revision() == 3

    def test_batch_is_a_single_revision(self, store):
        store.apply(puts=[genre("rock", "Rock"), genre("pop", "Pop")])

        assert store.revision() == 1
        assert len(store.list("genres")) == 2

    def test_failed_batch_writes_nothing(self, store):
        with pytest.raises(NotFound):
            store.apply(puts=[genre("rock", "Rock")], deletes=[("genres", "missing")])

        assert store.revision() == 0
        assert store.list("genres") == []

    def test_stale_revision_raises_conflict(self, store):
        read_at = store.revision()
        store.put(genre("rock", "Rock"), expected_revision=read_at)

        with pytest.raises(Conflict) as exc_info:
            store.put(genre("pop", "Pop"), expected_revision=read_at)

        assert exc_info.value.expected == 0
        assert exc_info.value.actual == 1
        assert [o.id for o in store.list("genres")] == ["rock"]

    def test_conflict_across_store_instances(self, db_path):
        first = VariableStore(db_path, seed=False)
        second = VariableStore(db_path, seed=False)
        read_at = first.revision()

        first.put(genre("rock", "Rock"), expected_revision=read_at)
        with pytest.raises(Conflict):
            second.put(genre("pop", "Pop"), expected_revision=read_at)


class TestSnapshotAndReplace:

    def test_snapshot_returns_set_and_revision(self, store):
        store.put(genre("rock", "Rock"))
        category_set, revision = store.snapshot()

        assert revision == 1
        assert category_set.get("genres", "rock").label == "Rock"

    def test_replace_swaps_everything_including_extras(self, store):
        store.put(genre("rock", "Rock"))
        replacement = CategorySet([genre("pop", "Pop")], extra={"generatedBy": "tests"})

        store.replace(replacement, expected_revision=1)
        category_set, revision = store.snapshot()

        assert revision == 2
        assert category_set == replacement

    def test_seeded_store_is_not_reseeded(self, db_path):
        seeded = VariableStore(db_path, seed=True)
        assert seeded.revision() == 1
        assert len(seeded.list("genres")) == 5

        reopened = VariableStore(db_path, seed=True)
        assert reopened.revision() == 1
