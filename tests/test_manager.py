"""
Variables manager tests - staged validation, cascade deletes, conflicts,
reset, import/export and error translation.
"""

import json
from unittest.mock import patch

import pytest

from curator.core.errors import Conflict, HasDependents, MalformedDocument, NotFound, ValidationFailed
from curator.core.manager import VariablesManager, slugify
from curator.core.schema import Option
from curator.core.store import VariableStore


@pytest.fixture
def manager(tmp_path):
    """Manager over an empty store."""
    return VariablesManager(VariableStore(str(tmp_path / "taxonomy.db"), seed=False))


@pytest.fixture
def seeded_manager(tmp_path):
    """Manager over a store seeded with the default variables."""
    return VariablesManager(VariableStore(str(tmp_path / "seeded.db"), seed=True))


def violation_codes(exc_info):
    return [v.code for v in exc_info.value.violations]


class TestCreate:

    def test_create_then_get(self, manager):
        result = manager.create_option("genres", "Hip Hop")

        assert result.option.id == "hip_hop"
        assert result.revision == 1
        assert manager.get_option("genres", "hip_hop") == result.option

    def test_create_then_delete_then_get_fails(self, manager):
        created = manager.create_option("moods", "Melancholic").option
        manager.delete_option("moods", created.id)

        with pytest.raises(NotFound):
            manager.get_option("moods", created.id)

    def test_case_insensitive_duplicate_label_is_rejected(self, manager):
        manager.create_option("genres", "Rock")

        with pytest.raises(ValidationFailed) as exc_info:
            manager.create_option("genres", "rock")

        assert violation_codes(exc_info) == ["DuplicateLabel"]
        assert [o.label for o in manager.list_options("genres")] == ["Rock"]

    def test_dangling_parent_is_rejected_and_store_unchanged(self, manager):
        manager.create_option("genres", "Pop")
        revision = manager.revision()

        with pytest.raises(ValidationFailed) as exc_info:
            manager.create_option("subgenres", "Trap", parent_id="hip_hop")

        assert violation_codes(exc_info) == ["DanglingParentReference"]
        assert manager.revision() == revision
        assert manager.list_options("subgenres") == []

    def test_same_subgenre_label_under_different_parents(self, manager):
        manager.create_option("genres", "Pop")
        manager.create_option("genres", "Rock")

        first = manager.create_option("subgenres", "Indie", parent_id="pop").option
        second = manager.create_option("subgenres", "Indie", parent_id="rock").option

        assert (first.id, second.id) == ("indie", "indie_2")
        assert [o.id for o in manager.list_subgenres("rock")] == ["indie_2"]

    def test_unknown_category(self, manager):
        with pytest.raises(NotFound):
            manager.create_option("instruments", "Guitar")

    def test_tempo_needs_bpm_range(self, manager):
        with pytest.raises(ValidationFailed) as exc_info:
            manager.create_option("tempos", "Slow")
        assert violation_codes(exc_info) == ["MissingAttribute"]

        result = manager.create_option("tempos", "Slow", extra={"bpmRange": "60-80 BPM"})
        assert result.option.extra == {"bpmRange": "60-80 BPM"}


class TestUpdate:

    def test_update_label(self, seeded_manager):
        result = seeded_manager.update_option("genres", "rock", {"label": "Rock & Roll"})

        assert result.option.label == "Rock & Roll"
        assert seeded_manager.get_option("genres", "rock").label == "Rock & Roll"

    def test_reparent_to_missing_genre_is_rejected(self, seeded_manager):
        with pytest.raises(ValidationFailed) as exc_info:
            seeded_manager.update_option("subgenres", "trap", {"parent_id": "jazz"})

        assert violation_codes(exc_info) == ["DanglingParentReference"]
        assert seeded_manager.get_option("subgenres", "trap").parent_id == "hip_hop"

    def test_extra_is_merged_and_none_removes(self, seeded_manager):
        seeded_manager.update_option("vocals", "instrumental", {"extra": {"icon": "piano"}})
        seeded_manager.update_option("vocals", "instrumental", {"extra": {"note": "x"}})
        result = seeded_manager.update_option("vocals", "instrumental", {"extra": {"icon": None}})

        assert result.option.extra == {"note": "x"}

    def test_id_cannot_be_patched(self, seeded_manager):
        with pytest.raises(ValueError):
            seeded_manager.update_option("genres", "rock", {"id": "metal"})

    def test_update_missing_option(self, seeded_manager):
        with pytest.raises(NotFound):
            seeded_manager.update_option("genres", "jazz", {"label": "Jazz"})


class TestDelete:

    def test_genre_with_subgenres_needs_cascade(self, seeded_manager):
        revision = seeded_manager.revision()

        with pytest.raises(HasDependents) as exc_info:
            seeded_manager.delete_option("genres", "rock")

        assert exc_info.value.dependents == ["alt_rock", "indie_rock", "hard_rock"]
        assert seeded_manager.revision() == revision

    def test_cascade_removes_parent_and_children_in_one_revision(self, seeded_manager):
        revision = seeded_manager.revision()

        result = seeded_manager.delete_option("genres", "rock", cascade=True)

        assert result.revision == revision + 1
        assert [o.id for o in result.removed] == ["rock", "alt_rock", "indie_rock", "hard_rock"]
        remaining = {o.id for o in seeded_manager.list_options("subgenres")}
        assert remaining.isdisjoint({"alt_rock", "indie_rock", "hard_rock"})
        assert len(remaining) == 12

    def test_genre_without_subgenres_deletes_directly(self, seeded_manager):
        seeded_manager.create_option("genres", "Jazz")

        result = seeded_manager.delete_option("genres", "jazz")
        assert [o.id for o in result.removed] == ["jazz"]

    def test_delete_missing(self, seeded_manager):
        with pytest.raises(NotFound):
            seeded_manager.delete_option("eras", "nineties")


class TestConcurrency:

    def test_second_writer_at_same_revision_conflicts(self, manager):
        read_at = manager.revision()

        first = manager.create_option("genres", "Jazz", expected_revision=read_at)
        with pytest.raises(Conflict):
            manager.create_option("genres", "Blues", expected_revision=read_at)

        assert first.revision == read_at + 1
        assert manager.revision() == read_at + 1
        assert [o.id for o in manager.list_options("genres")] == ["jazz"]

    def test_conflicting_delete(self, seeded_manager):
        read_at = seeded_manager.revision()
        seeded_manager.update_option("genres", "pop", {"label": "Popular"}, expected_revision=read_at)

        with pytest.raises(Conflict):
            seeded_manager.delete_option("genres", "rock", cascade=True, expected_revision=read_at)
        assert seeded_manager.get_option("genres", "rock").label == "Rock"

    def test_writer_between_stage_and_commit_conflicts(self, manager):
        store = manager.store
        real_snapshot = store.snapshot

        def snapshot_then_concurrent_write():
            staged = real_snapshot()
            store.put(Option(id="blues", category="genres", label="Blues"))
            return staged

        with patch.object(store, "snapshot", side_effect=snapshot_then_concurrent_write):
            with pytest.raises(Conflict):
                manager.create_option("genres", "Jazz")

        assert [o.id for o in manager.list_options("genres")] == ["blues"]
        assert manager.revision() == 1


class TestResetAndStats:

    def test_reset_restores_defaults(self, seeded_manager):
        seeded_manager.create_option("tempos", "Glacial", extra={"bpmRange": "< 40 BPM"})
        seeded_manager.delete_option("tempos", "fast")

        seeded_manager.reset_category("tempos")

        ids = [o.id for o in seeded_manager.list_options("tempos")]
        assert ids == ["very_slow", "slow", "medium_slow", "medium", "medium_fast", "fast", "very_fast"]

    def test_reset_genres_rejected_when_custom_subgenres_depend_on_them(self, seeded_manager):
        seeded_manager.create_option("genres", "Jazz")
        seeded_manager.create_option("subgenres", "Bebop", parent_id="jazz")

        with pytest.raises(ValidationFailed) as exc_info:
            seeded_manager.reset_category("genres")
        assert violation_codes(exc_info) == ["DanglingParentReference"]

    def test_counts_and_primary_genres(self, seeded_manager):
        counts = seeded_manager.counts()

        assert counts == {
            "genres": 5, "subgenres": 15, "moods": 0, "eras": 0,
            "tempos": 7, "vocals": 5, "languages": 0,
        }
        assert seeded_manager.primary_genres() == ["Electronic", "Hip-Hop", "Pop", "R&B", "Rock"]


class TestImportExport:

    def test_round_trip_into_empty_store(self, seeded_manager, manager):
        document, _ = seeded_manager.export_document()

        result = manager.import_document(document)

        assert result.counts == seeded_manager.counts()
        assert manager.store.snapshot()[0] == seeded_manager.store.snapshot()[0]

    def test_reexport_is_byte_identical(self, seeded_manager):
        first, _ = seeded_manager.export_document()
        second, _ = seeded_manager.export_document()

        assert first == second

    def test_rejected_import_raises_with_violations(self, seeded_manager):
        document, revision = seeded_manager.export_document()
        data = json.loads(document)
        data["categories"]["subgenres"].append({"id": "bebop", "label": "Bebop", "parentId": "jazz"})

        with pytest.raises(ValidationFailed) as exc_info:
            seeded_manager.import_document(json.dumps(data))

        assert violation_codes(exc_info) == ["DanglingParentReference"]
        assert seeded_manager.revision() == revision

    def test_malformed_import(self, seeded_manager):
        with pytest.raises(MalformedDocument):
            seeded_manager.import_document("not json")


class TestDescribeError:

    def test_conflict_asks_for_retry(self, manager):
        payload = manager.describe_error(Conflict(1, 2))

        assert payload["error"] == "Conflict"
        assert "retry" in payload["hint"]
        assert payload["revision"] == 2

    def test_has_dependents_mentions_cascade(self, seeded_manager):
        with pytest.raises(HasDependents) as exc_info:
            seeded_manager.delete_option("genres", "pop")

        payload = seeded_manager.describe_error(exc_info.value)
        assert "cascade" in payload["hint"]
        assert payload["dependents"] == ["pop_rock", "dance_pop", "indie_pop", "synth_pop"]

    def test_validation_failed_lists_violations(self, manager):
        manager.create_option("genres", "Rock")
        with pytest.raises(ValidationFailed) as exc_info:
            manager.create_option("genres", "ROCK")

        payload = manager.describe_error(exc_info.value)
        assert payload["violations"][0]["code"] == "DuplicateLabel"
        assert "Rock" in payload["message"] or "ROCK" in payload["message"]


@pytest.mark.parametrize("label,expected", [
    ("Hip-Hop", "hip_hop"),
    ("R&B", "r_b"),
    ("  Neo Soul ", "neo_soul"),
    ("???", "option"),
])
def test_slugify(label, expected):
    assert slugify(label) == expected
