"""Tests for vocabulary entries and their spellings."""

import pytest

from glyphlex import AncestryInput
from glyphlex.exceptions import EntityNotFoundError, ValidationError


class TestCreateEntry:

    def test_auto_spelled(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("abc", pronunciation="abc", meaning="thing")
        assert entry.meaning == "thing"
        assert ed.get_spelling(entry.id) == [sym["ab"].id, sym["c"].id]

    def test_partial_pronunciation_left_unspelled(self, editor_with_script):
        ed, _ = editor_with_script
        entry = ed.create_entry("axb", pronunciation="axb")
        assert ed.get_spelling(entry.id) == []

    def test_auto_spell_off(self, editor_with_script):
        ed, _ = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab", auto_spell=False)
        assert ed.get_spelling(entry.id) == []
        assert entry.auto_spell is False

    def test_explicit_spelling_wins(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry(
            "ab", pronunciation="ab", spelling=[sym["a"].id, sym["b"].id]
        )
        assert ed.get_spelling(entry.id) == [sym["a"].id, sym["b"].id]

    def test_with_ancestry(self, editor):
        root = editor.create_entry("root")
        entry = editor.create_entry(
            "child", ancestry=[AncestryInput(root.id, kind="borrowed")]
        )
        ancestors = editor.get_ancestors(entry.id)
        assert [(a.entry.id, a.kind) for a in ancestors] == [(root.id, "borrowed")]

    def test_unknown_ancestor_creates_nothing(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.create_entry("child", ancestry=[77])
        assert editor.list_entries() == []

    def test_blank_lemma(self, editor):
        with pytest.raises(ValidationError):
            editor.create_entry("")


class TestQueryEntries:

    def test_find(self, editor):
        editor.create_entry("ka", part_of_speech="noun")
        editor.create_entry("ta", part_of_speech="verb")
        assert [e.lemma for e in editor.find_entries(part_of_speech="verb")] == ["ta"]
        assert [e.lemma for e in editor.find_entries(lemma="ka")] == ["ka"]
        assert len(editor.list_entries()) == 2

    def test_find_by_native(self, editor):
        editor.create_entry("ka")
        editor.create_entry("tea", is_native=False)
        assert [e.lemma for e in editor.find_entries(is_native=False)] == ["tea"]
        assert [e.lemma for e in editor.find_entries(is_native=True)] == ["ka"]

    def test_search(self, editor):
        editor.create_entry("Kata", pronunciation="kata", meaning="stone")
        editor.create_entry("ruta", meaning="Rock, a big stone")
        editor.create_entry("mi", meaning="water")
        assert [e.lemma for e in editor.search_entries("STONE")] == ["Kata", "ruta"]
        assert [e.lemma for e in editor.search_entries("kat")] == ["Kata"]
        assert editor.search_entries("zz") == []

    def test_search_treats_wildcards_literally(self, editor):
        editor.create_entry("fifty", meaning="50% off")
        editor.create_entry("snake_case")
        editor.create_entry("plain")
        assert [e.lemma for e in editor.search_entries("%")] == ["fifty"]
        assert [e.lemma for e in editor.search_entries("_")] == ["snake_case"]

    def test_list_with_usage(self, editor_with_family):
        ed, root, mid, leaf, other = editor_with_family
        counts = {u.entry.lemma: u.descendant_count for u in ed.list_entries_with_usage()}
        assert counts == {"root": 2, "mid": 1, "leaf": 0, "other": 0}
        assert [u.entry.lemma for u in ed.list_entries_with_usage()] == [
            "leaf", "mid", "other", "root",
        ]

    def test_get_missing(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.get_entry(5)


class TestUpdateEntry:

    def test_update_fields(self, editor):
        entry = editor.create_entry("ka")
        updated = editor.update_entry(entry.id, meaning="water", is_native=False)
        assert updated.meaning == "water"
        assert updated.is_native is False

    def test_unknown_field(self, editor):
        entry = editor.create_entry("ka")
        with pytest.raises(ValidationError):
            editor.update_entry(entry.id, colour="red")

    def test_pronunciation_change_does_not_respell(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab")
        ed.update_entry(entry.id, pronunciation="c")
        assert ed.get_spelling(entry.id) == [sym["ab"].id]


class TestDeleteEntry:

    def test_delete(self, editor_with_script):
        ed, _ = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab")
        ed.delete_entry(entry.id)
        with pytest.raises(EntityNotFoundError):
            ed.get_entry(entry.id)

    def test_delete_missing(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.delete_entry(3)


class TestSpelling:

    def test_set_spelling(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("x")
        assert ed.set_spelling(entry.id, [sym["c"].id, sym["a"].id]) == [
            sym["c"].id, sym["a"].id,
        ]

    def test_set_spelling_unknown_symbol(self, editor):
        entry = editor.create_entry("x")
        with pytest.raises(EntityNotFoundError):
            editor.set_spelling(entry.id, [123])

    def test_respell(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab")
        ed.update_entry(entry.id, pronunciation="shc")
        result = ed.respell_entry(entry.id)
        assert result.success
        assert ed.get_spelling(entry.id) == [sym["sh"].id, sym["c"].id]

    def test_respell_failure_keeps_spelling(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab")
        ed.update_entry(entry.id, pronunciation="axb")
        result = ed.respell_entry(entry.id)
        assert not result.success
        assert ed.get_spelling(entry.id) == [sym["ab"].id]

    def test_respell_fallback_stores_ipa(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("axb", pronunciation="axb")
        result = ed.respell_entry(entry.id, fallback=True)
        assert result.success
        assert result.has_virtual_glyphs
        assert ed.get_spelling(entry.id) == [sym["a"].id, "x", sym["b"].id]
        stored = ed.get_stored_spelling(entry.id)
        assert stored.has_ipa_fallbacks
        assert stored.ipa_fallback_count == 1
        assert stored.symbol_ids == [sym["a"].id, sym["b"].id]

    def test_set_spelling_with_ipa(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ŋa")
        assert ed.set_spelling(entry.id, ["ŋ", sym["a"].id]) == ["ŋ", sym["a"].id]
        assert not ed.get_stored_spelling(ed.create_entry("b").id).has_ipa_fallbacks

    def test_set_spelling_rejects_virtual_id(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ŋ")
        virtual = ed.resolve_spelling_with_fallback("ŋ").spelling[0].symbol_id
        with pytest.raises(ValidationError):
            ed.set_spelling(entry.id, [virtual])
        with pytest.raises(ValidationError):
            ed.set_spelling(entry.id, [""])
        assert ed.get_spelling(entry.id) == []

    def test_respell_fallback_without_gaps_is_stored(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("ab", pronunciation="ab", auto_spell=False)
        ed.respell_entry(entry.id, fallback=True)
        assert ed.get_spelling(entry.id) == [sym["ab"].id]


class TestBatchContext:

    def test_batch_rolls_back(self, editor):
        with pytest.raises(RuntimeError):
            with editor.batch():
                editor.create_entry("one")
                raise RuntimeError("boom")
        assert editor.list_entries() == []

    def test_batch_commits(self, editor):
        with editor.batch():
            editor.create_entry("one")
            editor.create_entry("two")
        assert len(editor.list_entries()) == 2
