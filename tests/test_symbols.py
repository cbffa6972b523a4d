"""Tests for glyph, symbol and sound management."""

import pytest

from glyphlex.exceptions import EntityNotFoundError, RelationError, ValidationError


class TestGlyphs:

    def test_create_and_get(self, editor):
        g = editor.create_glyph("stroke", "<svg/>", category="basic")
        assert g.name == "stroke"
        assert editor.get_glyph(g.id) == g

    def test_list_by_category(self, editor):
        editor.create_glyph("one", category="basic")
        editor.create_glyph("two", category="diacritic")
        assert [g.name for g in editor.list_glyphs(category="basic")] == ["one"]
        assert len(editor.list_glyphs()) == 2

    def test_blank_name(self, editor):
        with pytest.raises(ValidationError):
            editor.create_glyph("  ")

    def test_delete_refused_while_used(self, editor):
        g = editor.create_glyph("stroke")
        editor.create_symbol("S", glyph_ids=[g.id])
        with pytest.raises(RelationError):
            editor.delete_glyph(g.id)

    def test_delete_unused(self, editor):
        g = editor.create_glyph("stroke")
        editor.delete_glyph(g.id)
        with pytest.raises(EntityNotFoundError):
            editor.get_glyph(g.id)


class TestSymbols:

    def test_create_with_glyphs_and_sounds(self, editor):
        g1 = editor.create_glyph("g1")
        g2 = editor.create_glyph("g2")
        s = editor.create_symbol("ka", glyph_ids=[g2.id, g1.id], sounds=["ka", "ga"])
        assert s.glyph_ids == (g2.id, g1.id)
        assert [m.sound for m in editor.get_sounds(s.id)] == ["ka", "ga"]

    def test_unknown_glyph(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.create_symbol("S", glyph_ids=[404])

    def test_update(self, editor):
        s = editor.create_symbol("S")
        updated = editor.update_symbol(s.id, name="T", notes="renamed")
        assert updated.name == "T"
        assert updated.notes == "renamed"

    def test_set_glyphs(self, editor):
        g1 = editor.create_glyph("g1")
        g2 = editor.create_glyph("g2")
        s = editor.create_symbol("S", glyph_ids=[g1.id])
        assert editor.set_symbol_glyphs(s.id, [g2.id, g1.id]).glyph_ids == (g2.id, g1.id)

    def test_list_and_find(self, editor):
        editor.create_symbol("A")
        editor.create_symbol("B")
        assert [s.name for s in editor.list_symbols()] == ["A", "B"]
        assert [s.name for s in editor.find_symbols(name="B")] == ["B"]

    def test_delete_refused_while_spelled(self, editor_with_script):
        ed, sym = editor_with_script
        ed.create_entry("ab", pronunciation="ab")
        with pytest.raises(RelationError):
            ed.delete_symbol(sym["ab"].id)

    def test_delete_keeping_spellings_uses_sound(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("abc", pronunciation="abc")
        ed.delete_symbol(sym["ab"].id, keep_spellings=True)
        assert ed.get_spelling(entry.id) == ["ab", sym["c"].id]
        assert ed.get_stored_spelling(entry.id).has_ipa_fallbacks
        with pytest.raises(EntityNotFoundError):
            ed.get_symbol(sym["ab"].id)

    def test_delete_keeping_spellings_drops_silent_symbol(self, editor_with_script):
        ed, sym = editor_with_script
        mute = ed.create_symbol("MUTE")
        entry = ed.create_entry("c")
        ed.set_spelling(entry.id, [mute.id, sym["c"].id])
        ed.delete_symbol(mute.id, keep_spellings=True)
        assert ed.get_spelling(entry.id) == [sym["c"].id]

    def test_delete_removes_sounds(self, editor_with_script):
        ed, sym = editor_with_script
        ed.delete_symbol(sym["c"].id)
        assert "c" not in ed.get_available_phoneme_map()

    def test_get_missing(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.get_symbol(1)


class TestSounds:

    def test_add_blank_rejected(self, editor):
        s = editor.create_symbol("S")
        with pytest.raises(ValidationError):
            editor.add_sound(s.id, " ")

    def test_add_to_missing_symbol(self, editor):
        with pytest.raises(EntityNotFoundError):
            editor.add_sound(99, "a")

    def test_update_sound(self, editor):
        s = editor.create_symbol("S", sounds=["s"])
        mapping = editor.get_sounds(s.id)[0]
        updated = editor.update_sound(mapping.id, sound="z", context="word-final")
        assert updated.sound == "z"
        assert updated.context == "word-final"
        assert editor.resolve_spelling("z").symbol_ids == [s.id]

    def test_remove_sound(self, editor):
        s = editor.create_symbol("S", sounds=["s"])
        editor.remove_sound(editor.get_sounds(s.id)[0].id)
        assert editor.get_sounds(s.id) == []
