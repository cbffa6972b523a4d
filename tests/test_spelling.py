"""Tests for spelling resolution through the editor."""

from glyphlex.fallback import virtual_symbol_id
from glyphlex.models import SpellFailure


class TestStrictSpelling:

    def test_full_spelling(self, editor_with_script):
        ed, sym = editor_with_script
        result = ed.resolve_spelling("abc")
        assert result.success
        assert result.symbol_ids == [sym["ab"].id, sym["c"].id]
        assert result.segments == ("ab", "c")
        assert result.error is None

    def test_partial_failure_lists_unmatched(self, editor_with_script):
        ed, _ = editor_with_script
        result = ed.resolve_spelling("axb")
        assert not result.success
        assert result.reason is SpellFailure.PARTIAL_COVERAGE
        assert result.unmatched_parts == ("x",)
        assert result.spelling == ()
        assert "x" in result.error

    def test_empty_input(self, editor_with_script):
        ed, _ = editor_with_script
        result = ed.resolve_spelling("")
        assert result.reason is SpellFailure.EMPTY_INPUT
        assert result.error

    def test_no_usable_mappings(self, editor):
        editor.create_symbol("Q", sounds=["q"], auto_spell=False)
        result = editor.resolve_spelling("q")
        assert not result.success
        assert result.reason is SpellFailure.NO_USABLE_MAPPING
        assert "auto_spell" in result.error

    def test_idempotent(self, editor_with_script):
        ed, _ = editor_with_script
        assert ed.resolve_spelling("shabc") == ed.resolve_spelling("shabc")

    def test_reflects_current_store(self, editor_with_script):
        ed, _ = editor_with_script
        assert not ed.resolve_spelling("x").success
        x = ed.create_symbol("X", sounds=["x"])
        assert ed.resolve_spelling("x").symbol_ids == [x.id]

    def test_lowest_symbol_wins_shared_sound(self, editor_with_script):
        ed, sym = editor_with_script
        ed.create_symbol("A2", sounds=["a"])
        assert ed.resolve_spelling("a").symbol_ids == [sym["a"].id]


class TestFallbackSpelling:

    def test_fills_gaps(self, editor_with_script):
        ed, sym = editor_with_script
        result = ed.resolve_spelling_with_fallback("axb")
        assert result.success
        assert result.has_virtual_glyphs
        assert result.symbol_ids == [sym["a"].id, virtual_symbol_id("x"), sym["b"].id]

    def test_empty_store_all_virtual(self, editor):
        result = editor.resolve_spelling_with_fallback("ŋa")
        assert result.success
        assert all(s.is_virtual for s in result.spelling)


class TestPreview:

    def test_preview_writes_nothing(self, editor_with_script):
        ed, _ = editor_with_script
        before = len(ed.get_history())
        ed.preview_spelling("ab")
        ed.preview_spelling_with_fallback("axb")
        assert len(ed.get_history()) == before

    def test_preview_equals_resolve(self, editor_with_script):
        ed, _ = editor_with_script
        assert ed.preview_spelling("shab") == ed.resolve_spelling("shab")
        assert (
            ed.preview_spelling_with_fallback("shxb")
            == ed.resolve_spelling_with_fallback("shxb")
        )
