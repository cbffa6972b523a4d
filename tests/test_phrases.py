"""Tests for phrase tokenizing and translation."""

import pytest

from glyphlex import tokenize_phrase
from glyphlex.phrases import (
    LINE_BREAK,
    SOURCE_AUTOSPELL,
    SOURCE_LEXICON,
    build_lexicon_index,
    translate_word,
)


def _parts(glyphs):
    return [g.ipa_character if g.is_virtual else g.symbol_id for g in glyphs]


class TestTokenize:

    def test_words_and_line_breaks(self):
        words = tokenize_phrase("Hello  World\n\tfoo")
        assert [w.original for w in words] == ["Hello", "World", LINE_BREAK, "foo"]
        assert [w.normalized for w in words] == ["hello", "world", LINE_BREAK, "foo"]
        assert [w.position for w in words] == [0, 1, 2, 3]

    @pytest.mark.parametrize("phrase", [None, "", "  \t ", "\n"])
    def test_blank(self, phrase):
        assert tokenize_phrase(phrase) == []


class TestLexiconIndex:

    def test_first_entry_wins(self, editor):
        first = editor.create_entry("Ka")
        editor.create_entry("ka")
        index = build_lexicon_index(editor.list_entries())
        assert index["ka"].id == first.id

    def test_unknown_word_with_empty_map(self):
        word = tokenize_phrase("ŋa")[0]
        translation = translate_word(word, {})
        assert translation.source == SOURCE_AUTOSPELL
        assert _parts(translation.spelling) == ["ŋ", "a"]
        assert translation.has_virtual_glyphs


class TestTranslatePhrase:

    def test_lexicon_word_uses_stored_spelling(self, editor_with_script):
        ed, sym = editor_with_script
        cab = ed.create_entry("Cab", spelling=[sym["c"].id, sym["a"].id, sym["b"].id])
        result = ed.translate_phrase("CAB")
        (word,) = result.words
        assert word.source == SOURCE_LEXICON
        assert word.entry.id == cab.id
        assert _parts(word.spelling) == [sym["c"].id, sym["a"].id, sym["b"].id]
        assert not result.has_virtual_glyphs

    def test_unknown_word_is_autospelled(self, editor_with_script):
        ed, sym = editor_with_script
        result = ed.translate_phrase("abx")
        (word,) = result.words
        assert word.source == SOURCE_AUTOSPELL
        assert word.entry is None
        assert _parts(word.spelling) == [sym["ab"].id, "x"]
        assert result.has_virtual_glyphs

    def test_entry_without_spelling_is_autospelled(self, editor_with_script):
        ed, sym = editor_with_script
        ed.create_entry("sha")
        (word,) = ed.translate_phrase("sha").words
        assert word.source == SOURCE_AUTOSPELL
        assert _parts(word.spelling) == [sym["sh"].id, sym["a"].id]

    def test_stored_ipa_marks_phrase_virtual(self, editor_with_script):
        ed, sym = editor_with_script
        ed.create_entry("aŋ", spelling=[sym["a"].id, "ŋ"])
        result = ed.translate_phrase("aŋ")
        assert result.words[0].source == SOURCE_LEXICON
        assert result.has_virtual_glyphs

    def test_combined_with_separators(self, editor_with_script):
        ed, sym = editor_with_script
        result = ed.translate_phrase("  ab c\nsh  ")
        assert result.normalized_phrase == "ab c\nsh"
        assert _parts(result.combined) == [
            sym["ab"].id, " ", sym["c"].id, LINE_BREAK, sym["sh"].id,
        ]
        assert [g.position for g in result.combined] == list(range(5))
        assert len(result.words) == 3

    def test_without_separator(self, editor_with_script):
        ed, sym = editor_with_script
        result = ed.translate_phrase("ab c", separator=None)
        assert _parts(result.combined) == [sym["ab"].id, sym["c"].id]

    def test_empty_phrase(self, editor):
        result = editor.translate_phrase("   ")
        assert result.words == ()
        assert result.combined == ()
        assert not result.has_virtual_glyphs

    def test_nothing_is_stored(self, editor_with_script):
        ed, _ = editor_with_script
        before = len(ed.get_history())
        ed.translate_phrase("abx ab")
        assert ed.list_entries() == []
        assert len(ed.get_history()) == before
