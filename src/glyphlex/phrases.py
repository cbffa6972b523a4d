"""Write whole phrases in the script, word by word.

A word whose lemma is in the lexicon (compared case-insensitively) is
written with that entry's stored spelling. Any other word is spelled from
its own characters, with virtual symbols for whatever no sound mapping
covers. Translations are computed on demand and never stored.
"""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from glyphlex import db as _db
from glyphlex.fallback import resolve_with_fallback
from glyphlex.models import (
    EntryModel,
    PhraseGlyph,
    PhraseTranslation,
    PhraseWord,
    WordTranslation,
)
from glyphlex.phonemes import load_phoneme_map

LINE_BREAK = "\n"
WORD_SEPARATOR = " "

SOURCE_LEXICON = "lexicon"
SOURCE_AUTOSPELL = "autospell"

_HORIZONTAL_SPACE = re.compile(r"[ \t]+")


def tokenize_phrase(phrase: str | None) -> list[PhraseWord]:
    """Split a phrase on spaces and tabs; each newline becomes a token."""
    if not phrase or not phrase.strip():
        return []
    words: list[PhraseWord] = []
    lines = phrase.split(LINE_BREAK)
    for line_no, line in enumerate(lines):
        for raw in _HORIZONTAL_SPACE.split(line):
            if raw:
                words.append(PhraseWord(raw, raw.lower().strip(), len(words)))
        if line_no < len(lines) - 1:
            words.append(PhraseWord(LINE_BREAK, LINE_BREAK, len(words)))
    return words


def build_lexicon_index(entries: Iterable[EntryModel]) -> dict[str, EntryModel]:
    """Lower-cased lemma to entry; the first entry with a lemma wins."""
    index: dict[str, EntryModel] = {}
    for entry in entries:
        index.setdefault(entry.lemma.lower(), entry)
    return index


def _glyphs_from_items(items: Sequence[int | str]) -> tuple[PhraseGlyph, ...]:
    return tuple(
        PhraseGlyph(pos, symbol_id=item) if isinstance(item, int)
        else PhraseGlyph(pos, ipa_character=item)
        for pos, item in enumerate(items)
    )


def translate_word(
    word: PhraseWord,
    phoneme_map: Mapping[str, int],
    entry: EntryModel | None = None,
    stored_spelling: Sequence[int | str] = (),
) -> WordTranslation:
    """Write one word, preferring the stored spelling of a lexicon entry.

    An entry without a stored spelling is treated like an unknown word.
    """
    if entry is not None and stored_spelling:
        return WordTranslation(
            word=word,
            source=SOURCE_LEXICON,
            spelling=_glyphs_from_items(stored_spelling),
            has_virtual_glyphs=any(isinstance(i, str) for i in stored_spelling),
            entry=entry,
        )

    result = resolve_with_fallback(word.original, phoneme_map)
    spelling = tuple(
        PhraseGlyph(s.position, ipa_character=s.ipa_character) if s.is_virtual
        else PhraseGlyph(s.position, symbol_id=s.symbol_id)
        for s in result.spelling
    )
    return WordTranslation(
        word=word,
        source=SOURCE_AUTOSPELL,
        spelling=spelling,
        has_virtual_glyphs=result.has_virtual_glyphs,
    )


def translate_phrase(
    conn: sqlite3.Connection,
    phrase: str | None,
    *,
    separator: str | None = WORD_SEPARATOR,
) -> PhraseTranslation:
    """Write a phrase with the current lexicon and sound mappings.

    ``separator`` is inserted between words on the same line as an IPA
    character; pass ``None`` to join words directly.
    """
    original = phrase or ""
    normalized = original.strip()
    tokens = tokenize_phrase(normalized)

    rows = conn.execute("SELECT * FROM entries ORDER BY id").fetchall()
    index = build_lexicon_index(EntryModel.from_row(r) for r in rows)
    phoneme_map = load_phoneme_map(conn)

    translations: list[WordTranslation] = []
    combined: list[PhraseGlyph] = []
    needs_separator = False
    for token in tokens:
        if token.original == LINE_BREAK:
            combined.append(PhraseGlyph(len(combined), ipa_character=LINE_BREAK))
            needs_separator = False
            continue
        if needs_separator and separator:
            combined.append(PhraseGlyph(len(combined), ipa_character=separator))

        entry = index.get(token.normalized)
        stored = _db.get_spelling_items(conn, entry.id) if entry else []
        translation = translate_word(token, phoneme_map, entry, stored)
        translations.append(translation)
        for glyph in translation.spelling:
            combined.append(replace(glyph, position=len(combined)))
        needs_separator = True

    return PhraseTranslation(
        original_phrase=original,
        normalized_phrase=normalized,
        words=tuple(translations),
        combined=tuple(combined),
        has_virtual_glyphs=any(t.has_virtual_glyphs for t in translations),
    )
