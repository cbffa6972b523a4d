"""GlyphlexEditor: main entry point for the glyphlex library."""

from __future__ import annotations

import functools
import logging
import sqlite3
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from glyphlex import ancestry as _anc
from glyphlex import db as _db
from glyphlex import history as _hist
from glyphlex import phrases as _phrases
from glyphlex import spelling as _spell
from glyphlex.db import SpellingItem
from glyphlex.exceptions import (
    EntityNotFoundError,
    RelationError,
    ValidationError,
)
from glyphlex.fallback import is_virtual_symbol_id
from glyphlex.graph import DEFAULT_MAX_DEPTH
from glyphlex.models import (
    AncestorEntry,
    AncestryEdge,
    AncestryInput,
    AncestryNode,
    DescendantEntry,
    EditRecord,
    EntryModel,
    EntryUsage,
    FallbackSpellResult,
    GlyphModel,
    PhraseTranslation,
    SoundMapping,
    SpellResult,
    StoredSpelling,
    SymbolModel,
    ValidationResult,
)
from glyphlex.phonemes import PhonemeMap
from glyphlex.relations import DEFAULT_ANCESTRY_KIND

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])

# Sentinel for "no change" in update methods
_UNSET: Any = type("_UNSET", (), {"__repr__": lambda self: "..."})()

_ENTRY_FIELDS = (
    "lemma", "pronunciation", "is_native", "auto_spell",
    "meaning", "part_of_speech", "notes",
)


def _modifies_db(method: _F) -> _F:
    """Decorator: wraps mutation methods in a transaction (unless in batch)."""

    @functools.wraps(method)
    def wrapper(self: GlyphlexEditor, *args: Any, **kwargs: Any) -> Any:
        if self._in_batch:
            return method(self, *args, **kwargs)
        with self._conn:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _require_text(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{what} must not be blank")
    return value


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class GlyphlexEditor:
    """Programmatic API for editing a constructed script and its lexicon."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path)
        _db.check_schema_version(self._conn)
        _db.init_db(self._conn)
        self._in_batch = False
        self._batch_depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> GlyphlexEditor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Batch context manager
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Group multiple mutations into a single transaction."""
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._in_batch = True
            self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            if self._batch_depth == 1:
                self._conn.rollback()
                self._in_batch = False
            self._batch_depth -= 1
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._conn.commit()
                self._in_batch = False

    # ------------------------------------------------------------------
    # Existence checks
    # ------------------------------------------------------------------

    def _require_glyph(self, glyph_id: int) -> sqlite3.Row:
        row = _db.get_glyph_row(self._conn, glyph_id)
        if row is None:
            raise EntityNotFoundError(f"Glyph not found: {glyph_id!r}")
        return row

    def _require_symbol(self, symbol_id: int) -> sqlite3.Row:
        row = _db.get_symbol_row(self._conn, symbol_id)
        if row is None:
            raise EntityNotFoundError(f"Symbol not found: {symbol_id!r}")
        return row

    def _require_sound(self, sound_id: int) -> sqlite3.Row:
        row = _db.get_sound_row(self._conn, sound_id)
        if row is None:
            raise EntityNotFoundError(f"Sound not found: {sound_id!r}")
        return row

    def _require_entry(self, entry_id: int) -> sqlite3.Row:
        row = _db.get_entry_row(self._conn, entry_id)
        if row is None:
            raise EntityNotFoundError(f"Entry not found: {entry_id!r}")
        return row

    def _require_entries(self, entry_ids: Sequence[int]) -> None:
        found = _db.get_entry_rows(self._conn, entry_ids)
        for entry_id in entry_ids:
            if entry_id not in found:
                raise EntityNotFoundError(f"Entry not found: {entry_id!r}")

    # ------------------------------------------------------------------
    # Glyphs
    # ------------------------------------------------------------------

    @_modifies_db
    def create_glyph(
        self,
        name: str,
        svg_data: str = "",
        *,
        category: str | None = None,
        notes: str | None = None,
    ) -> GlyphModel:
        _require_text(name, "Glyph name")
        cur = self._conn.execute(
            "INSERT INTO glyphs (name, svg_data, category, notes) "
            "VALUES (?, ?, ?, ?)",
            (name, svg_data, category, notes),
        )
        glyph_id = cur.lastrowid
        _hist.record_create(self._conn, "glyph", glyph_id, {"name": name})
        return self.get_glyph(glyph_id)

    def get_glyph(self, glyph_id: int) -> GlyphModel:
        return GlyphModel.from_row(self._require_glyph(glyph_id))

    def list_glyphs(self, *, category: str | None = None) -> list[GlyphModel]:
        if category is None:
            rows = self._conn.execute(
                "SELECT * FROM glyphs ORDER BY id"
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM glyphs WHERE category = ? ORDER BY id",
                (category,),
            ).fetchall()
        return [GlyphModel.from_row(r) for r in rows]

    @_modifies_db
    def delete_glyph(self, glyph_id: int) -> None:
        row = self._require_glyph(glyph_id)
        users = self._conn.execute(
            "SELECT COUNT(DISTINCT symbol_id) FROM symbol_glyphs "
            "WHERE glyph_id = ?",
            (glyph_id,),
        ).fetchone()[0]
        if users:
            raise RelationError(
                f"Glyph {glyph_id} is used by {users} symbol(s)"
            )
        _hist.record_delete(self._conn, "glyph", glyph_id, {"name": row["name"]})
        self._conn.execute("DELETE FROM glyphs WHERE id = ?", (glyph_id,))

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def _insert_symbol_glyphs(self, symbol_id: int, glyph_ids: Sequence[int]) -> None:
        for glyph_id in glyph_ids:
            self._require_glyph(glyph_id)
        self._conn.executemany(
            "INSERT INTO symbol_glyphs (symbol_id, glyph_id, position) "
            "VALUES (?, ?, ?)",
            [(symbol_id, g, pos) for pos, g in enumerate(glyph_ids)],
        )

    @_modifies_db
    def create_symbol(
        self,
        name: str,
        *,
        glyph_ids: Sequence[int] = (),
        sounds: Sequence[str] = (),
        auto_spell: bool = True,
        notes: str | None = None,
    ) -> SymbolModel:
        """Create a symbol, optionally composed of glyphs and with sounds."""
        _require_text(name, "Symbol name")
        cur = self._conn.execute(
            "INSERT INTO symbols (name, notes) VALUES (?, ?)",
            (name, notes),
        )
        symbol_id = cur.lastrowid
        self._insert_symbol_glyphs(symbol_id, glyph_ids)
        _hist.record_create(self._conn, "symbol", symbol_id, {"name": name})
        for sound in sounds:
            self.add_sound(symbol_id, sound, auto_spell=auto_spell)
        return self.get_symbol(symbol_id)

    def get_symbol(self, symbol_id: int) -> SymbolModel:
        row = self._require_symbol(symbol_id)
        return SymbolModel(
            id=row["id"],
            name=row["name"],
            glyph_ids=_db.get_symbol_glyph_ids(self._conn, symbol_id),
            notes=row["notes"],
        )

    def find_symbols(self, *, name: str | None = None) -> list[SymbolModel]:
        if name is None:
            rows = self._conn.execute("SELECT id FROM symbols ORDER BY id").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT id FROM symbols WHERE name = ? ORDER BY id", (name,)
            ).fetchall()
        return [self.get_symbol(r["id"]) for r in rows]

    def list_symbols(self) -> list[SymbolModel]:
        return self.find_symbols()

    @_modifies_db
    def update_symbol(
        self,
        symbol_id: int,
        *,
        name: str | None = None,
        notes: Any = _UNSET,
    ) -> SymbolModel:
        row = self._require_symbol(symbol_id)
        if name is not None:
            _require_text(name, "Symbol name")
            _hist.record_update(
                self._conn, "symbol", symbol_id, "name", row["name"], name
            )
            self._conn.execute(
                "UPDATE symbols SET name = ? WHERE id = ?", (name, symbol_id)
            )
        if notes is not _UNSET:
            _hist.record_update(
                self._conn, "symbol", symbol_id, "notes", row["notes"], notes
            )
            self._conn.execute(
                "UPDATE symbols SET notes = ? WHERE id = ?", (notes, symbol_id)
            )
        self._conn.execute(
            "UPDATE symbols SET updated_at = strftime('%Y-%m-%dT%H:%M:%f', 'now') "
            "WHERE id = ?",
            (symbol_id,),
        )
        return self.get_symbol(symbol_id)

    @_modifies_db
    def set_symbol_glyphs(self, symbol_id: int, glyph_ids: Sequence[int]) -> SymbolModel:
        self._require_symbol(symbol_id)
        old = list(_db.get_symbol_glyph_ids(self._conn, symbol_id))
        self._conn.execute(
            "DELETE FROM symbol_glyphs WHERE symbol_id = ?", (symbol_id,)
        )
        self._insert_symbol_glyphs(symbol_id, glyph_ids)
        _hist.record_update(
            self._conn, "symbol", symbol_id, "glyphs",
            ",".join(map(str, old)), ",".join(map(str, glyph_ids)),
        )
        return self.get_symbol(symbol_id)

    @_modifies_db
    def delete_symbol(self, symbol_id: int, *, keep_spellings: bool = False) -> None:
        """Delete a symbol.

        A symbol used in a spelling is refused unless ``keep_spellings`` is
        set. Then every use is replaced by the symbol's first sound as an
        IPA character, or dropped when the symbol has no sound.
        """
        row = self._require_symbol(symbol_id)
        users = _db.get_entries_using_symbol(self._conn, symbol_id)
        if users and not keep_spellings:
            raise RelationError(
                f"Symbol {symbol_id} is used in the spelling of "
                f"{len(users)} entry(ies)"
            )
        sound = self._conn.execute(
            "SELECT sound FROM sound_mappings WHERE symbol_id = ? "
            "AND TRIM(sound) != '' ORDER BY id LIMIT 1",
            (symbol_id,),
        ).fetchone()
        for entry_id in users:
            items = _db.get_spelling_items(self._conn, entry_id)
            if sound is None:
                items = [i for i in items if i != symbol_id]
            else:
                items = [sound[0] if i == symbol_id else i for i in items]
            self._write_spelling(entry_id, items)
        if users:
            logger.debug(
                f"Symbol {symbol_id} replaced in {len(users)} spelling(s)"
            )
        _hist.record_delete(self._conn, "symbol", symbol_id, {"name": row["name"]})
        self._conn.execute("DELETE FROM symbols WHERE id = ?", (symbol_id,))

    # ------------------------------------------------------------------
    # Sounds
    # ------------------------------------------------------------------

    @_modifies_db
    def add_sound(
        self,
        symbol_id: int,
        sound: str,
        *,
        auto_spell: bool = True,
        context: str | None = None,
    ) -> SoundMapping:
        self._require_symbol(symbol_id)
        _require_text(sound, "Sound")
        cur = self._conn.execute(
            "INSERT INTO sound_mappings (symbol_id, sound, auto_spell, context) "
            "VALUES (?, ?, ?, ?)",
            (symbol_id, sound, int(auto_spell), context),
        )
        _hist.record_create(
            self._conn, "sound", cur.lastrowid,
            {"symbol_id": symbol_id, "sound": sound, "auto_spell": auto_spell},
        )
        logger.debug(f"Symbol {symbol_id} can now stand for {sound!r}")
        return SoundMapping.from_row(_db.get_sound_row(self._conn, cur.lastrowid))

    def get_sounds(self, symbol_id: int) -> list[SoundMapping]:
        self._require_symbol(symbol_id)
        rows = self._conn.execute(
            "SELECT * FROM sound_mappings WHERE symbol_id = ? ORDER BY id",
            (symbol_id,),
        ).fetchall()
        return [SoundMapping.from_row(r) for r in rows]

    @_modifies_db
    def update_sound(
        self,
        sound_id: int,
        *,
        sound: str | None = None,
        auto_spell: bool | None = None,
        context: Any = _UNSET,
    ) -> SoundMapping:
        row = self._require_sound(sound_id)
        if sound is not None:
            _require_text(sound, "Sound")
            _hist.record_update(
                self._conn, "sound", sound_id, "sound", row["sound"], sound
            )
            self._conn.execute(
                "UPDATE sound_mappings SET sound = ? WHERE id = ?",
                (sound, sound_id),
            )
        if auto_spell is not None:
            _hist.record_update(
                self._conn, "sound", sound_id, "auto_spell",
                bool(row["auto_spell"]), auto_spell,
            )
            self._conn.execute(
                "UPDATE sound_mappings SET auto_spell = ? WHERE id = ?",
                (int(auto_spell), sound_id),
            )
        if context is not _UNSET:
            self._conn.execute(
                "UPDATE sound_mappings SET context = ? WHERE id = ?",
                (context, sound_id),
            )
        return SoundMapping.from_row(self._require_sound(sound_id))

    @_modifies_db
    def remove_sound(self, sound_id: int) -> None:
        row = self._require_sound(sound_id)
        _hist.record_delete(
            self._conn, "sound", sound_id,
            {"symbol_id": row["symbol_id"], "sound": row["sound"]},
        )
        self._conn.execute("DELETE FROM sound_mappings WHERE id = ?", (sound_id,))

    def get_usable_sound_mappings(self) -> list[SoundMapping]:
        return _db.get_usable_sound_mappings(self._conn)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    @_modifies_db
    def create_entry(
        self,
        lemma: str,
        *,
        pronunciation: str | None = None,
        is_native: bool = True,
        auto_spell: bool = True,
        meaning: str | None = None,
        part_of_speech: str | None = None,
        notes: str | None = None,
        spelling: Sequence[SpellingItem] | None = None,
        ancestry: Sequence[AncestryInput | int] | None = None,
    ) -> EntryModel:
        """Create a vocabulary entry.

        Without an explicit ``spelling``, an ``auto_spell`` entry is spelled
        from its pronunciation when that succeeds strictly; otherwise it is
        left unspelled.
        """
        _require_text(lemma, "Lemma")
        if ancestry:
            self._require_entries(
                [a.ancestor_id if isinstance(a, AncestryInput) else a
                 for a in ancestry]
            )
        cur = self._conn.execute(
            "INSERT INTO entries "
            "(lemma, pronunciation, is_native, auto_spell, meaning, "
            "part_of_speech, notes) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (lemma, pronunciation, int(is_native), int(auto_spell),
             meaning, part_of_speech, notes),
        )
        entry_id = cur.lastrowid
        _hist.record_create(
            self._conn, "entry", entry_id,
            {"lemma": lemma, "pronunciation": pronunciation},
        )

        if spelling is not None:
            self._write_spelling(entry_id, spelling)
        elif auto_spell and pronunciation:
            result = _spell.resolve_spelling(self._conn, pronunciation)
            if result.success:
                self._write_spelling(entry_id, result.symbol_ids)

        if ancestry:
            _anc.set_ancestry(self._conn, entry_id, ancestry)
            self._record_ancestry(entry_id)

        return self.get_entry(entry_id)

    def get_entry(self, entry_id: int) -> EntryModel:
        return EntryModel.from_row(self._require_entry(entry_id))

    def find_entries(
        self,
        *,
        lemma: str | None = None,
        pronunciation: str | None = None,
        part_of_speech: str | None = None,
        is_native: bool | None = None,
    ) -> list[EntryModel]:
        clauses: list[str] = []
        params: list[Any] = []

        if lemma is not None:
            clauses.append("lemma = ?")
            params.append(lemma)
        if pronunciation is not None:
            clauses.append("pronunciation = ?")
            params.append(pronunciation)
        if part_of_speech is not None:
            clauses.append("part_of_speech = ?")
            params.append(part_of_speech)
        if is_native is not None:
            clauses.append("is_native = ?")
            params.append(int(is_native))

        where = " AND ".join(clauses) if clauses else "1=1"
        rows = self._conn.execute(
            f"SELECT * FROM entries WHERE {where} ORDER BY id", params
        ).fetchall()
        return [EntryModel.from_row(r) for r in rows]

    def search_entries(self, query: str) -> list[EntryModel]:
        """Entries whose lemma, pronunciation or meaning contains ``query``.

        Matching is a case-insensitive substring match (ASCII letters only,
        as SQLite's LIKE); results are ordered by lemma.
        """
        pattern = "%" + _escape_like(query) + "%"
        rows = self._conn.execute(
            "SELECT * FROM entries "
            "WHERE lemma LIKE ? ESCAPE '\\' OR pronunciation LIKE ? ESCAPE '\\' "
            "OR meaning LIKE ? ESCAPE '\\' "
            "ORDER BY lemma, id",
            (pattern, pattern, pattern),
        ).fetchall()
        return [EntryModel.from_row(r) for r in rows]

    def list_entries(self) -> list[EntryModel]:
        return self.find_entries()

    def list_entries_with_usage(self) -> list[EntryUsage]:
        """Every entry with how many entries derive directly from it."""
        rows = self._conn.execute(
            "SELECT e.*, COUNT(a.id) AS descendant_count "
            "FROM entries e LEFT JOIN entry_ancestry a ON e.id = a.ancestor_id "
            "GROUP BY e.id ORDER BY e.lemma, e.id"
        ).fetchall()
        return [
            EntryUsage(EntryModel.from_row(r), r["descendant_count"])
            for r in rows
        ]

    @_modifies_db
    def update_entry(self, entry_id: int, **changes: Any) -> EntryModel:
        """Update entry fields. Changing the pronunciation does not respell."""
        row = self._require_entry(entry_id)
        unknown = set(changes) - set(_ENTRY_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown entry field(s): {', '.join(sorted(unknown))}"
            )
        if "lemma" in changes:
            _require_text(changes["lemma"], "Lemma")

        for field_name in _ENTRY_FIELDS:
            if field_name not in changes:
                continue
            value = changes[field_name]
            old = row[field_name]
            if field_name in ("is_native", "auto_spell"):
                old, value = bool(old), bool(value)
            if old == value:
                continue
            _hist.record_update(
                self._conn, "entry", entry_id, field_name, old, value
            )
            self._conn.execute(
                f"UPDATE entries SET {field_name} = ? WHERE id = ?",
                (int(value) if isinstance(value, bool) else value, entry_id),
            )
        _db.touch_entry(self._conn, entry_id)
        return self.get_entry(entry_id)

    @_modifies_db
    def delete_entry(self, entry_id: int) -> None:
        row = self._require_entry(entry_id)
        removed = _anc.on_entry_deleted(self._conn, entry_id)
        if removed:
            _hist.record_delete(
                self._conn, "ancestry", entry_id, {"edges_removed": removed}
            )
        _hist.record_delete(self._conn, "entry", entry_id, {"lemma": row["lemma"]})
        self._conn.execute("DELETE FROM entries WHERE id = ?", (entry_id,))

    # ------------------------------------------------------------------
    # Spelling
    # ------------------------------------------------------------------

    def _check_spelling_items(
        self, items: Sequence[SpellingItem]
    ) -> list[SpellingItem]:
        checked: list[SpellingItem] = []
        for item in items:
            if isinstance(item, str):
                if not item:
                    raise ValidationError("IPA characters in a spelling must not be empty")
            elif isinstance(item, int) and not isinstance(item, bool):
                if is_virtual_symbol_id(item):
                    raise ValidationError(
                        f"Virtual symbol {item} cannot be stored; "
                        "store its IPA character instead"
                    )
                self._require_symbol(item)
            else:
                raise ValidationError(f"Invalid spelling item: {item!r}")
            checked.append(item)
        return checked

    def _write_spelling(self, entry_id: int, items: Sequence[SpellingItem]) -> None:
        new = self._check_spelling_items(items)
        old = _db.get_spelling_items(self._conn, entry_id)
        _db.replace_spelling_items(self._conn, entry_id, new)
        if old != new:
            _hist.record_update(self._conn, "spelling", entry_id, "symbols", old, new)
        _db.touch_entry(self._conn, entry_id)

    def get_spelling(self, entry_id: int) -> list[SpellingItem]:
        """An entry's spelling in order: symbol IDs, or IPA characters
        where the spelling falls back to the sound itself."""
        self._require_entry(entry_id)
        return _db.get_spelling_items(self._conn, entry_id)

    def get_stored_spelling(self, entry_id: int) -> StoredSpelling:
        return StoredSpelling(entry_id, tuple(self.get_spelling(entry_id)))

    @_modifies_db
    def set_spelling(
        self, entry_id: int, items: Sequence[SpellingItem]
    ) -> list[SpellingItem]:
        self._require_entry(entry_id)
        self._write_spelling(entry_id, items)
        return self.get_spelling(entry_id)

    @_modifies_db
    def respell_entry(
        self, entry_id: int, *, fallback: bool = False
    ) -> SpellResult:
        """Spell an entry from its pronunciation and store the result.

        Strictly, the stored spelling changes only when every character is
        covered by a real symbol. With ``fallback`` any non-blank
        pronunciation is stored, each virtual symbol as its IPA character.
        """
        row = self._require_entry(entry_id)
        pronunciation = row["pronunciation"]
        if fallback:
            result: SpellResult = _spell.resolve_spelling_with_fallback(
                self._conn, pronunciation
            )
        else:
            result = _spell.resolve_spelling(self._conn, pronunciation)
        if result.success:
            self._write_spelling(entry_id, [
                s.ipa_character if s.is_virtual else s.symbol_id
                for s in result.spelling
            ])
        else:
            logger.debug(f"Entry {entry_id} keeps its spelling: {result.error}")
        return result

    def resolve_spelling(self, pronunciation: str | None) -> SpellResult:
        return _spell.resolve_spelling(self._conn, pronunciation)

    def resolve_spelling_with_fallback(
        self, pronunciation: str | None
    ) -> FallbackSpellResult:
        return _spell.resolve_spelling_with_fallback(self._conn, pronunciation)

    def preview_spelling(self, pronunciation: str | None) -> SpellResult:
        return _spell.preview_spelling(self._conn, pronunciation)

    def preview_spelling_with_fallback(
        self, pronunciation: str | None
    ) -> FallbackSpellResult:
        return _spell.preview_spelling_with_fallback(self._conn, pronunciation)

    def get_available_phoneme_map(self) -> PhonemeMap:
        return _spell.get_available_phoneme_map(self._conn)

    def translate_phrase(
        self, phrase: str | None, *, separator: str | None = _phrases.WORD_SEPARATOR
    ) -> PhraseTranslation:
        """Write a phrase word by word; nothing is stored."""
        return _phrases.translate_phrase(self._conn, phrase, separator=separator)

    # ------------------------------------------------------------------
    # Ancestry
    # ------------------------------------------------------------------

    def _record_ancestry(self, entry_id: int) -> None:
        edges = _db.get_ancestry_edges(self._conn, entry_id)
        _hist.record_update(
            self._conn, "ancestry", entry_id, "ancestors", None,
            ",".join(f"{e.ancestor_id}:{e.kind}" for e in edges),
        )

    def would_create_cycle(self, entry_id: int, ancestor_id: int) -> bool:
        return _anc.would_create_cycle(self._conn, entry_id, ancestor_id)

    @_modifies_db
    def add_ancestor(
        self,
        entry_id: int,
        ancestor_id: int,
        *,
        kind: str = DEFAULT_ANCESTRY_KIND,
        position: int | None = None,
    ) -> AncestryEdge:
        self._require_entries([entry_id, ancestor_id])
        edge = _anc.add_ancestor(
            self._conn, entry_id, ancestor_id, kind=kind, position=position
        )
        _hist.record_create(
            self._conn, "ancestry", entry_id,
            {"ancestor_id": ancestor_id, "kind": kind, "position": edge.position},
        )
        return edge

    @_modifies_db
    def set_ancestry(
        self, entry_id: int, ancestry: Sequence[AncestryInput | int]
    ) -> list[AncestryEdge]:
        self._require_entry(entry_id)
        self._require_entries(
            [a.ancestor_id if isinstance(a, AncestryInput) else a
             for a in ancestry]
        )
        edges = _anc.set_ancestry(self._conn, entry_id, ancestry)
        self._record_ancestry(entry_id)
        return edges

    @_modifies_db
    def remove_ancestor(self, entry_id: int, ancestor_id: int) -> bool:
        self._require_entry(entry_id)
        removed = _anc.remove_ancestor(self._conn, entry_id, ancestor_id)
        if removed:
            _hist.record_delete(
                self._conn, "ancestry", entry_id, {"ancestor_id": ancestor_id}
            )
        return removed

    @_modifies_db
    def clear_ancestry(self, entry_id: int) -> int:
        self._require_entry(entry_id)
        removed = _anc.clear_ancestry(self._conn, entry_id)
        if removed:
            _hist.record_delete(
                self._conn, "ancestry", entry_id, {"edges_removed": removed}
            )
        return removed

    def get_ancestors(self, entry_id: int) -> list[AncestorEntry]:
        self._require_entry(entry_id)
        return _anc.get_ancestors(self._conn, entry_id)

    def get_descendants(self, entry_id: int) -> list[DescendantEntry]:
        self._require_entry(entry_id)
        return _anc.get_descendants(self._conn, entry_id)

    def get_full_ancestry_tree(
        self, entry_id: int, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> AncestryNode:
        self._require_entry(entry_id)
        return _anc.get_full_ancestry_tree(self._conn, entry_id, max_depth)

    def get_all_ancestor_ids(
        self, entry_id: int, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> list[int]:
        self._require_entry(entry_id)
        return _anc.get_all_ancestor_ids(self._conn, entry_id, max_depth)

    def get_all_descendant_ids(
        self, entry_id: int, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> list[int]:
        self._require_entry(entry_id)
        return _anc.get_all_descendant_ids(self._conn, entry_id, max_depth)

    # ------------------------------------------------------------------
    # Change Tracking
    # ------------------------------------------------------------------

    def get_history(
        self,
        *,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
        since: str | None = None,
        operation: str | None = None,
        limit: int | None = None,
    ) -> list[EditRecord]:
        return _hist.query_history(
            self._conn,
            entity_type=entity_type,
            entity_id=entity_id,
            since=since,
            operation=operation,
            limit=limit,
        )

    def get_changes_since(self, timestamp: str) -> list[EditRecord]:
        return self.get_history(since=timestamp)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationResult]:
        from glyphlex.validator import validate_all
        return validate_all(self._conn)

    def validate_entry(self, entry_id: int) -> list[ValidationResult]:
        from glyphlex.validator import validate_entry
        self._require_entry(entry_id)
        return validate_entry(self._conn, entry_id)

    def validate_ancestry(self) -> list[ValidationResult]:
        from glyphlex.validator import validate_ancestry
        return validate_ancestry(self._conn)
