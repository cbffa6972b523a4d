"""Domain model dataclasses and enums for glyphlex."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AncestryKind(str, Enum):
    """How a vocabulary entry derives from one of its ancestors."""

    DERIVED = "derived"
    BORROWED = "borrowed"
    COMPOUND = "compound"
    BLEND = "blend"
    CALQUE = "calque"
    OTHER = "other"


class SpellFailure(str, Enum):
    """Why a spelling resolution did not produce a complete spelling."""

    EMPTY_INPUT = "empty_input"
    NO_USABLE_MAPPING = "no_usable_mapping"
    PARTIAL_COVERAGE = "partial_coverage"


class EditOperation(str, Enum):
    """Type of mutation recorded in the edit history."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ValidationSeverity(str, Enum):
    """Severity level for validation results."""

    ERROR = "ERROR"
    WARNING = "WARNING"


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class GlyphModel:
    """An atomic visual unit of the script."""

    id: int
    name: str
    svg_data: str
    category: str | None
    notes: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> GlyphModel:
        return cls(
            id=row["id"],
            name=row["name"],
            svg_data=row["svg_data"],
            category=row["category"],
            notes=row["notes"],
        )


@dataclass(frozen=True, slots=True)
class SymbolModel:
    """A symbol (grapheme) composed of an ordered list of glyphs."""

    id: int
    name: str
    glyph_ids: tuple[int, ...]
    notes: str | None


@dataclass(frozen=True, slots=True)
class SoundMapping:
    """A sound a symbol can stand for, optionally usable for auto-spelling."""

    id: int
    symbol_id: int
    sound: str
    auto_spell: bool
    context: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> SoundMapping:
        return cls(
            id=row["id"],
            symbol_id=row["symbol_id"],
            sound=row["sound"],
            auto_spell=bool(row["auto_spell"]),
            context=row["context"],
        )


@dataclass(frozen=True, slots=True)
class EntryModel:
    """A vocabulary entry (lemma with optional pronunciation)."""

    id: int
    lemma: str
    pronunciation: str | None
    is_native: bool
    auto_spell: bool
    meaning: str | None
    part_of_speech: str | None
    notes: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EntryModel:
        return cls(
            id=row["id"],
            lemma=row["lemma"],
            pronunciation=row["pronunciation"],
            is_native=bool(row["is_native"]),
            auto_spell=bool(row["auto_spell"]),
            meaning=row["meaning"],
            part_of_speech=row["part_of_speech"],
            notes=row["notes"],
        )


@dataclass(frozen=True, slots=True)
class AncestryEdge:
    """A directed derives-from edge: ``entry_id`` descends from ``ancestor_id``."""

    entry_id: int
    ancestor_id: int
    position: int
    kind: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AncestryEdge:
        return cls(
            entry_id=row["entry_id"],
            ancestor_id=row["ancestor_id"],
            position=row["position"],
            kind=row["kind"],
        )


@dataclass(frozen=True, slots=True)
class AncestryInput:
    """A requested ancestor for :func:`glyphlex.ancestry.set_ancestry`."""

    ancestor_id: int
    kind: str = AncestryKind.DERIVED.value
    position: int | None = None


@dataclass(frozen=True, slots=True)
class AncestorEntry:
    """A direct ancestor together with the edge that links it."""

    entry: EntryModel
    kind: str
    position: int


@dataclass(frozen=True, slots=True)
class DescendantEntry:
    """A direct descendant together with the kind of derivation."""

    entry: EntryModel
    kind: str


@dataclass(frozen=True, slots=True)
class AncestryNode:
    """One node of an ancestry tree; the root has no kind or position."""

    entry: EntryModel
    kind: str | None
    position: int | None
    ancestors: tuple[AncestryNode, ...]


@dataclass(frozen=True, slots=True)
class EntryUsage:
    """An entry with the number of entries derived directly from it."""

    entry: EntryModel
    descendant_count: int

# ---------------------------------------------------------------------------
# Spelling results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SpellingEntry:
    """One symbol of a resolved spelling."""

    symbol_id: int
    position: int
    is_virtual: bool = False
    ipa_character: str | None = None


@dataclass(frozen=True, slots=True)
class SpellResult:
    """Outcome of a strict spelling resolution."""

    success: bool
    spelling: tuple[SpellingEntry, ...]
    segments: tuple[str, ...]
    unmatched_parts: tuple[str, ...]
    error: str | None = None
    reason: SpellFailure | None = None

    @property
    def symbol_ids(self) -> list[int]:
        return [s.symbol_id for s in self.spelling]


@dataclass(frozen=True, slots=True)
class FallbackSpellResult(SpellResult):
    """Outcome of a spelling resolution that fills gaps with virtual symbols."""

    has_virtual_glyphs: bool = False


@dataclass(frozen=True, slots=True)
class StoredSpelling:
    """The persisted spelling of an entry.

    ``items`` holds real symbol IDs (``int``) and, where no symbol covers a
    sound, the IPA character itself (``str``), in spelling order.
    """

    entry_id: int
    items: tuple[int | str, ...]

    @property
    def symbol_ids(self) -> list[int]:
        """Distinct real symbols used, in order of first appearance."""
        return list(dict.fromkeys(i for i in self.items if isinstance(i, int)))

    @property
    def ipa_fallback_count(self) -> int:
        return sum(1 for i in self.items if isinstance(i, str))

    @property
    def has_ipa_fallbacks(self) -> bool:
        return self.ipa_fallback_count > 0


@dataclass(frozen=True, slots=True)
class VirtualSymbol:
    """A placeholder standing in for a sound no real symbol covers."""

    id: int
    ipa_character: str
    name: str
    category: str
    notes: str | None
    source: str


# ---------------------------------------------------------------------------
# Phrase translation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PhraseWord:
    """One token of a phrase. Line breaks are tokens too."""

    original: str
    normalized: str
    position: int


@dataclass(frozen=True, slots=True)
class PhraseGlyph:
    """One written unit of a translation: a real symbol or an IPA character."""

    position: int
    symbol_id: int | None = None
    ipa_character: str | None = None

    @property
    def is_virtual(self) -> bool:
        return self.symbol_id is None


@dataclass(frozen=True, slots=True)
class WordTranslation:
    """How one word was written: from the lexicon, or spelled on the fly."""

    word: PhraseWord
    source: str
    spelling: tuple[PhraseGlyph, ...]
    has_virtual_glyphs: bool
    entry: EntryModel | None = None


@dataclass(frozen=True, slots=True)
class PhraseTranslation:
    """A whole phrase written in the script. Never persisted."""

    original_phrase: str
    normalized_phrase: str
    words: tuple[WordTranslation, ...]
    combined: tuple[PhraseGlyph, ...]
    has_virtual_glyphs: bool


# ---------------------------------------------------------------------------
# History and validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EditRecord:
    """A single edit-history entry recording one field-level change."""

    id: int
    entity_type: str
    entity_id: str
    field_name: str | None
    operation: str
    old_value: str | None
    new_value: str | None
    timestamp: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """A single validation finding (error or warning)."""

    rule_id: str
    severity: str
    entity_type: str
    entity_id: str
    message: str
    details: dict | None
