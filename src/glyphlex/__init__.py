"""
glyphlex: lexicon and script editor for constructed languages.

Spells pronunciations with the symbols of a constructed script and keeps
the etymology of its vocabulary acyclic.

Example usage:
    from glyphlex import GlyphlexEditor

    with GlyphlexEditor("lexicon.db") as ed:
        a = ed.create_symbol("a", sounds=["a"])
        b = ed.create_symbol("b", sounds=["b"])
        entry = ed.create_entry("ab", pronunciation="ab")
        print(ed.get_spelling(entry.id))
"""

__version__ = "0.1.0"

from .editor import GlyphlexEditor as GlyphlexEditor

from .exceptions import (
    GlyphlexError as GlyphlexError,
    ValidationError as ValidationError,
    EntityNotFoundError as EntityNotFoundError,
    DuplicateEntityError as DuplicateEntityError,
    RelationError as RelationError,
    CycleDetectedError as CycleDetectedError,
    DatabaseError as DatabaseError,
)

from .models import (
    AncestryKind as AncestryKind,
    SpellFailure as SpellFailure,
    EditOperation as EditOperation,
    ValidationSeverity as ValidationSeverity,
    GlyphModel as GlyphModel,
    SymbolModel as SymbolModel,
    SoundMapping as SoundMapping,
    EntryModel as EntryModel,
    AncestryEdge as AncestryEdge,
    AncestryInput as AncestryInput,
    AncestorEntry as AncestorEntry,
    DescendantEntry as DescendantEntry,
    AncestryNode as AncestryNode,
    EntryUsage as EntryUsage,
    SpellingEntry as SpellingEntry,
    SpellResult as SpellResult,
    FallbackSpellResult as FallbackSpellResult,
    StoredSpelling as StoredSpelling,
    VirtualSymbol as VirtualSymbol,
    PhraseWord as PhraseWord,
    PhraseGlyph as PhraseGlyph,
    WordTranslation as WordTranslation,
    PhraseTranslation as PhraseTranslation,
    EditRecord as EditRecord,
    ValidationResult as ValidationResult,
)

from .phonemes import (
    PhonemeMap as PhonemeMap,
    build_phoneme_map as build_phoneme_map,
)

from .spelling import spell as spell

from .fallback import (
    resolve_with_fallback as resolve_with_fallback,
    virtual_symbol_id as virtual_symbol_id,
    is_virtual_symbol_id as is_virtual_symbol_id,
    create_virtual_symbol as create_virtual_symbol,
    build_virtual_symbol_map as build_virtual_symbol_map,
)

from .phrases import tokenize_phrase as tokenize_phrase

from .graph import (
    AncestryGraph as AncestryGraph,
    DEFAULT_MAX_DEPTH as DEFAULT_MAX_DEPTH,
)

# Batch module - import as submodule to avoid naming conflicts
from . import batch

__all__ = [
    "batch",
    # Editor
    "GlyphlexEditor",
    # Exceptions
    "GlyphlexError",
    "ValidationError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "RelationError",
    "CycleDetectedError",
    "DatabaseError",
    # Enums
    "AncestryKind",
    "SpellFailure",
    "EditOperation",
    "ValidationSeverity",
    # Models
    "GlyphModel",
    "SymbolModel",
    "SoundMapping",
    "EntryModel",
    "AncestryEdge",
    "AncestryInput",
    "AncestorEntry",
    "DescendantEntry",
    "AncestryNode",
    "EntryUsage",
    "SpellingEntry",
    "SpellResult",
    "FallbackSpellResult",
    "StoredSpelling",
    "VirtualSymbol",
    "PhraseWord",
    "PhraseGlyph",
    "WordTranslation",
    "PhraseTranslation",
    "EditRecord",
    "ValidationResult",
    # Pure spelling and graph functions
    "PhonemeMap",
    "build_phoneme_map",
    "spell",
    "resolve_with_fallback",
    "virtual_symbol_id",
    "is_virtual_symbol_id",
    "create_virtual_symbol",
    "build_virtual_symbol_map",
    "tokenize_phrase",
    "AncestryGraph",
    "DEFAULT_MAX_DEPTH",
]
