"""Complete spellings by standing in virtual symbols for unmatched sounds.

Virtual symbol identifiers are negative, so they never collide with real
symbol identifiers, and are a pure function of the character: the same
character always receives the same identifier, across calls and across
process restarts.
"""

from __future__ import annotations

from collections.abc import Mapping

from glyphlex.models import (
    FallbackSpellResult,
    SpellFailure,
    SpellingEntry,
    VirtualSymbol,
)
from glyphlex.segmentation import is_blank, segment

VIRTUAL_ID_RANGE = 1_000_000

VIRTUAL_CATEGORY = "IPA Fallback"
VIRTUAL_SOURCE = "virtual-ipa"

EMPTY_INPUT_MESSAGE = "Pronunciation is empty"


def _hash_string(text: str) -> int:
    """djb2 (xor variant) over code points, kept to 32 bits."""
    h = 5381
    for ch in text:
        h = (((h << 5) + h) ^ ord(ch)) & 0xFFFFFFFF
    return h


def virtual_symbol_id(character: str) -> int:
    """Deterministic negative identifier for a virtual symbol."""
    return -(1 + _hash_string(character) % VIRTUAL_ID_RANGE)


def is_virtual_symbol_id(symbol_id: int) -> bool:
    """Virtual symbols always have negative identifiers."""
    return symbol_id < 0


def create_virtual_symbol(character: str, description: str | None = None) -> VirtualSymbol:
    """Placeholder record for an unmatched character."""
    return VirtualSymbol(
        id=virtual_symbol_id(character),
        ipa_character=character,
        name=character,
        category=VIRTUAL_CATEGORY,
        notes=description,
        source=VIRTUAL_SOURCE,
    )


def resolve_with_fallback(
    pronunciation: str | None, phoneme_map: Mapping[str, int]
) -> FallbackSpellResult:
    """Spell a pronunciation, filling every gap with a virtual symbol.

    Succeeds for any non-blank input, even with an empty phoneme map. The
    real symbols chosen are exactly those strict resolution would choose:
    the same DP runs and only its gaps are replaced.
    """
    if is_blank(pronunciation):
        return FallbackSpellResult(
            success=False,
            spelling=(),
            segments=(),
            unmatched_parts=(),
            error=EMPTY_INPUT_MESSAGE,
            reason=SpellFailure.EMPTY_INPUT,
            has_virtual_glyphs=False,
        )

    result = segment(pronunciation, phoneme_map)
    spelling: list[SpellingEntry] = []
    segments: list[str] = []
    for position, seg in enumerate(result.segments):
        if seg.matched:
            spelling.append(SpellingEntry(seg.symbol_id, position))
        else:
            spelling.append(SpellingEntry(
                symbol_id=virtual_symbol_id(seg.text),
                position=position,
                is_virtual=True,
                ipa_character=seg.text,
            ))
        segments.append(seg.text)

    return FallbackSpellResult(
        success=True,
        spelling=tuple(spelling),
        segments=tuple(segments),
        unmatched_parts=(),
        has_virtual_glyphs=any(s.is_virtual for s in spelling),
    )


def build_virtual_symbol_map(result: FallbackSpellResult) -> dict[int, VirtualSymbol]:
    """Map each virtual identifier in a result to its placeholder record."""
    virtuals: dict[int, VirtualSymbol] = {}
    for entry in result.spelling:
        if entry.is_virtual and entry.ipa_character:
            virtuals[entry.symbol_id] = create_virtual_symbol(entry.ipa_character)
    return virtuals
