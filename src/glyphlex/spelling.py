"""Spelling resolution against the sound mappings in the store.

Strict resolution fails when any character is left unmatched; fallback
resolution fills gaps with virtual symbols. The ``preview_*`` variants run
the identical computation and are guaranteed not to write anything.
Failures such as empty input are returned in the result, never raised.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping

from glyphlex.fallback import EMPTY_INPUT_MESSAGE, resolve_with_fallback
from glyphlex.models import FallbackSpellResult, SpellFailure, SpellingEntry, SpellResult
from glyphlex.phonemes import PhonemeMap, load_phoneme_map
from glyphlex.segmentation import resolve

logger = logging.getLogger(__name__)

NO_USABLE_MAPPING_MESSAGE = (
    "No sounds are marked for auto-spelling. Add sounds to symbols "
    "and enable auto_spell."
)


def spell(pronunciation: str | None, phoneme_map: Mapping[str, int]) -> SpellResult:
    """Strictly spell a pronunciation with a given phoneme map."""
    result = resolve(pronunciation, phoneme_map)

    if result.reason is SpellFailure.EMPTY_INPUT:
        error = EMPTY_INPUT_MESSAGE
    elif result.reason is SpellFailure.NO_USABLE_MAPPING:
        error = NO_USABLE_MAPPING_MESSAGE
    elif result.reason is SpellFailure.PARTIAL_COVERAGE:
        error = f"Could not match: {', '.join(result.unmatched)}"
    else:
        error = None

    if not result.success:
        # No spelling is offered for a partial match; covered sounds are
        # still reported for display.
        return SpellResult(
            success=False,
            spelling=(),
            segments=result.covered,
            unmatched_parts=result.unmatched,
            error=error,
            reason=result.reason,
        )

    spelling = tuple(
        SpellingEntry(seg.symbol_id, position)
        for position, seg in enumerate(result.segments)
    )
    return SpellResult(
        success=True,
        spelling=spelling,
        segments=result.covered,
        unmatched_parts=(),
    )


def resolve_spelling(conn: sqlite3.Connection, pronunciation: str | None) -> SpellResult:
    """Strict spelling against the current store state."""
    result = spell(pronunciation, load_phoneme_map(conn))
    if not result.success:
        logger.debug(f"Strict spelling of {pronunciation!r} failed: {result.error}")
    return result


def resolve_spelling_with_fallback(
    conn: sqlite3.Connection, pronunciation: str | None
) -> FallbackSpellResult:
    """Spelling with virtual symbols for any unmatched characters."""
    return resolve_with_fallback(pronunciation, load_phoneme_map(conn))


def preview_spelling(conn: sqlite3.Connection, pronunciation: str | None) -> SpellResult:
    """Same as :func:`resolve_spelling`; never persists anything."""
    return resolve_spelling(conn, pronunciation)


def preview_spelling_with_fallback(
    conn: sqlite3.Connection, pronunciation: str | None
) -> FallbackSpellResult:
    """Same as :func:`resolve_spelling_with_fallback`; never persists anything."""
    return resolve_spelling_with_fallback(conn, pronunciation)


def get_available_phoneme_map(conn: sqlite3.Connection) -> PhonemeMap:
    """The phoneme map auto-spelling would use right now."""
    return load_phoneme_map(conn)
