"""Build the sound-string to symbol lookup used by auto-spelling.

The map is rebuilt for every resolution so that it always reflects the
sound mappings currently in the store. When several symbols share a sound,
the symbol with the lowest identifier wins.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Mapping
from typing import Union

from glyphlex import db as _db
from glyphlex.models import SoundMapping

logger = logging.getLogger(__name__)

PhonemeMap = dict[str, int]

# Bare ``(symbol_id, sound)`` pairs are treated as usable for auto-spelling.
MappingLike = Union[SoundMapping, tuple[int, str], tuple[int, str, bool]]


def _normalize(mapping: MappingLike) -> tuple[int, str, bool]:
    if isinstance(mapping, SoundMapping):
        return mapping.symbol_id, mapping.sound, mapping.auto_spell
    if len(mapping) == 2:
        symbol_id, sound = mapping
        return symbol_id, sound, True
    symbol_id, sound, usable = mapping
    return symbol_id, sound, bool(usable)


def build_phoneme_map(mappings: Iterable[MappingLike]) -> PhonemeMap:
    """Build ``sound -> symbol_id`` from sound mappings.

    Mappings are visited in ascending symbol order (stable for mappings of
    the same symbol). Mappings not flagged for auto-spelling and blank
    sounds are skipped; the first symbol seen for a sound keeps it.

    An empty result is valid and means no mapping is usable.
    """
    ordered = sorted((_normalize(m) for m in mappings), key=lambda m: m[0])
    phoneme_map: PhonemeMap = {}
    for symbol_id, sound, usable in ordered:
        if not usable or not sound:
            continue
        if sound not in phoneme_map:
            phoneme_map[sound] = symbol_id
    return phoneme_map


def max_sound_length(phoneme_map: Mapping[str, int]) -> int:
    """Length of the longest sound string in the map (0 when empty)."""
    return max((len(s) for s in phoneme_map), default=0)


def load_phoneme_map(conn: sqlite3.Connection) -> PhonemeMap:
    """Read the usable sound mappings from the store and build the map."""
    phoneme_map = build_phoneme_map(_db.get_usable_sound_mappings(conn))
    logger.debug(f"Built phoneme map with {len(phoneme_map)} sounds")
    return phoneme_map
