"""Validation engine for glyphlex."""

from __future__ import annotations

import sqlite3

from glyphlex import ancestry as _anc
from glyphlex.models import ValidationResult, ValidationSeverity
from glyphlex.phonemes import load_phoneme_map
from glyphlex.relations import ANCESTRY_KINDS
from glyphlex.spelling import spell


def validate_all(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Run all validation rules."""
    results: list[ValidationResult] = []
    results.extend(_val_anc_001(conn))
    results.extend(_val_anc_002(conn))
    results.extend(_val_anc_003(conn))
    results.extend(_val_snd_001(conn))
    results.extend(_val_snd_002(conn))
    results.extend(_val_ent_001(conn))
    results.extend(_val_ent_002(conn))
    results.extend(_val_ent_003(conn))
    return results


def validate_ancestry(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Check the etymology graph only."""
    results: list[ValidationResult] = []
    results.extend(_val_anc_001(conn))
    results.extend(_val_anc_002(conn))
    results.extend(_val_anc_003(conn))
    return results


def validate_entry(
    conn: sqlite3.Connection, entry_id: int
) -> list[ValidationResult]:
    """Validate a specific entry."""
    return [
        r for r in _val_ent_001(conn) + _val_ent_002(conn) + _val_ent_003(conn)
        if r.entity_id == str(entry_id)
    ]


# ------------------------------------------------------------------
# Individual rule implementations
# ------------------------------------------------------------------

def _val_anc_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Cycle in the etymology graph."""
    cycle = _anc.load_graph(conn).find_cycle()
    if cycle is None:
        return []
    return [ValidationResult(
        rule_id="VAL-ANC-001",
        severity=ValidationSeverity.ERROR.value,
        entity_type="ancestry",
        entity_id=str(cycle[0]),
        message=(
            "Etymology cycle: "
            + " -> ".join(str(entry_id) for entry_id in cycle)
        ),
        details={"cycle": cycle},
    )]


def _val_anc_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Two ancestors of one entry share a position."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT entry_id, position, COUNT(*) as cnt FROM entry_ancestry "
        "GROUP BY entry_id, position HAVING cnt > 1 "
        "ORDER BY entry_id, position"
    ).fetchall()
    for row in rows:
        results.append(ValidationResult(
            rule_id="VAL-ANC-002",
            severity=ValidationSeverity.WARNING.value,
            entity_type="entry",
            entity_id=str(row["entry_id"]),
            message=(
                f"{row['cnt']} ancestors share position {row['position']}"
            ),
            details={"position": row["position"]},
        ))
    return results


def _val_anc_003(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Unknown ancestry kind."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT entry_id, ancestor_id, kind FROM entry_ancestry "
        "ORDER BY entry_id, ancestor_id"
    ).fetchall()
    for row in rows:
        if row["kind"] in ANCESTRY_KINDS:
            continue
        results.append(ValidationResult(
            rule_id="VAL-ANC-003",
            severity=ValidationSeverity.ERROR.value,
            entity_type="ancestry",
            entity_id=f"{row['entry_id']}->{row['ancestor_id']}",
            message=f"Unknown ancestry kind: {row['kind']!r}",
            details=None,
        ))
    return results


def _val_snd_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Blank sound string."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT id, symbol_id FROM sound_mappings "
        "WHERE sound IS NULL OR TRIM(sound) = '' ORDER BY id"
    ).fetchall()
    for row in rows:
        results.append(ValidationResult(
            rule_id="VAL-SND-001",
            severity=ValidationSeverity.ERROR.value,
            entity_type="sound",
            entity_id=str(row["id"]),
            message=f"Symbol {row['symbol_id']} has a blank sound",
            details=None,
        ))
    return results


def _val_snd_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Auto-spell sound shadowed by a lower-numbered symbol."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT s.id, s.symbol_id, s.sound, "
        "(SELECT MIN(o.symbol_id) FROM sound_mappings o "
        " WHERE o.sound = s.sound AND o.auto_spell = 1) as winner "
        "FROM sound_mappings s WHERE s.auto_spell = 1 ORDER BY s.id"
    ).fetchall()
    for row in rows:
        if row["symbol_id"] == row["winner"]:
            continue
        results.append(ValidationResult(
            rule_id="VAL-SND-002",
            severity=ValidationSeverity.WARNING.value,
            entity_type="sound",
            entity_id=str(row["id"]),
            message=(
                f"Sound {row['sound']!r} of symbol {row['symbol_id']} is "
                f"never used for auto-spelling; symbol {row['winner']} "
                f"takes it"
            ),
            details={"sound": row["sound"], "symbol_id": row["winner"]},
        ))
    return results


def _val_ent_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Auto-spelled entry whose pronunciation cannot be spelled."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT id, pronunciation FROM entries "
        "WHERE auto_spell = 1 AND pronunciation IS NOT NULL "
        "AND TRIM(pronunciation) != '' ORDER BY id"
    ).fetchall()
    if not rows:
        return results
    phoneme_map = load_phoneme_map(conn)
    for row in rows:
        result = spell(row["pronunciation"], phoneme_map)
        if result.success:
            continue
        results.append(ValidationResult(
            rule_id="VAL-ENT-001",
            severity=ValidationSeverity.WARNING.value,
            entity_type="entry",
            entity_id=str(row["id"]),
            message=(
                f"Pronunciation {row['pronunciation']!r} cannot be "
                f"auto-spelled: {result.error}"
            ),
            details={"unmatched": list(result.unmatched_parts)},
        ))
    return results


def _val_ent_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Entry without a spelling."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT e.id FROM entries e "
        "WHERE NOT EXISTS "
        "(SELECT 1 FROM entry_spelling sp WHERE sp.entry_id = e.id) "
        "ORDER BY e.id"
    ).fetchall()
    for row in rows:
        results.append(ValidationResult(
            rule_id="VAL-ENT-002",
            severity=ValidationSeverity.WARNING.value,
            entity_type="entry",
            entity_id=str(row["id"]),
            message="Entry has no spelling",
            details=None,
        ))
    return results


def _val_ent_003(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Spelling that still holds IPA fallback characters."""
    results: list[ValidationResult] = []
    rows = conn.execute(
        "SELECT entry_id, COUNT(*) AS cnt FROM entry_spelling "
        "WHERE ipa_character IS NOT NULL "
        "GROUP BY entry_id ORDER BY entry_id"
    ).fetchall()
    for row in rows:
        results.append(ValidationResult(
            rule_id="VAL-ENT-003",
            severity=ValidationSeverity.WARNING.value,
            entity_type="entry",
            entity_id=str(row["entry_id"]),
            message=(
                f"Spelling uses {row['cnt']} IPA fallback character(s) "
                f"with no symbol"
            ),
            details={"count": row["cnt"]},
        ))
    return results
