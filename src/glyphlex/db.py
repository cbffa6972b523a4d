"""Database connection, DDL, and low-level CRUD for glyphlex."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from pathlib import Path

from glyphlex.exceptions import DatabaseError
from glyphlex.models import AncestryEdge, SoundMapping

SCHEMA_VERSION = "1.1"

DEFAULT_DB_PATH = Path.home() / ".glyphlex.db"


# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_DDL = """
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Script tables
CREATE TABLE IF NOT EXISTS glyphs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    svg_data TEXT NOT NULL DEFAULT '',
    category TEXT,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);

CREATE TABLE IF NOT EXISTS symbols (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS symbol_name_index ON symbols (name);

CREATE TABLE IF NOT EXISTS symbol_glyphs (
    symbol_id INTEGER NOT NULL REFERENCES symbols (id) ON DELETE CASCADE,
    glyph_id INTEGER NOT NULL REFERENCES glyphs (id),
    position INTEGER NOT NULL,
    UNIQUE (symbol_id, position)
);
CREATE INDEX IF NOT EXISTS symbol_glyph_symbol_index ON symbol_glyphs (symbol_id);
CREATE INDEX IF NOT EXISTS symbol_glyph_glyph_index ON symbol_glyphs (glyph_id);

CREATE TABLE IF NOT EXISTS sound_mappings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol_id INTEGER NOT NULL REFERENCES symbols (id) ON DELETE CASCADE,
    sound TEXT NOT NULL,
    auto_spell BOOLEAN CHECK( auto_spell IN (0, 1) ) DEFAULT 0 NOT NULL,
    context TEXT
);
CREATE INDEX IF NOT EXISTS sound_mapping_symbol_index ON sound_mappings (symbol_id);
CREATE INDEX IF NOT EXISTS sound_mapping_sound_index ON sound_mappings (sound);

-- Vocabulary tables
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    lemma TEXT NOT NULL,
    pronunciation TEXT,
    is_native BOOLEAN CHECK( is_native IN (0, 1) ) DEFAULT 1 NOT NULL,
    auto_spell BOOLEAN CHECK( auto_spell IN (0, 1) ) DEFAULT 1 NOT NULL,
    meaning TEXT,
    part_of_speech TEXT,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS entry_lemma_index ON entries (lemma);

CREATE TABLE IF NOT EXISTS entry_spelling (
    entry_id INTEGER NOT NULL REFERENCES entries (id) ON DELETE CASCADE,
    symbol_id INTEGER REFERENCES symbols (id),
    ipa_character TEXT,
    position INTEGER NOT NULL,
    CHECK( (symbol_id IS NULL) != (ipa_character IS NULL) ),
    UNIQUE (entry_id, position)
);
CREATE INDEX IF NOT EXISTS entry_spelling_entry_index ON entry_spelling (entry_id);
CREATE INDEX IF NOT EXISTS entry_spelling_symbol_index ON entry_spelling (symbol_id);

CREATE TABLE IF NOT EXISTS entry_ancestry (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id INTEGER NOT NULL REFERENCES entries (id) ON DELETE CASCADE,
    ancestor_id INTEGER NOT NULL REFERENCES entries (id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0 CHECK( typeof(position) = 'integer' AND position >= 0 ),
    kind TEXT NOT NULL DEFAULT 'derived',
    CHECK( entry_id != ancestor_id ),
    UNIQUE (entry_id, ancestor_id)
);
CREATE INDEX IF NOT EXISTS entry_ancestry_entry_index ON entry_ancestry (entry_id);
CREATE INDEX IF NOT EXISTS entry_ancestry_ancestor_index ON entry_ancestry (ancestor_id);

-- Edit history
CREATE TABLE IF NOT EXISTS edit_history (
    rowid INTEGER PRIMARY KEY,
    entity_type TEXT NOT NULL CHECK( entity_type IN ('glyph','symbol','sound','entry','spelling','ancestry') ),
    entity_id TEXT NOT NULL,
    field_name TEXT,
    operation TEXT NOT NULL CHECK( operation IN ('CREATE', 'UPDATE', 'DELETE') ),
    old_value TEXT,
    new_value TEXT,
    timestamp TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS edit_history_entity_index ON edit_history (entity_type, entity_id);
CREATE INDEX IF NOT EXISTS edit_history_timestamp_index ON edit_history (timestamp);
"""


def connect(db_path: str | Path = ":memory:") -> sqlite3.Connection:
    """Open a database connection with editor PRAGMA settings."""
    db_path_str = str(db_path)
    conn = sqlite3.connect(db_path_str)
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) "
        "VALUES ('created_at', strftime('%Y-%m-%dT%H:%M:%f', 'now'))",
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def get_glyph_row(conn: sqlite3.Connection, glyph_id: int) -> sqlite3.Row | None:
    """Get a full glyph row by ID."""
    return conn.execute(
        "SELECT * FROM glyphs WHERE id = ?",
        (glyph_id,),
    ).fetchone()


def get_symbol_row(conn: sqlite3.Connection, symbol_id: int) -> sqlite3.Row | None:
    """Get a full symbol row by ID."""
    return conn.execute(
        "SELECT * FROM symbols WHERE id = ?",
        (symbol_id,),
    ).fetchone()


def get_symbol_glyph_ids(conn: sqlite3.Connection, symbol_id: int) -> tuple[int, ...]:
    """Get the ordered glyph IDs that compose a symbol."""
    rows = conn.execute(
        "SELECT glyph_id FROM symbol_glyphs WHERE symbol_id = ? ORDER BY position",
        (symbol_id,),
    ).fetchall()
    return tuple(r[0] for r in rows)


def get_sound_row(conn: sqlite3.Connection, sound_id: int) -> sqlite3.Row | None:
    """Get a full sound mapping row by ID."""
    return conn.execute(
        "SELECT * FROM sound_mappings WHERE id = ?",
        (sound_id,),
    ).fetchone()


def get_entry_row(conn: sqlite3.Connection, entry_id: int) -> sqlite3.Row | None:
    """Get a full entry row by ID."""
    return conn.execute(
        "SELECT * FROM entries WHERE id = ?",
        (entry_id,),
    ).fetchone()


def entry_exists(conn: sqlite3.Connection, entry_id: int) -> bool:
    """Check whether an entry with this ID exists."""
    row = conn.execute(
        "SELECT 1 FROM entries WHERE id = ?",
        (entry_id,),
    ).fetchone()
    return row is not None


def get_entry_rows(
    conn: sqlite3.Connection, entry_ids: Iterable[int]
) -> dict[int, sqlite3.Row]:
    """Get entry rows for several IDs at once, keyed by ID."""
    ids = list(dict.fromkeys(entry_ids))
    if not ids:
        return {}
    placeholders = ", ".join("?" for _ in ids)
    rows = conn.execute(
        f"SELECT * FROM entries WHERE id IN ({placeholders})",
        ids,
    ).fetchall()
    return {r["id"]: r for r in rows}


def touch_entry(conn: sqlite3.Connection, entry_id: int) -> None:
    """Bump an entry's ``updated_at`` timestamp."""
    conn.execute(
        "UPDATE entries SET updated_at = strftime('%Y-%m-%dT%H:%M:%f', 'now') "
        "WHERE id = ?",
        (entry_id,),
    )


# ---------------------------------------------------------------------------
# Sound mapping primitives
# ---------------------------------------------------------------------------

def get_usable_sound_mappings(conn: sqlite3.Connection) -> list[SoundMapping]:
    """All sound mappings flagged for auto-spelling, lowest symbol first."""
    rows = conn.execute(
        "SELECT * FROM sound_mappings WHERE auto_spell = 1 "
        "ORDER BY symbol_id, id"
    ).fetchall()
    return [SoundMapping.from_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Spelling primitives
# ---------------------------------------------------------------------------

SpellingItem = int | str


def get_spelling_items(conn: sqlite3.Connection, entry_id: int) -> list[SpellingItem]:
    """Stored spelling of an entry: symbol IDs and IPA characters in order."""
    rows = conn.execute(
        "SELECT symbol_id, ipa_character FROM entry_spelling "
        "WHERE entry_id = ? ORDER BY position",
        (entry_id,),
    ).fetchall()
    return [
        r["symbol_id"] if r["symbol_id"] is not None else r["ipa_character"]
        for r in rows
    ]


def replace_spelling_items(
    conn: sqlite3.Connection, entry_id: int, items: Iterable[SpellingItem]
) -> None:
    """Overwrite an entry's spelling with already-validated items."""
    conn.execute("DELETE FROM entry_spelling WHERE entry_id = ?", (entry_id,))
    conn.executemany(
        "INSERT INTO entry_spelling (entry_id, symbol_id, ipa_character, position) "
        "VALUES (?, ?, ?, ?)",
        [
            (entry_id, item, None, pos) if isinstance(item, int)
            else (entry_id, None, item, pos)
            for pos, item in enumerate(items)
        ],
    )


def get_entries_using_symbol(conn: sqlite3.Connection, symbol_id: int) -> list[int]:
    """IDs of entries whose spelling contains a symbol."""
    rows = conn.execute(
        "SELECT DISTINCT entry_id FROM entry_spelling WHERE symbol_id = ? "
        "ORDER BY entry_id",
        (symbol_id,),
    ).fetchall()
    return [r[0] for r in rows]


# ---------------------------------------------------------------------------
# Ancestry edge primitives
# ---------------------------------------------------------------------------

def get_ancestry_edges(conn: sqlite3.Connection, entry_id: int) -> list[AncestryEdge]:
    """Edges where ``entry_id`` is the child, ordered by position."""
    rows = conn.execute(
        "SELECT entry_id, ancestor_id, position, kind FROM entry_ancestry "
        "WHERE entry_id = ? ORDER BY position, id",
        (entry_id,),
    ).fetchall()
    return [AncestryEdge.from_row(r) for r in rows]


def get_descendant_edges(conn: sqlite3.Connection, ancestor_id: int) -> list[AncestryEdge]:
    """Edges where ``ancestor_id`` is the ancestor."""
    rows = conn.execute(
        "SELECT entry_id, ancestor_id, position, kind FROM entry_ancestry "
        "WHERE ancestor_id = ? ORDER BY entry_id, id",
        (ancestor_id,),
    ).fetchall()
    return [AncestryEdge.from_row(r) for r in rows]


def get_all_ancestry_edges(conn: sqlite3.Connection) -> list[AncestryEdge]:
    """Every ancestry edge in the database."""
    rows = conn.execute(
        "SELECT entry_id, ancestor_id, position, kind FROM entry_ancestry "
        "ORDER BY entry_id, position, id"
    ).fetchall()
    return [AncestryEdge.from_row(r) for r in rows]


def insert_ancestry_edges(
    conn: sqlite3.Connection, edges: Iterable[AncestryEdge]
) -> None:
    """Insert already-validated ancestry edges."""
    conn.executemany(
        "INSERT INTO entry_ancestry (entry_id, ancestor_id, position, kind) "
        "VALUES (?, ?, ?, ?)",
        [(e.entry_id, e.ancestor_id, e.position, e.kind) for e in edges],
    )


def delete_ancestry_edges(
    conn: sqlite3.Connection,
    *,
    entry_id: int | None = None,
    ancestor_id: int | None = None,
) -> int:
    """Delete edges matching the given child and/or ancestor. Returns count."""
    clauses: list[str] = []
    params: list[int] = []
    if entry_id is not None:
        clauses.append("entry_id = ?")
        params.append(entry_id)
    if ancestor_id is not None:
        clauses.append("ancestor_id = ?")
        params.append(ancestor_id)
    if not clauses:
        raise ValueError("delete_ancestry_edges needs entry_id or ancestor_id")
    cur = conn.execute(
        f"DELETE FROM entry_ancestry WHERE {' AND '.join(clauses)}",
        params,
    )
    return cur.rowcount
