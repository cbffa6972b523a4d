"""Etymology operations against the store.

Every mutation loads a snapshot of the ancestry edges, checks each proposed
edge for cycles, and only then writes. A rejected mutation raises
:class:`~glyphlex.exceptions.CycleDetectedError` before anything is
touched, so the edge set is left exactly as it was.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence

from glyphlex import db as _db
from glyphlex.exceptions import (
    CycleDetectedError,
    DuplicateEntityError,
    EntityNotFoundError,
    ValidationError,
)
from glyphlex.graph import DEFAULT_MAX_DEPTH, AncestryGraph
from glyphlex.models import (
    AncestorEntry,
    AncestryEdge,
    AncestryInput,
    AncestryNode,
    DescendantEntry,
    EntryModel,
)
from glyphlex.relations import DEFAULT_ANCESTRY_KIND, is_valid_ancestry_kind

logger = logging.getLogger(__name__)


def load_graph(conn: sqlite3.Connection) -> AncestryGraph:
    """Snapshot the current ancestry edges."""
    return AncestryGraph(_db.get_all_ancestry_edges(conn))


def _check_kind(kind: str) -> None:
    if not is_valid_ancestry_kind(kind):
        raise ValidationError(f"Invalid ancestry kind: {kind!r}")


def _check_position(position: object) -> None:
    if isinstance(position, bool) or not isinstance(position, int) or position < 0:
        raise ValidationError(
            f"Ancestor position must be a non-negative integer: {position!r}"
        )


def _check_acyclic(graph: AncestryGraph, edges: Sequence[AncestryEdge]) -> None:
    for edge in edges:
        if graph.would_create_cycle(edge.entry_id, edge.ancestor_id):
            logger.warning(
                f"Rejected ancestry edge {edge.entry_id}->{edge.ancestor_id}: "
                f"cycle"
            )
            raise CycleDetectedError(edge.entry_id, edge.ancestor_id)


def would_create_cycle(
    conn: sqlite3.Connection, entry_id: int, ancestor_id: int
) -> bool:
    """Whether making ``ancestor_id`` an ancestor of ``entry_id`` closes a cycle."""
    return load_graph(conn).would_create_cycle(entry_id, ancestor_id)


def add_ancestor(
    conn: sqlite3.Connection,
    entry_id: int,
    ancestor_id: int,
    *,
    kind: str = DEFAULT_ANCESTRY_KIND,
    position: int | None = None,
) -> AncestryEdge:
    """Add one ancestor; appended after existing ones unless a position is given."""
    _check_kind(kind)
    graph = load_graph(conn)
    existing = graph.ancestors_of(entry_id)
    if any(e.ancestor_id == ancestor_id for e in existing):
        raise DuplicateEntityError(
            f"Entry {entry_id} already derives from {ancestor_id}"
        )
    if position is None:
        position = max((e.position for e in existing), default=-1) + 1
    else:
        _check_position(position)
    edge = AncestryEdge(entry_id, ancestor_id, position, kind)
    _check_acyclic(graph, [edge])

    _db.insert_ancestry_edges(conn, [edge])
    _db.touch_entry(conn, entry_id)
    logger.debug(f"Added ancestry edge {entry_id}->{ancestor_id} ({kind})")
    return edge


def _plan_edges(
    entry_id: int, ancestry: Sequence[AncestryInput | int]
) -> list[AncestryEdge]:
    edges: list[AncestryEdge] = []
    seen: set[int] = set()
    for index, item in enumerate(ancestry):
        if not isinstance(item, AncestryInput):
            item = AncestryInput(ancestor_id=item)
        _check_kind(item.kind)
        if item.ancestor_id in seen:
            raise ValidationError(
                f"Ancestor {item.ancestor_id} listed more than once"
            )
        seen.add(item.ancestor_id)
        if item.position is None:
            position = index
        else:
            _check_position(item.position)
            position = item.position
        edges.append(AncestryEdge(entry_id, item.ancestor_id, position, item.kind))
    return edges


def set_ancestry(
    conn: sqlite3.Connection,
    entry_id: int,
    ancestry: Sequence[AncestryInput | int],
) -> list[AncestryEdge]:
    """Replace all ancestors of an entry.

    Either every proposed edge is accepted or none is: the whole request is
    checked before the old edges are removed.
    """
    edges = _plan_edges(entry_id, ancestry)
    # The entry's current ancestor edges cannot lie on a path that leads
    # back to it, so checking against the full snapshot is exact.
    _check_acyclic(load_graph(conn), edges)

    removed = _db.delete_ancestry_edges(conn, entry_id=entry_id)
    _db.insert_ancestry_edges(conn, edges)
    _db.touch_entry(conn, entry_id)
    logger.debug(
        f"Replaced ancestry of {entry_id}: {removed} removed, {len(edges)} added"
    )
    return edges


def remove_ancestor(conn: sqlite3.Connection, entry_id: int, ancestor_id: int) -> bool:
    """Delete a single edge. Removing an edge never creates a cycle."""
    removed = _db.delete_ancestry_edges(
        conn, entry_id=entry_id, ancestor_id=ancestor_id
    )
    if removed:
        _db.touch_entry(conn, entry_id)
    return removed > 0


def clear_ancestry(conn: sqlite3.Connection, entry_id: int) -> int:
    """Delete every ancestor edge of an entry. Returns the number removed."""
    removed = _db.delete_ancestry_edges(conn, entry_id=entry_id)
    if removed:
        _db.touch_entry(conn, entry_id)
    return removed


def on_entry_deleted(conn: sqlite3.Connection, entry_id: int) -> int:
    """Drop every edge that mentions a deleted entry, as child or ancestor."""
    as_child = _db.delete_ancestry_edges(conn, entry_id=entry_id)
    descendants = [e.entry_id for e in _db.get_descendant_edges(conn, entry_id)]
    as_ancestor = _db.delete_ancestry_edges(conn, ancestor_id=entry_id)
    for child_id in descendants:
        _db.touch_entry(conn, child_id)
    if as_child or as_ancestor:
        logger.debug(
            f"Entry {entry_id} deleted: removed {as_child} ancestor and "
            f"{as_ancestor} descendant edges"
        )
    return as_child + as_ancestor


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_ancestors(conn: sqlite3.Connection, entry_id: int) -> list[AncestorEntry]:
    """Direct ancestors of an entry, ordered by position."""
    rows = conn.execute(
        "SELECT e.*, a.position AS edge_position, a.kind AS edge_kind "
        "FROM entries e JOIN entry_ancestry a ON e.id = a.ancestor_id "
        "WHERE a.entry_id = ? ORDER BY a.position, a.id",
        (entry_id,),
    ).fetchall()
    return [
        AncestorEntry(
            entry=EntryModel.from_row(r),
            kind=r["edge_kind"],
            position=r["edge_position"],
        )
        for r in rows
    ]


def get_descendants(conn: sqlite3.Connection, ancestor_id: int) -> list[DescendantEntry]:
    """Entries derived directly from ``ancestor_id``, ordered by lemma."""
    rows = conn.execute(
        "SELECT e.*, a.kind AS edge_kind "
        "FROM entries e JOIN entry_ancestry a ON e.id = a.entry_id "
        "WHERE a.ancestor_id = ? ORDER BY e.lemma, e.id",
        (ancestor_id,),
    ).fetchall()
    return [
        DescendantEntry(entry=EntryModel.from_row(r), kind=r["edge_kind"])
        for r in rows
    ]


def get_full_ancestry_tree(
    conn: sqlite3.Connection,
    root_id: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> AncestryNode:
    """Nested ancestry tree of an entry, down to ``max_depth`` generations."""
    root_row = _db.get_entry_row(conn, root_id)
    if root_row is None:
        raise EntityNotFoundError(f"Entry not found: {root_id!r}")
    graph = load_graph(conn)
    ids = graph.ancestor_ids(root_id, max_depth)
    entries = {
        entry_id: EntryModel.from_row(row)
        for entry_id, row in _db.get_entry_rows(conn, ids).items()
    }
    return graph.build_tree(EntryModel.from_row(root_row), entries, max_depth)


def get_all_ancestor_ids(
    conn: sqlite3.Connection, root_id: int, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[int]:
    """Flattened ancestor closure of an entry."""
    return load_graph(conn).ancestor_ids(root_id, max_depth)


def get_all_descendant_ids(
    conn: sqlite3.Connection, root_id: int, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[int]:
    """Flattened descendant closure of an entry."""
    return load_graph(conn).descendant_ids(root_id, max_depth)
