"""In-memory etymology graph over vocabulary entries.

Nodes are entry identifiers; an edge ``entry_id -> ancestor_id`` means the
entry derives from the ancestor. Every traversal is iterative with an
explicit visited set, so deep chains never hit the recursion limit.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from glyphlex.exceptions import ValidationError
from glyphlex.models import AncestryEdge, AncestryNode, EntryModel

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 50


def _check_depth(max_depth: int) -> None:
    if max_depth < 0:
        raise ValidationError(f"max_depth must be non-negative, got {max_depth}")


@dataclass
class _Frame:
    entry: EntryModel
    kind: str | None
    position: int | None
    depth: int
    path: frozenset[int]
    pending: list[AncestryEdge]
    built: list[AncestryNode] = field(default_factory=list)


class AncestryGraph:
    """A snapshot of the ancestry edges with traversal queries."""

    def __init__(self, edges: Iterable[AncestryEdge] = ()) -> None:
        self._ancestors: dict[int, list[AncestryEdge]] = {}
        self._descendants: dict[int, list[AncestryEdge]] = {}
        for edge in edges:
            self._ancestors.setdefault(edge.entry_id, []).append(edge)
            self._descendants.setdefault(edge.ancestor_id, []).append(edge)
        for out in self._ancestors.values():
            out.sort(key=lambda e: e.position)
        for into in self._descendants.values():
            into.sort(key=lambda e: e.entry_id)

    def __len__(self) -> int:
        return sum(len(v) for v in self._ancestors.values())

    def ancestors_of(self, entry_id: int) -> list[AncestryEdge]:
        """Direct ancestor edges of an entry, ordered by position."""
        return list(self._ancestors.get(entry_id, ()))

    def descendants_of(self, entry_id: int) -> list[AncestryEdge]:
        """Direct descendant edges of an entry, ordered by child ID."""
        return list(self._descendants.get(entry_id, ()))

    def _ancestor_ids_of(self, entry_id: int) -> list[int]:
        return [e.ancestor_id for e in self._ancestors.get(entry_id, ())]

    def _descendant_ids_of(self, entry_id: int) -> list[int]:
        return [e.entry_id for e in self._descendants.get(entry_id, ())]

    # ------------------------------------------------------------------
    # Cycle checks
    # ------------------------------------------------------------------

    def would_create_cycle(self, entry_id: int, candidate_ancestor_id: int) -> bool:
        """Whether adding ``candidate_ancestor_id`` as an ancestor of
        ``entry_id`` would close a cycle.

        True for a self-reference, or when ``entry_id`` is already reachable
        from the candidate by following ancestor edges, i.e. the candidate
        already descends from the entry.
        """
        if entry_id == candidate_ancestor_id:
            return True
        visited = {candidate_ancestor_id}
        queue = deque([candidate_ancestor_id])
        while queue:
            node = queue.popleft()
            for ancestor_id in self._ancestor_ids_of(node):
                if ancestor_id == entry_id:
                    return True
                if ancestor_id not in visited:
                    visited.add(ancestor_id)
                    queue.append(ancestor_id)
        return False

    def find_cycle(self) -> list[int] | None:
        """Return one cycle as ``[a, b, ..., a]`` if the edges contain one."""
        grey, black = 1, 2
        color: dict[int, int] = {}
        for start in sorted(self._ancestors):
            if start in color:
                continue
            color[start] = grey
            path = [start]
            stack = [iter(self._ancestor_ids_of(start))]
            while stack:
                nxt = next(stack[-1], None)
                if nxt is None:
                    color[path.pop()] = black
                    stack.pop()
                    continue
                state = color.get(nxt)
                if state == grey:
                    return path[path.index(nxt):] + [nxt]
                if state is None:
                    color[nxt] = grey
                    path.append(nxt)
                    stack.append(iter(self._ancestor_ids_of(nxt)))
        return None

    # ------------------------------------------------------------------
    # Closures
    # ------------------------------------------------------------------

    def _closure(self, root_id: int, max_depth: int, forward: bool) -> list[int]:
        _check_depth(max_depth)
        neighbours = self._ancestor_ids_of if forward else self._descendant_ids_of
        found: list[int] = []
        visited = {root_id}
        queue = deque([(root_id, 0)])
        while queue:
            node, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for nxt in neighbours(node):
                if nxt in visited:
                    continue
                visited.add(nxt)
                found.append(nxt)
                queue.append((nxt, depth + 1))
        return found

    def ancestor_ids(self, root_id: int, max_depth: int = DEFAULT_MAX_DEPTH) -> list[int]:
        """Every entry ``root_id`` descends from, within ``max_depth`` steps.

        Deduplicated, in breadth-first discovery order; direct ancestors are
        depth 1.
        """
        return self._closure(root_id, max_depth, forward=True)

    def descendant_ids(self, root_id: int, max_depth: int = DEFAULT_MAX_DEPTH) -> list[int]:
        """Every entry derived from ``root_id``, within ``max_depth`` steps."""
        return self._closure(root_id, max_depth, forward=False)

    # ------------------------------------------------------------------
    # Trees
    # ------------------------------------------------------------------

    def _pending(self, entry_id: int, depth: int, max_depth: int) -> list[AncestryEdge]:
        if depth >= max_depth:
            return []
        # Reversed so that pop() hands out the lowest position first.
        return list(reversed(self._ancestors.get(entry_id, ())))

    def build_tree(
        self,
        root: EntryModel,
        entries: Mapping[int, EntryModel],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> AncestryNode:
        """Nested ancestry tree rooted at ``root``.

        A node shared by several branches (diamond ancestry) appears under
        each of them. Nodes at ``max_depth`` are included but not expanded,
        and a node already on the current path is never expanded again.
        """
        _check_depth(max_depth)
        stack = [_Frame(
            entry=root,
            kind=None,
            position=None,
            depth=0,
            path=frozenset({root.id}),
            pending=self._pending(root.id, 0, max_depth),
        )]
        while True:
            frame = stack[-1]
            if frame.pending:
                edge = frame.pending.pop()
                entry = entries.get(edge.ancestor_id)
                if entry is None:
                    logger.warning(
                        f"Ancestry edge {edge.entry_id}->{edge.ancestor_id} "
                        f"points at an unknown entry"
                    )
                    continue
                depth = frame.depth + 1
                if edge.ancestor_id in frame.path:
                    logger.warning(
                        f"Entry {edge.ancestor_id} is already on the ancestry "
                        f"path of {root.id}; not expanding it again"
                    )
                    pending: list[AncestryEdge] = []
                else:
                    pending = self._pending(edge.ancestor_id, depth, max_depth)
                stack.append(_Frame(
                    entry=entry,
                    kind=edge.kind,
                    position=edge.position,
                    depth=depth,
                    path=frame.path | {edge.ancestor_id},
                    pending=pending,
                ))
                continue

            stack.pop()
            node = AncestryNode(
                entry=frame.entry,
                kind=frame.kind,
                position=frame.position,
                ancestors=tuple(frame.built),
            )
            if not stack:
                return node
            stack[-1].built.append(node)
