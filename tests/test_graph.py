"""Tests for the in-memory ancestry graph."""

import pytest

from glyphlex.exceptions import ValidationError
from glyphlex.graph import AncestryGraph
from glyphlex.models import AncestryEdge, EntryModel


def _edge(child, ancestor, position=0, kind="derived"):
    return AncestryEdge(child, ancestor, position, kind)


def _entry(entry_id):
    return EntryModel(entry_id, f"w{entry_id}", None, True, True, None, None, None)


@pytest.fixture
def chain():
    """1 <- 2 <- 3 <- 4 (4 descends from 3, and so on)."""
    return AncestryGraph([_edge(2, 1), _edge(3, 2), _edge(4, 3)])


class TestWouldCreateCycle:

    def test_self_reference(self):
        assert AncestryGraph().would_create_cycle(1, 1)

    def test_reverse_edge(self):
        graph = AncestryGraph([_edge(1, 2)])
        assert graph.would_create_cycle(2, 1)

    def test_transitive(self, chain):
        assert chain.would_create_cycle(1, 4)

    def test_harmless_edge(self, chain):
        assert not chain.would_create_cycle(4, 1)
        assert not chain.would_create_cycle(5, 1)

    def test_diamond_is_not_a_cycle(self):
        graph = AncestryGraph([_edge(3, 1)])
        assert not graph.would_create_cycle(3, 2)

    def test_deep_chain_no_recursion_limit(self):
        n = 5000
        graph = AncestryGraph([_edge(i + 1, i) for i in range(n)])
        assert graph.would_create_cycle(0, n)


class TestFindCycle:

    def test_acyclic(self, chain):
        assert chain.find_cycle() is None

    def test_finds_cycle(self):
        graph = AncestryGraph([_edge(1, 2), _edge(2, 3), _edge(3, 1)])
        cycle = graph.find_cycle()
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {1, 2, 3}

    def test_diamond_has_no_cycle(self):
        graph = AncestryGraph([_edge(3, 1), _edge(3, 2), _edge(4, 3), _edge(4, 1)])
        assert graph.find_cycle() is None


class TestClosures:

    def test_ancestor_ids(self, chain):
        assert chain.ancestor_ids(4) == [3, 2, 1]

    def test_descendant_ids(self, chain):
        assert chain.descendant_ids(1) == [2, 3, 4]

    def test_depth_limit(self, chain):
        assert chain.ancestor_ids(4, max_depth=1) == [3]
        assert chain.ancestor_ids(4, max_depth=2) == [3, 2]
        assert chain.ancestor_ids(4, max_depth=0) == []

    def test_negative_depth_rejected(self, chain):
        with pytest.raises(ValidationError):
            chain.ancestor_ids(4, max_depth=-1)

    def test_diamond_deduplicated(self):
        graph = AncestryGraph([_edge(4, 2), _edge(4, 3), _edge(2, 1), _edge(3, 1)])
        assert graph.ancestor_ids(4) == [2, 3, 1]

    def test_order_by_position(self):
        graph = AncestryGraph([_edge(1, 9, position=1), _edge(1, 8, position=0)])
        assert graph.ancestor_ids(1) == [8, 9]


class TestBuildTree:

    def test_nested_tree(self, chain):
        entries = {i: _entry(i) for i in range(1, 5)}
        tree = chain.build_tree(entries[4], entries)
        assert tree.entry.id == 4
        assert tree.kind is None
        assert tree.ancestors[0].entry.id == 3
        assert tree.ancestors[0].kind == "derived"
        assert tree.ancestors[0].ancestors[0].ancestors[0].entry.id == 1

    def test_max_depth_leaves_unexpanded(self, chain):
        entries = {i: _entry(i) for i in range(1, 5)}
        tree = chain.build_tree(entries[4], entries, max_depth=1)
        assert [a.entry.id for a in tree.ancestors] == [3]
        assert tree.ancestors[0].ancestors == ()

    def test_diamond_appears_under_each_branch(self):
        graph = AncestryGraph([
            _edge(4, 2, 0), _edge(4, 3, 1), _edge(2, 1), _edge(3, 1),
        ])
        entries = {i: _entry(i) for i in range(1, 5)}
        tree = graph.build_tree(entries[4], entries)
        assert [a.entry.id for a in tree.ancestors] == [2, 3]
        assert tree.ancestors[0].ancestors[0].entry.id == 1
        assert tree.ancestors[1].ancestors[0].entry.id == 1

    def test_cycle_does_not_loop(self):
        graph = AncestryGraph([_edge(1, 2), _edge(2, 1)])
        entries = {1: _entry(1), 2: _entry(2)}
        tree = graph.build_tree(entries[1], entries)
        assert tree.ancestors[0].entry.id == 2
        assert tree.ancestors[0].ancestors[0].entry.id == 1
        assert tree.ancestors[0].ancestors[0].ancestors == ()

    def test_unknown_entry_skipped(self):
        graph = AncestryGraph([_edge(1, 2)])
        tree = graph.build_tree(_entry(1), {})
        assert tree.ancestors == ()
