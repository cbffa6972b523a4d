"""Shared test fixtures for glyphlex."""

import pytest

from glyphlex import GlyphlexEditor


@pytest.fixture
def editor():
    """Create an in-memory editor for testing."""
    with GlyphlexEditor(":memory:") as ed:
        yield ed


@pytest.fixture
def editor_with_script(editor):
    """Editor with symbols for the sounds a, b, ab, c and sh."""
    ed = editor
    symbols = {
        "a": ed.create_symbol("A", sounds=["a"]),
        "b": ed.create_symbol("B", sounds=["b"]),
        "ab": ed.create_symbol("AB", sounds=["ab"]),
        "c": ed.create_symbol("C", sounds=["c"]),
        "sh": ed.create_symbol("SH", sounds=["sh"]),
    }
    return ed, symbols


@pytest.fixture
def editor_with_family(editor):
    """Editor with a small etymology: root <- mid <- leaf, root <- other."""
    ed = editor
    root = ed.create_entry("root")
    mid = ed.create_entry("mid")
    leaf = ed.create_entry("leaf")
    other = ed.create_entry("other")
    ed.add_ancestor(mid.id, root.id)
    ed.add_ancestor(leaf.id, mid.id)
    ed.add_ancestor(other.id, root.id, kind="borrowed")
    return ed, root, mid, leaf, other
