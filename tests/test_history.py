"""Tests for change tracking / edit history."""

import datetime
import time

import pytest

from glyphlex import CycleDetectedError


class TestHistoryCreate:

    def test_create_records_history(self, editor):
        entry = editor.create_entry("ka")
        hist = editor.get_history(entity_type="entry", entity_id=entry.id)
        assert [h.operation for h in hist] == ["CREATE"]
        assert '"ka"' in hist[0].new_value

    def test_symbol_and_sound(self, editor):
        s = editor.create_symbol("K", sounds=["k"])
        assert editor.get_history(entity_type="symbol", entity_id=s.id)
        assert editor.get_history(entity_type="sound")


class TestHistoryUpdate:

    def test_update_records_field_change(self, editor):
        entry = editor.create_entry("ka", meaning="water")
        editor.update_entry(entry.id, meaning="river")
        rec = [
            h for h in editor.get_history(entity_type="entry", entity_id=entry.id)
            if h.operation == "UPDATE"
        ][0]
        assert rec.field_name == "meaning"
        # History stores JSON-encoded values
        assert rec.old_value == '"water"'
        assert rec.new_value == '"river"'

    def test_unchanged_field_not_recorded(self, editor):
        entry = editor.create_entry("ka", meaning="water")
        editor.update_entry(entry.id, meaning="water")
        assert editor.get_history(entity_type="entry", operation="UPDATE") == []

    def test_spelling_change(self, editor_with_script):
        ed, sym = editor_with_script
        entry = ed.create_entry("x")
        ed.set_spelling(entry.id, [sym["a"].id])
        hist = ed.get_history(entity_type="spelling", entity_id=entry.id)
        assert len(hist) == 1


class TestHistoryDelete:

    def test_delete_records_history(self, editor):
        entry = editor.create_entry("ka")
        editor.delete_entry(entry.id)
        hist = editor.get_history(entity_type="entry", entity_id=entry.id)
        assert hist[-1].operation == "DELETE"


class TestHistoryAncestry:

    def test_add_and_remove(self, editor_with_family):
        ed, root, mid, leaf, other = editor_with_family
        ed.remove_ancestor(leaf.id, mid.id)
        ops = [h.operation for h in ed.get_history(entity_type="ancestry", entity_id=leaf.id)]
        assert ops == ["CREATE", "DELETE"]

    def test_rejected_cycle_not_recorded(self, editor_with_family):
        ed, root, mid, leaf, other = editor_with_family
        before = len(ed.get_history())
        with pytest.raises(CycleDetectedError):
            ed.add_ancestor(root.id, leaf.id)
        assert len(ed.get_history()) == before


class TestHistoryTimestamp:

    def test_filter_by_timestamp(self, editor):
        editor.create_entry("first")

        # Database uses UTC timestamps with microseconds
        time.sleep(0.1)
        middle = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")
        time.sleep(0.1)

        second = editor.create_entry("second")

        changes = editor.get_changes_since(middle)
        assert [c.entity_id for c in changes] == [str(second.id)]

    def test_limit(self, editor):
        for word in ("a", "b", "c"):
            editor.create_entry(word)
        assert len(editor.get_history(limit=2)) == 2
