"""
Executor for batch change requests.

Applies changes to a glyphlex database through the editor. The whole
request runs in one transaction; each change runs in its own savepoint so
that a failing change leaves no partial writes behind.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Generator, List, Optional

from ..editor import GlyphlexEditor
from ..exceptions import EntityNotFoundError, GlyphlexError
from ..models import AncestryInput, FallbackSpellResult
from .schema import (
    ENTRY_UPDATE_FIELDS,
    BatchResult,
    Change,
    ChangeRequest,
    ChangeResult,
    OperationType,
    Reference,
    parse_ancestor_specs,
)

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Raised inside the batch transaction to roll it back."""


def execute_change_request(
    request: ChangeRequest,
    editor: GlyphlexEditor,
    dry_run: bool = False,
    stop_on_error: bool = False,
) -> BatchResult:
    """Execute a batch change request.

    Args:
        request: The change request to execute
        editor: Editor bound to the target database
        dry_run: If True, run every change and then roll everything back
        stop_on_error: If True, roll back everything at the first failure

    Returns:
        BatchResult with details of each change
    """
    start_time = time.time()
    results: List[ChangeResult] = []
    rolled_back = False

    try:
        with editor.batch():
            for i, change in enumerate(request.changes):
                result = _execute_change(change, i, editor)
                results.append(result)
                if not result.success and stop_on_error:
                    raise _Abort(f"change #{i + 1} failed")
            if dry_run:
                raise _Abort("dry run")
    except _Abort as e:
        rolled_back = True
        logger.info(f"Batch rolled back: {e}")

    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)

    return BatchResult(
        total_count=len(request.changes),
        success_count=success_count,
        failure_count=failure_count,
        changes=results,
        duration_seconds=time.time() - start_time,
        dry_run=dry_run,
        rolled_back=rolled_back,
    )


@contextmanager
def _savepoint(editor: GlyphlexEditor, index: int) -> Generator[None, None, None]:
    conn = editor.connection
    name = f"change_{index}"
    conn.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        conn.execute(f"ROLLBACK TO {name}")
        conn.execute(f"RELEASE {name}")
        raise
    else:
        conn.execute(f"RELEASE {name}")


def _execute_change(
    change: Change,
    index: int,
    editor: GlyphlexEditor,
) -> ChangeResult:
    """Execute a single change operation.

    Returns:
        ChangeResult with success/failure status
    """
    op = change.operation
    handler = _HANDLERS.get(op)
    if handler is None:
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Unknown operation: {op}",
            error=f"Unknown operation: {op}",
        )

    try:
        with _savepoint(editor, index):
            return handler(change, index, editor)
    except (GlyphlexError, ValueError) as e:
        logger.warning(f"Change #{index + 1} ({op}) failed: {e}")
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        )
    except Exception as e:
        logger.exception(f"Error executing change #{index + 1} ({op})")
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        )


# =============================================================================
# Reference resolution
# =============================================================================

def resolve_entry(editor: GlyphlexEditor, ref: Reference) -> int:
    """Resolve an entry reference (id or lemma) to an entry id.

    Raises:
        EntityNotFoundError: If no entry matches
        ValueError: If a lemma matches more than one entry
    """
    if isinstance(ref, int) and not isinstance(ref, bool):
        return editor.get_entry(ref).id
    matches = editor.find_entries(lemma=str(ref))
    if not matches:
        raise EntityNotFoundError(f"Entry not found: {ref!r}")
    if len(matches) > 1:
        ids = ", ".join(str(e.id) for e in matches)
        raise ValueError(f"Lemma {ref!r} is ambiguous (entries {ids}); use an id")
    return matches[0].id


def resolve_symbol(editor: GlyphlexEditor, ref: Reference) -> int:
    """Resolve a symbol reference (id or name) to a symbol id."""
    if isinstance(ref, int) and not isinstance(ref, bool):
        return editor.get_symbol(ref).id
    matches = editor.find_symbols(name=str(ref))
    if not matches:
        raise EntityNotFoundError(f"Symbol not found: {ref!r}")
    if len(matches) > 1:
        ids = ", ".join(str(s.id) for s in matches)
        raise ValueError(f"Symbol name {ref!r} is ambiguous (symbols {ids}); use an id")
    return matches[0].id


def _ancestry_inputs(editor: GlyphlexEditor, value: Any) -> List[AncestryInput]:
    return [
        AncestryInput(
            ancestor_id=resolve_entry(editor, spec.entry),
            kind=spec.kind,
            position=spec.position,
        )
        for spec in parse_ancestor_specs(value)
    ]


# =============================================================================
# Operation handlers
# =============================================================================

def _exec_add_symbol(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    sounds = p.get("sounds") or []
    if isinstance(sounds, str):
        sounds = [sounds]
    symbol = editor.create_symbol(
        p["name"],
        sounds=sounds,
        auto_spell=p.get("auto_spell", True),
        notes=p.get("notes"),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Created symbol '{symbol.name}' with {len(sounds)} sound(s)",
        target=symbol.name,
        created_id=symbol.id,
    )


def _exec_add_sound(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    symbol_id = resolve_symbol(editor, p["symbol"])
    mapping = editor.add_sound(
        symbol_id,
        p["sound"],
        auto_spell=p.get("auto_spell", True),
        context=p.get("context"),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Symbol {symbol_id} now stands for '{mapping.sound}'",
        target=str(symbol_id),
        created_id=mapping.id,
    )


def _exec_add_entry(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    ancestry: Optional[List[AncestryInput]] = None
    if p.get("ancestors"):
        ancestry = _ancestry_inputs(editor, p["ancestors"])
    entry = editor.create_entry(
        p["lemma"],
        pronunciation=p.get("pronunciation"),
        is_native=p.get("is_native", True),
        auto_spell=p.get("auto_spell", True),
        meaning=p.get("meaning"),
        part_of_speech=p.get("part_of_speech"),
        notes=p.get("notes"),
        ancestry=ancestry,
    )
    spelled = len(editor.get_spelling(entry.id))
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Created entry '{entry.lemma}' ({spelled} symbol(s) spelled)",
        target=entry.lemma,
        created_id=entry.id,
    )


def _exec_update_entry(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    entry_id = resolve_entry(editor, p["entry"])
    updates = {k: p[k] for k in ENTRY_UPDATE_FIELDS if k in p}
    if not updates:
        raise ValueError("update_entry needs at least one field to change")
    editor.update_entry(entry_id, **updates)
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Updated {', '.join(updates)} of entry {entry_id}",
        target=str(entry_id),
    )


def _exec_delete_entry(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    entry_id = resolve_entry(editor, change.params["entry"])
    editor.delete_entry(entry_id)
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Deleted entry {entry_id}",
        target=str(entry_id),
    )


def _exec_add_ancestor(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    entry_id = resolve_entry(editor, p["entry"])
    ancestor_id = resolve_entry(editor, p["ancestor"])
    edge = editor.add_ancestor(
        entry_id,
        ancestor_id,
        kind=p.get("kind", "derived"),
        position=p.get("position"),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Entry {entry_id} {edge.kind} from {ancestor_id}",
        target=str(entry_id),
    )


def _exec_remove_ancestor(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    entry_id = resolve_entry(editor, p["entry"])
    ancestor_id = resolve_entry(editor, p["ancestor"])
    if not editor.remove_ancestor(entry_id, ancestor_id):
        raise ValueError(f"Entry {entry_id} does not derive from {ancestor_id}")
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Removed ancestor {ancestor_id} from entry {entry_id}",
        target=str(entry_id),
    )


def _exec_set_ancestry(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    entry_id = resolve_entry(editor, p["entry"])
    edges = editor.set_ancestry(entry_id, _ancestry_inputs(editor, p["ancestors"]))
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Entry {entry_id} now has {len(edges)} ancestor(s)",
        target=str(entry_id),
    )


def _exec_respell_entry(change: Change, index: int, editor: GlyphlexEditor) -> ChangeResult:
    p = change.params
    entry_id = resolve_entry(editor, p["entry"])
    result = editor.respell_entry(entry_id, fallback=bool(p.get("fallback", False)))
    if not result.success:
        message = result.error or "Pronunciation could not be spelled"
        return ChangeResult(
            index=index,
            operation=change.operation,
            success=False,
            message=message,
            target=str(entry_id),
            error=message,
        )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=(
            f"Spelled entry {entry_id} as {' '.join(result.segments)}"
            + (" (with IPA fallbacks)"
               if isinstance(result, FallbackSpellResult) and result.has_virtual_glyphs
               else "")
        ),
        target=str(entry_id),
    )


_HANDLERS = {
    OperationType.ADD_SYMBOL.value: _exec_add_symbol,
    OperationType.ADD_SOUND.value: _exec_add_sound,
    OperationType.ADD_ENTRY.value: _exec_add_entry,
    OperationType.UPDATE_ENTRY.value: _exec_update_entry,
    OperationType.DELETE_ENTRY.value: _exec_delete_entry,
    OperationType.ADD_ANCESTOR.value: _exec_add_ancestor,
    OperationType.REMOVE_ANCESTOR.value: _exec_remove_ancestor,
    OperationType.SET_ANCESTRY.value: _exec_set_ancestry,
    OperationType.RESPELL_ENTRY.value: _exec_respell_entry,
}
