"""
Validation for batch change requests.

Provides both schema validation (required fields, types) and
referential validation (entries and symbols exist, ancestry stays acyclic).
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Set, Tuple

from ..editor import GlyphlexEditor
from ..exceptions import EntityNotFoundError
from .executor import resolve_entry, resolve_symbol
from .schema import (
    ANCESTRY_KINDS,
    ENTRY_UPDATE_FIELDS,
    Change,
    ChangeRequest,
    OperationType,
    Reference,
    REQUIRED_FIELDS,
    ValidationError,
    ValidationResult,
    ValidationWarning,
    parse_ancestor_specs,
)

logger = logging.getLogger(__name__)

_BOOL_FIELDS = ("auto_spell", "is_native", "fallback")
_TEXT_FIELDS = (
    "name", "sound", "lemma", "pronunciation", "meaning", "part_of_speech",
    "notes", "context",
)


class _Pending:
    """Names and lemmas introduced by earlier changes of the same request."""

    def __init__(self) -> None:
        self.lemmas: Set[str] = set()
        self.symbols: Set[str] = set()


def validate_change_request(
    request: ChangeRequest,
    editor: Optional[GlyphlexEditor] = None,
) -> ValidationResult:
    """Validate a change request.

    Args:
        request: The change request to validate
        editor: If given, also check references and ancestry cycles
            against its database

    Returns:
        ValidationResult with errors and warnings
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []
    pending = _Pending()

    for i, change in enumerate(request.changes):
        change_errors, change_warnings = _validate_change(change, i, editor, pending)
        errors.extend(change_errors)
        warnings.extend(change_warnings)

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _error(change: Change, index: int, field: str, message: str) -> ValidationError:
    return ValidationError(
        index=index,
        operation=change.operation,
        field=field,
        message=message,
        line_number=change.line_number,
    )


def _warning(change: Change, index: int, message: str) -> ValidationWarning:
    return ValidationWarning(
        index=index,
        operation=change.operation,
        message=message,
        line_number=change.line_number,
    )


def _validate_change(
    change: Change,
    index: int,
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
) -> Tuple[List[ValidationError], List[ValidationWarning]]:
    """Validate a single change operation.

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []

    valid_operations = {op.value for op in OperationType}
    if change.operation not in valid_operations:
        errors.append(_error(
            change, index, "operation",
            f"Unknown operation '{change.operation}'. "
            f"Valid: {', '.join(sorted(valid_operations))}",
        ))
        return errors, warnings

    for field in REQUIRED_FIELDS.get(change.operation, []):
        if field not in change.params or change.params[field] is None:
            errors.append(_error(
                change, index, field, f"Missing required field '{field}'"
            ))
    if errors:
        return errors, warnings

    errors.extend(_validate_types(change, index))

    op = change.operation
    p = change.params

    if op == OperationType.ADD_SYMBOL.value:
        sounds = p.get("sounds") or []
        if isinstance(sounds, str):
            sounds = [sounds]
        if not isinstance(sounds, list):
            errors.append(_error(change, index, "sounds", "Field 'sounds' must be a list"))
        else:
            for j, sound in enumerate(sounds):
                if not isinstance(sound, str) or not sound.strip():
                    errors.append(_error(
                        change, index, f"sounds[{j}]", "Sound must be a non-blank string"
                    ))
        if not sounds:
            warnings.append(_warning(
                change, index, f"Symbol '{p['name']}' has no sounds"
            ))
        pending.symbols.add(str(p["name"]))

    elif op == OperationType.ADD_SOUND.value:
        errors.extend(_check_symbol(change, index, "symbol", editor, pending))

    elif op == OperationType.ADD_ENTRY.value:
        errors.extend(_validate_ancestors(change, index, None, editor, pending))
        if not p.get("pronunciation") and p.get("auto_spell", True):
            warnings.append(_warning(
                change, index,
                f"Entry '{p['lemma']}' has no pronunciation and will stay unspelled",
            ))
        pending.lemmas.add(str(p["lemma"]))

    elif op == OperationType.UPDATE_ENTRY.value:
        if not any(k in p for k in ENTRY_UPDATE_FIELDS):
            errors.append(_error(
                change, index, "entry",
                "update_entry needs at least one field to change",
            ))
        errors.extend(_check_entry(change, index, "entry", editor, pending))
        if "lemma" in p:
            pending.lemmas.add(str(p["lemma"]))

    elif op in (OperationType.DELETE_ENTRY.value, OperationType.RESPELL_ENTRY.value):
        errors.extend(_check_entry(change, index, "entry", editor, pending))

    elif op in (OperationType.ADD_ANCESTOR.value, OperationType.REMOVE_ANCESTOR.value):
        errors.extend(_validate_ancestor_op(change, index, editor, pending))

    elif op == OperationType.SET_ANCESTRY.value:
        entry_errors = _check_entry(change, index, "entry", editor, pending)
        errors.extend(entry_errors)
        errors.extend(_validate_ancestors(change, index, p["entry"], editor, pending))

    return errors, warnings


def _is_position(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _validate_types(change: Change, index: int) -> List[ValidationError]:
    """Check the basic types of known fields."""
    errors: List[ValidationError] = []
    for field in _BOOL_FIELDS:
        value = change.params.get(field)
        if value is not None and not isinstance(value, bool):
            errors.append(_error(
                change, index, field, f"Field '{field}' must be true or false"
            ))
    for field in _TEXT_FIELDS:
        value = change.params.get(field)
        if value is not None and not isinstance(value, str):
            errors.append(_error(
                change, index, field, f"Field '{field}' must be a string"
            ))
    kind = change.params.get("kind")
    if kind is not None and kind not in ANCESTRY_KINDS:
        errors.append(_error(
            change, index, "kind",
            f"Invalid ancestry kind '{kind}'. Valid: {', '.join(sorted(ANCESTRY_KINDS))}",
        ))
    position = change.params.get("position")
    if position is not None and not _is_position(position):
        errors.append(_error(
            change, index, "position", "Field 'position' must be a non-negative integer"
        ))
    return errors


# =============================================================================
# Referential checks
# =============================================================================

def _resolve(
    editor: GlyphlexEditor, ref: Reference, symbol: bool
) -> Tuple[Optional[int], Optional[str]]:
    """Resolve a reference, returning (id, None) or (None, error message)."""
    try:
        if symbol:
            return resolve_symbol(editor, ref), None
        return resolve_entry(editor, ref), None
    except (EntityNotFoundError, ValueError) as e:
        return None, str(e)


def _is_pending(ref: Any, names: Set[str]) -> bool:
    return isinstance(ref, str) and ref in names


def _check_entry(
    change: Change,
    index: int,
    field: str,
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
    ref: Any = None,
) -> List[ValidationError]:
    if ref is None:
        ref = change.params.get(field)
    if editor is None or _is_pending(ref, pending.lemmas):
        return []
    _, message = _resolve(editor, ref, symbol=False)
    return [_error(change, index, field, message)] if message else []


def _check_symbol(
    change: Change,
    index: int,
    field: str,
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
) -> List[ValidationError]:
    ref = change.params.get(field)
    if editor is None or _is_pending(ref, pending.symbols):
        return []
    _, message = _resolve(editor, ref, symbol=True)
    return [_error(change, index, field, message)] if message else []


def _would_cycle(
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
    entry_ref: Any,
    ancestor_ref: Any,
) -> bool:
    """Cycle pre-check for references that already exist in the database."""
    if entry_ref is not None and entry_ref == ancestor_ref:
        return True
    if editor is None:
        return False
    if _is_pending(entry_ref, pending.lemmas) or _is_pending(ancestor_ref, pending.lemmas):
        return False
    entry_id, err1 = _resolve(editor, entry_ref, symbol=False)
    ancestor_id, err2 = _resolve(editor, ancestor_ref, symbol=False)
    if err1 or err2:
        return False
    return editor.would_create_cycle(entry_id, ancestor_id)


def _validate_ancestor_op(
    change: Change,
    index: int,
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
) -> List[ValidationError]:
    """Validate add_ancestor or remove_ancestor operation."""
    errors: List[ValidationError] = []
    errors.extend(_check_entry(change, index, "entry", editor, pending))
    errors.extend(_check_entry(change, index, "ancestor", editor, pending))
    if errors or change.operation != OperationType.ADD_ANCESTOR.value:
        return errors
    if _would_cycle(editor, pending, change.entry, change.ancestor):
        errors.append(_error(
            change, index, "ancestor",
            f"Adding {change.ancestor!r} as an ancestor of {change.entry!r} "
            "would create a cycle in the etymology tree",
        ))
    return errors


def _validate_ancestors(
    change: Change,
    index: int,
    entry_ref: Any,
    editor: Optional[GlyphlexEditor],
    pending: _Pending,
) -> List[ValidationError]:
    """Validate an ``ancestors`` list of add_entry or set_ancestry."""
    errors: List[ValidationError] = []
    value = change.params.get("ancestors")
    if value is None:
        return errors
    try:
        specs = parse_ancestor_specs(value)
    except ValueError as e:
        return [_error(change, index, "ancestors", str(e))]

    seen: Set[Any] = set()
    for j, spec in enumerate(specs):
        field = f"ancestors[{j}]"
        if spec.kind not in ANCESTRY_KINDS:
            errors.append(_error(change, index, field, f"Invalid ancestry kind '{spec.kind}'"))
        if spec.position is not None and not _is_position(spec.position):
            errors.append(_error(
                change, index, field,
                f"Ancestor position must be a non-negative integer, got {spec.position!r}",
            ))
        if spec.entry in seen:
            errors.append(_error(change, index, field, f"Ancestor {spec.entry!r} listed twice"))
        seen.add(spec.entry)
        ref_errors = _check_entry(change, index, field, editor, pending, ref=spec.entry)
        errors.extend(ref_errors)
        if not ref_errors and entry_ref is not None and _would_cycle(
            editor, pending, entry_ref, spec.entry
        ):
            errors.append(_error(
                change, index, field,
                f"Adding {spec.entry!r} as an ancestor of {entry_ref!r} "
                "would create a cycle in the etymology tree",
            ))
    return errors
