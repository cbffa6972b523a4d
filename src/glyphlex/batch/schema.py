"""
Data classes and constants for the batch change request system.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..relations import ANCESTRY_KINDS as ANCESTRY_KINDS


# =============================================================================
# Operation Types
# =============================================================================

class OperationType(str, Enum):
    """Supported batch operations."""
    ADD_SYMBOL = "add_symbol"
    ADD_SOUND = "add_sound"
    ADD_ENTRY = "add_entry"
    UPDATE_ENTRY = "update_entry"
    DELETE_ENTRY = "delete_entry"
    ADD_ANCESTOR = "add_ancestor"
    REMOVE_ANCESTOR = "remove_ancestor"
    SET_ANCESTRY = "set_ancestry"
    RESPELL_ENTRY = "respell_entry"


# An entry or symbol is referenced by integer id or by lemma / name.
Reference = Union[int, str]


# =============================================================================
# Field Requirements
# =============================================================================

# Required fields for each operation
REQUIRED_FIELDS: Dict[str, List[str]] = {
    OperationType.ADD_SYMBOL.value: ["name"],
    OperationType.ADD_SOUND.value: ["symbol", "sound"],
    OperationType.ADD_ENTRY.value: ["lemma"],
    OperationType.UPDATE_ENTRY.value: ["entry"],
    OperationType.DELETE_ENTRY.value: ["entry"],
    OperationType.ADD_ANCESTOR.value: ["entry", "ancestor"],
    OperationType.REMOVE_ANCESTOR.value: ["entry", "ancestor"],
    OperationType.SET_ANCESTRY.value: ["entry", "ancestors"],
    OperationType.RESPELL_ENTRY.value: ["entry"],
}

# Optional fields for each operation
OPTIONAL_FIELDS: Dict[str, List[str]] = {
    OperationType.ADD_SYMBOL.value: ["sounds", "auto_spell", "notes"],
    OperationType.ADD_SOUND.value: ["auto_spell", "context"],
    OperationType.ADD_ENTRY.value: [
        "pronunciation", "meaning", "part_of_speech", "auto_spell",
        "is_native", "notes", "ancestors",
    ],
    OperationType.UPDATE_ENTRY.value: [
        "lemma", "pronunciation", "meaning", "part_of_speech", "auto_spell",
        "is_native", "notes",
    ],
    OperationType.DELETE_ENTRY.value: [],
    OperationType.ADD_ANCESTOR.value: ["kind", "position"],
    OperationType.REMOVE_ANCESTOR.value: [],
    OperationType.SET_ANCESTRY.value: [],
    OperationType.RESPELL_ENTRY.value: ["fallback"],
}

# Fields of update_entry that are written to the entry
ENTRY_UPDATE_FIELDS = OPTIONAL_FIELDS[OperationType.UPDATE_ENTRY.value]


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class AncestorSpec:
    """An ancestor listed in add_entry or set_ancestry."""
    entry: Reference
    kind: str = "derived"
    position: Optional[int] = None


@dataclass
class Change:
    """Single change operation."""
    operation: str
    params: Dict[str, Any]
    line_number: Optional[int] = None

    @property
    def entry(self) -> Optional[Reference]:
        """Get the entry reference if present in params."""
        return self.params.get("entry")

    @property
    def ancestor(self) -> Optional[Reference]:
        """Get the ancestor reference for ancestry operations."""
        return self.params.get("ancestor")

    @property
    def symbol(self) -> Optional[Reference]:
        """Get the symbol reference for sound operations."""
        return self.params.get("symbol")


@dataclass
class ChangeRequest:
    """Parsed change request from YAML."""
    changes: List[Change]
    session_name: Optional[str] = None
    session_description: Optional[str] = None
    source_file: Optional[Path] = None


@dataclass
class ValidationError:
    """Validation error for a specific change."""
    index: int
    operation: str
    field: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationWarning:
    """Validation warning for a specific change."""
    index: int
    operation: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of validating a change request."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


@dataclass
class ChangeResult:
    """Result of executing a single change."""
    index: int
    operation: str
    success: bool
    message: str
    target: Optional[str] = None
    created_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of executing a batch change request."""
    total_count: int
    success_count: int
    failure_count: int
    changes: List[ChangeResult]
    duration_seconds: float
    dry_run: bool = False
    rolled_back: bool = False

    @property
    def skipped_count(self) -> int:
        return self.total_count - self.success_count - self.failure_count


def parse_ancestor_specs(value: Any) -> List[AncestorSpec]:
    """Normalize an ``ancestors`` field into AncestorSpec objects.

    Each item is either a bare reference or a mapping with ``entry`` and
    optional ``kind`` and ``position``.

    Raises:
        ValueError: If an item has the wrong shape
    """
    if not isinstance(value, list):
        raise ValueError("Field 'ancestors' must be a list")
    specs: List[AncestorSpec] = []
    for i, item in enumerate(value):
        if isinstance(item, (int, str)) and not isinstance(item, bool):
            specs.append(AncestorSpec(entry=item))
        elif isinstance(item, dict) and "entry" in item:
            specs.append(AncestorSpec(
                entry=item["entry"],
                kind=item.get("kind", "derived"),
                position=item.get("position"),
            ))
        else:
            raise ValueError(
                f"ancestors[{i}] must be an id, a lemma or "
                "{entry: ..., kind: ...}"
            )
    return specs
