"""
Batch change request module for glyphlex.

This module provides functionality to submit standardized change requests
in YAML format to modify glyphlex databases.

Example usage:
    from glyphlex import GlyphlexEditor
    from glyphlex.batch import (
        load_change_request,
        validate_change_request,
        execute_change_request,
    )

    request = load_change_request("changes.yaml")

    with GlyphlexEditor("lexicon.db") as editor:
        validation = validate_change_request(request, editor)
        if not validation.is_valid:
            for error in validation.errors:
                print(f"[{error.index}] {error.operation}: {error.message}")

        result = execute_change_request(request, editor)
        print(f"Applied {result.success_count}/{result.total_count} changes")
"""

from .schema import (
    # Enums and constants
    OperationType as OperationType,
    ANCESTRY_KINDS as ANCESTRY_KINDS,
    REQUIRED_FIELDS as REQUIRED_FIELDS,
    OPTIONAL_FIELDS as OPTIONAL_FIELDS,
    # Data classes
    AncestorSpec as AncestorSpec,
    Change as Change,
    ChangeRequest as ChangeRequest,
    ValidationError as ValidationError,
    ValidationWarning as ValidationWarning,
    ValidationResult as ValidationResult,
    ChangeResult as ChangeResult,
    BatchResult as BatchResult,
    parse_ancestor_specs as parse_ancestor_specs,
)

from .parser import (
    load_change_request as load_change_request,
    ParseError as ParseError,
)

from .validator import (
    validate_change_request as validate_change_request,
)

from .executor import (
    execute_change_request as execute_change_request,
    resolve_entry as resolve_entry,
    resolve_symbol as resolve_symbol,
)

__all__ = [
    # Enums and constants
    "OperationType",
    "ANCESTRY_KINDS",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # Data classes
    "AncestorSpec",
    "Change",
    "ChangeRequest",
    "ValidationError",
    "ValidationWarning",
    "ValidationResult",
    "ChangeResult",
    "BatchResult",
    # Functions
    "parse_ancestor_specs",
    "load_change_request",
    "validate_change_request",
    "execute_change_request",
    "resolve_entry",
    "resolve_symbol",
    # Exceptions
    "ParseError",
]
