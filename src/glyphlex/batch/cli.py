"""
Command-line interface for glyphlex databases and batch change requests.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ..db import DEFAULT_DB_PATH
from ..editor import GlyphlexEditor
from ..exceptions import GlyphlexError
from ..fallback import is_virtual_symbol_id
from ..graph import DEFAULT_MAX_DEPTH
from ..models import AncestryNode, ValidationSeverity
from ..relations import describe_kind
from .executor import execute_change_request, resolve_entry
from .parser import ParseError, load_change_request
from .schema import BatchResult, ChangeRequest, ValidationResult
from .validator import validate_change_request

DB_ENV_VAR = "GLYPHLEX_DB"


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the glyphlex CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except GlyphlexError as e:
        print(f"\n  [ERROR] {e}")
        return 1


def default_db_path() -> Path:
    """Database path from the environment, or the per-user default."""
    env = os.environ.get(DB_ENV_VAR)
    return Path(env) if env else DEFAULT_DB_PATH


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="glyphlex",
        description="Spelling, etymology and batch tools for constructed scripts",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s (glyphlex)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Database file (default: ${DB_ENV_VAR} or {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a change request file",
    )
    validate_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    validate_parser.add_argument(
        "--no-check-refs",
        action="store_true",
        help="Skip referential validation (entry and symbol checks)",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply changes from a request file",
    )
    apply_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the changes and roll them back",
    )
    apply_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    apply_parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Roll back everything at the first failing change",
    )
    apply_parser.set_defaults(func=cmd_apply)

    # spell command
    spell_parser = subparsers.add_parser(
        "spell",
        help="Preview the spelling of a pronunciation",
    )
    spell_parser.add_argument(
        "pronunciation",
        help="Pronunciation to spell",
    )
    spell_parser.add_argument(
        "--fallback",
        action="store_true",
        help="Fill unmatched sounds with virtual symbols",
    )
    spell_parser.set_defaults(func=cmd_spell)

    # translate command
    translate_parser = subparsers.add_parser(
        "translate",
        help="Write a phrase word by word with the lexicon",
    )
    translate_parser.add_argument(
        "phrase",
        help="Phrase to write",
    )
    translate_parser.set_defaults(func=cmd_translate)

    # tree command
    tree_parser = subparsers.add_parser(
        "tree",
        help="Show the ancestry tree of an entry",
    )
    tree_parser.add_argument(
        "entry",
        help="Entry id or lemma",
    )
    tree_parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum number of generations (default: {DEFAULT_MAX_DEPTH})",
    )
    tree_parser.set_defaults(func=cmd_tree)

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Run all database validation rules",
    )
    check_parser.set_defaults(func=cmd_check)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="View recent edits",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of edits to show (default: 20)",
    )
    history_parser.set_defaults(func=cmd_history)

    return parser


def _open_editor(args: argparse.Namespace) -> GlyphlexEditor:
    return GlyphlexEditor(args.db or default_db_path())


def _load(path: Path) -> Optional[ChangeRequest]:
    try:
        return load_change_request(path)
    except ParseError as e:
        print(f"\n  [PARSE ERROR] {e}")
        if e.line:
            print(f"               Line: {e.line}")
    except FileNotFoundError as e:
        print(f"\n  [ERROR] {e}")
    return None


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    print(f"\nValidating {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1

    print(f"  Changes: {len(request.changes)}")
    if request.session_name:
        print(f"  Session: {request.session_name}")

    if args.no_check_refs:
        result = validate_change_request(request)
    else:
        with _open_editor(args) as editor:
            result = validate_change_request(request, editor)

    print("\nValidation Results:")
    _print_validation_result(result)

    if result.is_valid:
        print("\nValidation passed!")
        return 0
    print(f"\nFound {result.error_count} error(s), {result.warning_count} warning(s)")
    return 1


def cmd_apply(args: argparse.Namespace) -> int:
    """Handle apply command."""
    print(f"\nLoading {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1

    print(f"  Changes: {len(request.changes)}")
    if request.session_name:
        print(f"  Session: \"{request.session_name}\"")

    with _open_editor(args) as editor:
        print("\nValidating...")
        validation = validate_change_request(request, editor)

        if not validation.is_valid:
            print("\nValidation failed:")
            _print_validation_result(validation)
            print(f"\nFound {validation.error_count} error(s). Fix errors before applying.")
            return 1

        if validation.warning_count > 0:
            print("\nWarnings:")
            _print_validation_result(validation, warnings_only=True)

        if args.dry_run:
            print("\n[DRY RUN] Changes will be rolled back...")
        elif not args.yes:
            response = input(f"\nApply {len(request.changes)} changes? [y/N] ")
            if response.lower() not in ("y", "yes"):
                print("Aborted.")
                return 1

        print(f"\n{'Simulating' if args.dry_run else 'Applying'} changes...")
        result = execute_change_request(
            request,
            editor,
            dry_run=args.dry_run,
            stop_on_error=args.stop_on_error,
        )

    _print_batch_result(result)

    if result.failure_count > 0:
        return 1
    return 0


def cmd_spell(args: argparse.Namespace) -> int:
    """Handle spell command."""
    with _open_editor(args) as editor:
        if args.fallback:
            result = editor.preview_spelling_with_fallback(args.pronunciation)
        else:
            result = editor.preview_spelling(args.pronunciation)

        if not result.success:
            print(f"\n  [FAILED] {result.error}")
            if result.segments:
                print(f"  Matched: {' '.join(result.segments)}")
            return 1

        print(f"\n{args.pronunciation}:")
        for entry, sound in zip(result.spelling, result.segments):
            if is_virtual_symbol_id(entry.symbol_id):
                print(f"  {entry.position:>3}  {sound:<8} (virtual {entry.symbol_id})")
            else:
                symbol = editor.get_symbol(entry.symbol_id)
                print(f"  {entry.position:>3}  {sound:<8} {symbol.name} [{symbol.id}]")
    return 0


def cmd_translate(args: argparse.Namespace) -> int:
    """Handle translate command."""
    with _open_editor(args) as editor:
        translation = editor.translate_phrase(args.phrase)
        if not translation.words:
            print("\n  [FAILED] Phrase is empty")
            return 1

        print(f"\n{translation.normalized_phrase}:")
        for word in translation.words:
            parts = []
            for glyph in word.spelling:
                if glyph.is_virtual:
                    parts.append(f"/{glyph.ipa_character}/")
                else:
                    parts.append(editor.get_symbol(glyph.symbol_id).name)
            print(f"  {word.word.original:<16} {word.source:<10} {' '.join(parts)}")
    if translation.has_virtual_glyphs:
        print("\n  Some sounds have no symbol and are shown as /ipa/.")
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Handle tree command."""
    ref = int(args.entry) if args.entry.isdigit() else args.entry
    with _open_editor(args) as editor:
        try:
            entry_id = resolve_entry(editor, ref)
        except ValueError as e:
            print(f"\n  [ERROR] {e}")
            return 1
        tree = editor.get_full_ancestry_tree(entry_id, max_depth=args.max_depth)

    print()
    _print_tree(tree)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle check command."""
    with _open_editor(args) as editor:
        results = editor.validate()

    if not results:
        print("No problems found.")
        return 0

    errors = 0
    for r in results:
        is_error = r.severity == ValidationSeverity.ERROR
        tag = "[ERROR]" if is_error else "[WARN] "
        errors += is_error
        print(f"  {tag} {r.rule_id} {r.entity_type} {r.entity_id}: {r.message}")
    print(f"\nFound {errors} error(s), {len(results) - errors} warning(s)")
    return 1 if errors else 0


def cmd_history(args: argparse.Namespace) -> int:
    """Handle history command."""
    with _open_editor(args) as editor:
        records = editor.get_history()

    if not records:
        print("No edits recorded.")
        return 0

    records = records[-args.limit:]
    print(f"\nRecent edits (showing {len(records)}):\n")
    print(f"{'Date':<24} {'Operation':<10} {'Entity':<18} {'Field'}")
    print("-" * 80)
    for rec in records:
        entity = f"{rec.entity_type} {rec.entity_id}"
        print(f"{rec.timestamp:<24} {rec.operation:<10} {entity:<18} {rec.field_name or ''}")
    return 0


def _print_tree(node: AncestryNode, depth: int = 0) -> None:
    """Print an ancestry tree with indentation."""
    indent = "    " * depth
    label = f"{node.entry.lemma} [{node.entry.id}]"
    if node.entry.pronunciation:
        label += f" /{node.entry.pronunciation}/"
    if node.kind:
        label = f"{describe_kind(node.kind)} {label}"
    print(f"{indent}{label}")
    for child in node.ancestors:
        _print_tree(child, depth + 1)


def _print_validation_result(
    result: ValidationResult,
    errors_only: bool = False,
    warnings_only: bool = False,
) -> None:
    """Print validation errors and warnings."""
    if not warnings_only:
        for error in result.errors:
            line_info = f" (line {error.line_number})" if error.line_number else ""
            print(f"  [ERROR] Change #{error.index + 1} ({error.operation}): {error.message}{line_info}")
            if error.field:
                print(f"          Field: {error.field}")

    if not errors_only:
        for warning in result.warnings:
            line_info = f" (line {warning.line_number})" if warning.line_number else ""
            print(f"  [WARN]  Change #{warning.index + 1} ({warning.operation}): {warning.message}{line_info}")


def _print_batch_result(result: BatchResult) -> None:
    """Print batch execution result."""
    print()
    for change in result.changes:
        idx = change.index + 1
        status = "OK" if change.success else "FAILED"
        print(f"  [{idx}/{result.total_count}] {change.operation}: {status}")
        if change.message:
            print(f"         {change.message}")

    print("\nResults:")
    print(f"  Total:   {result.total_count}")
    print(f"  Success: {result.success_count}")
    print(f"  Failed:  {result.failure_count}")
    print(f"  Time:    {result.duration_seconds:.2f}s")
    if result.rolled_back:
        print("  Nothing was saved (rolled back).")


if __name__ == "__main__":
    sys.exit(main())
