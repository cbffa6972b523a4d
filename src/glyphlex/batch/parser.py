"""
YAML parser for batch change requests.

Each parsed change remembers the line it starts on so validation messages
can point back into the file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .schema import Change, ChangeRequest

_YAML_SUFFIXES = (".yaml", ".yml")


class ParseError(Exception):
    """Error parsing a change request file."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(message)


def load_change_request(
    source: Union[str, Path, Dict[str, Any]],
) -> ChangeRequest:
    """Load a change request from a YAML file, YAML text or a dictionary.

    A string without newlines that names a ``.yaml``/``.yml`` file or
    contains a path separator is read as a path.

    Raises:
        ParseError: If the YAML is malformed or the request is invalid
        FileNotFoundError: If a path is given and the file does not exist
    """
    if isinstance(source, dict):
        return _parse_change_request(source, [], None)

    path: Optional[Path] = None
    if isinstance(source, Path) or (
        "\n" not in source
        and (source.endswith(_YAML_SUFFIXES) or "/" in source or "\\" in source)
    ):
        path = Path(source)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        text = path.read_text(encoding="utf-8")
    else:
        text = source

    data, lines = _read_yaml(text)
    return _parse_change_request(data, lines, path)


def _read_yaml(text: str) -> tuple[Dict[str, Any], List[int]]:
    """Parse YAML text, returning the root mapping and each change's line."""
    try:
        node = yaml.compose(text, Loader=yaml.SafeLoader)
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ParseError(
            f"Invalid YAML: {e}", line=mark.line + 1 if mark else None
        ) from e

    if data is None:
        raise ParseError("Empty YAML content")
    if not isinstance(data, dict):
        raise ParseError("YAML root must be a mapping (dictionary)")
    return data, _change_lines(node)


def _change_lines(root: Any) -> List[int]:
    if not isinstance(root, yaml.MappingNode):
        return []
    for key, value in root.value:
        if key.value == "changes" and isinstance(value, yaml.SequenceNode):
            return [item.start_mark.line + 1 for item in value.value]
    return []


def _parse_change_request(
    data: Dict[str, Any],
    lines: List[int],
    source_path: Optional[Path],
) -> ChangeRequest:
    session = data.get("session") or {}
    if not isinstance(session, dict):
        raise ParseError("Field 'session' must be a mapping")

    changes_data = data.get("changes")
    if changes_data is None:
        raise ParseError("Missing required field: 'changes'")
    if not isinstance(changes_data, list):
        raise ParseError("Field 'changes' must be a list")
    if not changes_data:
        raise ParseError("Field 'changes' cannot be empty")

    changes = []
    for i, change_data in enumerate(changes_data):
        line = lines[i] if i < len(lines) else None
        changes.append(_parse_change(i + 1, change_data, line))

    return ChangeRequest(
        changes=changes,
        session_name=session.get("name"),
        session_description=session.get("description"),
        source_file=source_path,
    )


def _parse_change(number: int, change_data: Any, line: Optional[int]) -> Change:
    if not isinstance(change_data, dict):
        raise ParseError(f"Change #{number} must be a mapping (dictionary)", line=line)

    operation = change_data.get("operation")
    if not operation:
        raise ParseError(f"Change #{number}: Missing required field 'operation'", line=line)
    if not isinstance(operation, str):
        raise ParseError(f"Change #{number}: Field 'operation' must be a string", line=line)

    params = {k: v for k, v in change_data.items() if k != "operation"}
    return Change(operation=operation, params=params, line_number=line)
