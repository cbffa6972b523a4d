"""Edit history recording and querying for glyphlex."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from glyphlex.models import EditOperation, EditRecord

HistoryValue = str | int | float | bool | list | None


def _encode(value: Any) -> str | None:
    return json.dumps(value, ensure_ascii=False) if value is not None else None


def _record(
    conn: sqlite3.Connection,
    operation: EditOperation,
    entity_type: str,
    entity_id: int | str,
    *,
    field_name: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
) -> None:
    conn.execute(
        "INSERT INTO edit_history "
        "(entity_type, entity_id, field_name, operation, old_value, new_value) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (entity_type, str(entity_id), field_name, operation.value,
         old_value, new_value),
    )


def record_create(
    conn: sqlite3.Connection,
    entity_type: str,
    entity_id: int | str,
    new_value: dict | None = None,
) -> None:
    """Record a CREATE operation in edit history."""
    _record(conn, EditOperation.CREATE, entity_type, entity_id,
            new_value=_encode(new_value or None))


def record_update(
    conn: sqlite3.Connection,
    entity_type: str,
    entity_id: int | str,
    field_name: str,
    old_value: HistoryValue,
    new_value: HistoryValue,
) -> None:
    """Record a field-level UPDATE operation in edit history."""
    # Both sides are always JSON so that a null is distinguishable from "null".
    _record(conn, EditOperation.UPDATE, entity_type, entity_id,
            field_name=field_name,
            old_value=json.dumps(old_value, ensure_ascii=False),
            new_value=json.dumps(new_value, ensure_ascii=False))


def record_delete(
    conn: sqlite3.Connection,
    entity_type: str,
    entity_id: int | str,
    old_value: dict | None = None,
) -> None:
    """Record a DELETE operation in edit history."""
    _record(conn, EditOperation.DELETE, entity_type, entity_id,
            old_value=_encode(old_value or None))


def query_history(
    conn: sqlite3.Connection,
    *,
    entity_type: str | None = None,
    entity_id: int | str | None = None,
    since: str | None = None,
    operation: str | None = None,
    limit: int | None = None,
) -> list[EditRecord]:
    """Query edit history with optional filters, oldest first."""
    clauses: list[str] = []
    params: list[Any] = []

    if entity_type is not None:
        clauses.append("entity_type = ?")
        params.append(entity_type)
    if entity_id is not None:
        clauses.append("entity_id = ?")
        params.append(str(entity_id))
    if since is not None:
        clauses.append("timestamp > ?")
        params.append(since)
    if operation is not None:
        clauses.append("operation = ?")
        params.append(operation)

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = (
        f"SELECT rowid, * FROM edit_history WHERE {where} "
        "ORDER BY timestamp ASC, rowid ASC"
    )
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    rows = conn.execute(sql, params).fetchall()
    return [
        EditRecord(
            id=row["rowid"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            field_name=row["field_name"],
            operation=row["operation"],
            old_value=row["old_value"],
            new_value=row["new_value"],
            timestamp=row["timestamp"],
        )
        for row in rows
    ]
