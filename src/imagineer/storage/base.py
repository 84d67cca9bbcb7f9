"""Shared helpers for SQLite repositories.

Timestamps are stored as ISO-8601 UTC strings and JSON columns as TEXT;
the helpers here convert between those and Python values.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable

from imagineer.core.exceptions import ValidationError


if TYPE_CHECKING:
    from imagineer.storage.database import Database


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime | None = None) -> str:
    """Serialize a datetime (default now) for storage."""
    return (value or utcnow()).isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp, tolerating NULL."""
    if value is None:
        return None
    return datetime.fromisoformat(value)


def to_json(value: Any) -> str | None:
    """Serialize a JSON column value, keeping NULL as NULL."""
    if value is None:
        return None
    return json.dumps(value, default=str)


def from_json(value: str | None, default: Any = None) -> Any:
    """Deserialize a JSON column value.

    Args:
        value: Raw column text.
        default: Returned when the column is NULL or empty.

    Returns:
        The decoded value.
    """
    if value is None or value == "":
        return default
    return json.loads(value)


def build_update(
    fields: dict[str, Any],
    allowed: Iterable[str],
    *,
    json_fields: Iterable[str] = (),
) -> tuple[list[str], list[Any]]:
    """Turn a partial update into SET clauses and parameters.

    Args:
        fields: Column name to new value.
        allowed: Columns that may be written.
        json_fields: Columns whose values are serialized to JSON.

    Returns:
        Tuple of ``["col = ?", ...]`` clauses and matching parameters.

    Raises:
        ValidationError: If a field is not an updatable column.
    """
    allowed_set = set(allowed)
    json_set = set(json_fields)
    clauses: list[str] = []
    params: list[Any] = []
    for name, value in fields.items():
        if name not in allowed_set:
            raise ValidationError(f"Field cannot be updated: {name}", field_name=name)
        clauses.append(f"{name} = ?")
        params.append(to_json(value) if name in json_set else value)
    return clauses, params


class Repository:
    """Base class for repositories wrapping a Database.

    Attributes:
        db: The database the repository reads and writes.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def _fetch_one(self, query: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> sqlite3.Row | None:
        with self.db.connection() as conn:
            return conn.execute(query, params).fetchone()

    def _fetch_all(self, query: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> list[sqlite3.Row]:
        with self.db.connection() as conn:
            return conn.execute(query, params).fetchall()


__all__ = [
    "utcnow",
    "to_timestamp",
    "parse_timestamp",
    "to_json",
    "from_json",
    "build_update",
    "Repository",
]
