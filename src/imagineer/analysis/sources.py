"""Text fields that content analysis can read and rewrite.

Table and column names are interpolated into SQL, so every access goes
through the whitelist below.
"""

from __future__ import annotations

import sqlite3

from imagineer.core.exceptions import NotFoundError, UnsupportedSourceError
from imagineer.models.enums import DraftSourceTable
from imagineer.storage.base import to_timestamp
from imagineer.storage.drafts import delete_drafts_for_source

# =============================================================================
# Supported fields
# =============================================================================

ANALYZABLE_FIELDS: dict[str, frozenset[str]] = {
    "entities": frozenset({"description", "gm_notes"}),
    "chapters": frozenset({"overview"}),
    "sessions": frozenset({"prep_notes", "actual_notes"}),
    "campaigns": frozenset({"description"}),
}

REVISABLE_FIELDS: dict[str, frozenset[str]] = {
    "chapters": frozenset({"overview"}),
    "sessions": frozenset({"prep_notes", "actual_notes"}),
}

_DRAFT_TABLES = frozenset(table.value for table in DraftSourceTable)


def check_source(source_table: str, source_field: str, *, revisable: bool = False) -> None:
    """Validate a (table, field) pair.

    Args:
        source_table: Table holding the text.
        source_field: Column holding the text.
        revisable: Check against the smaller set that supports revision.

    Raises:
        UnsupportedSourceError: If the pair is not supported.
    """
    allowed = REVISABLE_FIELDS if revisable else ANALYZABLE_FIELDS
    if source_field not in allowed.get(source_table, frozenset()):
        raise UnsupportedSourceError(
            f"Unsupported source: {source_table}.{source_field}",
            source_table=source_table,
            source_field=source_field,
        )


def _owner_clause(source_table: str) -> str:
    # A campaign's own description is scoped by its id.
    return "id = ?" if source_table == "campaigns" else "campaign_id = ?"


# =============================================================================
# Read / write
# =============================================================================


def read_source(
    conn: sqlite3.Connection,
    campaign_id: int,
    source_table: str,
    source_id: int,
    source_field: str,
) -> str:
    """Read the current text of a source field.

    Returns:
        The text, empty when the column is NULL.

    Raises:
        UnsupportedSourceError: If the pair is not supported.
        NotFoundError: If the record is not in the campaign.
    """
    check_source(source_table, source_field)
    row = conn.execute(
        f"SELECT {source_field} FROM {source_table} WHERE id = ? AND {_owner_clause(source_table)}",
        (source_id, campaign_id),
    ).fetchone()
    if row is None:
        raise NotFoundError(
            "Source record not found",
            resource=source_table,
            resource_id=source_id,
        )
    return row[0] or ""


def write_source(
    conn: sqlite3.Connection,
    campaign_id: int,
    source_table: str,
    source_id: int,
    source_field: str,
    content: str,
) -> None:
    """Replace the text of a source field.

    Entities get their version bumped, and drafts of the record are
    discarded since they were based on the old text.

    Raises:
        UnsupportedSourceError: If the pair is not supported.
        NotFoundError: If the record is not in the campaign.
    """
    check_source(source_table, source_field)
    extra = ", version = version + 1" if source_table == "entities" else ""
    cursor = conn.execute(
        f"""
        UPDATE {source_table}
        SET {source_field} = ?, updated_at = ?{extra}
        WHERE id = ? AND {_owner_clause(source_table)}
        """,
        (content, to_timestamp(), source_id, campaign_id),
    )
    if cursor.rowcount == 0:
        raise NotFoundError(
            "Source record not found",
            resource=source_table,
            resource_id=source_id,
        )
    if source_table in _DRAFT_TABLES:
        delete_drafts_for_source(conn, source_table, source_id)


__all__ = [
    "ANALYZABLE_FIELDS",
    "REVISABLE_FIELDS",
    "check_source",
    "read_source",
    "write_source",
]
