"""Content analysis jobs and the review items they produce.

A job covers one text field of one record. Its identification items are
created together with the job; enrichment adds analysis and enrichment
items later. Counters on the job are always recounted from the items.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError
from imagineer.core.logging import get_logger
from imagineer.models.enums import JobStatus, Phase, Resolution
from imagineer.storage.base import Repository, from_json, parse_timestamp, to_json, to_timestamp

logger = get_logger(__name__)

_ITEM_SELECT = """
    SELECT i.*, e.name AS entity_name, e.entity_type AS entity_type
    FROM content_analysis_items i
    LEFT JOIN entities e ON e.id = i.entity_id
"""


# =============================================================================
# Records
# =============================================================================


@dataclass
class AnalysisJobRecord:
    """One analysis run over a source field."""

    id: int
    campaign_id: int
    source_table: str
    source_id: int
    source_field: str
    status: str
    total_items: int
    resolved_items: int
    enrichment_total: int
    enrichment_resolved: int
    failure_reason: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AnalysisJobRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            source_table=row["source_table"],
            source_id=row["source_id"],
            source_field=row["source_field"],
            status=row["status"],
            total_items=row["total_items"],
            resolved_items=row["resolved_items"],
            enrichment_total=row["enrichment_total"],
            enrichment_resolved=row["enrichment_resolved"],
            failure_reason=row["failure_reason"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


@dataclass
class AnalysisItemRecord:
    """A stored review item, with its entity's name and type joined in."""

    id: int
    job_id: int
    detection_type: str
    matched_text: str
    entity_id: int | None
    similarity: float | None
    context_snippet: str | None
    position_start: int | None
    position_end: int | None
    resolution: str
    resolved_entity_id: int | None
    resolved_at: datetime | None
    suggested_content: dict[str, Any] | None
    phase: str
    agent_name: str | None
    pipeline_run_id: str | None
    created_at: datetime
    entity_name: str | None = None
    entity_type: str | None = None

    @property
    def has_position(self) -> bool:
        return self.position_start is not None and self.position_end is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AnalysisItemRecord:
        """Create from database row."""
        keys = row.keys()
        return cls(
            id=row["id"],
            job_id=row["job_id"],
            detection_type=row["detection_type"],
            matched_text=row["matched_text"],
            entity_id=row["entity_id"],
            similarity=row["similarity"],
            context_snippet=row["context_snippet"],
            position_start=row["position_start"],
            position_end=row["position_end"],
            resolution=row["resolution"],
            resolved_entity_id=row["resolved_entity_id"],
            resolved_at=parse_timestamp(row["resolved_at"]),
            suggested_content=from_json(row["suggested_content"]),
            phase=row["phase"],
            agent_name=row["agent_name"],
            pipeline_run_id=row["pipeline_run_id"],
            created_at=parse_timestamp(row["created_at"]),
            entity_name=row["entity_name"] if "entity_name" in keys else None,
            entity_type=row["entity_type"] if "entity_type" in keys else None,
        )


@dataclass
class DetectedItem:
    """An unsaved finding produced by the analyzer or an enrichment agent."""

    detection_type: str
    matched_text: str
    entity_id: int | None = None
    similarity: float | None = None
    context_snippet: str | None = None
    position_start: int | None = None
    position_end: int | None = None
    suggested_content: dict[str, Any] | None = None
    phase: str = Phase.IDENTIFICATION.value
    agent_name: str | None = None
    pipeline_run_id: str | None = None


# =============================================================================
# Connection-level helpers
# =============================================================================


def insert_items(conn: sqlite3.Connection, job_id: int, items: list[DetectedItem]) -> None:
    """Insert unsaved items under a job."""
    now = to_timestamp()
    conn.executemany(
        """
        INSERT INTO content_analysis_items
            (job_id, detection_type, matched_text, entity_id, similarity,
             context_snippet, position_start, position_end, resolution,
             suggested_content, phase, agent_name, pipeline_run_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                job_id,
                item.detection_type,
                item.matched_text,
                item.entity_id,
                item.similarity,
                item.context_snippet,
                item.position_start,
                item.position_end,
                Resolution.PENDING.value,
                to_json(item.suggested_content),
                item.phase,
                item.agent_name,
                item.pipeline_run_id,
                now,
            )
            for item in items
        ],
    )


def shift_pending_positions(
    conn: sqlite3.Connection,
    job_id: int,
    *,
    after: int,
    delta: int,
    exclude_item_id: int | None = None,
) -> int:
    """Move the offsets of pending items that start at or after ``after``.

    Returns:
        Number of items shifted.
    """
    if delta == 0:
        return 0
    cursor = conn.execute(
        """
        UPDATE content_analysis_items
        SET position_start = position_start + ?, position_end = position_end + ?
        WHERE job_id = ?
          AND resolution = ?
          AND position_start IS NOT NULL
          AND position_start >= ?
          AND id IS NOT ?
        """,
        (delta, delta, job_id, Resolution.PENDING.value, after, exclude_item_id),
    )
    return cursor.rowcount


def item_span(conn: sqlite3.Connection, item_id: int) -> tuple[int | None, int | None]:
    """Current offsets of an item as stored, which may have been shifted."""
    row = conn.execute(
        "SELECT position_start, position_end FROM content_analysis_items WHERE id = ?",
        (item_id,),
    ).fetchone()
    if row is None:
        raise NotFoundError("Analysis item not found", resource="analysis_item", resource_id=item_id)
    return row["position_start"], row["position_end"]


def mark_resolution(
    conn: sqlite3.Connection,
    item_id: int,
    resolution: Resolution,
    resolved_entity_id: int | None = None,
    *,
    span: tuple[int, int] | None = None,
) -> None:
    """Record a review decision; pending clears the resolved entity and time.

    Args:
        conn: Open connection, so the decision commits with a content edit.
        item_id: Item to update.
        resolution: The decision.
        resolved_entity_id: Entity the item resolved to.
        span: New offsets, when the edit moved the item's text.
    """
    resolved_at = None if resolution is Resolution.PENDING else to_timestamp()
    conn.execute(
        """
        UPDATE content_analysis_items
        SET resolution = ?, resolved_entity_id = ?, resolved_at = ?
        WHERE id = ?
        """,
        (resolution.value, resolved_entity_id, resolved_at, item_id),
    )
    if span is not None:
        conn.execute(
            "UPDATE content_analysis_items SET position_start = ?, position_end = ? WHERE id = ?",
            (*span, item_id),
        )


def recount_job(conn: sqlite3.Connection, job_id: int) -> None:
    """Recompute resolved_items and enrichment_resolved from the items."""
    conn.execute(
        """
        UPDATE content_analysis_jobs
        SET resolved_items = (
                SELECT COUNT(*) FROM content_analysis_items
                WHERE job_id = :job_id AND phase = :identification AND resolution != :pending
            ),
            enrichment_resolved = (
                SELECT COUNT(*) FROM content_analysis_items
                WHERE job_id = :job_id AND phase != :identification AND resolution != :pending
            ),
            updated_at = :now
        WHERE id = :job_id
        """,
        {
            "job_id": job_id,
            "identification": Phase.IDENTIFICATION.value,
            "pending": Resolution.PENDING.value,
            "now": to_timestamp(),
        },
    )


# =============================================================================
# Repository
# =============================================================================


class AnalysisRepository(Repository):
    """Persistence for analysis jobs and items."""

    # -- jobs ---------------------------------------------------------------

    def create_job(
        self,
        campaign_id: int,
        *,
        source_table: str,
        source_id: int,
        source_field: str,
        items: list[DetectedItem],
    ) -> AnalysisJobRecord:
        """Replace any earlier job for the same field with a new one.

        Returns:
            The new job, status completed, with ``total_items`` set to the
            number of items.
        """
        now = to_timestamp()
        with self.db.connection() as conn:
            removed = conn.execute(
                """
                DELETE FROM content_analysis_jobs
                WHERE campaign_id = ? AND source_table = ? AND source_id = ? AND source_field = ?
                """,
                (campaign_id, source_table, source_id, source_field),
            ).rowcount
            cursor = conn.execute(
                """
                INSERT INTO content_analysis_jobs
                    (campaign_id, source_table, source_id, source_field, status,
                     total_items, resolved_items, enrichment_total, enrichment_resolved,
                     created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, 0, 0, 0, ?, ?)
                """,
                (campaign_id, source_table, source_id, source_field,
                 JobStatus.COMPLETED.value, len(items), now, now),
            )
            job_id = cursor.lastrowid
            insert_items(conn, job_id, items)

        logger.info(
            "Analysis job created",
            campaign_id=campaign_id,
            job_id=job_id,
            items=len(items),
            replaced_jobs=removed,
        )
        return self.get_job_by_id(job_id)

    def list_jobs(self, campaign_id: int) -> list[AnalysisJobRecord]:
        """Jobs of a campaign, newest first."""
        rows = self._fetch_all(
            "SELECT * FROM content_analysis_jobs WHERE campaign_id = ? ORDER BY created_at DESC, id DESC",
            (campaign_id,),
        )
        return [AnalysisJobRecord.from_row(row) for row in rows]

    def get_job(self, campaign_id: int, job_id: int) -> AnalysisJobRecord:
        """Get a job of the campaign.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM content_analysis_jobs WHERE id = ? AND campaign_id = ?",
            (job_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Analysis job not found", resource="analysis_job", resource_id=job_id)
        return AnalysisJobRecord.from_row(row)

    def get_job_by_id(self, job_id: int) -> AnalysisJobRecord:
        """Get a job regardless of campaign.

        Raises:
            NotFoundError: If it does not exist.
        """
        row = self._fetch_one("SELECT * FROM content_analysis_jobs WHERE id = ?", (job_id,))
        if row is None:
            raise NotFoundError("Analysis job not found", resource="analysis_job", resource_id=job_id)
        return AnalysisJobRecord.from_row(row)

    def set_status(self, job_id: int, status: JobStatus, failure_reason: str | None = None) -> None:
        """Change a job's status, replacing any failure reason."""
        with self.db.connection() as conn:
            conn.execute(
                "UPDATE content_analysis_jobs SET status = ?, failure_reason = ?, updated_at = ? WHERE id = ?",
                (status.value, failure_reason, to_timestamp(), job_id),
            )
        logger.debug("Analysis job status changed", job_id=job_id, status=status.value)

    def recount(self, job_id: int) -> AnalysisJobRecord:
        """Recompute the job's resolved counters."""
        with self.db.connection() as conn:
            recount_job(conn, job_id)
        return self.get_job_by_id(job_id)

    # -- items --------------------------------------------------------------

    def add_items(self, job_id: int, items: list[DetectedItem]) -> int:
        """Save enrichment output under an existing job.

        Returns:
            Number of items saved, also added to ``enrichment_total``.
        """
        if not items:
            return 0
        with self.db.connection() as conn:
            insert_items(conn, job_id, items)
            conn.execute(
                """
                UPDATE content_analysis_jobs
                SET enrichment_total = enrichment_total + ?, updated_at = ?
                WHERE id = ?
                """,
                (len(items), to_timestamp(), job_id),
            )
        return len(items)

    def list_items(
        self,
        job_id: int,
        *,
        resolution: str | None = None,
        phase: str | None = None,
    ) -> list[AnalysisItemRecord]:
        """Items of a job ordered by phase, then position in the text."""
        query = _ITEM_SELECT + " WHERE i.job_id = ?"
        params: list[Any] = [job_id]
        if resolution:
            query += " AND i.resolution = ?"
            params.append(resolution)
        if phase:
            query += " AND i.phase = ?"
            params.append(phase)
        query += """
            ORDER BY CASE i.phase
                WHEN 'identification' THEN 0
                WHEN 'analysis' THEN 1
                ELSE 2
            END,
            i.position_start IS NULL, i.position_start, i.id
        """
        return [AnalysisItemRecord.from_row(row) for row in self._fetch_all(query, tuple(params))]

    def get_item(self, campaign_id: int, item_id: int) -> AnalysisItemRecord:
        """Get an item whose job belongs to the campaign.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            _ITEM_SELECT
            + """
            JOIN content_analysis_jobs j ON j.id = i.job_id
            WHERE i.id = ? AND j.campaign_id = ?
            """,
            (item_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Analysis item not found", resource="analysis_item", resource_id=item_id)
        return AnalysisItemRecord.from_row(row)

    def pending_of_type(self, job_id: int, detection_type: str) -> list[AnalysisItemRecord]:
        """Pending items of one detection type, last in the text first."""
        rows = self._fetch_all(
            _ITEM_SELECT
            + """
            WHERE i.job_id = ? AND i.detection_type = ? AND i.resolution = ?
            ORDER BY i.position_start IS NULL, i.position_start DESC, i.id DESC
            """,
            (job_id, detection_type, Resolution.PENDING.value),
        )
        return [AnalysisItemRecord.from_row(row) for row in rows]

    def set_resolution(
        self,
        item_id: int,
        resolution: Resolution,
        resolved_entity_id: int | None = None,
    ) -> None:
        """Record a review decision; pending clears the resolved entity and time."""
        with self.db.connection() as conn:
            mark_resolution(conn, item_id, resolution, resolved_entity_id)

    def resolved_identification_entities(self, job_id: int) -> list[int]:
        """Entities the user linked or created during identification review."""
        rows = self._fetch_all(
            """
            SELECT DISTINCT resolved_entity_id FROM content_analysis_items
            WHERE job_id = ?
              AND phase = ?
              AND resolution IN (?, ?)
              AND resolved_entity_id IS NOT NULL
            ORDER BY resolved_entity_id
            """,
            (job_id, Phase.IDENTIFICATION.value, Resolution.ACCEPTED.value, Resolution.NEW_ENTITY.value),
        )
        return [row["resolved_entity_id"] for row in rows]

    def acknowledged_items(self, job_id: int) -> list[AnalysisItemRecord]:
        """Analysis findings the user chose to act on."""
        rows = self._fetch_all(
            _ITEM_SELECT + " WHERE i.job_id = ? AND i.resolution = ? ORDER BY i.id",
            (job_id, Resolution.ACKNOWLEDGED.value),
        )
        return [AnalysisItemRecord.from_row(row) for row in rows]

    def pending_count(
        self,
        campaign_id: int,
        *,
        source_table: str | None = None,
        source_id: int | None = None,
    ) -> int:
        """Count pending items across the campaign's jobs."""
        query = """
            SELECT COUNT(*) FROM content_analysis_items i
            JOIN content_analysis_jobs j ON j.id = i.job_id
            WHERE j.campaign_id = ? AND i.resolution = ?
        """
        params: list[Any] = [campaign_id, Resolution.PENDING.value]
        if source_table:
            query += " AND j.source_table = ?"
            params.append(source_table)
        if source_id is not None:
            query += " AND j.source_id = ?"
            params.append(source_id)
        row = self._fetch_one(query, tuple(params))
        return row[0] if row else 0


__all__ = [
    "AnalysisJobRecord",
    "AnalysisItemRecord",
    "DetectedItem",
    "insert_items",
    "shift_pending_positions",
    "item_span",
    "mark_resolution",
    "recount_job",
    "AnalysisRepository",
]
