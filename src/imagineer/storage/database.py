"""SQLite persistence layer for Imagineer.

Provides the schema and connection handling for:
- Users, per-user LLM settings and server-side drafts
- Campaigns with their entities, relationships, chapters, sessions and timeline
- Content analysis jobs and the items they produce

Default location: data/imagineer.db (see ``IMAGINEER_DATABASE_PATH``).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from imagineer.core.config import get_settings
from imagineer.core.logging import get_logger
from imagineer.storage.base import to_json, to_timestamp
from imagineer.storage.seeds import BUILTIN_GAME_SYSTEMS

logger = get_logger(__name__)


# =============================================================================
# Schema
# =============================================================================

_TABLES: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS game_systems (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        code TEXT NOT NULL UNIQUE,
        attribute_schema TEXT,
        skill_schema TEXT,
        dice_conventions TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        google_id TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        avatar_url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
        content_gen_service TEXT,
        content_gen_api_key TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS campaigns (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        system_id INTEGER REFERENCES game_systems(id) ON DELETE SET NULL,
        description TEXT,
        settings TEXT NOT NULL DEFAULT '{}',
        owner_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        genre TEXT,
        image_style_prompt TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chapters (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        overview TEXT,
        sort_order INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        chapter_id INTEGER REFERENCES chapters(id) ON DELETE SET NULL,
        session_number INTEGER,
        title TEXT,
        planned_date TEXT,
        actual_date TEXT,
        status TEXT NOT NULL DEFAULT 'PLANNED',
        stage TEXT NOT NULL DEFAULT 'prep',
        prep_notes TEXT,
        planned_scenes TEXT,
        actual_notes TEXT,
        discoveries TEXT NOT NULL DEFAULT '[]',
        player_decisions TEXT NOT NULL DEFAULT '[]',
        consequences TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (campaign_id, session_number)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS entities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        entity_type TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        attributes TEXT NOT NULL DEFAULT '{}',
        tags TEXT NOT NULL DEFAULT '[]',
        gm_notes TEXT,
        discovered_session INTEGER REFERENCES sessions(id) ON DELETE SET NULL,
        source_document TEXT,
        source_confidence TEXT NOT NULL DEFAULT 'DRAFT',
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS entity_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity_id INTEGER NOT NULL REFERENCES entities(id) ON DELETE CASCADE,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        chapter_id INTEGER REFERENCES chapters(id) ON DELETE SET NULL,
        session_id INTEGER REFERENCES sessions(id) ON DELETE SET NULL,
        source_table TEXT,
        source_id INTEGER,
        content TEXT NOT NULL,
        occurred_at TEXT,
        sort_order INTEGER,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relationship_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        inverse_name TEXT NOT NULL,
        is_symmetric INTEGER NOT NULL DEFAULT 0,
        display_label TEXT NOT NULL,
        inverse_display_label TEXT NOT NULL,
        description TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (campaign_id, name),
        CHECK (NOT is_symmetric OR name = inverse_name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relationships (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        source_entity_id INTEGER NOT NULL REFERENCES entities(id) ON DELETE CASCADE,
        target_entity_id INTEGER NOT NULL REFERENCES entities(id) ON DELETE CASCADE,
        relationship_type_id INTEGER NOT NULL REFERENCES relationship_types(id),
        tone TEXT,
        description TEXT,
        strength INTEGER CHECK (strength IS NULL OR (strength >= 1 AND strength <= 10)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (source_entity_id, target_entity_id, relationship_type_id),
        CHECK (source_entity_id != target_entity_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS timeline_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        event_date TEXT,
        event_time TEXT,
        date_precision TEXT NOT NULL DEFAULT 'exact',
        description TEXT NOT NULL,
        entity_ids TEXT NOT NULL DEFAULT '[]',
        session_id INTEGER REFERENCES sessions(id) ON DELETE SET NULL,
        is_player_known INTEGER NOT NULL DEFAULT 0,
        source_document TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS drafts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        source_table TEXT NOT NULL,
        source_id INTEGER NOT NULL DEFAULT 0,
        is_new INTEGER NOT NULL DEFAULT 0,
        draft_data TEXT NOT NULL,
        server_version INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (user_id, source_table, source_id, campaign_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_analysis_jobs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        source_table TEXT NOT NULL,
        source_id INTEGER NOT NULL,
        source_field TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'completed',
        total_items INTEGER NOT NULL DEFAULT 0,
        resolved_items INTEGER NOT NULL DEFAULT 0,
        enrichment_total INTEGER NOT NULL DEFAULT 0,
        enrichment_resolved INTEGER NOT NULL DEFAULT 0,
        failure_reason TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_analysis_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        job_id INTEGER NOT NULL REFERENCES content_analysis_jobs(id) ON DELETE CASCADE,
        detection_type TEXT NOT NULL,
        matched_text TEXT NOT NULL,
        entity_id INTEGER REFERENCES entities(id) ON DELETE SET NULL,
        similarity REAL,
        context_snippet TEXT,
        position_start INTEGER,
        position_end INTEGER,
        resolution TEXT NOT NULL DEFAULT 'pending',
        resolved_entity_id INTEGER REFERENCES entities(id) ON DELETE SET NULL,
        resolved_at TEXT,
        suggested_content TEXT,
        phase TEXT NOT NULL DEFAULT 'identification',
        agent_name TEXT,
        pipeline_run_id TEXT,
        created_at TEXT NOT NULL
    )
    """,
)

_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_campaigns_owner ON campaigns(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_entities_campaign_type ON entities(campaign_id, entity_type)",
    "CREATE INDEX IF NOT EXISTS idx_entity_log_entity ON entity_log(entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_campaign ON relationships(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_source ON relationships(source_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_target ON relationships(target_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_chapters_sort ON chapters(campaign_id, sort_order)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_campaign ON timeline_events(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_drafts_campaign_table ON drafts(campaign_id, source_table)",
    """
    CREATE INDEX IF NOT EXISTS idx_analysis_jobs_source
    ON content_analysis_jobs(campaign_id, source_table, source_id, source_field)
    """,
    "CREATE INDEX IF NOT EXISTS idx_analysis_items_resolution ON content_analysis_items(job_id, resolution)",
)


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database for Imagineer persistence.

    Each operation opens its own connection, so a single instance can be
    shared between request handlers and background enrichment threads.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path) -> None:
        """Initialize database.

        Args:
            db_path: Path to the database file. Parent directories are created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def connection(self, *, immediate: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection wrapped in a transaction.

        The transaction commits when the block exits normally and rolls
        back on any exception.

        Args:
            immediate: Take the write lock before the first statement, so
                reads inside the block cannot be overtaken by another
                writer. Use for read-check-write sequences.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Create tables and indexes, then seed reference data."""
        with self.connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)
            for statement in _TABLES:
                conn.execute(statement)
            for statement in _INDEXES:
                conn.execute(statement)

            self._seed_game_systems(conn)

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    @staticmethod
    def _seed_game_systems(conn: sqlite3.Connection) -> None:
        now = to_timestamp()
        for system in BUILTIN_GAME_SYSTEMS:
            conn.execute(
                """
                INSERT OR IGNORE INTO game_systems
                    (name, code, attribute_schema, skill_schema, dice_conventions, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    system["name"],
                    system["code"],
                    to_json(system["attribute_schema"]),
                    to_json(system["skill_schema"]),
                    to_json(system["dice_conventions"]),
                    now,
                ),
            )


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    The database path comes from settings on first use.

    Returns:
        Database singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database(get_settings().database.database_path)

    return _database_instance


def set_database(database: Database | None) -> None:
    """Replace the global database instance.

    Args:
        database: Database to use, or None to reload from settings on next access.
    """
    global _database_instance
    _database_instance = database


__all__ = [
    "Database",
    "get_database",
    "set_database",
]
