"""
PostgreSQL draft snapshot adapter - Implements DraftSnapshotStore protocol.

This module provides the PostgreSQL implementation of the domain's
snapshot port using psycopg3 with raw SQL.

Data Stewardship
----------------
Only non-sensitive draft fields are ever written. The password, its
confirmation and the document attachments are stripped here as well as
in the domain, so a caller handing over a full snapshot by mistake still
cannot persist them.
"""

import logging
from pathlib import Path
from typing import Any

from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.draft import SENSITIVE_FIELDS

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = frozenset(draft_field.value for draft_field in SENSITIVE_FIELDS)


class PostgresDraftSnapshotStore:
    """
    Implements DraftSnapshotStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def save(self, session_id: str, snapshot: dict[str, Any]) -> None:
        """
        Insert or replace the snapshot for a session.

        Uses INSERT ... ON CONFLICT DO UPDATE for an atomic upsert.
        """
        sql = """
            INSERT INTO draft_snapshots (session_id, snapshot, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (session_id) DO UPDATE
            SET snapshot = EXCLUDED.snapshot,
                updated_at = NOW()
        """
        safe_snapshot = {k: v for k, v in snapshot.items() if k not in _SENSITIVE_KEYS}

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (session_id, Jsonb(safe_snapshot)))
            conn.commit()

    def load(self, session_id: str) -> dict[str, Any] | None:
        sql = "SELECT snapshot FROM draft_snapshots WHERE session_id = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (session_id,))
            row = cursor.fetchone()

        if row is None:
            return None
        return dict(row[0])

    def delete(self, session_id: str) -> None:
        sql = "DELETE FROM draft_snapshots WHERE session_id = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (session_id,))
            conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
