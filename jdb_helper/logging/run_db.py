"""Database operations for introspection run logging."""

import sqlite3
import logging
import json
from pathlib import Path
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


# SQL schema for run logging
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT UNIQUE NOT NULL,
    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
    command TEXT NOT NULL,
    dbms TEXT,
    schema_name TEXT,
    arguments TEXT,  -- JSON of all arguments
    status TEXT DEFAULT 'started',  -- 'started', 'success', 'error'
    duration_ms INTEGER,

    -- Classification results
    framework_internal_count INTEGER,
    migration_internal_count INTEGER,
    junction_count INTEGER,
    entity_count INTEGER,

    -- Column extraction results
    selected_tables TEXT,  -- JSON array
    columns_count INTEGER,

    -- Error information
    error_message TEXT,
    error_type TEXT,
    error_traceback TEXT,

    -- Environment info
    python_version TEXT,
    package_version TEXT,
    working_directory TEXT
);

CREATE INDEX IF NOT EXISTS idx_runs_timestamp ON runs(timestamp);
CREATE INDEX IF NOT EXISTS idx_runs_status ON runs(status);
CREATE INDEX IF NOT EXISTS idx_runs_dbms ON runs(dbms);
"""


def get_default_run_db_path() -> str:
    """Get the default database path (~/.jdb-helper/runs.db)."""
    home = Path.home()
    app_dir = home / ".jdb-helper"
    app_dir.mkdir(exist_ok=True)
    return str(app_dir / "runs.db")


def _utc_cutoff(**delta) -> str:
    # Matches sqlite CURRENT_TIMESTAMP format (UTC, space separator)
    return (datetime.now(timezone.utc) - timedelta(**delta)).strftime("%Y-%m-%d %H:%M:%S")


class RunDatabase:
    """SQLite database for introspection run logging."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses default.
        """
        self.db_path = db_path or get_default_run_db_path()
        self._connection: Optional[sqlite3.Connection] = None
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,  # Auto-commit mode
            )
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        try:
            conn = self._get_connection()
            conn.executescript(SCHEMA_SQL)
            self._initialized = True
            logger.debug("Run logging database initialized at %s", self.db_path)
        except Exception as e:
            logger.error("Failed to initialize run logging database: %s", e)
            raise

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            self._initialized = False

    def insert_run(
        self,
        run_id: str,
        command: str,
        dbms: Optional[str] = None,
        schema_name: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
        python_version: Optional[str] = None,
        package_version: Optional[str] = None,
        working_directory: Optional[str] = None,
    ) -> int:
        """Insert a new run entry.

        Returns:
            The row ID of the inserted entry
        """
        self.initialize()
        conn = self._get_connection()

        arguments_json = json.dumps(arguments, default=str) if arguments else None

        cursor = conn.execute(
            """
            INSERT INTO runs (
                run_id, command, dbms, schema_name, arguments, status,
                python_version, package_version, working_directory
            )
            VALUES (?, ?, ?, ?, ?, 'started', ?, ?, ?)
            """,
            (
                run_id, command, dbms, schema_name, arguments_json,
                python_version, package_version, working_directory,
            ),
        )
        return cursor.lastrowid

    def update_classification_results(self, run_id: str, counts: Dict[str, int]) -> None:
        """Update run with per-category table counts.

        Args:
            run_id: Run identifier
            counts: Category tag (e.g. 'junction') -> number of tables
        """
        conn = self._get_connection()
        conn.execute(
            """
            UPDATE runs
            SET framework_internal_count = ?, migration_internal_count = ?,
                junction_count = ?, entity_count = ?
            WHERE run_id = ?
            """,
            (
                counts.get("frameworkInternal"),
                counts.get("migrationInternal"),
                counts.get("junction"),
                counts.get("entity"),
                run_id,
            ),
        )

    def update_extraction_results(
        self,
        run_id: str,
        selected_tables: List[str],
        columns_count: int,
    ) -> None:
        """Update run with column extraction results."""
        conn = self._get_connection()
        conn.execute(
            """
            UPDATE runs
            SET selected_tables = ?, columns_count = ?
            WHERE run_id = ?
            """,
            (json.dumps(selected_tables), columns_count, run_id),
        )

    def update_success(self, run_id: str, duration_ms: int) -> None:
        """Mark run as successful."""
        conn = self._get_connection()
        conn.execute(
            """
            UPDATE runs
            SET status = 'success', duration_ms = ?
            WHERE run_id = ?
            """,
            (duration_ms, run_id),
        )

    def update_error(
        self,
        run_id: str,
        error_message: str,
        error_type: Optional[str] = None,
        error_traceback: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Mark run as failed with error details."""
        conn = self._get_connection()
        conn.execute(
            """
            UPDATE runs
            SET status = 'error', error_message = ?, error_type = ?,
                error_traceback = ?, duration_ms = ?
            WHERE run_id = ?
            """,
            (error_message, error_type, error_traceback, duration_ms, run_id),
        )

    def query_runs(
        self,
        command: Optional[str] = None,
        status: Optional[str] = None,
        dbms: Optional[str] = None,
        since_hours: int = 24,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Query run entries with optional filters, newest first."""
        self.initialize()
        conn = self._get_connection()

        conditions = ["timestamp >= ?"]
        params: List[Any] = [_utc_cutoff(hours=since_hours)]

        if command:
            conditions.append("command = ?")
            params.append(command)

        if status:
            conditions.append("status = ?")
            params.append(status)

        if dbms:
            conditions.append("dbms = ?")
            params.append(dbms)

        where_clause = " AND ".join(conditions)
        params.append(limit)

        query = f"""
            SELECT * FROM runs
            WHERE {where_clause}
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
        """

        cursor = conn.execute(query, params)
        return [dict(row) for row in cursor.fetchall()]

    def get_run_by_id(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Get a specific run by ID."""
        self.initialize()
        conn = self._get_connection()

        cursor = conn.execute(
            "SELECT * FROM runs WHERE run_id = ?",
            (run_id,),
        )
        row = cursor.fetchone()

        return dict(row) if row else None

    def get_stats(self, since_hours: int = 24) -> Dict[str, Any]:
        """Get statistics about runs."""
        self.initialize()
        conn = self._get_connection()

        cursor = conn.execute(
            """
            SELECT
                COUNT(*) as total,
                SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) as success_count,
                SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END) as error_count,
                AVG(duration_ms) as avg_duration_ms,
                SUM(entity_count) as total_entities
            FROM runs
            WHERE timestamp >= ?
            """,
            (_utc_cutoff(hours=since_hours),),
        )
        row = cursor.fetchone()

        return {
            "total_runs": row["total"] or 0,
            "success_count": row["success_count"] or 0,
            "error_count": row["error_count"] or 0,
            "avg_duration_ms": round(row["avg_duration_ms"] or 0, 2),
            "total_entity_tables": row["total_entities"] or 0,
            "since_hours": since_hours,
        }

    def cleanup_old_runs(self, retention_days: int = 30) -> int:
        """Delete runs older than retention period.

        Returns:
            Number of deleted rows
        """
        self.initialize()
        conn = self._get_connection()

        cursor = conn.execute(
            "DELETE FROM runs WHERE timestamp < ?",
            (_utc_cutoff(days=retention_days),),
        )

        deleted = cursor.rowcount
        if deleted > 0:
            logger.info("Cleaned up %d old run entries", deleted)

        return deleted

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
