"""Run logging service for jdb-helper.

Provides a high-level interface for recording introspection runs,
including automatic context capture and error handling.
"""

import logging
import os
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jdb_helper.logging.run_db import RunDatabase

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Context for one introspection run."""

    run_id: str
    command: str
    dbms: Optional[str] = None
    schema_name: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)

    # Results that get populated during the run
    category_counts: Dict[str, int] = field(default_factory=dict)
    selected_tables: List[str] = field(default_factory=list)
    columns_count: int = 0


class RunLogger:
    """High-level logger for introspection runs.

    Example usage:
        run_logger = RunLogger()

        with run_logger.log_run(command="classify", dbms="duckdb", schema_name="main") as ctx:
            session = classify(session)
            ctx.category_counts = {c.value: len(t) for c, t in session.results.items()}

            # If an error occurs, it's recorded and re-raised
    """

    def __init__(self, db_path: Optional[str] = None, enabled: bool = True, retention_days: int = 30):
        """Initialize the run logger.

        Args:
            db_path: Path to the SQLite database. If None, uses default.
            enabled: Whether logging is enabled.
            retention_days: Runs older than this are removed on startup.
        """
        self.enabled = enabled
        self._db: Optional[RunDatabase] = None

        if self.enabled:
            try:
                self._db = RunDatabase(db_path)
                self._db.initialize()
                self._db.cleanup_old_runs(retention_days)
            except Exception as e:
                logger.warning("Failed to initialize run logging: %s", e)
                self.enabled = False

    @property
    def db(self) -> Optional[RunDatabase]:
        """Get the database instance."""
        return self._db

    def _get_environment_info(self) -> Dict[str, str]:
        return {
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            "package_version": self._get_package_version(),
            "working_directory": os.getcwd(),
        }

    def _get_package_version(self) -> str:
        try:
            from importlib.metadata import version
            return version("jdb-helper")
        except Exception:
            return "unknown"

    @contextmanager
    def log_run(
        self,
        command: str,
        dbms: Optional[str] = None,
        schema_name: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
    ):
        """Context manager for logging a run.

        Args:
            command: CLI command (e.g., 'classify')
            dbms: Database dialect
            schema_name: Introspected schema
            arguments: All command arguments

        Yields:
            RunContext that can be updated during the run
        """
        ctx = RunContext(
            run_id=str(uuid.uuid4())[:8],
            command=command,
            dbms=dbms,
            schema_name=schema_name,
            arguments=arguments or {},
        )

        if not self.enabled or self._db is None:
            yield ctx
            return

        try:
            env_info = self._get_environment_info()
            self._db.insert_run(
                run_id=ctx.run_id,
                command=command,
                dbms=dbms,
                schema_name=schema_name,
                arguments=arguments,
                **env_info,
            )
        except Exception as e:
            logger.warning("Failed to log run start: %s", e)

        try:
            yield ctx
        except Exception as e:
            duration_ms = int((time.time() - ctx.start_time) * 1000)
            try:
                self._update_run_results(ctx)
                self._db.update_error(
                    run_id=ctx.run_id,
                    error_message=str(e),
                    error_type=type(e).__name__,
                    error_traceback=traceback.format_exc(),
                    duration_ms=duration_ms,
                )
            except Exception as log_err:
                logger.warning("Failed to log run error: %s", log_err)

            logger.debug("Run %s failed after %dms: %s", ctx.run_id, duration_ms, e)
            raise

        self._update_run_results(ctx)
        duration_ms = int((time.time() - ctx.start_time) * 1000)
        try:
            self._db.update_success(ctx.run_id, duration_ms)
        except Exception as e:
            logger.warning("Failed to log run success: %s", e)

        logger.debug("Run %s completed successfully in %dms", ctx.run_id, duration_ms)

    def _update_run_results(self, ctx: RunContext) -> None:
        """Update the run entry with collected results."""
        if not self._db:
            return

        try:
            if ctx.category_counts:
                self._db.update_classification_results(ctx.run_id, ctx.category_counts)

            if ctx.selected_tables or ctx.columns_count:
                self._db.update_extraction_results(
                    run_id=ctx.run_id,
                    selected_tables=ctx.selected_tables,
                    columns_count=ctx.columns_count,
                )
        except Exception as e:
            logger.warning("Failed to update run results: %s", e)

    def query_runs(
        self,
        command: Optional[str] = None,
        status: Optional[str] = None,
        dbms: Optional[str] = None,
        since_hours: int = 24,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Query runs with optional filters."""
        if not self.enabled or not self._db:
            return []

        return self._db.query_runs(
            command=command,
            status=status,
            dbms=dbms,
            since_hours=since_hours,
            limit=limit,
        )

    def get_stats(self, since_hours: int = 24) -> Dict[str, Any]:
        """Get statistics about runs."""
        if not self.enabled or not self._db:
            return {"error": "Logging not enabled"}

        return self._db.get_stats(since_hours=since_hours)

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Get a specific run by ID."""
        if not self.enabled or not self._db:
            return None

        return self._db.get_run_by_id(run_id)

    def close(self) -> None:
        if self._db:
            self._db.close()
