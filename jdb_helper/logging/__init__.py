"""Run logging module for jdb-helper.

Records each introspection run in a local SQLite database to help with
debugging and auditing.
"""

from jdb_helper.logging.run_db import RunDatabase, get_default_run_db_path
from jdb_helper.logging.run_service import RunContext, RunLogger

__all__ = [
    "RunDatabase",
    "get_default_run_db_path",
    "RunContext",
    "RunLogger",
]
