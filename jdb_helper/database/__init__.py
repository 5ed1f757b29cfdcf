"""Database access module for jdb-helper.

This module provides the dialect-agnostic executor and query builder
contracts with implementations for DuckDB and Snowflake.
"""

from .models import Category, ColumnMetadata, Session
from .base import QueryBuilder, QueryExecutor
from .duckdb import DuckDBExecutor, DuckDBQueryBuilder
from .snowflake import SnowflakeExecutor, SnowflakeQueryBuilder
from .factory import create_builder, create_dialect, create_executor, create_session

__all__ = [
    # Data models
    "Category",
    "ColumnMetadata",
    "Session",
    # Base classes
    "QueryBuilder",
    "QueryExecutor",
    # Dialects
    "DuckDBExecutor",
    "DuckDBQueryBuilder",
    "SnowflakeExecutor",
    "SnowflakeQueryBuilder",
    # Factory
    "create_builder",
    "create_dialect",
    "create_executor",
    "create_session",
]
