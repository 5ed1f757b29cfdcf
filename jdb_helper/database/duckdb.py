"""DuckDB query executor and query builder."""

import logging
from typing import List

from .base import QueryBuilder, QueryExecutor, Row

logger = logging.getLogger(__name__)


class DuckDBExecutor(QueryExecutor):
    """Runs queries against a DuckDB database file or an in-memory database."""

    dialect = "duckdb"

    def __init__(
        self,
        database_path: str = ":memory:",
        read_only: bool = True,
        connection=None,
    ):
        """Initialize DuckDB executor.

        Args:
            database_path: Path to .duckdb file (can be :memory: for in-memory)
            read_only: Open database file in read-only mode (ignored for :memory:)
            connection: Already open DuckDB connection to use instead of connecting
        """
        self.database_path = database_path
        self.read_only = read_only
        self._connection = connection
        self._owns_connection = connection is None

    def connect(self):
        """Connect to the DuckDB database."""
        if self._connection is not None:
            return self._connection

        try:
            import duckdb
        except ImportError:
            raise ImportError(
                "duckdb is required. "
                "Install it with: pip install duckdb"
            )

        if self.database_path == ":memory:":
            self._connection = duckdb.connect(":memory:")
        else:
            self._connection = duckdb.connect(self.database_path, read_only=self.read_only)
        self._owns_connection = True
        logger.debug("Connected to DuckDB database %s", self.database_path)
        return self._connection

    def close(self):
        """Close the DuckDB connection if this executor opened it."""
        if self._connection is not None and self._owns_connection:
            self._connection.close()
        self._connection = None

    def _execute(self, sql: str) -> List[Row]:
        conn = self.connect()
        cursor = conn.execute(sql)
        if cursor.description is None:
            return []
        columns = [d[0].lower() for d in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]


class DuckDBQueryBuilder(QueryBuilder):
    """Query builder for DuckDB.

    Junction tables are detected from foreign key metadata: a junction
    table has exactly two columns, both covered by foreign keys.
    """

    dialect = "duckdb"

    def junction_query(self, schema: str, excluded: List[str]) -> str:
        schema_literal = self.quote_literal(schema)
        return f"""
            SELECT t.table_name AS table_name
            FROM information_schema.tables AS t
            WHERE t.table_schema = {schema_literal}
              AND t.table_type = 'BASE TABLE'
              {self.exclusion_clause("t.table_name", excluded)}
              AND t.table_name IN (
                  SELECT c.table_name
                  FROM information_schema.columns AS c
                  WHERE c.table_schema = {schema_literal}
                  GROUP BY c.table_name
                  HAVING COUNT(*) = 2
              )
              AND t.table_name IN (
                  SELECT fk.table_name
                  FROM (
                      SELECT dc.table_name, UNNEST(dc.constraint_column_names) AS column_name
                      FROM duckdb_constraints() AS dc
                      WHERE dc.schema_name = {schema_literal}
                        AND dc.constraint_type = 'FOREIGN KEY'
                  ) AS fk
                  GROUP BY fk.table_name
                  HAVING COUNT(DISTINCT fk.column_name) = 2
              )
            ORDER BY t.table_name
        """
