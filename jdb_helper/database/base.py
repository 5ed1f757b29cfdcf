"""Abstract base classes for dialect query execution and query building."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

from ..errors import ExecutionError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# Bookkeeping tables created by JHipster and Liquibase
FRAMEWORK_TABLE_PREFIX = "jhi_"
MIGRATION_TABLES = ("databasechangelog", "databasechangeloglock")


class QueryExecutor(ABC):
    """Abstract base class for running queries against one database.

    Subclasses open the driver connection and implement ``_execute``.
    ``run`` turns any driver failure into an ``ExecutionError``.
    """

    dialect: str = ""

    @abstractmethod
    def connect(self):
        """Establish connection to the database."""
        pass

    @abstractmethod
    def close(self):
        """Close the database connection."""
        pass

    @abstractmethod
    def _execute(self, sql: str) -> List[Row]:
        """Execute a query and return rows keyed by lower-cased column names."""
        pass

    def run(self, sql: str) -> List[Row]:
        """Run a query and return its rows.

        Args:
            sql: Query text

        Returns:
            List of rows, each a dict keyed by the projected column names

        Raises:
            ExecutionError: If the driver fails to run the query
        """
        logger.debug("[%s] running query:\n%s", self.dialect, sql)
        try:
            rows = self._execute(sql)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"{self.dialect} query failed: {e}",
                query=sql,
                dialect=self.dialect,
            ) from e
        logger.debug("[%s] query returned %d rows", self.dialect, len(rows))
        return rows

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class QueryBuilder(ABC):
    """Builds the classification and column queries for one dialect.

    Every method is a pure function of its arguments. Table names are
    embedded as escaped string literals; an empty exclusion list adds no
    filter and an empty selection matches nothing.

    The defaults read ``information_schema``, which both supported
    dialects expose. Subclasses must provide the junction heuristic.
    """

    dialect: str = ""

    # Whether backslash is an escape character inside string literals
    ESCAPE_BACKSLASHES: bool = False

    def quote_literal(self, value: str) -> str:
        """Quote a value as a SQL string literal."""
        escaped = str(value)
        if self.ESCAPE_BACKSLASHES:
            escaped = escaped.replace("\\", "\\\\")
        escaped = escaped.replace("'", "''")
        return f"'{escaped}'"

    def literal_list(self, values: Iterable[str]) -> str:
        """Render values as a comma-separated list of literals."""
        return ", ".join(self.quote_literal(v) for v in values)

    def exclusion_clause(self, column: str, excluded: Iterable[str]) -> str:
        """Render an ``AND column NOT IN (...)`` filter, or nothing when empty."""
        excluded = list(excluded)
        if not excluded:
            return ""
        return f"AND {column} NOT IN ({self.literal_list(excluded)})"

    def selection_clause(self, column: str, selected: Iterable[str]) -> str:
        """Render an ``AND column IN (...)`` filter that matches nothing when empty."""
        selected = list(selected)
        if not selected:
            return "AND 1 = 0"
        return f"AND {column} IN ({self.literal_list(selected)})"

    def framework_internal_query(self, schema: str) -> str:
        """Query base tables maintained by the application framework."""
        return f"""
            SELECT t.table_name AS table_name
            FROM information_schema.tables AS t
            WHERE t.table_schema = {self.quote_literal(schema)}
              AND t.table_type = 'BASE TABLE'
              AND LEFT(LOWER(t.table_name), {len(FRAMEWORK_TABLE_PREFIX)}) = {self.quote_literal(FRAMEWORK_TABLE_PREFIX)}
            ORDER BY t.table_name
        """

    def migration_internal_query(self, schema: str) -> str:
        """Query base tables maintained by the migration tool."""
        return f"""
            SELECT t.table_name AS table_name
            FROM information_schema.tables AS t
            WHERE t.table_schema = {self.quote_literal(schema)}
              AND t.table_type = 'BASE TABLE'
              AND LOWER(t.table_name) IN ({self.literal_list(MIGRATION_TABLES)})
            ORDER BY t.table_name
        """

    @abstractmethod
    def junction_query(self, schema: str, excluded: List[str]) -> str:
        """Query many-to-many junction tables not already excluded."""
        pass

    def entity_query(self, schema: str, excluded: List[str]) -> str:
        """Query every remaining base table."""
        return f"""
            SELECT t.table_name AS table_name
            FROM information_schema.tables AS t
            WHERE t.table_schema = {self.quote_literal(schema)}
              AND t.table_type = 'BASE TABLE'
              {self.exclusion_clause("t.table_name", excluded)}
            ORDER BY t.table_name
        """

    def columns_query(self, schema: str, selected: List[str]) -> str:
        """Query column metadata for the selected tables."""
        return f"""
            SELECT
                c.table_name AS table_name,
                c.column_name AS column_name,
                c.ordinal_position AS ordinal_position,
                c.data_type AS data_type
            FROM information_schema.columns AS c
            WHERE c.table_schema = {self.quote_literal(schema)}
              {self.selection_clause("c.table_name", selected)}
            ORDER BY c.table_name, c.ordinal_position
        """
