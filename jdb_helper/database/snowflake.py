"""Snowflake query executor and query builder."""

import os
import logging
from typing import Optional, List

from .base import QueryBuilder, QueryExecutor, Row

logger = logging.getLogger(__name__)


class SnowflakeExecutor(QueryExecutor):
    """Runs queries against a Snowflake database."""

    dialect = "snowflake"

    def __init__(
        self,
        account: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        warehouse: Optional[str] = None,
        database: Optional[str] = None,
        role: Optional[str] = None,
    ):
        self.account = account or os.environ.get("SNOWFLAKE_ACCOUNT")
        self.user = user or os.environ.get("SNOWFLAKE_USER")
        self.password = password or os.environ.get("SNOWFLAKE_PASSWORD")
        self.warehouse = warehouse or os.environ.get("SNOWFLAKE_WAREHOUSE")
        self.database = database or os.environ.get("SNOWFLAKE_DATABASE")
        self.role = role or os.environ.get("SNOWFLAKE_ROLE")
        self._connection = None

    def connect(self):
        """Connect to Snowflake."""
        if self._connection is not None:
            return self._connection

        try:
            import snowflake.connector
        except ImportError:
            raise ImportError(
                "snowflake-connector-python is required. "
                "Install it with: pip install snowflake-connector-python"
            )

        self._connection = snowflake.connector.connect(
            account=self.account,
            user=self.user,
            password=self.password,
            warehouse=self.warehouse,
            database=self.database,
            role=self.role,
        )
        logger.debug("Connected to Snowflake account %s, database %s", self.account, self.database)
        return self._connection

    def close(self):
        """Close the connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    def _execute(self, sql: str) -> List[Row]:
        from snowflake.connector import DictCursor

        conn = self.connect()
        cursor = conn.cursor(DictCursor)
        try:
            cursor.execute(sql)
            # Unquoted aliases come back upper-cased
            return [
                {key.lower(): value for key, value in row.items()}
                for row in cursor.fetchall()
            ]
        finally:
            cursor.close()


class SnowflakeQueryBuilder(QueryBuilder):
    """Query builder for Snowflake.

    Snowflake does not expose foreign key columns through
    ``information_schema``, so junction tables are detected by name: exactly
    two columns, both ending in ``_id``.
    """

    dialect = "snowflake"
    ESCAPE_BACKSLASHES = True

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
                     AND SUM(CASE WHEN RIGHT(LOWER(c.column_name), 3) = '_id' THEN 1 ELSE 0 END) = 2
              )
            ORDER BY t.table_name
        """
