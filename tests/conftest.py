"""Shared pytest fixtures for jdb-helper tests."""

import json

import pytest
from typing import Any, Dict, List, Optional

from jdb_helper.database.base import QueryBuilder, QueryExecutor
from jdb_helper.database.models import Session


class MockExecutor(QueryExecutor):
    """Executor that replays scripted row lists, one per query.

    Records every query it receives. If ``fail_on`` is set, the query with
    that 0-based index raises ``error`` instead of returning rows.
    """

    dialect = "mock"

    def __init__(
        self,
        responses: Optional[List[List[Dict[str, Any]]]] = None,
        fail_on: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.responses = list(responses or [])
        self.fail_on = fail_on
        self.error = error or RuntimeError("connection lost")
        self.queries: List[str] = []
        self.connected = False

    def connect(self):
        self.connected = True

    def close(self):
        self.connected = False

    def _execute(self, sql: str) -> List[Dict[str, Any]]:
        index = len(self.queries)
        self.queries.append(sql)
        if self.fail_on == index:
            raise self.error
        if index < len(self.responses):
            return self.responses[index]
        return []


class RecordingQueryBuilder(QueryBuilder):
    """Builder that records each call and returns a recognisable query name."""

    dialect = "mock"

    def __init__(self):
        self.calls: List[tuple] = []

    def framework_internal_query(self, schema: str) -> str:
        self.calls.append(("framework_internal_query", schema, None))
        return "frameworkInternal"

    def migration_internal_query(self, schema: str) -> str:
        self.calls.append(("migration_internal_query", schema, None))
        return "migrationInternal"

    def junction_query(self, schema: str, excluded: List[str]) -> str:
        self.calls.append(("junction_query", schema, list(excluded)))
        return "junction"

    def entity_query(self, schema: str, excluded: List[str]) -> str:
        self.calls.append(("entity_query", schema, list(excluded)))
        return "entity"

    def columns_query(self, schema: str, selected: List[str]) -> str:
        self.calls.append(("columns_query", schema, list(selected)))
        return "columns"

    def excluded_for(self, method: str) -> List[str]:
        """Get the list passed to the first call of ``method``."""
        for name, _, tables in self.calls:
            if name == method:
                return tables
        raise AssertionError(f"{method} was never called")


def _table_rows(*names: str) -> List[Dict[str, Any]]:
    return [{"table_name": name} for name in names]


def _column_row(table: str, column: str, position: int, data_type: str) -> Dict[str, Any]:
    return {
        "table_name": table,
        "column_name": column,
        "ordinal_position": position,
        "data_type": data_type,
    }


def _create_jhipster_schema(conn) -> None:
    """Create JHipster, Liquibase, junction and entity tables on a DuckDB connection."""
    conn.execute("CREATE TABLE jhi_user (id INTEGER PRIMARY KEY, login VARCHAR)")
    conn.execute(
        "CREATE TABLE databasechangelog (id VARCHAR, author VARCHAR, filename VARCHAR)"
    )
    conn.execute(
        "CREATE TABLE orders (id INTEGER PRIMARY KEY, total DECIMAL(10, 2), placed_at TIMESTAMP)"
    )
    conn.execute(
        "CREATE TABLE products (id INTEGER PRIMARY KEY, name VARCHAR, price DECIMAL(10, 2))"
    )
    conn.execute(
        "CREATE TABLE rel_order_product ("
        " order_id INTEGER REFERENCES orders(id),"
        " product_id INTEGER REFERENCES products(id))"
    )


@pytest.fixture
def table_rows():
    """Build classification rows as an executor returns them."""
    return _table_rows


@pytest.fixture
def column_row():
    """Build one column row as an executor returns it."""
    return _column_row


@pytest.fixture
def mock_executor():
    """Factory for MockExecutor instances."""
    return MockExecutor


@pytest.fixture
def builder():
    """Create a fresh recording query builder."""
    return RecordingQueryBuilder()


@pytest.fixture
def make_session(builder):
    """Factory for sessions backed by a MockExecutor."""

    def _make(responses=None, fail_on=None, error=None, schema="S"):
        executor = MockExecutor(responses=responses, fail_on=fail_on, error=error)
        return Session(schema=schema, executor=executor, builder=builder)

    return _make


@pytest.fixture
def jhipster_responses():
    """Stage responses for the jhi_user / databasechangelog / rel_order_product schema."""
    return [
        _table_rows("jhi_user"),
        _table_rows("databasechangelog"),
        _table_rows("rel_order_product"),
        _table_rows("orders", "products"),
    ]


@pytest.fixture
def order_column_rows():
    """Column rows for the orders and products tables."""
    return [
        _column_row("orders", "id", 1, "int"),
        _column_row("orders", "total", 2, "decimal"),
        _column_row("products", "id", 1, "int"),
    ]


@pytest.fixture
def duckdb_connection():
    """In-memory DuckDB database with a small JHipster-style schema."""
    duckdb = pytest.importorskip("duckdb")
    conn = duckdb.connect(":memory:")
    _create_jhipster_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def duckdb_file(tmp_path):
    """DuckDB database file with the JHipster-style schema."""
    duckdb = pytest.importorskip("duckdb")
    path = str(tmp_path / "shop.duckdb")
    conn = duckdb.connect(path)
    _create_jhipster_schema(conn)
    conn.close()
    return path


@pytest.fixture
def config_file(tmp_path):
    """Write a JSON config file that keeps the run log inside tmp_path."""

    def _write(**items):
        items.setdefault("run_logging_db_path", str(tmp_path / "runs.db"))
        path = tmp_path / "jdb-helper.json"
        path.write_text(json.dumps(items))
        return str(path)

    return _write
