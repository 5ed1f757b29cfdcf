"""Dialect selection from settings."""

from typing import Dict, Tuple, Type, TYPE_CHECKING

from .base import QueryBuilder, QueryExecutor
from .duckdb import DuckDBExecutor, DuckDBQueryBuilder
from .models import Session
from .snowflake import SnowflakeExecutor, SnowflakeQueryBuilder

if TYPE_CHECKING:
    from ..config import Settings


BUILDERS: Dict[str, Type[QueryBuilder]] = {
    "duckdb": DuckDBQueryBuilder,
    "snowflake": SnowflakeQueryBuilder,
}


def create_builder(dbms: str) -> QueryBuilder:
    """Get the query builder for a dialect name."""
    try:
        return BUILDERS[dbms]()
    except KeyError:
        raise ValueError(
            f"Unsupported dbms '{dbms}'. Expected one of: {', '.join(sorted(BUILDERS))}"
        )


def create_executor(settings: "Settings") -> QueryExecutor:
    """Create an unconnected executor for the configured dialect."""
    if settings.dbms == "duckdb":
        return DuckDBExecutor(database_path=settings.duckdb_path)
    if settings.dbms == "snowflake":
        return SnowflakeExecutor(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password,
            warehouse=settings.snowflake_warehouse,
            database=settings.snowflake_database,
            role=settings.snowflake_role,
        )
    raise ValueError(
        f"Unsupported dbms '{settings.dbms}'. Expected one of: {', '.join(sorted(BUILDERS))}"
    )


def create_dialect(settings: "Settings") -> Tuple[QueryExecutor, QueryBuilder]:
    """Select the executor and builder once for a run."""
    builder = create_builder(settings.dbms)
    return create_executor(settings), builder


def create_session(settings: "Settings") -> Session:
    """Create an empty session for the configured dialect and schema."""
    executor, builder = create_dialect(settings)
    return Session(schema=settings.db_schema, executor=executor, builder=builder)
