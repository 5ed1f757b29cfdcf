"""Tests for the dialect query builders."""

import pytest

from jdb_helper.database import (
    DuckDBQueryBuilder,
    SnowflakeQueryBuilder,
    create_builder,
)


@pytest.fixture(params=[DuckDBQueryBuilder, SnowflakeQueryBuilder], ids=["duckdb", "snowflake"])
def any_builder(request):
    """Each supported dialect's builder."""
    return request.param()


def squash(sql: str) -> str:
    """Collapse whitespace so assertions ignore formatting."""
    return " ".join(sql.split())


class TestLiterals:
    """Test literal quoting and list rendering."""

    def test_quotes_single_quotes(self, any_builder):
        assert any_builder.quote_literal("o'brien") == "'o''brien'"

    def test_duckdb_keeps_backslashes(self):
        assert DuckDBQueryBuilder().quote_literal("a\\b") == "'a\\b'"

    def test_snowflake_escapes_backslashes(self):
        """Test Snowflake literals escape backslash before quotes."""
        assert SnowflakeQueryBuilder().quote_literal("a\\'b") == "'a\\\\''b'"

    def test_literal_list(self, any_builder):
        assert any_builder.literal_list(["a", "b"]) == "'a', 'b'"

    def test_empty_exclusion_adds_no_filter(self, any_builder):
        assert any_builder.exclusion_clause("t.table_name", []) == ""

    def test_exclusion_clause(self, any_builder):
        assert any_builder.exclusion_clause("t.table_name", ["jhi_user"]) == "AND t.table_name NOT IN ('jhi_user')"

    def test_empty_selection_matches_nothing(self, any_builder):
        assert any_builder.selection_clause("c.table_name", []) == "AND 1 = 0"


class TestClassificationQueries:
    """Test the generated classification queries."""

    def test_framework_query_filters_schema_and_prefix(self, any_builder):
        sql = squash(any_builder.framework_internal_query("shop"))

        assert "t.table_schema = 'shop'" in sql
        assert "LEFT(LOWER(t.table_name), 4) = 'jhi_'" in sql
        assert "NOT IN" not in sql

    def test_migration_query_lists_liquibase_tables(self, any_builder):
        sql = squash(any_builder.migration_internal_query("shop"))

        assert "LOWER(t.table_name) IN ('databasechangelog', 'databasechangeloglock')" in sql

    def test_junction_query_with_exclusions(self, any_builder):
        sql = squash(any_builder.junction_query("shop", ["jhi_user", "databasechangelog"]))

        assert "t.table_name NOT IN ('jhi_user', 'databasechangelog')" in sql
        assert "HAVING COUNT(*) = 2" in sql

    def test_junction_query_without_exclusions(self, any_builder):
        sql = squash(any_builder.junction_query("shop", []))

        assert "NOT IN" not in sql
        assert "()" not in sql.replace("COUNT(*)", "").replace("duckdb_constraints()", "")

    def test_duckdb_junction_uses_foreign_keys(self):
        sql = squash(DuckDBQueryBuilder().junction_query("main", []))

        assert "duckdb_constraints()" in sql
        assert "constraint_type = 'FOREIGN KEY'" in sql

    def test_snowflake_junction_uses_id_suffix(self):
        sql = squash(SnowflakeQueryBuilder().junction_query("PUBLIC", []))

        assert "RIGHT(LOWER(c.column_name), 3) = '_id'" in sql

    def test_entity_query_with_exclusions(self, any_builder):
        sql = squash(any_builder.entity_query("shop", ["jhi_user", "rel_order_product"]))

        assert "t.table_name NOT IN ('jhi_user', 'rel_order_product')" in sql
        assert "t.table_type = 'BASE TABLE'" in sql

    def test_schema_is_escaped(self, any_builder):
        sql = any_builder.entity_query("x' OR '1'='1", [])

        assert "'x'' OR ''1''=''1'" in sql

    def test_queries_are_pure(self, any_builder):
        """Test building the same query twice yields the same text."""
        assert any_builder.entity_query("shop", ["a"]) == any_builder.entity_query("shop", ["a"])


class TestColumnsQuery:
    """Test the column metadata query."""

    def test_projects_expected_fields(self, any_builder):
        sql = squash(any_builder.columns_query("shop", ["orders"]))

        for alias in ("table_name", "column_name", "ordinal_position", "data_type"):
            assert f"AS {alias}" in sql
        assert "c.table_name IN ('orders')" in sql

    def test_empty_selection(self, any_builder):
        sql = squash(any_builder.columns_query("shop", []))

        assert "AND 1 = 0" in sql
        assert " IN ()" not in sql


class TestCreateBuilder:
    """Test dialect lookup."""

    def test_known_dialects(self):
        assert isinstance(create_builder("duckdb"), DuckDBQueryBuilder)
        assert isinstance(create_builder("snowflake"), SnowflakeQueryBuilder)

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match="Unsupported dbms"):
            create_builder("oracle")
