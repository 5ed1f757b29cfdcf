"""Data models for table classification and column extraction."""

from enum import Enum
from typing import Any, Dict, List, TYPE_CHECKING
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from .base import QueryBuilder, QueryExecutor


class Category(str, Enum):
    """Table categories, in classification order."""
    FRAMEWORK_INTERNAL = "frameworkInternal"
    MIGRATION_INTERNAL = "migrationInternal"
    JUNCTION = "junction"
    ENTITY = "entity"


TableNameList = List[str]
Results = Dict[Category, TableNameList]


@dataclass(frozen=True)
class ColumnMetadata:
    """Represents a column as reported by the database."""
    ordinal_position: int
    column_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ordinalPosition": self.ordinal_position,
            "columnType": self.column_type,
        }


ColumnMap = Dict[str, ColumnMetadata]
EntityMap = Dict[str, ColumnMap]


@dataclass
class Session:
    """One introspection run against a single schema.

    ``results`` maps each classified category to its table names and
    ``entities`` holds the column map of the tables selected for extraction.
    Pipeline stages never mutate a session; they return a new one.
    """
    schema: str
    executor: "QueryExecutor" = field(repr=False)
    builder: "QueryBuilder" = field(repr=False)
    results: Results = field(default_factory=dict)
    entities: EntityMap = field(default_factory=dict)

    @property
    def dialect(self) -> str:
        return self.builder.dialect

    def get_tables(self, category: Category) -> TableNameList:
        """Get the table names classified under a category (empty if not run)."""
        return list(self.results.get(category, []))

    def classified_tables(self) -> TableNameList:
        """Get all table names classified so far, in category order."""
        tables: TableNameList = []
        for category in Category:
            tables.extend(self.results.get(category, []))
        return tables

    def columns_count(self) -> int:
        return sum(len(columns) for columns in self.entities.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert the session outcome to a JSON-ready dictionary."""
        return {
            "schema": self.schema,
            "results": {
                category.value: list(tables)
                for category, tables in self.results.items()
            },
            "entities": {
                table: {
                    column: metadata.to_dict()
                    for column, metadata in columns.items()
                }
                for table, columns in self.entities.items()
            },
        }
