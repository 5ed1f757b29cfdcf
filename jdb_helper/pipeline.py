"""Table classification and column extraction pipeline.

Classification runs four dependent stages in a fixed order. The two
bookkeeping stages take only the schema; the junction and entity stages
exclude every table captured by all earlier stages, so the categories are
disjoint and a table lands in the first category that claims it.

Each stage is a pure step ``(results, rows) -> results`` and the pipeline
threads the accumulated results through the stages one database round-trip
at a time. Sessions are never mutated; ``classify`` and ``extract_columns``
return new sessions.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from .database.base import QueryBuilder, Row
from .database.models import (
    Category,
    ColumnMetadata,
    EntityMap,
    Results,
    Session,
    TableNameList,
)
from .errors import ContractViolation

logger = logging.getLogger(__name__)

# Reordering changes which category a borderline table lands in
CLASSIFICATION_ORDER = (
    Category.FRAMEWORK_INTERNAL,
    Category.MIGRATION_INTERNAL,
    Category.JUNCTION,
    Category.ENTITY,
)


def table_names(rows: Iterable[Row]) -> TableNameList:
    """Extract the ``table_name`` field of each row, keeping order."""
    return [row["table_name"] for row in rows]


def excluded_tables(results: Results) -> TableNameList:
    """Flatten every table classified so far into one exclusion list."""
    excluded: TableNameList = []
    for category in CLASSIFICATION_ORDER:
        excluded.extend(results.get(category, []))
    return excluded


def build_stage_query(builder: QueryBuilder, category: Category, schema: str, results: Results) -> str:
    """Build the query for one classification stage.

    The exclusion list is recomputed from all accumulated results each time.
    """
    if category is Category.FRAMEWORK_INTERNAL:
        return builder.framework_internal_query(schema)
    if category is Category.MIGRATION_INTERNAL:
        return builder.migration_internal_query(schema)

    excluded = excluded_tables(results)
    if category is Category.JUNCTION:
        return builder.junction_query(schema, excluded)
    return builder.entity_query(schema, excluded)


def fold_stage(results: Results, category: Category, rows: Iterable[Row]) -> Results:
    """Return new results with ``category`` set from the stage's rows."""
    if category in results:
        raise ValueError(f"Category '{category.value}' has already been classified")
    folded = dict(results)
    folded[category] = table_names(rows)
    return folded


def classify(session: Session) -> Session:
    """Classify every table of the session's schema.

    Args:
        session: Session holding the schema, executor and builder

    Returns:
        New session with ``results`` populated for all four categories

    Raises:
        ExecutionError: If any stage's query fails; later stages are not run
    """
    results: Results = {}
    for category in CLASSIFICATION_ORDER:
        query = build_stage_query(session.builder, category, session.schema, results)
        rows = session.executor.run(query)
        results = fold_stage(results, category, rows)
        logger.info(
            "Classified %d %s tables in schema %s",
            len(results[category]),
            category.value,
            session.schema,
        )
    return replace(session, results=results)


def organize_columns(
    rows: Iterable[Row],
    selected_tables: Optional[Iterable[str]] = None,
    strict: bool = False,
) -> EntityMap:
    """Fold raw column rows into ``{table: {column: ColumnMetadata}}``.

    Args:
        rows: Rows with table_name, column_name, ordinal_position and data_type
        selected_tables: Tables that were requested. Rows for any other table
            are dropped with a warning, or rejected when ``strict`` is set.
        strict: Raise ContractViolation instead of dropping unexpected rows

    Returns:
        Entity map keyed by table name then column name
    """
    rows = list(rows)
    selected = None if selected_tables is None else set(selected_tables)

    if selected is not None:
        unexpected = sorted({row["table_name"] for row in rows} - selected)
        if unexpected:
            if strict:
                raise ContractViolation(unexpected, sorted(selected))
            logger.warning(
                "Ignoring columns of unrequested tables: %s",
                ", ".join(unexpected),
            )

    result: EntityMap = {}
    for row in rows:
        table_name = row["table_name"]
        if selected is not None and table_name not in selected:
            continue

        metadata = ColumnMetadata(
            ordinal_position=int(row["ordinal_position"]),
            column_type=str(row["data_type"]),
        )
        result.setdefault(table_name, {})[row["column_name"]] = metadata

    return result


def extract_columns(session: Session, selected_tables: Iterable[str], strict: bool = False) -> Session:
    """Extract column metadata for the selected tables.

    The returned session's ``entities`` holds only this selection; any map
    from a previous extraction is discarded.

    Raises:
        ExecutionError: If the column query fails
        ContractViolation: In strict mode, if rows reference unrequested tables
    """
    selected: List[str] = list(selected_tables)
    query = session.builder.columns_query(session.schema, selected)
    rows = session.executor.run(query)
    entities = organize_columns(rows, selected, strict=strict)
    logger.info(
        "Extracted %d columns across %d tables",
        sum(len(columns) for columns in entities.values()),
        len(entities),
    )
    return replace(session, entities=entities)
