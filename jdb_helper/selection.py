"""Choosing which classified tables get their columns extracted."""

import re
from dataclasses import dataclass
from typing import List

from .database.models import Category, Results

# Display order; only entity tables are selected by default
CHOICE_ORDER = (
    Category.ENTITY,
    Category.JUNCTION,
    Category.FRAMEWORK_INTERNAL,
    Category.MIGRATION_INTERNAL,
)

HEADERS = {
    Category.ENTITY: "Entity tables",
    Category.JUNCTION: "Many-to-many junction tables",
    Category.FRAMEWORK_INTERNAL: "JHipster tables",
    Category.MIGRATION_INTERNAL: "Liquibase tables",
}

_RANGE = re.compile(r"^(\d+)-(\d+)$")


@dataclass(frozen=True)
class Choice:
    """A selectable table."""
    category: Category
    table: str
    checked: bool


def build_choices(results: Results) -> List[Choice]:
    """List every classified table, entity tables first and checked."""
    choices = []
    for category in CHOICE_ORDER:
        checked = category is Category.ENTITY
        for table in results.get(category, []):
            choices.append(Choice(category=category, table=table, checked=checked))
    return choices


def default_selection(choices: List[Choice]) -> List[str]:
    """Get the tables selected when the user accepts the defaults."""
    return [choice.table for choice in choices if choice.checked]


def parse_selection(text: str, choices: List[Choice]) -> List[str]:
    """Parse 1-based indices and ranges (``1, 3 5-7``) into table names.

    Empty input keeps the default selection. Tables are returned in
    choice order without duplicates.

    Raises:
        ValueError: On anything that is not a valid index or range
    """
    text = text.strip()
    if not text:
        return default_selection(choices)

    picked = set()
    for token in re.split(r"[,\s]+", text):
        if not token:
            continue
        match = _RANGE.match(token)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start > end:
                raise ValueError(f"Invalid range '{token}'")
            indices = range(start, end + 1)
        elif token.isdigit():
            indices = [int(token)]
        else:
            raise ValueError(f"'{token}' is not a table number")

        for index in indices:
            if not 1 <= index <= len(choices):
                raise ValueError(f"Table number {index} is out of range (1-{len(choices)})")
            picked.add(index - 1)

    return [choices[i].table for i in sorted(picked)]
