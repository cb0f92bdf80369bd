from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from csv_query.core.errors import EmptyFilterError, UnknownColumnError
from csv_query.core.schema import TABLE_NAME
from csv_query.core.utils import quote_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Filter:
    """Conjunction of ``column = ?`` clauses with their positional arguments."""

    clause: str
    args: Tuple[str, ...]

    def select_sql(self, table: str = TABLE_NAME) -> str:
        return f"SELECT * FROM {table} WHERE {self.clause}"


def _resolve_column(key: str, columns: Sequence[str]) -> str:
    # SQLite identifiers are case-insensitive; column names are stored lowercase
    folded = key.lower()
    for column in columns:
        if column == folded:
            return column
    raise UnknownColumnError(key)


def build_filter(params: Iterable[Tuple[str, str]], columns: Sequence[str]) -> Filter:
    """Translate request parameters into an equality filter.

    Every ``(key, value)`` pair becomes one ``key = ?`` clause and all clauses
    are joined with AND, including repeated keys: ``x=1&x=2`` asks for rows
    where ``x`` equals both values and therefore matches nothing.

    Raises:
        EmptyFilterError: No parameters were given.
        UnknownColumnError: A key does not name a column of the table.
    """
    clauses: List[str] = []
    args: List[str] = []
    for key, value in params:
        column = _resolve_column(key, columns)
        clauses.append(f"{quote_identifier(column)} = ?")
        args.append(value)

    if not clauses:
        raise EmptyFilterError("no query parameters given; at least one column filter is required")

    flt = Filter(clause=" AND ".join(clauses), args=tuple(args))
    logger.debug("Built filter %s with args %s", flt.clause, flt.args)
    return flt
