"""Schema resolution for the imported table.

The schema is derived once at startup from the configuration and, when
present, the first record of the file:

- a custom header overrides the file header (the file header is still
  consumed so data rows start at the right record);
- the field count is taken from configuration or, when auto-detected, from
  the header length;
- every header token is sanitized into a lowercase alphanumeric column name.

The resulting ``Schema`` is immutable and drives both the import and the
query layer.
"""

from __future__ import annotations

import csv
import logging
import sqlite3
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from csv_query.core.errors import ConfigurationError, SchemaError
from csv_query.core.store import Store
from csv_query.core.utils import quote_identifier, sanitize_column_name, try_split

logger = logging.getLogger(__name__)

TABLE_NAME = "csv"


@dataclass(frozen=True)
class Schema:
    """Resolved table layout.

    Attributes:
        columns: Sanitized column names in file column order.
        field_count: Number of cells every data row must supply.
        delimiter: Single-character field separator of the source file.
        has_header: Whether the source file starts with a header record.
        indices: Columns that get a secondary index at import time.
    """

    columns: Tuple[str, ...]
    field_count: int
    delimiter: str = ","
    has_header: bool = True
    indices: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.columns) != self.field_count:
            raise SchemaError(
                f"schema has {len(self.columns)} columns but a field count of {self.field_count}"
            )

    def create_table_sql(self) -> str:
        cols = ", ".join(f"{quote_identifier(c)} text" for c in self.columns)
        return f"CREATE TABLE {TABLE_NAME} ({cols})"

    def create_index_sql(self, column: str) -> str:
        index = quote_identifier(f"{column}_idx")
        return f"CREATE INDEX {index} ON {TABLE_NAME} ({quote_identifier(column)})"

    def insert_sql(self) -> str:
        placeholders = ", ".join("?" for _ in range(self.field_count))
        return f"INSERT INTO {TABLE_NAME} VALUES ({placeholders})"

    def statements(self) -> List[str]:
        """All DDL statements needed to create the table and its indices."""
        return [self.create_table_sql()] + [self.create_index_sql(c) for c in self.indices]


def parse_list(text: Optional[str], delimiter: str) -> List[str]:
    """Parse a custom header or index list, preferring ``delimiter`` over comma."""
    if not text:
        return []
    return try_split(text, delimiter, ",")


def sanitize_header(header: Sequence[str]) -> List[str]:
    """Sanitize header tokens, rejecting empty and duplicate names."""
    columns: List[str] = []
    seen = {}
    for pos, token in enumerate(header, start=1):
        name = sanitize_column_name(token)
        if not name:
            raise SchemaError(
                f"column {pos} ({token!r}) has no alphanumeric characters "
                "and cannot be used as a column name"
            )
        if name in seen:
            raise SchemaError(
                f"duplicate column {name!r}: header tokens {header[seen[name] - 1]!r} "
                f"(column {seen[name]}) and {token!r} (column {pos}) sanitize to the same name"
            )
        seen[name] = pos
        columns.append(name)
    return columns


def resolve_schema(
    records: Iterator[List[str]],
    *,
    delimiter: str = ",",
    field_count: int = 0,
    has_header: bool = True,
    header: Optional[str] = None,
    indices: Optional[str] = None,
) -> Schema:
    """Resolve the table schema, consuming the header record when present.

    Args:
        records: Record iterator over the source file (a ``csv.reader``).
            When ``has_header`` is true exactly one record is consumed.
        delimiter: Field delimiter; also the preferred separator for
            ``header`` and ``indices``.
        field_count: Expected number of fields, or 0 to use the header length.
        has_header: Whether the first record of the file is a header.
        header: Optional custom header overriding the file header.
        indices: Optional list of columns to index.

    Returns:
        The frozen ``Schema``.

    Raises:
        ConfigurationError: No header is available from any source.
        SchemaError: The header cannot be read or yields invalid column names,
            the field count exceeds the header length, or an index names an
            unknown column.
    """
    custom_header = parse_list(header, delimiter)
    if custom_header:
        logger.info("Using a custom header: %s", custom_header)

    resolved: List[str] = list(custom_header)
    if has_header:
        try:
            line = next(records)
            # blank lines before the header are not records
            while not line:
                line = next(records)
        except StopIteration:
            raise SchemaError("could not read header: the file is empty") from None
        except (csv.Error, UnicodeDecodeError, OSError) as e:
            raise SchemaError(f"could not read header: {e}") from e
        if custom_header:
            logger.info("Discarding the file header in favour of the custom header")
        else:
            logger.info("Using the first record of the file as the header")
            resolved = list(line)

    if not resolved:
        raise ConfigurationError(
            "no header available: the file has no header and no custom header was given"
        )

    if field_count == 0:
        field_count = len(resolved)
        logger.info("Using a detected field count of %d", field_count)
    elif field_count > len(resolved):
        raise SchemaError(
            f"field count {field_count} exceeds the {len(resolved)} columns of the header"
        )

    columns = sanitize_header(resolved[:field_count])

    index_columns: List[str] = []
    for requested in parse_list(indices, delimiter):
        name = sanitize_column_name(requested)
        if name not in columns:
            raise SchemaError(f"cannot index unknown column {requested!r}")
        if name not in index_columns:
            index_columns.append(name)
    if index_columns:
        logger.info("Using indices on: %s", index_columns)

    return Schema(
        columns=tuple(columns),
        field_count=field_count,
        delimiter=delimiter,
        has_header=has_header,
        indices=tuple(index_columns),
    )


def create_schema(store: Store, schema: Schema) -> None:
    """Create the table and its indices in ``store``."""
    statement = schema.create_table_sql()
    logger.info("Creating SQLite table: %s", statement)
    try:
        store.execute_ddl(statement)
    except sqlite3.Error as e:
        raise SchemaError(f"could not create SQLite table: {e}") from e

    for column in schema.indices:
        statement = schema.create_index_sql(column)
        logger.info("Creating index: %s", statement)
        try:
            store.execute_ddl(statement)
        except sqlite3.Error as e:
            raise SchemaError(f"could not create index on {column}: {e}") from e


__all__ = [
    "TABLE_NAME",
    "Schema",
    "parse_list",
    "sanitize_header",
    "resolve_schema",
    "create_schema",
]
