"""Exception hierarchy shared by the loader, the query layer and the interfaces.

Startup failures (configuration, schema, import) are fatal for the process;
query failures only fail the request that caused them. Components raise, and
the CLI entry point decides how to exit.
"""

from __future__ import annotations


class CsvQueryError(Exception):
    """Base class for all errors raised by csv-query."""


class ConfigurationError(CsvQueryError):
    """Invalid or incomplete configuration (missing file, bad delimiter, ...)."""


class SchemaError(CsvQueryError):
    """The table schema could not be derived or created."""


class LoadError(CsvQueryError):
    """The import of data rows into the store failed."""


class RowArityError(LoadError):
    """A data row does not supply the expected number of cells."""

    def __init__(self, line: int, expected: int, actual: int) -> None:
        self.line = line
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"row arity mismatch on line {line}: expected {expected} fields, got {actual}"
        )


class QueryError(CsvQueryError):
    """A request could not be translated into a query (client error)."""


class EmptyFilterError(QueryError):
    """The request carried no query parameters."""


class UnknownColumnError(QueryError):
    """A query parameter names a column that does not exist."""

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"no such column: {column}")


class RowDecodeError(CsvQueryError):
    """A result row could not be read after the query succeeded."""


__all__ = [
    "CsvQueryError",
    "ConfigurationError",
    "SchemaError",
    "LoadError",
    "RowArityError",
    "QueryError",
    "EmptyFilterError",
    "UnknownColumnError",
    "RowDecodeError",
]
