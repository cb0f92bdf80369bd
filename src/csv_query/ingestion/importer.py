"""Streaming import of data rows into the store."""

from __future__ import annotations

import csv
import logging
import sqlite3
import sys
from pathlib import Path
from typing import IO, Iterator, List

from tqdm import tqdm

from csv_query.core.errors import ConfigurationError, LoadError, RowArityError
from csv_query.core.schema import Schema
from csv_query.core.store import Store

logger = logging.getLogger(__name__)


def open_source(path: Path, encoding: str = "utf-8") -> IO[str]:
    """Open the source file for reading as text."""
    if not path.exists():
        raise ConfigurationError(f"CSV file not found: {path}")
    if not path.is_file():
        raise ConfigurationError(f"CSV path is not a file: {path}")
    try:
        return path.open("r", encoding=encoding, newline="")
    except (OSError, LookupError) as e:
        raise ConfigurationError(f"could not open CSV file at {path}: {e}") from e


def _lift_field_size_limit() -> None:
    # csv caps fields at 128 KiB by default; sys.maxsize overflows a C long on some platforms
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return
        except OverflowError:
            limit //= 10


def make_reader(handle: IO[str], delimiter: str):
    """Build a lenient record reader over ``handle``.

    Quotes that appear inside unquoted fields are kept literally and a
    malformed quoted field does not abort the read.
    """
    _lift_field_size_limit()
    return csv.reader(handle, delimiter=delimiter, strict=False)


def _rows(reader, schema: Schema) -> Iterator[List[str]]:
    expected = schema.field_count
    while True:
        try:
            record = next(reader)
        except StopIteration:
            return
        except (csv.Error, UnicodeDecodeError, OSError) as e:
            raise LoadError(f"could not read line {reader.line_num}: {e}") from e
        if not record:
            continue
        if len(record) < expected:
            raise RowArityError(reader.line_num, expected, len(record))
        if len(record) > expected:
            logger.debug(
                "Line %d has %d fields, ignoring the last %d",
                reader.line_num,
                len(record),
                len(record) - expected,
            )
        yield record[:expected]


def import_rows(store: Store, schema: Schema, reader, *, progress: bool = False) -> int:
    """Insert every remaining record of ``reader`` into the store.

    Args:
        store: Store whose table was created from ``schema``.
        schema: Resolved schema; every row must supply ``schema.field_count``
            cells. Extra cells are ignored, missing cells are an error.
        reader: Record reader positioned after the header.
        progress: Show a tqdm row counter on the console.

    Returns:
        Number of rows imported.

    Raises:
        RowArityError: A row has fewer cells than the field count.
        LoadError: The file could not be read or a row could not be inserted.
    """
    statement = schema.insert_sql()
    logger.info("Importing CSV data into SQLite..")
    rows = tqdm(_rows(reader, schema), desc="Importing", unit="rows", disable=not progress)
    try:
        count = store.insert_rows(statement, rows)
    except sqlite3.Error as e:
        raise LoadError(
            f"could not import data into SQLite near line {reader.line_num}: {e}; "
            f"command: {statement}"
        ) from e
    finally:
        rows.close()
    logger.info("Successfully imported %d rows into SQLite", count)
    return count


__all__ = ["open_source", "make_reader", "import_rows"]
