from __future__ import annotations

import math
import re
import sqlite3
from typing import Any, Dict, Iterable, List, Sequence

from csv_query.core.errors import RowDecodeError

_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Integers above this magnitude are not exactly representable as doubles
_MAX_EXACT_INT = 2**53


def coerce_value(value: Any, numeric: bool = True) -> Any:
    """Best-effort conversion of a stored cell into a JSON value.

    Thousands separators are stripped before parsing, so ``"1,234"`` becomes
    ``1234``. When the stripped text is not a finite number the original
    string is returned untouched: ``"Smith, Jr."`` stays ``"Smith, Jr."``.
    """
    if not numeric or not isinstance(value, str):
        return value
    text = value.replace(",", "")
    if not _NUMBER.fullmatch(text):
        return value
    number = float(text)
    if not math.isfinite(number):
        return value
    if number.is_integer() and abs(number) <= _MAX_EXACT_INT:
        return int(number)
    return number


def project_row(columns: Sequence[str], row: Sequence[Any], numeric: bool = True) -> Dict[str, Any]:
    return {column: coerce_value(cell, numeric) for column, cell in zip(columns, row)}


def materialize_result(
    columns: Sequence[str], rows: Iterable[Sequence[Any]], *, numeric: bool = True
) -> List[Dict[str, Any]]:
    """Materialize every result row as a JSON-ready record.

    The whole result is built in memory, in the order the store returns it.

    Raises:
        RowDecodeError: Reading a row from the cursor failed.
    """
    data: List[Dict[str, Any]] = []
    try:
        for row in rows:
            if len(row) != len(columns):
                raise RowDecodeError(
                    f"row has {len(row)} values but the result has {len(columns)} columns"
                )
            data.append(project_row(columns, row, numeric))
    except sqlite3.Error as e:
        raise RowDecodeError(f"could not read row: {e}") from e
    return data
