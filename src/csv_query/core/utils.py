"""Core utility functions for csv-query.

Header tokens come from untrusted files, so they are reduced to plain
lowercase alphanumerics before being used as SQLite identifiers.
"""

from __future__ import annotations

import re
from typing import List

_DISALLOWED = re.compile(r"[^a-zA-Z0-9]+")


def sanitize_column_name(token: str) -> str:
    """Reduce a raw header token to a safe column identifier.

    Every character outside ``[A-Za-z0-9]`` is removed and the result is
    lowercased. A token without any alphanumeric character yields ``""``;
    callers decide whether that is an error.

    Examples:
        >>> sanitize_column_name("First Name")
        'firstname'
        >>> sanitize_column_name("Zip-Code (5)")
        'zipcode5'
        >>> sanitize_column_name("%%")
        ''
    """
    return _DISALLOWED.sub("", token).lower()


def quote_identifier(name: str) -> str:
    """Quote an SQLite identifier so keywords and leading digits are allowed."""
    return '"' + name.replace('"', '""') + '"'


def try_split(text: str, *separators: str) -> List[str]:
    """Split ``text`` on the first separator that actually splits it.

    Separators are tried in order; the first one producing more than one
    token wins. When none does, the whole string is returned as a single
    token.

    Examples:
        >>> try_split("a|b", "|", ",")
        ['a', 'b']
        >>> try_split("a,b", "|", ",")
        ['a', 'b']
        >>> try_split("a", "|", ",")
        ['a']
    """
    for sep in separators:
        parts = text.split(sep)
        if len(parts) != 1:
            return parts
    return [text]


__all__ = ["sanitize_column_name", "quote_identifier", "try_split"]
