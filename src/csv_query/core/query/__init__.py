"""Query layer public API.

Translates request parameters into a parameterized SQLite filter and turns
result rows back into JSON records.
"""

from .plan import Filter, build_filter
from .materialize import coerce_value, materialize_result, project_row

__all__ = [
    "Filter",
    "build_filter",
    "coerce_value",
    "materialize_result",
    "project_row",
]
