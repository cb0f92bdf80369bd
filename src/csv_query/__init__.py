"""csv-query: serve a delimited text file as a read-only JSON query API.

The file is loaded once into an in-memory SQLite database at startup; each
HTTP request turns its query parameters into an equality filter over that
table and returns the matching rows as JSON.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
