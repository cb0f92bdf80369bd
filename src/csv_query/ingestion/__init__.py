"""Loading of the source file into the store."""

from .importer import import_rows, make_reader, open_source

__all__ = ["import_rows", "make_reader", "open_source"]
