"""Application context and startup sequence.

``build_context`` runs the whole startup: open the store, resolve the schema
from the source file, create the table and indices, and import every data
row. Any failure raises and leaves nothing half-served; the caller decides
whether to exit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from csv_query.config import Settings
from csv_query.core.schema import Schema, create_schema, resolve_schema
from csv_query.core.store import Store
from csv_query.ingestion import import_rows, make_reader, open_source

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything the request handlers need, built once at startup."""

    settings: Settings
    schema: Schema
    store: Store
    row_count: int = 0

    def close(self) -> None:
        logger.info("Closing SQLite database..")
        self.store.close()


def read_schema(settings: Settings) -> Schema:
    """Resolve the schema from the file header without importing any data."""
    with open_source(settings.file, settings.encoding) as handle:
        return resolve_schema(
            make_reader(handle, settings.delimiter),
            delimiter=settings.delimiter,
            field_count=settings.field_count,
            has_header=settings.has_header,
            header=settings.header,
            indices=settings.indices,
        )


def build_context(settings: Settings, store: Optional[Store] = None) -> AppContext:
    """Load the configured file into a fresh store.

    Raises:
        ConfigurationError: The file cannot be opened or no header exists.
        SchemaError: The table or an index cannot be created.
        LoadError: A data row cannot be read or inserted.
    """
    logger.info("*** Processing CSV file ***")
    store = store or Store()
    try:
        with open_source(settings.file, settings.encoding) as handle:
            reader = make_reader(handle, settings.delimiter)
            schema = resolve_schema(
                reader,
                delimiter=settings.delimiter,
                field_count=settings.field_count,
                has_header=settings.has_header,
                header=settings.header,
                indices=settings.indices,
            )
            create_schema(store, schema)
            count = import_rows(store, schema, reader, progress=settings.progress)
    except BaseException:
        store.close()
        raise
    return AppContext(settings=settings, schema=schema, store=store, row_count=count)


__all__ = ["AppContext", "read_schema", "build_context"]
