"""SQLite store backing the query API.

The database lives in memory in shared-cache mode. An owner connection keeps
it alive for the lifetime of the process and is used for the one-time load;
request handlers open their own read-only connections so queries can run
concurrently from the server's worker threads.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple
from uuid import uuid4

logger = logging.getLogger(__name__)


class Store:
    """In-memory SQLite database shared between the loader and readers."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or f"csvquery-{uuid4().hex}"
        self.uri = f"file:{self.name}?mode=memory&cache=shared"
        self._owner: Optional[sqlite3.Connection] = sqlite3.connect(
            self.uri, uri=True, check_same_thread=False
        )
        logger.debug("Opened SQLite database %s", self.uri)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._owner is None:
            raise sqlite3.ProgrammingError("store is closed")
        return self._owner

    def execute_ddl(self, statement: str) -> None:
        """Execute a schema statement (CREATE TABLE / CREATE INDEX)."""
        with self.connection:
            self.connection.execute(statement)

    def insert_rows(self, statement: str, rows: Iterable[Sequence[Any]]) -> int:
        """Execute ``statement`` once per row in a single transaction.

        Returns the number of rows inserted. Errors propagate as
        ``sqlite3.Error``; rows inserted before the failure are committed.
        """
        count = 0
        conn = self.connection
        try:
            for row in rows:
                conn.execute(statement, row)
                count += 1
        finally:
            conn.commit()
        return count

    @contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        """Yield a fresh read-only connection to the shared database."""
        conn = sqlite3.connect(self.uri, uri=True)
        try:
            conn.execute("PRAGMA query_only = ON")
            yield conn
        finally:
            conn.close()

    def query(
        self, conn: sqlite3.Connection, statement: str, args: Sequence[Any] = ()
    ) -> Tuple[List[str], sqlite3.Cursor]:
        """Run a parameterized query and return column names and the cursor."""
        cursor = conn.execute(statement, tuple(args))
        columns = [d[0] for d in cursor.description or ()]
        return columns, cursor

    def close(self) -> None:
        if self._owner is not None:
            self._owner.close()
            self._owner = None
            logger.debug("Closed SQLite database %s", self.uri)

    @property
    def closed(self) -> bool:
        return self._owner is None


__all__ = ["Store"]
