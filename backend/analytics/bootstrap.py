from __future__ import annotations

import logging
import sqlite3
import threading
from typing import List, Sequence, Set, Tuple

from backend.app.db import database_key, is_missing_table_error
from backend.app.schema import (
    EVENTS_INDEXES,
    EVENTS_TABLE_SQL,
    RATINGS_INDEXES,
    RATINGS_TABLE_SQL,
)

logger = logging.getLogger(__name__)


def _is_already_exists(exc: sqlite3.Error) -> bool:
    return "already exists" in str(exc).lower()


class StoreBootstrap:
    """
    Set-once initializer for a lazily created table and its indexes.

    - runs at most once per database file per process (tracked under a lock)
    - in-memory databases have no file to key on and are never recorded
    - two threads racing on a cold start may both run the DDL; the loser's
      "already exists" errors are swallowed, nothing is retried
    - any other DDL failure propagates and the database is NOT marked done
    - a table dropped after it was ensured is rebuilt on the next `write`
    """

    def __init__(self, name: str, table_sql: str, indexes: List[Tuple[str, str]]):
        self.name = name
        self.table_sql = table_sql
        self.indexes = indexes
        self._done: Set[str] = set()
        self._lock = threading.Lock()

    def is_ensured(self, conn: sqlite3.Connection) -> bool:
        with self._lock:
            return database_key(conn) in self._done

    def forget(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            self._done.discard(database_key(conn))

    def ensure(self, conn: sqlite3.Connection) -> None:
        key = database_key(conn)
        with self._lock:
            if key in self._done:
                return

        conn.execute(self.table_sql)
        for index_name, ddl in self.indexes:
            try:
                conn.execute(ddl)
            except sqlite3.OperationalError as exc:
                if not _is_already_exists(exc):
                    raise
                logger.debug("index %s already exists", index_name)
        conn.commit()

        if not key:
            return
        with self._lock:
            self._done.add(key)
        logger.info("%s store ready (%s)", self.name, key)

    def write(self, conn: sqlite3.Connection, sql: str, params: Sequence[object] = ()) -> None:
        """Execute one write against the table and commit, creating it first if needed."""
        self.ensure(conn)
        try:
            conn.execute(sql, tuple(params))
        except sqlite3.OperationalError as exc:
            if not is_missing_table_error(exc):
                raise
            logger.warning("%s table disappeared, recreating it", self.name)
            self.forget(conn)
            self.ensure(conn)
            conn.execute(sql, tuple(params))
        conn.commit()


events_bootstrap = StoreBootstrap("events", EVENTS_TABLE_SQL, EVENTS_INDEXES)
ratings_bootstrap = StoreBootstrap("ratings", RATINGS_TABLE_SQL, RATINGS_INDEXES)
