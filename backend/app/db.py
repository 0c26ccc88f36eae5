import os
import sqlite3
from typing import Iterator, List, Optional, Sequence
from backend.app.config import settings
from backend.app.errors import AnalyticsError, InternalError, StorageUnavailable
from backend.app.schema import SCHEMA_SQL

def _sqlite_path_from_url(database_url: str) -> str:
    # this should support:
    #   sqlite:///./data/app.db  -> ./data/app.db
    #   sqlite:////abs/path.db   -> /abs/path.db
    if not database_url.startswith("sqlite:"):
        raise ValueError("Only sqlite DATABASE_URL is supported")

    if database_url.startswith("sqlite:///./") or database_url.startswith("sqlite:///../"):
        return database_url.replace("sqlite:///", "", 1)

    if database_url.startswith("sqlite:////"):
        # absolute path
        return database_url.replace("sqlite:////", "/", 1)

    if database_url.startswith("sqlite:///"):
        # treat as absolute (/path...)
        return database_url.replace("sqlite://", "", 1)

    return database_url.replace("sqlite:", "", 1)

def get_db_path() -> str:
    return _sqlite_path_from_url(settings.database_url)

def connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or get_db_path()
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    # FastAPI runs sync handlers in a thread pool, connection is opened per request
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn

def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()

def get_conn() -> Iterator[sqlite3.Connection]:
    """FastAPI dependency: one connection per request, always closed."""
    conn = connect()
    try:
        yield conn
    finally:
        conn.close()

def database_key(conn: sqlite3.Connection) -> str:
    # file path of the "main" database; "" for in-memory ones, which callers must not cache on
    for row in conn.execute("PRAGMA database_list").fetchall():
        if row[1] == "main":
            return str(row[2] or "")
    return ""

def is_missing_table_error(exc: BaseException) -> bool:
    """
    sqlite counterpart of a "namespace not found" error: the analytics tables
    are created on first write, so reading before that fails with
    'no such table'. Callers treat it as an empty result.
    """
    return isinstance(exc, sqlite3.OperationalError) and "no such table" in str(exc).lower()

def is_unavailable_error(exc: BaseException) -> bool:
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return "database is locked" in message or "unable to open database file" in message

def to_storage_error(exc: sqlite3.Error) -> AnalyticsError:
    if is_unavailable_error(exc):
        return StorageUnavailable("Database is unavailable", cause=exc)
    return InternalError("Internal server error", cause=exc)

def read_rows(conn: sqlite3.Connection, sql: str, params: Sequence[object] = ()) -> List[sqlite3.Row]:
    """Run a read query; a table that was never created reads as no rows."""
    try:
        return conn.execute(sql, tuple(params)).fetchall()
    except sqlite3.Error as exc:
        if is_missing_table_error(exc):
            return []
        raise to_storage_error(exc) from exc
