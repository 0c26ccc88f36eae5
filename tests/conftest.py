import json
import secrets
import sqlite3
from datetime import date, datetime, time, timedelta

import pytest

from backend.app.config import settings
from backend.app.db import connect, init_db


def new_id() -> str:
    return secrets.token_hex(12)


def noon_ts(days_ago: int, today: date | None = None) -> int:
    """Local-noon timestamp `days_ago` days before `today`."""
    today = today or date.today()
    return int(datetime.combine(today - timedelta(days=days_ago), time(12, 0)).timestamp())


def fixed_clock(ts: int):
    return lambda: float(ts)


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> str:
    path = str(tmp_path / "analytics.db")
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{path}")
    return path


@pytest.fixture
def conn(db_path):
    c = connect(db_path)
    init_db(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def add_movie(conn):
    def _add(title: str = "Some Movie", movie_id: str | None = None) -> str:
        movie_id = movie_id or new_id()
        conn.execute("INSERT INTO movies(id, title) VALUES(?,?)", (movie_id, title))
        conn.commit()
        return movie_id

    return _add


@pytest.fixture
def add_user(conn):
    def _add(email: str | None = None, favorites: list[str] | None = None) -> str:
        user_id = new_id()
        conn.execute(
            "INSERT INTO users(id, email, name, favorite_ids_json) VALUES(?,?,?,?)",
            (user_id, email, email or "anon", json.dumps(favorites or [])),
        )
        conn.commit()
        return user_id

    return _add


@pytest.fixture
def add_comment(conn):
    def _add(movie_id: str, created_ts: int, status: str = "approved") -> None:
        conn.execute(
            "INSERT INTO comments(movie_id, content, status, created_ts) VALUES(?,?,?,?)",
            (movie_id, "hello", status, created_ts),
        )
        conn.commit()

    return _add


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,),
    ).fetchone()
    return row is not None
