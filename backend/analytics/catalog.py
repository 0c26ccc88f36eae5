"""
Read-only access to the tables the analytics core does not own
(movies, users, comments). Kept thin on purpose: existence checks,
batched lookups and counts only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import json
import sqlite3


UNKNOWN_TITLE = "Unknown movie"


@dataclass
class CommentRow:
    movie_id: str
    created_ts: int


def movie_exists(conn: sqlite3.Connection, movie_id: str) -> bool:
    row = conn.execute("SELECT id FROM movies WHERE id = ?", (movie_id,)).fetchone()
    return row is not None


def get_titles(conn: sqlite3.Connection, movie_ids: Iterable[str]) -> Dict[str, str]:
    ids = list(dict.fromkeys(movie_ids))
    if not ids:
        return {}

    q_marks = ",".join(["?"] * len(ids))
    rows = conn.execute(
        f"SELECT id, title FROM movies WHERE id IN ({q_marks})",
        tuple(ids),
    ).fetchall()
    return {str(r["id"]): str(r["title"]) for r in rows}


def find_user_id_by_email(conn: sqlite3.Connection, email: str) -> Optional[str]:
    row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
    return str(row["id"]) if row else None


def _count(conn: sqlite3.Connection, table: str) -> int:
    row = conn.execute(f"SELECT COUNT(*) AS c FROM {table}").fetchone()
    return int(row["c"]) if row else 0


def count_movies(conn: sqlite3.Connection) -> int:
    return _count(conn, "movies")


def count_users(conn: sqlite3.Connection) -> int:
    return _count(conn, "users")


def count_comments(conn: sqlite3.Connection) -> int:
    return _count(conn, "comments")


def count_favorite_memberships(conn: sqlite3.Connection) -> int:
    """Total length of every user's legacy favorites list."""
    total = 0
    for r in conn.execute("SELECT favorite_ids_json FROM users").fetchall():
        try:
            ids = json.loads(r["favorite_ids_json"] or "[]")
        except ValueError:
            ids = []
        if isinstance(ids, list):
            total += len(ids)
    return total


def list_comments_since(conn: sqlite3.Connection, start_ts: int) -> List[CommentRow]:
    rows = conn.execute(
        """
        SELECT movie_id, created_ts
        FROM comments
        WHERE created_ts >= ? AND status != 'rejected'
        """,
        (start_ts,),
    ).fetchall()
    return [CommentRow(movie_id=str(r["movie_id"] or ""), created_ts=int(r["created_ts"])) for r in rows]
