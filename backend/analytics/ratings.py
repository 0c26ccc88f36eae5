from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import math
import sqlite3

from backend.analytics.bootstrap import ratings_bootstrap
from backend.analytics.events import round_half_up
from backend.app.db import read_rows
from backend.app.errors import InvalidInput


@dataclass
class RatingSummary:
    movie_id: str
    average_rating: float
    rating_count: int
    user_rating: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "movieId": self.movie_id,
            "averageRating": self.average_rating,
            "ratingCount": self.rating_count,
            "userRating": self.user_rating,
        }


def validate_rating(raw: Any) -> int:
    """
    Submitted ratings must be real numbers that round into 1..5.
    4.7 -> 5, but 0, 6, -3 or "abc" are rejected (no clamping here).
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise InvalidInput("rating must be an integer from 1 to 5")
    try:
        value = float(raw)
    except OverflowError:
        raise InvalidInput("rating must be an integer from 1 to 5") from None
    if not math.isfinite(value):
        raise InvalidInput("rating must be an integer from 1 to 5")
    rounded = round_half_up(value)
    if rounded < 1 or rounded > 5:
        raise InvalidInput("rating must be an integer from 1 to 5")
    return rounded


def upsert_rating(conn: sqlite3.Connection, movie_id: str, user_id: str, rating: int, now_ts: int) -> None:
    # uniqueness comes from movie_user_unique_idx, not from any app-level lock
    ratings_bootstrap.write(
        conn,
        """
        INSERT INTO movie_ratings(movie_id, user_id, rating, created_ts, updated_ts)
        VALUES(?,?,?,?,?)
        ON CONFLICT(movie_id, user_id) DO UPDATE SET
          rating = excluded.rating,
          updated_ts = excluded.updated_ts
        """,
        (movie_id, user_id, rating, now_ts, now_ts),
    )


def get_user_rating(conn: sqlite3.Connection, movie_id: str, user_id: Optional[str]) -> Optional[int]:
    if not user_id:
        return None
    rows = read_rows(
        conn,
        "SELECT rating FROM movie_ratings WHERE movie_id = ? AND user_id = ? LIMIT 1",
        (movie_id, user_id),
    )
    if not rows or rows[0]["rating"] is None:
        return None
    return max(1, min(5, int(rows[0]["rating"])))


def get_rating_summary(conn: sqlite3.Connection, movie_id: str, user_id: Optional[str] = None) -> RatingSummary:
    rows = read_rows(
        conn,
        """
        SELECT AVG(rating) AS average_rating, COUNT(*) AS rating_count
        FROM movie_ratings
        WHERE movie_id = ?
        """,
        (movie_id,),
    )
    average = float(rows[0]["average_rating"] or 0.0) if rows else 0.0
    count = int(rows[0]["rating_count"] or 0) if rows else 0

    return RatingSummary(
        movie_id=movie_id,
        average_rating=round(average, 2),
        rating_count=max(0, count),
        user_rating=get_user_rating(conn, movie_id, user_id),
    )


def total_rating_stars(conn: sqlite3.Connection) -> int:
    rows = read_rows(conn, "SELECT SUM(rating) AS total_stars FROM movie_ratings")
    return int(rows[0]["total_stars"] or 0) if rows else 0
