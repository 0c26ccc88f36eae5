from __future__ import annotations

from typing import Any, Callable, Optional
import logging
import sqlite3
import time

from backend.analytics import catalog
from backend.analytics.effects import best_effort
from backend.analytics.events import (
    EngagementEvent,
    EventType,
    append_event,
    is_movie_id,
    normalize_mode,
    normalize_value,
    parse_event_type,
)
from backend.analytics.ratings import (
    RatingSummary,
    get_rating_summary,
    upsert_rating,
    validate_rating,
)
from backend.app.errors import InvalidInput, NotFound, Unauthorized

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def _require_movie(conn: sqlite3.Connection, movie_id: str) -> None:
    if not catalog.movie_exists(conn, movie_id):
        raise NotFound("Movie not found")


def record_event(
    conn: sqlite3.Connection,
    movie_id: Any,
    event_type: Any,
    user_id: Optional[str] = None,
    value: Any = None,
    mode: Any = None,
    default_mode: str = "movie",
    clock: Clock = time.time,
) -> EngagementEvent:
    """
    Validate, normalize and append one engagement event.

    Every check runs before the insert. No dedup: the same user viewing the
    same movie twice is two events. The timestamp always comes from `clock`.
    """
    movie_id = str(movie_id or "").strip()
    if not is_movie_id(movie_id):
        raise InvalidInput("movieId is invalid")

    etype = parse_event_type(event_type)
    _require_movie(conn, movie_id)
    normalized = normalize_value(etype, value)

    event = EngagementEvent(
        movie_id=movie_id,
        user_id=user_id or None,
        event_type=etype,
        value=normalized,
        mode=normalize_mode(mode, default=default_mode),
        ts=int(clock()),
    )
    append_event(conn, event)
    logger.info("event recorded movie=%s type=%s user=%s", movie_id, etype.value, user_id or "-")
    return event


def submit_rating(
    conn: sqlite3.Connection,
    movie_id: str,
    user_id: Optional[str],
    rating: Any,
    clock: Clock = time.time,
) -> RatingSummary:
    """
    Two steps, deliberately asymmetric:
      1. upsert the user's current rating (committed on its own)
      2. mirror a rating event into the trend log, best effort only

    If step 2 fails the trend undercounts by one point; the rating itself
    stays saved and the caller still gets the fresh summary.
    """
    if not user_id:
        raise Unauthorized("Not signed in")

    value = validate_rating(rating)
    _require_movie(conn, movie_id)

    now_ts = int(clock())
    upsert_rating(conn, movie_id, user_id, value, now_ts)

    mirror = EngagementEvent(
        movie_id=movie_id,
        user_id=user_id,
        event_type=EventType.RATING,
        value=value,
        mode="movie",
        ts=now_ts,
    )
    if not best_effort("mirror rating event", lambda: append_event(conn, mirror)):
        # drop whatever the failed insert left open so the reads below are clean
        conn.rollback()

    return get_rating_summary(conn, movie_id, user_id)
