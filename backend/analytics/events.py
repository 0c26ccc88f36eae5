from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import math
import re
import sqlite3

from backend.analytics.bootstrap import events_bootstrap
from backend.app.db import read_rows
from backend.app.errors import InvalidInput


MOVIE_ID_RE = re.compile(r"[a-fA-F0-9]{24}")


class EventType(str, Enum):
    VIEW = "view"
    FAVORITE = "favorite"
    RATING = "rating"


EVENT_TYPES = tuple(t.value for t in EventType)


@dataclass
class EngagementEvent:
    movie_id: str
    user_id: Optional[str]
    event_type: EventType
    value: int
    mode: str
    ts: int


@dataclass
class EventTotals:
    event_count: int = 0
    value_total: int = 0


def is_movie_id(value: Any) -> bool:
    return isinstance(value, str) and MOVIE_ID_RE.fullmatch(value) is not None


def parse_event_type(raw: Any) -> EventType:
    value = str(raw or "").strip().lower()
    try:
        return EventType(value)
    except ValueError:
        raise InvalidInput("eventType is invalid") from None


def to_numeric_value(raw: Any) -> Optional[float]:
    # bools are ints in python, they are not a rating
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            parsed = float(raw)
        except OverflowError:
            # ints too large for a float
            return None
        return parsed if math.isfinite(parsed) else None
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = float(raw.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def normalize_value(event_type: EventType, raw: Any) -> int:
    """
    - view / favorite: always 1, whatever the client sent
    - rating: round to nearest int, clamp to 1..5; a missing or
      non-numeric value is rejected
    """
    if event_type is not EventType.RATING:
        return 1

    numeric = to_numeric_value(raw)
    if numeric is None:
        raise InvalidInput("rating value must be a number between 1 and 5")
    return max(1, min(5, round_half_up(numeric)))


def normalize_mode(raw: Any, default: str = "movie") -> str:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return default


# write path

def append_event(conn: sqlite3.Connection, event: EngagementEvent) -> None:
    events_bootstrap.write(
        conn,
        """
        INSERT INTO engagement_events(movie_id, user_id, event_type, value, mode, ts)
        VALUES(?,?,?,?,?,?)
        """,
        (event.movie_id, event.user_id, event.event_type.value, event.value, event.mode, event.ts),
    )


# read path (a never-written table reads as empty)

def count_events(conn: sqlite3.Connection) -> int:
    rows = read_rows(conn, "SELECT COUNT(*) AS c FROM engagement_events")
    return int(rows[0]["c"]) if rows else 0


def totals_by_type(conn: sqlite3.Connection) -> Dict[str, EventTotals]:
    q_marks = ",".join(["?"] * len(EVENT_TYPES))
    rows = read_rows(
        conn,
        f"""
        SELECT event_type, COUNT(*) AS event_count, SUM(COALESCE(value, 1)) AS value_total
        FROM engagement_events
        WHERE event_type IN ({q_marks})
        GROUP BY event_type
        """,
        EVENT_TYPES,
    )
    totals: Dict[str, EventTotals] = {}
    for r in rows:
        key = str(r["event_type"] or "")
        if not key:
            continue
        totals[key] = EventTotals(
            event_count=int(r["event_count"] or 0),
            value_total=int(r["value_total"] or 0),
        )
    return totals


def list_events_since(conn: sqlite3.Connection, start_ts: int) -> List[sqlite3.Row]:
    q_marks = ",".join(["?"] * len(EVENT_TYPES))
    return read_rows(
        conn,
        f"""
        SELECT movie_id, event_type, COALESCE(value, 1) AS value, ts
        FROM engagement_events
        WHERE event_type IN ({q_marks}) AND ts >= ?
        """,
        (*EVENT_TYPES, start_ts),
    )


def view_counts(conn: sqlite3.Connection, movie_ids: Iterable[str]) -> Dict[str, int]:
    """View-event count per movie id; ids without views map to 0."""
    unique_ids = list(dict.fromkeys(str(m or "").strip() for m in movie_ids))
    unique_ids = [m for m in unique_ids if m]
    if not unique_ids:
        return {}

    q_marks = ",".join(["?"] * len(unique_ids))
    rows = read_rows(
        conn,
        f"""
        SELECT movie_id, COUNT(*) AS total
        FROM engagement_events
        WHERE event_type = 'view' AND movie_id IN ({q_marks})
        GROUP BY movie_id
        """,
        unique_ids,
    )
    counts = {m: 0 for m in unique_ids}
    for r in rows:
        counts[str(r["movie_id"])] = max(0, int(r["total"] or 0))
    return counts


def recent_events(conn: sqlite3.Connection, movie_id: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
    sql = "SELECT id, movie_id, user_id, event_type, value, mode, ts FROM engagement_events"
    params: list[object] = []
    if movie_id is not None:
        sql += " WHERE movie_id = ?"
        params.append(movie_id)
    sql += " ORDER BY ts DESC, id DESC LIMIT ?"
    params.append(limit)
    return [dict(r) for r in read_rows(conn, sql, params)]
