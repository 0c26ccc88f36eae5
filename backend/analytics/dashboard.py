from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import sqlite3

from backend.analytics import catalog
from backend.analytics.buckets import (
    BucketMetric,
    Granularity,
    Timeline,
    bucket_key_for_ts,
    build_buckets,
    normalize_granularity,
    normalize_limit,
)
from backend.analytics.comments import merge_comments
from backend.analytics.events import EventType, list_events_since, totals_by_type
from backend.analytics.ranking import HotMovie, rank_hot_movies
from backend.analytics.ratings import total_rating_stars
from backend.app.db import to_storage_error

logger = logging.getLogger(__name__)


@dataclass
class SummaryTotals:
    total_movies: int = 0
    total_users: int = 0
    total_comments: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_rating_stars: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalMovies": self.total_movies,
            "totalUsers": self.total_users,
            "totalComments": self.total_comments,
            "totalViews": self.total_views,
            "totalLikes": self.total_likes,
            "totalRatingStars": self.total_rating_stars,
        }


@dataclass
class DashboardSummary:
    summary: SummaryTotals
    timeline: Timeline
    hot_movies: List[HotMovie]
    granularity: Granularity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "timeline": self.timeline.to_list(),
            "hotMovies": [h.to_dict() for h in self.hot_movies],
            "granularity": self.granularity.value,
        }


def _compute_totals(conn: sqlite3.Connection) -> SummaryTotals:
    """
    All-time totals. The event log may be younger than the rest of the data,
    so a zero from it falls back to the current-state stores:
      - favorites -> length of every user's favorites list
      - rating stars -> SUM(rating) over movie_ratings
    The fallback applies to these totals only, never per bucket or per movie.
    """
    by_type = totals_by_type(conn)

    totals = SummaryTotals(
        total_movies=catalog.count_movies(conn),
        total_users=catalog.count_users(conn),
        total_comments=catalog.count_comments(conn),
    )

    view = by_type.get(EventType.VIEW.value)
    favorite = by_type.get(EventType.FAVORITE.value)
    rating = by_type.get(EventType.RATING.value)

    totals.total_views = view.event_count if view else 0
    totals.total_likes = favorite.event_count if favorite else 0
    totals.total_rating_stars = rating.value_total if rating else 0

    if totals.total_likes <= 0:
        totals.total_likes = catalog.count_favorite_memberships(conn)
    if totals.total_rating_stars <= 0:
        totals.total_rating_stars = total_rating_stars(conn)

    return totals


def _accumulate(metric: BucketMetric, event_type: str, value: int) -> None:
    if event_type == EventType.VIEW.value:
        metric.views += 1
    elif event_type == EventType.FAVORITE.value:
        metric.likes += 1
    elif event_type == EventType.RATING.value:
        metric.rating_stars += value


def _scan_window(
    conn: sqlite3.Connection,
    timeline: Timeline,
    granularity: Granularity,
    start_ts: int,
) -> Dict[str, BucketMetric]:
    """
    Single pass over the windowed events, grouping both by bucket (into the
    timeline) and by movie (returned). Events landing outside every bucket
    are dropped from the timeline but still count for their movie.
    """
    by_movie: Dict[str, BucketMetric] = {}

    for r in list_events_since(conn, start_ts):
        event_type = str(r["event_type"] or "")
        value = int(r["value"] if r["value"] is not None else 1)

        current = timeline.get(bucket_key_for_ts(int(r["ts"]), granularity))
        if current is not None:
            _accumulate(current, event_type, value)

        movie_id = r["movie_id"]
        if not isinstance(movie_id, str) or not movie_id:
            continue
        _accumulate(by_movie.setdefault(movie_id, BucketMetric()), event_type, value)

    return by_movie


def get_dashboard_summary(
    conn: sqlite3.Connection,
    granularity: Any = None,
    limit: Any = None,
    now: Optional[datetime] = None,
    hot_limit: int = 10,
) -> DashboardSummary:
    """
    Dashboard report, recomputed from scratch on every call:
      1. buckets ending at `now` (day or month)
      2. all-time totals with fallbacks
      3. timeline + per-movie metrics from the windowed events
      4. comments merged into both
      5. hot movies: weighted score, top `hot_limit`

    Lenient inputs: unknown granularity -> day, bad limit -> default.
    A never-created events/ratings table reads as empty; any other storage
    failure surfaces as InternalError (or StorageUnavailable).
    """
    gran = normalize_granularity(granularity)
    n = normalize_limit(limit, gran)

    timeline = Timeline(build_buckets(gran, n, now=now))
    start_ts = int(timeline.start.timestamp())

    try:
        totals = _compute_totals(conn)
        by_movie = _scan_window(conn, timeline, gran, start_ts)
        merge_comments(timeline, by_movie, catalog.list_comments_since(conn, start_ts), gran)
        titles = catalog.get_titles(conn, by_movie.keys())
    except sqlite3.Error as exc:
        logger.exception("dashboard query failed")
        raise to_storage_error(exc) from exc

    hot = rank_hot_movies(by_movie, titles, limit=hot_limit)
    logger.debug(
        "dashboard computed granularity=%s buckets=%d active_movies=%d",
        gran.value, n, len(by_movie),
    )
    return DashboardSummary(summary=totals, timeline=timeline, hot_movies=hot, granularity=gran)
