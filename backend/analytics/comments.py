from __future__ import annotations

from typing import Dict, Iterable

from backend.analytics.buckets import BucketMetric, Granularity, Timeline, bucket_key_for_ts
from backend.analytics.catalog import CommentRow


def merge_comments(
    timeline: Timeline,
    by_movie: Dict[str, BucketMetric],
    comments: Iterable[CommentRow],
    granularity: Granularity,
) -> None:
    """
    Comments are not engagement events, so they are folded in separately:
    each one bumps the bucket of its own created_ts and its movie's metric.
    """
    for c in comments:
        current = timeline.get(bucket_key_for_ts(c.created_ts, granularity))
        if current is not None:
            current.comments += 1

        if not c.movie_id:
            continue
        by_movie.setdefault(c.movie_id, BucketMetric()).comments += 1
