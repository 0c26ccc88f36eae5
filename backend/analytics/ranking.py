from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from backend.analytics.buckets import BucketMetric
from backend.analytics.catalog import UNKNOWN_TITLE


# active participation beats passive viewing
VIEW_WEIGHT = 1
LIKE_WEIGHT = 4
RATING_STAR_WEIGHT = 3
COMMENT_WEIGHT = 5


@dataclass
class HotMovie:
    movie_id: str
    title: str
    views: int
    likes: int
    rating_stars: int
    comments: int
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "movieId": self.movie_id,
            "title": self.title,
            "views": self.views,
            "likes": self.likes,
            "ratingStars": self.rating_stars,
            "comments": self.comments,
            "score": self.score,
        }


def engagement_score(metric: BucketMetric) -> int:
    return (
        VIEW_WEIGHT * metric.views
        + LIKE_WEIGHT * metric.likes
        + RATING_STAR_WEIGHT * metric.rating_stars
        + COMMENT_WEIGHT * metric.comments
    )


def rank_hot_movies(
    by_movie: Dict[str, BucketMetric],
    titles: Dict[str, str],
    limit: int = 10,
) -> List[HotMovie]:
    """
    Score every movie that had activity in the window, highest first.
    Ties keep first-seen order (sort is stable).
    """
    hot = [
        HotMovie(
            movie_id=movie_id,
            title=titles.get(movie_id) or UNKNOWN_TITLE,
            views=m.views,
            likes=m.likes,
            rating_stars=m.rating_stars,
            comments=m.comments,
            score=engagement_score(m),
        )
        for movie_id, m in by_movie.items()
    ]
    hot.sort(key=lambda x: x.score, reverse=True)
    return hot[:limit]
