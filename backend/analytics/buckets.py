from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional
import re


class Granularity(str, Enum):
    DAY = "day"
    MONTH = "month"


DEFAULT_LIMITS = {Granularity.DAY: 30, Granularity.MONTH: 12}
MAX_LIMITS = {Granularity.DAY: 120, Granularity.MONTH: 36}

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class TimeBucket:
    key: str
    label: str
    start: datetime  # local, naive


@dataclass
class BucketMetric:
    views: int = 0
    likes: int = 0
    rating_stars: int = 0
    comments: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "views": self.views,
            "likes": self.likes,
            "ratingStars": self.rating_stars,
            "comments": self.comments,
        }


def normalize_granularity(raw: Any) -> Granularity:
    return Granularity.MONTH if str(raw or "").strip().lower() == "month" else Granularity.DAY


def _parse_int(raw: Any) -> Optional[int]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw == raw and abs(raw) != float("inf") else None
    m = _LEADING_INT_RE.match(str(raw))
    return int(m.group(1)) if m else None


def normalize_limit(raw: Any, granularity: Granularity) -> int:
    """Lenient: garbage or <= 0 gives the default, otherwise clamp to the max."""
    parsed = _parse_int(raw)
    if parsed is None or parsed <= 0:
        return DEFAULT_LIMITS[granularity]
    return min(MAX_LIMITS[granularity], max(1, parsed))


def day_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d")


def month_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m")


def bucket_key(dt: datetime, granularity: Granularity) -> str:
    return month_key(dt) if granularity is Granularity.MONTH else day_key(dt)


def bucket_key_for_ts(ts: int, granularity: Granularity) -> str:
    # host local time, no tz conversion
    return bucket_key(datetime.fromtimestamp(ts), granularity)


def build_buckets(granularity: Granularity, limit: int, now: Optional[datetime] = None) -> List[TimeBucket]:
    """
    `limit` consecutive buckets, oldest first, the last one holding `now`:
      day   -> local midnight of each of the last `limit` days
      month -> the 1st of each of the last `limit` months
    """
    now = now or datetime.now()
    items: List[TimeBucket] = []

    if granularity is Granularity.DAY:
        today = now.date()
        for i in range(limit - 1, -1, -1):
            start = datetime.combine(today - timedelta(days=i), time.min)
            items.append(TimeBucket(key=day_key(start), label=start.strftime("%d/%m"), start=start))
        return items

    current = now.year * 12 + (now.month - 1)
    for i in range(limit - 1, -1, -1):
        year, month0 = divmod(current - i, 12)
        start = datetime(year, month0 + 1, 1)
        items.append(TimeBucket(key=month_key(start), label=start.strftime("%m/%Y"), start=start))
    return items


@dataclass
class Timeline:
    """Fixed set of buckets; metrics for keys outside the set are dropped."""

    buckets: List[TimeBucket]
    metrics: Dict[str, BucketMetric] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for b in self.buckets:
            self.metrics.setdefault(b.key, BucketMetric())

    @property
    def start(self) -> datetime:
        return self.buckets[0].start

    def get(self, key: str) -> Optional[BucketMetric]:
        return self.metrics.get(key)

    def to_list(self) -> List[Dict[str, Any]]:
        return [{"key": b.key, "label": b.label, **self.metrics[b.key].to_dict()} for b in self.buckets]
