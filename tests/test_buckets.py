from datetime import datetime

import pytest

from backend.analytics.buckets import (
    BucketMetric,
    Granularity,
    Timeline,
    bucket_key_for_ts,
    build_buckets,
    normalize_granularity,
    normalize_limit,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("month", Granularity.MONTH),
        ("MONTH", Granularity.MONTH),
        (" Month ", Granularity.MONTH),
        ("day", Granularity.DAY),
        ("week", Granularity.DAY),
        ("", Granularity.DAY),
        (None, Granularity.DAY),
    ],
)
def test_normalize_granularity(raw, expected):
    assert normalize_granularity(raw) is expected


@pytest.mark.parametrize(
    "raw, granularity, expected",
    [
        (None, Granularity.DAY, 30),
        (None, Granularity.MONTH, 12),
        ("abc", Granularity.DAY, 30),
        ("0", Granularity.DAY, 30),
        (-4, Granularity.MONTH, 12),
        ("7", Granularity.DAY, 7),
        ("12abc", Granularity.DAY, 12),
        (500, Granularity.DAY, 120),
        (500, Granularity.MONTH, 36),
        (1, Granularity.MONTH, 1),
        (True, Granularity.DAY, 30),
    ],
)
def test_normalize_limit(raw, granularity, expected):
    assert normalize_limit(raw, granularity) == expected


def test_day_buckets_end_today_in_increasing_order():
    now = datetime(2024, 3, 2, 15, 30)
    buckets = build_buckets(Granularity.DAY, 7, now=now)

    assert [b.key for b in buckets] == [
        "2024-02-25", "2024-02-26", "2024-02-27", "2024-02-28",
        "2024-02-29", "2024-03-01", "2024-03-02",
    ]
    assert buckets[0].start == datetime(2024, 2, 25, 0, 0)
    assert buckets[-1].label == "02/03"
    assert all(a.start < b.start for a, b in zip(buckets, buckets[1:]))


def test_month_buckets_cross_year_boundary():
    now = datetime(2024, 2, 10, 9, 0)
    buckets = build_buckets(Granularity.MONTH, 4, now=now)

    assert [b.key for b in buckets] == ["2023-11", "2023-12", "2024-01", "2024-02"]
    assert [b.label for b in buckets] == ["11/2023", "12/2023", "01/2024", "02/2024"]
    assert buckets[0].start == datetime(2023, 11, 1)


def test_bucket_key_uses_local_time():
    ts = int(datetime(2024, 5, 31, 23, 59).timestamp())
    assert bucket_key_for_ts(ts, Granularity.DAY) == "2024-05-31"
    assert bucket_key_for_ts(ts, Granularity.MONTH) == "2024-05"


def test_timeline_starts_at_zero_and_drops_unknown_keys():
    timeline = Timeline(build_buckets(Granularity.DAY, 3, now=datetime(2024, 1, 3, 8, 0)))

    assert timeline.get("2023-12-01") is None
    assert [row["key"] for row in timeline.to_list()] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    for row in timeline.to_list():
        assert (row["views"], row["likes"], row["ratingStars"], row["comments"]) == (0, 0, 0, 0)


def test_bucket_metric_json_keys():
    assert BucketMetric(views=1, likes=2, rating_stars=3, comments=4).to_dict() == {
        "views": 1,
        "likes": 2,
        "ratingStars": 3,
        "comments": 4,
    }
