import logging
import sqlite3

import pytest

from backend.analytics import ingest
from backend.analytics.bootstrap import StoreBootstrap, ratings_bootstrap
from backend.analytics.events import count_events, recent_events
from backend.analytics.ratings import get_rating_summary, upsert_rating, validate_rating
from backend.app.db import connect
from backend.app.errors import InvalidInput, NotFound, Unauthorized
from backend.app.schema import RATINGS_INDEXES, RATINGS_TABLE, RATINGS_TABLE_SQL

from conftest import fixed_clock, new_id, table_exists


@pytest.mark.parametrize("raw", [0, 6, -3, "abc", "4", None, True, float("inf"), 10 ** 400])
def test_validate_rating_rejects(raw):
    with pytest.raises(InvalidInput):
        validate_rating(raw)


@pytest.mark.parametrize("raw, expected", [(4.7, 5), (1, 1), (5, 5), (0.6, 1), (3.49, 3)])
def test_validate_rating_rounds(raw, expected):
    assert validate_rating(raw) == expected


def test_submit_requires_identity(conn, add_movie):
    movie_id = add_movie()
    with pytest.raises(Unauthorized):
        ingest.submit_rating(conn, movie_id, None, 4)
    assert not table_exists(conn, RATINGS_TABLE)


def test_submit_unknown_movie(conn):
    with pytest.raises(NotFound):
        ingest.submit_rating(conn, new_id(), new_id(), 4)


def test_submit_out_of_range_writes_nothing(conn, add_movie):
    movie_id = add_movie()
    with pytest.raises(InvalidInput):
        ingest.submit_rating(conn, movie_id, new_id(), 6)
    assert not table_exists(conn, RATINGS_TABLE)


def test_resubmission_keeps_one_row_with_latest_value(conn, add_movie):
    movie_id = add_movie()
    alice, bob = new_id(), new_id()

    ingest.submit_rating(conn, movie_id, alice, 2, clock=fixed_clock(1_700_000_000))
    ingest.submit_rating(conn, movie_id, alice, 4.7, clock=fixed_clock(1_700_000_500))
    summary = ingest.submit_rating(conn, movie_id, bob, 4, clock=fixed_clock(1_700_001_000))

    rows = conn.execute(
        "SELECT user_id, rating, created_ts, updated_ts FROM movie_ratings WHERE movie_id = ? ORDER BY id",
        (movie_id,),
    ).fetchall()
    assert [(r["user_id"], r["rating"]) for r in rows] == [(alice, 5), (bob, 4)]
    # created_ts only on first insert, updated_ts on every upsert
    assert (rows[0]["created_ts"], rows[0]["updated_ts"]) == (1_700_000_000, 1_700_000_500)

    assert summary.rating_count == 2
    assert summary.average_rating == 4.5
    assert summary.user_rating == 4


def test_each_submission_mirrors_a_rating_event(conn, add_movie):
    movie_id = add_movie()
    user_id = new_id()

    ingest.submit_rating(conn, movie_id, user_id, 3, clock=fixed_clock(1_700_000_000))
    ingest.submit_rating(conn, movie_id, user_id, 5, clock=fixed_clock(1_700_000_100))

    events = recent_events(conn, movie_id=movie_id)
    assert [(e["event_type"], e["value"], e["mode"]) for e in events] == [
        ("rating", 5, "movie"),
        ("rating", 3, "movie"),
    ]


def test_failed_mirror_does_not_lose_the_rating(conn, add_movie, monkeypatch, caplog):
    movie_id = add_movie()
    user_id = new_id()

    def broken_append(conn, event):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(ingest, "append_event", broken_append)

    with caplog.at_level(logging.ERROR, logger="backend.analytics.effects"):
        summary = ingest.submit_rating(conn, movie_id, user_id, 4)

    assert summary.to_dict() == {
        "movieId": movie_id,
        "averageRating": 4.0,
        "ratingCount": 1,
        "userRating": 4,
    }
    assert count_events(conn) == 0
    assert "mirror rating event" in caplog.text


def test_summary_rounds_average_to_two_decimals(conn, add_movie):
    movie_id = add_movie()
    for value in (5, 4, 4):
        ingest.submit_rating(conn, movie_id, new_id(), value)

    summary = get_rating_summary(conn, movie_id)
    assert summary.average_rating == 4.33
    assert summary.rating_count == 3
    assert summary.user_rating is None


def test_summary_without_ratings_table(conn):
    movie_id = new_id()
    assert get_rating_summary(conn, movie_id, new_id()).to_dict() == {
        "movieId": movie_id,
        "averageRating": 0.0,
        "ratingCount": 0,
        "userRating": None,
    }


def test_bootstrap_tolerates_existing_indexes(conn):
    ratings_bootstrap.ensure(conn)

    # a second process-level registry racing on the same database
    other = StoreBootstrap("ratings-copy", RATINGS_TABLE_SQL, RATINGS_INDEXES)
    other.ensure(conn)
    other.ensure(conn)

    assert other.is_ensured(conn)
    names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'").fetchall()}
    assert {"movie_user_unique_idx", "movie_lookup_idx"} <= names


def test_bootstrap_propagates_other_failures(conn):
    bad = StoreBootstrap(
        "bad",
        RATINGS_TABLE_SQL,
        [("broken_idx", "CREATE INDEX broken_idx ON no_such_table(col)")],
    )
    with pytest.raises(sqlite3.OperationalError):
        bad.ensure(conn)
    assert not bad.is_ensured(conn)


def test_unique_index_is_enforced_by_storage(conn):
    ratings_bootstrap.ensure(conn)
    movie_id, user_id = new_id(), new_id()
    conn.execute(
        "INSERT INTO movie_ratings(movie_id, user_id, rating, created_ts, updated_ts) VALUES(?,?,?,?,?)",
        (movie_id, user_id, 3, 1, 1),
    )
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO movie_ratings(movie_id, user_id, rating, created_ts, updated_ts) VALUES(?,?,?,?,?)",
            (movie_id, user_id, 4, 2, 2),
        )


def test_rating_table_is_rebuilt_after_a_reset(conn, add_movie):
    movie_id = add_movie()
    user_id = new_id()
    ingest.submit_rating(conn, movie_id, user_id, 2)
    assert ratings_bootstrap.is_ensured(conn)

    conn.execute(f"DROP TABLE {RATINGS_TABLE}")
    conn.commit()

    summary = ingest.submit_rating(conn, movie_id, user_id, 5)
    ingest.submit_rating(conn, movie_id, user_id, 4)

    assert summary.rating_count == 1
    assert get_rating_summary(conn, movie_id, user_id).user_rating == 4
    names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'").fetchall()}
    assert "movie_user_unique_idx" in names


def test_each_in_memory_database_gets_its_own_tables():
    first, second = connect(":memory:"), connect(":memory:")
    try:
        for c in (first, second):
            movie_id, user_id = new_id(), new_id()
            upsert_rating(c, movie_id, user_id, 3, 1)
            upsert_rating(c, movie_id, user_id, 4, 2)
            assert table_exists(c, RATINGS_TABLE)
            assert get_rating_summary(c, movie_id).rating_count == 1
        assert not ratings_bootstrap.is_ensured(first)
    finally:
        first.close()
        second.close()
