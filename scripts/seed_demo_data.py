#!/usr/bin/env python3
import argparse
import json
import random
import secrets
import sqlite3
import time

from backend.analytics.events import EngagementEvent, EventType, append_event
from backend.analytics.ratings import upsert_rating
from backend.app.db import connect, init_db

DAY = 24 * 3600

TITLES = [
    "The Long Night", "Paper Harbor", "Blue Static", "Quiet Engines",
    "Salt and Iron", "The Last Tram", "Northern Lights Motel", "Glass Orchard",
    "Midnight Ferry", "A Song for Nobody", "Copper Sky", "Little Earthquakes",
]


def new_id() -> str:
    # same shape as the ids the API validates (24 hex chars)
    return secrets.token_hex(12)


def seed_movies(conn: sqlite3.Connection) -> list[str]:
    rows = [(new_id(), title) for title in TITLES]
    conn.executemany("INSERT INTO movies(id, title) VALUES(?,?)", rows)
    return [r[0] for r in rows]


def seed_users(conn: sqlite3.Connection, n_users: int, movie_ids: list[str], rng: random.Random) -> list[str]:
    rows = []
    for i in range(n_users):
        favorites = rng.sample(movie_ids, k=rng.randint(0, 3))
        rows.append((new_id(), f"user{i + 1}@example.com", f"User {i + 1}", json.dumps(favorites)))
    conn.executemany(
        "INSERT INTO users(id, email, name, favorite_ids_json) VALUES(?,?,?,?)",
        rows,
    )
    return [r[0] for r in rows]


def seed_comments(conn: sqlite3.Connection, movie_ids: list[str], user_ids: list[str], days: int, n: int, rng: random.Random) -> None:
    now = int(time.time())
    rows = []
    for _ in range(n):
        status = rng.choices(["approved", "pending", "rejected"], weights=[6, 3, 1])[0]
        ts = now - rng.randint(0, days * DAY)
        rows.append((rng.choice(movie_ids), rng.choice(user_ids), "nice one", status, ts))
    conn.executemany(
        "INSERT INTO comments(movie_id, user_id, content, status, created_ts) VALUES(?,?,?,?,?)",
        rows,
    )


def seed_events(conn: sqlite3.Connection, movie_ids: list[str], user_ids: list[str], days: int, n: int, rng: random.Random) -> None:
    now = int(time.time())
    # a few "popular" movies get most of the traffic
    weights = [1.0 / (i + 1) for i in range(len(movie_ids))]

    for _ in range(n):
        movie_id = rng.choices(movie_ids, weights=weights)[0]
        user_id = rng.choice(user_ids + [None])
        etype = rng.choices(
            [EventType.VIEW, EventType.FAVORITE, EventType.RATING],
            weights=[8, 1, 1],
        )[0]
        if etype is EventType.RATING and user_id is None:
            etype = EventType.VIEW

        ts = now - rng.randint(0, days * DAY)
        value = 1
        if etype is EventType.RATING:
            value = rng.randint(1, 5)
            upsert_rating(conn, movie_id, user_id, value, ts)

        append_event(
            conn,
            EngagementEvent(
                movie_id=movie_id,
                user_id=user_id,
                event_type=etype,
                value=value,
                mode=rng.choice(["movie", "movie", "trailer"]),
                ts=ts,
            ),
        )


def clear_tables(conn: sqlite3.Connection) -> None:
    # analytics tables may not exist yet on a fresh db
    for table in ["engagement_events", "movie_ratings"]:
        conn.execute(f"DROP TABLE IF EXISTS {table};")
    conn.execute("DELETE FROM comments;")
    conn.execute("DELETE FROM users;")
    conn.execute("DELETE FROM movies;")


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--users", type=int, default=25)
    ap.add_argument("--events", type=int, default=2000)
    ap.add_argument("--comments", type=int, default=150)
    ap.add_argument("--days", type=int, default=90, help="spread events over the last N days")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--reset", action="store_true", help="Clear tables before seeding")
    args = ap.parse_args()

    rng = random.Random(args.seed)

    conn = connect()
    init_db(conn)

    if args.reset:
        clear_tables(conn)
        conn.commit()

    movie_ids = seed_movies(conn)
    user_ids = seed_users(conn, args.users, movie_ids, rng)
    seed_comments(conn, movie_ids, user_ids, args.days, args.comments, rng)
    conn.commit()
    seed_events(conn, movie_ids, user_ids, args.days, args.events, rng)

    conn.commit()
    conn.close()
    print("Seeding complete.")


if __name__ == "__main__":
    main()
