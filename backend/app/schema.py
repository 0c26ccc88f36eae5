# Tables owned by the surrounding app (movies/users/comments). The core only
# reads them. Event and rating tables are NOT created here: they appear lazily
# on first write (see backend/analytics/bootstrap.py), so a fresh deployment
# has no analytics tables at all.
SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS movies (
  id           TEXT PRIMARY KEY,             -- 24 hex chars
  title        TEXT NOT NULL,
  description  TEXT,
  categories   TEXT,                         -- comma-separated
  created_at   TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS users (
  id                TEXT PRIMARY KEY,        -- 24 hex chars
  email             TEXT UNIQUE,
  name              TEXT,
  favorite_ids_json TEXT NOT NULL DEFAULT '[]',  -- legacy denormalized favorites
  created_at        TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS comments (
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  movie_id   TEXT NOT NULL,
  user_id    TEXT,
  content    TEXT NOT NULL DEFAULT '',
  status     TEXT NOT NULL DEFAULT 'pending',  -- 'pending' | 'approved' | 'rejected'
  created_ts INTEGER NOT NULL,                 -- unix timestamp
  FOREIGN KEY (movie_id) REFERENCES movies(id)
);

CREATE INDEX IF NOT EXISTS idx_comments_created_ts ON comments(created_ts);
CREATE INDEX IF NOT EXISTS idx_comments_movie_id ON comments(movie_id);
"""


EVENTS_TABLE = "engagement_events"
RATINGS_TABLE = "movie_ratings"

# append-only engagement log: no UPDATE/DELETE is ever issued against it
EVENTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS engagement_events (
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  movie_id   TEXT NOT NULL,
  user_id    TEXT,                             -- NULL = anonymous
  event_type TEXT NOT NULL,                    -- 'view' | 'favorite' | 'rating'
  value      INTEGER NOT NULL DEFAULT 1,       -- 1, or 1..5 for ratings
  mode       TEXT NOT NULL DEFAULT 'movie',    -- 'movie' | 'trailer' | ...
  ts         INTEGER NOT NULL                  -- unix timestamp, set at ingestion
);
"""

EVENTS_INDEXES = [
    ("events_ts_idx", "CREATE INDEX events_ts_idx ON engagement_events(ts)"),
    ("events_type_ts_idx", "CREATE INDEX events_type_ts_idx ON engagement_events(event_type, ts)"),
    ("events_movie_ts_idx", "CREATE INDEX events_movie_ts_idx ON engagement_events(movie_id, ts)"),
]

# current-state ratings: one row per (movie_id, user_id), enforced by the unique index
RATINGS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS movie_ratings (
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  movie_id   TEXT NOT NULL,
  user_id    TEXT NOT NULL,
  rating     INTEGER NOT NULL,                 -- 1..5
  created_ts INTEGER NOT NULL,                 -- first insert only
  updated_ts INTEGER NOT NULL                  -- every upsert
);
"""

RATINGS_INDEXES = [
    ("movie_user_unique_idx", "CREATE UNIQUE INDEX movie_user_unique_idx ON movie_ratings(movie_id, user_id)"),
    ("movie_lookup_idx", "CREATE INDEX movie_lookup_idx ON movie_ratings(movie_id)"),
]
