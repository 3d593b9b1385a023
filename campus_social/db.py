"""
SQLite database layer using aiosqlite.

Owns the connection lifecycle and the schema.  Queries live in the
repository classes under ``campus_social.repositories``, which receive the
connection at construction time.
Tables are created automatically on first connect.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from campus_social import config

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None


async def connect(db_path: str) -> aiosqlite.Connection:
    """Open a connection to ``db_path`` and make sure the schema exists."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row  # dict-like rows
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")

    await conn.executescript(SCHEMA)
    await conn.commit()
    return conn


async def init_db() -> None:
    """Open the application database and create tables if they don't exist."""
    global _db
    _db = await connect(config.DB_PATH)
    logger.info("Database initialized at %s", config.DB_PATH)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


# ── Schema ────────────────────────────────────────────────────────────────

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id              TEXT PRIMARY KEY,
    mobile_number   TEXT NOT NULL UNIQUE,
    name            TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS roles (
    name            TEXT PRIMARY KEY,
    description     TEXT
);

INSERT OR IGNORE INTO roles (name, description) VALUES
    ('member',      'Regular community member'),
    ('moderator',   'Can review posts'),
    ('admin',       'Sees all content'),
    ('super_admin', 'Sees all content and manages admins');

CREATE TABLE IF NOT EXISTS account_roles (
    account_id      TEXT NOT NULL REFERENCES accounts(id),
    role_name       TEXT NOT NULL REFERENCES roles(name),
    PRIMARY KEY (account_id, role_name)
);

CREATE TABLE IF NOT EXISTS group_types (
    id              TEXT PRIMARY KEY,
    label           TEXT NOT NULL UNIQUE,
    description     TEXT
);

CREATE TABLE IF NOT EXISTS groups (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    group_type_id   TEXT REFERENCES group_types(id),
    created_by      TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS memberships (
    account_id      TEXT NOT NULL REFERENCES accounts(id),
    group_id        TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
    joined_at       TEXT NOT NULL,
    PRIMARY KEY (account_id, group_id)
);

CREATE INDEX IF NOT EXISTS idx_memberships_group ON memberships(group_id);

-- ── Content ──────────────────────────────────────────────────────────

CREATE TABLE IF NOT EXISTS events (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    date            TEXT NOT NULL,
    end_date        TEXT,
    description     TEXT,
    created_by      TEXT REFERENCES accounts(id),
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS albums (
    id              TEXT PRIMARY KEY,
    event_id        TEXT REFERENCES events(id) ON DELETE CASCADE,
    name            TEXT NOT NULL,
    description     TEXT,
    created_by      TEXT REFERENCES accounts(id),
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS album_media (
    id              TEXT PRIMARY KEY,
    album_id        TEXT NOT NULL REFERENCES albums(id) ON DELETE CASCADE,
    media_url       TEXT NOT NULL,
    media_type      TEXT NOT NULL DEFAULT 'image',
    caption         TEXT,
    display_order   INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS posts (
    id              TEXT PRIMARY KEY,
    author_id       TEXT REFERENCES accounts(id),
    title           TEXT,
    content         TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS event_groups (
    event_id        TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    group_id        TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
    PRIMARY KEY (event_id, group_id)
);

CREATE TABLE IF NOT EXISTS album_groups (
    album_id        TEXT NOT NULL REFERENCES albums(id) ON DELETE CASCADE,
    group_id        TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
    PRIMARY KEY (album_id, group_id)
);

CREATE TABLE IF NOT EXISTS post_groups (
    post_id         TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    group_id        TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
    PRIMARY KEY (post_id, group_id)
);

CREATE INDEX IF NOT EXISTS idx_events_created ON events(created_at);
CREATE INDEX IF NOT EXISTS idx_albums_created ON albums(created_at);
CREATE INDEX IF NOT EXISTS idx_posts_created ON posts(status, created_at);

-- ── Interactions (tagged by entity type) ─────────────────────────────

CREATE TABLE IF NOT EXISTS likes (
    account_id      TEXT NOT NULL REFERENCES accounts(id),
    entity_type     TEXT NOT NULL,
    entity_id       TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    PRIMARY KEY (account_id, entity_type, entity_id)
);

CREATE TABLE IF NOT EXISTS comments (
    id              TEXT PRIMARY KEY,
    account_id      TEXT NOT NULL REFERENCES accounts(id),
    entity_type     TEXT NOT NULL,
    entity_id       TEXT NOT NULL,
    body            TEXT NOT NULL,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_likes_entity ON likes(entity_type, entity_id);
CREATE INDEX IF NOT EXISTS idx_comments_entity ON comments(entity_type, entity_id);

-- ── Login path ───────────────────────────────────────────────────────

CREATE TABLE IF NOT EXISTS otp_challenges (
    mobile_number   TEXT PRIMARY KEY,
    id              TEXT NOT NULL,
    code            TEXT NOT NULL,
    attempts_used   INTEGER NOT NULL DEFAULT 0,
    expires_at      TEXT NOT NULL,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rate_limit_counters (
    key             TEXT PRIMARY KEY,
    window_start    REAL NOT NULL,
    window_end      REAL NOT NULL,
    count           INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_rate_limit_window_end ON rate_limit_counters(window_end);
CREATE INDEX IF NOT EXISTS idx_otp_expires ON otp_challenges(expires_at);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def iso(dt: datetime | None) -> str | None:
    """Serialize as UTC ISO-8601 so stored values sort chronologically."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(raw: str) -> datetime:
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def split_ids(raw: str | None) -> frozenset[str]:
    """Parse a ``group_concat`` column back into a set of ids."""
    if not raw:
        return frozenset()
    return frozenset(raw.split(","))
