"""
aiosqlite-backed content reads for the feed and the visibility checks.

Entity types are resolved through the explicit ``_QUERIES`` table rather
than dynamic dispatch, so the set of supported types stays closed and every
``EntityType`` must have an entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

import aiosqlite

from campus_social.db import from_iso, iso, split_ids
from campus_social.domain import ContentItem, EntityRef, EntityType, InteractionStats


@dataclass(frozen=True)
class _TypeQuery:
    """How to load one entity type. The selected row is aliased ``t``."""

    select: str
    payload: tuple[str, ...]
    where: str = "1 = 1"


_QUERIES: dict[EntityType, _TypeQuery] = {
    EntityType.EVENT: _TypeQuery(
        select="""
            SELECT t.id, t.created_at, t.created_by AS creator_id,
                   t.name, t.date, t.end_date, t.description,
                   (SELECT group_concat(group_id) FROM event_groups WHERE event_id = t.id) AS group_ids
            FROM events t
        """,
        payload=("name", "date", "end_date", "description"),
    ),
    EntityType.ALBUM: _TypeQuery(
        select="""
            SELECT t.id, t.created_at, t.created_by AS creator_id,
                   t.name, t.event_id, t.description,
                   (SELECT group_concat(group_id) FROM album_groups WHERE album_id = t.id) AS group_ids
            FROM albums t
        """,
        payload=("name", "event_id", "description"),
    ),
    EntityType.POST: _TypeQuery(
        select="""
            SELECT t.id, t.created_at, t.author_id AS creator_id,
                   t.title, t.content,
                   (SELECT group_concat(group_id) FROM post_groups WHERE post_id = t.id) AS group_ids
            FROM posts t
        """,
        payload=("title", "content"),
        where="t.status = 'approved'",
    ),
    # Media has no links of its own; it is published wherever its album is.
    EntityType.ALBUM_MEDIA: _TypeQuery(
        select="""
            SELECT t.id, t.created_at, a.created_by AS creator_id,
                   t.album_id, t.media_url, t.media_type, t.caption, t.display_order,
                   (SELECT group_concat(group_id) FROM album_groups WHERE album_id = t.album_id) AS group_ids
            FROM album_media t
            JOIN albums a ON a.id = t.album_id
        """,
        payload=("album_id", "media_url", "media_type", "caption", "display_order"),
    ),
}

if set(_QUERIES) != set(EntityType):
    raise RuntimeError("every entity type needs a query")

_LINK_TABLES: dict[EntityType, tuple[str, str]] = {
    EntityType.EVENT: ("event_groups", "event_id"),
    EntityType.ALBUM: ("album_groups", "album_id"),
    EntityType.POST: ("post_groups", "post_id"),
}


def _row_to_item(entity_type: EntityType, query: _TypeQuery, row: aiosqlite.Row) -> ContentItem:
    return ContentItem(
        type=entity_type,
        id=row["id"],
        created_at=from_iso(row["created_at"]),
        creator_id=row["creator_id"],
        group_ids=split_ids(row["group_ids"]),
        data={col: row[col] for col in query.payload},
    )


class SqliteContentRepository:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ── Reads ──────────────────────────────────────────────────────────

    async def list_recent(self, entity_type: EntityType) -> list[ContentItem]:
        query = _QUERIES[entity_type]
        sql = f"{query.select} WHERE {query.where} ORDER BY t.created_at DESC, t.id ASC"
        async with self._conn.execute(sql) as cur:
            rows = await cur.fetchall()
        return [_row_to_item(entity_type, query, r) for r in rows]

    async def find(self, entity_type: EntityType, entity_id: str) -> ContentItem | None:
        query = _QUERIES[entity_type]
        sql = f"{query.select} WHERE {query.where} AND t.id = ?"
        async with self._conn.execute(sql, (entity_id,)) as cur:
            row = await cur.fetchone()
        return _row_to_item(entity_type, query, row) if row else None

    async def find_group_ids(self, entity_type: EntityType, entity_id: str) -> frozenset[str]:
        item = await self.find(entity_type, entity_id)
        return item.group_ids if item else frozenset()

    async def interaction_stats(
        self, refs: list[EntityRef], account_id: str
    ) -> dict[EntityRef, InteractionStats]:
        """Like/comment counts for a batch of entities in two queries."""
        if not refs:
            return {}

        values = ", ".join("(?, ?)" for _ in refs)
        ref_params: list[Any] = [v for ref in refs for v in (ref.type.value, ref.id)]

        async with self._conn.execute(
            f"""
            SELECT entity_type, entity_id, COUNT(*) AS n, MAX(account_id = ?) AS mine
            FROM likes
            WHERE (entity_type, entity_id) IN (VALUES {values})
            GROUP BY entity_type, entity_id
            """,
            [account_id, *ref_params],
        ) as cur:
            like_rows = await cur.fetchall()

        async with self._conn.execute(
            f"""
            SELECT entity_type, entity_id, COUNT(*) AS n
            FROM comments
            WHERE (entity_type, entity_id) IN (VALUES {values})
            GROUP BY entity_type, entity_id
            """,
            ref_params,
        ) as cur:
            comment_rows = await cur.fetchall()

        likes = {
            EntityRef(EntityType(r["entity_type"]), r["entity_id"]): (r["n"], bool(r["mine"]))
            for r in like_rows
        }
        comments = {
            EntityRef(EntityType(r["entity_type"]), r["entity_id"]): r["n"] for r in comment_rows
        }
        stats: dict[EntityRef, InteractionStats] = {}
        for ref in refs:
            like_count, liked = likes.get(ref, (0, False))
            stats[ref] = InteractionStats(
                likes_count=like_count,
                comments_count=comments.get(ref, 0),
                liked=liked,
            )
        return stats

    # ── Provisioning writes (seed data, tests) ─────────────────────────

    async def add_event(
        self, name: str, *, date: str, created_by: str | None, created_at: datetime,
        end_date: str | None = None, description: str | None = None,
    ) -> str:
        event_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO events (id, name, date, end_date, description, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (event_id, name, date, end_date, description, created_by, iso(created_at)),
        )
        await self._conn.commit()
        return event_id

    async def add_album(
        self, name: str, *, event_id: str | None, created_by: str | None, created_at: datetime,
        description: str | None = None,
    ) -> str:
        album_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO albums (id, event_id, name, description, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (album_id, event_id, name, description, created_by, iso(created_at)),
        )
        await self._conn.commit()
        return album_id

    async def add_album_media(
        self, album_id: str, media_url: str, *, created_at: datetime,
        media_type: str = "image", caption: str | None = None, display_order: int = 0,
    ) -> str:
        media_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO album_media
                (id, album_id, media_url, media_type, caption, display_order, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (media_id, album_id, media_url, media_type, caption, display_order, iso(created_at)),
        )
        await self._conn.commit()
        return media_id

    async def add_post(
        self, *, author_id: str | None, created_at: datetime, title: str | None = None,
        content: str | None = None, status: str = "approved",
    ) -> str:
        post_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO posts (id, author_id, title, content, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (post_id, author_id, title, content, status, iso(created_at)),
        )
        await self._conn.commit()
        return post_id

    async def link_group(self, entity_type: EntityType, entity_id: str, group_id: str) -> None:
        if entity_type not in _LINK_TABLES:
            raise ValueError(f"{entity_type.value} inherits its groups and cannot be linked directly")
        table, column = _LINK_TABLES[entity_type]
        await self._conn.execute(
            f"INSERT OR IGNORE INTO {table} ({column}, group_id) VALUES (?, ?)",
            (entity_id, group_id),
        )
        await self._conn.commit()

    async def add_like(self, account_id: str, ref: EntityRef, *, created_at: datetime) -> None:
        await self._conn.execute(
            """
            INSERT OR IGNORE INTO likes (account_id, entity_type, entity_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (account_id, ref.type.value, ref.id, iso(created_at)),
        )
        await self._conn.commit()

    async def add_comment(
        self, account_id: str, ref: EntityRef, body: str, *, created_at: datetime
    ) -> str:
        comment_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO comments (id, account_id, entity_type, entity_id, body, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (comment_id, account_id, ref.type.value, ref.id, body, iso(created_at)),
        )
        await self._conn.commit()
        return comment_id

    async def add_group(
        self, name: str, *, created_at: datetime, group_type_label: str | None = None,
        created_by: str | None = None,
    ) -> str:
        """Create a group, creating its group type on first use of the label."""
        group_type_id = None
        if group_type_label is not None:
            await self._conn.execute(
                "INSERT OR IGNORE INTO group_types (id, label) VALUES (?, ?)",
                (str(uuid4()), group_type_label),
            )
            async with self._conn.execute(
                "SELECT id FROM group_types WHERE label = ?", (group_type_label,)
            ) as cur:
                row = await cur.fetchone()
            group_type_id = row["id"]

        group_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO groups (id, name, group_type_id, created_by, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (group_id, name, group_type_id, created_by, iso(created_at)),
        )
        await self._conn.commit()
        return group_id
