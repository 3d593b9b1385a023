#!/usr/bin/env python3
"""
Seed the local database with a small demo community.

Creates an admin and a member, two groups, and a handful of events,
albums and posts spread across them so the feed has something to show.

Usage:
    python scripts/seed_demo.py
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from campus_social import config, db  # noqa: E402
from campus_social.domain import EntityRef, EntityType, Role, utcnow  # noqa: E402
from campus_social.repositories.accounts import SqliteAccountRepository  # noqa: E402
from campus_social.repositories.content import SqliteContentRepository  # noqa: E402


async def seed() -> None:
    conn = await db.connect(config.DB_PATH)
    try:
        accounts = SqliteAccountRepository(conn)
        content = SqliteContentRepository(conn)
        now = utcnow()

        admin = await accounts.create(
            "+15550000001", name="Admin", roles=[Role.ADMIN.value], now=now
        )
        member = await accounts.create(
            "+15550000002", name="Member", roles=[Role.MEMBER.value], now=now
        )

        batch = await content.add_group(
            "Class of 2020", created_at=now, group_type_label="Batch", created_by=admin.id
        )
        hostel = await content.add_group(
            "North Hostel", created_at=now, group_type_label="Hostel", created_by=admin.id
        )
        await accounts.add_membership(member.id, batch, now)

        reunion = await content.add_event(
            "Reunion", date="2026-12-20", created_by=admin.id,
            created_at=now - timedelta(days=3),
        )
        await content.link_group(EntityType.EVENT, reunion, batch)

        album = await content.add_album(
            "Reunion photos", event_id=reunion, created_by=admin.id,
            created_at=now - timedelta(days=2),
        )
        await content.link_group(EntityType.ALBUM, album, batch)
        await content.add_album_media(
            album, "https://example.com/photos/1.jpg", created_at=now - timedelta(days=2)
        )

        post = await content.add_post(
            author_id=member.id, title="Hello", content="Good to be back",
            created_at=now - timedelta(days=1),
        )
        await content.link_group(EntityType.POST, post, batch)
        await content.add_like(admin.id, EntityRef(EntityType.POST, post), created_at=now)

        hostel_post = await content.add_post(
            author_id=admin.id, title="Hostel notice", created_at=now,
        )
        await content.link_group(EntityType.POST, hostel_post, hostel)

        print(f"✓ Seeded demo data into {config.DB_PATH}")
        print(f"  admin  {admin.mobile_number}")
        print(f"  member {member.mobile_number}")
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(seed())
