"""Tests for the aiosqlite repositories against a real (temp) database."""

import asyncio
from datetime import timedelta

import pytest

from campus_social.domain import EntityRef, EntityType, OtpChallenge
from campus_social.repositories.accounts import SqliteAccountRepository
from campus_social.repositories.content import SqliteContentRepository
from campus_social.repositories.otp import SqliteOtpRepository
from tests.mocks.models import T0

MOBILE = "+15551234567"


def _challenge(challenge_id: str = "c1", code: str = "4821") -> OtpChallenge:
    return OtpChallenge(
        id=challenge_id,
        mobile_number=MOBILE,
        code=code,
        attempts_used=0,
        expires_at=T0 + timedelta(minutes=5),
        created_at=T0,
    )


class TestOtpRepository:
    async def test_replace_and_get(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge())

        stored = await repo.get(MOBILE)
        assert stored == _challenge()

    async def test_replace_supersedes(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge("c1", "1111"))
        await repo.replace(_challenge("c2", "2222"))

        stored = await repo.get(MOBILE)
        assert (stored.id, stored.code) == ("c2", "2222")

    async def test_consume_attempt_stops_at_max(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge())

        counts = [await repo.consume_attempt("c1", 3) for _ in range(5)]
        assert counts == [1, 2, 3, None, None]

    async def test_concurrent_consume_attempt(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge())

        counts = await asyncio.gather(*(repo.consume_attempt("c1", 3) for _ in range(8)))
        assert sorted(c for c in counts if c is not None) == [1, 2, 3]
        assert counts.count(None) == 5

    async def test_consume_attempt_on_superseded_challenge(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge("c1"))
        await repo.replace(_challenge("c2"))
        assert await repo.consume_attempt("c1", 3) is None

    async def test_purge_expired(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge())

        assert await repo.purge_expired(T0 + timedelta(minutes=5)) == 0
        assert await repo.purge_expired(T0 + timedelta(minutes=5, seconds=1)) == 1
        assert await repo.get(MOBILE) is None

    async def test_delete_only_succeeds_once(self, conn):
        repo = SqliteOtpRepository(conn)
        await repo.replace(_challenge())

        assert await repo.delete("c1") is True
        assert await repo.delete("c1") is False
        assert await repo.get(MOBILE) is None


class TestAccountRepository:
    async def test_get_or_create_provisions_once(self, conn):
        repo = SqliteAccountRepository(conn)

        first = await repo.get_or_create(MOBILE, ["member"], T0)
        second = await repo.get_or_create(MOBILE, ["admin"], T0 + timedelta(days=1))

        assert first.id == second.id
        assert first.is_active
        assert await repo.list_role_names(first.id) == ["member"]

    async def test_roles_and_memberships(self, conn):
        accounts = SqliteAccountRepository(conn)
        content = SqliteContentRepository(conn)
        account = await accounts.create(MOBILE, name="Asha", roles=["member"], now=T0)
        batch = await content.add_group("Batch 2012", created_at=T0, group_type_label="Batch")
        hostel = await content.add_group("North Hostel", created_at=T0, group_type_label="Hostel")
        other_batch = await content.add_group("Batch 2013", created_at=T0, group_type_label="Batch")

        await accounts.grant_role(account.id, "admin")
        await accounts.add_membership(account.id, batch, T0)
        await accounts.add_membership(account.id, hostel, T0)
        await accounts.add_membership(account.id, other_batch, T0)

        assert await accounts.list_role_names(account.id) == ["admin", "member"]
        assert set(await accounts.list_group_ids(account.id)) == {batch, hostel, other_batch}
        assert sorted(await accounts.list_group_type_labels(account.id)) == ["Batch", "Hostel"]

        await accounts.revoke_role(account.id, "admin")
        await accounts.remove_membership(account.id, hostel)
        assert await accounts.list_role_names(account.id) == ["member"]
        assert set(await accounts.list_group_ids(account.id)) == {batch, other_batch}

    async def test_set_active(self, conn):
        repo = SqliteAccountRepository(conn)
        account = await repo.get_or_create(MOBILE, ["member"], T0)

        await repo.set_active(account.id, False)
        assert not (await repo.get(account.id)).is_active


class TestContentRepository:
    @pytest.fixture()
    async def seeded(self, conn):
        accounts = SqliteAccountRepository(conn)
        content = SqliteContentRepository(conn)
        author = await accounts.create(MOBILE, roles=["member"], now=T0)
        group = await content.add_group("Batch 2012", created_at=T0)

        event = await content.add_event("Reunion", date="2026-04-01", created_by=author.id, created_at=T0)
        album = await content.add_album(
            "Reunion photos", event_id=event, created_by=author.id, created_at=T0 - timedelta(hours=1)
        )
        media = await content.add_album_media(album, "https://cdn.example/1.jpg", created_at=T0)
        approved = await content.add_post(author_id=author.id, created_at=T0, content="hello")
        pending = await content.add_post(author_id=author.id, created_at=T0, content="wait", status="pending")

        for entity_type, entity_id in (
            (EntityType.EVENT, event),
            (EntityType.ALBUM, album),
            (EntityType.POST, approved),
            (EntityType.POST, pending),
        ):
            await content.link_group(entity_type, entity_id, group)

        return {
            "content": content,
            "author": author.id,
            "group": group,
            "event": event,
            "album": album,
            "media": media,
            "approved": approved,
            "pending": pending,
        }

    async def test_find_with_groups_and_payload(self, seeded):
        item = await seeded["content"].find(EntityType.EVENT, seeded["event"])

        assert item.creator_id == seeded["author"]
        assert item.group_ids == {seeded["group"]}
        assert item.created_at == T0
        assert item.data["name"] == "Reunion"

    async def test_album_media_inherits_album_groups_and_creator(self, seeded):
        item = await seeded["content"].find(EntityType.ALBUM_MEDIA, seeded["media"])

        assert item.group_ids == {seeded["group"]}
        assert item.creator_id == seeded["author"]
        assert item.data["album_id"] == seeded["album"]

    async def test_album_media_cannot_be_linked_directly(self, seeded):
        with pytest.raises(ValueError):
            await seeded["content"].link_group(EntityType.ALBUM_MEDIA, seeded["media"], seeded["group"])

    async def test_pending_posts_are_invisible(self, seeded):
        content = seeded["content"]
        posts = await content.list_recent(EntityType.POST)

        assert [p.id for p in posts] == [seeded["approved"]]
        assert await content.find(EntityType.POST, seeded["pending"]) is None

    async def test_list_recent_newest_first(self, seeded):
        content = seeded["content"]
        older = await content.add_event("Older", date="2026-01-01", created_by=None, created_at=T0 - timedelta(days=3))

        events = await content.list_recent(EntityType.EVENT)
        assert [e.id for e in events] == [seeded["event"], older]
        assert events[1].group_ids == frozenset()

    async def test_find_group_ids(self, seeded):
        content = seeded["content"]
        assert await content.find_group_ids(EntityType.ALBUM, seeded["album"]) == {seeded["group"]}
        assert await content.find_group_ids(EntityType.ALBUM, "missing") == frozenset()

    async def test_interaction_stats(self, seeded, conn):
        content = seeded["content"]
        other = await SqliteAccountRepository(conn).create("+15559876543", roles=["member"], now=T0)
        post = EntityRef(EntityType.POST, seeded["approved"])
        event = EntityRef(EntityType.EVENT, seeded["event"])

        await content.add_like(seeded["author"], post, created_at=T0)
        await content.add_like(other.id, post, created_at=T0)
        await content.add_comment(other.id, post, "nice", created_at=T0)
        await content.add_comment(other.id, event, "see you", created_at=T0)

        stats = await content.interaction_stats([post, event], other.id)

        assert stats[post].likes_count == 2
        assert stats[post].comments_count == 1
        assert stats[post].liked
        assert stats[event].likes_count == 0
        assert stats[event].comments_count == 1
        assert not stats[event].liked

    async def test_interaction_stats_keyed_by_type(self, seeded):
        content = seeded["content"]
        # Same id under another type must not pick up the post's likes
        await content.add_like(seeded["author"], EntityRef(EntityType.POST, seeded["approved"]), created_at=T0)
        ghost = EntityRef(EntityType.EVENT, seeded["approved"])

        stats = await content.interaction_stats([ghost], seeded["author"])
        assert stats[ghost].likes_count == 0

    async def test_interaction_stats_empty(self, seeded):
        assert await seeded["content"].interaction_stats([], seeded["author"]) == {}
