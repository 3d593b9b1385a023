"""
Core domain types shared by the services and repositories.

These are plain dataclasses; the HTTP layer has its own Pydantic schemas
in ``campus_social.models``.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Validation patterns ───────────────────────────────────────────────────

MOBILE_NUMBER_PATTERN = r"^\+?[0-9]{10,15}$"
OTP_CODE_PATTERN = r"^[0-9]{4}$"


def mask_mobile(mobile_number: str) -> str:
    """``+15551234567`` → ``+1555***4567`` for log lines."""
    if len(mobile_number) <= 8:
        return "***"
    return f"{mobile_number[:5]}***{mobile_number[-4:]}"


# ── Roles ─────────────────────────────────────────────────────────────────


class Role(str, enum.Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# Roles that bypass group-visibility filtering entirely.
ELEVATED_ROLES: frozenset[str] = frozenset({Role.ADMIN.value, Role.SUPER_ADMIN.value})


def has_any_role(held: Iterable[str], wanted: Iterable[str]) -> bool:
    """The privilege check behind every elevated-role bypass."""
    return not frozenset(held).isdisjoint(wanted)


# ── Entities ──────────────────────────────────────────────────────────────


class EntityType(str, enum.Enum):
    """Closed set of content types that can be gated by groups."""

    EVENT = "event"
    ALBUM = "album"
    POST = "post"
    ALBUM_MEDIA = "album_media"


# Types that appear in the feed, in tie-break priority order.
FEED_ENTITY_TYPES: tuple[EntityType, ...] = (EntityType.EVENT, EntityType.ALBUM, EntityType.POST)


@dataclass(frozen=True)
class EntityRef:
    """Tagged reference to any content entity: ``(type, id)``."""

    type: EntityType
    id: str


class GroupGated(Protocol):
    """Anything with an id, a creator, a creation time and associated groups."""

    @property
    def id(self) -> str: ...

    @property
    def creator_id(self) -> str | None: ...

    @property
    def created_at(self) -> datetime: ...

    @property
    def group_ids(self) -> frozenset[str]: ...


@dataclass(frozen=True)
class ContentItem:
    """A content entity as the core sees it: metadata plus a type-specific payload."""

    type: EntityType
    id: str
    created_at: datetime
    creator_id: str | None
    group_ids: frozenset[str] = frozenset()
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.type, self.id)


@dataclass(frozen=True)
class InteractionStats:
    likes_count: int = 0
    comments_count: int = 0
    liked: bool = False


# ── Accounts ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Account:
    id: str
    mobile_number: str
    name: str | None
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Viewer:
    """Authorization context for one request: who is asking and what they belong to."""

    account_id: str
    roles: frozenset[str]
    group_ids: frozenset[str]

    @property
    def is_elevated(self) -> bool:
        return has_any_role(self.roles, ELEVATED_ROLES)


# ── OTP ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OtpChallenge:
    id: str
    mobile_number: str
    code: str
    attempts_used: int
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


# ── Tokens ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    roles: tuple[str, ...]


# ── Pagination ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)
