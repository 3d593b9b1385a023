"""
Storage interfaces consumed by the services.

Services depend on these protocols only, so tests can hand them in-memory
fakes while the application wires in the aiosqlite implementations.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from campus_social.domain import (
    Account,
    ContentItem,
    EntityRef,
    EntityType,
    InteractionStats,
    OtpChallenge,
)


class OtpRepository(Protocol):
    """One challenge per mobile number; every mutation is a single statement."""

    async def replace(self, challenge: OtpChallenge) -> None:
        """Store ``challenge``, superseding any previous one for the number."""
        ...

    async def get(self, mobile_number: str) -> OtpChallenge | None: ...

    async def consume_attempt(self, challenge_id: str, max_attempts: int) -> int | None:
        """
        Atomically bump ``attempts_used`` if it is still below ``max_attempts``.

        Returns the new count, or None when the challenge is gone or
        already exhausted.
        """
        ...

    async def delete(self, challenge_id: str) -> bool:
        """Delete the challenge; True only for the caller that removed it."""
        ...

    async def purge_expired(self, before: datetime) -> int:
        """Delete every challenge that expired before ``before``; returns the count."""
        ...


class RateLimitRepository(Protocol):
    async def hit(self, key: str, now: float, window_seconds: float) -> tuple[int, float]:
        """
        Atomically count one hit for ``key`` in the current fixed window.

        Starts a fresh window when the stored one has elapsed, and forgets
        every key whose window has ended.  Returns
        ``(count_in_window, window_start)``.
        """
        ...


class MembershipRepository(Protocol):
    async def list_role_names(self, account_id: str) -> list[str]: ...

    async def list_group_ids(self, account_id: str) -> list[str]: ...

    async def list_group_type_labels(self, account_id: str) -> list[str]: ...


class AccountRepository(MembershipRepository, Protocol):
    async def get(self, account_id: str) -> Account | None: ...

    async def get_by_mobile(self, mobile_number: str) -> Account | None: ...

    async def get_or_create(
        self, mobile_number: str, default_roles: Iterable[str], now: datetime
    ) -> Account:
        """Return the account for ``mobile_number``, provisioning it if needed."""
        ...


class ContentRepository(Protocol):
    async def list_recent(self, entity_type: EntityType) -> list[ContentItem]:
        """Feed candidates of one type with their group ids, newest first."""
        ...

    async def find(self, entity_type: EntityType, entity_id: str) -> ContentItem | None: ...

    async def find_group_ids(self, entity_type: EntityType, entity_id: str) -> frozenset[str]: ...

    async def interaction_stats(
        self, refs: list[EntityRef], account_id: str
    ) -> dict[EntityRef, InteractionStats]: ...
