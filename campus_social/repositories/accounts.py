"""
aiosqlite-backed accounts, roles and group memberships.

Besides the read side the services use, this module carries the small set
of provisioning writes admins (and the seed script) need.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import uuid4

import aiosqlite

from campus_social.db import from_iso, iso
from campus_social.domain import Account, mask_mobile

logger = logging.getLogger(__name__)


def _row_to_account(row: aiosqlite.Row) -> Account:
    return Account(
        id=row["id"],
        mobile_number=row["mobile_number"],
        name=row["name"],
        is_active=bool(row["is_active"]),
        created_at=from_iso(row["created_at"]),
    )


class SqliteAccountRepository:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ── Accounts ───────────────────────────────────────────────────────

    async def get(self, account_id: str) -> Account | None:
        async with self._conn.execute(
            "SELECT * FROM accounts WHERE id = ?", (account_id,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_account(row) if row else None

    async def get_by_mobile(self, mobile_number: str) -> Account | None:
        async with self._conn.execute(
            "SELECT * FROM accounts WHERE mobile_number = ?", (mobile_number,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_account(row) if row else None

    async def get_or_create(
        self, mobile_number: str, default_roles: Iterable[str], now: datetime
    ) -> Account:
        cur = await self._conn.execute(
            """
            INSERT INTO accounts (id, mobile_number, name, is_active, created_at)
            VALUES (?, ?, NULL, 1, ?)
            ON CONFLICT(mobile_number) DO NOTHING
            """,
            (str(uuid4()), mobile_number, iso(now)),
        )
        created = cur.rowcount > 0
        account = await self.get_by_mobile(mobile_number)
        if account is None:
            raise LookupError(f"Account for {mask_mobile(mobile_number)} vanished after upsert")
        if created:
            await self._conn.executemany(
                "INSERT OR IGNORE INTO account_roles (account_id, role_name) VALUES (?, ?)",
                [(account.id, role) for role in default_roles],
            )
            logger.info("Provisioned account %s for %s", account.id, mask_mobile(mobile_number))
        await self._conn.commit()
        return account

    async def create(
        self,
        mobile_number: str,
        *,
        name: str | None = None,
        roles: Iterable[str] = (),
        now: datetime,
    ) -> Account:
        """Admin provisioning: create an account with an explicit role set."""
        account_id = str(uuid4())
        await self._conn.execute(
            "INSERT INTO accounts (id, mobile_number, name, is_active, created_at) VALUES (?, ?, ?, 1, ?)",
            (account_id, mobile_number, name, iso(now)),
        )
        await self._conn.executemany(
            "INSERT INTO account_roles (account_id, role_name) VALUES (?, ?)",
            [(account_id, role) for role in roles],
        )
        await self._conn.commit()
        account = await self.get(account_id)
        if account is None:
            raise LookupError(f"Account {account_id} was not stored")
        return account

    async def set_active(self, account_id: str, active: bool) -> None:
        """Soft-disable (or re-enable) an account. Accounts are never deleted."""
        await self._conn.execute(
            "UPDATE accounts SET is_active = ? WHERE id = ?", (int(active), account_id)
        )
        await self._conn.commit()

    # ── Roles ──────────────────────────────────────────────────────────

    async def list_role_names(self, account_id: str) -> list[str]:
        async with self._conn.execute(
            "SELECT role_name FROM account_roles WHERE account_id = ? ORDER BY role_name",
            (account_id,),
        ) as cur:
            rows = await cur.fetchall()
        return [r["role_name"] for r in rows]

    async def grant_role(self, account_id: str, role_name: str) -> None:
        await self._conn.execute(
            "INSERT OR IGNORE INTO account_roles (account_id, role_name) VALUES (?, ?)",
            (account_id, role_name),
        )
        await self._conn.commit()

    async def revoke_role(self, account_id: str, role_name: str) -> None:
        await self._conn.execute(
            "DELETE FROM account_roles WHERE account_id = ? AND role_name = ?",
            (account_id, role_name),
        )
        await self._conn.commit()

    # ── Groups ─────────────────────────────────────────────────────────

    async def list_group_ids(self, account_id: str) -> list[str]:
        async with self._conn.execute(
            "SELECT group_id FROM memberships WHERE account_id = ?", (account_id,)
        ) as cur:
            rows = await cur.fetchall()
        return [r["group_id"] for r in rows]

    async def list_group_type_labels(self, account_id: str) -> list[str]:
        async with self._conn.execute(
            """
            SELECT DISTINCT gt.label
            FROM memberships m
            JOIN groups g ON g.id = m.group_id
            JOIN group_types gt ON gt.id = g.group_type_id
            WHERE m.account_id = ?
            """,
            (account_id,),
        ) as cur:
            rows = await cur.fetchall()
        return [r["label"] for r in rows]

    async def add_membership(self, account_id: str, group_id: str, now: datetime) -> None:
        await self._conn.execute(
            "INSERT OR IGNORE INTO memberships (account_id, group_id, joined_at) VALUES (?, ?, ?)",
            (account_id, group_id, iso(now)),
        )
        await self._conn.commit()

    async def remove_membership(self, account_id: str, group_id: str) -> None:
        await self._conn.execute(
            "DELETE FROM memberships WHERE account_id = ? AND group_id = ?",
            (account_id, group_id),
        )
        await self._conn.commit()
