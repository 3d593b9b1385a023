"""aiosqlite-backed OTP challenge store."""

from __future__ import annotations

from datetime import datetime

import aiosqlite

from campus_social.db import from_iso, iso
from campus_social.domain import OtpChallenge


def _row_to_challenge(row: aiosqlite.Row) -> OtpChallenge:
    return OtpChallenge(
        id=row["id"],
        mobile_number=row["mobile_number"],
        code=row["code"],
        attempts_used=row["attempts_used"],
        expires_at=from_iso(row["expires_at"]),
        created_at=from_iso(row["created_at"]),
    )


class SqliteOtpRepository:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def replace(self, challenge: OtpChallenge) -> None:
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO otp_challenges
                (mobile_number, id, code, attempts_used, expires_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                challenge.mobile_number,
                challenge.id,
                challenge.code,
                challenge.attempts_used,
                iso(challenge.expires_at),
                iso(challenge.created_at),
            ),
        )
        await self._conn.commit()

    async def get(self, mobile_number: str) -> OtpChallenge | None:
        async with self._conn.execute(
            "SELECT * FROM otp_challenges WHERE mobile_number = ?", (mobile_number,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_challenge(row) if row else None

    async def consume_attempt(self, challenge_id: str, max_attempts: int) -> int | None:
        # Stepped and drained in one call so no other task can commit mid-statement.
        rows = await self._conn.execute_fetchall(
            """
            UPDATE otp_challenges
            SET attempts_used = attempts_used + 1
            WHERE id = ? AND attempts_used < ?
            RETURNING attempts_used
            """,
            (challenge_id, max_attempts),
        )
        await self._conn.commit()
        return rows[0]["attempts_used"] if rows else None

    async def delete(self, challenge_id: str) -> bool:
        cur = await self._conn.execute(
            "DELETE FROM otp_challenges WHERE id = ?", (challenge_id,)
        )
        await self._conn.commit()
        return cur.rowcount > 0

    async def purge_expired(self, before: datetime) -> int:
        cur = await self._conn.execute(
            "DELETE FROM otp_challenges WHERE expires_at < ?", (iso(before),)
        )
        await self._conn.commit()
        return cur.rowcount
