"""aiosqlite-backed fixed-window counters."""

from __future__ import annotations

import aiosqlite


class SqliteRateLimitRepository:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def hit(self, key: str, now: float, window_seconds: float) -> tuple[int, float]:
        # Counters whose window has ended carry no state; drop them so the
        # table only holds keys seen within their current window.
        await self._conn.execute(
            "DELETE FROM rate_limit_counters WHERE window_end <= ?", (now,)
        )
        # Single upsert so concurrent hits on the same key can't lose updates.
        # SET expressions all see the pre-update row.
        rows = await self._conn.execute_fetchall(
            """
            INSERT INTO rate_limit_counters (key, window_start, window_end, count)
            VALUES (?, ?, ?, 1)
            ON CONFLICT(key) DO UPDATE SET
                count = CASE
                    WHEN rate_limit_counters.window_end <= excluded.window_start THEN 1
                    ELSE rate_limit_counters.count + 1
                END,
                window_start = CASE
                    WHEN rate_limit_counters.window_end <= excluded.window_start
                        THEN excluded.window_start
                    ELSE rate_limit_counters.window_start
                END,
                window_end = CASE
                    WHEN rate_limit_counters.window_end <= excluded.window_start
                        THEN excluded.window_end
                    ELSE rate_limit_counters.window_end
                END
            RETURNING count, window_start
            """,
            (key, now, now + window_seconds),
        )
        await self._conn.commit()
        row = rows[0]
        return row["count"], row["window_start"]

