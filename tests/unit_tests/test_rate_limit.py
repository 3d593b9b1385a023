"""Tests for the windowed login-path rate limiter."""

import asyncio

import pytest

from campus_social import config
from campus_social.errors import RateLimited
from campus_social.rate_limit import auth_limit
from campus_social.repositories.rate_limits import SqliteRateLimitRepository
from campus_social.services.rate_limiter import RateLimiter, RateLimitRule, otp_request_rule

RULE = RateLimitRule(scope="otp_request", limit=3, window_seconds=900)


class TestRateLimiter:
    async def test_requests_up_to_the_cap_pass(self, rate_limiter):
        statuses = [await rate_limiter.hit(RULE, "+15551234567") for _ in range(3)]
        assert [s.count for s in statuses] == [1, 2, 3]
        assert [s.remaining for s in statuses] == [2, 1, 0]

    async def test_request_past_the_cap_is_rejected(self, rate_limiter, clock):
        for _ in range(3):
            await rate_limiter.hit(RULE, "+15551234567")
        clock.advance(100)

        with pytest.raises(RateLimited) as exc_info:
            await rate_limiter.hit(RULE, "+15551234567")
        assert exc_info.value.retry_after == 800
        assert exc_info.value.status_code == 429

    async def test_window_resets_once_elapsed(self, rate_limiter, clock):
        for _ in range(3):
            await rate_limiter.hit(RULE, "k")
        with pytest.raises(RateLimited):
            await rate_limiter.hit(RULE, "k")

        clock.advance(900)
        status = await rate_limiter.hit(RULE, "k")
        assert status.count == 1

    async def test_window_is_fixed_not_sliding(self, rate_limiter, clock):
        await rate_limiter.hit(RULE, "k")
        clock.advance(600)
        await rate_limiter.hit(RULE, "k")
        await rate_limiter.hit(RULE, "k")
        clock.advance(299)

        with pytest.raises(RateLimited) as exc_info:
            await rate_limiter.hit(RULE, "k")
        assert exc_info.value.retry_after == 1

    async def test_keys_and_scopes_are_independent(self, rate_limiter):
        other_scope = RateLimitRule(scope="auth", limit=3, window_seconds=900)
        for _ in range(3):
            await rate_limiter.hit(RULE, "k")

        await rate_limiter.hit(RULE, "other-key")
        await rate_limiter.hit(other_scope, "k")

    def test_default_rules(self):
        assert otp_request_rule().scope == "otp_request"
        assert otp_request_rule().limit == 3
        assert auth_limit() == "20/900seconds"

    def test_auth_limit_follows_config(self, monkeypatch):
        monkeypatch.setattr(config, "AUTH_REQUEST_LIMIT", 5)
        assert auth_limit() == "5/900seconds"


class TestSqliteRateLimitRepository:
    async def test_counts_within_window(self, conn):
        repo = SqliteRateLimitRepository(conn)
        assert await repo.hit("k", 1000.0, 900) == (1, 1000.0)
        assert await repo.hit("k", 1010.0, 900) == (2, 1000.0)

    async def test_elapsed_window_restarts(self, conn):
        repo = SqliteRateLimitRepository(conn)
        await repo.hit("k", 1000.0, 900)
        await repo.hit("k", 1001.0, 900)
        assert await repo.hit("k", 1900.0, 900) == (1, 1900.0)

    async def test_concurrent_hits_never_exceed_cap(self, conn):
        limiter = RateLimiter(SqliteRateLimitRepository(conn), clock=lambda: 1000.0)

        results = await asyncio.gather(
            *(limiter.hit(RULE, "burst") for _ in range(10)),
            return_exceptions=True,
        )

        passed = [r for r in results if not isinstance(r, Exception)]
        assert len(passed) == 3
        assert sorted(r.count for r in passed) == [1, 2, 3]
        assert sum(isinstance(r, RateLimited) for r in results) == 7

    async def test_elapsed_windows_are_purged(self, conn):
        repo = SqliteRateLimitRepository(conn)
        for i in range(50):
            await repo.hit(f"otp_request:+1555000{i:04d}", 0.0, 900)

        await repo.hit("otp_request:+15559999999", 100000.0, 900)

        rows = await conn.execute_fetchall("SELECT key FROM rate_limit_counters")
        assert [r["key"] for r in rows] == ["otp_request:+15559999999"]

    async def test_live_windows_survive_purge(self, conn):
        repo = SqliteRateLimitRepository(conn)
        await repo.hit("a", 1000.0, 900)
        await repo.hit("b", 1500.0, 900)

        assert await repo.hit("a", 1899.0, 900) == (2, 1000.0)
        rows = await conn.execute_fetchall("SELECT key FROM rate_limit_counters ORDER BY key")
        assert [r["key"] for r in rows] == ["a", "b"]


class TestAuthEndpointLimit:
    """The per-address cap shared by /auth/request-otp and /auth/verify-otp."""

    @pytest.fixture()
    def limited_client(self, client, monkeypatch):
        """
        The default `client` fixture disables slowapi; switch it back on
        and start from empty counters.
        """
        from campus_social.rate_limit import limiter

        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()
        return client

    def test_shared_across_request_and_verify(self, limited_client):
        # Spread over many numbers so only the per-address cap applies
        for i in range(20):
            resp = limited_client.post("/auth/request-otp", json={"mobileNumber": f"+1555000{i:04d}"})
            assert resp.status_code == 202, f"Request {i + 1} should succeed"

        resp = limited_client.post("/auth/verify-otp", json={"mobileNumber": "+15551234567", "code": "1234"})
        assert resp.status_code == 429
        assert resp.json()["error"] == {
            "code": "rate_limited",
            "message": "Too many authentication attempts",
        }
        assert int(resp.headers["Retry-After"]) > 0

    def test_cap_is_read_from_config(self, limited_client, monkeypatch):
        monkeypatch.setattr(config, "AUTH_REQUEST_LIMIT", 2)
        for _ in range(2):
            resp = limited_client.post("/auth/verify-otp", json={"mobileNumber": "+15551234567", "code": "1234"})
            assert resp.status_code == 404

        resp = limited_client.post("/auth/verify-otp", json={"mobileNumber": "+15551234567", "code": "1234"})
        assert resp.status_code == 429

    def test_other_routes_not_limited_at_low_volume(self, limited_client):
        for _ in range(25):
            assert limited_client.get("/health").status_code == 200
