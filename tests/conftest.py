"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • an OTP sender that records codes instead of logging them
  • the blanket slowapi limit switched off

Rows the API tests need are written through a second connection to the
same database file (the ``run_db`` fixture), so the app's own connection
and event loop are never touched from the test thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiosqlite
import pytest
from fastapi.testclient import TestClient

from campus_social import config, db
from campus_social.dependencies import get_otp_sender
from campus_social.main import app
from campus_social.services.rate_limiter import RateLimiter
from tests.mocks.models import FakeClock
from tests.mocks.repositories import (
    CapturingOtpSender,
    InMemoryAccountRepository,
    InMemoryOtpRepository,
    InMemoryRateLimitRepository,
)

T = TypeVar("T")


# ── Helpers ────────────────────────────────────────────────────────────────


def _run_db(fn: Callable[[aiosqlite.Connection], Awaitable[T]]) -> T:
    """Run ``fn`` against the test database on a short-lived connection."""

    async def _run() -> T:
        conn = await db.connect(config.DB_PATH)
        try:
            return await fn(conn)
        finally:
            await conn.close()

    return asyncio.run(_run())


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """Point the app at a temp database and disable the blanket rate limit."""
    monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "test.db"))

    from campus_social.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def otp_sender() -> CapturingOtpSender:
    return CapturingOtpSender()


@pytest.fixture()
def client(_test_env, otp_sender: CapturingOtpSender) -> TestClient:
    """
    FastAPI TestClient against a fresh temp DB.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    app.dependency_overrides[get_otp_sender] = lambda: otp_sender

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def run_db(_test_env) -> Callable[[Callable[[aiosqlite.Connection], Awaitable[T]]], T]:
    """Helper for writing rows to the temp database outside the app."""
    return _run_db


@pytest.fixture()
async def conn(tmp_path) -> aiosqlite.Connection:
    """Bare aiosqlite connection with the schema applied, for repository tests."""
    connection = await db.connect(str(tmp_path / "repo.db"))
    yield connection
    await connection.close()


# ── In-memory service wiring ───────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def otp_repo() -> InMemoryOtpRepository:
    return InMemoryOtpRepository()


@pytest.fixture()
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture()
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(InMemoryRateLimitRepository(), clock=clock.timestamp)
