import time
from typing import Annotated

import aiosqlite
from fastapi import Depends, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_social import db
from campus_social.domain import TokenClaims, Viewer
from campus_social.errors import AccountDisabled, InvalidToken
from campus_social.repositories.accounts import SqliteAccountRepository
from campus_social.repositories.content import SqliteContentRepository
from campus_social.repositories.otp import SqliteOtpRepository
from campus_social.repositories.rate_limits import SqliteRateLimitRepository
from campus_social.services.feed import DEFAULT_LIMIT, FeedAggregator, clamp_pagination
from campus_social.services.membership import MembershipResolver
from campus_social.services.otp import LoggingOtpSender, OtpSender, OtpService
from campus_social.services.rate_limiter import RateLimiter
from campus_social.services.tokens import TokenService


# ── Pagination ─────────────────────────────────────────────────────────────


class PaginationParams:
    """Out-of-range values are clamped rather than rejected."""

    def __init__(
        self,
        page: Annotated[int | None, Query(description="Page number (1-indexed)")] = 1,
        limit: Annotated[int | None, Query(description="Items per page (1–100)")] = DEFAULT_LIMIT,
    ):
        self.page, self.limit = clamp_pagination(page, limit)


# ── Storage & services ─────────────────────────────────────────────────────


def get_connection() -> aiosqlite.Connection:
    return db.get_db()


Connection = Annotated[aiosqlite.Connection, Depends(get_connection)]


def get_account_repository(conn: Connection) -> SqliteAccountRepository:
    return SqliteAccountRepository(conn)


def get_token_service() -> TokenService:
    return TokenService()


def get_otp_sender() -> OtpSender:
    return LoggingOtpSender()


def get_rate_limiter(conn: Connection) -> RateLimiter:
    return RateLimiter(SqliteRateLimitRepository(conn), clock=time.time)


def get_membership_resolver(
    accounts: Annotated[SqliteAccountRepository, Depends(get_account_repository)],
) -> MembershipResolver:
    return MembershipResolver(accounts)


def get_otp_service(
    conn: Connection,
    accounts: Annotated[SqliteAccountRepository, Depends(get_account_repository)],
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    sender: Annotated[OtpSender, Depends(get_otp_sender)],
) -> OtpService:
    return OtpService(SqliteOtpRepository(conn), accounts, rate_limiter, sender)


def get_feed_aggregator(conn: Connection) -> FeedAggregator:
    return FeedAggregator(SqliteContentRepository(conn))


# ── Bearer token / viewer ──────────────────────────────────────────────────

_bearer = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> TokenClaims:
    if credentials is None:
        raise InvalidToken()
    return tokens.verify_access(credentials.credentials)


async def get_current_viewer(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    accounts: Annotated[SqliteAccountRepository, Depends(get_account_repository)],
    resolver: Annotated[MembershipResolver, Depends(get_membership_resolver)],
) -> Viewer:
    """
    The account must still exist and be active; roles and groups are
    re-read from storage, not trusted from the token.
    """
    account = await accounts.get(claims.subject_id)
    if account is None:
        raise InvalidToken()
    if not account.is_active:
        raise AccountDisabled()
    return await resolver.resolve(account.id)


CurrentClaims = Annotated[TokenClaims, Depends(get_token_claims)]
CurrentViewer = Annotated[Viewer, Depends(get_current_viewer)]
