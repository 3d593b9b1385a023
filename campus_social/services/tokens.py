"""
Access / refresh token pairs as signed JWTs.

Both tokens carry ``sub`` and ``roles`` plus the standard ``iat``/``exp``
claims and are signed with the same secret; only their lifetimes differ.
Verification is a pure signature + expiry check with no store lookup.

There is no server-side revocation: logging out means the client discards
its tokens, and an old refresh token stays usable until it expires.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta

import jwt

from campus_social import config
from campus_social.domain import Clock, TokenClaims, TokenPair, utcnow
from campus_social.errors import (
    AccountDisabled,
    InvalidSignature,
    InvalidToken,
    MalformedToken,
    TokenExpired,
)
from campus_social.repositories.base import AccountRepository
from campus_social.services.membership import MembershipResolver

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class TokenService:
    def __init__(
        self,
        *,
        secret: str = config.JWT_SECRET,
        algorithm: str = config.JWT_ALGORITHM,
        access_ttl: timedelta = timedelta(minutes=config.JWT_ACCESS_EXPIRY_MINUTES),
        refresh_ttl: timedelta = timedelta(days=config.JWT_REFRESH_EXPIRY_DAYS),
        clock: Clock = utcnow,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._clock = clock

    @property
    def access_ttl_seconds(self) -> int:
        return int(self._access_ttl.total_seconds())

    def _encode(self, subject_id: str, roles: Sequence[str], ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            "sub": subject_id,
            "roles": sorted(roles),
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue(self, account_id: str, roles: Sequence[str]) -> TokenPair:
        return TokenPair(
            access_token=self._encode(account_id, roles, self._access_ttl),
            refresh_token=self._encode(account_id, roles, self._refresh_ttl),
        )

    def verify_access(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except jwt.InvalidSignatureError:
            raise InvalidSignature() from None
        except (jwt.DecodeError, jwt.MissingRequiredClaimError):
            raise MalformedToken() from None
        except jwt.PyJWTError:
            raise InvalidToken() from None

        subject_id = payload.get("sub")
        roles = payload.get("roles", [])
        if not isinstance(subject_id, str) or not subject_id:
            raise MalformedToken()
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise MalformedToken()
        return TokenClaims(subject_id=subject_id, roles=tuple(roles))

    async def refresh(
        self,
        refresh_token: str,
        *,
        accounts: AccountRepository,
        resolver: MembershipResolver,
    ) -> TokenPair:
        """Mint a new pair carrying the account's *current* roles."""
        claims = self.verify_access(refresh_token)

        account = await accounts.get(claims.subject_id)
        if account is None:
            logger.info("Refresh for unknown account %s rejected", claims.subject_id)
            raise InvalidToken()
        if not account.is_active:
            raise AccountDisabled()

        roles = await resolver.effective_roles(account.id)
        return self.issue(account.id, sorted(roles))
