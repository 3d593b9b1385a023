"""
OTP store & verifier.

Flow::

    challenge = await otp.request_challenge("+15551234567")   # code goes out via the sender
    account   = await otp.verify("+15551234567", "4821")

One challenge exists per mobile number; a new request replaces it.  Every
verify call spends an attempt *before* the code is compared, through a
conditional update in the repository, so concurrent guesses can never add
up to more than ``max_attempts`` comparisons.  A challenge that ran out of
attempts stays behind as a tombstone (answering ``OtpExhausted``) until a
new code is requested.  Challenges that expired more than ``purge_after``
ago, tombstones included, are swept on each new request.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import timedelta
from typing import Protocol
from uuid import uuid4

from campus_social import config
from campus_social.domain import (
    MOBILE_NUMBER_PATTERN,
    OTP_CODE_PATTERN,
    Account,
    Clock,
    OtpChallenge,
    mask_mobile,
    utcnow,
)
from campus_social.errors import (
    AccountDisabled,
    InvalidCode,
    OtpExhausted,
    OtpExpired,
    OtpNotFound,
    ValidationError,
)
from campus_social.repositories.base import AccountRepository, OtpRepository
from campus_social.services.rate_limiter import RateLimiter, RateLimitRule, otp_request_rule

logger = logging.getLogger(__name__)


def generate_code() -> str:
    """4-digit code, uniform over [1000, 9999)."""
    return str(1000 + secrets.randbelow(9999 - 1000))


def validate_mobile_number(mobile_number: str) -> str:
    if not re.fullmatch(MOBILE_NUMBER_PATTERN, mobile_number or ""):
        raise ValidationError("Valid mobile number is required")
    return mobile_number


class OtpSender(Protocol):
    """Delivers a code to the phone. SMS delivery itself lives outside this service."""

    async def send(self, mobile_number: str, code: str) -> None: ...


class LoggingOtpSender:
    """Development sender: writes the code to the log instead of texting it."""

    async def send(self, mobile_number: str, code: str) -> None:
        logger.info("OTP for %s: %s", mobile_number, code)


class OtpService:
    def __init__(
        self,
        otps: OtpRepository,
        accounts: AccountRepository,
        rate_limiter: RateLimiter,
        sender: OtpSender,
        *,
        ttl: timedelta = timedelta(seconds=config.OTP_TTL_SECONDS),
        max_attempts: int = config.OTP_MAX_ATTEMPTS,
        purge_after: timedelta = timedelta(seconds=config.OTP_PURGE_AFTER_SECONDS),
        request_rule: RateLimitRule | None = None,
        default_roles: tuple[str, ...] = (config.DEFAULT_ROLE,),
        clock: Clock = utcnow,
    ) -> None:
        self._otps = otps
        self._accounts = accounts
        self._rate_limiter = rate_limiter
        self._sender = sender
        self._ttl = ttl
        self._max_attempts = max_attempts
        self._purge_after = purge_after
        self._request_rule = request_rule or otp_request_rule()
        self._default_roles = default_roles
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    async def request_challenge(self, mobile_number: str) -> OtpChallenge:
        validate_mobile_number(mobile_number)
        await self._rate_limiter.hit(self._request_rule, mobile_number)

        now = self._clock()
        purged = await self._otps.purge_expired(now - self._purge_after)
        if purged:
            logger.debug("Purged %d stale OTP challenges", purged)

        challenge = OtpChallenge(
            id=str(uuid4()),
            mobile_number=mobile_number,
            code=generate_code(),
            attempts_used=0,
            expires_at=now + self._ttl,
            created_at=now,
        )
        await self._otps.replace(challenge)
        await self._sender.send(mobile_number, challenge.code)
        logger.info("Issued OTP challenge for %s", mask_mobile(mobile_number))
        return challenge

    async def verify(self, mobile_number: str, code: str) -> Account:
        validate_mobile_number(mobile_number)
        if not re.fullmatch(OTP_CODE_PATTERN, code or ""):
            raise ValidationError("Code must be 4 digits")

        challenge = await self._otps.get(mobile_number)
        if challenge is None:
            raise OtpNotFound()

        if challenge.is_expired(self._clock()):
            await self._otps.delete(challenge.id)
            raise OtpExpired()

        attempts = await self._otps.consume_attempt(challenge.id, self._max_attempts)
        if attempts is None:
            # Gone or superseded means not found; only our own spent
            # challenge is exhausted.
            current = await self._otps.get(mobile_number)
            if current is None or current.id != challenge.id:
                raise OtpNotFound()
            raise OtpExhausted()

        if not secrets.compare_digest(challenge.code, code):
            remaining = self._max_attempts - attempts
            logger.info(
                "Wrong OTP for %s (%d attempts left)", mask_mobile(mobile_number), remaining
            )
            raise InvalidCode(remaining)

        # Single use: only the caller that actually deletes the row wins.
        if not await self._otps.delete(challenge.id):
            raise OtpNotFound()

        account = await self._accounts.get_or_create(
            mobile_number, self._default_roles, self._clock()
        )
        if not account.is_active:
            logger.warning("Disabled account %s attempted login", account.id)
            raise AccountDisabled()
        return account
