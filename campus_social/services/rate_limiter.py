"""
Windowed request counters for the login path.

The ``otp_request`` rule caps how many codes can be issued per mobile
number.  It keys on a value from the request body, so it lives here rather
than in the slowapi limiter (see ``campus_social.rate_limit``).

Windows are fixed and only reset once they elapse; a successful login
never clears a window early.  The counter update is a single atomic
repository call, so concurrent requests for the same key can't slip past
the cap.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from campus_social import config
from campus_social.errors import RateLimited
from campus_social.repositories.base import RateLimitRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    scope: str
    limit: int
    window_seconds: int
    message: str = "Too many requests, please try again later"


@dataclass(frozen=True)
class RateLimitStatus:
    count: int
    limit: int
    retry_after: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


def otp_request_rule() -> RateLimitRule:
    return RateLimitRule(
        scope="otp_request",
        limit=config.OTP_REQUEST_LIMIT,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        message="Too many code requests, please try again later",
    )


class RateLimiter:
    def __init__(
        self,
        repo: RateLimitRepository,
        *,
        clock: Callable[[], float],
    ) -> None:
        self._repo = repo
        self._clock = clock

    async def hit(self, rule: RateLimitRule, key: str) -> RateLimitStatus:
        """Count one request for ``key`` under ``rule``; raise RateLimited past the cap."""
        now = self._clock()
        count, window_start = await self._repo.hit(f"{rule.scope}:{key}", now, rule.window_seconds)
        retry_after = max(1, math.ceil(window_start + rule.window_seconds - now))

        if count > rule.limit:
            logger.warning(
                "Rate limit hit for scope=%s (%d/%d), retry in %ds",
                rule.scope, count, rule.limit, retry_after,
            )
            raise RateLimited(retry_after, rule.message)

        return RateLimitStatus(count=count, limit=rule.limit, retry_after=retry_after)
