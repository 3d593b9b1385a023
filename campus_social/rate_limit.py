"""
Rate limiting configuration using slowapi.

Two tiers, both keyed on client IP:
  • auth    – AUTH_REQUEST_LIMIT per window, shared by /auth/request-otp
              and /auth/verify-otp (prevents brute-force and SMS spam)
  • default – API_RATE_LIMIT on every route through ``SlowAPIMiddleware``

The per-mobile-number cap on issued codes is not an IP limit and is
counted by ``campus_social.services.rate_limiter`` instead.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from campus_social import config
from campus_social.errors import RateLimited

limiter = Limiter(key_func=get_remote_address, default_limits=[config.API_RATE_LIMIT], headers_enabled=True)

AUTH_SCOPE = "auth"
AUTH_MESSAGE = "Too many authentication attempts"


def auth_limit() -> str:
    """Read at request time so the cap stays configurable."""
    return f"{config.AUTH_REQUEST_LIMIT}/{config.RATE_LIMIT_WINDOW_SECONDS}seconds"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi rejections in the same error shape as the rest of the API."""
    message = exc.limit.error_message or RateLimited.message
    response = JSONResponse(
        status_code=429,
        content={"error": {"code": RateLimited.code, "message": message}},
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
