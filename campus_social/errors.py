"""
Error taxonomy for the auth & visibility core.

Every error carries a stable machine-readable ``code`` and the HTTP status
it maps to at the boundary.  The exception handlers in ``campus_social.main``
turn them into ``{"error": {"code": ..., "message": ...}}`` bodies.
"""

from __future__ import annotations

from typing import Any


class CampusSocialError(Exception):
    """Base class for every error the core raises on purpose."""

    code: str = "error"
    status_code: int = 400
    message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(CampusSocialError):
    code = "validation_error"
    status_code = 400
    message = "Invalid request"


class RateLimited(CampusSocialError):
    code = "rate_limited"
    status_code = 429
    message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = max(1, int(retry_after))

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "retryAfter": self.retry_after}


# ── OTP ───────────────────────────────────────────────────────────────────


class OtpNotFound(CampusSocialError):
    code = "otp_not_found"
    status_code = 404
    message = "No active code for this number. Please request a new one."


class OtpExpired(CampusSocialError):
    code = "otp_expired"
    status_code = 410
    message = "Code expired. Please request a new one."


class InvalidCode(CampusSocialError):
    code = "invalid_code"
    status_code = 400
    message = "Invalid code"

    def __init__(self, remaining_attempts: int) -> None:
        super().__init__()
        self.remaining_attempts = remaining_attempts

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "remainingAttempts": self.remaining_attempts}


class OtpExhausted(CampusSocialError):
    code = "otp_exhausted"
    status_code = 423
    message = "Too many failed attempts. Please request a new code."


# ── Tokens ────────────────────────────────────────────────────────────────
# All token failures render identically so clients cannot tell tampering
# from natural expiry.

UNAUTHENTICATED_MESSAGE = "Session expired, please log in again"


class TokenError(CampusSocialError):
    code = "unauthenticated"
    status_code = 401
    message = UNAUTHENTICATED_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        return {"code": TokenError.code, "message": UNAUTHENTICATED_MESSAGE}


class InvalidToken(TokenError):
    pass


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class TokenExpired(TokenError):
    pass


# ── Authorization & lookup ────────────────────────────────────────────────


class Forbidden(CampusSocialError):
    code = "forbidden"
    status_code = 403
    message = "You do not have access to this resource"


class AccountDisabled(Forbidden):
    code = "account_disabled"
    message = "This account has been disabled"


class NotFound(CampusSocialError):
    code = "not_found"
    status_code = 404
    message = "Resource not found"


class FeedUnavailable(CampusSocialError):
    code = "feed_unavailable"
    status_code = 503
    message = "Feed is temporarily unavailable, please retry"
