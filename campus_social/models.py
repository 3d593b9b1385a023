"""Pydantic request/response schemas for the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from campus_social.domain import MOBILE_NUMBER_PATTERN, OTP_CODE_PATTERN, EntityType


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Auth ──────────────────────────────────────────────────────────────────


class OtpRequest(ApiModel):
    mobile_number: str = Field(..., pattern=MOBILE_NUMBER_PATTERN, description="E.164-style mobile number")


class OtpRequestResponse(ApiModel):
    message: str
    expires_in_seconds: int


class OtpVerifyRequest(ApiModel):
    mobile_number: str = Field(..., pattern=MOBILE_NUMBER_PATTERN)
    code: str = Field(..., pattern=OTP_CODE_PATTERN, description="4-digit one-time code")


class RefreshRequest(ApiModel):
    refresh_token: str = Field(..., min_length=1)


class TokenResponse(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class MeResponse(ApiModel):
    id: str
    roles: list[str]
    groups: list[str]
    group_types: list[str]


# ── Feed ──────────────────────────────────────────────────────────────────


class FeedItemOut(ApiModel):
    type: EntityType
    id: str
    created_at: datetime
    creator_id: str | None
    groups: list[str]
    data: dict[str, Any]
    likes_count: int = 0
    comments_count: int = 0
    liked: bool = False


class PaginationMeta(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class FeedResponse(ApiModel):
    items: list[FeedItemOut]
    pagination: PaginationMeta


# ── Misc ──────────────────────────────────────────────────────────────────


class HealthResponse(ApiModel):
    status: str
    version: str
    timestamp: datetime


class ErrorDetail(ApiModel):
    code: str
    message: str
    remaining_attempts: int | None = None
    retry_after: int | None = None


class ErrorResponse(ApiModel):
    error: ErrorDetail
