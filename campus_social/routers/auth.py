"""
Authentication endpoints – mobile OTP flow issuing access/refresh JWTs.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from campus_social.dependencies import (
    CurrentClaims,
    CurrentViewer,
    get_account_repository,
    get_membership_resolver,
    get_otp_service,
    get_token_service,
)
from campus_social.models import (
    ErrorResponse,
    MeResponse,
    OtpRequest,
    OtpRequestResponse,
    OtpVerifyRequest,
    RefreshRequest,
    TokenResponse,
)
from campus_social.rate_limit import AUTH_MESSAGE, AUTH_SCOPE, auth_limit, limiter
from campus_social.repositories.accounts import SqliteAccountRepository
from campus_social.services.membership import MembershipResolver
from campus_social.services.otp import OtpService
from campus_social.services.tokens import TokenService

router = APIRouter(prefix="/auth", tags=["auth"])

Otp = Annotated[OtpService, Depends(get_otp_service)]
Tokens = Annotated[TokenService, Depends(get_token_service)]
Resolver = Annotated[MembershipResolver, Depends(get_membership_resolver)]
Accounts = Annotated[SqliteAccountRepository, Depends(get_account_repository)]


def _token_response(tokens: TokenService, access_token: str, refresh_token: str) -> TokenResponse:
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=tokens.access_ttl_seconds,
    )


@router.post(
    "/request-otp",
    response_model=OtpRequestResponse,
    status_code=status.HTTP_202_ACCEPTED,
    operation_id="requestOtp",
    summary="Send a one-time code to the given mobile number",
    responses={429: {"model": ErrorResponse}},
)
@limiter.shared_limit(auth_limit, scope=AUTH_SCOPE, error_message=AUTH_MESSAGE)
async def request_otp(
    request: Request, response: Response, body: OtpRequest, otp: Otp
) -> OtpRequestResponse:
    """
    Generate a 4-digit code and hand it to the SMS sender.
    Any previous code for the number stops working.
    """
    await otp.request_challenge(body.mobile_number)
    return OtpRequestResponse(
        message="OTP sent successfully",
        expires_in_seconds=otp.ttl_seconds,
    )


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    operation_id="verifyOtp",
    summary="Exchange a valid code for an access/refresh token pair",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
@limiter.shared_limit(auth_limit, scope=AUTH_SCOPE, error_message=AUTH_MESSAGE)
async def verify_otp(
    request: Request,
    response: Response,
    body: OtpVerifyRequest,
    otp: Otp,
    tokens: Tokens,
    resolver: Resolver,
) -> TokenResponse:
    """
    Validate the code. On success the account is created if this is its
    first login, and a fresh token pair is returned.
    """
    account = await otp.verify(body.mobile_number, body.code)
    roles = await resolver.effective_roles(account.id)
    pair = tokens.issue(account.id, sorted(roles))
    return _token_response(tokens, pair.access_token, pair.refresh_token)


@router.post(
    "/refresh-token",
    response_model=TokenResponse,
    operation_id="refreshToken",
    summary="Trade a refresh token for a new token pair with current roles",
    responses={401: {"model": ErrorResponse}},
)
async def refresh_token(
    body: RefreshRequest, tokens: Tokens, accounts: Accounts, resolver: Resolver
) -> TokenResponse:
    pair = await tokens.refresh(body.refresh_token, accounts=accounts, resolver=resolver)
    return _token_response(tokens, pair.access_token, pair.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="logout",
    summary="End the session (the client discards its tokens)",
)
async def logout(current_claims: CurrentClaims) -> Response:
    # Tokens are stateless; nothing to invalidate server-side.
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/me",
    response_model=MeResponse,
    operation_id="getMe",
    summary="Get the authenticated account's roles and groups",
)
async def get_me(viewer: CurrentViewer, resolver: Resolver) -> MeResponse:
    group_types = await resolver.effective_group_types(viewer.account_id)
    return MeResponse(
        id=viewer.account_id,
        roles=sorted(viewer.roles),
        groups=sorted(viewer.group_ids),
        group_types=sorted(group_types),
    )
