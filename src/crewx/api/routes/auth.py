"""Sign-in, sign-out and onboarding endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from crewx.api.dependencies import CurrentSession, DbSession, Sessions
from crewx.api.schemas import (
    AccountResponse,
    AdminLoginRequest,
    ErrorResponse,
    ExternalLoginRequest,
    MessageResponse,
    OnboardingRequest,
    SessionResponse,
)
from crewx.exceptions import AuthenticationError
from crewx.services.identity import IdentityService
from crewx.store import DataStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/external",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def external_login(
    db: DbSession,
    sessions: Sessions,
    payload: ExternalLoginRequest,
) -> SessionResponse:
    """Start a session for an identity verified by the external provider."""
    result = await IdentityService(db).sync_external_identity(
        payload.email, payload.display_name, payload.external_id
    )
    session = sessions.start(result.account)
    return SessionResponse(
        token=session.token,
        account=AccountResponse.of(result.account),
        needs_onboarding=result.needs_onboarding,
    )


@router.post(
    "/admin",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse}},
)
async def admin_login(
    db: DbSession,
    sessions: Sessions,
    payload: AdminLoginRequest,
) -> SessionResponse:
    """Start an admin session from email and password."""
    account = await IdentityService(db).admin_login(payload.email, payload.password)
    session = sessions.start(account)
    return SessionResponse(token=session.token, account=AccountResponse.of(account))


@router.post("/logout", response_model=MessageResponse)
async def logout(current: CurrentSession, sessions: Sessions) -> MessageResponse:
    sessions.clear(current.token)
    return MessageResponse(status="signed_out")


@router.get(
    "/me",
    response_model=AccountResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(db: DbSession, current: CurrentSession, sessions: Sessions) -> AccountResponse:
    """Return the signed-in account as currently stored."""
    account = await DataStore(db).accounts.get(current.account_id)
    if account is None:
        sessions.clear(current.token)
        raise AuthenticationError("Account no longer exists")
    return AccountResponse.of(account)


@router.post(
    "/onboarding",
    response_model=AccountResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}},
)
async def onboarding(
    db: DbSession,
    current: CurrentSession,
    payload: OnboardingRequest,
) -> AccountResponse:
    """Save the extended worker profile collected after first sign-in."""
    account = await IdentityService(db).complete_onboarding(
        current.account_id,
        name=payload.name,
        phone=payload.phone,
        age=payload.age,
        place=payload.place,
        experience=payload.experience,
    )
    return AccountResponse.of(account)
