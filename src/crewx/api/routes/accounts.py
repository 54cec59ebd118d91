"""Account administration and self-service endpoints."""

from __future__ import annotations

import base64
import binascii
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from crewx.api.dependencies import AdminSession, CurrentSession, DbSession, Sessions, Verifier
from crewx.api.schemas import (
    AccountResponse,
    ErrorResponse,
    ManualPaymentRequest,
    MessageResponse,
    ProfileUpdate,
    QrUploadRequest,
)
from crewx.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from crewx.records import BalanceEntryRecord
from crewx.services import views
from crewx.services.bookkeeping import BookkeepingService
from crewx.services.identity import IdentityService
from crewx.services.qr_verifier import upload_payment_qr
from crewx.store import DataStore

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountResponse])
async def list_accounts(db: DbSession, _: AdminSession) -> list[AccountResponse]:
    """List every worker account."""
    workers = await DataStore(db).accounts.list_workers()
    return [AccountResponse.of(a) for a in workers]


@router.get("/search", response_model=list[AccountResponse])
async def search_accounts(
    db: DbSession,
    _: AdminSession,
    q: Annotated[str, Query()] = "",
) -> list[AccountResponse]:
    """Search workers by name, email or phone."""
    accounts = await DataStore(db).accounts.get_all()
    return [AccountResponse.of(a) for a in views.search_staff(accounts, q)]


@router.patch(
    "/me",
    response_model=AccountResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_me(
    db: DbSession,
    current: CurrentSession,
    payload: ProfileUpdate,
) -> AccountResponse:
    changes = payload.model_dump(exclude_unset=True)
    account = await IdentityService(db).update_profile(current.account_id, changes)
    return AccountResponse.of(account)


@router.delete(
    "/{account_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_account(
    db: DbSession,
    current: AdminSession,
    sessions: Sessions,
    account_id: Annotated[UUID, Path()],
) -> MessageResponse:
    """Delete an account with its enrollments, payouts and notifications."""
    if account_id == current.account_id:
        raise PermissionDeniedError("Administrators cannot delete their own account")
    await BookkeepingService(db).delete_account(account_id)
    sessions.clear_account(account_id)
    return MessageResponse(status="deleted")


@router.post(
    "/me/qr",
    response_model=AccountResponse,
    responses={400: {"model": ErrorResponse}},
)
async def upload_qr(
    db: DbSession,
    current: CurrentSession,
    verifier: Verifier,
    payload: QrUploadRequest,
) -> AccountResponse:
    """Verify and store the caller's payment QR code."""
    data = payload.image
    mime_type = payload.mime_type
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        mime_type = header[len("data:"):].split(";", 1)[0] or mime_type
    try:
        image = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("image", "must be base64 encoded") from exc

    account = await upload_payment_qr(db, current.account_id, image, mime_type, verifier)
    return AccountResponse.of(account)


@router.post(
    "/{account_id}/payments",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def record_payment(
    db: DbSession,
    _: AdminSession,
    account_id: Annotated[UUID, Path()],
    payload: ManualPaymentRequest,
) -> AccountResponse:
    """Credit a worker, optionally settling one of their jobs."""
    account = await BookkeepingService(db).record_manual_payment(
        account_id, amount=payload.amount, job_id=payload.job_id
    )
    return AccountResponse.of(account)


@router.get(
    "/{account_id}/balance-history",
    response_model=list[BalanceEntryRecord],
    responses={404: {"model": ErrorResponse}},
)
async def balance_history(
    db: DbSession,
    current: CurrentSession,
    account_id: Annotated[UUID, Path()],
) -> list[BalanceEntryRecord]:
    if not current.is_admin and current.account_id != account_id:
        raise PermissionDeniedError("Cannot read another account's balance history")
    store = DataStore(db)
    if await store.accounts.get(account_id) is None:
        raise NotFoundError("Account", account_id)
    return await store.ledger.list_for_account(account_id)
