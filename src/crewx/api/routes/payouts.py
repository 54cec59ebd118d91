"""Withdrawal request endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from crewx.api.dependencies import AdminSession, CurrentSession, DbSession, WorkerSession
from crewx.api.schemas import ErrorResponse, PayoutCreate
from crewx.records import WithdrawalRecord
from crewx.services import views
from crewx.services.bookkeeping import BookkeepingService
from crewx.store import DataStore

router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.get("", response_model=list[WithdrawalRecord])
async def list_payouts(
    db: DbSession,
    current: CurrentSession,
    pending_only: Annotated[bool, Query(alias="pending")] = False,
) -> list[WithdrawalRecord]:
    """All requests for admins, own requests for workers, newest first."""
    store = DataStore(db)
    if current.is_admin:
        withdrawals = await store.withdrawals.get_all()
    else:
        withdrawals = await store.withdrawals.list_for_user(current.account_id)
    return views.pending_payouts(withdrawals) if pending_only else withdrawals


@router.post(
    "",
    response_model=WithdrawalRecord,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def request_payout(
    db: DbSession,
    current: WorkerSession,
    payload: PayoutCreate,
) -> WithdrawalRecord:
    """Reserve part of the caller's balance for withdrawal."""
    return await BookkeepingService(db).request_payout(current.account_id, payload.amount)


@router.post(
    "/{withdrawal_id}/approve",
    response_model=WithdrawalRecord,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_payout(
    db: DbSession,
    _: AdminSession,
    withdrawal_id: Annotated[UUID, Path()],
) -> WithdrawalRecord:
    return await BookkeepingService(db).resolve_payout(withdrawal_id, approve=True)


@router.post(
    "/{withdrawal_id}/reject",
    response_model=WithdrawalRecord,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_payout(
    db: DbSession,
    _: AdminSession,
    withdrawal_id: Annotated[UUID, Path()],
) -> WithdrawalRecord:
    """Reject a request and return the reserved amount to the worker."""
    return await BookkeepingService(db).resolve_payout(withdrawal_id, approve=False)
