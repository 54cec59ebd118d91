"""Notification inbox endpoints for the signed-in account."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from crewx.api.dependencies import CurrentSession, DbSession
from crewx.api.schemas import ErrorResponse, MessageResponse
from crewx.exceptions import NotFoundError
from crewx.records import NotificationRecord
from crewx.services.session_manager import Session
from crewx.store import DataStore

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _require_own(store: DataStore, current: Session, notification_id: UUID) -> None:
    notification = await store.notifications.get(notification_id)
    if notification is None or notification.user_id != current.account_id:
        raise NotFoundError("Notification", notification_id)


@router.get("", response_model=list[NotificationRecord])
async def list_notifications(db: DbSession, current: CurrentSession) -> list[NotificationRecord]:
    """Newest first."""
    return await DataStore(db).notifications.list_for_user(current.account_id)


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_read(db: DbSession, current: CurrentSession) -> MessageResponse:
    count = await DataStore(db).notifications.mark_all_read(current.account_id)
    await db.commit()
    return MessageResponse(status="read", count=count)


@router.post(
    "/{notification_id}/read",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def mark_read(
    db: DbSession,
    current: CurrentSession,
    notification_id: Annotated[UUID, Path()],
) -> MessageResponse:
    store = DataStore(db)
    await _require_own(store, current, notification_id)
    await store.notifications.mark_read(notification_id)
    await db.commit()
    return MessageResponse(status="read", count=1)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_notification(
    db: DbSession,
    current: CurrentSession,
    notification_id: Annotated[UUID, Path()],
) -> MessageResponse:
    store = DataStore(db)
    await _require_own(store, current, notification_id)
    await store.notifications.delete(notification_id)
    await db.commit()
    return MessageResponse(status="deleted", count=1)
