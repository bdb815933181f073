"""Notification inbox endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    Envelope,
    ErrorResponse,
    NotificationList,
    NotificationResponse,
)
from nomina_engine.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Envelope[NotificationList])
async def list_notifications(
    db: DbSession,
    user: CurrentUser,
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
) -> Envelope[NotificationList]:
    service = NotificationService(db)
    items = await service.list_for_user(user, unread_only=unread_only)
    unread = await service.count_unread(user)
    return Envelope[NotificationList](
        data=NotificationList(
            items=[NotificationResponse.model_validate(n) for n in items],
            unread_count=unread,
        )
    )


@router.post("/read-all", response_model=Envelope[dict[str, int]])
async def mark_all_read(db: DbSession, user: CurrentUser) -> Envelope[dict[str, int]]:
    updated = await NotificationService(db).mark_all_read(user)
    await db.commit()
    return Envelope[dict[str, int]](data={"updated": updated})


@router.post(
    "/{notification_id}/read",
    response_model=Envelope[NotificationResponse],
    responses={404: {"model": ErrorResponse}},
)
async def mark_read(
    db: DbSession,
    user: CurrentUser,
    notification_id: Annotated[UUID, Path()],
) -> Envelope[NotificationResponse]:
    notification = await NotificationService(db).mark_read(user, notification_id)
    await db.commit()
    return Envelope[NotificationResponse](data=NotificationResponse.model_validate(notification))
