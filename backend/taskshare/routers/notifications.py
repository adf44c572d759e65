"""Notification routes. Callers only ever see and touch their own rows."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.deps import get_current_user
from taskshare.database import get_db
from taskshare.models.user import User
from taskshare.schemas.notification import NotificationOut
from taskshare.services import notifications as notification_service

router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await notification_service.list_for_user(db, user.id)


@router.get("/unread-count")
async def unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"count": await notification_service.unread_count(db, user.id)}


@router.patch("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = await notification_service.mark_all_read(db, user.id)
    return {"updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await notification_service.mark_read(db, notification_id, user.id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await notification_service.delete(db, notification_id, user.id)
