"""Notifications: informational rows created when something is shared.

Nothing here feeds access control.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.middleware.exceptions import NotFound
from taskshare.models.notification import Notification, NotificationType
from taskshare.models.user import User


async def notify_shared(
    db: AsyncSession,
    recipient_id: str,
    sender: User,
    *,
    entity_kind: str,
    entity_name: str,
) -> Notification:
    """Queue a SHARED notification in the current session."""
    notification = Notification(
        user_id=recipient_id,
        type=NotificationType.SHARED,
        title=f"New {entity_kind} shared",
        message=f'{sender.name or "Someone"} shared the {entity_kind} "{entity_name}" with you',
        sender_name=sender.name,
    )
    db.add(notification)
    return notification


async def list_for_user(db: AsyncSession, user_id: str) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
    )
    return list(result.scalars().all())


async def unread_count(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
    ) or 0


async def _get_own(db: AsyncSession, notification_id: str, user_id: str) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFound("Notification", notification_id)
    return notification


async def mark_read(db: AsyncSession, notification_id: str, user_id: str) -> Notification:
    notification = await _get_own(db, notification_id, user_id)
    notification.read = True
    await db.flush()
    return notification


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
        .values(read=True)
    )
    return result.rowcount or 0


async def delete(db: AsyncSession, notification_id: str, user_id: str) -> None:
    notification = await _get_own(db, notification_id, user_id)
    await db.delete(notification)
    await db.flush()
