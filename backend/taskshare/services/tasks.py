"""Task operations behind the permission checks.

Tasks have two grant sources: the caller's grant on the parent list and
the caller's grant on the task itself. Deleting, moving and share
management run in strict mode, where only list-level authority counts
(see auth/resolution.py).

Fan-out goes to the parent list room plus the personal room of every
task-only collaborator (a task grantee who is neither the list owner nor
a list grantee), since those users never join the list room.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.middleware.exceptions import NoFieldsToUpdate
from taskshare.models.task import Task, TaskShare, TaskStatus
from taskshare.models.task_list import ListShare, TaskList
from taskshare.models.user import User
from taskshare.realtime import events
from taskshare.realtime.hub import Hub, list_room, user_room
from taskshare.schemas.common import ShareCreate, ShareUpdate
from taskshare.schemas.notification import NotificationOut
from taskshare.schemas.task import TaskCreate, TaskOut, TaskUpdate
from taskshare.services import notifications, shares
from taskshare.services.enforcement import require_list, require_task
from taskshare.services.store import (
    commit,
    find_user,
    flush,
    list_grantee_ids,
    load_list_access,
    load_task_access,
    reload_task,
)

logger = logging.getLogger(__name__)

_NOT_NULLABLE = {"name", "status", "priority", "list_id", "favorite"}


def apply_status(task: Task, status: TaskStatus) -> None:
    """Set status and keep completed/completed_at in step with it."""
    task.status = status
    if status == TaskStatus.COMPLETED:
        if not task.completed:
            task.completed = True
            task.completed_at = datetime.utcnow()
    else:
        task.completed = False
        task.completed_at = None


async def _hydrated(db: AsyncSession, task_id: str) -> TaskOut:
    task, owner_id = await reload_task(db, task_id)
    return TaskOut.from_model(task, owner_id)


async def _collaborator_rooms(db: AsyncSession, task: Task, owner_id: str) -> list[str]:
    """Personal rooms of task-only collaborators."""
    list_grantees = await list_grantee_ids(db, task.list_id)
    return [
        user_room(share.user_id)
        for share in task.shares
        if share.user_id != owner_id and share.user_id not in list_grantees
    ]


async def _task_rooms(db: AsyncSession, task: Task, owner_id: str) -> list[str]:
    return [list_room(task.list_id), *await _collaborator_rooms(db, task, owner_id)]


# ── Reads ────────────────────────────────────────────────────

async def get_owned_tasks(db: AsyncSession, caller: User) -> list[TaskOut]:
    result = await db.execute(
        select(Task, TaskList.owner_id)
        .join(TaskList, TaskList.id == Task.list_id)
        .where(TaskList.owner_id == caller.id)
        .order_by(Task.created_at)
    )
    return [TaskOut.from_model(task, owner_id) for task, owner_id in result.all()]


async def get_shared_tasks(db: AsyncSession, caller: User) -> list[TaskOut]:
    """Tasks reachable through a list grant or a task grant."""
    via_task = select(TaskShare.task_id).where(TaskShare.user_id == caller.id)
    via_list = select(ListShare.list_id).where(ListShare.user_id == caller.id)
    result = await db.execute(
        select(Task, TaskList.owner_id)
        .join(TaskList, TaskList.id == Task.list_id)
        .where(or_(Task.id.in_(via_task), Task.list_id.in_(via_list)))
        .order_by(Task.created_at)
    )
    return [TaskOut.from_model(task, owner_id) for task, owner_id in result.all()]


async def get_task(db: AsyncSession, caller: User, task_id: str) -> TaskOut:
    access = await load_task_access(db, task_id, caller.id)
    require_task(access, caller.id, "task.view")
    return TaskOut.from_model(access.task, access.owner_id)


# ── Create / update / delete ─────────────────────────────────

async def create_task(
    db: AsyncSession, hub: Hub, caller: User, body: TaskCreate
) -> TaskOut:
    target = await load_list_access(db, body.list_id, caller.id)
    require_list(target, caller.id, "task.create")

    task = Task(
        name=body.name,
        description=body.description,
        priority=body.priority,
        due_date=body.due_date,
        list_id=body.list_id,
        favorite=body.favorite,
    )
    apply_status(task, body.status)
    db.add(task)
    await flush(db)
    task_id = task.id
    await commit(db)

    out = await _hydrated(db, task_id)
    await hub.publish(list_room(body.list_id), events.TASK_CREATED, out.model_dump(mode="json"))
    return out


async def update_task(
    db: AsyncSession, hub: Hub, caller: User, task_id: str, body: TaskUpdate
) -> TaskOut:
    access = await load_task_access(db, task_id, caller.id)
    require_task(access, caller.id, "task.update")

    updates = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key not in _NOT_NULLABLE
    }
    if not updates:
        raise NoFieldsToUpdate()

    task = access.task
    source_list_id = task.list_id
    destination = updates.pop("list_id", None)
    moved = destination is not None and destination != source_list_id
    if moved:
        require_task(access, caller.id, "task.move")
        target = await load_list_access(db, destination, caller.id)
        require_list(target, caller.id, "task.create")
        task.list_id = destination
        # The new owner cannot also be a grantee.
        for share in [s for s in task.shares if s.user_id == target.owner_id]:
            task.shares.remove(share)

    status = updates.pop("status", None)
    if status is not None:
        apply_status(task, status)
    for key, value in updates.items():
        setattr(task, key, value)

    await flush(db)
    await commit(db)

    out = await _hydrated(db, task_id)
    payload = out.model_dump(mode="json")
    if moved:
        logger.info("Task %s moved from list %s to %s", task_id, source_list_id, destination)
        await hub.publish(list_room(source_list_id), events.TASK_DELETED, task_id)
        await hub.publish(list_room(destination), events.TASK_CREATED, payload)
        reloaded, owner_id = await reload_task(db, task_id)
        collaborators = await _collaborator_rooms(db, reloaded, owner_id)
        await hub.publish_many(collaborators, events.TASK_UPDATED, payload)
    else:
        reloaded, owner_id = await reload_task(db, task_id)
        await hub.publish_many(
            await _task_rooms(db, reloaded, owner_id), events.TASK_UPDATED, payload
        )
    return out


async def delete_task(
    db: AsyncSession, hub: Hub, caller: User, task_id: str
) -> str:
    access = await load_task_access(db, task_id, caller.id)
    require_task(access, caller.id, "task.delete")

    rooms = await _task_rooms(db, access.task, access.owner_id)
    await db.delete(access.task)
    await flush(db)
    await commit(db)
    logger.info("Task %s deleted by %s", task_id, caller.id)

    await hub.publish_many(rooms, events.TASK_DELETED, task_id)
    return task_id


# ── Sharing ──────────────────────────────────────────────────

async def share_task(
    db: AsyncSession, hub: Hub, caller: User, task_id: str, body: ShareCreate
) -> TaskOut:
    access = await load_task_access(db, task_id, caller.id)
    require_task(access, caller.id, "task.share")

    grantee = await find_user(db, user_id=body.user_id, email=body.email)
    grantee_id = grantee.id
    task_name = access.task.name
    await shares.grant(
        db,
        shares.TASK_SHARES,
        task_id,
        owner_id=access.owner_id,
        grantee_id=grantee_id,
        permission=body.permission,
        caller_id=caller.id,
    )
    notification = await notifications.notify_shared(
        db, grantee_id, caller, entity_kind="task", entity_name=task_name
    )
    await flush(db)
    notification_out = NotificationOut.model_validate(notification)
    await commit(db)

    out = await _hydrated(db, task_id)
    payload = out.model_dump(mode="json")
    reloaded, owner_id = await reload_task(db, task_id)
    await hub.publish(user_room(grantee_id), events.TASK_SHARED, payload)
    await hub.publish_many(
        [room for room in await _task_rooms(db, reloaded, owner_id) if room != user_room(grantee_id)],
        events.TASK_UPDATED,
        payload,
    )
    await hub.publish(
        user_room(grantee_id),
        events.NOTIFICATION_CREATED,
        notification_out.model_dump(mode="json"),
    )
    return out


async def update_task_share(
    db: AsyncSession,
    hub: Hub,
    caller: User,
    task_id: str,
    grantee_id: str,
    body: ShareUpdate,
) -> TaskOut:
    access = await load_task_access(db, task_id, caller.id)
    require_task(access, caller.id, "task.share")

    await shares.update_level(db, shares.TASK_SHARES, task_id, grantee_id, body.permission)
    await commit(db)

    out = await _hydrated(db, task_id)
    reloaded, owner_id = await reload_task(db, task_id)
    await hub.publish_many(
        await _task_rooms(db, reloaded, owner_id), events.TASK_UPDATED, out.model_dump(mode="json")
    )
    return out


async def unshare_task(
    db: AsyncSession,
    hub: Hub,
    caller: User,
    task_id: str,
    grantee_id: str,
) -> TaskOut | None:
    """Revoke a task grant; None when the caller left on their own."""
    access = await load_task_access(db, task_id, caller.id)

    leaving = grantee_id == caller.id
    if leaving:
        removed = await shares.revoke(
            db, shares.TASK_SHARES, task_id, grantee_id, missing_ok=True
        )
        if not removed:
            return None
    else:
        require_task(access, caller.id, "task.share")
        await shares.revoke(db, shares.TASK_SHARES, task_id, grantee_id)
    await commit(db)

    out = await _hydrated(db, task_id)
    reloaded, owner_id = await reload_task(db, task_id)
    await hub.publish(user_room(grantee_id), events.TASK_UNSHARED, task_id)
    await hub.publish_many(
        await _task_rooms(db, reloaded, owner_id), events.TASK_UPDATED, out.model_dump(mode="json")
    )
    return None if leaving else out
