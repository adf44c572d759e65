"""List operations behind the permission checks.

Each mutating operation runs, in order:
  1. load the list with its owner and the caller's own grant (NotFound)
  2. resolve the caller's authority for the operation (Forbidden)
  3. share-specific checks (SelfGrant, DuplicateGrant, GrantNotFound)
  4. mutate and commit (StorageError)
  5. publish the result to the hub

Authentication happens earlier, in the route dependency.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.middleware.exceptions import NoFieldsToUpdate
from taskshare.models.task_list import ListShare, TaskList
from taskshare.models.user import User
from taskshare.realtime import events
from taskshare.realtime.hub import Hub, list_room, user_room
from taskshare.schemas.common import ShareCreate, ShareUpdate
from taskshare.schemas.notification import NotificationOut
from taskshare.schemas.task_list import ListCreate, ListOut, ListUpdate
from taskshare.services import notifications, shares
from taskshare.services.enforcement import require_list
from taskshare.services.store import (
    commit,
    find_user,
    flush,
    load_list_access,
    reload_list,
)

logger = logging.getLogger(__name__)

_NOT_NULLABLE = {"name"}


async def _hydrated(db: AsyncSession, list_id: str) -> ListOut:
    return ListOut.from_model(await reload_list(db, list_id))


# ── Reads ────────────────────────────────────────────────────

async def get_owned_lists(db: AsyncSession, caller: User) -> list[ListOut]:
    result = await db.execute(
        select(TaskList)
        .where(TaskList.owner_id == caller.id)
        .order_by(TaskList.created_at)
    )
    return [ListOut.from_model(lst) for lst in result.scalars().all()]


async def get_shared_lists(db: AsyncSession, caller: User) -> list[ListOut]:
    result = await db.execute(
        select(TaskList)
        .join(ListShare, ListShare.list_id == TaskList.id)
        .where(ListShare.user_id == caller.id)
        .order_by(TaskList.created_at)
    )
    return [ListOut.from_model(lst) for lst in result.scalars().all()]


async def get_list(db: AsyncSession, caller: User, list_id: str) -> ListOut:
    access = await load_list_access(db, list_id, caller.id)
    require_list(access, caller.id, "list.view")
    return ListOut.from_model(access.task_list)


# ── Create / update / delete ─────────────────────────────────

async def create_list(
    db: AsyncSession, hub: Hub, caller: User, body: ListCreate
) -> ListOut:
    task_list = TaskList(
        name=body.name,
        description=body.description,
        owner_id=caller.id,
    )
    db.add(task_list)
    await flush(db)
    list_id = task_list.id
    await commit(db)

    out = await _hydrated(db, list_id)
    await hub.publish(user_room(caller.id), events.LIST_CREATED, out.model_dump(mode="json"))
    return out


async def update_list(
    db: AsyncSession, hub: Hub, caller: User, list_id: str, body: ListUpdate
) -> ListOut:
    access = await load_list_access(db, list_id, caller.id)
    require_list(access, caller.id, "list.update")

    updates = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key not in _NOT_NULLABLE
    }
    if not updates:
        raise NoFieldsToUpdate()

    for key, value in updates.items():
        setattr(access.task_list, key, value)
    await flush(db)
    await commit(db)

    out = await _hydrated(db, list_id)
    await hub.publish(list_room(list_id), events.LIST_UPDATED, out.model_dump(mode="json"))
    return out


async def delete_list(
    db: AsyncSession, hub: Hub, caller: User, list_id: str
) -> str:
    """Delete a list; tasks and shares go with it (FK cascade)."""
    access = await load_list_access(db, list_id, caller.id)
    require_list(access, caller.id, "list.delete")

    # Task-only collaborators are not in the list room
    task_only: dict[str, list[str]] = {}
    list_grantees = {s.user_id for s in access.task_list.shares}
    for task in access.task_list.tasks:
        for share in task.shares:
            if share.user_id not in list_grantees:
                task_only.setdefault(share.user_id, []).append(task.id)

    await db.delete(access.task_list)
    await flush(db)
    await commit(db)
    logger.info("List %s deleted by %s", list_id, caller.id)

    await hub.publish(list_room(list_id), events.LIST_DELETED, list_id)
    for user_id, task_ids in task_only.items():
        for task_id in task_ids:
            await hub.publish(user_room(user_id), events.TASK_DELETED, task_id)
    return list_id


# ── Sharing ──────────────────────────────────────────────────

async def share_list(
    db: AsyncSession, hub: Hub, caller: User, list_id: str, body: ShareCreate
) -> ListOut:
    access = await load_list_access(db, list_id, caller.id)
    require_list(access, caller.id, "list.share")

    grantee = await find_user(db, user_id=body.user_id, email=body.email)
    grantee_id = grantee.id
    list_name = access.task_list.name
    await shares.grant(
        db,
        shares.LIST_SHARES,
        list_id,
        owner_id=access.owner_id,
        grantee_id=grantee_id,
        permission=body.permission,
        caller_id=caller.id,
    )
    notification = await notifications.notify_shared(
        db, grantee_id, caller, entity_kind="list", entity_name=list_name
    )
    await flush(db)
    notification_out = NotificationOut.model_validate(notification)
    await commit(db)

    out = await _hydrated(db, list_id)
    payload = out.model_dump(mode="json")
    await hub.publish(user_room(grantee_id), events.LIST_SHARED, payload)
    await hub.publish(list_room(list_id), events.LIST_UPDATED, payload)
    await hub.publish(
        user_room(grantee_id),
        events.NOTIFICATION_CREATED,
        notification_out.model_dump(mode="json"),
    )
    return out


async def update_list_share(
    db: AsyncSession,
    hub: Hub,
    caller: User,
    list_id: str,
    grantee_id: str,
    body: ShareUpdate,
) -> ListOut:
    access = await load_list_access(db, list_id, caller.id)
    require_list(access, caller.id, "list.share")

    await shares.update_level(db, shares.LIST_SHARES, list_id, grantee_id, body.permission)
    await commit(db)

    out = await _hydrated(db, list_id)
    await hub.publish(list_room(list_id), events.LIST_UPDATED, out.model_dump(mode="json"))
    return out


async def unshare_list(
    db: AsyncSession,
    hub: Hub,
    caller: User,
    list_id: str,
    grantee_id: str,
) -> ListOut | None:
    """Revoke a list grant.

    Returns the updated list, or None when the caller revoked their own
    grant (they can no longer see the list). Leaving is always allowed
    and is idempotent.
    """
    access = await load_list_access(db, list_id, caller.id)

    leaving = grantee_id == caller.id
    if leaving:
        removed = await shares.revoke(
            db, shares.LIST_SHARES, list_id, grantee_id, missing_ok=True
        )
        if not removed:
            return None
    else:
        require_list(access, caller.id, "list.share")
        await shares.revoke(db, shares.LIST_SHARES, list_id, grantee_id)
    await commit(db)

    await hub.evict_user(grantee_id, list_room(list_id))
    out = await _hydrated(db, list_id)
    await hub.publish(user_room(grantee_id), events.LIST_UNSHARED, list_id)
    await hub.publish(list_room(list_id), events.LIST_UPDATED, out.model_dump(mode="json"))
    return None if leaving else out
