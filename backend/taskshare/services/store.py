"""Storage adapters used by the enforcement layer.

  load_list_access / load_task_access   entity + owner id + the caller's own grant rows
  reload_list / reload_task             fully hydrated entity after a mutation
  find_user                             grantee lookup by id or email
  commit                                persist, surfacing failures as StorageError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.permissions import SharePermission
from taskshare.middleware.exceptions import NotFound, StorageError
from taskshare.models.task import Task, TaskShare
from taskshare.models.task_list import ListShare, TaskList
from taskshare.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class ListAccess:
    task_list: TaskList
    list_grant: SharePermission | None

    @property
    def owner_id(self) -> str:
        return self.task_list.owner_id


@dataclass
class TaskAccess:
    task: Task
    owner_id: str
    list_grant: SharePermission | None
    task_grant: SharePermission | None


# ── Loaders ──────────────────────────────────────────────────

async def _list_grant(
    db: AsyncSession, list_id: str, user_id: str
) -> SharePermission | None:
    return await db.scalar(
        select(ListShare.permission).where(
            ListShare.list_id == list_id, ListShare.user_id == user_id
        )
    )


async def _task_grant(
    db: AsyncSession, task_id: str, user_id: str
) -> SharePermission | None:
    return await db.scalar(
        select(TaskShare.permission).where(
            TaskShare.task_id == task_id, TaskShare.user_id == user_id
        )
    )


async def reload_list(db: AsyncSession, list_id: str) -> TaskList | None:
    result = await db.execute(
        select(TaskList)
        .where(TaskList.id == list_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def reload_task(db: AsyncSession, task_id: str) -> tuple[Task, str] | None:
    """Return (task, owner_id of its parent list), or None."""
    result = await db.execute(
        select(Task, TaskList.owner_id)
        .join(TaskList, TaskList.id == Task.list_id)
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1]


async def load_list_access(
    db: AsyncSession, list_id: str, caller_id: str
) -> ListAccess:
    """Load a list and the caller's own grant on it. Raises NotFound."""
    task_list = await reload_list(db, list_id)
    if task_list is None:
        raise NotFound("List", list_id)
    return ListAccess(
        task_list=task_list,
        list_grant=await _list_grant(db, list_id, caller_id),
    )


async def load_task_access(
    db: AsyncSession, task_id: str, caller_id: str
) -> TaskAccess:
    """Load a task, its list owner, and the caller's list + task grants."""
    loaded = await reload_task(db, task_id)
    if loaded is None:
        raise NotFound("Task", task_id)
    task, owner_id = loaded
    return TaskAccess(
        task=task,
        owner_id=owner_id,
        list_grant=await _list_grant(db, task.list_id, caller_id),
        task_grant=await _task_grant(db, task_id, caller_id),
    )


async def list_grantee_ids(db: AsyncSession, list_id: str) -> set[str]:
    result = await db.execute(
        select(ListShare.user_id).where(ListShare.list_id == list_id)
    )
    return set(result.scalars().all())


async def find_user(
    db: AsyncSession,
    *,
    user_id: str | None = None,
    email: str | None = None,
) -> User:
    """Look up a user by id or email. Raises NotFound."""
    if user_id is not None:
        stmt = select(User).where(User.id == user_id)
    else:
        stmt = select(User).where(User.email == email)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if user is None:
        raise NotFound("User", user_id or email or "")
    return user


# ── Writes ───────────────────────────────────────────────────

async def flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Flush failed: %s", exc)
        raise StorageError() from exc


async def commit(db: AsyncSession) -> None:
    """Commit the mutation so fan-out only ever announces persisted state."""
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Commit failed: %s", exc)
        raise StorageError() from exc
