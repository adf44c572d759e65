"""Task routes.

Route overview:
  POST   /                          create under a list (EDIT on the list)
  GET    /                          tasks in lists the caller owns
  GET    /shared                    tasks reachable through a list or task grant
  GET    /{task_id}                 VIEW
  PATCH  /{task_id}                 EDIT; moving to another list needs ADMIN (strict)
  DELETE /{task_id}                 ADMIN (strict)
  POST   /{task_id}/share           ADMIN (strict)
  PATCH  /{task_id}/share/{user_id} ADMIN (strict)
  DELETE /{task_id}/share/{user_id} ADMIN (strict), or the grantee leaving (204)
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.deps import get_current_user
from taskshare.database import get_db
from taskshare.models.user import User
from taskshare.realtime.hub import Hub, get_hub
from taskshare.schemas.common import ShareCreate, ShareUpdate
from taskshare.schemas.task import TaskCreate, TaskOut, TaskUpdate
from taskshare.services import tasks as task_service

router = APIRouter()


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await task_service.create_task(db, hub, user, body)


@router.get("/", response_model=list[TaskOut])
async def get_owned_tasks(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await task_service.get_owned_tasks(db, user)


@router.get("/shared", response_model=list[TaskOut])
async def get_shared_tasks(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await task_service.get_shared_tasks(db, user)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await task_service.get_task(db, user, task_id)


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await task_service.update_task(db, hub, user, task_id, body)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    deleted_id = await task_service.delete_task(db, hub, user, task_id)
    return {"id": deleted_id}


# ── Sharing ──────────────────────────────────────────────────

@router.post(
    "/{task_id}/share", response_model=TaskOut, status_code=status.HTTP_201_CREATED
)
async def share_task(
    task_id: str,
    body: ShareCreate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await task_service.share_task(db, hub, user, task_id, body)


@router.patch("/{task_id}/share/{user_id}", response_model=TaskOut)
async def update_task_share(
    task_id: str,
    user_id: str,
    body: ShareUpdate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await task_service.update_task_share(db, hub, user, task_id, user_id, body)


@router.delete("/{task_id}/share/{user_id}", response_model=TaskOut | None)
async def unshare_task(
    task_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    result = await task_service.unshare_task(db, hub, user, task_id, user_id)
    if result is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return result
