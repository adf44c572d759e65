"""List routes.

Route overview:
  POST   /                          create (caller becomes owner)
  GET    /                          lists the caller owns
  GET    /shared                    lists shared with the caller
  GET    /{list_id}                 VIEW
  PATCH  /{list_id}                 EDIT
  DELETE /{list_id}                 ADMIN
  POST   /{list_id}/share           ADMIN, grant a user access
  PATCH  /{list_id}/share/{user_id} ADMIN, change a grant's level
  DELETE /{list_id}/share/{user_id} ADMIN, or the grantee leaving (204)
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.deps import get_current_user
from taskshare.database import get_db
from taskshare.models.user import User
from taskshare.realtime.hub import Hub, get_hub
from taskshare.schemas.common import ShareCreate, ShareUpdate
from taskshare.schemas.task_list import ListCreate, ListOut, ListUpdate
from taskshare.services import lists as list_service

router = APIRouter()


@router.post("/", response_model=ListOut, status_code=status.HTTP_201_CREATED)
async def create_list(
    body: ListCreate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await list_service.create_list(db, hub, user, body)


@router.get("/", response_model=list[ListOut])
async def get_owned_lists(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await list_service.get_owned_lists(db, user)


@router.get("/shared", response_model=list[ListOut])
async def get_shared_lists(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await list_service.get_shared_lists(db, user)


@router.get("/{list_id}", response_model=ListOut)
async def get_list(
    list_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await list_service.get_list(db, user, list_id)


@router.patch("/{list_id}", response_model=ListOut)
async def update_list(
    list_id: str,
    body: ListUpdate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await list_service.update_list(db, hub, user, list_id, body)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    deleted_id = await list_service.delete_list(db, hub, user, list_id)
    return {"id": deleted_id}


# ── Sharing ──────────────────────────────────────────────────

@router.post(
    "/{list_id}/share", response_model=ListOut, status_code=status.HTTP_201_CREATED
)
async def share_list(
    list_id: str,
    body: ShareCreate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await list_service.share_list(db, hub, user, list_id, body)


@router.patch("/{list_id}/share/{user_id}", response_model=ListOut)
async def update_list_share(
    list_id: str,
    user_id: str,
    body: ShareUpdate,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    return await list_service.update_list_share(db, hub, user, list_id, user_id, body)


@router.delete("/{list_id}/share/{user_id}", response_model=ListOut | None)
async def unshare_list(
    list_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    hub: Hub = Depends(get_hub),
    user: User = Depends(get_current_user),
):
    result = await list_service.unshare_list(db, hub, user, list_id, user_id)
    if result is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return result
