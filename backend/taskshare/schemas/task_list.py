"""Pydantic schemas for List CRUD and list shares."""

from datetime import datetime

from pydantic import BaseModel, Field

from taskshare.auth.permissions import SharePermission
from taskshare.models.task_list import TaskList
from taskshare.schemas.common import UserSummary
from taskshare.schemas.task import TaskOut


class ListShareOut(BaseModel):
    id: str
    list_id: str
    user_id: str
    permission: SharePermission
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


class ListOut(BaseModel):
    id: str
    name: str
    description: str | None
    owner_id: str
    owner: UserSummary | None = None
    created_at: datetime
    updated_at: datetime
    shares: list[ListShareOut] = []
    tasks: list[TaskOut] = []

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, task_list: TaskList) -> "ListOut":
        return cls(
            id=task_list.id,
            name=task_list.name,
            description=task_list.description,
            owner_id=task_list.owner_id,
            owner=UserSummary.model_validate(task_list.owner) if task_list.owner else None,
            created_at=task_list.created_at,
            updated_at=task_list.updated_at,
            shares=[ListShareOut.model_validate(s) for s in task_list.shares],
            tasks=[TaskOut.from_model(t, task_list.owner_id) for t in task_list.tasks],
        )


class ListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=100)


class ListUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=100)
