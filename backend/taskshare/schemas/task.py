"""Pydantic schemas for Task CRUD and task shares."""

from datetime import datetime

from pydantic import BaseModel, Field

from taskshare.auth.permissions import SharePermission
from taskshare.models.task import Task, TaskPriority, TaskStatus
from taskshare.schemas.common import UserSummary


class TaskShareOut(BaseModel):
    id: str
    task_id: str
    user_id: str
    permission: SharePermission
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


class TaskOut(BaseModel):
    id: str
    name: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None
    list_id: str
    # Effective owner: the parent list's owner
    owner_id: str | None = None
    favorite: bool
    completed: bool
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    shares: list[TaskShareOut] = []

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, task: Task, owner_id: str) -> "TaskOut":
        return cls.model_validate(task).model_copy(update={"owner_id": owner_id})


class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=100)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    list_id: str
    due_date: datetime | None = None
    favorite: bool = False


class TaskUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=100)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    list_id: str | None = None
    due_date: datetime | None = None
    favorite: bool | None = None
