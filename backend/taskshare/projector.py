"""Accessible-set projector: a pure reducer over a cached entity snapshot.

The client keeps one immutable `CacheSnapshot` of every list and task it
has been sent. Each incoming frame (`{"event": ..., "data": ...}`, the
same shape the hub publishes) goes through `reduce()` to produce the next
snapshot, and `project()` derives what a given user can see from it:

  owned_lists / shared_lists     lists owned by the user / granted to them
  owned_tasks / shared_tasks     same for tasks (list grant or task grant)
  list_permissions               effective level per accessible list
  task_permissions               effective level per accessible task
  accessible_list_ids            the set announced back to the hub

Effective task level: ADMIN for the owner, otherwise the stronger of the
list grant and the task grant. This is the non-strict resolution; the
projector never applies strict mode.

`reduce()` knows nothing about the viewer. Revocation events that cannot
be interpreted without one (task:unshared for a task still reachable via
its list) leave the row in place and let `project()` decide visibility.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel

from taskshare.auth.permissions import SharePermission, strongest
from taskshare.realtime import events
from taskshare.schemas.task import TaskOut
from taskshare.schemas.task_list import ListOut

CACHE_LOADED = "cache:loaded"


class CacheSnapshot(BaseModel):
    """Lists and tasks keyed by id. Never mutated; reduce() returns a new one."""

    lists: dict[str, ListOut] = {}
    tasks: dict[str, TaskOut] = {}
    version: int = 0

    model_config = {"frozen": True}


class AccessibleSet(BaseModel):
    owned_lists: tuple[ListOut, ...] = ()
    shared_lists: tuple[ListOut, ...] = ()
    owned_tasks: tuple[TaskOut, ...] = ()
    shared_tasks: tuple[TaskOut, ...] = ()
    list_permissions: dict[str, SharePermission] = {}
    task_permissions: dict[str, SharePermission] = {}

    model_config = {"frozen": True}

    @property
    def accessible_lists(self) -> tuple[ListOut, ...]:
        return self.owned_lists + self.shared_lists

    @property
    def accessible_tasks(self) -> tuple[TaskOut, ...]:
        return self.owned_tasks + self.shared_tasks

    @property
    def accessible_list_ids(self) -> frozenset[str]:
        return frozenset(lst.id for lst in self.accessible_lists)


# ── Reducer ──────────────────────────────────────────────────

def _strip_tasks(task_list: ListOut) -> ListOut:
    return task_list.model_copy(update={"tasks": []})


def _with_owner(task: TaskOut, task_list: ListOut) -> TaskOut:
    if task.owner_id is not None:
        return task
    return task.model_copy(update={"owner_id": task_list.owner_id})


def _put_list(
    lists: dict[str, ListOut], tasks: dict[str, TaskOut], task_list: ListOut
) -> None:
    """Store a list and replace its cached tasks with the ones it carries."""
    lists[task_list.id] = _strip_tasks(task_list)
    for task_id in [t.id for t in tasks.values() if t.list_id == task_list.id]:
        del tasks[task_id]
    for task in task_list.tasks:
        tasks[task.id] = _with_owner(task, task_list)


def _drop_list_tasks(tasks: dict[str, TaskOut], list_id: str) -> None:
    for task_id in [t.id for t in tasks.values() if t.list_id == list_id]:
        del tasks[task_id]


def _loaded(data: Mapping[str, Any]) -> tuple[dict[str, ListOut], dict[str, TaskOut]]:
    lists: dict[str, ListOut] = {}
    tasks: dict[str, TaskOut] = {}
    for raw in data.get("lists", ()):
        _put_list(lists, tasks, ListOut.model_validate(raw))
    for raw in data.get("tasks", ()):
        task = TaskOut.model_validate(raw)
        tasks[task.id] = task
    return lists, tasks


def reduce(snapshot: CacheSnapshot, event: Mapping[str, Any]) -> CacheSnapshot:
    """Apply one frame to a snapshot and return the next snapshot.

    Unknown events and events that change nothing the projector reads
    (notification:created) return the input snapshot unchanged.
    """
    name = event.get("event")
    data = event.get("data")

    if name == CACHE_LOADED:
        lists, tasks = _loaded(data or {})
        return CacheSnapshot(lists=lists, tasks=tasks, version=snapshot.version + 1)

    lists = dict(snapshot.lists)
    tasks = dict(snapshot.tasks)

    if name in (events.LIST_CREATED, events.LIST_UPDATED, events.LIST_SHARED):
        _put_list(lists, tasks, ListOut.model_validate(data))
    elif name == events.LIST_DELETED:
        lists.pop(data, None)
        _drop_list_tasks(tasks, data)
    elif name == events.LIST_UNSHARED:
        # Tasks stay: a task grant may still reach them
        lists.pop(data, None)
    elif name in (events.TASK_CREATED, events.TASK_UPDATED, events.TASK_SHARED):
        task = TaskOut.model_validate(data)
        parent = lists.get(task.list_id)
        tasks[task.id] = _with_owner(task, parent) if parent else task
    elif name == events.TASK_DELETED:
        tasks.pop(data, None)
    elif name == events.TASK_UNSHARED:
        task = tasks.get(data)
        if task is not None and task.list_id not in lists:
            del tasks[data]
    else:
        return snapshot

    return CacheSnapshot(lists=lists, tasks=tasks, version=snapshot.version + 1)


# ── Projection ───────────────────────────────────────────────

def _list_grant(task_list: ListOut | None, user_id: str) -> SharePermission | None:
    if task_list is None:
        return None
    for share in task_list.shares:
        if share.user_id == user_id:
            return share.permission
    return None


def _task_grant(task: TaskOut, user_id: str) -> SharePermission | None:
    for share in task.shares:
        if share.user_id == user_id:
            return share.permission
    return None


def project(snapshot: CacheSnapshot, user_id: str) -> AccessibleSet:
    """Derive what `user_id` can see, and at which level, from a snapshot."""
    owned_lists: list[ListOut] = []
    shared_lists: list[ListOut] = []
    list_permissions: dict[str, SharePermission] = {}

    for task_list in sorted(snapshot.lists.values(), key=lambda lst: lst.created_at):
        if task_list.owner_id == user_id:
            owned_lists.append(task_list)
            list_permissions[task_list.id] = SharePermission.ADMIN
            continue
        grant = _list_grant(task_list, user_id)
        if grant is not None:
            shared_lists.append(task_list)
            list_permissions[task_list.id] = grant

    owned_tasks: list[TaskOut] = []
    shared_tasks: list[TaskOut] = []
    task_permissions: dict[str, SharePermission] = {}

    for task in sorted(snapshot.tasks.values(), key=lambda t: t.created_at):
        parent = snapshot.lists.get(task.list_id)
        owner_id = task.owner_id or (parent.owner_id if parent else None)
        if owner_id == user_id:
            owned_tasks.append(task)
            task_permissions[task.id] = SharePermission.ADMIN
            continue
        effective = strongest(_list_grant(parent, user_id), _task_grant(task, user_id))
        if effective is not None:
            shared_tasks.append(task)
            task_permissions[task.id] = effective

    return AccessibleSet(
        owned_lists=tuple(owned_lists),
        shared_lists=tuple(shared_lists),
        owned_tasks=tuple(owned_tasks),
        shared_tasks=tuple(shared_tasks),
        list_permissions=list_permissions,
        task_permissions=task_permissions,
    )
