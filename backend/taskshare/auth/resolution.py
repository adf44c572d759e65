"""Permission resolution: may this caller act on this list or task?

Authority comes from three sources, checked in order:

  1. ownership of the list (or of the task's parent list)
  2. the caller's list-level grant
  3. the caller's task-level grant (task operations only, skipped in strict mode)

Both resolvers are pure functions over ids and levels. The caller loads
the entity and the caller's own grant rows (see services/store.py) and
passes the levels in; nothing here touches storage.

Strict mode is used for task operations that remove the task from its
list or change who can reach it (delete, share management). Only
list-level authority counts there: a collaborator holding ADMIN on a
single task can manage the task's fields but cannot delete it.
"""

from __future__ import annotations

import enum

from taskshare.auth.permissions import SharePermission, satisfies


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY_INSUFFICIENT = "deny_insufficient"  # a grant applied but was too weak
    DENY_NONE = "deny_none"                  # no applicable grant at all

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


def _check_grant(
    grant: SharePermission | None,
    required: SharePermission,
) -> Decision:
    if grant is None:
        return Decision.DENY_NONE
    if satisfies(grant, required):
        return Decision.ALLOW
    return Decision.DENY_INSUFFICIENT


def _worst(*decisions: Decision) -> Decision:
    """Combine denials; any insufficient grant outranks 'no grant'."""
    if Decision.DENY_INSUFFICIENT in decisions:
        return Decision.DENY_INSUFFICIENT
    return Decision.DENY_NONE


def resolve_list(
    caller_id: str,
    owner_id: str,
    list_grant: SharePermission | None,
    required: SharePermission,
) -> Decision:
    """Resolve a list operation: owner, else list grant, else deny."""
    if caller_id == owner_id:
        return Decision.ALLOW
    return _check_grant(list_grant, required)


def resolve_task(
    caller_id: str,
    owner_id: str,
    list_grant: SharePermission | None,
    task_grant: SharePermission | None,
    required: SharePermission,
    strict: bool = False,
) -> Decision:
    """Resolve a task operation.

    `owner_id` is the owner of the task's parent list and `list_grant`
    the caller's grant on that list.
    """
    if caller_id == owner_id:
        return Decision.ALLOW

    by_list = _check_grant(list_grant, required)
    if by_list.allowed or strict:
        return by_list

    by_task = _check_grant(task_grant, required)
    if by_task.allowed:
        return by_task
    return _worst(by_list, by_task)
