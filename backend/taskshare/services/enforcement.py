"""Required permission per operation, and the checks that enforce it.

Every mutating and sensitive-read entry point in services/lists.py and
services/tasks.py calls `require_list` or `require_task` after loading the
entity and before touching storage. A denial is always a plain Forbidden,
whatever the reason.

Self-revocation ("leave") is the one operation that skips these checks:
the services compare the grantee with the caller first.
"""

from __future__ import annotations

from dataclasses import dataclass

from taskshare.auth.permissions import SharePermission
from taskshare.auth.resolution import resolve_list, resolve_task
from taskshare.middleware.exceptions import Forbidden
from taskshare.services.store import ListAccess, TaskAccess


@dataclass(frozen=True)
class Requirement:
    level: SharePermission
    strict: bool = False


# ── Operation → requirement ─────────────────────────────────

REQUIREMENTS: dict[str, Requirement] = {
    # Lists
    "list.view": Requirement(SharePermission.VIEW),
    "list.update": Requirement(SharePermission.EDIT),
    "list.delete": Requirement(SharePermission.ADMIN),
    "list.share": Requirement(SharePermission.ADMIN),

    # Tasks (create is checked against the target list)
    "task.create": Requirement(SharePermission.EDIT),
    "task.view": Requirement(SharePermission.VIEW),
    "task.update": Requirement(SharePermission.EDIT),
    # Moving a task out of its list removes it from the source list
    "task.move": Requirement(SharePermission.ADMIN, strict=True),
    "task.delete": Requirement(SharePermission.ADMIN, strict=True),
    # Only list-level admins may widen or narrow who can reach a task
    "task.share": Requirement(SharePermission.ADMIN, strict=True),
}


def require_list(access: ListAccess, caller_id: str, operation: str) -> None:
    requirement = REQUIREMENTS[operation]
    decision = resolve_list(
        caller_id, access.owner_id, access.list_grant, requirement.level
    )
    if not decision.allowed:
        raise Forbidden()


def require_task(access: TaskAccess, caller_id: str, operation: str) -> None:
    requirement = REQUIREMENTS[operation]
    decision = resolve_task(
        caller_id,
        access.owner_id,
        access.list_grant,
        access.task_grant,
        requirement.level,
        strict=requirement.strict,
    )
    if not decision.allowed:
        raise Forbidden()
