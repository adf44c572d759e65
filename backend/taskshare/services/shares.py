"""Share registry: lifecycle of list and task grant rows.

Grants are keyed by (entity, grantee) and unique per pair. Duplicate
detection is left to the UNIQUE constraint rather than a read-then-write
check, so two concurrent grants for the same pair yield exactly one row
and one DuplicateGrant.

These functions do not authorize; the list/task services resolve the
caller's authority before calling them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.permissions import DEFAULT_SHARE_PERMISSION, SharePermission
from taskshare.middleware.exceptions import (
    DuplicateGrant,
    GrantNotFound,
    SelfGrant,
    StorageError,
)
from taskshare.models.task import TaskShare
from taskshare.models.task_list import ListShare
from taskshare.services.store import flush

logger = logging.getLogger("taskshare.sharing")


@dataclass(frozen=True)
class ShareKind:
    model: type
    entity_column: str
    label: str

    def key(self, entity_id: str, user_id: str):
        return (
            getattr(self.model, self.entity_column) == entity_id,
            self.model.user_id == user_id,
        )


LIST_SHARES = ShareKind(ListShare, "list_id", "list")
TASK_SHARES = ShareKind(TaskShare, "task_id", "task")


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "unique" in message or "duplicate key" in message


async def find_grant(
    db: AsyncSession, kind: ShareKind, entity_id: str, user_id: str
):
    result = await db.execute(
        select(kind.model).where(*kind.key(entity_id, user_id))
    )
    return result.scalar_one_or_none()


async def grant(
    db: AsyncSession,
    kind: ShareKind,
    entity_id: str,
    *,
    owner_id: str,
    grantee_id: str,
    permission: SharePermission | None = None,
    caller_id: str | None = None,
):
    """Create a grant row. Raises SelfGrant or DuplicateGrant."""
    if grantee_id == owner_id or grantee_id == caller_id:
        raise SelfGrant()

    share = kind.model(
        **{kind.entity_column: entity_id},
        user_id=grantee_id,
        permission=permission or DEFAULT_SHARE_PERMISSION,
    )
    db.add(share)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if _is_unique_violation(exc):
            raise DuplicateGrant(f"{kind.label.capitalize()} already shared with this user") from exc
        logger.error("Grant on %s %s failed: %s", kind.label, entity_id, exc)
        raise StorageError() from exc

    logger.info(
        "Granted %s on %s %s to %s", share.permission.value, kind.label, entity_id, grantee_id
    )
    return share


async def update_level(
    db: AsyncSession,
    kind: ShareKind,
    entity_id: str,
    grantee_id: str,
    new_level: SharePermission,
):
    """Change the level of an existing grant. Raises GrantNotFound."""
    share = await find_grant(db, kind, entity_id, grantee_id)
    if share is None:
        raise GrantNotFound()
    share.permission = new_level
    await flush(db)
    logger.info(
        "Changed %s share on %s for %s to %s", kind.label, entity_id, grantee_id, new_level.value
    )
    return share


async def revoke(
    db: AsyncSession,
    kind: ShareKind,
    entity_id: str,
    grantee_id: str,
    *,
    missing_ok: bool = False,
) -> bool:
    """Delete a grant row. Returns False when absent and `missing_ok`."""
    share = await find_grant(db, kind, entity_id, grantee_id)
    if share is None:
        if missing_ok:
            return False
        raise GrantNotFound()
    await db.delete(share)
    await flush(db)
    logger.info("Revoked %s share on %s from %s", kind.label, entity_id, grantee_id)
    return True
