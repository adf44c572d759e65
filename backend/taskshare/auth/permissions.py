"""Share permission levels and their ordering.

Design:
  - Three levels, totally ordered: VIEW < EDIT < ADMIN.
  - `level(permission)` maps a level to its rank (1, 2, 3).
  - `satisfies(have, need)` is the single comparison used by the
    resolution engine, the share registry and the client-side projector.

Anything that is not one of the three members is a programming error;
`level()` raises instead of guessing.
"""

from __future__ import annotations

import enum


class SharePermission(str, enum.Enum):
    VIEW = "VIEW"
    EDIT = "EDIT"
    ADMIN = "ADMIN"


# ── Ordering ────────────────────────────────────────────────

PERMISSION_LEVELS: dict[SharePermission, int] = {
    SharePermission.VIEW: 1,
    SharePermission.EDIT: 2,
    SharePermission.ADMIN: 3,
}

DEFAULT_SHARE_PERMISSION = SharePermission.VIEW


def level(permission: SharePermission | str) -> int:
    """Rank of a permission level. Raises ValueError for unknown values."""
    return PERMISSION_LEVELS[SharePermission(permission)]


def satisfies(have: SharePermission | str, need: SharePermission | str) -> bool:
    """Check whether a held level is at least the required level."""
    return level(have) >= level(need)


def strongest(*permissions: SharePermission | None) -> SharePermission | None:
    """Return the highest of the given levels, ignoring None."""
    present = [SharePermission(p) for p in permissions if p is not None]
    if not present:
        return None
    return max(present, key=level)
