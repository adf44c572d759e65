"""FastAPI dependencies for authentication.

Dependencies:
  get_current_user  → decode the bearer JWT, load the user, return User

Authorization is not decided here: it depends on the target entity, so
the services resolve it per operation (see auth/resolution.py).
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.jwt import user_id_from_token
from taskshare.database import get_db
from taskshare.middleware.exceptions import Unauthenticated
from taskshare.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the verified caller or raise Unauthenticated."""
    token = credentials.credentials if credentials else None
    user_id = user_id_from_token(token)
    if not user_id:
        raise Unauthenticated("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthenticated("User not found")
    return user
