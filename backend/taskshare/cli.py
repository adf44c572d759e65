"""Management CLI for local development.

Usage:
    python -m taskshare.cli create-tables                  # create_all (dev only)
    python -m taskshare.cli create-user EMAIL NAME         # add a user, print its id + token
    python -m taskshare.cli mint-token EMAIL               # print an access token
    python -m taskshare.cli list-users                     # show all users
"""

import asyncio
import sys

from sqlalchemy import select

from taskshare.auth.jwt import create_access_token
from taskshare.database import async_session, create_all_tables
from taskshare.models.user import User


async def create_user(email: str, name: str) -> None:
    async with async_session() as db:
        existing = await db.scalar(select(User).where(User.email == email))
        if existing:
            print(f"User {email} already exists: {existing.id}")
            return
        user = User(email=email, name=name)
        db.add(user)
        await db.commit()
        print(f"  id:    {user.id}")
        print(f"  token: {create_access_token(user.id)}")


async def mint_token(email: str) -> None:
    async with async_session() as db:
        user = await db.scalar(select(User).where(User.email == email))
    if user is None:
        print(f"No user with email {email}")
        sys.exit(1)
    print(create_access_token(user.id))


async def list_users() -> None:
    async with async_session() as db:
        result = await db.execute(select(User).order_by(User.created_at))
        users = result.scalars().all()
    for u in users:
        print(f"  {u.id}  {u.email}  {u.name}")
    print(f"\n{len(users)} user(s)")


USAGE = "Usage: python -m taskshare.cli [create-tables|create-user EMAIL NAME|mint-token EMAIL|list-users]"


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    args = sys.argv[2:]
    if cmd == "create-tables":
        asyncio.run(create_all_tables())
        print("Tables created.")
    elif cmd == "create-user" and len(args) == 2:
        asyncio.run(create_user(*args))
    elif cmd == "mint-token" and len(args) == 1:
        asyncio.run(mint_token(args[0]))
    elif cmd == "list-users":
        asyncio.run(list_users())
    else:
        print(USAGE)
