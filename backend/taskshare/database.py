"""Database engine, session factory, and declarative base.

One DeclarativeBase for every table (users, lists, tasks, shares,
notifications). The request-scoped session dependency commits when the
route returns and rolls back on any exception, so a denied or failed
operation never leaves a partial mutation behind.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from taskshare.config import settings

_is_sqlite = settings.database_url.startswith("sqlite")

if _is_sqlite:
    # aiosqlite connections are bound to the loop that opened them
    engine = create_async_engine(
        settings.database_url, echo=settings.sql_echo, poolclass=NullPool
    )
else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.sql_echo,
        pool_size=20,
        max_overflow=10,
    )

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record):
        # ON DELETE CASCADE is a storage contract; SQLite only honours it with this pragma
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a session for one request; commit on success, roll back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_all_tables() -> None:
    """Create every mapped table that does not exist yet."""
    import taskshare.models  # noqa: F401  (register mappers)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
