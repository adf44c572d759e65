"""Storage failures during a mutation surface as a 500 STORAGE_ERROR.

Nothing is persisted and nothing is published when the write fails.
"""

import json
from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.database import engine, get_db
from taskshare.main import app
from taskshare.middleware.exceptions import StorageError, database_exception_handler
from taskshare.models.notification import Notification
from taskshare.models.task_list import ListShare, TaskList
from taskshare.realtime.hub import Hub
from taskshare.services import shares


class FailingCommitSession(AsyncSession):
    async def commit(self) -> None:
        raise SQLAlchemyError("disk I/O error")


@contextmanager
def failing_commits():
    """Route requests through a session whose commit always fails."""

    async def override():
        async with FailingCommitSession(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_db] = override
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_db, None)


async def _create_list(client, headers, name="Groceries") -> dict:
    response = await client.post("/api/lists/", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


@pytest.mark.api
@pytest.mark.asyncio
class TestFailedCommit:
    async def test_rename_is_rolled_back_and_not_published(
        self, client, hub: Hub, alice, headers, make_socket
    ):
        task_list = await _create_list(client, headers(alice))
        socket = make_socket()
        await hub.sync_lists(await hub.connect(socket, alice.id), [task_list["id"]])

        with failing_commits():
            response = await client.patch(
                f"/api/lists/{task_list['id']}",
                json={"name": "Renamed"},
                headers=headers(alice),
            )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "STORAGE_ERROR"
        assert "disk" not in error["message"]
        assert socket.sent == []

        fetched = await client.get(f"/api/lists/{task_list['id']}", headers=headers(alice))
        assert fetched.json()["name"] == "Groceries"

    async def test_share_leaves_no_grant_or_notification(
        self, client, hub: Hub, db_session, alice, bob, headers, make_socket
    ):
        task_list = await _create_list(client, headers(alice))
        bob_socket = make_socket()
        await hub.connect(bob_socket, bob.id)

        with failing_commits():
            response = await client.post(
                f"/api/lists/{task_list['id']}/share",
                json={"user_id": bob.id, "permission": "EDIT"},
                headers=headers(alice),
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_ERROR"
        assert bob_socket.sent == []
        assert await _count(db_session, ListShare) == 0
        assert await _count(db_session, Notification) == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestConstraintFailures:
    async def test_foreign_key_violation_is_storage_error(self, db_session, alice):
        task_list = TaskList(name="Trip", owner_id=alice.id)
        db_session.add(task_list)
        await db_session.commit()
        list_id, owner_id = task_list.id, alice.id

        with pytest.raises(StorageError):
            await shares.grant(
                db_session,
                shares.LIST_SHARES,
                list_id,
                owner_id=owner_id,
                grantee_id="no-such-user",
            )

        assert await _count(db_session, ListShare) == 0

    async def test_escaped_integrity_error_is_opaque(self):
        request = SimpleNamespace(url=SimpleNamespace(path="/api/lists/"), method="POST")
        exc = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed: list_shares.list_id")
        )

        response = await database_exception_handler(request, exc)

        assert response.status_code == 500
        body = json.loads(response.body)
        assert body["error"]["code"] == "STORAGE_ERROR"
        assert "UNIQUE" not in body["error"]["message"]
