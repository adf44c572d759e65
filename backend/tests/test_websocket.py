"""End-to-end tests for the /ws endpoint.

Uses Starlette's TestClient, which runs the app (and its lifespan) on its
own event loop, so the database is prepared with asyncio.run() here
instead of the async fixtures.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from taskshare.auth.jwt import create_access_token
from taskshare.database import Base, async_session, engine
from taskshare.main import app
from taskshare.models.user import User
from taskshare.realtime.hub import list_room, user_room


async def _prepare() -> User:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as db:
        user = User(name="Erin", email="erin@example.com")
        db.add(user)
        await db.commit()
        return user


async def _teardown() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def erin():
    user = asyncio.run(_prepare())
    yield user
    asyncio.run(_teardown())


@pytest.mark.realtime
class TestWebSocketEndpoint:
    def test_invalid_token_closed_before_accept(self, erin):
        with TestClient(app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws?token=garbage"):
                    pass
        assert exc_info.value.code == 4401

    def test_missing_token_closed(self, erin):
        with TestClient(app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws"):
                    pass
        assert exc_info.value.code == 4401

    def test_ping_subscribe_and_receive(self, erin):
        token = create_access_token(erin.id)
        with TestClient(app) as client:
            with client.websocket_connect(f"/ws?token={token}") as ws:
                ws.send_json({"event": "ping"})
                assert ws.receive_json() == {"event": "pong", "data": None}

                created = client.post(
                    "/api/lists/",
                    json={"name": "Errands"},
                    headers={"Authorization": f"Bearer {token}"},
                )
                assert created.status_code == 201
                frame = ws.receive_json()
                assert frame["event"] == "list:created"
                list_id = frame["data"]["id"]

                ws.send_json({"event": "lists:subscribe", "data": [list_id]})
                ws.send_json({"event": "ping"})
                assert ws.receive_json()["event"] == "pong"

                hub = app.state.hub
                [conn] = hub.members(user_room(erin.id))
                assert list_room(list_id) in hub.rooms_of(conn)

                client.post(
                    "/api/tasks/",
                    json={"name": "Post office", "list_id": list_id},
                    headers={"Authorization": f"Bearer {token}"},
                )
                frame = ws.receive_json()
                assert frame["event"] == "task:created"
                assert frame["data"]["name"] == "Post office"

    def test_malformed_frames_are_ignored(self, erin):
        token = create_access_token(erin.id)
        with TestClient(app) as client:
            with client.websocket_connect(f"/ws?token={token}") as ws:
                ws.send_text("not json")
                ws.send_json(["not", "an", "object"])
                ws.send_json({"event": "ping"})
                assert ws.receive_json()["event"] == "pong"
