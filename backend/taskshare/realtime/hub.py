"""Real-time fan-out hub: rooms, membership, and broadcast.

Two room kinds:
  - user:<user_id>  events aimed at one recipient (you were granted /
                    revoked access, notifications)
  - list:<list_id>  events for everyone currently able to see the list
                    (task create/update/delete, list updates)

Connection lifecycle:
  connect()       → joins the caller's own user room
  sync_lists()    → client announces its full accessible-list set; the hub
                    joins new list rooms and leaves the ones no longer listed
  disconnect()    → drops every membership of the connection

A connection whose send fails or times out is dropped: it leaves every
room and its socket is closed with DROPPED_CLOSE_CODE, so the client
sees the disconnect and reconnects with a fresh announcement.

The hub does not authorize anything. Room membership is driven by the
client's accessible-set projection, so fan-out only reaches members.

One Hub is built per process in the FastAPI lifespan and stored on
`app.state.hub`; services receive it as a dependency.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Any, Iterable, Protocol

from fastapi import Request
from starlette.websockets import WebSocket

logger = logging.getLogger("taskshare.realtime")

USER_ROOM_PREFIX = "user:"
LIST_ROOM_PREFIX = "list:"

# "Try again later": the client should reconnect and re-announce.
DROPPED_CLOSE_CODE = 1013


def user_room(user_id: str) -> str:
    return f"{USER_ROOM_PREFIX}{user_id}"


def list_room(list_id: str) -> str:
    return f"{LIST_ROOM_PREFIX}{list_id}"


class JSONSocket(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class HubConnection:
    """One connected client. Hashable by identity so it can live in room sets."""

    def __init__(self, socket: JSONSocket, user_id: str):
        self.id = uuid.uuid4().hex
        self.socket = socket
        self.user_id = user_id

    async def send(self, event: str, data: Any) -> None:
        await self.socket.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"<HubConnection {self.id[:8]} user={self.user_id}>"


class Hub:
    """Process-scoped registry of rooms and their member connections."""

    def __init__(self, send_timeout: float = 5.0):
        self._rooms: dict[str, set[HubConnection]] = defaultdict(set)
        self._memberships: dict[HubConnection, set[str]] = {}
        self._lock = asyncio.Lock()
        self._send_timeout = send_timeout
        self._closed = False

    # ── Membership ──────────────────────────────────────────

    async def connect(self, socket: JSONSocket, user_id: str) -> HubConnection:
        """Register a freshly authenticated socket and join its user room."""
        conn = HubConnection(socket, user_id)
        async with self._lock:
            if self._closed:
                raise RuntimeError("Hub is closed")
            self._memberships[conn] = set()
            self._join_locked(conn, user_room(user_id))
        logger.info("Connected %r", conn)
        return conn

    async def disconnect(self, conn: HubConnection) -> None:
        async with self._lock:
            rooms = self._memberships.pop(conn, set())
            for room in rooms:
                self._discard_locked(conn, room)
        logger.info("Disconnected %r (left %d rooms)", conn, len(rooms))

    async def join(self, conn: HubConnection, room: str) -> None:
        async with self._lock:
            if conn in self._memberships:
                self._join_locked(conn, room)

    async def leave(self, conn: HubConnection, room: str) -> None:
        async with self._lock:
            if conn in self._memberships:
                self._memberships[conn].discard(room)
                self._discard_locked(conn, room)

    async def sync_lists(
        self, conn: HubConnection, list_ids: Iterable[str]
    ) -> tuple[set[str], set[str]]:
        """Diff the announced list set against current list rooms.

        Returns (joined_list_ids, left_list_ids).
        """
        wanted = {list_room(list_id) for list_id in list_ids}
        async with self._lock:
            current = self._memberships.get(conn)
            if current is None:
                return set(), set()
            subscribed = {r for r in current if r.startswith(LIST_ROOM_PREFIX)}
            to_join = wanted - subscribed
            to_leave = subscribed - wanted
            for room in to_join:
                self._join_locked(conn, room)
            for room in to_leave:
                current.discard(room)
                self._discard_locked(conn, room)

        joined = {r[len(LIST_ROOM_PREFIX):] for r in to_join}
        left = {r[len(LIST_ROOM_PREFIX):] for r in to_leave}
        if joined or left:
            logger.debug("%r list rooms: +%s -%s", conn, sorted(joined), sorted(left))
        return joined, left

    async def evict_user(self, user_id: str, room: str) -> int:
        """Remove every connection of a user from a room.

        Used when a list grant is revoked, so the former grantee stops
        receiving list events before their client re-announces its set.
        """
        async with self._lock:
            victims = [
                conn for conn in self._rooms.get(room, ())
                if conn.user_id == user_id
            ]
            for conn in victims:
                self._memberships[conn].discard(room)
                self._discard_locked(conn, room)
        if victims:
            logger.debug("Evicted user %s from %s (%d connections)", user_id, room, len(victims))
        return len(victims)

    def _join_locked(self, conn: HubConnection, room: str) -> None:
        self._rooms[room].add(conn)
        self._memberships[conn].add(room)

    def _discard_locked(self, conn: HubConnection, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(conn)
        if not members:
            del self._rooms[room]

    # ── Introspection ───────────────────────────────────────

    def members(self, room: str) -> set[HubConnection]:
        return set(self._rooms.get(room, ()))

    def rooms_of(self, conn: HubConnection) -> set[str]:
        return set(self._memberships.get(conn, ()))

    def is_connected(self, conn: HubConnection) -> bool:
        return conn in self._memberships

    @property
    def connection_count(self) -> int:
        return len(self._memberships)

    # ── Fan-out ─────────────────────────────────────────────

    async def publish(self, room: str, event: str, payload: Any) -> int:
        """Send an event to every member of a room. Returns deliveries made.

        Members are snapshotted under the lock and sent to outside it, so
        a slow socket never blocks joins/leaves. A connection whose send
        fails or times out is dropped.
        """
        return await self.publish_many([room], event, payload)

    async def publish_many(self, rooms: Iterable[str], event: str, payload: Any) -> int:
        """Publish to several rooms, delivering at most once per connection."""
        async with self._lock:
            seen: dict[HubConnection, None] = {}
            for room in rooms:
                for conn in self._rooms.get(room, ()):
                    seen[conn] = None
            targets = list(seen)
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._send(conn, event, payload) for conn in targets),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning("Dropping %r after failed send of %s: %r", conn, event, result)
                await self.drop(conn)
            else:
                delivered += 1
        logger.debug("Published %s to %d connections (%d delivered)", event, len(targets), delivered)
        return delivered

    async def _send(self, conn: HubConnection, event: str, payload: Any) -> None:
        await asyncio.wait_for(conn.send(event, payload), timeout=self._send_timeout)

    async def drop(self, conn: HubConnection) -> None:
        """Disconnect a connection and close its socket."""
        await self.disconnect(conn)
        try:
            await asyncio.wait_for(
                conn.socket.close(code=DROPPED_CLOSE_CODE), timeout=self._send_timeout
            )
        except (asyncio.TimeoutError, RuntimeError, OSError) as exc:
            logger.warning("Closing dropped %r failed: %r", conn, exc)

    # ── Teardown ────────────────────────────────────────────

    async def close(self) -> None:
        """Forget every connection. The transport closes the sockets."""
        async with self._lock:
            self._closed = True
            count = len(self._memberships)
            self._memberships.clear()
            self._rooms.clear()
        logger.info("Hub closed (%d connections dropped)", count)


def get_hub(request: Request) -> Hub:
    """FastAPI dependency returning the process-scoped hub."""
    return request.app.state.hub


def get_ws_hub(websocket: WebSocket) -> Hub:
    return websocket.app.state.hub
