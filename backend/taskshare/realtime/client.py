"""Python real-time client for the TaskShare hub.

Keeps a local `CacheSnapshot`, folds every server frame into it with the
projector's reducer, and re-announces the accessible-list set to the hub
(`lists:subscribe`) whenever a reduction changes it. That announcement is
what moves the connection in and out of list rooms.

Usage:

    client = RealtimeClient("ws://localhost:8000/ws", token, user_id)
    async with client:
        await client.load(lists=..., tasks=...)   # from GET /api/lists etc.
        await client.run()                        # until the socket closes
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import urlencode

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from taskshare.projector import CACHE_LOADED, AccessibleSet, CacheSnapshot, project, reduce
from taskshare.realtime import events

logger = logging.getLogger("taskshare.realtime.client")

ChangeCallback = Callable[[CacheSnapshot, AccessibleSet], Awaitable[None]]


class TextConnection(Protocol):
    async def send(self, message: str) -> None: ...
    async def recv(self) -> str: ...
    async def close(self) -> None: ...


class RealtimeClient:
    def __init__(
        self,
        url: str,
        token: str,
        user_id: str,
        on_change: ChangeCallback | None = None,
    ):
        self.url = url
        self.token = token
        self.user_id = user_id
        self.on_change = on_change
        self.snapshot = CacheSnapshot()
        self.projection = project(self.snapshot, user_id)
        self._announced: frozenset[str] | None = None
        self._connection: TextConnection | None = None

    # ── Connection ──────────────────────────────────────────

    async def connect(self) -> None:
        uri = f"{self.url}?{urlencode({'token': self.token})}"
        self.attach(await ws_connect(uri))
        logger.info("Connected to %s as %s", self.url, self.user_id)

    def attach(self, connection: TextConnection) -> None:
        """Use an already-open connection. A fresh socket has no list rooms yet."""
        self._connection = connection
        self._announced = None

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> "RealtimeClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _send(self, event: str, data: Any = None) -> None:
        if self._connection is None:
            raise RuntimeError("RealtimeClient is not connected")
        await self._connection.send(json.dumps({"event": event, "data": data}))

    async def ping(self) -> None:
        await self._send(events.PING)

    # ── State ───────────────────────────────────────────────

    async def load(self, lists: list[dict], tasks: list[dict]) -> AccessibleSet:
        """Replace the cache with a bulk fetch result."""
        return await self.apply({"event": CACHE_LOADED, "data": {"lists": lists, "tasks": tasks}})

    async def apply(self, frame: dict) -> AccessibleSet:
        """Fold one frame into the cache and resync list rooms if needed."""
        snapshot = reduce(self.snapshot, frame)
        if snapshot is self.snapshot:
            return self.projection

        self.snapshot = snapshot
        self.projection = project(snapshot, self.user_id)
        await self.sync_rooms()
        if self.on_change is not None:
            await self.on_change(self.snapshot, self.projection)
        return self.projection

    async def sync_rooms(self) -> bool:
        """Announce the accessible-list set if it differs from the last one sent."""
        wanted = self.projection.accessible_list_ids
        if self._connection is None or wanted == self._announced:
            return False
        await self._send(events.LISTS_SUBSCRIBE, sorted(wanted))
        self._announced = wanted
        logger.debug("Announced %d accessible lists", len(wanted))
        return True

    # ── Receive loop ────────────────────────────────────────

    async def run(self) -> None:
        """Consume frames until the server closes the connection."""
        await self.sync_rooms()
        try:
            while self._connection is not None:
                raw = await self._connection.recv()
                try:
                    frame = json.loads(raw)
                except ValueError:
                    logger.warning("Discarding malformed frame: %r", raw[:200])
                    continue
                if frame.get("event") == events.PONG:
                    continue
                await self.apply(frame)
        except ConnectionClosed as exc:
            logger.info("Connection closed: %s", exc)
