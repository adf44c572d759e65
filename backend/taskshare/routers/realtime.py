"""WebSocket endpoint for the fan-out hub.

  WS /ws?token=<jwt>

Handshake: the token is verified before the socket is accepted; an
invalid token closes the connection with 4401. Once accepted the
connection sits in its user room and follows `lists:subscribe` frames
(the client's full accessible-list set) to join and leave list rooms.
"""

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from taskshare.auth.jwt import user_id_from_token
from taskshare.database import async_session
from taskshare.models.user import User
from taskshare.realtime import events
from taskshare.realtime.hub import Hub, get_ws_hub

logger = logging.getLogger("taskshare.realtime")

router = APIRouter()

WS_UNAUTHENTICATED = 4401


async def _authenticate(token: str | None) -> str | None:
    user_id = user_id_from_token(token)
    if not user_id:
        return None
    async with async_session() as db:
        exists = await db.scalar(select(User.id).where(User.id == user_id))
    return exists


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    token: str | None = Query(None),
    hub: Hub = Depends(get_ws_hub),
):
    user_id = await _authenticate(token)
    if user_id is None:
        await websocket.close(code=WS_UNAUTHENTICATED)
        return

    await websocket.accept()
    conn = await hub.connect(websocket, user_id)
    try:
        while True:
            try:
                frame = json.loads(await websocket.receive_text())
            except ValueError:
                logger.debug("Ignoring malformed frame from %r", conn)
                continue
            if not hub.is_connected(conn):
                logger.info("%r was dropped by the hub, ending session", conn)
                break
            if not isinstance(frame, dict):
                continue
            event = frame.get("event")
            if event == events.LISTS_SUBSCRIBE:
                list_ids = frame.get("data") or []
                if isinstance(list_ids, list):
                    await hub.sync_lists(conn, [str(list_id) for list_id in list_ids])
            elif event == events.PING:
                await websocket.send_json({"event": events.PONG, "data": None})
            else:
                logger.debug("Ignoring unknown frame %r from %r", event, conn)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(conn)
