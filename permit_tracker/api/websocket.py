"""
Collaboration WebSocket endpoint
"""
import logging
from typing import Optional
from fastapi import APIRouter, WebSocket
from permit_tracker.core.errors import UnauthorizedError
from permit_tracker.services.collaboration import WebSocketConnection

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def collaboration_socket(websocket: WebSocket, token: Optional[str] = None):
    """
    Live collaboration channel.

    The bearer token comes from the `token` query parameter or the
    Authorization header. Without a valid token the socket is closed with
    code 1008 before any room can be joined. Frames in both directions are
    `{"event": ..., "data": {...}}`; client frames may be sent as text or
    binary.
    """
    hub = websocket.app.state.hub
    credential = token or websocket.headers.get("authorization")

    await websocket.accept()
    connection = WebSocketConnection(websocket)
    try:
        await hub.authenticate(connection, credential)
    except UnauthorizedError:
        return

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("Connection %s closed with code %s", connection.id, message.get("code"))
                break
            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            await hub.dispatch(connection, frame)
    finally:
        await hub.disconnect(connection)
