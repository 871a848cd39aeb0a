"""Connection handles used by the collaboration hub."""

import asyncio
import uuid
from typing import Optional
from fastapi import WebSocket, status


class Connection:
    """A client connection the hub can address.

    Subclasses implement the transport; the hub only needs `id`, `send` and
    `close`.
    """

    def __init__(self, connection_id: Optional[str] = None):
        self.id = connection_id or str(uuid.uuid4())

    async def send(self, event: str, data: dict) -> None:
        raise NotImplementedError

    async def close(self, code: int = status.WS_1000_NORMAL_CLOSURE, reason: Optional[str] = None) -> None:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__}(id={self.id})>"


class WebSocketConnection(Connection):
    """Connection backed by a FastAPI WebSocket.

    Frames are JSON objects `{"event": ..., "data": ...}`. Sends are
    serialized per socket because broadcasts may come from other tasks
    (REST requests, other sockets) while this socket is replying.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        super().__init__(connection_id)
        self._websocket = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: dict) -> None:
        async with self._send_lock:
            await self._websocket.send_json({"event": event, "data": data})

    async def close(self, code: int = status.WS_1000_NORMAL_CLOSURE, reason: Optional[str] = None) -> None:
        async with self._send_lock:
            await self._websocket.close(code=code, reason=reason)
