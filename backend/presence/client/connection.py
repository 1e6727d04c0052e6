"""ConnectionProtocol over the websockets asyncio client."""

from __future__ import annotations

import contextlib
from uuid import uuid4

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from presence.messaging.protocol import ConnectionProtocol


class WebsocketsConnection(ConnectionProtocol):
    def __init__(self, websocket: ClientConnection, connection_id: str | None = None) -> None:
        self._websocket = websocket
        # local label for logging; the server assigns its own id
        self._connection_id = connection_id or str(uuid4())

    @classmethod
    async def open(
        cls,
        url: str,
        *,
        ping_interval: float | None = 5.0,
        ping_timeout: float | None = 30.0,
    ) -> WebsocketsConnection:
        websocket = await connect(url, ping_interval=ping_interval, ping_timeout=ping_timeout)
        return cls(websocket)

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send(data)
        except ConnectionClosed:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            data = await self._websocket.recv()
        except ConnectionClosed:
            raise ConnectionError("WebSocket already disconnected") from None
        if isinstance(data, str):
            # text frames are not part of the protocol; an empty payload fails to decode
            return b""
        return data

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(ConnectionClosed):
            await self._websocket.close(code=code, reason=reason)
