"""Transport-neutral connection interface used by both server and client."""

from abc import ABC, abstractmethod
from typing import Any

from presence.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One bidirectional, ordered message channel.

    The lifecycle controller and the client reconciler only see this
    interface, so both can be tested without a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Identifier assigned at connect time; doubles as the participant id."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        raw = await self.receive_bytes()
        return decode(raw)
