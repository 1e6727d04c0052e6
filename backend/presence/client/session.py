"""Drive one client connection: requests, pose uplink and heartbeat."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from presence.client.reconciler import ClientReconciler
from presence.messaging.encoder import DecodeError
from presence.messaging.types import (
    CheckCapacityMessage,
    JoinMessage,
    PingMessage,
    PlayerColorChangeMessage,
    PlayerMoveMessage,
    ServerFullMessage,
)

if TYPE_CHECKING:
    from pydantic import BaseModel

    from presence.client.presentation import PresentationLayer
    from presence.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()

UPLINK_INTERVAL_SECONDS = 0.05  # matches the server's default movement throttle
HEARTBEAT_INTERVAL_SECONDS = 5.0


class PresenceClient:
    """Client half of the presence protocol.

    Once joined, the local pose is pushed every uplink interval whether or
    not it changed. That keeps the participant alive on the server's
    liveness check and costs a constant, throttle-bounded bandwidth.
    """

    def __init__(
        self,
        connection: ConnectionProtocol,
        presentation: PresentationLayer,
        *,
        uplink_interval: float = UPLINK_INTERVAL_SECONDS,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
    ) -> None:
        self._connection = connection
        self._presentation = presentation
        self._uplink_interval = uplink_interval
        self._heartbeat_interval = heartbeat_interval
        self.reconciler = ClientReconciler(presentation)
        self._joined = False
        self._disconnected = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def joined(self) -> bool:
        return self._joined

    @property
    def disconnected(self) -> bool:
        return self._disconnected.is_set()

    async def _send(self, message: BaseModel) -> bool:
        try:
            await self._connection.send_message(message.model_dump())
        except (ConnectionError, RuntimeError, OSError):  # fmt: skip
            logger.info("send failed, connection gone", message_type=getattr(message, "type", None))
            return False
        return True

    async def check_capacity(self) -> None:
        await self._send(CheckCapacityMessage())

    async def join(self, name: str, color: str) -> None:
        pose = self._presentation.local_pose()
        if await self._send(JoinMessage(position=pose.position, rotation=pose.rotation, color=color, name=name)):
            self._joined = True

    async def change_color(self, color: str) -> None:
        await self._send(PlayerColorChangeMessage(color=color))

    async def send_pose(self) -> bool:
        pose = self._presentation.local_pose()
        return await self._send(PlayerMoveMessage(position=pose.position, rotation=pose.rotation))

    async def receive_loop(self) -> None:
        """Feed server frames into the reconciler until the connection drops."""
        try:
            while True:
                try:
                    data = await self._connection.receive_message()
                except DecodeError as e:
                    logger.warning("undecodable server frame", error=str(e))
                    continue
                message = self.reconciler.apply_raw(data)
                if isinstance(message, ServerFullMessage):
                    self._joined = False
        except (ConnectionError, RuntimeError):  # fmt: skip
            logger.info("connection lost")
        finally:
            self._joined = False
            self._disconnected.set()
            self.reconciler.clear()

    async def uplink_loop(self) -> None:
        while not self._disconnected.is_set():
            await asyncio.sleep(self._uplink_interval)
            if self._joined and not await self.send_pose():
                return

    async def heartbeat_loop(self) -> None:
        while not self._disconnected.is_set():
            await asyncio.sleep(self._heartbeat_interval)
            if not await self._send(PingMessage()):
                return

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.receive_loop()),
            asyncio.create_task(self.uplink_loop()),
            asyncio.create_task(self.heartbeat_loop()),
        ]

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._connection.close()
