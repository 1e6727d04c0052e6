from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from presence.messaging.types import (
    CheckCapacityMessage,
    JoinMessage,
    PingMessage,
    PlayerColorChangeMessage,
    PlayerMoveMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from presence.messaging.protocol import ConnectionProtocol
    from presence.session.controller import ConnectionLifecycleController

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Validate decoded frames and dispatch them to the lifecycle controller.

    Contains no transport code, so it can be driven with mock connections.
    """

    def __init__(self, controller: ConnectionLifecycleController) -> None:
        self._controller = controller

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        self._controller.record_activity(connection)
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            # malformed payloads are dropped; the connection stays open
            logger.warning("dropping malformed message from %s: %s", connection.connection_id, e)
            return

        if isinstance(message, PlayerMoveMessage):
            await self._controller.move(connection, message)
        elif isinstance(message, PlayerColorChangeMessage):
            await self._controller.change_color(connection, message)
        elif isinstance(message, JoinMessage):
            await self._controller.join(connection, message)
        elif isinstance(message, CheckCapacityMessage):
            await self._controller.check_capacity(connection)
        elif isinstance(message, PingMessage):
            await self._controller.handle_ping(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        await self._controller.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._controller.disconnect(connection)
