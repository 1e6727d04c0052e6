"""Recipient resolution and delivery for server -> client events."""

from __future__ import annotations

import contextlib
from enum import StrEnum
from typing import TYPE_CHECKING

from presence.messaging.types import ServerMessageType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pydantic import BaseModel

    from presence.messaging.protocol import ConnectionProtocol


class FanoutTarget(StrEnum):
    ORIGINATOR = "originator"  # only the connection the event concerns (requester or joiner)
    OTHERS = "others"  # every registered connection except the originator
    EVERYONE = "everyone"  # every registered connection, joined or not


EVENT_TARGETS: dict[ServerMessageType, FanoutTarget] = {
    ServerMessageType.CAPACITY_RESPONSE: FanoutTarget.ORIGINATOR,
    ServerMessageType.SERVER_FULL: FanoutTarget.ORIGINATOR,
    ServerMessageType.EXISTING_PLAYERS: FanoutTarget.ORIGINATOR,
    ServerMessageType.PONG: FanoutTarget.ORIGINATOR,
    ServerMessageType.ERROR: FanoutTarget.ORIGINATOR,
    ServerMessageType.PLAYER_JOINED: FanoutTarget.OTHERS,
    ServerMessageType.PLAYER_MOVED: FanoutTarget.OTHERS,
    ServerMessageType.PLAYER_COLOR_CHANGED: FanoutTarget.OTHERS,
    ServerMessageType.PLAYER_LEFT: FanoutTarget.OTHERS,
    ServerMessageType.PLAYER_COUNT: FanoutTarget.EVERYONE,
}


def resolve_recipients(
    kind: ServerMessageType,
    connection_ids: Iterable[str],
    originator_id: str | None = None,
) -> list[str]:
    """Return the connection ids an event of this kind must reach.

    Order follows connection_ids (registration order), which keeps
    delivery deterministic across recipients.
    """
    target = EVENT_TARGETS[kind]
    if target is FanoutTarget.ORIGINATOR:
        if originator_id is None:
            raise ValueError(f"{kind} needs an originating connection")
        return [cid for cid in connection_ids if cid == originator_id]
    if target is FanoutTarget.OTHERS:
        return [cid for cid in connection_ids if cid != originator_id]
    return list(connection_ids)


async def deliver(
    message: BaseModel,
    connections: Mapping[str, ConnectionProtocol],
    originator_id: str | None = None,
) -> list[str]:
    """Send message to its resolved recipients and return who it was sent to.

    Sends are fire-and-forget: a recipient whose socket already went away is
    skipped, its own disconnect path will clean it up. The mapping is
    snapshotted first so a concurrent unregister cannot break iteration.
    """
    kind = ServerMessageType(message.type)  # type: ignore[attr-defined]
    snapshot = dict(connections)
    payload = message.model_dump()
    delivered: list[str] = []
    for cid in resolve_recipients(kind, snapshot, originator_id):
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await snapshot[cid].send_message(payload)
            delivered.append(cid)
    return delivered
