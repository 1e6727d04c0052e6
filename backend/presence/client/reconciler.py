"""Client-side mirror of the server's participant registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from presence.messaging.types import (
    CapacityResponseMessage,
    ErrorMessage,
    ExistingPlayersMessage,
    PlayerColorChangedMessage,
    PlayerCountMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerMovedMessage,
    ServerFullMessage,
    parse_server_message,
)

if TYPE_CHECKING:
    from presence.client.presentation import PresentationLayer
    from presence.messaging.types import ServerMessage
    from presence.session.models import ParticipantInfo, Rotation, Vector3

logger = structlog.get_logger()


@dataclass
class ShadowEntity:
    """Last known state of one remote participant. Not authoritative."""

    id: str
    position: Vector3
    rotation: Rotation
    color: str
    name: str

    @classmethod
    def from_info(cls, info: ParticipantInfo) -> ShadowEntity:
        return cls(id=info.id, position=info.position, rotation=info.rotation, color=info.color, name=info.name)


class ClientReconciler:
    """Apply server-pushed deltas to this client's shadow entities.

    The shadow set is an eventually-consistent cache of the server
    registry. Updates for ids it does not know are ignored: the matching
    player_joined was missed or is still in flight, and the next
    player_joined carries the full state anyway. The server never echoes a
    client its own events, so every id seen here is a remote participant.
    """

    def __init__(self, presentation: PresentationLayer) -> None:
        self._presentation = presentation
        self._shadows: dict[str, ShadowEntity] = {}  # participant_id -> ShadowEntity
        self.player_count: tuple[int, int] | None = None  # (current, max) from the last player_count

    @property
    def shadows(self) -> dict[str, ShadowEntity]:
        return dict(self._shadows)

    def get(self, participant_id: str) -> ShadowEntity | None:
        return self._shadows.get(participant_id)

    def apply_raw(self, data: dict[str, Any]) -> ServerMessage | None:
        """Validate and apply one decoded frame. Malformed frames are logged and dropped."""
        try:
            message = parse_server_message(data)
        except ValidationError as e:
            logger.warning("dropping malformed server message", error=str(e))
            return None
        self.apply(message)
        return message

    def apply(self, message: ServerMessage) -> None:
        if isinstance(message, PlayerMovedMessage):
            self._update(message.id, position=message.position, rotation=message.rotation)
        elif isinstance(message, PlayerColorChangedMessage):
            self._update(message.id, color=message.color)
        elif isinstance(message, PlayerJoinedMessage):
            self._upsert(message.player)
        elif isinstance(message, ExistingPlayersMessage):
            for info in message.players:
                self._upsert(info)
        elif isinstance(message, PlayerLeftMessage):
            self._remove(message.id)
        elif isinstance(message, PlayerCountMessage):
            self.player_count = (message.current, message.max)
            self._presentation.on_player_count(message.current, message.max)
        elif isinstance(message, CapacityResponseMessage):
            self._presentation.on_capacity(can_join=message.can_join, current=message.current, maximum=message.max)
        elif isinstance(message, ServerFullMessage):
            self._presentation.on_server_full(message.current, message.max)
        elif isinstance(message, ErrorMessage):
            logger.warning("server reported error", code=message.code, error_message=message.message)

    def _upsert(self, info: ParticipantInfo) -> None:
        existing = self._shadows.get(info.id)
        if existing is None:
            shadow = ShadowEntity.from_info(info)
            self._shadows[info.id] = shadow
            self._presentation.on_shadow_added(shadow)
            return
        existing.position = info.position
        existing.rotation = info.rotation
        existing.color = info.color
        existing.name = info.name
        self._presentation.on_shadow_updated(existing)

    def _update(
        self,
        participant_id: str,
        *,
        position: Vector3 | None = None,
        rotation: Rotation | None = None,
        color: str | None = None,
    ) -> None:
        shadow = self._shadows.get(participant_id)
        if shadow is None:
            return
        if position is not None:
            shadow.position = position
        if rotation is not None:
            shadow.rotation = rotation
        if color is not None:
            shadow.color = color
        self._presentation.on_shadow_updated(shadow)

    def _remove(self, participant_id: str) -> None:
        shadow = self._shadows.pop(participant_id, None)
        if shadow is not None:
            self._presentation.on_shadow_removed(shadow)

    def clear(self) -> None:
        """Drop every shadow, e.g. after losing the connection."""
        for participant_id in list(self._shadows):
            self._remove(participant_id)
