from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from presence.session.models import COLOR_FIELD, NAME_FIELD, ParticipantInfo, Pose, Rotation, Vector3


class ClientMessageType(StrEnum):
    CHECK_CAPACITY = "check_capacity"
    JOIN = "join"
    PLAYER_MOVE = "player_move"
    PLAYER_COLOR_CHANGE = "player_color_change"
    PING = "ping"


class ServerMessageType(StrEnum):
    CAPACITY_RESPONSE = "capacity_response"
    SERVER_FULL = "server_full"
    EXISTING_PLAYERS = "existing_players"
    PLAYER_JOINED = "player_joined"
    PLAYER_MOVED = "player_moved"
    PLAYER_COLOR_CHANGED = "player_color_changed"
    PLAYER_LEFT = "player_left"
    PLAYER_COUNT = "player_count"
    PONG = "pong"
    ERROR = "session_error"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    RATE_LIMITED = "rate_limited"


# ---------------------------------------------------------------------------
# Client -> server
# ---------------------------------------------------------------------------


class CheckCapacityMessage(BaseModel):
    type: Literal[ClientMessageType.CHECK_CAPACITY] = ClientMessageType.CHECK_CAPACITY


class JoinMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN] = ClientMessageType.JOIN
    position: Vector3
    rotation: Rotation
    color: str = COLOR_FIELD
    name: str = NAME_FIELD

    def pose(self) -> Pose:
        return Pose(position=self.position, rotation=self.rotation)


class PlayerMoveMessage(BaseModel):
    type: Literal[ClientMessageType.PLAYER_MOVE] = ClientMessageType.PLAYER_MOVE
    position: Vector3
    rotation: Rotation

    def pose(self) -> Pose:
        return Pose(position=self.position, rotation=self.rotation)


class PlayerColorChangeMessage(BaseModel):
    type: Literal[ClientMessageType.PLAYER_COLOR_CHANGE] = ClientMessageType.PLAYER_COLOR_CHANGE
    color: str = COLOR_FIELD


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    CheckCapacityMessage | JoinMessage | PlayerMoveMessage | PlayerColorChangeMessage | PingMessage,
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Validate a decoded upstream frame. Raises pydantic ValidationError when malformed."""
    return _client_adapter.validate_python(data)


# ---------------------------------------------------------------------------
# Server -> client
# ---------------------------------------------------------------------------


class CapacityResponseMessage(BaseModel):
    type: Literal[ServerMessageType.CAPACITY_RESPONSE] = ServerMessageType.CAPACITY_RESPONSE
    can_join: bool
    current: int
    max: int


class ServerFullMessage(BaseModel):
    type: Literal[ServerMessageType.SERVER_FULL] = ServerMessageType.SERVER_FULL
    current: int
    max: int


class ExistingPlayersMessage(BaseModel):
    type: Literal[ServerMessageType.EXISTING_PLAYERS] = ServerMessageType.EXISTING_PLAYERS
    players: list[ParticipantInfo]


class PlayerJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_JOINED] = ServerMessageType.PLAYER_JOINED
    player: ParticipantInfo


class PlayerMovedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_MOVED] = ServerMessageType.PLAYER_MOVED
    id: str
    position: Vector3
    rotation: Rotation


class PlayerColorChangedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_COLOR_CHANGED] = ServerMessageType.PLAYER_COLOR_CHANGED
    id: str
    color: str


class PlayerLeftMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_LEFT] = ServerMessageType.PLAYER_LEFT
    id: str


class PlayerCountMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_COUNT] = ServerMessageType.PLAYER_COUNT
    current: int
    max: int


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str


ServerMessage = Annotated[
    CapacityResponseMessage
    | ServerFullMessage
    | ExistingPlayersMessage
    | PlayerJoinedMessage
    | PlayerMovedMessage
    | PlayerColorChangedMessage
    | PlayerLeftMessage
    | PlayerCountMessage
    | PongMessage
    | ErrorMessage,
    Field(discriminator="type"),
]

_server_adapter = TypeAdapter(ServerMessage)


def parse_server_message(data: dict[str, Any]) -> ServerMessage:
    """Validate a decoded downstream frame (client side)."""
    return _server_adapter.validate_python(data)
