"""Tests for client and server message validation."""

import pytest
from pydantic import ValidationError

from presence.messaging.types import (
    ClientMessageType,
    ErrorMessage,
    JoinMessage,
    PlayerColorChangedMessage,
    PlayerCountMessage,
    PlayerMoveMessage,
    ServerMessageType,
    SessionErrorCode,
    parse_client_message,
    parse_server_message,
)


def _pose_fields():
    return {"position": {"x": 1, "y": 2, "z": 3}, "rotation": {"y": 0.25}}


class TestParseClientMessage:
    def test_parse_join(self):
        message = parse_client_message({"type": "join", **_pose_fields(), "color": "#ff8800", "name": "Ada"})

        assert isinstance(message, JoinMessage)
        assert message.type == ClientMessageType.JOIN
        assert message.position.x == 1.0
        assert message.name == "Ada"
        assert message.pose().rotation.y == 0.25

    def test_join_name_defaults_to_empty(self):
        message = parse_client_message({"type": "join", **_pose_fields(), "color": "#ff8800"})
        assert message.name == ""

    def test_join_without_color_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "join", **_pose_fields()})

    def test_join_name_too_long_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "join", **_pose_fields(), "color": "#fff", "name": "x" * 51})

    def test_parse_move(self):
        message = parse_client_message({"type": "player_move", **_pose_fields()})
        assert isinstance(message, PlayerMoveMessage)

    def test_move_without_rotation_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "player_move", "position": {"x": 0, "y": 0, "z": 0}})

    def test_move_with_non_numeric_position_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message(
                {"type": "player_move", "position": {"x": "left", "y": 0, "z": 0}, "rotation": {"y": 0}},
            )

    def test_rotation_keeps_extra_axes(self):
        message = parse_client_message(
            {"type": "player_move", "position": {"x": 0, "y": 0, "z": 0}, "rotation": {"x": 0.1, "y": 0.2, "z": 0.3}},
        )
        assert message.rotation.model_dump() == {"x": 0.1, "y": 0.2, "z": 0.3}

    def test_empty_color_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "player_color_change", "color": ""})

    def test_color_value_not_constrained(self):
        token = "rgba(12, 34, 56, 0.5) with a long descriptive suffix " * 3
        message = parse_client_message({"type": "player_color_change", "color": token})
        assert message.color == token

    @pytest.mark.parametrize("message_type", ["check_capacity", "ping"])
    def test_parse_bare_requests(self, message_type):
        assert parse_client_message({"type": message_type}).type == message_type

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "teleport"})

    def test_missing_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_message({"color": "#fff"})

    def test_server_type_not_accepted_from_client(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "player_count", "current": 1, "max": 5})


class TestParseServerMessage:
    def test_parse_player_count(self):
        message = parse_server_message({"type": "player_count", "current": 2, "max": 5})
        assert message == PlayerCountMessage(current=2, max=5)

    def test_parse_color_changed(self):
        message = parse_server_message({"type": "player_color_changed", "id": "a", "color": "#112233"})
        assert isinstance(message, PlayerColorChangedMessage)
        assert message.color == "#112233"

    def test_parse_existing_players(self):
        message = parse_server_message(
            {
                "type": "existing_players",
                "players": [{"id": "a", **_pose_fields(), "color": "#fff", "name": "Ada"}],
            },
        )
        assert [p.id for p in message.players] == ["a"]

    def test_error_message_dump(self):
        dumped = ErrorMessage(code=SessionErrorCode.RATE_LIMITED, message="slow down").model_dump()
        assert dumped == {"type": ServerMessageType.ERROR, "code": "rate_limited", "message": "slow down"}
        assert dumped["type"] == "session_error"
