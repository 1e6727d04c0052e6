import pytest

from presence.messaging.types import (
    PlayerCountMessage,
    PlayerLeftMessage,
    PlayerMovedMessage,
    ServerMessageType,
)
from presence.session.fanout import EVENT_TARGETS, FanoutTarget, deliver, resolve_recipients
from presence.session.models import Rotation, Vector3
from presence.tests.mocks import MockConnection


class TestResolveRecipients:
    @pytest.mark.parametrize(
        "kind",
        [
            ServerMessageType.PLAYER_JOINED,
            ServerMessageType.PLAYER_MOVED,
            ServerMessageType.PLAYER_COLOR_CHANGED,
            ServerMessageType.PLAYER_LEFT,
        ],
    )
    def test_originator_excluded(self, kind):
        assert resolve_recipients(kind, ["a", "b", "c"], originator_id="b") == ["a", "c"]

    def test_player_count_reaches_everyone(self):
        assert resolve_recipients(ServerMessageType.PLAYER_COUNT, ["a", "b"], originator_id="a") == ["a", "b"]

    @pytest.mark.parametrize(
        "kind",
        [
            ServerMessageType.EXISTING_PLAYERS,
            ServerMessageType.CAPACITY_RESPONSE,
            ServerMessageType.SERVER_FULL,
        ],
    )
    def test_direct_replies_reach_only_originator(self, kind):
        assert resolve_recipients(kind, ["a", "b", "c"], originator_id="c") == ["c"]

    def test_direct_reply_without_originator_raises(self):
        with pytest.raises(ValueError, match="originating connection"):
            resolve_recipients(ServerMessageType.SERVER_FULL, ["a"])

    def test_every_server_message_type_has_a_target(self):
        assert set(EVENT_TARGETS) == set(ServerMessageType)
        assert EVENT_TARGETS[ServerMessageType.PLAYER_COUNT] is FanoutTarget.EVERYONE


class TestDeliver:
    async def test_deliver_sends_payload_to_resolved_recipients(self):
        conns = {cid: MockConnection(cid) for cid in ("a", "b", "c")}
        message = PlayerMovedMessage(id="a", position=Vector3(x=1, y=2, z=3), rotation=Rotation(y=0.5))

        delivered = await deliver(message, conns, originator_id="a")

        assert delivered == ["b", "c"]
        assert conns["a"].sent_messages == []
        assert conns["b"].sent_messages == [
            {
                "type": "player_moved",
                "id": "a",
                "position": {"x": 1.0, "y": 2.0, "z": 3.0},
                "rotation": {"y": 0.5},
            },
        ]

    async def test_deliver_skips_dead_recipient(self):
        conns = {cid: MockConnection(cid) for cid in ("a", "b", "c")}
        await conns["b"].close()

        delivered = await deliver(PlayerCountMessage(current=1, max=5), conns)

        assert delivered == ["a", "c"]
        assert conns["c"].sent_messages == [{"type": "player_count", "current": 1, "max": 5}]

    async def test_player_left_not_sent_to_departing_connection(self):
        conns = {cid: MockConnection(cid) for cid in ("a", "b")}

        await deliver(PlayerLeftMessage(id="a"), conns, originator_id="a")

        assert conns["a"].sent_messages == []
        assert conns["b"].sent_messages == [{"type": "player_left", "id": "a"}]
