"""Builders for pose messages and joined connections."""

from typing import TYPE_CHECKING

from presence.messaging.types import JoinMessage, PlayerColorChangeMessage, PlayerMoveMessage
from presence.session.models import Pose, Rotation, Vector3
from presence.tests.mocks import MockConnection

if TYPE_CHECKING:
    from presence.session.controller import ConnectionLifecycleController


def make_pose(x: float = 0.0, y: float = 0.0, z: float = 0.0, yaw: float = 0.0) -> Pose:
    return Pose(position=Vector3(x=x, y=y, z=z), rotation=Rotation(y=yaw))


def make_join(name: str = "", color: str = "#ffffff", x: float = 0.0, yaw: float = 0.0) -> JoinMessage:
    pose = make_pose(x=x, yaw=yaw)
    return JoinMessage(position=pose.position, rotation=pose.rotation, color=color, name=name)


def make_move(x: float = 0.0, y: float = 0.0, z: float = 0.0, yaw: float = 0.0) -> PlayerMoveMessage:
    pose = make_pose(x=x, y=y, z=z, yaw=yaw)
    return PlayerMoveMessage(position=pose.position, rotation=pose.rotation)


def make_color(color: str) -> PlayerColorChangeMessage:
    return PlayerColorChangeMessage(color=color)


async def connect(controller: "ConnectionLifecycleController", connection_id: str | None = None) -> MockConnection:
    conn = MockConnection(connection_id)
    await controller.register_connection(conn)
    return conn


async def connect_and_join(
    controller: "ConnectionLifecycleController",
    connection_id: str | None = None,
    name: str = "",
    color: str = "#ffffff",
) -> MockConnection:
    """Register a connection, join it, and clear its outbox for clean assertions."""
    conn = await connect(controller, connection_id)
    await controller.join(conn, make_join(name=name, color=color))
    conn.clear_sent()
    return conn
