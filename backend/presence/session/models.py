from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Vector3(BaseModel):
    """World-space position. No bounds are enforced."""

    x: float
    y: float
    z: float


class Rotation(BaseModel):
    """Orientation with a required yaw.

    Extra axes (x, z, w, ...) are accepted and echoed back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    y: float


class Pose(BaseModel):
    position: Vector3
    rotation: Rotation


COLOR_FIELD = Field(min_length=1)
NAME_FIELD = Field(default="", max_length=50)


class ParticipantInfo(BaseModel):
    """Participant as seen by other clients."""

    id: str
    position: Vector3
    rotation: Rotation
    color: str
    name: str


@dataclass
class Participant:
    """Authoritative server-side record of one joined player.

    Lifecycle:
    - Created by SessionRegistry.join after the capacity check passes
    - position/rotation/color replaced by apply_move/apply_color
    - Removed on disconnect or by the staleness reaper
    """

    id: str
    position: Vector3
    rotation: Rotation
    color: str
    name: str
    last_update: float  # monotonic ms of the last accepted update; join counts

    def to_info(self) -> ParticipantInfo:
        return ParticipantInfo(
            id=self.id,
            position=self.position,
            rotation=self.rotation,
            color=self.color,
            name=self.name,
        )
