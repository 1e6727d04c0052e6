"""Interface between the presence client and whatever renders the world.

The presentation layer supplies the local pose every tick and is told
about remote players. It never mutates presence state itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from presence.client.reconciler import ShadowEntity
    from presence.session.models import Pose


class PresentationLayer(Protocol):
    def local_pose(self) -> Pose: ...

    def on_shadow_added(self, shadow: ShadowEntity) -> None: ...

    def on_shadow_updated(self, shadow: ShadowEntity) -> None: ...

    def on_shadow_removed(self, shadow: ShadowEntity) -> None: ...

    def on_player_count(self, current: int, maximum: int) -> None: ...

    def on_capacity(self, *, can_join: bool, current: int, maximum: int) -> None: ...

    def on_server_full(self, current: int, maximum: int) -> None: ...


class NullPresentation:
    """Headless presentation: stands still at a fixed pose and ignores callbacks."""

    def __init__(self, pose: Pose) -> None:
        self.pose = pose

    def local_pose(self) -> Pose:
        return self.pose

    def on_shadow_added(self, shadow: ShadowEntity) -> None:
        pass

    def on_shadow_updated(self, shadow: ShadowEntity) -> None:
        pass

    def on_shadow_removed(self, shadow: ShadowEntity) -> None:
        pass

    def on_player_count(self, current: int, maximum: int) -> None:
        pass

    def on_capacity(self, *, can_join: bool, current: int, maximum: int) -> None:
        pass

    def on_server_full(self, current: int, maximum: int) -> None:
        pass
