"""Admission control over the session registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from presence.session.models import Participant, Pose
    from presence.session.registry import SessionRegistry


@dataclass(frozen=True)
class CapacityStatus:
    can_join: bool
    current: int
    maximum: int


class CapacityGate:
    """Answer "may a new participant join" and perform the admission itself.

    status() is the read-only pre-flight used by check_capacity. admit()
    re-checks and inserts in one synchronous step so two arrivals can never
    both pass the check and both be admitted past the cap.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    @property
    def max_players(self) -> int:
        return self._registry.max_players

    def can_join(self) -> bool:
        return self._registry.count() < self._registry.max_players

    def status(self) -> CapacityStatus:
        return CapacityStatus(
            can_join=self.can_join(),
            current=self._registry.count(),
            maximum=self._registry.max_players,
        )

    def admit(self, participant_id: str, *, pose: Pose, color: str, name: str, now: float) -> Participant:
        """Create the participant or raise CapacityExceededError with current/max counts."""
        return self._registry.join(participant_id, pose=pose, color=color, name=name, now=now)
