"""Authoritative set of joined participants."""

from __future__ import annotations

from typing import TYPE_CHECKING

from presence.session.exceptions import (
    CapacityExceededError,
    DuplicateParticipantError,
    UnknownParticipantError,
)
from presence.session.models import Participant

if TYPE_CHECKING:
    from presence.session.models import Pose


class SessionRegistry:
    """In-memory registry of participants keyed by connection id.

    Pure data: no I/O and no clock of its own, callers pass timestamps in.
    Insertion order is preserved so snapshots list participants in join
    order. Every mutation is synchronous, so on a single event loop a
    count check followed by an insert cannot interleave with another join.
    """

    def __init__(self, max_players: int) -> None:
        if max_players < 1:
            raise ValueError(f"max_players must be >= 1, got {max_players}")
        self._max_players = max_players
        self._participants: dict[str, Participant] = {}  # connection_id -> Participant

    @property
    def max_players(self) -> int:
        return self._max_players

    def count(self) -> int:
        return len(self._participants)

    @property
    def is_full(self) -> bool:
        return self.count() >= self._max_players

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def get(self, participant_id: str) -> Participant | None:
        return self._participants.get(participant_id)

    def join(self, participant_id: str, *, pose: Pose, color: str, name: str, now: float) -> Participant:
        """Insert a new participant. Raise if full or if the id is taken."""
        if participant_id in self._participants:
            raise DuplicateParticipantError(participant_id)
        if self.is_full:
            raise CapacityExceededError(current=self.count(), maximum=self._max_players)
        participant = Participant(
            id=participant_id,
            position=pose.position,
            rotation=pose.rotation,
            color=color,
            name=name,
            last_update=now,
        )
        self._participants[participant_id] = participant
        return participant

    def _require(self, participant_id: str) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise UnknownParticipantError(participant_id)
        return participant

    @staticmethod
    def _touch(participant: Participant, now: float) -> None:
        # last_update never moves backwards even if a caller passes a stale timestamp
        participant.last_update = max(participant.last_update, now)

    def apply_move(self, participant_id: str, pose: Pose, *, now: float) -> Participant:
        participant = self._require(participant_id)
        participant.position = pose.position
        participant.rotation = pose.rotation
        self._touch(participant, now)
        return participant

    def apply_color(self, participant_id: str, color: str, *, now: float) -> Participant:
        participant = self._require(participant_id)
        participant.color = color
        self._touch(participant, now)
        return participant

    def remove(self, participant_id: str) -> Participant | None:
        """Remove a participant. Returns None when it was already gone.

        A transport disconnect and a liveness reap can race on the same id,
        so a second removal is a no-op rather than an error.
        """
        return self._participants.pop(participant_id, None)

    def snapshot(self, *, exclude: str | None = None) -> list[Participant]:
        """Participants in join order, optionally leaving one out."""
        return [p for p in self._participants.values() if p.id != exclude]

    def stale(self, now: float, window_ms: float) -> list[Participant]:
        """Participants silent for strictly longer than window_ms."""
        return [p for p in self._participants.values() if now - p.last_update > window_ms]

    def clear(self) -> None:
        self._participants.clear()
