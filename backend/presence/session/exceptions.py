"""Typed errors raised by the session layer.

None of these are fatal. The lifecycle controller converts capacity errors
into a server_full reply and treats unknown participants as a harmless race
between a removal and messages still in flight.
"""


class PresenceError(Exception):
    """Base class for session-layer errors."""


class CapacityExceededError(PresenceError):
    """A join was attempted while the registry already holds max_players."""

    def __init__(self, *, current: int, maximum: int) -> None:
        self.current = current
        self.maximum = maximum
        super().__init__(f"session full ({current}/{maximum})")


class UnknownParticipantError(PresenceError):
    """An update referenced a participant id that is not in the registry."""

    def __init__(self, participant_id: str) -> None:
        self.participant_id = participant_id
        super().__init__(f"unknown participant {participant_id}")


class DuplicateParticipantError(PresenceError):
    """A join reused an id that already has a participant record."""

    def __init__(self, participant_id: str) -> None:
        self.participant_id = participant_id
        super().__init__(f"participant {participant_id} already joined")
