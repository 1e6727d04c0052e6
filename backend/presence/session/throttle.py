"""Per-participant movement throttle."""


class MovementRateLimiter:
    """Enforce a minimum spacing between accepted pose updates.

    Entries are keyed by the same connection id as the session registry:
    track() on join, forget() on removal. Updates arriving too early are
    dropped by the caller, never queued, since the next tick supersedes
    them (last-write-wins sampling).
    """

    def __init__(self, throttle_ms: float) -> None:
        if throttle_ms < 0:
            raise ValueError(f"throttle_ms must be >= 0, got {throttle_ms}")
        self._throttle_ms = throttle_ms
        self._last_accepted: dict[str, float | None] = {}  # connection_id -> ms, None until first move

    @property
    def throttle_ms(self) -> float:
        return self._throttle_ms

    def track(self, participant_id: str) -> None:
        """Start tracking with no baseline, so the first move is always accepted."""
        self._last_accepted[participant_id] = None

    def forget(self, participant_id: str) -> None:
        self._last_accepted.pop(participant_id, None)

    def is_tracked(self, participant_id: str) -> bool:
        return participant_id in self._last_accepted

    def last_accepted(self, participant_id: str) -> float | None:
        return self._last_accepted.get(participant_id)

    def should_accept(self, participant_id: str, now: float) -> bool:
        """Return True if the update may go through, and record now as the new baseline.

        Call once per candidate update: acceptance mutates the baseline.
        """
        last = self._last_accepted.get(participant_id)
        if last is not None and now - last < self._throttle_ms:
            return False
        self._last_accepted[participant_id] = now
        return True

    def clear(self) -> None:
        self._last_accepted.clear()
