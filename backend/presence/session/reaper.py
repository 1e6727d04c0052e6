"""Evict participants whose owner went silent without a clean disconnect."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from presence.clock import Clock
    from presence.session.models import Participant
    from presence.session.registry import SessionRegistry

logger = structlog.get_logger()

# Callback that removes one participant through the normal leave path.
# Returns True if it actually removed something (the id may already be gone).
EvictCallback = Callable[[str], Awaitable[bool]]


class StalenessReaper:
    """Periodic liveness sweep over the session registry.

    The transport's disconnect event does not always fire (abrupt network
    loss), so a participant whose last accepted update is older than the
    liveness window is presumed gone. Eviction goes through the evict
    callback so it shares the controller's lock and produces the same
    player_left / player_count broadcasts as a real disconnect.

    Worst-case eviction latency is liveness_window_ms + interval_seconds.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        *,
        clock: Clock,
        liveness_window_ms: float,
        interval_seconds: float,
        evict: EvictCallback,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._liveness_window_ms = liveness_window_ms
        self._interval_seconds = interval_seconds
        self._evict = evict
        self._task: asyncio.Task[None] | None = None

    @property
    def liveness_window_ms(self) -> float:
        return self._liveness_window_ms

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_stale(self, participant: Participant, now: float) -> bool:
        return now - participant.last_update > self._liveness_window_ms

    async def sweep(self) -> list[str]:
        """Run one pass and return the ids that were evicted."""
        now = self._clock.now_ms()
        candidates = [p.id for p in self._registry.stale(now, self._liveness_window_ms)]
        evicted: list[str] = []
        for participant_id in candidates:
            if await self._evict(participant_id):
                evicted.append(participant_id)
        if evicted:
            logger.info("reaped stale participants", count=len(evicted), participant_ids=evicted)
        return evicted

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("staleness sweep failed")
