"""Monitor connection liveness via application-level heartbeat."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from presence.clock import Clock
    from presence.messaging.protocol import ConnectionProtocol

logger = logging.getLogger(__name__)

# Returns the currently registered connections.
ConnectionResolver = Callable[[], Iterable["ConnectionProtocol"]]


class HeartbeatMonitor:
    """Close connections that stopped sending anything.

    Every inbound frame refreshes a connection's last-seen time. A single
    background loop closes connections silent for longer than the timeout;
    closing makes the WebSocket receive loop exit, which runs the normal
    disconnect path.
    """

    def __init__(self, *, clock: Clock, interval_seconds: float, timeout_seconds: float) -> None:
        if timeout_seconds <= interval_seconds:
            raise ValueError("heartbeat timeout must be longer than the heartbeat interval")
        self._clock = clock
        self._interval_seconds = interval_seconds
        self._timeout_ms = timeout_seconds * 1000.0
        self._last_seen: dict[str, float] = {}  # connection_id -> monotonic ms
        self._task: asyncio.Task[None] | None = None

    def record_connect(self, connection_id: str) -> None:
        self._last_seen[connection_id] = self._clock.now_ms()

    def record_disconnect(self, connection_id: str) -> None:
        self._last_seen.pop(connection_id, None)

    def record_activity(self, connection_id: str) -> None:
        """Refresh last-seen for a tracked connection; unknown ids are ignored."""
        if connection_id in self._last_seen:
            self._last_seen[connection_id] = self._clock.now_ms()

    def last_seen(self, connection_id: str) -> float | None:
        return self._last_seen.get(connection_id)

    def expired(self, connection_ids: Iterable[str]) -> list[str]:
        now = self._clock.now_ms()
        return [
            cid
            for cid in connection_ids
            if (seen := self._last_seen.get(cid)) is not None and now - seen > self._timeout_ms
        ]

    async def check(self, connections: Iterable[ConnectionProtocol]) -> list[str]:
        """Close every expired connection once and return their ids."""
        by_id = {conn.connection_id: conn for conn in connections}
        closed: list[str] = []
        for cid in self.expired(by_id):
            logger.info("heartbeat timeout for %s, disconnecting", cid)
            # stop tracking so a slow close is not retried on the next pass
            self._last_seen.pop(cid, None)
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await by_id[cid].close(code=1000, reason="heartbeat_timeout")
            closed.append(cid)
        return closed

    def start(self, get_connections: ConnectionResolver) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._check_loop(get_connections))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _check_loop(self, get_connections: ConnectionResolver) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self.check(list(get_connections()))
