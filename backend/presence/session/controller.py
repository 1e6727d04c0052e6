from __future__ import annotations

import asyncio
import contextlib
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from presence.clock import MonotonicClock
from presence.messaging.types import (
    CapacityResponseMessage,
    ExistingPlayersMessage,
    PlayerColorChangedMessage,
    PlayerCountMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerMovedMessage,
    PongMessage,
    ServerFullMessage,
)
from presence.session.capacity import CapacityGate
from presence.session.exceptions import CapacityExceededError, UnknownParticipantError
from presence.session.fanout import deliver
from presence.session.heartbeat import HeartbeatMonitor
from presence.session.reaper import StalenessReaper
from presence.session.throttle import MovementRateLimiter

if TYPE_CHECKING:
    from pydantic import BaseModel

    from presence.clock import Clock
    from presence.messaging.protocol import ConnectionProtocol
    from presence.messaging.types import JoinMessage, PlayerColorChangeMessage, PlayerMoveMessage
    from presence.session.models import Participant
    from presence.session.registry import SessionRegistry

logger = structlog.get_logger()


class ConnectionState(StrEnum):
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class ConnectionLifecycleController:
    """Drive each connection through CONNECTED -> JOINED -> CLOSED.

    This is the only session component that talks to connections. Every
    registry mutation, together with the capacity or throttle check in
    front of it and the broadcasts it causes, runs under one lock. The
    staleness reaper evicts through the same lock, so events about one
    participant reach each recipient in the order they were generated.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        *,
        clock: Clock | None = None,
        movement_throttle_ms: float = 50,
        liveness_window_ms: float = 10_000,
        reaper_interval_seconds: float = 30,
        heartbeat_interval_seconds: float = 5,
        heartbeat_timeout_seconds: float = 30,
    ) -> None:
        self._registry = registry
        self._clock = clock or MonotonicClock()
        self._gate = CapacityGate(registry)
        self._limiter = MovementRateLimiter(movement_throttle_ms)
        self._reaper = StalenessReaper(
            registry,
            clock=self._clock,
            liveness_window_ms=liveness_window_ms,
            interval_seconds=reaper_interval_seconds,
            evict=self._evict_if_stale,
        )
        self._heartbeat = HeartbeatMonitor(
            clock=self._clock,
            interval_seconds=heartbeat_interval_seconds,
            timeout_seconds=heartbeat_timeout_seconds,
        )
        self._connections: dict[str, ConnectionProtocol] = {}  # connection_id -> connection
        self._states: dict[str, ConnectionState] = {}  # connection_id -> state
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def limiter(self) -> MovementRateLimiter:
        return self._limiter

    @property
    def reaper(self) -> StalenessReaper:
        return self._reaper

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connection_state(self, connection_id: str) -> ConnectionState:
        return self._states.get(connection_id, ConnectionState.CLOSED)

    def _open_connections(self) -> dict[str, ConnectionProtocol]:
        return {
            cid: conn for cid, conn in self._connections.items() if self._states.get(cid) is not ConnectionState.CLOSED
        }

    async def _send(self, message: BaseModel, originator_id: str | None = None) -> list[str]:
        return await deliver(message, self._open_connections(), originator_id)

    def _count_message(self) -> PlayerCountMessage:
        return PlayerCountMessage(current=self._registry.count(), max=self._registry.max_players)

    async def _broadcast_count(self) -> None:
        await self._send(self._count_message())

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the background liveness sweep and heartbeat check."""
        self._reaper.start()
        self._heartbeat.start(lambda: list(self._connections.values()))

    async def stop(self) -> None:
        """Stop background loops and drop all session state."""
        await self._reaper.stop()
        await self._heartbeat.stop()
        self._registry.clear()
        self._limiter.clear()
        self._states.clear()
        self._connections.clear()

    async def register_connection(self, connection: ConnectionProtocol) -> None:
        """Enter CONNECTED and tell the newcomer the current head count."""
        cid = connection.connection_id
        async with self._lock:
            self._connections[cid] = connection
            self._states[cid] = ConnectionState.CONNECTED
            self._heartbeat.record_connect(cid)
            # player_count targets everyone; restricting the mapping reaches only the newcomer
            await deliver(self._count_message(), {cid: connection})

    def record_activity(self, connection: ConnectionProtocol) -> None:
        self._heartbeat.record_activity(connection.connection_id)

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """Handle a transport-level close from any state.

        Safe to call after the reaper already evicted this connection's
        participant: the registry removal is then a no-op and no second
        player_left goes out.
        """
        cid = connection.connection_id
        async with self._lock:
            previous = self._states.pop(cid, None)
            self._connections.pop(cid, None)
            self._heartbeat.record_disconnect(cid)
            if previous is ConnectionState.JOINED:
                await self._remove_participant(cid, reason="disconnect")
        logger.info("connection closed", connection_id=cid, previous_state=previous)

    # -- client requests -----------------------------------------------------

    async def check_capacity(self, connection: ConnectionProtocol) -> None:
        status = self._gate.status()
        await connection.send_message(
            CapacityResponseMessage(can_join=status.can_join, current=status.current, max=status.maximum).model_dump(),
        )

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage().model_dump())

    async def join(self, connection: ConnectionProtocol, message: JoinMessage) -> Participant | None:
        cid = connection.connection_id
        async with self._lock:
            state = self._states.get(cid)
            if state is not ConnectionState.CONNECTED:
                logger.warning("join ignored", connection_id=cid, state=state)
                return None

            try:
                participant = self._gate.admit(
                    cid,
                    pose=message.pose(),
                    color=message.color,
                    name=message.name,
                    now=self._clock.now_ms(),
                )
            except CapacityExceededError as e:
                logger.info("join rejected, session full", connection_id=cid, current=e.current, max=e.maximum)
                await self._send(ServerFullMessage(current=e.current, max=e.maximum), originator_id=cid)
                return None

            self._limiter.track(cid)
            self._states[cid] = ConnectionState.JOINED
            logger.info("player joined", connection_id=cid, player_name=participant.name)

            existing = [p.to_info() for p in self._registry.snapshot(exclude=cid)]
            await self._send(ExistingPlayersMessage(players=existing), originator_id=cid)
            await self._send(PlayerJoinedMessage(player=participant.to_info()), originator_id=cid)
            await self._broadcast_count()
        return participant

    async def move(self, connection: ConnectionProtocol, message: PlayerMoveMessage) -> bool:
        """Apply a pose update if joined and not throttled. Returns True if broadcast."""
        cid = connection.connection_id
        async with self._lock:
            if self._states.get(cid) is not ConnectionState.JOINED or cid not in self._registry:
                return False
            now = self._clock.now_ms()
            if not self._limiter.should_accept(cid, now):
                return False
            try:
                participant = self._registry.apply_move(cid, message.pose(), now=now)
            except UnknownParticipantError:
                logger.debug("move dropped for unknown participant", connection_id=cid)
                return False
            await self._send(
                PlayerMovedMessage(id=cid, position=participant.position, rotation=participant.rotation),
                originator_id=cid,
            )
        return True

    async def change_color(self, connection: ConnectionProtocol, message: PlayerColorChangeMessage) -> bool:
        cid = connection.connection_id
        async with self._lock:
            if self._states.get(cid) is not ConnectionState.JOINED:
                return False
            try:
                participant = self._registry.apply_color(cid, message.color, now=self._clock.now_ms())
            except UnknownParticipantError:
                logger.debug("color change dropped for unknown participant", connection_id=cid)
                return False
            await self._send(PlayerColorChangedMessage(id=cid, color=participant.color), originator_id=cid)
        return True

    # -- removal -------------------------------------------------------------

    async def _remove_participant(self, participant_id: str, *, reason: str) -> bool:
        """Remove and announce a participant. Caller must hold the lock."""
        self._limiter.forget(participant_id)
        participant = self._registry.remove(participant_id)
        if participant is None:
            return False
        logger.info("player left", connection_id=participant_id, reason=reason)
        await self._send(PlayerLeftMessage(id=participant_id), originator_id=participant_id)
        await self._broadcast_count()
        return True

    async def _evict_if_stale(self, participant_id: str) -> bool:
        """Reaper callback: remove a silent participant like a disconnect would.

        The connection (if still open) moves to CLOSED and is closed; its
        later transport disconnect finds nothing left to remove.
        """
        # re-check under the lock: an update may have landed since the sweep looked
        async with self._lock:
            participant = self._registry.get(participant_id)
            if participant is None or not self._reaper.is_stale(participant, self._clock.now_ms()):
                return False
            if participant_id in self._states:
                self._states[participant_id] = ConnectionState.CLOSED
            removed = await self._remove_participant(participant_id, reason="liveness_timeout")
            connection = self._connections.get(participant_id)
        await self._close_quietly(connection, "liveness_timeout")
        return removed

    @staticmethod
    async def _close_quietly(connection: ConnectionProtocol | None, reason: str) -> None:
        if connection is None:
            return
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.close(code=1000, reason=reason)
