"""Join a presence server with headless bots that walk in circles.

Usage: uv run python bin/wander-bot.py [url] [--bots N] [--seconds S]

Useful for eyeballing fan-out and throttling against a running server.
"""

import argparse
import asyncio
import math
import random
import sys
import time
from pathlib import Path

import structlog

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from presence.client.connection import WebsocketsConnection
from presence.client.reconciler import ShadowEntity
from presence.client.session import PresenceClient
from presence.session.models import Pose, Rotation, Vector3
from shared.logging import setup_logging

logger = structlog.get_logger()


class CirclingBot:
    """Presentation layer that walks a circle and logs who it sees."""

    def __init__(self, name: str, radius: float = 5.0, speed: float = 1.0) -> None:
        self.name = name
        self._radius = radius
        self._speed = speed
        self._phase = random.uniform(0, 2 * math.pi)  # noqa: S311
        self._started = time.monotonic()

    def local_pose(self) -> Pose:
        angle = self._phase + (time.monotonic() - self._started) * self._speed
        return Pose(
            position=Vector3(x=self._radius * math.cos(angle), y=0.0, z=self._radius * math.sin(angle)),
            rotation=Rotation(y=-angle),
        )

    def on_shadow_added(self, shadow: ShadowEntity) -> None:
        logger.info("sees player", bot=self.name, player_id=shadow.id, player_name=shadow.name)

    def on_shadow_updated(self, shadow: ShadowEntity) -> None:
        pass

    def on_shadow_removed(self, shadow: ShadowEntity) -> None:
        logger.info("lost player", bot=self.name, player_id=shadow.id)

    def on_player_count(self, current: int, maximum: int) -> None:
        logger.info("player count", bot=self.name, current=current, max=maximum)

    def on_capacity(self, *, can_join: bool, current: int, maximum: int) -> None:
        logger.info("capacity", bot=self.name, can_join=can_join, current=current, max=maximum)

    def on_server_full(self, current: int, maximum: int) -> None:
        logger.warning("server full", bot=self.name, current=current, max=maximum)


async def run_bot(url: str, index: int, seconds: float) -> None:
    bot = CirclingBot(name=f"bot-{index}")
    connection = await WebsocketsConnection.open(url)
    client = PresenceClient(connection, bot)
    client.start()
    try:
        await client.check_capacity()
        await client.join(bot.name, color=f"#{random.randrange(0x1000000):06x}")  # noqa: S311
        await asyncio.sleep(seconds)
    finally:
        await client.close()


async def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("url", nargs="?", default="ws://localhost:3000/ws")
    parser.add_argument("--bots", type=int, default=2)
    parser.add_argument("--seconds", type=float, default=30.0)
    args = parser.parse_args()

    setup_logging()
    await asyncio.gather(*(run_bot(args.url, i, args.seconds) for i in range(args.bots)))


if __name__ == "__main__":
    asyncio.run(main())
