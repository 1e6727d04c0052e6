import asyncio
from unittest.mock import AsyncMock

from presence.session.reaper import StalenessReaper
from presence.session.registry import SessionRegistry
from presence.tests.helpers import make_pose
from presence.tests.mocks import FakeClock


def _reaper(registry, clock, evict=None, interval_seconds=30.0):
    if evict is None:

        async def evict(pid):
            return registry.remove(pid) is not None

    return StalenessReaper(
        registry,
        clock=clock,
        liveness_window_ms=10_000,
        interval_seconds=interval_seconds,
        evict=evict,
    )


class TestStalenessReaper:
    async def test_sweep_evicts_only_stale(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        registry.join("quiet", pose=make_pose(), color="#fff", name="", now=0.0)
        clock.set(8_000.0)
        registry.join("busy", pose=make_pose(), color="#fff", name="", now=clock.now_ms())
        reaper = _reaper(registry, clock)

        clock.set(10_001.0)
        evicted = await reaper.sweep()

        assert evicted == ["quiet"]
        assert [p.id for p in registry.snapshot()] == ["busy"]

    async def test_sweep_at_exact_window_keeps_participant(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        registry.join("a", pose=make_pose(), color="#fff", name="", now=0.0)
        reaper = _reaper(registry, clock)

        clock.set(10_000.0)
        assert await reaper.sweep() == []
        assert "a" in registry

    async def test_eviction_skipped_when_callback_declines(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        registry.join("a", pose=make_pose(), color="#fff", name="", now=0.0)
        evict = AsyncMock(return_value=False)
        reaper = _reaper(registry, clock, evict=evict)

        clock.set(60_000.0)
        evicted = await reaper.sweep()

        evict.assert_awaited_once_with("a")
        assert evicted == []

    async def test_is_stale(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        participant = registry.join("a", pose=make_pose(), color="#fff", name="", now=0.0)
        reaper = _reaper(registry, clock)

        assert reaper.is_stale(participant, 10_000.0) is False
        assert reaper.is_stale(participant, 10_000.5) is True

    async def test_background_loop_sweeps_and_stops(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        registry.join("a", pose=make_pose(), color="#fff", name="", now=0.0)
        clock.set(20_000.0)
        reaper = _reaper(registry, clock, interval_seconds=0.01)

        reaper.start()
        assert reaper.is_running
        for _ in range(50):
            if "a" not in registry:
                break
            await asyncio.sleep(0.01)
        await reaper.stop()

        assert "a" not in registry
        assert reaper.is_running is False

    async def test_loop_survives_failing_sweep(self):
        clock = FakeClock()
        registry = SessionRegistry(max_players=5)
        registry.join("a", pose=make_pose(), color="#fff", name="", now=0.0)
        clock.set(20_000.0)
        calls = []

        async def evict(pid):
            calls.append(pid)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return registry.remove(pid) is not None

        reaper = _reaper(registry, clock, evict=evict, interval_seconds=0.01)

        reaper.start()
        for _ in range(50):
            if "a" not in registry:
                break
            await asyncio.sleep(0.01)
        await reaper.stop()

        assert len(calls) >= 2
        assert "a" not in registry
