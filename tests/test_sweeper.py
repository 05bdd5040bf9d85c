"""Tests for the background cleanup sweeper."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest

from slider_gate.core.settings import Settings
from slider_gate.services.lifecycle import ChallengeLifecycleManager
from slider_gate.services.rate_limit import FixedWindowRateLimiter
from slider_gate.services.store import FileChallengeStore, MemoryChallengeStore, TieredChallengeStore
from slider_gate.services.sweeper import CleanupSweeper
from tests.conftest import FakeClock, human_trail


def test_sweep_evicts_expired_from_both_tiers(tmp_path: Path, clock: FakeClock) -> None:
    settings = Settings(durable_backend="memory", sweeper_enabled=False)
    files = FileChallengeStore(tmp_path)
    store = TieredChallengeStore(MemoryChallengeStore(), files, tombstone_seconds=300, clock=clock)
    manager = ChallengeLifecycleManager(store, settings, clock=clock)
    limiter = FixedWindowRateLimiter(clock=clock)
    sweeper = CleanupSweeper(manager, store, limiter)

    _, stale_a = manager.create()
    _, stale_b = manager.create()
    limiter.allow("203.0.113.1")
    clock.advance(301)
    _, fresh = manager.create()
    store.flush()

    # Left behind by a previous process: only the durable tier knows about it
    _, orphan = manager.create()
    store.flush()
    store.memory.delete(orphan.id)
    files.put(replace(orphan, created_at=clock.now - 900))
    (tmp_path / f"challenge_{'e' * 64}.json").write_text("not json")

    report = sweeper.sweep_once()
    store.flush()

    assert report.memory == 2
    assert report.durable >= 1
    assert report.rate_windows == 1
    assert sweeper.passes == 1
    assert store.load(stale_a.id) is None
    assert store.load(stale_b.id) is None
    assert files.get(orphan.id) is None
    assert store.load(fresh.id) == fresh
    assert (tmp_path / f"challenge_{'e' * 64}.json").exists()
    store.close()


def test_sweep_keeps_live_challenges_verifiable(
    manager: ChallengeLifecycleManager, store: TieredChallengeStore, clock: FakeClock
) -> None:
    sweeper = CleanupSweeper(manager, store)
    _, challenge = manager.create()
    clock.advance(299)
    assert sweeper.sweep_once().cleaned == 0
    assert manager.verify(challenge.id, human_trail(challenge.target_slider_x)).verified


def test_sweep_purges_stale_tombstones(
    manager: ChallengeLifecycleManager, store: TieredChallengeStore, clock: FakeClock
) -> None:
    sweeper = CleanupSweeper(manager, store)
    _, challenge = manager.create()
    manager.verify(challenge.id, human_trail(challenge.target_slider_x))
    clock.advance(301)
    assert sweeper.sweep_once().tombstones == 1


def test_background_loop_runs_and_stops(
    manager: ChallengeLifecycleManager, store: TieredChallengeStore
) -> None:
    async def scenario() -> None:
        sweeper = CleanupSweeper(manager, store, interval_seconds=0.1)
        await sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if sweeper.passes >= 2:
                break
            await asyncio.sleep(0.05)
        await sweeper.stop()
        assert not sweeper.running
        assert sweeper.passes >= 2

    asyncio.run(scenario())


def test_background_loop_survives_a_failing_pass(
    manager: ChallengeLifecycleManager,
    store: TieredChallengeStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    calls = {"n": 0}

    class FlakySweeper(CleanupSweeper):
        def sweep_once(self):  # type: ignore[no-untyped-def]
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("boom")
            return super().sweep_once()

    async def scenario() -> None:
        sweeper = FlakySweeper(manager, store, interval_seconds=0.1)
        await sweeper.start()
        for _ in range(100):
            if sweeper.passes >= 1:
                break
            await asyncio.sleep(0.05)
        await sweeper.stop()
        assert sweeper.passes >= 1

    asyncio.run(scenario())
    assert "CleanupSweeper pass failed" in caplog.text
