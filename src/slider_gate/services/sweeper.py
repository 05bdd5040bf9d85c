"""Periodic eviction of expired challenges.

This module provides the CleanupSweeper class that keeps both storage tiers
free of challenges nobody will ever verify, and trims the rate limiter's
per-client windows while it is at it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from slider_gate.services.lifecycle import ChallengeLifecycleManager
from slider_gate.services.rate_limit import FixedWindowRateLimiter
from slider_gate.services.store import TieredChallengeStore

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Counts produced by one sweep pass."""

    memory: int = 0
    durable: int = 0
    tombstones: int = 0
    rate_windows: int = 0

    @property
    def cleaned(self) -> int:
        """Challenges removed from either tier."""
        return self.memory + self.durable


class CleanupSweeper:
    """Runs `sweep_once` on a fixed interval in the background.

    The sweep itself is synchronous file/SQL work, so each pass is pushed to
    a worker thread and the event loop stays responsive.
    """

    def __init__(
        self,
        manager: ChallengeLifecycleManager,
        store: TieredChallengeStore,
        rate_limiter: FixedWindowRateLimiter | None = None,
        interval_seconds: float = 60.0,
    ) -> None:
        self.manager = manager
        self.store = store
        self.rate_limiter = rate_limiter
        self.interval_seconds = max(0.1, float(interval_seconds))
        self.passes = 0
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    def sweep_once(self) -> SweepReport:
        """Evict expired challenges from both tiers and purge stale bookkeeping."""
        now = self.manager.now()
        cutoff = now - self.manager.settings.expiry_seconds
        report = SweepReport(
            memory=self.manager.evict_expired(now),
            durable=self.store.sweep_durable(cutoff),
            tombstones=self.store.purge_tombstones(now),
            rate_windows=self.rate_limiter.purge() if self.rate_limiter is not None else 0,
        )
        self.passes += 1
        if report.cleaned:
            logger.info(
                "Sweep removed %d expired challenges (%d memory, %d durable)",
                report.cleaned,
                report.memory,
                report.durable,
            )
        return report

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception as e:  # noqa: BLE001
                logger.error("CleanupSweeper pass failed: %s", e, exc_info=True)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
