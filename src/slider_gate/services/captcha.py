"""Service container wiring the verification engine together.

`CaptchaService` owns every piece of process-wide state (the challenge
store, the rate limiter and the sweeper) so that request handlers receive
it explicitly instead of reaching for module globals.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from slider_gate.core.settings import Settings
from slider_gate.db.session import build_engine
from slider_gate.services.lifecycle import ChallengeLifecycleManager
from slider_gate.services.rate_limit import FixedWindowRateLimiter
from slider_gate.services.store import (
    DurableChallengeStore,
    FileChallengeStore,
    MemoryChallengeStore,
    SqlChallengeStore,
    TieredChallengeStore,
)
from slider_gate.services.sweeper import CleanupSweeper

logger = logging.getLogger(__name__)


def build_durable_store(settings: Settings) -> DurableChallengeStore | None:
    """Return the durable tier selected by `durable_backend`, or None for memory-only."""
    if settings.durable_backend == "file":
        return FileChallengeStore(settings.session_path)
    if settings.durable_backend == "sql":
        engine = build_engine(
            settings.database_url,
            timeout_seconds=settings.durable_io_timeout_seconds,
            echo=settings.sql_debug,
        )
        return SqlChallengeStore(engine)
    return None


class CaptchaService:
    """Explicitly constructed owner of the challenge engine."""

    def __init__(
        self,
        settings: Settings,
        *,
        durable: DurableChallengeStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.store = TieredChallengeStore(
            MemoryChallengeStore(),
            durable if durable is not None else build_durable_store(settings),
            tombstone_seconds=settings.expiry_seconds,
            clock=clock,
        )
        self.manager = ChallengeLifecycleManager(self.store, settings, clock=clock)
        self.rate_limiter = FixedWindowRateLimiter(
            limit=settings.rate_limit_per_minute,
            window_seconds=settings.rate_limit_window_seconds,
            clock=clock,
        )
        self.sweeper = CleanupSweeper(
            self.manager,
            self.store,
            self.rate_limiter,
            interval_seconds=settings.sweep_interval_seconds,
        )

    async def start(self) -> None:
        if self.settings.sweeper_enabled:
            await self.sweeper.start()
        logger.info(
            "Captcha service started (durable=%s, sweeper=%s)",
            self.settings.durable_backend,
            self.settings.sweeper_enabled,
        )

    async def stop(self) -> None:
        await self.sweeper.stop()
        await asyncio.to_thread(self.store.close)
        logger.info("Captcha service stopped")
