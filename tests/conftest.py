# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("CAPTCHA_DURABLE_BACKEND", "memory")
os.environ.setdefault("CAPTCHA_SWEEPER_ENABLED", "false")

from slider_gate.api.v1.dependencies import get_captcha_service
from slider_gate.core.challenge import Challenge
from slider_gate.core.settings import Settings
from slider_gate.core.trail import TrailPoint
from slider_gate.main import app as fastapi_app
from slider_gate.services.captcha import CaptchaService
from slider_gate.services.lifecycle import ChallengeLifecycleManager
from slider_gate.services.store import MemoryChallengeStore, StorageError, TieredChallengeStore


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DictDurableStore:
    """Durable tier double backed by a dict; can be told to fail."""

    def __init__(self) -> None:
        self.records: dict[str, Challenge] = {}
        self.fail = False
        self.writes: list[tuple[str, str]] = []

    def _check(self) -> None:
        if self.fail:
            raise StorageError("disk on fire")

    def get(self, challenge_id: str) -> Challenge | None:
        self._check()
        return self.records.get(challenge_id)

    def put(self, challenge: Challenge) -> None:
        self._check()
        self.writes.append(("put", challenge.id))
        self.records[challenge.id] = challenge

    def delete(self, challenge_id: str) -> None:
        self._check()
        self.writes.append(("delete", challenge_id))
        self.records.pop(challenge_id, None)

    def sweep(self, cutoff: float) -> int:
        self._check()
        expired = [cid for cid, rec in self.records.items() if rec.created_at < cutoff]
        for cid in expired:
            del self.records[cid]
        return len(expired)


def human_trail(target_x: float, *, start_x: float = 10.0, y: float = 20.0) -> list[TrailPoint]:
    """Return a short, slightly wobbly slider drag ending exactly on `target_x`."""
    span = target_x - start_x
    return [
        TrailPoint(start_x, y, 0),
        TrailPoint(start_x + span * 0.4, y + 6, 140),
        TrailPoint(start_x + span * 0.9, y + 11, 310),
        TrailPoint(target_x, y + 9, 460),
    ]


def freedrag_trail(target_x: float, target_y: float) -> list[TrailPoint]:
    """Return a free-drag gesture ending exactly on (`target_x`, `target_y`)."""
    start_x, start_y = 5.0, target_y + 30
    return [
        TrailPoint(start_x, start_y, 0),
        TrailPoint(start_x + (target_x - start_x) * 0.3, start_y - 8, 120),
        TrailPoint(start_x + (target_x - start_x) * 0.6, start_y - 19, 260),
        TrailPoint(start_x + (target_x - start_x) * 0.85, target_y + 4, 380),
        TrailPoint(target_x - 1, target_y + 1, 470),
        TrailPoint(target_x, target_y, 540),
    ]


def wrong_trail() -> list[TrailPoint]:
    """Return a plausible drag that stops far short of any target."""
    return human_trail(12.0, start_x=2.0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with the durable tier and sweeper disabled."""
    return Settings(durable_backend="memory", sweeper_enabled=False)


@pytest.fixture()
def durable() -> DictDurableStore:
    return DictDurableStore()


@pytest.fixture()
def store(clock: FakeClock, test_settings: Settings) -> Iterator[TieredChallengeStore]:
    tiered = TieredChallengeStore(
        MemoryChallengeStore(),
        None,
        tombstone_seconds=test_settings.expiry_seconds,
        clock=clock,
    )
    yield tiered
    tiered.close()


@pytest.fixture()
def manager(
    store: TieredChallengeStore, test_settings: Settings, clock: FakeClock
) -> ChallengeLifecycleManager:
    return ChallengeLifecycleManager(store, test_settings, clock=clock)


@pytest.fixture()
def service(test_settings: Settings, clock: FakeClock) -> CaptchaService:
    return CaptchaService(test_settings, clock=clock)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, service: CaptchaService) -> Iterator[TestClient]:
    app.dependency_overrides[get_captcha_service] = lambda: service
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_captcha_service, None)
