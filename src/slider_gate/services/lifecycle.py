"""Challenge lifecycle: creation, verification and eviction.

Every verification runs as one read-modify-write under a per-challenge lock:
load, check solved/expired, charge the attempt, persist, evaluate the
trail, then either consume the challenge or persist the rejection. Two
requests for the same id therefore never observe each other's
intermediate state.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum

from slider_gate.core.challenge import Challenge, ChallengeMode, PublicChallenge
from slider_gate.core.settings import Settings
from slider_gate.core.tokens import new_token, secure_randint
from slider_gate.core.trail import TrailPoint, evaluate_trail
from slider_gate.services.store import TieredChallengeStore
from slider_gate.utils.hash import client_fingerprint

logger = logging.getLogger(__name__)


class VerificationOutcome(str, Enum):
    """Internal result of a verification request."""

    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    ALREADY_SOLVED = "already_solved"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    REJECTED = "rejected"


@dataclass(frozen=True)
class VerificationResult:
    """What the lifecycle manager tells its caller about one verify call."""

    outcome: VerificationOutcome
    attempts_remaining: int | None = None
    token: str | None = None

    @property
    def verified(self) -> bool:
        return self.outcome is VerificationOutcome.VERIFIED


class KeyedLock:
    """A table of mutexes, one per key, created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, waiters = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, waiters + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _, waiters = self._locks[key]
                if waiters <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, waiters - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ChallengeLifecycleManager:
    """Owns every state transition of a challenge."""

    def __init__(
        self,
        store: TieredChallengeStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings
        self._clock = clock
        self._locks = KeyedLock()
        self._policy = settings.trail_policy
        self._success_tokens: dict[str, float] = {}
        self._token_lock = threading.Lock()

    # --- Creation -------------------------------------------------------------------
    def create(
        self,
        mode: ChallengeMode = ChallengeMode.SLIDER,
        client_address: str | None = None,
    ) -> tuple[PublicChallenge, Challenge]:
        """Issue and store a new challenge.

        Returns:
            The public view for the client and the full secret record.
        """
        cfg = self.settings
        target_x = secure_randint(cfg.target_margin_x, cfg.canvas_width - cfg.target_margin_x - 1)
        if mode is ChallengeMode.FREEDRAG:
            target_y = secure_randint(
                cfg.target_margin_top, cfg.canvas_height - cfg.target_margin_bottom - 1
            )
        else:
            target_y = cfg.slider_target_y
        target_slider_x = target_x / cfg.puzzle_range * cfg.slider_track_length

        challenge = Challenge(
            id=new_token(cfg.challenge_id_bytes),
            mode=mode,
            target_x=target_x,
            target_y=target_y,
            target_slider_x=target_slider_x,
            created_at=self._clock(),
            client_fingerprint=client_fingerprint(client_address),
        )
        self.store.put(challenge)
        public = PublicChallenge(
            id=challenge.id,
            mode=mode,
            canvas_width=cfg.canvas_width,
            canvas_height=cfg.canvas_height,
            piece_size=cfg.piece_size,
        )
        return public, challenge

    # --- Verification ---------------------------------------------------------------
    def verify(
        self,
        challenge_id: str,
        trail: Sequence[TrailPoint],
        client_address: str | None = None,
    ) -> VerificationResult:
        """Charge one attempt against a challenge and evaluate the trail."""
        with self._locks.hold(challenge_id):
            return self._verify_locked(challenge_id, trail, client_address)

    def _verify_locked(
        self,
        challenge_id: str,
        trail: Sequence[TrailPoint],
        client_address: str | None,
    ) -> VerificationResult:
        cfg = self.settings
        challenge = self.store.load(challenge_id)
        if challenge is None:
            logger.debug("Challenge %s not found", challenge_id)
            return VerificationResult(VerificationOutcome.NOT_FOUND)

        if challenge.solved:
            self.store.delete(challenge_id)
            logger.info("Replay of solved challenge %s", challenge_id)
            return VerificationResult(VerificationOutcome.ALREADY_SOLVED)

        now = self._clock()
        if challenge.is_expired(now, cfg.expiry_seconds):
            self.store.delete(challenge_id)
            logger.debug("Challenge %s expired", challenge_id)
            return VerificationResult(VerificationOutcome.EXPIRED)

        fingerprint = client_fingerprint(client_address)
        if (
            challenge.client_fingerprint is not None
            and fingerprint is not None
            and fingerprint != challenge.client_fingerprint
        ):
            logger.warning("Client address changed for challenge %s", challenge_id)
            if cfg.bind_client_address:
                return VerificationResult(VerificationOutcome.NOT_FOUND)

        challenge = replace(challenge, attempts=challenge.attempts + 1)
        if challenge.attempts > cfg.max_attempts:
            self.store.delete(challenge_id)
            logger.info("Challenge %s exhausted after %d attempts", challenge_id, cfg.max_attempts)
            return VerificationResult(VerificationOutcome.TOO_MANY_ATTEMPTS)

        # The attempt is charged before the trail is judged.
        self.store.put(challenge)

        verdict = evaluate_trail(trail, challenge.target, self._policy)
        if not verdict.accepted:
            logger.debug(
                "Challenge %s rejected (%s), attempt %d", challenge_id, verdict.reason, challenge.attempts
            )
            return VerificationResult(
                VerificationOutcome.REJECTED,
                attempts_remaining=cfg.max_attempts - challenge.attempts,
            )

        self.store.put(replace(challenge, solved=True))
        self.store.delete(challenge_id)
        token = self._issue_success_token(now)
        logger.info("Challenge %s solved on attempt %d", challenge_id, challenge.attempts)
        return VerificationResult(VerificationOutcome.VERIFIED, token=token)

    # --- Success tokens -------------------------------------------------------------
    def _issue_success_token(self, now: float) -> str:
        token = new_token(self.settings.success_token_bytes)
        with self._token_lock:
            self._success_tokens[token] = now
        return token

    def redeem_token(self, token: str) -> bool:
        """Consume a success token; each token is valid once, within its TTL."""
        with self._token_lock:
            issued_at = self._success_tokens.pop(token, None)
        if issued_at is None:
            return False
        return self._clock() - issued_at <= self.settings.success_token_ttl_seconds

    # --- Eviction -------------------------------------------------------------------
    def evict_expired(self, now: float | None = None) -> int:
        """Remove expired challenges from memory and drop stale success tokens."""
        now = self._clock() if now is None else now
        expiry = self.settings.expiry_seconds
        evicted = 0
        for candidate in self.store.memory.snapshot():
            if not candidate.is_expired(now, expiry):
                continue
            with self._locks.hold(candidate.id):
                current = self.store.memory.get(candidate.id)
                if current is not None and current.is_expired(now, expiry):
                    self.store.delete(candidate.id)
                    evicted += 1

        ttl = self.settings.success_token_ttl_seconds
        with self._token_lock:
            stale = [tok for tok, issued in self._success_tokens.items() if now - issued > ttl]
            for tok in stale:
                del self._success_tokens[tok]
        return evicted

    def now(self) -> float:
        """Return the current time on the manager's clock."""
        return self._clock()

    @property
    def active_count(self) -> int:
        return len(self.store)
