# src/slider_gate/services/__init__.py
"""Business logic services for the Slider Gate service."""

from .captcha import CaptchaService
from .lifecycle import ChallengeLifecycleManager, VerificationOutcome, VerificationResult
from .rate_limit import FixedWindowRateLimiter
from .store import (
    FileChallengeStore,
    MemoryChallengeStore,
    SqlChallengeStore,
    StorageError,
    TieredChallengeStore,
)
from .sweeper import CleanupSweeper

__all__ = [
    "CaptchaService",
    "ChallengeLifecycleManager",
    "CleanupSweeper",
    "FileChallengeStore",
    "FixedWindowRateLimiter",
    "MemoryChallengeStore",
    "SqlChallengeStore",
    "StorageError",
    "TieredChallengeStore",
    "VerificationOutcome",
    "VerificationResult",
]
