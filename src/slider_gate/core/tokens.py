"""Unguessable identifiers and tokens.

All randomness that protects a challenge flows through this module so there
is exactly one place that talks to the OS CSPRNG.
"""
from __future__ import annotations

import secrets
from typing import Final

MIN_TOKEN_BYTES: Final[int] = 16  # 128 bits


class RandomnessError(RuntimeError):
    """Raised when the operating system cannot supply secure random bytes.

    This is fatal: challenges must not be issued from a weaker source.
    """


def new_token(byte_length: int) -> str:
    """Return `byte_length` random bytes encoded as lowercase hex.

    Raises:
        ValueError: If fewer than 128 bits of entropy are requested.
        RandomnessError: If the CSPRNG is unavailable.
    """
    if byte_length < MIN_TOKEN_BYTES:
        raise ValueError(f"token must carry at least {MIN_TOKEN_BYTES} bytes of entropy")
    try:
        return secrets.token_hex(byte_length)
    except NotImplementedError as err:  # pragma: no cover - no urandom on this platform
        raise RandomnessError("secure random source unavailable") from err


def secure_randint(low: int, high: int) -> int:
    """Return a uniformly distributed integer in the inclusive range [low, high]."""
    if high < low:
        raise ValueError("empty range")
    try:
        return low + secrets.randbelow(high - low + 1)
    except NotImplementedError as err:  # pragma: no cover - no urandom on this platform
        raise RandomnessError("secure random source unavailable") from err
