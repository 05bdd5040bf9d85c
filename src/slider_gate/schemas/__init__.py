# src/slider_gate/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .captcha import (
    ChallengeOut,
    CleanupOut,
    RedeemOut,
    RedeemRequest,
    StatusOut,
    TrailPointIn,
    VerifyError,
    VerifyOut,
    VerifyRequest,
)

__all__ = [
    "ChallengeOut", "CleanupOut",
    "RedeemOut", "RedeemRequest",
    "StatusOut",
    "TrailPointIn",
    "VerifyError", "VerifyOut", "VerifyRequest",
]
