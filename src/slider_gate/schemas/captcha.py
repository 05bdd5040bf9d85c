"""Schemas for the captcha challenge and verification endpoints."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from slider_gate.core.challenge import ChallengeMode
from slider_gate.core.trail import TrailPoint

HEX_ID_PATTERN = r"^[0-9a-f]{16,128}$"


class VerifyError(str, Enum):
    """Client-visible failure classes.

    Deliberately coarse: not-found, expired, replayed and wrong solutions
    all collapse into `verification_failed`.
    """

    VERIFICATION_FAILED = "verification_failed"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


class ChallengeOut(BaseModel):
    """Public fields of a freshly issued challenge. Never carries the target."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    mode: ChallengeMode
    canvas_width: int = Field(alias="canvasWidth")
    canvas_height: int = Field(alias="canvasHeight")
    piece_size: int = Field(alias="pieceSize")


class TrailPointIn(BaseModel):
    """One pointer sample as sent by the widget."""

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)
    t: float = Field(allow_inf_nan=False)

    def to_point(self) -> TrailPoint:
        return TrailPoint(self.x, self.y, self.t)


class VerifyRequest(BaseModel):
    """Verification request body."""

    model_config = ConfigDict(populate_by_name=True)

    challenge_id: str = Field(alias="challengeId", pattern=HEX_ID_PATTERN)
    trail: list[TrailPointIn] = Field(min_length=1)


class VerifyOut(BaseModel):
    """Verification response; optional fields are omitted when unset."""

    model_config = ConfigDict(populate_by_name=True)

    verified: bool
    attempts_remaining: int | None = Field(default=None, alias="attemptsRemaining")
    token: str | None = None
    error: VerifyError | None = None


class RedeemRequest(BaseModel):
    """Downstream check of a success token."""

    token: str = Field(pattern=HEX_ID_PATTERN)


class RedeemOut(BaseModel):
    valid: bool


class StatusOut(BaseModel):
    """Process-wide health snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    version: str
    active_challenges: int = Field(alias="activeChallenges")
    timestamp: int


class CleanupOut(BaseModel):
    """Result of a manual sweep."""

    cleaned: int
    memory: int
    durable: int
