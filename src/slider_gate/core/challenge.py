"""Challenge records and their public projection."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from slider_gate.core.trail import TrailTarget


class ChallengeMode(str, Enum):
    """Puzzle geometry a challenge was issued for.

    SLIDER is the canonical one-dimensional track; FREEDRAG lets the piece
    move on both axes and is verified against the full 2-D hole position.
    """

    SLIDER = "slider"
    FREEDRAG = "freedrag"


@dataclass(frozen=True)
class Challenge:
    """One issued puzzle instance.

    Instances are immutable; state transitions produce a new record via
    `dataclasses.replace` so a reader never observes a half-updated value.
    """

    id: str
    mode: ChallengeMode
    target_x: int
    target_y: int
    target_slider_x: float
    created_at: float
    attempts: int = 0
    solved: bool = False
    client_fingerprint: str | None = None

    @property
    def target(self) -> TrailTarget:
        """Return the coordinate a trail for this challenge must reach."""
        if self.mode is ChallengeMode.FREEDRAG:
            return TrailTarget(x=self.target_x, y=self.target_y)
        return TrailTarget(x=self.target_slider_x)

    def is_expired(self, now: float, expiry_seconds: float) -> bool:
        return now - self.created_at > expiry_seconds

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible mapping containing every field."""
        data = asdict(self)
        data["mode"] = self.mode.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Challenge:
        """Rebuild a challenge from `to_dict` output.

        Raises:
            KeyError, TypeError, ValueError: If the mapping is incomplete or corrupt.
        """
        return cls(
            id=str(data["id"]),
            mode=ChallengeMode(data["mode"]),
            target_x=int(data["target_x"]),
            target_y=int(data["target_y"]),
            target_slider_x=float(data["target_slider_x"]),
            created_at=float(data["created_at"]),
            attempts=int(data.get("attempts", 0)),
            solved=bool(data.get("solved", False)),
            client_fingerprint=data.get("client_fingerprint"),
        )


@dataclass(frozen=True)
class PublicChallenge:
    """The part of a challenge that is safe to hand to the client."""

    id: str
    mode: ChallengeMode
    canvas_width: int
    canvas_height: int
    piece_size: int
