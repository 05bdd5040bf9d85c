"""Trail verification heuristics.

A trail is the ordered list of pointer samples recorded while the user drags
the slider knob (or the free puzzle piece). The verifier decides whether the
trail both lands on the secret target and looks like it came from a human
hand. Everything here is pure: no clocks, no randomness, no storage.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple


class TrailPoint(NamedTuple):
    """A single pointer sample: position in pixels, time in ms since drag start."""

    x: float
    y: float
    t: float


@dataclass(frozen=True)
class TrailTarget:
    """Secret coordinate a trail must reach.

    `y` is only set for free-drag challenges; slider challenges are
    one-dimensional along the x axis.
    """

    x: float
    y: float | None = None


@dataclass(frozen=True)
class TrailPolicy:
    """Thresholds applied by `evaluate_trail`."""

    tolerance: float = 5.0
    min_trail_length: int = 3
    min_duration_ms: float = 100.0
    min_secondary_spread: float = 1.0
    velocity_check_min_points: int = 10
    min_velocity_stddev: float = 0.01
    freedrag_min_trail_length: int = 5
    freedrag_min_duration_ms: float = 200.0
    freedrag_min_distance: float = 20.0


@dataclass(frozen=True)
class TrailVerdict:
    """Outcome of a trail evaluation.

    `reason` is meant for internal logs only and must never be echoed to
    the client.
    """

    accepted: bool
    reason: str = "ok"

    def __bool__(self) -> bool:
        return self.accepted


def step_velocities(trail: Sequence[TrailPoint]) -> list[float]:
    """Return dx/dt for each consecutive pair of samples with dt > 0."""
    velocities: list[float] = []
    for prev, cur in zip(trail, trail[1:]):
        dt = cur.t - prev.t
        if dt > 0:
            velocities.append((cur.x - prev.x) / dt)
    return velocities


def population_stddev(values: Sequence[float]) -> float:
    """Return the population standard deviation, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def path_length(trail: Sequence[TrailPoint]) -> float:
    """Return the total euclidean distance travelled along the trail."""
    return sum(math.hypot(cur.x - prev.x, cur.y - prev.y) for prev, cur in zip(trail, trail[1:]))


def evaluate_trail(
    trail: Sequence[TrailPoint],
    target: TrailTarget,
    policy: TrailPolicy | None = None,
) -> TrailVerdict:
    """Decide whether a trail solves the puzzle.

    Args:
        trail: Ordered pointer samples. Ordering is trusted, timestamps are not.
        target: Secret coordinate for the challenge.
        policy: Heuristic thresholds; defaults to `TrailPolicy()`.

    Returns:
        A `TrailVerdict`; every rule is independently sufficient to reject.
    """
    policy = policy or TrailPolicy()
    freedrag = target.y is not None

    if len(trail) < policy.min_trail_length:
        return TrailVerdict(False, "trail_too_short")
    if freedrag and len(trail) < policy.freedrag_min_trail_length:
        return TrailVerdict(False, "trail_too_short")

    first, last = trail[0], trail[-1]
    if abs(last.x - target.x) > policy.tolerance:
        return TrailVerdict(False, "position_mismatch")
    if freedrag and abs(last.y - target.y) > policy.tolerance:  # type: ignore[operator]
        return TrailVerdict(False, "position_mismatch")

    if last.x <= first.x:
        return TrailVerdict(False, "no_forward_movement")

    min_duration = policy.freedrag_min_duration_ms if freedrag else policy.min_duration_ms
    if last.t < min_duration:
        return TrailVerdict(False, "too_fast")

    ys = [point.y for point in trail]
    if max(ys) - min(ys) < policy.min_secondary_spread:
        return TrailVerdict(False, "no_secondary_movement")

    if freedrag and path_length(trail) < policy.freedrag_min_distance:
        return TrailVerdict(False, "insufficient_distance")

    if len(trail) > policy.velocity_check_min_points:
        stddev = population_stddev(step_velocities(trail))
        if stddev < policy.min_velocity_stddev:
            return TrailVerdict(False, "uniform_velocity")

    return TrailVerdict(True)


def verify_trail(
    trail: Sequence[TrailPoint],
    target: TrailTarget,
    policy: TrailPolicy | None = None,
) -> bool:
    """Return True if `evaluate_trail` accepts the trail."""
    return evaluate_trail(trail, target, policy).accepted
