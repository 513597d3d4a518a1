"""Decisiones de movimiento: rumbo, rebote en paredes y orientación."""

from __future__ import annotations

import math
from enum import Enum
from typing import Tuple

import numpy as np

Vector = Tuple[float, float]

ARENA_Y_BOUND = 400.0
ARENA_X_BOUND = 700.0
TURN_PROBABILITY = 0.10
WANDER_ROLL_RANGE = 100
WANDER_SENTINEL = 69


class Facing(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


def facing_for(velocity: Vector) -> Facing:
    """The dominant axis picks the facing; ties go to the vertical axis."""
    vx, vy = velocity
    if abs(vx) > abs(vy):
        return Facing.LEFT if vx < 0.0 else Facing.RIGHT
    return Facing.DOWN if vy < 0.0 else Facing.UP


def boundary_velocity(position: Vector) -> Vector | None:
    """
    Velocity that sends an agent back into the arena, or None if it is inside.

    Only one wall is handled per tick, in the order top, bottom, right, left.
    """
    x, y = position
    if y > ARENA_Y_BOUND:
        return (0.0, -1.0)
    if y < -ARENA_Y_BOUND:
        return (0.0, 1.0)
    if x > ARENA_X_BOUND:
        return (-1.0, 0.0)
    if x < -ARENA_X_BOUND:
        return (1.0, 0.0)
    return None


def integrate(position: Vector, velocity: Vector) -> Vector:
    # velocity is already a per-tick displacement
    return (position[0] + velocity[0], position[1] + velocity[1])


def random_heading(rng: np.random.Generator) -> Vector:
    angle = float(rng.uniform(0.0, 2.0 * math.pi))
    return (math.cos(angle), math.sin(angle))


def choose_heading(
    position: Vector,
    target: Vector | None,
    rng: np.random.Generator,
) -> Vector | None:
    """
    Steering decision for one mid-rate tick.

    Returns the new velocity, or None when the current one should be kept:
    either the agent did not turn this tick or its target has no known
    position. When it turns it heads for the target, unless it is standing on
    it or the rare wander roll hits, in which case it picks a random heading.
    """
    if rng.random() >= TURN_PROBABILITY:
        return None
    wander_roll = int(rng.integers(0, WANDER_ROLL_RANGE))
    if target is None:
        return None
    dx = target[0] - position[0]
    dy = target[1] - position[1]
    if (dx == 0.0 and dy == 0.0) or wander_roll == WANDER_SENTINEL:
        return random_heading(rng)
    norm = math.hypot(dx, dy)
    return (dx / norm, dy / norm)
