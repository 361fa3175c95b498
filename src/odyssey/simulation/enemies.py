"""Enemy catalog and per-type movement AI.

Architecture
------------
Each enemy kind is a row in ``ENEMY_DEFINITIONS`` (hp, speed, size, color,
reward) plus one update function here.  Update functions are pure per-tick
steps: they read the player position and mutate only the enemy passed in.
Firing is *not* done here; the combat resolver owns bullet creation and
asks ``wants_to_fire()`` whether a shooter is ready.

  - scout:        face the player and fly straight at it.
  - stinger:      hold a 150-250px firing band (advance / retreat / hold).
  - weaver:       chase a point orbiting the player at 200px, facing the
                  player, which reads as a circling strafe.
  - splitter:     moves exactly like a scout; its split-on-death rule lives
                  in the combat resolver.
  - shieldbearer: slow direct pursuit, shield regenerates 0.5/s up to 3.

Speeds are pixels per tick; ``dt`` is milliseconds and is only used for
shield regeneration.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .entities import Enemy


class EnemyType(str, Enum):
    SCOUT = "scout"
    STINGER = "stinger"
    WEAVER = "weaver"
    SPLITTER = "splitter"
    SHIELDBEARER = "shieldbearer"


@dataclass(frozen=True)
class EnemyDefinition:
    """Static stats for one enemy kind."""

    type: EnemyType
    hp: int
    speed: float
    size: float
    color: str
    score_value: int
    scrap_value: int


ENEMY_DEFINITIONS: dict[EnemyType, EnemyDefinition] = {
    EnemyType.SCOUT:        EnemyDefinition(EnemyType.SCOUT,        hp=1, speed=4.0, size=20.0, color="#ff3300", score_value=50,  scrap_value=15),
    EnemyType.STINGER:      EnemyDefinition(EnemyType.STINGER,      hp=3, speed=2.0, size=30.0, color="#ff0055", score_value=200, scrap_value=30),
    EnemyType.WEAVER:       EnemyDefinition(EnemyType.WEAVER,       hp=5, speed=3.0, size=25.0, color="#aa00ff", score_value=300, scrap_value=45),
    EnemyType.SPLITTER:     EnemyDefinition(EnemyType.SPLITTER,     hp=6, speed=2.5, size=28.0, color="#ffaa00", score_value=400, scrap_value=60),
    EnemyType.SHIELDBEARER: EnemyDefinition(EnemyType.SHIELDBEARER, hp=8, speed=1.5, size=35.0, color="#0088ff", score_value=500, scrap_value=75),
}

# Stinger firing band
STINGER_MIN_RANGE = 150.0
STINGER_MAX_RANGE = 250.0

# Weaver orbit
WEAVER_ORBIT_RADIUS = 200.0
WEAVER_ORBIT_STEP = 0.02  # radians per tick

# Shieldbearer shield
SHIELD_MAX = 3.0
SHIELD_REGEN_PER_SECOND = 0.5

# Shooters
FIRE_INTERVAL_MS = 2000.0
FIRE_RANGE = 600.0
_SHOOTERS = frozenset({EnemyType.STINGER, EnemyType.WEAVER})


def get_enemy_definition(enemy_type: EnemyType | str) -> EnemyDefinition:
    return ENEMY_DEFINITIONS[EnemyType(enemy_type)]


def initial_shield(enemy_type: EnemyType) -> float | None:
    """Shield a freshly spawned enemy starts with (None = no shield)."""
    return SHIELD_MAX if enemy_type is EnemyType.SHIELDBEARER else None


# -- Behaviors ---------------------------------------------------------------

def _step(enemy: Enemy, angle: float, speed: float) -> None:
    enemy.x += math.cos(angle) * speed
    enemy.y += math.sin(angle) * speed


def update_scout(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    enemy.angle = math.atan2(player_y - enemy.y, player_x - enemy.x)
    _step(enemy, enemy.angle, enemy.speed)


def update_stinger(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    dx = player_x - enemy.x
    dy = player_y - enemy.y
    dist = math.hypot(dx, dy)
    enemy.angle = math.atan2(dy, dx)

    if dist > STINGER_MAX_RANGE:
        _step(enemy, enemy.angle, enemy.speed)
    elif dist < STINGER_MIN_RANGE:
        _step(enemy, enemy.angle, -enemy.speed)


def update_weaver(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    angle_to_player = math.atan2(player_y - enemy.y, player_x - enemy.x)

    enemy.orbit_angle = (enemy.orbit_angle or 0.0) + WEAVER_ORBIT_STEP
    target_x = player_x + math.cos(enemy.orbit_angle) * WEAVER_ORBIT_RADIUS
    target_y = player_y + math.sin(enemy.orbit_angle) * WEAVER_ORBIT_RADIUS

    _step(enemy, math.atan2(target_y - enemy.y, target_x - enemy.x), enemy.speed)
    enemy.angle = angle_to_player


def update_splitter(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    update_scout(enemy, player_x, player_y, dt)


def update_shieldbearer(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    enemy.angle = math.atan2(player_y - enemy.y, player_x - enemy.x)
    _step(enemy, enemy.angle, enemy.speed)
    enemy.shield = regenerate_shield(enemy.shield or 0.0, dt)


def regenerate_shield(shield: float, dt: float) -> float:
    """shield(t + dt) = min(3, shield(t) + 0.5 * dt_seconds)."""
    return min(SHIELD_MAX, shield + SHIELD_REGEN_PER_SECOND * dt / 1000.0)


_UPDATERS: dict[EnemyType, Callable[[Enemy, float, float, float], None]] = {
    EnemyType.SCOUT: update_scout,
    EnemyType.STINGER: update_stinger,
    EnemyType.WEAVER: update_weaver,
    EnemyType.SPLITTER: update_splitter,
    EnemyType.SHIELDBEARER: update_shieldbearer,
}


def update_enemy(enemy: Enemy, player_x: float, player_y: float, dt: float) -> None:
    """Run the movement step for ``enemy``'s type."""
    _UPDATERS[enemy.type](enemy, player_x, player_y, dt)


def can_shoot(enemy_type: EnemyType) -> bool:
    return enemy_type in _SHOOTERS


def wants_to_fire(enemy: Enemy, now: float, distance: float) -> bool:
    """True if a shooter is off cooldown and within range of the player."""
    if not can_shoot(enemy.type):
        return False
    if enemy.last_fire is not None and now - enemy.last_fire <= FIRE_INTERVAL_MS:
        return False
    return distance < FIRE_RANGE
