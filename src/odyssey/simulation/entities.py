"""Entity model — the mutable collections one tick operates on.

Architecture
------------
Every entity is a *flat dataclass*.  Enemy kinds share one ``Enemy`` shape;
type-specific stats come from the catalog in ``enemies.py`` and
type-specific motion from the behavior functions there, not from
subclasses.  The optional ``shield`` and ``orbit_angle`` fields are AI
scratch state that only some kinds use.

EntityStore owns the current tick's lists (player bullets, enemy bullets,
enemies, particles), the single player, and at most one boss.  Identity is
a monotonic counter, so ids are unique for the lifetime of a store.

Coordinates are screen pixels, (0, 0) top-left, +y down.  Angles are
radians, 0 = +x.  Speeds are pixels per tick (the engine runs a fixed step).
Bullet and particle ``life`` counts ticks.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field

from .enemies import EnemyType

PLAYER_COLOR = "#00ffff"
PLAYER_START_ANGLE = -math.pi / 2  # facing up


@dataclass
class Player:
    """The single locally-controlled ship."""

    x: float
    y: float
    angle: float = PLAYER_START_ANGLE
    health: float = 100.0
    max_health: float = 100.0
    color: str = PLAYER_COLOR

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "health": round(self.health, 2),
            "max_health": self.max_health,
            "color": self.color,
        }


@dataclass
class Bullet:
    """A player or enemy projectile travelling in a straight line."""

    x: float
    y: float
    angle: float
    speed: float
    life: int
    color: str

    def advance(self) -> None:
        """Move one tick along ``angle`` and burn one tick of life."""
        self.x += math.cos(self.angle) * self.speed
        self.y += math.sin(self.angle) * self.speed
        self.life -= 1

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "speed": self.speed,
            "life": self.life,
            "color": self.color,
        }


@dataclass
class Enemy:
    """A single non-boss hostile.

    ``last_fire`` is simulation time in ms; ``None`` means never fired,
    so a shooter may fire on its first tick in range.
    """

    id: int
    x: float
    y: float
    speed: float
    size: float
    hp: int
    max_hp: int
    type: EnemyType
    color: str
    angle: float = 0.0
    last_fire: float | None = None
    shield: float | None = None
    orbit_angle: float | None = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "speed": self.speed,
            "size": self.size,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "type": self.type.value,
            "color": self.color,
        }
        if self.shield is not None:
            d["shield"] = round(self.shield, 3)
        return d


@dataclass
class Boss:
    """The single active boss.

    ``boss_index`` keys into BOSS_DEFINITIONS; ``phase`` is the index of the
    phase the controller selected on its most recent update.
    """

    id: int
    name: str
    x: float
    y: float
    hp: int
    max_hp: int
    size: float
    color: str
    boss_index: int
    angle: float = math.pi / 2
    phase: int = 0
    last_fire: float | None = None
    last_action: float | None = None
    orbit_angle: float | None = None

    @property
    def health_percent(self) -> float:
        return (self.hp / self.max_hp) * 100 if self.max_hp else 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "size": self.size,
            "color": self.color,
            "phase": self.phase,
        }


@dataclass
class Particle:
    """Cosmetic spark; owned by the renderer, populated by combat events."""

    x: float
    y: float
    vx: float
    vy: float
    life: float
    color: str
    size: float

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "life": self.life,
            "color": self.color,
            "size": self.size,
        }


@dataclass
class EntityStore:
    """All entity collections for the running simulation."""

    player: Player
    bullets: list[Bullet] = field(default_factory=list)
    enemy_bullets: list[Bullet] = field(default_factory=list)
    enemies: list[Enemy] = field(default_factory=list)
    particles: list[Particle] = field(default_factory=list)
    boss: Boss | None = None
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)

    def next_id(self) -> int:
        return next(self._ids)

    def clear(self) -> None:
        """Drop every entity except the player."""
        self.bullets.clear()
        self.enemy_bullets.clear()
        self.enemies.clear()
        self.particles.clear()
        self.boss = None

    def to_dict(self) -> dict:
        return {
            "player": self.player.to_dict(),
            "bullets": [b.to_dict() for b in self.bullets],
            "enemy_bullets": [b.to_dict() for b in self.enemy_bullets],
            "enemies": [e.to_dict() for e in self.enemies],
            "particles": [p.to_dict() for p in self.particles],
            "boss": self.boss.to_dict() if self.boss is not None else None,
        }
