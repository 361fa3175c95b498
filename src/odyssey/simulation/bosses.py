"""Boss catalog, phase selection, and the boss movement controller.

Architecture
------------
A boss is a ``BossDefinition`` (stats + ordered phases) plus the single
``Boss`` entity in the EntityStore.  Each tick ``BossController.update``:

  1. faces the player,
  2. selects a phase from the boss's current hp percentage,
  3. dispatches that phase's movement (and, for ``spawn_minions``, the
     minion callback every 3000ms).

Phase selection takes the first phase whose window
``threshold - 33 < pct <= threshold`` contains the hp percentage, and falls
back to the first phase when none does.  With thresholds 100/50/25 the
windows are (67, 100], (17, 50] and (-8, 25]; anything in (50, 67] matches
nothing and runs phase 0 again.  That gap is part of the contract.

Firing is not done here: the combat resolver fires the fixed 1000ms
triple-spread for every boss regardless of phase.

Roster: wave N summons ``BOSS_DEFINITIONS[min(ceil(N / 5), 2)]``, so every
boss wave past the second reuses the last definition.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .entities import Boss

if TYPE_CHECKING:
    from .entities import EntityStore

PHASE_WINDOW = 33.0
MINION_INTERVAL_MS = 3000.0
ORBIT_STEP = 0.01  # radians per tick
CHARGE_STOP_DISTANCE = 50.0
PATTERN_MIN_RANGE = 200.0
PATTERN_MAX_RANGE = 300.0


class BossBehavior(str, Enum):
    SPAWN_MINIONS = "spawn_minions"
    CHARGE = "charge"
    SHOOT_PATTERN = "shoot_pattern"


@dataclass(frozen=True)
class BossPhase:
    health_threshold: float  # hp % at which this phase activates
    behavior: BossBehavior
    speed: float
    fire_rate: float  # ms; informational, the resolver fires on a fixed cadence


@dataclass(frozen=True)
class BossDefinition:
    name: str
    hp: int
    size: float
    color: str
    score_value: int
    scrap_value: int
    phases: tuple[BossPhase, ...]


BOSS_DEFINITIONS: dict[int, BossDefinition] = {
    1: BossDefinition(
        name="Hive Overseer",
        hp=500,
        size=80.0,
        color="#ff00ff",
        score_value=2000,
        scrap_value=500,
        phases=(
            BossPhase(100, BossBehavior.SPAWN_MINIONS, speed=1.5, fire_rate=1500),
            BossPhase(50, BossBehavior.CHARGE, speed=3.0, fire_rate=1000),
            BossPhase(25, BossBehavior.SHOOT_PATTERN, speed=2.0, fire_rate=500),
        ),
    ),
    2: BossDefinition(
        name="Corrupted Cruiser",
        hp=750,
        size=100.0,
        color="#00ff00",
        score_value=3000,
        scrap_value=750,
        phases=(
            BossPhase(100, BossBehavior.SHOOT_PATTERN, speed=1.0, fire_rate=800),
            BossPhase(50, BossBehavior.SPAWN_MINIONS, speed=1.5, fire_rate=600),
        ),
    ),
}

MAX_BOSS_INDEX = max(BOSS_DEFINITIONS)


def boss_index_for_wave(wave_number: int) -> int:
    """Roster index for a boss wave: min(ceil(N / 5), 2)."""
    return min(math.ceil(wave_number / 5), MAX_BOSS_INDEX)


def get_boss_definition(boss_index: int) -> BossDefinition | None:
    return BOSS_DEFINITIONS.get(boss_index)


def create_boss(store: EntityStore, wave_number: int, x: float, y: float) -> Boss | None:
    """Instantiate the boss for ``wave_number`` at (x, y), facing down."""
    index = boss_index_for_wave(wave_number)
    definition = get_boss_definition(index)
    if definition is None:
        return None
    return Boss(
        id=store.next_id(),
        name=definition.name,
        x=x,
        y=y,
        hp=definition.hp,
        max_hp=definition.hp,
        size=definition.size,
        color=definition.color,
        boss_index=index,
    )


def select_phase(definition: BossDefinition, health_percent: float) -> int:
    """Index of the active phase for ``health_percent`` (first-match, else 0)."""
    for i, phase in enumerate(definition.phases):
        if phase.health_threshold - PHASE_WINDOW < health_percent <= phase.health_threshold:
            return i
    return 0


# -- Display contract ---------------------------------------------------------

def phase_label(health_percent: float) -> str:
    """Display label banded purely on hp percentage."""
    if health_percent > 66:
        return "Phase 1"
    if health_percent > 33:
        return "Phase 2 - ENRAGED!"
    return "Phase 3 - CRITICAL!"


def boss_display(boss: Boss | None) -> dict | None:
    """Read-only snapshot for a boss health bar."""
    if boss is None:
        return None
    pct = boss.health_percent
    return {
        "name": boss.name,
        "current_hp": boss.hp,
        "max_hp": boss.max_hp,
        "percent": round(pct, 2),
        "phase_label": phase_label(pct),
    }


# -- Controller ---------------------------------------------------------------

class BossController:
    """Phase selection and behavior dispatch for the single active boss."""

    def update(
        self,
        boss: Boss,
        player_x: float,
        player_y: float,
        now: float,
        spawn_minion: Callable[[], None] | None = None,
    ) -> None:
        dx = player_x - boss.x
        dy = player_y - boss.y
        dist = math.hypot(dx, dy)
        boss.angle = math.atan2(dy, dx)

        definition = get_boss_definition(boss.boss_index)
        if definition is None:
            return

        boss.phase = select_phase(definition, boss.health_percent)
        phase = definition.phases[boss.phase]

        if phase.behavior is BossBehavior.SPAWN_MINIONS:
            self._spawn_minions(boss, phase, now, spawn_minion)
        elif phase.behavior is BossBehavior.CHARGE:
            if dist > CHARGE_STOP_DISTANCE:
                self._advance(boss, phase.speed)
        elif phase.behavior is BossBehavior.SHOOT_PATTERN:
            if dist > PATTERN_MAX_RANGE:
                self._advance(boss, phase.speed)
            elif dist < PATTERN_MIN_RANGE:
                self._advance(boss, -phase.speed)

    @staticmethod
    def _advance(boss: Boss, speed: float) -> None:
        boss.x += math.cos(boss.angle) * speed
        boss.y += math.sin(boss.angle) * speed

    @staticmethod
    def _spawn_minions(
        boss: Boss,
        phase: BossPhase,
        now: float,
        spawn_minion: Callable[[], None] | None,
    ) -> None:
        """Slow circular drift; summon a minion every MINION_INTERVAL_MS."""
        boss.orbit_angle = (boss.orbit_angle or 0.0) + ORBIT_STEP
        boss.x += math.cos(boss.orbit_angle) * phase.speed
        boss.y += math.sin(boss.orbit_angle) * phase.speed

        if spawn_minion is None:
            return
        if boss.last_action is None or now - boss.last_action > MINION_INTERVAL_MS:
            spawn_minion()
            boss.last_action = now
