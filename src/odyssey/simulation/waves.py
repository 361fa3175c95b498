"""WaveManager — wave table, spawn gating, and campaign progression.

Architecture
------------
The campaign is 25 precomputed waves: 5 sectors x 5 waves, the fifth wave
of every sector a boss wave.  WaveManager is a small state machine:

  idle -> active -> (wave complete) -> next_wave() -> idle -> active ...
                                    -> campaign_complete  (after wave 25)

``start_wave()`` arms the current wave and zeroes its counters.  While
active, ``should_spawn_enemy(live)`` rolls against the wave's per-tick
spawn probability, gated on the wave quota and a hard cap of 8 live
enemies.  ``is_wave_complete(live)`` is the single completion gate:
killed >= enemy_count and nothing alive.

Boss waves use the same gate.  Their quota of 1 is an ordinary minion that
must be spawned and killed before the boss is summoned; the boss itself is
never counted here.  The combat resolver detects boss defeat from the
boss's hp.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

from .enemies import EnemyType

SECTORS = 5
WAVES_PER_SECTOR = 5
TOTAL_WAVES = SECTORS * WAVES_PER_SECTOR
MAX_CONCURRENT_ENEMIES = 8

# Wave number at which each enemy type joins the spawn pool
_TYPE_UNLOCKS: list[tuple[int, EnemyType]] = [
    (1, EnemyType.SCOUT),
    (3, EnemyType.STINGER),
    (6, EnemyType.WEAVER),
    (10, EnemyType.SPLITTER),
    (15, EnemyType.SHIELDBEARER),
]


@dataclass(frozen=True)
class Wave:
    """One entry of the campaign wave table."""

    number: int
    sector: int
    enemy_count: int
    enemy_types: tuple[EnemyType, ...]
    spawn_rate: float
    is_boss: bool

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "sector": self.sector,
            "enemy_count": self.enemy_count,
            "enemy_types": [t.value for t in self.enemy_types],
            "spawn_rate": self.spawn_rate,
            "is_boss": self.is_boss,
        }


def sector_for_wave(wave_number: int) -> int:
    return math.ceil(wave_number / WAVES_PER_SECTOR)


def build_wave(number: int) -> Wave:
    is_boss = number % WAVES_PER_SECTOR == 0
    enemy_count = 1 if is_boss else min(5 + (number - 1) * 2, 15)
    return Wave(
        number=number,
        sector=sector_for_wave(number),
        enemy_count=enemy_count,
        enemy_types=tuple(t for unlock, t in _TYPE_UNLOCKS if number >= unlock),
        spawn_rate=max(0.01, 0.05 - number * 0.001),
        is_boss=is_boss,
    )


def generate_wave_data() -> list[Wave]:
    return [build_wave(n) for n in range(1, TOTAL_WAVES + 1)]


class WaveManager:
    """Spawn scheduler and wave/sector/campaign progression."""

    STATES = ("idle", "active", "campaign_complete")

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.waves: list[Wave] = generate_wave_data()
        self.wave_number: int = 1
        self.sector: int = 1
        self.enemies_spawned: int = 0
        self.enemies_killed: int = 0
        self.state: str = "idle"

    @property
    def wave_active(self) -> bool:
        return self.state == "active"

    @property
    def current_wave(self) -> Wave:
        return self.waves[self.wave_number - 1]

    def start_wave(self) -> Wave:
        self.state = "active"
        self.enemies_spawned = 0
        self.enemies_killed = 0
        return self.current_wave

    def should_spawn_enemy(self, live_count: int) -> bool:
        if not self.wave_active:
            return False
        if self.enemies_spawned >= self.current_wave.enemy_count:
            return False
        if live_count >= MAX_CONCURRENT_ENEMIES:
            return False
        return self._rng.random() < self.current_wave.spawn_rate

    def on_enemy_spawned(self) -> None:
        self.enemies_spawned += 1

    def on_enemy_killed(self) -> None:
        self.enemies_killed += 1

    def is_wave_complete(self, live_count: int) -> bool:
        if not self.wave_active:
            return False
        return self.enemies_killed >= self.current_wave.enemy_count and live_count == 0

    def next_wave(self) -> bool:
        """Advance to the next wave. Returns False once wave 25 is done."""
        if self.wave_number >= TOTAL_WAVES:
            self.state = "campaign_complete"
            return False
        self.wave_number += 1
        self.sector = sector_for_wave(self.wave_number)
        self.state = "idle"
        return True

    def get_progress(self) -> dict:
        return {
            "spawned": self.enemies_spawned,
            "killed": self.enemies_killed,
            "total": self.current_wave.enemy_count,
        }

    def reset(self) -> None:
        self.wave_number = 1
        self.sector = 1
        self.enemies_spawned = 0
        self.enemies_killed = 0
        self.state = "idle"

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "wave": self.wave_number,
            "sector": self.sector,
            "total_waves": TOTAL_WAVES,
            "is_boss": self.current_wave.is_boss,
            "progress": self.get_progress(),
        }
