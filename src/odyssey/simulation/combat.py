"""CombatResolver — the per-tick orchestrator.

Architecture
------------
``update(dt)`` runs one fixed step over the EntityStore in this order:

  1. player health regen (Regen Field upgrade)
  2. spawn gating (WaveManager) and an edge spawn if it allows one
  3. progression: wave clear -> upgrade offer, or on boss waves the boss
  4. player bullets: advance, then test against enemies (newest first)
  5. enemy bullets: advance, then test against the player
  6. enemies: movement AI, crash check, shooter fire
  7. boss: BossController, crash check, triple-spread fire, bullet hits
  8. cosmetic particles

The whole tick is skipped while the run is over or an upgrade offer is
waiting for the player.

Hit rule (enemy): every player-bullet hit decrements hp by 1.  If the enemy
still has shield, the hit consumes one shield point *instead of* checking
for death; only with shield exhausted and hp <= 0 is it removed.  So a
shieldbearer's hits-to-kill equals its hp stat; shield only holds the death
check off while it lasts, and hp may sit at or below zero until then.

Hit rule (boss): radius ``boss.size``, always exactly 1 damage, and at most
one bullet lands per tick.  The weapon damage multiplier is not applied to
either path.

Crash: an enemy or the boss within ``size + 15`` of the player kills the
player outright.

Time: ``now`` is simulation milliseconds (the sum of ``dt`` values), used
for the 2000ms shooter cadence, 1000ms boss fire, and 3000ms minion spawns.

Events published on the EventBus:
  - ``wave_complete`` / ``upgrade_offer``: wave (or boss) cleared
  - ``boss_spawned`` / ``boss_defeated``
  - ``enemy_destroyed`` / ``enemy_split``
  - ``player_hit`` / ``game_over``
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING

from loguru import logger

from .bosses import BossController, create_boss, get_boss_definition
from .enemies import (
    EnemyType,
    get_enemy_definition,
    initial_shield,
    update_enemy,
    wants_to_fire,
)
from .entities import Bullet, Enemy, Particle

if TYPE_CHECKING:
    from odyssey.comms.event_bus import EventBus
    from .entities import EntityStore
    from .upgrades import Upgrade, UpgradeSystem
    from .waves import WaveManager

# Collision radii
ENEMY_HIT_MARGIN = 10.0
PLAYER_RADIUS = 20.0
CRASH_MARGIN = 15.0

ENEMY_BULLET_DAMAGE = 10.0
SPAWN_OFFSET = 50.0  # how far outside the arena enemies appear
SPLIT_OFFSET = 20.0
MINION_SPAWN_RADIUS = 100.0
BOSS_SPAWN_Y = -100.0

ENEMY_BULLET_SPEED = 8.0
ENEMY_BULLET_LIFE = 100
BOSS_FIRE_INTERVAL_MS = 1000.0
BOSS_BULLET_SPEED = 6.0
BOSS_BULLET_LIFE = 120
BOSS_SPREAD = 0.2

SPARK_COLOR = "#ffff00"
SHIELD_SPARK_COLOR = "#0088ff"


class CombatResolver:
    """Advances one tick of combat and dispatches its side effects."""

    def __init__(
        self,
        store: EntityStore,
        waves: WaveManager,
        upgrades: UpgradeSystem,
        event_bus: EventBus,
        width: float,
        height: float,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.waves = waves
        self.upgrades = upgrades
        self._event_bus = event_bus
        self.width = width
        self.height = height
        self._rng = rng or random.Random()
        self._boss_controller = BossController()

        self.now: float = 0.0
        self.score: int = 0
        self.game_over: bool = False
        self.upgrade_offer: list[Upgrade] | None = None

    @property
    def paused(self) -> bool:
        return self.game_over or self.upgrade_offer is not None

    def reset(self) -> None:
        self.now = 0.0
        self.score = 0
        self.game_over = False
        self.upgrade_offer = None

    # -- Tick ----------------------------------------------------------------

    def update(self, dt: float) -> None:
        """Advance the simulation by one fixed step of ``dt`` milliseconds."""
        if self.paused:
            return
        self.now += dt

        self._regenerate_player(dt)
        self._spawn_enemies()
        self._check_progression()
        self._update_player_bullets()
        self._update_enemy_bullets()
        self._update_enemies(dt)
        self._update_boss()
        self._update_particles()

    def _regenerate_player(self, dt: float) -> None:
        player = self.store.player
        regen = self.upgrades.modifiers.health_regen
        if regen > 0 and 0 < player.health < player.max_health:
            player.health = min(player.max_health, player.health + regen * dt / 1000.0)

    # -- Spawning & progression ----------------------------------------------

    def _spawn_enemies(self) -> None:
        if not self.waves.should_spawn_enemy(len(self.store.enemies)):
            return
        # Top, right, or left edge only
        edge = self._rng.randrange(3)
        if edge == 0:
            x, y = self._rng.random() * self.width, -SPAWN_OFFSET
        elif edge == 1:
            x, y = self.width + SPAWN_OFFSET, self._rng.random() * self.height
        else:
            x, y = -SPAWN_OFFSET, self._rng.random() * self.height

        enemy_type = self._rng.choice(self.waves.current_wave.enemy_types)
        self.spawn_enemy(enemy_type, x, y)
        self.waves.on_enemy_spawned()

    def spawn_enemy(self, enemy_type: EnemyType, x: float, y: float) -> Enemy:
        """Create an enemy from its catalog entry and add it to the store."""
        definition = get_enemy_definition(enemy_type)
        enemy = Enemy(
            id=self.store.next_id(),
            x=x,
            y=y,
            speed=definition.speed,
            size=definition.size,
            hp=definition.hp,
            max_hp=definition.hp,
            type=definition.type,
            color=definition.color,
            shield=initial_shield(definition.type),
        )
        self.store.enemies.append(enemy)
        return enemy

    def _check_progression(self) -> None:
        if self.store.boss is not None:
            return
        if not self.waves.is_wave_complete(len(self.store.enemies)):
            return
        if self.waves.current_wave.is_boss:
            self._summon_boss()
        else:
            self._offer_upgrades()

    def _summon_boss(self) -> None:
        wave_number = self.waves.wave_number
        boss = create_boss(self.store, wave_number, self.width / 2, BOSS_SPAWN_Y)
        if boss is None:
            logger.warning(f"No boss defined for wave {wave_number}, skipping to upgrades")
            self._offer_upgrades()
            return
        self.store.boss = boss
        logger.info(f"Wave {wave_number}: boss {boss.name} summoned")
        self._event_bus.publish("boss_spawned", {
            "name": boss.name,
            "hp": boss.hp,
            "boss_index": boss.boss_index,
        })

    def _offer_upgrades(self) -> None:
        self.upgrade_offer = self.upgrades.generate_upgrade_options()
        self._event_bus.publish("wave_complete", {
            "wave": self.waves.wave_number,
            "sector": self.waves.sector,
        })
        self._event_bus.publish("upgrade_offer", {
            "options": [u.to_dict() for u in self.upgrade_offer],
            "scrap": self.upgrades.scrap,
        })

    # -- Player bullets --------------------------------------------------------

    def _update_player_bullets(self) -> None:
        bullets = self.store.bullets
        enemies = self.store.enemies
        for i in range(len(bullets) - 1, -1, -1):
            b = bullets[i]
            b.advance()

            hit = False
            for j in range(len(enemies) - 1, -1, -1):
                e = enemies[j]
                if math.hypot(b.x - e.x, b.y - e.y) < e.size + ENEMY_HIT_MARGIN:
                    hit = True
                    self._hit_enemy(j, b)
                    break

            if hit or b.life <= 0:
                del bullets[i]

    def _hit_enemy(self, index: int, bullet: Bullet) -> None:
        e = self.store.enemies[index]
        e.hp -= 1
        self.spawn_particles(bullet.x, bullet.y, SPARK_COLOR, 3)
        if e.shield is not None and e.shield > 0:
            e.shield -= 1
            self.spawn_particles(bullet.x, bullet.y, SHIELD_SPARK_COLOR, 3)
        elif e.hp <= 0:
            self._destroy_enemy(index)

    def _destroy_enemy(self, index: int) -> None:
        e = self.store.enemies.pop(index)
        definition = get_enemy_definition(e.type)
        self.score += definition.score_value
        self.upgrades.add_scrap(definition.scrap_value)
        self.waves.on_enemy_killed()
        self.spawn_particles(e.x, e.y, e.color, 15)
        self._event_bus.publish("enemy_destroyed", {
            "enemy_id": e.id,
            "type": e.type.value,
            "score": definition.score_value,
            "scrap": definition.scrap_value,
        })

        if e.type is EnemyType.SPLITTER:
            spawned = [
                self.spawn_enemy(EnemyType.SCOUT, e.x + dx, e.y)
                for dx in (-SPLIT_OFFSET, SPLIT_OFFSET)
            ]
            self._event_bus.publish("enemy_split", {
                "enemy_id": e.id,
                "spawned": [s.id for s in spawned],
            })

    # -- Enemy bullets ---------------------------------------------------------

    def _update_enemy_bullets(self) -> None:
        player = self.store.player
        bullets = self.store.enemy_bullets
        for i in range(len(bullets) - 1, -1, -1):
            b = bullets[i]
            b.advance()

            if math.hypot(b.x - player.x, b.y - player.y) < PLAYER_RADIUS:
                damage = ENEMY_BULLET_DAMAGE * (1 - self.upgrades.modifiers.damage_resistance)
                player.health -= damage
                del bullets[i]
                self.spawn_particles(b.x, b.y, player.color, 5)
                self._event_bus.publish("player_hit", {
                    "damage": damage,
                    "health": player.health,
                })
                if player.health <= 0:
                    self._trigger_game_over()
                continue

            if b.life <= 0:
                del bullets[i]

    # -- Enemies ---------------------------------------------------------------

    def _update_enemies(self, dt: float) -> None:
        player = self.store.player
        for e in reversed(self.store.enemies):
            dx = player.x - e.x
            dy = player.y - e.y
            dist = math.hypot(dx, dy)
            angle_to_player = math.atan2(dy, dx)

            update_enemy(e, player.x, player.y, dt)

            if dist < e.size + CRASH_MARGIN:
                self._crash()

            if wants_to_fire(e, self.now, dist):
                self.store.enemy_bullets.append(Bullet(
                    x=e.x,
                    y=e.y,
                    angle=angle_to_player,
                    speed=ENEMY_BULLET_SPEED,
                    life=ENEMY_BULLET_LIFE,
                    color=e.color,
                ))
                e.last_fire = self.now

    # -- Boss ------------------------------------------------------------------

    def _spawn_minion(self) -> None:
        boss = self.store.boss
        if boss is None:
            return
        angle = self._rng.random() * math.pi * 2
        self.spawn_enemy(
            EnemyType.SCOUT,
            boss.x + math.cos(angle) * MINION_SPAWN_RADIUS,
            boss.y + math.sin(angle) * MINION_SPAWN_RADIUS,
        )

    def _update_boss(self) -> None:
        boss = self.store.boss
        if boss is None:
            return
        player = self.store.player

        self._boss_controller.update(boss, player.x, player.y, self.now, self._spawn_minion)

        if math.hypot(boss.x - player.x, boss.y - player.y) < boss.size + CRASH_MARGIN:
            self._crash()

        definition = get_boss_definition(boss.boss_index)
        if definition is not None and (
            boss.last_fire is None or self.now - boss.last_fire > BOSS_FIRE_INTERVAL_MS
        ):
            angle = math.atan2(player.y - boss.y, player.x - boss.x)
            for k in (-1, 0, 1):
                self.store.enemy_bullets.append(Bullet(
                    x=boss.x,
                    y=boss.y,
                    angle=angle + k * BOSS_SPREAD,
                    speed=BOSS_BULLET_SPEED,
                    life=BOSS_BULLET_LIFE,
                    color=boss.color,
                ))
            boss.last_fire = self.now

        bullets = self.store.bullets
        for i in range(len(bullets) - 1, -1, -1):
            b = bullets[i]
            if math.hypot(b.x - boss.x, b.y - boss.y) < boss.size:
                boss.hp -= 1
                del bullets[i]
                self.spawn_particles(b.x, b.y, boss.color, 5)
                if boss.hp <= 0:
                    self._defeat_boss()
                break

    def _defeat_boss(self) -> None:
        boss = self.store.boss
        definition = get_boss_definition(boss.boss_index)
        self.score += definition.score_value
        self.upgrades.add_scrap(definition.scrap_value)
        self.spawn_particles(boss.x, boss.y, boss.color, 50)
        self.store.boss = None
        logger.info(f"Boss {boss.name} defeated on wave {self.waves.wave_number}")
        self._event_bus.publish("boss_defeated", {
            "name": boss.name,
            "score": definition.score_value,
            "scrap": definition.scrap_value,
        })
        self._offer_upgrades()

    # -- Player death ----------------------------------------------------------

    def _crash(self) -> None:
        if self.game_over:
            return
        player = self.store.player
        player.health = 0
        self.spawn_particles(player.x, player.y, player.color, 50)
        self._trigger_game_over()

    def _trigger_game_over(self) -> None:
        if self.game_over:
            return
        self.game_over = True
        logger.info(f"Game over on wave {self.waves.wave_number}, score {self.score}")
        self._event_bus.publish("game_over", {
            "score": self.score,
            "wave": self.waves.wave_number,
        })

    # -- Particles -------------------------------------------------------------

    def spawn_particles(self, x: float, y: float, color: str, count: int) -> None:
        for _ in range(count):
            self.store.particles.append(Particle(
                x=x,
                y=y,
                vx=(self._rng.random() - 0.5) * 10,
                vy=(self._rng.random() - 0.5) * 10,
                life=20 + self._rng.random() * 20,
                color=color,
                size=self._rng.random() * 4 + 1,
            ))

    def _update_particles(self) -> None:
        particles = self.store.particles
        for p in particles:
            p.x += p.vx
            p.y += p.vy
            p.life -= 1
        particles[:] = [p for p in particles if p.life > 0]
