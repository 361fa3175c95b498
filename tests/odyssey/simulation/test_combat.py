"""Unit tests for CombatResolver — hits, damage, spawning, progression."""

from __future__ import annotations

import math
import random

import pytest

from odyssey.simulation.combat import CombatResolver
from odyssey.simulation.enemies import EnemyType
from odyssey.simulation.entities import Boss, Bullet, EntityStore, Player
from odyssey.simulation.upgrades import UpgradeSystem, get_upgrade
from odyssey.simulation.waves import WaveManager

pytestmark = pytest.mark.unit

WIDTH = 1280.0
HEIGHT = 720.0


class SimpleEventBus:
    """Minimal EventBus that records what was published."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def publish(self, topic: str, data: object = None) -> None:
        self.events.append((topic, data))

    def topics(self) -> list[str]:
        return [t for t, _ in self.events]

    def last(self, topic: str):
        for t, data in reversed(self.events):
            if t == topic:
                return data
        return None


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def make_resolver(spawn_roll: float = 0.99, player_pos=(640.0, 600.0)):
    """Resolver on wave 1 whose spawner never fires unless ``spawn_roll`` is low."""
    bus = SimpleEventBus()
    store = EntityStore(player=Player(x=player_pos[0], y=player_pos[1]))
    waves = WaveManager(rng=FixedRandom(spawn_roll))
    waves.start_wave()
    upgrades = UpgradeSystem(rng=random.Random(1))
    resolver = CombatResolver(store, waves, upgrades, bus, WIDTH, HEIGHT, rng=random.Random(3))
    return resolver, bus


def bullet_onto(x: float, y: float) -> Bullet:
    """A player bullet that lands exactly on (x, y) after one advance."""
    return Bullet(x=x, y=y + 20.0, angle=-math.pi / 2, speed=20.0, life=60, color="#00ffff")


# --------------------------------------------------------------------------
# Player bullets vs enemies
# --------------------------------------------------------------------------

class TestEnemyHits:
    def test_scout_dies_to_one_hit(self):
        r, bus = make_resolver()
        scout = r.spawn_enemy(EnemyType.SCOUT, 640.0, 200.0)
        r.store.bullets.append(bullet_onto(scout.x, scout.y))
        r.update(16)
        assert r.store.enemies == []
        assert r.store.bullets == []
        assert r.score == 50
        assert r.upgrades.scrap == 15
        assert r.waves.enemies_killed == 1
        assert bus.last("enemy_destroyed")["type"] == "scout"

    def test_hit_spawns_particles(self):
        r, _ = make_resolver()
        stinger = r.spawn_enemy(EnemyType.STINGER, 640.0, 100.0)
        r.store.bullets.append(bullet_onto(stinger.x, stinger.y))
        r.update(16)
        assert stinger.hp == 2
        assert len(r.store.particles) == 3

    def test_bullet_misses(self):
        r, _ = make_resolver()
        scout = r.spawn_enemy(EnemyType.SCOUT, 100.0, 100.0)
        r.store.bullets.append(bullet_onto(400.0, 100.0))
        r.update(16)
        assert scout.hp == 1
        assert len(r.store.bullets) == 1

    def test_bullet_expires(self):
        r, _ = make_resolver()
        r.store.bullets.append(Bullet(x=640, y=300, angle=0.0, speed=0.0, life=1, color="#fff"))
        r.update(16)
        assert r.store.bullets == []

    def test_shieldbearer_takes_eight_hits(self):
        r, _ = make_resolver(player_pos=(1200.0, 700.0))
        sb = r.spawn_enemy(EnemyType.SHIELDBEARER, 100.0, 100.0)
        for hit in range(1, 9):
            r.store.bullets.append(bullet_onto(sb.x, sb.y))
            r.update(16)
            assert sb.hp == 8 - hit
            if hit < 8:
                assert sb in r.store.enemies
        assert sb not in r.store.enemies
        assert r.score == 500

    def test_spaced_hits_let_shield_hold_off_removal(self):
        # Hits 2000ms apart: each hit spends a shield point and regen refills it
        # on the same tick, so the death check never runs.
        r, _ = make_resolver(player_pos=(1200.0, 700.0))
        sb = r.spawn_enemy(EnemyType.SHIELDBEARER, 100.0, 100.0)
        for _ in range(8):
            r.store.bullets.append(bullet_onto(sb.x, sb.y))
            r.update(2000)
        assert sb.hp == 0
        assert sb.shield == pytest.approx(3.0)
        assert sb in r.store.enemies

        # Rapid hits then drain the shield; removal lands on the 13th hit overall
        for hit in range(9, 14):
            r.store.bullets.append(bullet_onto(sb.x, sb.y))
            r.update(16)
            assert sb.hp == 8 - hit or sb not in r.store.enemies
            if hit < 13:
                assert sb in r.store.enemies
        assert sb not in r.store.enemies
        assert r.score == 500

    def test_shield_absorbs_death_check(self):
        r, _ = make_resolver(player_pos=(1200.0, 700.0))
        sb = r.spawn_enemy(EnemyType.SHIELDBEARER, 100.0, 100.0)
        sb.hp = 1
        r.store.bullets.append(bullet_onto(sb.x, sb.y))
        r.update(16)
        # hp is spent but the shield point held off removal
        assert sb.hp == 0
        assert sb in r.store.enemies
        assert sb.shield == pytest.approx(2.008)

    def test_splitter_splits_into_two_scouts(self):
        r, bus = make_resolver()
        sp = r.spawn_enemy(EnemyType.SPLITTER, 640.0, 100.0)
        sp.hp = 1
        r.store.bullets.append(bullet_onto(sp.x, sp.y))
        r.update(16)
        assert sp not in r.store.enemies
        assert [e.type for e in r.store.enemies] == [EnemyType.SCOUT, EnemyType.SCOUT]
        a, b = r.store.enemies
        assert abs(a.x - b.x) == pytest.approx(40.0, abs=1.0)
        assert r.score == 400
        assert r.upgrades.scrap == 60
        assert r.waves.enemies_killed == 1
        split = bus.last("enemy_split")
        assert split["spawned"] == [a.id, b.id]

    def test_split_scouts_count_toward_kills(self):
        r, _ = make_resolver()
        sp = r.spawn_enemy(EnemyType.SPLITTER, 640.0, 100.0)
        sp.hp = 1
        r.store.bullets.append(bullet_onto(sp.x, sp.y))
        r.update(16)
        for scout in list(r.store.enemies):
            r.store.bullets.append(bullet_onto(scout.x, scout.y))
            r.update(16)
        assert r.waves.enemies_killed == 3


# --------------------------------------------------------------------------
# Enemy bullets vs player
# --------------------------------------------------------------------------

class TestPlayerDamage:
    def _enemy_bullet_onto_player(self, r):
        p = r.store.player
        r.store.enemy_bullets.append(
            Bullet(x=p.x, y=p.y - 8.0, angle=math.pi / 2, speed=8.0, life=100, color="#ff0055"))

    def test_enemy_bullet_deals_ten(self):
        r, bus = make_resolver()
        self._enemy_bullet_onto_player(r)
        r.update(16)
        assert r.store.player.health == pytest.approx(90.0)
        assert r.store.enemy_bullets == []
        assert bus.last("player_hit")["damage"] == pytest.approx(10.0)

    def test_armor_reduces_damage(self):
        r, _ = make_resolver()
        r.upgrades.add_scrap(120)
        r.upgrades.purchase_upgrade(get_upgrade("armor_plating"))
        self._enemy_bullet_onto_player(r)
        r.update(16)
        assert r.store.player.health == pytest.approx(92.0)

    def test_lethal_hit_ends_game(self):
        r, bus = make_resolver()
        r.store.player.health = 5.0
        self._enemy_bullet_onto_player(r)
        r.update(16)
        assert r.game_over is True
        assert "game_over" in bus.topics()

    def test_game_over_freezes_tick(self):
        r, _ = make_resolver()
        r.game_over = True
        scout = r.spawn_enemy(EnemyType.SCOUT, 100.0, 100.0)
        r.update(16)
        assert r.now == 0.0
        assert (scout.x, scout.y) == (100.0, 100.0)

    def test_crash_kills_player(self):
        r, bus = make_resolver()
        p = r.store.player
        r.spawn_enemy(EnemyType.SCOUT, p.x + 30.0, p.y)
        r.update(16)
        assert r.game_over is True
        assert p.health == 0
        assert bus.topics().count("game_over") == 1


# --------------------------------------------------------------------------
# Enemy behaviour in the loop
# --------------------------------------------------------------------------

class TestEnemyFire:
    def test_stinger_fires_on_first_tick_in_range(self):
        r, _ = make_resolver()
        p = r.store.player
        stinger = r.spawn_enemy(EnemyType.STINGER, p.x, p.y - 200.0)
        r.update(16)
        assert len(r.store.enemy_bullets) == 1
        assert stinger.last_fire == 16.0
        b = r.store.enemy_bullets[0]
        assert b.angle == pytest.approx(math.pi / 2)
        assert b.speed == 8.0

    def test_stinger_cadence(self):
        r, _ = make_resolver()
        p = r.store.player
        r.spawn_enemy(EnemyType.STINGER, p.x, p.y - 200.0)
        r.update(16)
        r.update(16)
        assert len(r.store.enemy_bullets) == 1

    def test_scout_never_fires(self):
        r, _ = make_resolver()
        r.spawn_enemy(EnemyType.SCOUT, 100.0, 100.0)
        r.update(16)
        assert r.store.enemy_bullets == []


class TestSpawning:
    def test_spawns_at_edge(self):
        r, _ = make_resolver(spawn_roll=0.0)
        r.update(16)
        assert r.waves.enemies_spawned == 1
        assert len(r.store.enemies) == 1
        e = r.store.enemies[0]
        assert e.type is EnemyType.SCOUT
        assert e.x < 0 or e.x > WIDTH or e.y < 0

    def test_spawn_respects_quota(self):
        r, _ = make_resolver(spawn_roll=0.0, player_pos=(640.0, 700.0))
        for _ in range(10):
            r.update(16)
        assert r.waves.enemies_spawned == 5

    def test_shieldbearer_spawns_with_shield(self):
        r, _ = make_resolver()
        sb = r.spawn_enemy(EnemyType.SHIELDBEARER, 0.0, 0.0)
        assert sb.shield == 3.0
        assert sb.hp == sb.max_hp == 8


# --------------------------------------------------------------------------
# Progression
# --------------------------------------------------------------------------

class TestProgression:
    def test_wave_clear_offers_upgrades(self):
        r, bus = make_resolver()
        r.waves.enemies_killed = 5
        r.update(16)
        assert r.upgrade_offer is not None
        assert len(r.upgrade_offer) == 3
        assert r.paused is True
        assert bus.topics()[-2:] == ["wave_complete", "upgrade_offer"]

    def test_paused_while_offer_open(self):
        r, _ = make_resolver()
        r.waves.enemies_killed = 5
        r.update(16)
        now = r.now
        r.update(16)
        assert r.now == now

    def test_boss_wave_summons_boss(self):
        r, bus = make_resolver()
        r.waves.wave_number = 5
        r.waves.start_wave()
        r.waves.enemies_killed = 1
        r.update(16)
        boss = r.store.boss
        assert boss is not None
        assert boss.name == "Hive Overseer"
        assert boss.hp == 500
        assert r.upgrade_offer is None
        assert "boss_spawned" in bus.topics()
        # First tick: triple-spread volley and the first minion
        assert len(r.store.enemy_bullets) == 3
        assert len(r.store.enemies) == 1

    def test_wave_ten_boss(self):
        r, _ = make_resolver()
        r.waves.wave_number = 10
        r.waves.start_wave()
        r.waves.enemies_killed = 1
        r.update(16)
        assert r.store.boss.name == "Corrupted Cruiser"


class TestBossCombat:
    def _place_boss(self, r, hp: int) -> Boss:
        boss = Boss(
            id=r.store.next_id(), name="Hive Overseer", x=640.0, y=200.0,
            hp=hp, max_hp=500, size=80.0, color="#ff00ff", boss_index=1,
            last_action=0.0,
        )
        r.store.boss = boss
        return boss

    def _parked_bullet(self, x: float, y: float) -> Bullet:
        return Bullet(x=x, y=y, angle=0.0, speed=0.0, life=60, color="#00ffff")

    def test_one_hit_per_tick(self):
        r, _ = make_resolver()
        boss = self._place_boss(r, hp=3)
        r.store.bullets.extend([self._parked_bullet(640.0, 210.0), self._parked_bullet(640.0, 215.0)])
        r.update(16)
        assert boss.hp == 2
        assert len(r.store.bullets) == 1
        r.update(16)
        assert boss.hp == 1
        assert r.store.bullets == []

    def test_boss_defeat(self):
        r, bus = make_resolver()
        self._place_boss(r, hp=1)
        r.store.bullets.append(self._parked_bullet(640.0, 210.0))
        r.update(16)
        assert r.store.boss is None
        assert r.score == 2000
        assert r.upgrades.scrap == 500
        assert "boss_defeated" in bus.topics()
        assert r.upgrade_offer is not None

    def test_boss_fire_cadence(self):
        r, _ = make_resolver()
        self._place_boss(r, hp=500)
        r.update(16)
        assert len(r.store.enemy_bullets) == 3
        r.update(16)
        assert len(r.store.enemy_bullets) == 3

    def test_boss_crash(self):
        r, _ = make_resolver()
        boss = self._place_boss(r, hp=500)
        p = r.store.player
        boss.x, boss.y = p.x, p.y - 50.0
        r.update(16)
        assert r.game_over is True


# --------------------------------------------------------------------------
# Regen & particles
# --------------------------------------------------------------------------

class TestRegen:
    def test_regen_heals_over_time(self):
        r, _ = make_resolver()
        r.upgrades.modifiers.health_regen = 1.0
        r.store.player.health = 50.0
        r.update(1000)
        assert r.store.player.health == pytest.approx(51.0)

    def test_regen_capped_at_max(self):
        r, _ = make_resolver()
        r.upgrades.modifiers.health_regen = 5.0
        r.store.player.health = 99.0
        r.update(1000)
        assert r.store.player.health == 100.0

    def test_no_regen_by_default(self):
        r, _ = make_resolver()
        r.store.player.health = 50.0
        r.update(1000)
        assert r.store.player.health == 50.0


class TestParticles:
    def test_particles_expire(self):
        r, _ = make_resolver()
        r.spawn_particles(100.0, 100.0, "#fff", 10)
        assert len(r.store.particles) == 10
        for _ in range(41):
            r.update(16)
        assert r.store.particles == []
