"""SimulationEngine — the simulation root and fixed-step tick loop.

Architecture
------------
The engine is the single owner of all simulation state:

  - EntityStore      player, bullets, enemies, boss, particles
  - WaveManager      wave table and spawn/kill counters
  - UpgradeSystem    scrap and stat modifiers
  - CombatResolver   the per-tick orchestrator over the three above

Nothing else holds a reference to these objects; the relay and the HTTP
API go through the engine's methods.

Threads:
  sim-tick — sleeps ``tick_ms`` and calls ``update(tick_ms)``.  ``dt`` is
  always the nominal step, never a measured delta.

Inputs (control packets, upgrade select/skip, reset) arrive on the web
server's event loop.  Every entry point takes ``self._lock``, so an input
is applied wholly before or after a tick and never inside one.  Input is
latest-applied-wins; nothing is buffered or reordered.

Run lifecycle:
  reset() -> wave 1 active -> ... -> wave clear -> upgrade offer
     -> select_upgrade()/skip_upgrade() -> next wave (player healed to max)
     -> ... wave 25 cleared -> campaign_complete -> reset()
  Player death freezes the tick; the next ``fire`` packet restarts the run.
"""

from __future__ import annotations

import random
import threading
import time
from typing import TYPE_CHECKING

from loguru import logger

from .bosses import boss_display
from .combat import CombatResolver
from .controls import ControlPacket, parse_control_packet
from .entities import Bullet, EntityStore, Player
from .upgrades import Upgrade, UpgradeSystem
from .waves import WaveManager

if TYPE_CHECKING:
    from odyssey.comms.event_bus import EventBus

DEFAULT_WIDTH = 1280.0
DEFAULT_HEIGHT = 720.0
DEFAULT_TICK_MS = 16.0
DEFAULT_SENSITIVITY = 4.0

AIM_SCALE = 0.05
BASE_MOVE_SPEED = 6.0
PLAYER_MARGIN = 20.0

BASE_BULLET_SPEED = 20.0
BULLET_LIFE = 60
BULLET_SPREAD = 0.1

# purchase_offered() outcomes
PURCHASE_OK = "purchased"
PURCHASE_NO_OFFER = "no_offer"
PURCHASE_NOT_OFFERED = "not_offered"
PURCHASE_INSUFFICIENT_SCRAP = "insufficient_scrap"


def _load_settings():
    try:
        from relay.config import settings
        return settings
    except (ImportError, ValueError) as e:
        logger.debug(f"Settings unavailable, using engine defaults: {e}")
        return None


class SimulationEngine:
    """Owns one run of the campaign and drives it at a fixed step."""

    def __init__(
        self,
        event_bus: EventBus,
        width: float | None = None,
        height: float | None = None,
        tick_ms: float | None = None,
        sensitivity: float | None = None,
        rng: random.Random | None = None,
        publish_snapshots: bool | None = None,
    ) -> None:
        settings = _load_settings()
        self.width = width if width is not None else (
            settings.viewport_width if settings else DEFAULT_WIDTH)
        self.height = height if height is not None else (
            settings.viewport_height if settings else DEFAULT_HEIGHT)
        self.tick_ms = tick_ms if tick_ms is not None else (
            settings.tick_ms if settings else DEFAULT_TICK_MS)
        self.sensitivity = sensitivity if sensitivity is not None else (
            settings.aim_sensitivity if settings else DEFAULT_SENSITIVITY)
        self._publish_snapshots = publish_snapshots if publish_snapshots is not None else (
            settings.snapshot_every_tick if settings else False)

        self.event_bus = event_bus
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._running = False
        self._thread: threading.Thread | None = None
        self.ticks: int = 0
        self.campaigns_completed: int = 0

        self.store = EntityStore(player=self._new_player())
        self.waves = WaveManager(rng=self._rng)
        self.upgrades = UpgradeSystem(rng=self._rng)
        self.combat = CombatResolver(
            self.store, self.waves, self.upgrades, event_bus,
            width=self.width, height=self.height, rng=self._rng,
        )
        self.reset()

    # -- Lifecycle -------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._tick_loop, name="sim-tick", daemon=True)
        self._thread.start()
        logger.info(f"Simulation engine started ({self.tick_ms:.0f}ms step, {self.width:.0f}x{self.height:.0f})")

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        logger.info("Simulation engine stopped")

    def _tick_loop(self) -> None:
        interval = self.tick_ms / 1000.0
        while self._running:
            time.sleep(interval)
            self.update()

    def update(self, dt: float | None = None) -> None:
        """Run one tick (``dt`` ms, default the nominal step)."""
        with self._lock:
            self.combat.update(self.tick_ms if dt is None else dt)
            self.ticks += 1
            snapshot = self._snapshot_locked() if self._publish_snapshots else None
        if snapshot is not None:
            self.event_bus.publish("sim_snapshot", snapshot)

    # -- Run state -------------------------------------------------------------

    def _new_player(self) -> Player:
        return Player(x=self.width / 2, y=self.height / 2)

    def reset(self) -> None:
        """Start a fresh campaign at wave 1 with zero score and scrap."""
        with self._lock:
            self.upgrades.reset()
            self.waves.reset()
            self.combat.reset()
            self.store.clear()
            self.store.player = self._new_player()
            self.event_bus.publish("game_reset", {})
            self._start_wave()

    def _start_wave(self) -> None:
        wave = self.waves.start_wave()
        player = self.store.player
        player.max_health = self.upgrades.modifiers.max_health
        player.health = player.max_health
        logger.info(f"Sector {wave.sector} wave {wave.number} started ({wave.enemy_count} enemies)")
        self.event_bus.publish("wave_start", {
            "wave": wave.number,
            "sector": wave.sector,
            "enemy_count": wave.enemy_count,
            "is_boss": wave.is_boss,
        })

    def _advance_wave(self) -> None:
        self.combat.upgrade_offer = None
        if self.waves.next_wave():
            self._start_wave()
            return
        self.campaigns_completed += 1
        logger.info(f"Campaign complete, final score {self.combat.score}")
        self.event_bus.publish("campaign_complete", {"score": self.combat.score})
        self.reset()

    # -- Upgrade UI contract ---------------------------------------------------

    @property
    def upgrade_offer(self) -> list[Upgrade] | None:
        return self.combat.upgrade_offer

    def purchase_offered(self, upgrade: Upgrade | str) -> str:
        """Buy an offered upgrade and move on.

        Returns one of the ``PURCHASE_*`` outcomes; anything but
        ``PURCHASE_OK`` leaves the run untouched.
        """
        with self._lock:
            offer = self.combat.upgrade_offer
            if offer is None:
                return PURCHASE_NO_OFFER
            upgrade_id = upgrade if isinstance(upgrade, str) else upgrade.id
            chosen = next((u for u in offer if u.id == upgrade_id), None)
            if chosen is None:
                return PURCHASE_NOT_OFFERED
            if not self.upgrades.purchase_upgrade(chosen):
                return PURCHASE_INSUFFICIENT_SCRAP
            self.event_bus.publish("upgrade_purchased", {
                "upgrade_id": chosen.id,
                "scrap": self.upgrades.scrap,
            })
            self._advance_wave()
            return PURCHASE_OK

    def select_upgrade(self, upgrade: Upgrade | str) -> bool:
        """Buy an offered upgrade and move on. False leaves the offer open."""
        return self.purchase_offered(upgrade) == PURCHASE_OK

    def skip_upgrade(self) -> None:
        with self._lock:
            if self.combat.upgrade_offer is None:
                return
            self.event_bus.publish("upgrade_skipped", {"wave": self.waves.wave_number})
            self._advance_wave()

    # -- Input -----------------------------------------------------------------

    def handle_message(self, raw: str | bytes | dict) -> bool:
        """Parse and apply one relayed message. False if it was dropped."""
        packet = parse_control_packet(raw)
        if packet is None:
            return False
        self.handle_packet(packet)
        return True

    def handle_packet(self, packet: ControlPacket) -> None:
        with self._lock:
            if self.combat.game_over:
                if packet.fire:
                    self.reset()
                return

            player = self.store.player
            if packet.aim is not None:
                player.angle += packet.aim.dx * self.sensitivity * AIM_SCALE
            if packet.move is not None:
                speed = BASE_MOVE_SPEED * self.upgrades.modifiers.speed_multiplier
                player.x += packet.move.x * speed
                player.y += packet.move.y * speed
                player.x = max(PLAYER_MARGIN, min(self.width - PLAYER_MARGIN, player.x))
                player.y = max(PLAYER_MARGIN, min(self.height - PLAYER_MARGIN, player.y))
            if packet.fire:
                self._shoot()

    def _shoot(self) -> None:
        mods = self.upgrades.modifiers
        player = self.store.player
        count = mods.bullets_per_shot
        for i in range(count):
            spread = (i - (count - 1) / 2) * BULLET_SPREAD
            self.store.bullets.append(Bullet(
                x=player.x,
                y=player.y,
                angle=player.angle + spread,
                speed=BASE_BULLET_SPEED * mods.bullet_speed_multiplier,
                life=BULLET_LIFE,
                color=player.color,
            ))

    # -- Snapshots -------------------------------------------------------------

    def snapshot(self) -> dict:
        """JSON-safe view of the whole simulation for renderers and the API."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> dict:
        offer = self.combat.upgrade_offer
        snap = self.store.to_dict()
        snap.update({
            "tick": self.ticks,
            "time_ms": self.combat.now,
            "score": self.combat.score,
            "scrap": self.upgrades.scrap,
            "game_over": self.combat.game_over,
            "wave": self.waves.to_dict(),
            "modifiers": self.upgrades.modifiers.to_dict(),
            "upgrade_offer": [u.to_dict() for u in offer] if offer is not None else None,
            "boss_display": boss_display(self.store.boss),
            "viewport": {"width": self.width, "height": self.height},
        })
        return snap

    def get_boss_display(self) -> dict | None:
        with self._lock:
            return boss_display(self.store.boss)
