"""Simulation subsystem — wave progression, enemy/boss AI, combat, upgrades."""
from .bosses import BOSS_DEFINITIONS, BossBehavior, BossController, BossDefinition, BossPhase
from .combat import CombatResolver
from .controls import ControlPacket, parse_control_packet
from .enemies import ENEMY_DEFINITIONS, EnemyDefinition, EnemyType
from .engine import SimulationEngine
from .entities import Boss, Bullet, Enemy, EntityStore, Particle, Player
from .upgrades import UPGRADE_CATALOG, Modifiers, Upgrade, UpgradeKind, UpgradeSystem
from .waves import Wave, WaveManager

__all__ = [
    "BOSS_DEFINITIONS",
    "Boss",
    "BossBehavior",
    "BossController",
    "BossDefinition",
    "BossPhase",
    "Bullet",
    "CombatResolver",
    "ControlPacket",
    "ENEMY_DEFINITIONS",
    "Enemy",
    "EnemyDefinition",
    "EnemyType",
    "EntityStore",
    "Modifiers",
    "Particle",
    "Player",
    "SimulationEngine",
    "UPGRADE_CATALOG",
    "Upgrade",
    "UpgradeKind",
    "UpgradeSystem",
    "Wave",
    "WaveManager",
    "parse_control_packet",
]
