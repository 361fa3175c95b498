"""UpgradeSystem — scrap currency, upgrade catalog, and stat modifiers.

Architecture
------------
Upgrades are data, not code: each catalog entry carries an ``UpgradeKind``
tag and ``apply_upgrade(modifiers, upgrade)`` is the one place that knows how
a kind changes the ``Modifiers`` record.  That keeps offers serializable
(they go over the HTTP API as plain dicts) and testable without invoking
closures.

Stacking, per purchase:
  - bullets per shot, health regen, max health:  add
  - fire rate, bullet speed, weapon damage, move speed:  multiply
  - damage resistance:  r = 1 - (1 - r) * 0.8  (approaches, never reaches 1)

The same upgrade may be offered and bought any number of times.

Offers are the first three entries of a uniform shuffle of the catalog.
Weapon damage and fire rate are tracked here but the combat path does not
read them: player hits always deal 1 damage and fire cadence is set by the
controller's fire edges.
"""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from enum import Enum

from loguru import logger

OFFER_SIZE = 3
ARMOR_RETENTION = 0.8  # fraction of remaining vulnerability kept per armor purchase


class UpgradeCategory(str, Enum):
    WEAPON = "weapon"
    DEFENSE = "defense"
    MOBILITY = "mobility"


class UpgradeKind(str, Enum):
    EXTRA_BULLET = "extra_bullet"
    FIRE_RATE = "fire_rate"
    BULLET_SPEED = "bullet_speed"
    WEAPON_DAMAGE = "weapon_damage"
    MAX_HEALTH = "max_health"
    DAMAGE_RESISTANCE = "damage_resistance"
    HEALTH_REGEN = "health_regen"
    MOVE_SPEED = "move_speed"


@dataclass(frozen=True)
class Upgrade:
    """A purchasable upgrade. ``amount`` parameterises its kind."""

    id: str
    name: str
    description: str
    category: UpgradeCategory
    icon: str
    cost: int
    kind: UpgradeKind
    amount: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "icon": self.icon,
            "cost": self.cost,
            "kind": self.kind.value,
        }


UPGRADE_CATALOG: tuple[Upgrade, ...] = (
    # Weapon
    Upgrade("dual_cannons", "Dual Cannons", "+1 bullet per shot",
            UpgradeCategory.WEAPON, "⚡", 100, UpgradeKind.EXTRA_BULLET, 1),
    Upgrade("rapid_fire", "Rapid Fire", "+50% fire rate",
            UpgradeCategory.WEAPON, "🔥", 100, UpgradeKind.FIRE_RATE, 1.5),
    Upgrade("plasma_bolts", "Plasma Bolts", "+50% bullet speed",
            UpgradeCategory.WEAPON, "💨", 80, UpgradeKind.BULLET_SPEED, 1.5),
    Upgrade("heavy_rounds", "Heavy Rounds", "+50% damage",
            UpgradeCategory.WEAPON, "💥", 120, UpgradeKind.WEAPON_DAMAGE, 1.5),
    # Defense
    Upgrade("shield_boost", "Shield Boost", "+25 max health",
            UpgradeCategory.DEFENSE, "🛡️", 100, UpgradeKind.MAX_HEALTH, 25),
    Upgrade("armor_plating", "Armor Plating", "20% damage reduction",
            UpgradeCategory.DEFENSE, "🔰", 120, UpgradeKind.DAMAGE_RESISTANCE, ARMOR_RETENTION),
    Upgrade("regen_field", "Regen Field", "+1 HP per second",
            UpgradeCategory.DEFENSE, "💚", 150, UpgradeKind.HEALTH_REGEN, 1),
    # Mobility
    Upgrade("afterburner", "Afterburner", "+30% movement speed",
            UpgradeCategory.MOBILITY, "🚀", 80, UpgradeKind.MOVE_SPEED, 1.3),
)

_CATALOG_BY_ID: dict[str, Upgrade] = {u.id: u for u in UPGRADE_CATALOG}


def get_upgrade(upgrade_id: str) -> Upgrade | None:
    return _CATALOG_BY_ID.get(upgrade_id)


@dataclass
class Modifiers:
    """Run-long player stat modifiers."""

    weapon_damage_multiplier: float = 1.0
    fire_rate_multiplier: float = 1.0
    bullet_speed_multiplier: float = 1.0
    bullets_per_shot: int = 1
    max_health: float = 100.0
    damage_resistance: float = 0.0
    health_regen: float = 0.0
    speed_multiplier: float = 1.0

    def to_dict(self) -> dict:
        return asdict(self)


def apply_upgrade(modifiers: Modifiers, upgrade: Upgrade) -> None:
    """Apply one purchase of ``upgrade`` to ``modifiers`` in place."""
    kind, amount = upgrade.kind, upgrade.amount
    if kind is UpgradeKind.EXTRA_BULLET:
        modifiers.bullets_per_shot += int(amount)
    elif kind is UpgradeKind.FIRE_RATE:
        modifiers.fire_rate_multiplier *= amount
    elif kind is UpgradeKind.BULLET_SPEED:
        modifiers.bullet_speed_multiplier *= amount
    elif kind is UpgradeKind.WEAPON_DAMAGE:
        modifiers.weapon_damage_multiplier *= amount
    elif kind is UpgradeKind.MAX_HEALTH:
        modifiers.max_health += amount
    elif kind is UpgradeKind.DAMAGE_RESISTANCE:
        modifiers.damage_resistance = 1 - (1 - modifiers.damage_resistance) * amount
    elif kind is UpgradeKind.HEALTH_REGEN:
        modifiers.health_regen += amount
    elif kind is UpgradeKind.MOVE_SPEED:
        modifiers.speed_multiplier *= amount
    else:
        raise ValueError(f"Unknown upgrade kind: {kind}")


class UpgradeSystem:
    """Scrap wallet, offer generation, and purchase application."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.scrap: int = 0
        self.modifiers = Modifiers()
        self.purchases: dict[str, int] = {}

    def add_scrap(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("scrap awards must be non-negative")
        self.scrap += amount

    def purchase_count(self, upgrade_id: str) -> int:
        return self.purchases.get(upgrade_id, 0)

    def generate_upgrade_options(self) -> list[Upgrade]:
        options = list(UPGRADE_CATALOG)
        self._rng.shuffle(options)
        return options[:OFFER_SIZE]

    def purchase_upgrade(self, upgrade: Upgrade) -> bool:
        """Buy ``upgrade``. All-or-nothing: False and no change if unaffordable."""
        if self.scrap < upgrade.cost:
            logger.debug(f"Cannot afford {upgrade.id}: {self.scrap}/{upgrade.cost} scrap")
            return False
        self.scrap -= upgrade.cost
        apply_upgrade(self.modifiers, upgrade)
        self.purchases[upgrade.id] = self.purchases.get(upgrade.id, 0) + 1
        logger.debug(f"Purchased {upgrade.id} (x{self.purchases[upgrade.id]}), {self.scrap} scrap left")
        return True

    def reset(self) -> None:
        self.scrap = 0
        self.modifiers = Modifiers()
        self.purchases.clear()

    def to_dict(self) -> dict:
        return {
            "scrap": self.scrap,
            "modifiers": self.modifiers.to_dict(),
            "purchases": dict(self.purchases),
        }
