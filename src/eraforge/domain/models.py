"""Dataclasses describing the Eraforge reference catalog and engine state.

Two families live here:

* Catalog entries (eras, technologies, troops, buildings, missions,
  territories, achievements, and the military tables).  These are frozen
  and loaded once.
* The mutable :class:`GameState` aggregate and the records it owns.  Only the
  engine mutates these, always through the rule functions in this package.

Technology effects, territory bonuses, and achievement conditions are tagged
unions discriminated on ``kind`` so that the rule code can ``match`` on them
exhaustively and pydantic can validate them straight from JSON.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Literal

from pydantic import Field

from .enums import AchievementCategory, ArmySize, BattleKind, Resource

RESOURCES: tuple[Resource, ...] = tuple(Resource)


# --- Resource records -----------------------------------------------------------


@dataclass(slots=True)
class ResourcePool:
    """One numeric value per resource."""

    food: float = 0.0
    wood: float = 0.0
    stone: float = 0.0
    gold: float = 0.0
    science: float = 0.0

    @classmethod
    def filled(cls, value: float) -> ResourcePool:
        return cls(value, value, value, value, value)

    def get(self, resource: Resource) -> float:
        return getattr(self, resource.value)

    def set(self, resource: Resource, value: float) -> None:
        setattr(self, resource.value, value)

    def add(self, resource: Resource, amount: float) -> None:
        setattr(self, resource.value, getattr(self, resource.value) + amount)

    def add_all(self, amounts: Mapping[Resource, float]) -> None:
        for resource, amount in amounts.items():
            self.add(resource, amount)

    def as_dict(self) -> dict[Resource, float]:
        return {resource: self.get(resource) for resource in RESOURCES}


ResourceAmounts = dict[Resource, float]


# --- Tagged effect / bonus / condition records -----------------------------------


@dataclass(frozen=True, slots=True)
class ResourceBonus:
    """Compounds the production multiplier of one resource."""

    resource: Resource
    multiplier: float
    kind: Literal["resource_bonus"] = "resource_bonus"


@dataclass(frozen=True, slots=True)
class TroopUnlock:
    troop_id: str
    kind: Literal["troop_unlock"] = "troop_unlock"


@dataclass(frozen=True, slots=True)
class EraUnlock:
    """Advances the era when ``era_id`` is the next era in sequence."""

    era_id: str
    kind: Literal["era_unlock"] = "era_unlock"


@dataclass(frozen=True, slots=True)
class CapabilityUnlock:
    capability: str
    kind: Literal["capability_unlock"] = "capability_unlock"


@dataclass(frozen=True, slots=True)
class FlatProduction:
    """Adds a fixed amount per second to a resource's production."""

    resource: Resource
    amount: float
    kind: Literal["flat_production"] = "flat_production"


TechEffect = Annotated[
    ResourceBonus | TroopUnlock | EraUnlock | CapabilityUnlock,
    Field(discriminator="kind"),
]
TerritoryBonus = Annotated[ResourceBonus | FlatProduction, Field(discriminator="kind")]


@dataclass(frozen=True, slots=True)
class ResourceTotal:
    """Lifetime amount of a resource gathered."""

    resource: Resource
    amount: float
    kind: Literal["resource_total"] = "resource_total"


@dataclass(frozen=True, slots=True)
class ResourceCurrent:
    """Balance currently held."""

    resource: Resource
    amount: float
    kind: Literal["resource_current"] = "resource_current"


@dataclass(frozen=True, slots=True)
class TechCount:
    amount: int
    kind: Literal["tech_count"] = "tech_count"


@dataclass(frozen=True, slots=True)
class TroopCount:
    amount: int
    kind: Literal["troop_count"] = "troop_count"


@dataclass(frozen=True, slots=True)
class EraReached:
    era_id: str
    kind: Literal["era_reached"] = "era_reached"


@dataclass(frozen=True, slots=True)
class BattlesWon:
    amount: int
    kind: Literal["battles_won"] = "battles_won"


@dataclass(frozen=True, slots=True)
class MissionsCompleted:
    amount: int
    kind: Literal["missions_completed"] = "missions_completed"


@dataclass(frozen=True, slots=True)
class BuildingCount:
    amount: int
    kind: Literal["building_count"] = "building_count"


AchievementCondition = Annotated[
    ResourceTotal
    | ResourceCurrent
    | TechCount
    | TroopCount
    | EraReached
    | BattlesWon
    | MissionsCompleted
    | BuildingCount,
    Field(discriminator="kind"),
]


# --- Catalog entries ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Era:
    """A stage of the linear era sequence."""

    id: str
    name: str
    description: str
    base_rates: ResourceAmounts
    required_research: str | None = None


@dataclass(frozen=True, slots=True)
class Technology:
    """Research node with prerequisites and effects."""

    id: str
    name: str
    description: str
    era: str
    cost: float
    prerequisites: tuple[str, ...] = ()
    effects: tuple[TechEffect, ...] = ()


@dataclass(frozen=True, slots=True)
class TroopType:
    """Trainable unit definition."""

    id: str
    name: str
    description: str
    era: str
    cost: ResourceAmounts
    train_time: float
    attack: float
    defense: float
    health: float
    unlock_tech: str | None = None


@dataclass(frozen=True, slots=True)
class BuildingType:
    """Constructible building definition."""

    id: str
    name: str
    description: str
    era: str
    cost: ResourceAmounts
    build_time: float
    max_count: int
    production: ResourceAmounts = field(default_factory=dict)
    unlock_tech: str | None = None


@dataclass(frozen=True, slots=True)
class Enemy:
    """Scripted opponent stats."""

    name: str
    attack: float
    defense: float
    health: float
    size: ArmySize | None = None


@dataclass(frozen=True, slots=True)
class Mission:
    id: str
    name: str
    description: str
    era: str
    enemy: Enemy
    rewards: ResourceAmounts = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Territory:
    """Conquerable opponent granting permanent bonuses."""

    id: str
    name: str
    description: str
    era: str
    enemy: Enemy
    rewards: ResourceAmounts = field(default_factory=dict)
    bonuses: tuple[TerritoryBonus, ...] = ()


Opponent = Mission | Territory


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    name: str
    description: str
    category: AchievementCategory
    condition: AchievementCondition
    reward: ResourceBonus | None = None


@dataclass(frozen=True, slots=True)
class Formation:
    """Army stance scaling the summed stats."""

    id: str
    name: str
    description: str
    attack_modifier: float = 1.0
    defense_modifier: float = 1.0
    health_modifier: float = 1.0
    required_tech: str | None = None


@dataclass(frozen=True, slots=True)
class DefenseStructure:
    """Fortification adding flat defense and health to the army."""

    id: str
    name: str
    description: str
    era: str
    defense_bonus: float
    health_bonus: float
    cost: ResourceAmounts
    build_time: float
    max_count: int
    required_tech: str | None = None


@dataclass(frozen=True, slots=True)
class UnitUpgrade:
    id: str
    name: str
    description: str
    from_unit: str
    to_unit: str
    cost: ResourceAmounts
    required_tech: str | None = None


@dataclass(frozen=True, slots=True)
class ExperienceLevel:
    """Veterancy tier; bonuses are flat, once per troop type fielded."""

    level: int
    name: str
    experience_required: int
    attack_bonus: float = 0.0
    defense_bonus: float = 0.0
    health_bonus: float = 0.0


# --- Engine state ---------------------------------------------------------------


@dataclass(slots=True)
class QueueEntry:
    """Timed production entry; timestamps are epoch milliseconds."""

    type_id: str
    start: int
    end: int


@dataclass(slots=True)
class ArmyPower:
    """Summed combat stats of an army."""

    attack: float = 0.0
    defense: float = 0.0
    health: float = 0.0


@dataclass(slots=True)
class BattleLog:
    """One simultaneous damage exchange."""

    round: int
    player_damage: int
    enemy_damage: int
    player_health: float
    enemy_health: float
    message: str


@dataclass(slots=True)
class BattleResult:
    """Outcome fixed when a battle is precomputed."""

    victory: bool
    casualty_percent: int
    rewards: ResourceAmounts = field(default_factory=dict)
    seed: str | None = None


@dataclass(slots=True)
class ActiveBattle:
    """Precomputed battle being replayed round by round."""

    kind: BattleKind
    target_id: str
    logs: list[BattleLog]
    result: BattleResult
    current_round: int = 0
    is_complete: bool = False

    @property
    def visible_logs(self) -> list[BattleLog]:
        return self.logs[: self.current_round]


@dataclass(slots=True)
class AchievementProgress:
    unlocked: bool = False
    unlocked_at: int | None = None
    notified: bool = False


@dataclass(slots=True)
class Statistics:
    """Lifetime counters; only a full reset lowers them."""

    gathered: ResourcePool = field(default_factory=ResourcePool)
    troops_trained: int = 0
    battles_won: int = 0
    battles_lost: int = 0
    click_count: int = 0
    offline_earnings: float = 0.0
    buildings_constructed: int = 0
    territories_conquered: int = 0


@dataclass(slots=True)
class OfflineProgress:
    """Summary of resources granted for time spent away."""

    duration: float
    resources: ResourceAmounts


@dataclass(slots=True)
class GameState:
    """Complete mutable state owned by the engine."""

    current_era: str
    last_update: int
    resources: ResourcePool = field(default_factory=ResourcePool)
    multipliers: ResourcePool = field(default_factory=lambda: ResourcePool.filled(1.0))
    researched: set[str] = field(default_factory=set)
    current_research: str | None = None
    research_progress: float = 0.0
    army: dict[str, int] = field(default_factory=dict)
    unlocked_troops: set[str] = field(default_factory=set)
    training_queue: list[QueueEntry] = field(default_factory=list)
    buildings: dict[str, int] = field(default_factory=dict)
    unlocked_buildings: set[str] = field(default_factory=set)
    construction_queue: list[QueueEntry] = field(default_factory=list)
    capabilities: set[str] = field(default_factory=set)
    completed_missions: set[str] = field(default_factory=set)
    conquered_territories: set[str] = field(default_factory=set)
    active_battles: dict[BattleKind, ActiveBattle] = field(default_factory=dict)
    battle_speed: int = 800
    formation: str = "standard"
    defenses: dict[str, int] = field(default_factory=dict)
    defense_queue: list[QueueEntry] = field(default_factory=list)
    experience: dict[str, int] = field(default_factory=dict)
    achievements: dict[str, AchievementProgress] = field(default_factory=dict)
    pending_notifications: list[str] = field(default_factory=list)
    statistics: Statistics = field(default_factory=Statistics)
    total_play_time: float = 0.0


def prune_counts(counts: dict[str, int]) -> None:
    """Drop entries whose count fell to zero or below."""

    for key in [key for key, count in counts.items() if count <= 0]:
        del counts[key]


def total_count(counts: Mapping[str, int]) -> int:
    return sum(counts.values())
