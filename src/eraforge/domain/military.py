"""Formations, fortifications, veterancy, and unit upgrades.

These feed the army's fighting strength on top of the raw troop stats:
fortifications and veterancy add flat stats, then the active formation
scales the totals.  See :func:`effective_power`.
"""

from __future__ import annotations

import math

from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import can_afford, spend
from eraforge.domain.models import (
    ArmyPower,
    DefenseStructure,
    ExperienceLevel,
    Formation,
    GameState,
    QueueEntry,
    UnitUpgrade,
    prune_counts,
)
from eraforge.domain.production import enqueue, resolve_due
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig


def _tech_met(state: GameState, tech_id: str | None) -> bool:
    return tech_id is None or tech_id in state.researched


# --- Formations -----------------------------------------------------------------


def available_formations(state: GameState, catalog: Catalog) -> list[Formation]:
    return [entry for entry in catalog.formations if _tech_met(state, entry.required_tech)]


def active_formation(state: GameState, catalog: Catalog) -> Formation | None:
    return catalog.formation(state.formation)


def set_formation(state: GameState, catalog: Catalog, formation_id: str) -> bool:
    """Switch stance; the formation must exist and its technology be known."""

    formation = catalog.formation(formation_id)
    if formation is None or not _tech_met(state, formation.required_tech):
        return False
    state.formation = formation_id
    return True


# --- Fortifications -------------------------------------------------------------


def available_defenses(state: GameState, catalog: Catalog) -> list[DefenseStructure]:
    return [
        entry for entry in catalog.defense_structures if _tech_met(state, entry.required_tech)
    ]


def can_build_defense(state: GameState, catalog: Catalog, structure_id: str) -> bool:
    structure = catalog.defense_structure(structure_id)
    if structure is None or not _tech_met(state, structure.required_tech):
        return False
    if state.defenses.get(structure_id, 0) >= structure.max_count:
        return False
    return can_afford(state, structure.cost)


def build_defense(state: GameState, catalog: Catalog, structure_id: str, now: int) -> bool:
    """Pay for one fortification and queue its construction."""

    if not can_build_defense(state, catalog, structure_id):
        return False
    structure = catalog.defense_structure(structure_id)
    if structure is None:
        return False
    spend(state, structure.cost)
    enqueue(state.defense_queue, structure_id, structure.build_time, now)
    return True


def resolve_fortification(state: GameState, now: int) -> list[QueueEntry]:
    def _fortify(entry: QueueEntry) -> None:
        state.defenses[entry.type_id] = state.defenses.get(entry.type_id, 0) + 1

    return resolve_due(state.defense_queue, now, _fortify)


def defense_bonuses(state: GameState, catalog: Catalog) -> ArmyPower:
    bonus = ArmyPower()
    for structure_id, count in state.defenses.items():
        structure = catalog.defense_structure(structure_id)
        if structure is None:
            continue
        bonus.defense += structure.defense_bonus * count
        bonus.health += structure.health_bonus * count
    return bonus


# --- Veterancy ------------------------------------------------------------------


def experience_level(catalog: Catalog, experience: int) -> ExperienceLevel | None:
    """Highest level whose threshold ``experience`` has reached."""

    reached = [
        level for level in catalog.experience_levels if experience >= level.experience_required
    ]
    if not reached:
        return None
    return max(reached, key=lambda level: level.experience_required)


def experience_bonuses(state: GameState, catalog: Catalog) -> ArmyPower:
    """Veterancy bonus of every troop type currently fielded."""

    bonus = ArmyPower()
    for troop_id in state.army:
        level = experience_level(catalog, state.experience.get(troop_id, 0))
        if level is None:
            continue
        bonus.attack += level.attack_bonus
        bonus.defense += level.defense_bonus
        bonus.health += level.health_bonus
    return bonus


def battle_experience(rounds: int, victory: bool, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    military = rules.military
    base = military.victory_experience if victory else military.defeat_experience
    return base + rounds * military.experience_per_round


def gain_experience(
    state: GameState,
    rounds: int,
    victory: bool,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> int:
    """Award battle experience to every surviving troop type."""

    earned = battle_experience(rounds, victory, rules=rules)
    for troop_id in state.army:
        state.experience[troop_id] = state.experience.get(troop_id, 0) + earned
    return earned


# --- Upgrades -------------------------------------------------------------------


def available_upgrades(state: GameState, catalog: Catalog) -> list[UnitUpgrade]:
    return [
        upgrade
        for upgrade in catalog.unit_upgrades
        if _tech_met(state, upgrade.required_tech) and state.army.get(upgrade.from_unit, 0) > 0
    ]


def can_upgrade(state: GameState, catalog: Catalog, upgrade_id: str) -> bool:
    upgrade = catalog.unit_upgrade(upgrade_id)
    if upgrade is None or catalog.troop_type(upgrade.to_unit) is None:
        return False
    if not _tech_met(state, upgrade.required_tech):
        return False
    if state.army.get(upgrade.from_unit, 0) <= 0:
        return False
    return can_afford(state, upgrade.cost)


def upgrade_unit(state: GameState, catalog: Catalog, upgrade_id: str) -> bool:
    """Convert one unit in place; no training time is involved."""

    if not can_upgrade(state, catalog, upgrade_id):
        return False
    upgrade = catalog.unit_upgrade(upgrade_id)
    if upgrade is None:
        return False
    spend(state, upgrade.cost)
    state.army[upgrade.from_unit] -= 1
    state.army[upgrade.to_unit] = state.army.get(upgrade.to_unit, 0) + 1
    prune_counts(state.army)
    return True


# --- Combined strength ----------------------------------------------------------


def effective_power(state: GameState, catalog: Catalog, base: ArmyPower) -> ArmyPower:
    """Troop stats plus fortifications and veterancy, scaled by the formation.

    An empty army stays at zero; fortifications do not fight on their own.
    """

    if base.health <= 0:
        return ArmyPower(attack=base.attack, defense=base.defense, health=base.health)

    defenses = defense_bonuses(state, catalog)
    veterancy = experience_bonuses(state, catalog)
    attack = base.attack + veterancy.attack
    defense = base.defense + defenses.defense + veterancy.defense
    health = base.health + defenses.health + veterancy.health

    formation = active_formation(state, catalog)
    if formation is not None:
        attack *= formation.attack_modifier
        defense *= formation.defense_modifier
        health *= formation.health_modifier

    return ArmyPower(
        attack=math.floor(attack),
        defense=math.floor(defense),
        health=math.floor(health),
    )
