"""Battle precomputation, playback, and resolution.

A battle is simulated in full when it starts.  The resulting round logs are
then revealed one at a time by :func:`advance_round`; the outcome never
depends on when or how fast the rounds are replayed.
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping
from dataclasses import dataclass

from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import compound_multiplier, grant
from eraforge.domain.enums import BattleKind
from eraforge.domain.military import effective_power, gain_experience
from eraforge.domain.models import (
    ActiveBattle,
    ArmyPower,
    BattleLog,
    BattleResult,
    Enemy,
    GameState,
    Mission,
    Opponent,
    ResourceBonus,
    Territory,
    prune_counts,
)
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig
from eraforge.utils.rng import generate_battle_seed, seeded_random

NO_ARMY_MESSAGE = "You have no army to fight! The enemy claims victory."


@dataclass(slots=True)
class CombatOptions:
    """Configuration for simulating a battle."""

    seed: str | None = None
    fixed_factor: float | None = None


@dataclass(slots=True)
class CombatOutcome:
    """Round logs plus the result derived from them."""

    logs: list[BattleLog]
    result: BattleResult


def army_power(army: Mapping[str, int], catalog: Catalog) -> ArmyPower:
    """Sum attack, defense, and health over every unit in ``army``."""

    power = ArmyPower()
    for troop_id, count in army.items():
        troop = catalog.troop_type(troop_id)
        if troop is None:
            continue
        power.attack += troop.attack * count
        power.defense += troop.defense * count
        power.health += troop.health * count
    return power


def calculate_damage(
    attack: float,
    defense: float,
    factor: float,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> int:
    """Damage dealt by ``attack`` against ``defense`` for a given random factor."""

    combat = rules.combat
    base = max(combat.minimum_damage, attack - defense * combat.defense_mitigation)
    return math.floor(base * factor)


def roll_damage_factor(rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    return rules.combat.damage_factor_min + rng.random() * rules.combat.damage_factor_range


def simulate_round(
    round_number: int,
    player: ArmyPower,
    enemy: Enemy,
    player_health: float,
    enemy_health: float,
    *,
    player_factor: float,
    enemy_factor: float,
    rules: RulesConfig = DEFAULT_RULES,
) -> BattleLog:
    """One exchange; both sides strike against pre-round health."""

    player_damage = calculate_damage(player.attack, enemy.defense, player_factor, rules=rules)
    enemy_damage = calculate_damage(enemy.attack, player.defense, enemy_factor, rules=rules)
    return BattleLog(
        round=round_number,
        player_damage=player_damage,
        enemy_damage=enemy_damage,
        player_health=max(0.0, player_health - enemy_damage),
        enemy_health=max(0.0, enemy_health - player_damage),
        message=(
            f"Your army deals {player_damage} damage! "
            f"Enemy army deals {enemy_damage} damage!"
        ),
    )


def generate_battle_logs(
    player: ArmyPower,
    enemy: Enemy,
    *,
    options: CombatOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[BattleLog]:
    """Simulate every round until one side falls or the round cap is reached."""

    options = options or CombatOptions()
    rng = seeded_random(options.seed) if options.seed is not None else random.Random()

    def _factor() -> float:
        if options.fixed_factor is not None:
            return options.fixed_factor
        return roll_damage_factor(rng, rules=rules)

    logs: list[BattleLog] = []
    player_health = player.health
    enemy_health = enemy.health
    round_number = 1
    while player_health > 0 and enemy_health > 0 and round_number <= rules.combat.max_rounds:
        log = simulate_round(
            round_number,
            player,
            enemy,
            player_health,
            enemy_health,
            player_factor=_factor(),
            enemy_factor=_factor(),
            rules=rules,
        )
        logs.append(log)
        player_health = log.player_health
        enemy_health = log.enemy_health
        round_number += 1
    return logs


def simulate_combat(
    army: Mapping[str, int],
    opponent: Opponent,
    catalog: Catalog,
    *,
    options: CombatOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatOutcome:
    """Precompute the full battle between ``army`` and ``opponent``."""

    return resolve_power(army_power(army, catalog), opponent, options=options, rules=rules)


def resolve_power(
    power: ArmyPower,
    opponent: Opponent,
    *,
    options: CombatOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatOutcome:
    """Precompute a battle fought with already summed ``power``."""

    options = options or CombatOptions()
    enemy = opponent.enemy

    if power.health <= 0:
        log = BattleLog(
            round=1,
            player_damage=0,
            enemy_damage=math.floor(enemy.health),
            player_health=0.0,
            enemy_health=enemy.health,
            message=NO_ARMY_MESSAGE,
        )
        return CombatOutcome(
            logs=[log],
            result=BattleResult(victory=False, casualty_percent=100, seed=options.seed),
        )

    logs = generate_battle_logs(power, enemy, options=options, rules=rules)
    return CombatOutcome(
        logs=logs,
        result=determine_result(logs, power.health, opponent, seed=options.seed),
    )


def determine_result(
    logs: list[BattleLog],
    start_health: float,
    opponent: Opponent,
    *,
    seed: str | None = None,
) -> BattleResult:
    """Victory iff the enemy fell; a battle that hits the round cap is lost."""

    end_player_health = logs[-1].player_health if logs else start_health
    end_enemy_health = logs[-1].enemy_health if logs else opponent.enemy.health
    victory = end_enemy_health <= 0
    casualty_percent = (
        round((start_health - end_player_health) / start_health * 100) if start_health > 0 else 100
    )
    return BattleResult(
        victory=victory,
        casualty_percent=casualty_percent,
        rewards=dict(opponent.rewards) if victory else {},
        seed=seed,
    )


def apply_casualties(
    army: dict[str, int],
    casualty_percent: float,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> dict[str, int]:
    """Remove the attrition share of ``casualty_percent`` from every troop type."""

    ratio = casualty_percent / 100 * rules.combat.attrition_ratio
    losses: dict[str, int] = {}
    for troop_id, count in army.items():
        lost = math.floor(count * ratio)
        if lost > 0:
            army[troop_id] = count - lost
            losses[troop_id] = lost
    prune_counts(army)
    return losses


# --- Opponent availability ------------------------------------------------------


def find_opponent(catalog: Catalog, kind: BattleKind, target_id: str) -> Opponent | None:
    if kind is BattleKind.MISSION:
        return catalog.mission(target_id)
    return catalog.territory(target_id)


def is_opponent_available(state: GameState, catalog: Catalog, opponent: Opponent) -> bool:
    target_index = catalog.era_index(opponent.era)
    return 0 <= target_index <= catalog.era_index(state.current_era)


def available_missions(state: GameState, catalog: Catalog) -> list[Mission]:
    return [
        mission for mission in catalog.missions if is_opponent_available(state, catalog, mission)
    ]


def available_territories(state: GameState, catalog: Catalog) -> list[Territory]:
    """Territories of the current or earlier eras not yet conquered."""

    return [
        territory
        for territory in catalog.territories
        if territory.id not in state.conquered_territories
        and is_opponent_available(state, catalog, territory)
    ]


# --- Battle lifecycle -----------------------------------------------------------


def start_battle(
    state: GameState,
    catalog: Catalog,
    kind: BattleKind,
    target_id: str,
    now: int,
    *,
    options: CombatOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> ActiveBattle | None:
    """Precompute a battle and make it the active battle of its kind.

    Returns ``None`` when the battle cannot start: a battle of this kind is
    still active, the target is unknown or from a later era, the territory is
    already conquered, or the army has no health.
    """

    if kind in state.active_battles:
        return None

    opponent = find_opponent(catalog, kind, target_id)
    if opponent is None or not is_opponent_available(state, catalog, opponent):
        return None
    if kind is BattleKind.CONQUEST and target_id in state.conquered_territories:
        return None
    base = army_power(state.army, catalog)
    if base.health <= 0:
        return None

    options = options or CombatOptions()
    if options.seed is None:
        battle_number = state.statistics.battles_won + state.statistics.battles_lost
        options = CombatOptions(
            seed=generate_battle_seed(kind.value, target_id, battle_number, now),
            fixed_factor=options.fixed_factor,
        )

    power = effective_power(state, catalog, base)
    outcome = resolve_power(power, opponent, options=options, rules=rules)
    battle = ActiveBattle(kind=kind, target_id=target_id, logs=outcome.logs, result=outcome.result)
    state.active_battles[kind] = battle
    return battle


def advance_round(
    state: GameState,
    catalog: Catalog,
    kind: BattleKind,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Reveal the next round; completes the battle after the last one."""

    battle = state.active_battles.get(kind)
    if battle is None or battle.is_complete:
        return False

    battle.current_round += 1
    if battle.current_round >= len(battle.logs):
        complete_battle(state, catalog, battle, rules=rules)
    return True


def complete_battle(
    state: GameState,
    catalog: Catalog,
    battle: ActiveBattle,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Apply the precomputed result exactly once."""

    if battle.is_complete:
        return
    battle.is_complete = True
    battle.current_round = len(battle.logs)
    result = battle.result

    if result.victory:
        grant(state, result.rewards)
        state.statistics.battles_won += 1
        if battle.kind is BattleKind.MISSION:
            state.completed_missions.add(battle.target_id)
        else:
            _claim_territory(state, catalog, battle.target_id)
    else:
        state.statistics.battles_lost += 1

    if result.casualty_percent > 0:
        apply_casualties(state.army, result.casualty_percent, rules=rules)
    gain_experience(state, len(battle.logs), result.victory, rules=rules)


def _claim_territory(state: GameState, catalog: Catalog, territory_id: str) -> None:
    if territory_id in state.conquered_territories:
        return
    state.conquered_territories.add(territory_id)
    state.statistics.territories_conquered += 1

    territory = catalog.territory(territory_id)
    if territory is None:
        return
    # Flat bonuses are read live from the conquered set; multipliers compound once.
    for bonus in territory.bonuses:
        if isinstance(bonus, ResourceBonus):
            compound_multiplier(state, bonus.resource, bonus.multiplier)


def dismiss(state: GameState, kind: BattleKind) -> bool:
    return state.active_battles.pop(kind, None) is not None


def set_battle_speed(
    state: GameState,
    speed_ms: int,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> int:
    playback = rules.playback
    state.battle_speed = max(playback.min_speed_ms, min(playback.max_speed_ms, int(speed_ms)))
    return state.battle_speed
