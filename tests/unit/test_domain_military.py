from __future__ import annotations

from dataclasses import replace

import pytest

from eraforge.domain import combat, military, tick
from eraforge.domain.combat import CombatOptions
from eraforge.domain.enums import BattleKind
from eraforge.domain.models import ArmyPower, ExperienceLevel, UnitUpgrade
from eraforge.domain.state import create_initial_state

NOW = 1_700_000_000_000
FIXED = CombatOptions(fixed_factor=1.0)
LEVELS = (
    ExperienceLevel(level=0, name="Recruit", experience_required=0),
    ExperienceLevel(
        level=1,
        name="Regular",
        experience_required=100,
        attack_bonus=5,
        defense_bonus=5,
        health_bonus=10,
    ),
    ExperienceLevel(
        level=2,
        name="Veteran",
        experience_required=300,
        attack_bonus=15,
        defense_bonus=15,
        health_bonus=25,
    ),
)


@pytest.fixture
def veteran_catalog(catalog):
    return replace(catalog, experience_levels=LEVELS)


def _state(catalog, army: dict[str, int] | None = None):
    state = create_initial_state(catalog, NOW)
    state.army.update(army or {})
    return state


class TestFormations:
    def test_new_game_uses_standard_formation(self, catalog):
        state = _state(catalog)

        assert state.formation == "standard"
        assert military.active_formation(state, catalog).id == "standard"

    def test_available_formations_follow_research(self, catalog):
        state = _state(catalog)

        ids = [formation.id for formation in military.available_formations(state, catalog)]
        assert ids == ["standard", "aggressive"]

        state.researched.add("bronze_working")
        ids = [formation.id for formation in military.available_formations(state, catalog)]
        assert ids == ["standard", "aggressive", "phalanx"]

    @pytest.mark.parametrize("formation_id", ["phalanx", "turtle"])
    def test_set_formation_rejected(self, catalog, formation_id):
        state = _state(catalog)

        assert not military.set_formation(state, catalog, formation_id)
        assert state.formation == "standard"

    def test_set_formation(self, catalog):
        state = _state(catalog)
        state.researched.add("bronze_working")

        assert military.set_formation(state, catalog, "phalanx")
        assert state.formation == "phalanx"


class TestFortifications:
    def test_build_requires_technology(self, catalog):
        state = _state(catalog)
        state.resources.wood = 50

        assert not military.can_build_defense(state, catalog, "palisade")
        assert not military.build_defense(state, catalog, "palisade", NOW)
        assert state.resources.wood == 50

    def test_build_pays_and_queues(self, catalog):
        state = _state(catalog)
        state.researched.add("masonry")
        state.resources.wood = 50

        assert military.build_defense(state, catalog, "palisade", NOW)

        assert state.resources.wood == 30
        assert [(entry.type_id, entry.end) for entry in state.defense_queue] == [
            ("palisade", NOW + 5_000)
        ]
        assert military.resolve_fortification(state, NOW + 4_999) == []
        assert len(military.resolve_fortification(state, NOW + 5_000)) == 1
        assert state.defenses == {"palisade": 1}
        assert state.defense_queue == []

    def test_max_count_caps_completed_structures(self, catalog):
        state = _state(catalog)
        state.researched.add("masonry")
        state.resources.wood = 100
        state.defenses["palisade"] = 2

        assert not military.build_defense(state, catalog, "palisade", NOW)
        assert not military.build_defense(state, catalog, "moat", NOW)
        assert state.resources.wood == 100

    def test_tick_completes_fortifications(self, catalog):
        state = _state(catalog)
        state.researched.add("masonry")
        state.resources.wood = 20
        military.build_defense(state, catalog, "palisade", NOW)

        report = tick.run_tick(state, catalog, NOW + 5_000)

        assert [entry.type_id for entry in report.fortified] == ["palisade"]
        assert state.defenses == {"palisade": 1}

    def test_defense_bonuses_sum_structures(self, catalog):
        state = _state(catalog)
        state.defenses = {"palisade": 2, "ghost_wall": 3}

        assert military.defense_bonuses(state, catalog) == ArmyPower(
            attack=0, defense=20, health=100
        )


class TestVeterancy:
    @pytest.mark.parametrize(
        ("points", "name"),
        [(0, "Recruit"), (99, "Recruit"), (100, "Regular"), (299, "Regular"), (1_000, "Veteran")],
    )
    def test_experience_level_thresholds(self, veteran_catalog, points, name):
        assert military.experience_level(veteran_catalog, points).name == name

    def test_no_levels_in_catalog(self, catalog):
        assert military.experience_level(catalog, 500) is None

    def test_battle_experience(self):
        assert military.battle_experience(3, True) == 56
        assert military.battle_experience(3, False) == 26

    def test_gain_experience_for_surviving_types(self, catalog):
        state = _state(catalog, {"hunter": 3})
        state.experience = {"warrior": 40}

        assert military.gain_experience(state, 5, victory=True) == 60

        assert state.experience == {"hunter": 60, "warrior": 40}

    def test_bonuses_only_for_fielded_types(self, veteran_catalog):
        state = _state(veteran_catalog, {"hunter": 1})
        state.experience = {"hunter": 150, "warrior": 500}

        assert military.experience_bonuses(state, veteran_catalog) == ArmyPower(
            attack=5, defense=5, health=10
        )

    def test_completed_battle_awards_experience(self, catalog):
        state = _state(catalog, {"hunter": 100})
        combat.start_battle(state, catalog, BattleKind.MISSION, "wolves", NOW, options=FIXED)

        combat.advance_round(state, catalog, BattleKind.MISSION)

        assert state.experience == {"hunter": 52}

    def test_dismissed_battle_awards_nothing(self, catalog):
        state = _state(catalog, {"hunter": 1})
        combat.start_battle(state, catalog, BattleKind.CONQUEST, "valley", NOW, options=FIXED)

        combat.dismiss(state, BattleKind.CONQUEST)

        assert state.experience == {}


class TestEffectivePower:
    def test_combines_bonuses_then_formation(self, veteran_catalog):
        state = _state(veteran_catalog, {"hunter": 2})
        state.defenses = {"palisade": 1}
        state.experience = {"hunter": 150}
        state.formation = "aggressive"
        base = combat.army_power(state.army, veteran_catalog)

        power = military.effective_power(state, veteran_catalog, base)

        # attack (6 + 5) * 1.5, defense (2 + 10 + 5) * 0.5, health 40 + 50 + 10
        assert power == ArmyPower(attack=16, defense=8, health=100)

    def test_standard_formation_keeps_base(self, catalog):
        state = _state(catalog, {"hunter": 2})
        base = combat.army_power(state.army, catalog)

        assert military.effective_power(state, catalog, base) == base

    def test_unknown_formation_applies_no_modifier(self, catalog):
        state = _state(catalog, {"hunter": 2})
        state.formation = "retired"
        base = combat.army_power(state.army, catalog)

        assert military.effective_power(state, catalog, base) == base

    def test_fortifications_do_not_fight_alone(self, catalog):
        state = _state(catalog)
        state.defenses = {"palisade": 2}

        power = military.effective_power(state, catalog, combat.army_power({}, catalog))

        assert power == ArmyPower()
        assert combat.start_battle(state, catalog, BattleKind.MISSION, "wolves", NOW) is None

    def test_battle_uses_formation(self, catalog):
        state = _state(catalog, {"hunter": 10})
        state.formation = "aggressive"

        battle = combat.start_battle(
            state, catalog, BattleKind.MISSION, "wolves", NOW, options=FIXED
        )

        assert battle is not None
        # attack 30 * 1.5 against defense 2
        assert battle.logs[0].player_damage == 44

    def test_battle_uses_fortifications(self, catalog):
        state = _state(catalog, {"hunter": 10})
        state.defenses = {"palisade": 1}

        battle = combat.start_battle(
            state, catalog, BattleKind.MISSION, "wolves", NOW, options=FIXED
        )

        assert battle is not None
        # enemy attack 5 against defense 20 falls to the minimum damage
        assert battle.logs[0].enemy_damage == 1
        assert battle.logs[0].player_health == 249


class TestUpgrades:
    def test_upgrade_converts_one_unit(self, catalog):
        state = _state(catalog, {"hunter": 2})
        state.researched.add("bronze_working")
        state.resources.food = 20
        state.resources.gold = 5

        assert [upgrade.id for upgrade in military.available_upgrades(state, catalog)] == [
            "arm_hunters"
        ]
        assert military.upgrade_unit(state, catalog, "arm_hunters")

        assert state.army == {"hunter": 1, "warrior": 1}
        assert state.resources.food == 10
        assert state.resources.gold == 0
        assert not military.upgrade_unit(state, catalog, "arm_hunters")

    def test_upgrading_last_unit_prunes_type(self, catalog):
        state = _state(catalog, {"hunter": 1})
        state.researched.add("bronze_working")
        state.resources.food = 10
        state.resources.gold = 5

        assert military.upgrade_unit(state, catalog, "arm_hunters")

        assert state.army == {"warrior": 1}
        assert military.available_upgrades(state, catalog) == []

    @pytest.mark.parametrize(
        ("army", "researched"),
        [({"hunter": 1}, set()), ({}, {"bronze_working"})],
    )
    def test_upgrade_rejected(self, catalog, army, researched):
        state = _state(catalog, army)
        state.researched.update(researched)
        state.resources.food = 100
        state.resources.gold = 100

        assert not military.can_upgrade(state, catalog, "arm_hunters")
        assert not military.upgrade_unit(state, catalog, "arm_hunters")
        assert state.army == army
        assert state.resources.food == 100

    def test_upgrade_to_unknown_troop_rejected(self, catalog):
        broken = replace(
            catalog,
            unit_upgrades=(
                UnitUpgrade(
                    id="ascend",
                    name="Ascend",
                    description="",
                    from_unit="hunter",
                    to_unit="demigod",
                    cost={},
                ),
            ),
        )
        state = _state(broken, {"hunter": 1})

        assert not military.upgrade_unit(state, broken, "ascend")
        assert state.army == {"hunter": 1}
