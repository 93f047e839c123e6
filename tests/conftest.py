"""Pytest configuration and shared fixtures.

This adds the `src/` directory to `sys.path` so tests can import the
`eraforge` package without requiring an editable install in CI, and
provides a small hand-built catalog with round numbers for exact scenarios.
"""

import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from eraforge.domain import models as dm  # noqa: E402
from eraforge.domain.catalog import Catalog  # noqa: E402
from eraforge.domain.enums import AchievementCategory, ArmySize, Resource  # noqa: E402

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


def build_test_catalog() -> Catalog:
    food, wood, stone, gold, science = (
        Resource.FOOD,
        Resource.WOOD,
        Resource.STONE,
        Resource.GOLD,
        Resource.SCIENCE,
    )
    return Catalog(
        eras=(
            dm.Era(
                id="stone_age",
                name="Stone Age",
                description="",
                base_rates={food: 1.0, wood: 1.0, stone: 0.5, gold: 0.0, science: 0.1},
            ),
            dm.Era(
                id="bronze_age",
                name="Bronze Age",
                description="",
                base_rates={food: 2.0, wood: 2.0, stone: 1.0, gold: 0.5, science: 0.5},
                required_research="bronze_working",
            ),
            dm.Era(
                id="iron_age",
                name="Iron Age",
                description="",
                base_rates={food: 3.0, wood: 3.0, stone: 2.0, gold: 1.0, science: 1.0},
                required_research="iron_working",
            ),
        ),
        technologies=(
            dm.Technology(
                id="hunting",
                name="Hunting",
                description="",
                era="stone_age",
                cost=10,
                effects=(dm.ResourceBonus(food, 1.5), dm.TroopUnlock("hunter")),
            ),
            dm.Technology(
                id="fire",
                name="Fire",
                description="",
                era="stone_age",
                cost=20,
                prerequisites=("hunting",),
                effects=(dm.ResourceBonus(food, 1.5),),
            ),
            dm.Technology(
                id="masonry",
                name="Masonry",
                description="",
                era="stone_age",
                cost=10,
            ),
            dm.Technology(
                id="bronze_working",
                name="Bronze Working",
                description="",
                era="stone_age",
                cost=50,
                effects=(dm.TroopUnlock("warrior"), dm.EraUnlock("bronze_age")),
            ),
            dm.Technology(
                id="iron_working",
                name="Iron Working",
                description="",
                era="bronze_age",
                cost=100,
                prerequisites=("bronze_working",),
                effects=(dm.EraUnlock("iron_age"),),
            ),
            dm.Technology(
                id="cloud_computing",
                name="Cloud Computing",
                description="",
                era="stone_age",
                cost=5,
                effects=(dm.CapabilityUnlock("offline_progress"),),
            ),
        ),
        troop_types=(
            dm.TroopType(
                id="hunter",
                name="Hunter",
                description="",
                era="stone_age",
                cost={food: 30},
                train_time=5,
                attack=3,
                defense=1,
                health=20,
                unlock_tech="hunting",
            ),
            dm.TroopType(
                id="warrior",
                name="Warrior",
                description="",
                era="bronze_age",
                cost={food: 50, gold: 10},
                train_time=8,
                attack=8,
                defense=4,
                health=40,
                unlock_tech="bronze_working",
            ),
        ),
        building_types=(
            dm.BuildingType(
                id="hut",
                name="Hut",
                description="",
                era="stone_age",
                cost={food: 10, wood: 10},
                build_time=10,
                max_count=2,
                production={food: 0.5},
            ),
            dm.BuildingType(
                id="quarry",
                name="Quarry",
                description="",
                era="stone_age",
                cost={wood: 20},
                build_time=20,
                max_count=5,
                production={stone: 1.0},
                unlock_tech="masonry",
            ),
        ),
        missions=(
            dm.Mission(
                id="wolves",
                name="Wolf Pack",
                description="",
                era="stone_age",
                enemy=dm.Enemy(name="Wolves", attack=5, defense=2, health=30),
                rewards={food: 50, science: 5},
            ),
            dm.Mission(
                id="raiders",
                name="Raiders",
                description="",
                era="bronze_age",
                enemy=dm.Enemy(name="Raiders", attack=20, defense=10, health=200),
                rewards={gold: 100},
            ),
        ),
        territories=(
            dm.Territory(
                id="valley",
                name="River Valley",
                description="",
                era="stone_age",
                enemy=dm.Enemy(
                    name="River Tribe", attack=8, defense=4, health=50, size=ArmySize.SMALL
                ),
                rewards={food: 80},
                bonuses=(dm.FlatProduction(food, 1.0), dm.ResourceBonus(wood, 1.5)),
            ),
        ),
        achievements=(
            dm.Achievement(
                id="first_food",
                name="First Meal",
                description="",
                category=AchievementCategory.RESOURCES,
                condition=dm.ResourceTotal(food, 100),
            ),
            dm.Achievement(
                id="scholar",
                name="Scholar",
                description="",
                category=AchievementCategory.RESEARCH,
                condition=dm.TechCount(1),
                reward=dm.ResourceBonus(science, 1.1),
            ),
            dm.Achievement(
                id="bronze",
                name="Bronze",
                description="",
                category=AchievementCategory.PROGRESS,
                condition=dm.EraReached("bronze_age"),
            ),
            dm.Achievement(
                id="first_blood",
                name="First Blood",
                description="",
                category=AchievementCategory.COMBAT,
                condition=dm.BattlesWon(1),
            ),
        ),
        formations=(
            dm.Formation(id="standard", name="Standard", description=""),
            dm.Formation(
                id="aggressive",
                name="Aggressive",
                description="",
                attack_modifier=1.5,
                defense_modifier=0.5,
            ),
            dm.Formation(
                id="phalanx",
                name="Phalanx",
                description="",
                attack_modifier=0.5,
                defense_modifier=2.0,
                health_modifier=1.5,
                required_tech="bronze_working",
            ),
        ),
        defense_structures=(
            dm.DefenseStructure(
                id="palisade",
                name="Palisade",
                description="",
                era="stone_age",
                defense_bonus=10,
                health_bonus=50,
                cost={wood: 20},
                build_time=5,
                max_count=2,
                required_tech="masonry",
            ),
        ),
        unit_upgrades=(
            dm.UnitUpgrade(
                id="arm_hunters",
                name="Arm Hunters",
                description="",
                from_unit="hunter",
                to_unit="warrior",
                cost={food: 10, gold: 5},
                required_tech="bronze_working",
            ),
        ),
    )


@pytest.fixture
def catalog() -> Catalog:
    return build_test_catalog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
