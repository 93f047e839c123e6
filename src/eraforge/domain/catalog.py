"""Immutable reference tables and id lookups."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path

from pydantic import TypeAdapter

from .models import (
    Achievement,
    BuildingType,
    DefenseStructure,
    Era,
    ExperienceLevel,
    Formation,
    Mission,
    Technology,
    Territory,
    TroopType,
    UnitUpgrade,
)

DEFAULT_CATALOG_RESOURCE = "catalog.json"


@dataclass(frozen=True, slots=True)
class Catalog:
    """Reference data queried by id.

    Tables are small, so lookups are plain linear scans.  Unknown ids return
    ``None`` rather than raising.
    """

    eras: tuple[Era, ...]
    technologies: tuple[Technology, ...] = ()
    troop_types: tuple[TroopType, ...] = ()
    building_types: tuple[BuildingType, ...] = ()
    missions: tuple[Mission, ...] = ()
    territories: tuple[Territory, ...] = ()
    achievements: tuple[Achievement, ...] = ()
    formations: tuple[Formation, ...] = ()
    defense_structures: tuple[DefenseStructure, ...] = ()
    unit_upgrades: tuple[UnitUpgrade, ...] = ()
    experience_levels: tuple[ExperienceLevel, ...] = ()

    def era(self, era_id: str) -> Era | None:
        return next((era for era in self.eras if era.id == era_id), None)

    def era_index(self, era_id: str) -> int:
        """Ordinal position of an era, or ``-1`` when unknown."""

        for index, era in enumerate(self.eras):
            if era.id == era_id:
                return index
        return -1

    def next_era(self, era_id: str) -> Era | None:
        index = self.era_index(era_id)
        if index < 0 or index + 1 >= len(self.eras):
            return None
        return self.eras[index + 1]

    def technology(self, tech_id: str) -> Technology | None:
        return next((tech for tech in self.technologies if tech.id == tech_id), None)

    def troop_type(self, troop_id: str) -> TroopType | None:
        return next((troop for troop in self.troop_types if troop.id == troop_id), None)

    def building_type(self, building_id: str) -> BuildingType | None:
        return next(
            (building for building in self.building_types if building.id == building_id),
            None,
        )

    def mission(self, mission_id: str) -> Mission | None:
        return next((mission for mission in self.missions if mission.id == mission_id), None)

    def territory(self, territory_id: str) -> Territory | None:
        return next(
            (territory for territory in self.territories if territory.id == territory_id),
            None,
        )

    def achievement(self, achievement_id: str) -> Achievement | None:
        return next(
            (entry for entry in self.achievements if entry.id == achievement_id),
            None,
        )

    def formation(self, formation_id: str) -> Formation | None:
        return next((entry for entry in self.formations if entry.id == formation_id), None)

    def defense_structure(self, structure_id: str) -> DefenseStructure | None:
        return next(
            (entry for entry in self.defense_structures if entry.id == structure_id),
            None,
        )

    def unit_upgrade(self, upgrade_id: str) -> UnitUpgrade | None:
        return next((entry for entry in self.unit_upgrades if entry.id == upgrade_id), None)

    def buildings_unlocked_by(self, tech_id: str) -> list[BuildingType]:
        return [building for building in self.building_types if building.unlock_tech == tech_id]

    def starting_buildings(self) -> set[str]:
        """Buildings that need no research."""

        return {building.id for building in self.building_types if building.unlock_tech is None}


_CATALOG_ADAPTER = TypeAdapter(Catalog)


def parse_catalog(raw: str | bytes) -> Catalog:
    """Validate catalog JSON into a :class:`Catalog`.

    Raises:
        pydantic.ValidationError: If the document does not match the schema
    """

    catalog = _CATALOG_ADAPTER.validate_json(raw)
    if not catalog.eras:
        raise ValueError("catalog must define at least one era")
    return catalog


def load_catalog(path: Path) -> Catalog:
    return parse_catalog(path.read_bytes())


@lru_cache
def default_catalog() -> Catalog:
    """Catalog bundled with the package."""

    data = resources.files("eraforge.data").joinpath(DEFAULT_CATALOG_RESOURCE).read_bytes()
    return parse_catalog(data)
