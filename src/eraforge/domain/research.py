"""Technology prerequisites and single-slot research progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import assert_never

from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import advance_era, compound_multiplier, effective_rates
from eraforge.domain.enums import Resource
from eraforge.domain.models import (
    CapabilityUnlock,
    EraUnlock,
    GameState,
    ResourceBonus,
    Technology,
    TroopUnlock,
)


@dataclass(slots=True)
class ResearchCompletion:
    """What completing a technology changed."""

    tech_id: str
    new_era: str | None = None
    unlocked_troops: list[str] = field(default_factory=list)
    unlocked_buildings: list[str] = field(default_factory=list)
    unlocked_capabilities: list[str] = field(default_factory=list)


def can_start(state: GameState, catalog: Catalog, tech_id: str) -> bool:
    tech = catalog.technology(tech_id)
    if tech is None or tech_id in state.researched:
        return False
    if not prerequisites_met(state, tech):
        return False
    return state.resources.science >= tech.cost


def prerequisites_met(state: GameState, tech: Technology) -> bool:
    return all(prereq in state.researched for prereq in tech.prerequisites)


def start(state: GameState, catalog: Catalog, tech_id: str) -> bool:
    """Begin researching ``tech_id``; only one research may be active."""

    if state.current_research is not None or not can_start(state, catalog, tech_id):
        return False

    tech = catalog.technology(tech_id)
    if tech is None:
        return False
    state.resources.science -= tech.cost
    state.current_research = tech_id
    state.research_progress = 0.0
    return True


def advance(
    state: GameState,
    catalog: Catalog,
    delta_seconds: float,
) -> ResearchCompletion | None:
    """Accrue progress from effective science production."""

    if state.current_research is None or delta_seconds <= 0:
        return None

    tech = catalog.technology(state.current_research)
    if tech is None:
        # Research removed from the catalog since it was started.
        state.current_research = None
        state.research_progress = 0.0
        return None

    rates = effective_rates(state, catalog)
    if rates is None:
        return None

    state.research_progress += rates[Resource.SCIENCE] * delta_seconds
    if state.research_progress >= tech.cost:
        return complete(state, catalog, tech)
    return None


def complete(state: GameState, catalog: Catalog, tech: Technology) -> ResearchCompletion:
    """Mark ``tech`` researched, apply its effects, and free the research slot."""

    completion = ResearchCompletion(tech_id=tech.id)
    state.researched.add(tech.id)
    era_unlocks: set[str] = set()

    for effect in tech.effects:
        match effect:
            case ResourceBonus(resource=resource, multiplier=multiplier):
                compound_multiplier(state, resource, multiplier)
            case TroopUnlock(troop_id=troop_id):
                state.unlocked_troops.add(troop_id)
                completion.unlocked_troops.append(troop_id)
            case EraUnlock(era_id=era_id):
                era_unlocks.add(era_id)
            case CapabilityUnlock(capability=capability):
                state.capabilities.add(capability)
                completion.unlocked_capabilities.append(capability)
            case _:
                assert_never(effect)

    # At most one era step per completion, however many eras the tech names.
    if era_unlocks and advance_era(state, catalog, era_unlocks):
        completion.new_era = state.current_era

    for building in catalog.buildings_unlocked_by(tech.id):
        state.unlocked_buildings.add(building.id)
        completion.unlocked_buildings.append(building.id)

    state.current_research = None
    state.research_progress = 0.0
    return completion


def available_technologies(state: GameState, catalog: Catalog) -> list[Technology]:
    """Unresearched technologies whose prerequisites are met."""

    return [
        tech
        for tech in catalog.technologies
        if tech.id not in state.researched and prerequisites_met(state, tech)
    ]


def derived_buildings(researched: set[str], catalog: Catalog) -> set[str]:
    """Buildings unlocked by default plus those unlocked by ``researched``."""

    unlocked = catalog.starting_buildings()
    for tech_id in researched:
        unlocked.update(building.id for building in catalog.buildings_unlocked_by(tech_id))
    return unlocked


def derived_capabilities(researched: set[str], catalog: Catalog) -> set[str]:
    capabilities: set[str] = set()
    for tech_id in researched:
        tech = catalog.technology(tech_id)
        if tech is None:
            continue
        capabilities.update(
            effect.capability for effect in tech.effects if isinstance(effect, CapabilityUnlock)
        )
    return capabilities
