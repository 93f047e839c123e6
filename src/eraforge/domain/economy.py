"""Resource ledger and era track rules."""

from __future__ import annotations

from collections.abc import Mapping

from eraforge.domain.catalog import Catalog
from eraforge.domain.enums import Resource
from eraforge.domain.models import RESOURCES, FlatProduction, GameState, ResourceAmounts
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig


def building_production(buildings: Mapping[str, int], catalog: Catalog) -> ResourceAmounts:
    """Per-second output of every owned building."""

    totals: ResourceAmounts = {resource: 0.0 for resource in RESOURCES}
    for building_id, count in buildings.items():
        building = catalog.building_type(building_id)
        if building is None:
            continue
        for resource, amount in building.production.items():
            totals[resource] += amount * count
    return totals


def territory_production(conquered: set[str], catalog: Catalog) -> ResourceAmounts:
    """Flat production granted by conquered territories."""

    totals: ResourceAmounts = {resource: 0.0 for resource in RESOURCES}
    for territory_id in conquered:
        territory = catalog.territory(territory_id)
        if territory is None:
            continue
        for bonus in territory.bonuses:
            if isinstance(bonus, FlatProduction):
                totals[bonus.resource] += bonus.amount
    return totals


def production_rates(state: GameState, catalog: Catalog) -> ResourceAmounts | None:
    """Unmultiplied per-second production, or ``None`` when the era is unknown."""

    era = catalog.era(state.current_era)
    if era is None:
        return None

    buildings = building_production(state.buildings, catalog)
    territories = territory_production(state.conquered_territories, catalog)
    return {
        resource: era.base_rates.get(resource, 0.0) + buildings[resource] + territories[resource]
        for resource in RESOURCES
    }


def effective_rates(state: GameState, catalog: Catalog) -> ResourceAmounts | None:
    """Per-second production after multipliers."""

    rates = production_rates(state, catalog)
    if rates is None:
        return None
    return {resource: rate * state.multipliers.get(resource) for resource, rate in rates.items()}


def accrue(state: GameState, catalog: Catalog, delta_seconds: float) -> ResourceAmounts:
    """Add ``delta_seconds`` worth of production to balances and lifetime totals."""

    rates = effective_rates(state, catalog)
    if rates is None or delta_seconds <= 0:
        return {}

    gains = {resource: rate * delta_seconds for resource, rate in rates.items()}
    grant(state, gains)
    return gains


def gather(
    state: GameState,
    resource: Resource,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Manual gathering click; returns the amount gained."""

    amount = rules.economy.gather_amount * state.multipliers.get(resource)
    state.resources.add(resource, amount)
    state.statistics.gathered.add(resource, amount)
    state.statistics.click_count += 1
    return amount


def grant(state: GameState, amounts: Mapping[Resource, float]) -> None:
    """Credit balances and the matching lifetime statistics."""

    state.resources.add_all(amounts)
    state.statistics.gathered.add_all(amounts)


def can_afford(state: GameState, cost: Mapping[Resource, float]) -> bool:
    return all(state.resources.get(resource) >= amount for resource, amount in cost.items())


def spend(state: GameState, cost: Mapping[Resource, float]) -> bool:
    """Deduct ``cost`` if every component is affordable; all or nothing."""

    if not can_afford(state, cost):
        return False
    for resource, amount in cost.items():
        state.resources.add(resource, -amount)
    return True


def compound_multiplier(state: GameState, resource: Resource, factor: float) -> float:
    """Multiply a resource's multiplier by ``factor`` and return the new value."""

    if factor < 0:
        raise ValueError(f"multiplier factor must be non-negative, got {factor}")
    value = state.multipliers.get(resource) * factor
    state.multipliers.set(resource, value)
    return value


def advance_era(state: GameState, catalog: Catalog, unlocked_era_ids: set[str]) -> bool:
    """Step to the next era when it is among ``unlocked_era_ids``."""

    next_era = catalog.next_era(state.current_era)
    if next_era is None or next_era.id not in unlocked_era_ids:
        return False
    state.current_era = next_era.id
    return True


def era_reached(state: GameState, catalog: Catalog, era_id: str) -> bool:
    target = catalog.era_index(era_id)
    return target >= 0 and catalog.era_index(state.current_era) >= target
