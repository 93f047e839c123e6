from __future__ import annotations

import pytest

from eraforge.domain import economy
from eraforge.domain.enums import Resource
from eraforge.domain.rules_config import EconomyRules, RulesConfig
from eraforge.domain.state import create_initial_state

NOW = 1_700_000_000_000


def _state(catalog):
    return create_initial_state(catalog, NOW)


def test_initial_state_starts_in_first_era(catalog):
    state = _state(catalog)

    assert state.current_era == "stone_age"
    assert state.last_update == NOW
    assert state.resources.as_dict() == {resource: 0.0 for resource in Resource}
    assert state.multipliers.as_dict() == {resource: 1.0 for resource in Resource}
    assert state.unlocked_buildings == {"hut"}
    assert set(state.achievements) == {"first_food", "scholar", "bronze", "first_blood"}


def test_unknown_starting_era_falls_back_to_first_era(catalog):
    rules = RulesConfig(economy=EconomyRules(starting_era="atlantis"))

    state = create_initial_state(catalog, NOW, rules=rules)

    assert state.current_era == "stone_age"


def test_production_rates_combine_era_buildings_and_territories(catalog):
    state = _state(catalog)
    state.buildings["hut"] = 2
    state.conquered_territories.add("valley")

    rates = economy.production_rates(state, catalog)

    assert rates is not None
    assert rates[Resource.FOOD] == pytest.approx(1.0 + 2 * 0.5 + 1.0)
    assert rates[Resource.WOOD] == pytest.approx(1.0)
    assert rates[Resource.STONE] == pytest.approx(0.5)


def test_production_rates_unknown_era(catalog):
    state = _state(catalog)
    state.current_era = "atlantis"

    assert economy.production_rates(state, catalog) is None
    assert economy.accrue(state, catalog, 10) == {}


def test_accrue_applies_multipliers_and_lifetime_totals(catalog):
    state = _state(catalog)
    state.multipliers.food = 1.5

    gains = economy.accrue(state, catalog, 10)

    assert gains[Resource.FOOD] == pytest.approx(15.0)
    assert state.resources.food == pytest.approx(15.0)
    assert state.resources.wood == pytest.approx(10.0)
    assert state.resources.stone == pytest.approx(5.0)
    assert state.resources.science == pytest.approx(1.0)
    assert state.statistics.gathered.food == pytest.approx(15.0)


def test_accrue_ignores_non_positive_delta(catalog):
    state = _state(catalog)

    assert economy.accrue(state, catalog, 0) == {}
    assert state.resources.food == 0.0


def test_gather_counts_clicks(catalog):
    state = _state(catalog)
    state.multipliers.wood = 2.0

    assert economy.gather(state, Resource.FOOD) == pytest.approx(1.0)
    assert economy.gather(state, Resource.WOOD) == pytest.approx(2.0)

    assert state.resources.food == pytest.approx(1.0)
    assert state.resources.wood == pytest.approx(2.0)
    assert state.statistics.gathered.wood == pytest.approx(2.0)
    assert state.statistics.click_count == 2


def test_spend_is_all_or_nothing(catalog):
    state = _state(catalog)
    state.resources.food = 5
    state.resources.wood = 100

    assert not economy.spend(state, {Resource.FOOD: 10, Resource.WOOD: 10})
    assert state.resources.food == 5
    assert state.resources.wood == 100

    state.resources.food = 10
    assert economy.spend(state, {Resource.FOOD: 10, Resource.WOOD: 10})
    assert state.resources.food == 0
    assert state.resources.wood == 90


def test_compound_multiplier(catalog):
    state = _state(catalog)

    economy.compound_multiplier(state, Resource.FOOD, 1.5)
    value = economy.compound_multiplier(state, Resource.FOOD, 1.5)

    assert value == pytest.approx(2.25)
    assert state.multipliers.food == pytest.approx(2.25)


def test_compound_multiplier_rejects_negative_factor(catalog):
    state = _state(catalog)

    with pytest.raises(ValueError, match="non-negative"):
        economy.compound_multiplier(state, Resource.FOOD, -1.0)


def test_advance_era_only_steps_to_next_era(catalog):
    state = _state(catalog)

    assert not economy.advance_era(state, catalog, {"iron_age"})
    assert state.current_era == "stone_age"

    assert economy.advance_era(state, catalog, {"bronze_age"})
    assert state.current_era == "bronze_age"


def test_advance_era_stops_at_last_era(catalog):
    state = _state(catalog)
    state.current_era = "iron_age"

    assert not economy.advance_era(state, catalog, {"iron_age", "bronze_age"})
    assert state.current_era == "iron_age"


def test_era_reached(catalog):
    state = _state(catalog)
    state.current_era = "bronze_age"

    assert economy.era_reached(state, catalog, "stone_age")
    assert economy.era_reached(state, catalog, "bronze_age")
    assert not economy.era_reached(state, catalog, "iron_age")
    assert not economy.era_reached(state, catalog, "atlantis")
