"""Factories for fresh engine state."""

from __future__ import annotations

from eraforge.domain.catalog import Catalog
from eraforge.domain.models import AchievementProgress, GameState
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig


def initial_achievement_progress(catalog: Catalog) -> dict[str, AchievementProgress]:
    return {achievement.id: AchievementProgress() for achievement in catalog.achievements}


def create_initial_state(
    catalog: Catalog,
    now: int,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> GameState:
    """Build the state of a brand-new game started at ``now`` (epoch ms).

    The configured starting era is used when the catalog knows it; otherwise
    the first era in the catalog.
    """

    starting_era = rules.economy.starting_era
    if catalog.era(starting_era) is None:
        starting_era = catalog.eras[0].id

    return GameState(
        current_era=starting_era,
        last_update=now,
        unlocked_buildings=catalog.starting_buildings(),
        battle_speed=rules.playback.default_speed_ms,
        formation=rules.military.default_formation,
        achievements=initial_achievement_progress(catalog),
    )
