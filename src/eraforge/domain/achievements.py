"""Achievement condition evaluation and notification queueing."""

from __future__ import annotations

from typing import assert_never

from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import compound_multiplier, era_reached
from eraforge.domain.models import (
    Achievement,
    AchievementCondition,
    AchievementProgress,
    BattlesWon,
    BuildingCount,
    EraReached,
    GameState,
    MissionsCompleted,
    ResourceCurrent,
    ResourceTotal,
    TechCount,
    TroopCount,
    total_count,
)


def is_satisfied(state: GameState, catalog: Catalog, condition: AchievementCondition) -> bool:
    match condition:
        case ResourceTotal(resource=resource, amount=amount):
            return state.statistics.gathered.get(resource) >= amount
        case ResourceCurrent(resource=resource, amount=amount):
            return state.resources.get(resource) >= amount
        case TechCount(amount=amount):
            return len(state.researched) >= amount
        case TroopCount(amount=amount):
            return total_count(state.army) >= amount
        case EraReached(era_id=era_id):
            return era_reached(state, catalog, era_id)
        case BattlesWon(amount=amount):
            return state.statistics.battles_won >= amount
        case MissionsCompleted(amount=amount):
            return len(state.completed_missions) >= amount
        case BuildingCount(amount=amount):
            return total_count(state.buildings) >= amount
        case _:
            assert_never(condition)


def evaluate(state: GameState, catalog: Catalog, now: int) -> list[Achievement]:
    """Unlock every achievement whose condition now holds.

    Newly unlocked ids are appended to ``state.pending_notifications`` and any
    multiplier reward is compounded once.  Unlocked achievements are never
    re-evaluated.
    """

    unlocked: list[Achievement] = []
    for achievement in catalog.achievements:
        progress = state.achievements.setdefault(achievement.id, AchievementProgress())
        if progress.unlocked or not is_satisfied(state, catalog, achievement.condition):
            continue

        progress.unlocked = True
        progress.unlocked_at = now
        progress.notified = False
        state.pending_notifications.append(achievement.id)
        if achievement.reward is not None:
            compound_multiplier(state, achievement.reward.resource, achievement.reward.multiplier)
        unlocked.append(achievement)
    return unlocked


def pop_notification(state: GameState) -> str | None:
    """Consume the oldest pending notification and mark it notified."""

    if not state.pending_notifications:
        return None
    achievement_id = state.pending_notifications.pop(0)
    progress = state.achievements.get(achievement_id)
    if progress is not None:
        progress.notified = True
    return achievement_id


def unlocked_count(state: GameState) -> int:
    return sum(1 for progress in state.achievements.values() if progress.unlocked)
