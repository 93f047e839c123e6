"""Enumerations shared across the Eraforge domain."""

from __future__ import annotations

from enum import StrEnum


class Resource(StrEnum):
    """The five accumulating resources."""

    FOOD = "food"
    WOOD = "wood"
    STONE = "stone"
    GOLD = "gold"
    SCIENCE = "science"


class BattleKind(StrEnum):
    """Independent battle slots; one active battle is allowed per kind."""

    MISSION = "mission"
    CONQUEST = "conquest"


class ArmySize(StrEnum):
    """Size class of a territory's defenders."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    BOSS = "boss"


class AchievementCategory(StrEnum):
    """Grouping used when listing achievements."""

    RESOURCES = "resources"
    RESEARCH = "research"
    MILITARY = "military"
    PROGRESS = "progress"
    COMBAT = "combat"
    BUILDINGS = "buildings"


class Capability(StrEnum):
    """Special capabilities that technologies can unlock."""

    OFFLINE_PROGRESS = "offline_progress"
