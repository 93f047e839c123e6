"""Declarative rule configuration for the simulation."""

from __future__ import annotations

from dataclasses import dataclass

from eraforge.domain.enums import Capability


@dataclass(frozen=True, slots=True)
class EconomyRules:
    """Manual gathering and starting-state constants."""

    gather_amount: float = 1.0
    starting_era: str = "stone_age"


@dataclass(frozen=True, slots=True)
class CombatRules:
    """Damage formula and attrition constants."""

    defense_mitigation: float = 0.3
    minimum_damage: float = 1.0
    max_rounds: int = 50
    damage_factor_min: float = 0.8
    damage_factor_range: float = 0.4
    attrition_ratio: float = 0.5  # fraction of casualty percent that becomes losses


@dataclass(frozen=True, slots=True)
class OfflineRules:
    """Offline catch-up gating and efficiency."""

    capability: str = Capability.OFFLINE_PROGRESS
    minimum_seconds: float = 60.0
    max_seconds: float = 8 * 60 * 60.0
    efficiency: float = 0.5


@dataclass(frozen=True, slots=True)
class MilitaryRules:
    """Formation default and battle experience awards."""

    default_formation: str = "standard"
    victory_experience: int = 50
    defeat_experience: int = 20
    experience_per_round: int = 2


@dataclass(frozen=True, slots=True)
class PlaybackRules:
    """Battle replay pacing, in milliseconds per round."""

    default_speed_ms: int = 800
    min_speed_ms: int = 100
    max_speed_ms: int = 2000


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    economy: EconomyRules = EconomyRules()
    combat: CombatRules = CombatRules()
    offline: OfflineRules = OfflineRules()
    playback: PlaybackRules = PlaybackRules()
    military: MilitaryRules = MilitaryRules()


DEFAULT_RULES = RulesConfig()
