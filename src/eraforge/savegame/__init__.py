"""Save document codec and offline catch-up for Eraforge games."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError

from eraforge.domain import models as dm
from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import effective_rates, grant
from eraforge.domain.enums import Resource
from eraforge.domain.research import derived_buildings, derived_capabilities
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig
from eraforge.domain.state import initial_achievement_progress

logger = logging.getLogger(__name__)

FORMAT_VERSION = 3


class SaveFormatError(ValueError):
    """Raised when a save document cannot be decoded."""


class ResourceRecord(BaseModel):
    """Balances or lifetime totals keyed by resource name."""

    food: float = 0.0
    wood: float = 0.0
    stone: float = 0.0
    gold: float = 0.0
    science: float = 0.0

    @classmethod
    def from_pool(cls, pool: dm.ResourcePool) -> ResourceRecord:
        return cls(**{resource.value: pool.get(resource) for resource in Resource})

    def to_pool(self) -> dm.ResourcePool:
        return dm.ResourcePool(self.food, self.wood, self.stone, self.gold, self.science)


class MultiplierRecord(ResourceRecord):
    food: float = Field(default=1.0, ge=0.0)
    wood: float = Field(default=1.0, ge=0.0)
    stone: float = Field(default=1.0, ge=0.0)
    gold: float = Field(default=1.0, ge=0.0)
    science: float = Field(default=1.0, ge=0.0)


class QueueRecord(BaseModel):
    type_id: str
    start: int
    end: int


class AchievementRecord(BaseModel):
    unlocked: bool = False
    unlocked_at: int | None = None
    notified: bool = False


class StatisticsRecord(BaseModel):
    """Lifetime counters; every field defaults so older saves still load."""

    gathered: ResourceRecord = Field(default_factory=ResourceRecord)
    troops_trained: int = 0
    battles_won: int = 0
    battles_lost: int = 0
    click_count: int = 0
    offline_earnings: float = 0.0
    buildings_constructed: int = 0
    territories_conquered: int = 0


class SaveDocument(BaseModel):
    """Persisted form of :class:`~eraforge.domain.models.GameState`.

    Id-keyed maps are stored as arrays of ``[id, value]`` pairs and id sets as
    arrays of ids.  Active battles and pending notifications are not saved.
    Fields that are ``None`` were absent from the payload and are derived
    from the rest of the document when it is decoded.
    """

    format_version: int = FORMAT_VERSION
    save_time: int | None = None
    current_era: str | None = None
    total_play_time: float = 0.0
    resources: ResourceRecord = Field(default_factory=ResourceRecord)
    multipliers: MultiplierRecord = Field(default_factory=MultiplierRecord)
    researched: list[str] = Field(default_factory=list)
    current_research: str | None = None
    research_progress: float = 0.0
    army: list[tuple[str, int]] = Field(default_factory=list)
    unlocked_troops: list[str] = Field(default_factory=list)
    training_queue: list[QueueRecord] = Field(default_factory=list)
    buildings: list[tuple[str, int]] = Field(default_factory=list)
    unlocked_buildings: list[str] | None = None
    construction_queue: list[QueueRecord] = Field(default_factory=list)
    capabilities: list[str] | None = None
    completed_missions: list[str] = Field(default_factory=list)
    conquered_territories: list[str] = Field(default_factory=list)
    battle_speed: int | None = None
    formation: str | None = None
    defenses: list[tuple[str, int]] = Field(default_factory=list)
    defense_queue: list[QueueRecord] = Field(default_factory=list)
    experience: list[tuple[str, int]] = Field(default_factory=list)
    achievements: list[tuple[str, AchievementRecord]] = Field(default_factory=list)
    statistics: StatisticsRecord = Field(default_factory=StatisticsRecord)


@dataclass(slots=True)
class DecodedSave:
    """A rebuilt state and the time its save was written."""

    state: dm.GameState
    saved_at: int | None


def encode_state(state: dm.GameState, now: int) -> str:
    """Serialize ``state`` to a JSON save document stamped with ``now``."""

    stats = state.statistics
    document = SaveDocument(
        save_time=now,
        current_era=state.current_era,
        total_play_time=state.total_play_time,
        resources=ResourceRecord.from_pool(state.resources),
        multipliers=MultiplierRecord.from_pool(state.multipliers),
        researched=sorted(state.researched),
        current_research=state.current_research,
        research_progress=state.research_progress,
        army=sorted(state.army.items()),
        unlocked_troops=sorted(state.unlocked_troops),
        training_queue=[_queue_record(entry) for entry in state.training_queue],
        buildings=sorted(state.buildings.items()),
        unlocked_buildings=sorted(state.unlocked_buildings),
        construction_queue=[_queue_record(entry) for entry in state.construction_queue],
        capabilities=sorted(state.capabilities),
        completed_missions=sorted(state.completed_missions),
        conquered_territories=sorted(state.conquered_territories),
        battle_speed=state.battle_speed,
        formation=state.formation,
        defenses=sorted(state.defenses.items()),
        defense_queue=[_queue_record(entry) for entry in state.defense_queue],
        experience=sorted(state.experience.items()),
        achievements=[
            (
                achievement_id,
                AchievementRecord(
                    unlocked=progress.unlocked,
                    unlocked_at=progress.unlocked_at,
                    notified=progress.notified,
                ),
            )
            for achievement_id, progress in state.achievements.items()
        ],
        statistics=StatisticsRecord(
            gathered=ResourceRecord.from_pool(stats.gathered),
            troops_trained=stats.troops_trained,
            battles_won=stats.battles_won,
            battles_lost=stats.battles_lost,
            click_count=stats.click_count,
            offline_earnings=stats.offline_earnings,
            buildings_constructed=stats.buildings_constructed,
            territories_conquered=stats.territories_conquered,
        ),
    )
    return document.model_dump_json(indent=2)


def parse_document(text: str | bytes) -> SaveDocument:
    """Validate raw save text.

    Raises:
        SaveFormatError: If the text is not valid JSON or does not match the
            save document shape
    """

    try:
        document = SaveDocument.model_validate_json(text)
    except ValidationError as exc:
        raise SaveFormatError(f"invalid save document: {exc.error_count()} error(s)") from exc
    if document.format_version > FORMAT_VERSION:
        raise SaveFormatError(
            f"save format {document.format_version} is newer than supported {FORMAT_VERSION}"
        )
    return document


def decode_state(
    text: str | bytes,
    catalog: Catalog,
    now: int,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> DecodedSave:
    """Rebuild a :class:`GameState` from save text.

    Missing sections take their defaults, achievements added to the catalog
    since the save are backfilled as locked, and unlocks missing from older
    saves are derived from the researched technologies.  ``last_update`` is
    set to ``now`` so the next tick does not replay the time spent away.
    """

    document = parse_document(text)

    current_era = document.current_era
    if current_era is None:
        current_era = rules.economy.starting_era
        if catalog.era(current_era) is None:
            current_era = catalog.eras[0].id
    if catalog.era(current_era) is None:
        raise SaveFormatError(f"unknown era {current_era!r}")

    researched = set(document.researched)
    playback = rules.playback
    battle_speed = document.battle_speed or playback.default_speed_ms
    battle_speed = max(playback.min_speed_ms, min(playback.max_speed_ms, battle_speed))

    achievements = initial_achievement_progress(catalog)
    for achievement_id, record in document.achievements:
        achievements[achievement_id] = dm.AchievementProgress(
            unlocked=record.unlocked,
            unlocked_at=record.unlocked_at,
            notified=record.notified,
        )

    unlocked_buildings = (
        set(document.unlocked_buildings)
        if document.unlocked_buildings is not None
        else derived_buildings(researched, catalog)
    )
    capabilities = (
        set(document.capabilities)
        if document.capabilities is not None
        else derived_capabilities(researched, catalog)
    )

    army = dict(document.army)
    buildings = dict(document.buildings)
    dm.prune_counts(army)
    dm.prune_counts(buildings)

    current_research, research_progress = _reconcile_research(document, researched, catalog)

    formation = document.formation or rules.military.default_formation
    chosen = catalog.formation(formation)
    if chosen is None or (
        chosen.required_tech is not None and chosen.required_tech not in researched
    ):
        formation = rules.military.default_formation

    defenses = dict(document.defenses)
    dm.prune_counts(defenses)
    experience = {troop_id: max(0, points) for troop_id, points in document.experience}

    stats = document.statistics
    state = dm.GameState(
        current_era=current_era,
        last_update=now,
        resources=document.resources.to_pool(),
        multipliers=document.multipliers.to_pool(),
        researched=researched,
        current_research=current_research,
        research_progress=research_progress,
        army=army,
        unlocked_troops=set(document.unlocked_troops),
        training_queue=[_queue_entry(record) for record in document.training_queue],
        buildings=buildings,
        unlocked_buildings=unlocked_buildings,
        construction_queue=[_queue_entry(record) for record in document.construction_queue],
        capabilities=capabilities,
        completed_missions=set(document.completed_missions),
        conquered_territories=set(document.conquered_territories),
        battle_speed=battle_speed,
        formation=formation,
        defenses=defenses,
        defense_queue=[_queue_entry(record) for record in document.defense_queue],
        experience=experience,
        achievements=achievements,
        statistics=dm.Statistics(
            gathered=stats.gathered.to_pool(),
            troops_trained=stats.troops_trained,
            battles_won=stats.battles_won,
            battles_lost=stats.battles_lost,
            click_count=stats.click_count,
            offline_earnings=stats.offline_earnings,
            buildings_constructed=stats.buildings_constructed,
            territories_conquered=stats.territories_conquered,
        ),
        total_play_time=document.total_play_time,
    )
    return DecodedSave(state=state, saved_at=document.save_time)


def apply_offline_progress(
    state: dm.GameState,
    catalog: Catalog,
    saved_at: int | None,
    now: int,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> dm.OfflineProgress | None:
    """Grant resources for the time elapsed since ``saved_at``.

    Requires the offline capability.  Absences shorter than the minimum grant
    nothing; longer ones are capped and paid at reduced efficiency.
    """

    offline = rules.offline
    if saved_at is None or offline.capability not in state.capabilities:
        return None

    elapsed = (now - saved_at) / 1000
    if elapsed < offline.minimum_seconds:
        return None

    rates = effective_rates(state, catalog)
    if rates is None:
        return None

    duration = min(elapsed, offline.max_seconds)
    gains = {resource: rate * duration * offline.efficiency for resource, rate in rates.items()}
    grant(state, gains)
    state.statistics.offline_earnings += sum(gains.values())
    logger.info("Granted offline progress for %.0f seconds", duration)
    return dm.OfflineProgress(duration=duration, resources=gains)


def _reconcile_research(
    document: SaveDocument,
    researched: set[str],
    catalog: Catalog,
) -> tuple[str | None, float]:
    """Drop a current research that is unknown or already done; clamp its progress.

    Progress is kept below the cost so a restored research completes, and
    applies its effects, exactly once.
    """

    tech_id = document.current_research
    if tech_id is None or tech_id in researched:
        return None, 0.0
    tech = catalog.technology(tech_id)
    if tech is None:
        return None, 0.0
    progress = max(0.0, document.research_progress)
    if progress >= tech.cost:
        progress = math.nextafter(tech.cost, 0.0) if tech.cost > 0 else 0.0
    return tech_id, progress


def _queue_record(entry: dm.QueueEntry) -> QueueRecord:
    return QueueRecord(type_id=entry.type_id, start=entry.start, end=entry.end)


def _queue_entry(record: QueueRecord) -> dm.QueueEntry:
    return dm.QueueEntry(type_id=record.type_id, start=record.start, end=record.end)


__all__ = [
    "FORMAT_VERSION",
    "DecodedSave",
    "SaveDocument",
    "SaveFormatError",
    "apply_offline_progress",
    "decode_state",
    "encode_state",
    "parse_document",
]
