"""Timed production queues for troop training and building construction."""

from __future__ import annotations

from collections.abc import Callable

from eraforge.domain.catalog import Catalog
from eraforge.domain.economy import can_afford, spend
from eraforge.domain.models import GameState, QueueEntry


def enqueue(queue: list[QueueEntry], type_id: str, duration_seconds: float, now: int) -> QueueEntry:
    """Append an entry finishing ``duration_seconds`` after ``now`` (epoch ms)."""

    if duration_seconds < 0:
        raise ValueError(f"duration must be non-negative, got {duration_seconds}")
    entry = QueueEntry(type_id=type_id, start=now, end=now + int(duration_seconds * 1000))
    queue.append(entry)
    return entry


def resolve_due(
    queue: list[QueueEntry],
    now: int,
    on_complete: Callable[[QueueEntry], None],
) -> list[QueueEntry]:
    """Complete every entry with ``end <= now`` exactly once, in queue order.

    The queue is rebuilt in place from the entries still pending.
    """

    due = [entry for entry in queue if entry.end <= now]
    if not due:
        return []
    for entry in due:
        on_complete(entry)
    queue[:] = [entry for entry in queue if entry.end > now]
    return due


def remaining_seconds(entry: QueueEntry, now: int) -> float:
    return max(0, entry.end - now) / 1000


def progress_fraction(entry: QueueEntry, now: int) -> float:
    span = entry.end - entry.start
    if span <= 0:
        return 1.0
    return min(1.0, max(0.0, (now - entry.start) / span))


# --- Training -------------------------------------------------------------------


def can_train(state: GameState, catalog: Catalog, troop_id: str) -> bool:
    troop = catalog.troop_type(troop_id)
    if troop is None or troop_id not in state.unlocked_troops:
        return False
    return can_afford(state, troop.cost)


def train_troop(state: GameState, catalog: Catalog, troop_id: str, now: int) -> bool:
    """Pay for one unit and queue its training."""

    if not can_train(state, catalog, troop_id):
        return False
    troop = catalog.troop_type(troop_id)
    if troop is None:
        return False
    spend(state, troop.cost)
    enqueue(state.training_queue, troop_id, troop.train_time, now)
    return True


def resolve_training(state: GameState, now: int) -> list[QueueEntry]:
    def _muster(entry: QueueEntry) -> None:
        state.army[entry.type_id] = state.army.get(entry.type_id, 0) + 1
        state.statistics.troops_trained += 1

    return resolve_due(state.training_queue, now, _muster)


# --- Construction ---------------------------------------------------------------


def is_building_unlocked(state: GameState, catalog: Catalog, building_id: str) -> bool:
    building = catalog.building_type(building_id)
    if building is None:
        return False
    return building.unlock_tech is None or building_id in state.unlocked_buildings


def can_build(state: GameState, catalog: Catalog, building_id: str) -> bool:
    """Unlocked, below the cap of completed buildings, and affordable."""

    building = catalog.building_type(building_id)
    if building is None or not is_building_unlocked(state, catalog, building_id):
        return False
    if state.buildings.get(building_id, 0) >= building.max_count:
        return False
    return can_afford(state, building.cost)


def construct_building(state: GameState, catalog: Catalog, building_id: str, now: int) -> bool:
    if not can_build(state, catalog, building_id):
        return False
    building = catalog.building_type(building_id)
    if building is None:
        return False
    spend(state, building.cost)
    enqueue(state.construction_queue, building_id, building.build_time, now)
    return True


def resolve_construction(state: GameState, now: int) -> list[QueueEntry]:
    def _raise(entry: QueueEntry) -> None:
        state.buildings[entry.type_id] = state.buildings.get(entry.type_id, 0) + 1
        state.statistics.buildings_constructed += 1

    return resolve_due(state.construction_queue, now, _raise)
