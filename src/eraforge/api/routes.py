"""HTTP routes for the Eraforge API."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, TypeAdapter

from eraforge.api.runtime import ApiState
from eraforge.domain import achievements, production
from eraforge.domain import models as dm
from eraforge.domain.enums import BattleKind, Resource

router = APIRouter()

STATE_ADAPTER: TypeAdapter[dm.GameState] = TypeAdapter(dm.GameState)
BATTLE_ADAPTER: TypeAdapter[dm.ActiveBattle] = TypeAdapter(dm.ActiveBattle)
LOGS_ADAPTER: TypeAdapter[list[dm.BattleLog]] = TypeAdapter(list[dm.BattleLog])
RESULT_ADAPTER: TypeAdapter[dm.BattleResult] = TypeAdapter(dm.BattleResult)


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


class ActionResponse(BaseModel):
    success: bool


class GatherRequest(BaseModel):
    resource: Resource


class ResearchRequest(BaseModel):
    tech_id: str = Field(min_length=1)


class TrainingRequest(BaseModel):
    troop_id: str = Field(min_length=1)


class ConstructionRequest(BaseModel):
    building_id: str = Field(min_length=1)


class FormationRequest(BaseModel):
    formation_id: str = Field(min_length=1)


class DefenseRequest(BaseModel):
    structure_id: str = Field(min_length=1)


class UpgradeRequest(BaseModel):
    upgrade_id: str = Field(min_length=1)


class BattleRequest(BaseModel):
    target_id: str = Field(min_length=1)


class BattleSpeedRequest(BaseModel):
    speed_ms: int


class BattleSpeedResponse(BaseModel):
    speed_ms: int


class SaveResponse(BaseModel):
    slot: str
    size_bytes: int


class OfflineProgressResponse(BaseModel):
    duration: float
    resources: dict[Resource, float]


class AchievementNotice(BaseModel):
    id: str
    name: str
    description: str


class ClockScheduleRequest(BaseModel):
    enabled: bool
    interval_seconds: float | None = Field(default=None, gt=0.0)


class ClockStatusResponse(BaseModel):
    enabled: bool
    interval_seconds: float


class TickResponse(BaseModel):
    delta_seconds: float
    completed_research: str | None
    trained: int
    constructed: int
    fortified: int
    achievements: list[str]


def _action(success: bool) -> ActionResponse:
    return ActionResponse(success=success)


def _battle_payload(battle: dm.ActiveBattle) -> dict[str, Any]:
    """Replayed rounds only; the result stays hidden until the battle completes."""

    payload = BATTLE_ADAPTER.dump_python(battle, mode="json", exclude={"logs", "result"})
    payload["logs"] = LOGS_ADAPTER.dump_python(battle.visible_logs, mode="json")
    if battle.is_complete:
        payload["result"] = RESULT_ADAPTER.dump_python(battle.result, mode="json")
    return payload


def _queue_payload(queue: list[dm.QueueEntry], now: int) -> list[dict[str, Any]]:
    return [
        {
            "type_id": entry.type_id,
            "start": entry.start,
            "end": entry.end,
            "remaining_seconds": production.remaining_seconds(entry, now),
            "progress": production.progress_fraction(entry, now),
        }
        for entry in queue
    ]


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "era": state.engine.state.current_era,
        "clock_running": state.clock.running,
        "tick_interval_seconds": state.clock.interval_seconds,
    }


@router.get("/state")
async def get_game_state(state: ApiStateDep) -> dict[str, Any]:
    engine = state.engine
    snapshot = engine.snapshot()
    now = engine.now()
    payload = STATE_ADAPTER.dump_python(
        snapshot,
        mode="json",
        exclude={"active_battles", "training_queue", "construction_queue", "defense_queue"},
    )
    payload["active_battles"] = {
        kind.value: _battle_payload(battle) for kind, battle in snapshot.active_battles.items()
    }
    payload["training_queue"] = _queue_payload(snapshot.training_queue, now)
    payload["construction_queue"] = _queue_payload(snapshot.construction_queue, now)
    payload["defense_queue"] = _queue_payload(snapshot.defense_queue, now)
    payload["achievements_unlocked"] = achievements.unlocked_count(snapshot)
    payload["production_rates"] = {
        resource.value: rate for resource, rate in engine.production_rates().items()
    }
    power = engine.army_power()
    payload["army_power"] = {
        "attack": power.attack,
        "defense": power.defense,
        "health": power.health,
    }
    return payload


@router.post("/gather", response_model=ActionResponse)
async def gather(request: GatherRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.gather(request.resource))


@router.post("/research", response_model=ActionResponse)
async def start_research(request: ResearchRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.start_research(request.tech_id))


@router.post("/training", response_model=ActionResponse)
async def train_troop(request: TrainingRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.train_troop(request.troop_id))


@router.post("/construction", response_model=ActionResponse)
async def construct_building(request: ConstructionRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.construct_building(request.building_id))


@router.post("/formation", response_model=ActionResponse)
async def set_formation(request: FormationRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.set_formation(request.formation_id))


@router.post("/defenses", response_model=ActionResponse)
async def build_defense(request: DefenseRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.build_defense(request.structure_id))


@router.post("/upgrades", response_model=ActionResponse)
async def upgrade_unit(request: UpgradeRequest, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.upgrade_unit(request.upgrade_id))


@router.put("/battles/speed", response_model=BattleSpeedResponse)
async def set_battle_speed(request: BattleSpeedRequest, state: ApiStateDep) -> BattleSpeedResponse:
    return BattleSpeedResponse(speed_ms=state.engine.set_battle_speed(request.speed_ms))


@router.get("/battles/{kind}")
async def get_battle(kind: BattleKind, state: ApiStateDep) -> dict[str, Any]:
    battle = state.engine.active_battle(kind)
    if battle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="no active battle")
    return _battle_payload(battle)


@router.post("/battles/{kind}", response_model=ActionResponse)
async def start_battle(
    kind: BattleKind,
    request: BattleRequest,
    state: ApiStateDep,
) -> ActionResponse:
    if kind is BattleKind.MISSION:
        return _action(state.engine.start_mission(request.target_id))
    return _action(state.engine.start_conquest(request.target_id))


@router.post("/battles/{kind}/advance", response_model=ActionResponse)
async def advance_battle(kind: BattleKind, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.advance_battle_round(kind))


@router.delete("/battles/{kind}", response_model=ActionResponse)
async def dismiss_battle(kind: BattleKind, state: ApiStateDep) -> ActionResponse:
    return _action(state.engine.dismiss_battle(kind))


@router.get("/saves", response_model=list[str])
async def list_saves(state: ApiStateDep) -> list[str]:
    return state.repository.list_slots()


@router.post("/saves/{slot}", response_model=SaveResponse, status_code=status.HTTP_201_CREATED)
async def save_game(slot: str, state: ApiStateDep) -> SaveResponse:
    document = state.engine.save_game()
    try:
        state.repository.save(slot, document)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SaveResponse(slot=slot, size_bytes=len(document.encode("utf-8")))


@router.post("/saves/{slot}/load", response_model=ActionResponse)
async def load_game(slot: str, state: ApiStateDep) -> ActionResponse:
    try:
        document = state.repository.load(slot)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="save not found") from exc
    if not state.engine.load_game(document):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="save is not loadable")
    return _action(True)


@router.delete("/saves/{slot}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_save(slot: str, state: ApiStateDep) -> None:
    try:
        state.repository.delete(slot)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/reset", response_model=ActionResponse)
async def reset_game(state: ApiStateDep) -> ActionResponse:
    state.engine.reset_game()
    return _action(True)


@router.get("/offline-progress", response_model=OfflineProgressResponse | None)
async def take_offline_progress(state: ApiStateDep) -> OfflineProgressResponse | None:
    progress = state.engine.take_offline_progress()
    if progress is None:
        return None
    return OfflineProgressResponse(duration=progress.duration, resources=progress.resources)


@router.get("/achievements/notifications", response_model=list[AchievementNotice])
async def drain_notifications(state: ApiStateDep) -> list[AchievementNotice]:
    notices: list[AchievementNotice] = []
    while state.engine.state.pending_notifications:
        achievement = state.engine.pop_achievement_notification()
        if achievement is None:
            continue
        notices.append(
            AchievementNotice(
                id=achievement.id,
                name=achievement.name,
                description=achievement.description,
            )
        )
    return notices


@router.post("/clock/tick", response_model=TickResponse)
async def tick_now(state: ApiStateDep) -> TickResponse:
    report = state.clock.advance_now()
    return TickResponse(
        delta_seconds=report.delta_seconds,
        completed_research=report.research.tech_id if report.research else None,
        trained=len(report.trained),
        constructed=len(report.constructed),
        fortified=len(report.fortified),
        achievements=[achievement.id for achievement in report.achievements],
    )


@router.get("/clock/schedule", response_model=ClockStatusResponse)
async def get_clock_schedule(state: ApiStateDep) -> ClockStatusResponse:
    return ClockStatusResponse(
        enabled=state.clock.running,
        interval_seconds=state.clock.interval_seconds,
    )


@router.post("/clock/schedule", response_model=ClockStatusResponse)
async def update_clock_schedule(
    request: ClockScheduleRequest,
    state: ApiStateDep,
) -> ClockStatusResponse:
    if request.interval_seconds is not None:
        state.clock.set_interval(request.interval_seconds)
    await state.clock.set_enabled(request.enabled)
    return ClockStatusResponse(
        enabled=state.clock.running,
        interval_seconds=state.clock.interval_seconds,
    )
