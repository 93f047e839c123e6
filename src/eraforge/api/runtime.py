"""Runtime primitives backing the Eraforge HTTP API."""

from __future__ import annotations

import asyncio
import logging

from eraforge.config import Settings, get_settings
from eraforge.domain.catalog import Catalog, default_catalog, load_catalog
from eraforge.domain.enums import BattleKind
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig
from eraforge.domain.tick import TickReport
from eraforge.engine import Clock, GameEngine, system_clock
from eraforge.repository import JsonSaveRepository

logger = logging.getLogger(__name__)


class ClockManager:
    """Background loop that ticks the engine, replays battles, and autosaves."""

    MIN_INTERVAL_SECONDS = 0.05

    def __init__(
        self,
        engine: GameEngine,
        repository: JsonSaveRepository,
        *,
        interval_seconds: float,
        autosave_slot: str,
        autosave_interval_seconds: float = 0.0,
    ) -> None:
        self._engine = engine
        self._repository = repository
        self._interval = max(interval_seconds, self.MIN_INTERVAL_SECONDS)
        self._autosave_slot = autosave_slot
        self._autosave_interval_ms = int(autosave_interval_seconds * 1000)
        self._last_autosave = engine.now()
        self._last_round_at: dict[BattleKind, int] = {}
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_interval(self, seconds: float) -> None:
        self._interval = max(seconds, self.MIN_INTERVAL_SECONDS)

    async def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self._ensure_running()
        else:
            await self.stop()

    def _ensure_running(self) -> None:
        if self._task is None or self._task.done():
            self._stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_loop(), name="eraforge-clock-loop")

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._stop_event.set()
        await task
        self._task = None

    def advance_now(self) -> TickReport:
        """Run one cycle immediately, outside the schedule."""

        return self._run_cycle()

    async def _run_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                    break
                except TimeoutError:
                    pass
                self._run_cycle()
        finally:
            self._task = None

    def _run_cycle(self) -> TickReport:
        report = self._engine.tick()
        self._replay_battles()
        if self._autosave_interval_ms > 0:
            now = self._engine.now()
            if now - self._last_autosave >= self._autosave_interval_ms:
                self.autosave()
        return report

    def _replay_battles(self) -> None:
        now = self._engine.now()
        speed = self._engine.state.battle_speed
        for kind in BattleKind:
            battle = self._engine.active_battle(kind)
            if battle is None or battle.is_complete:
                self._last_round_at.pop(kind, None)
                continue
            last = self._last_round_at.setdefault(kind, now)
            if now - last >= speed:
                self._engine.advance_battle_round(kind)
                self._last_round_at[kind] = now

    def autosave(self) -> bool:
        self._last_autosave = self._engine.now()
        try:
            self._repository.save(self._autosave_slot, self._engine.save_game())
        except OSError as exc:
            logger.warning("autosave to slot %s failed: %s", self._autosave_slot, exc)
            return False
        return True


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        catalog: Catalog | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = rules
        self.catalog = catalog if catalog is not None else _resolve_catalog(self.settings)
        self.repository = JsonSaveRepository(self.settings.data_dir)
        self.engine = GameEngine(self.catalog, rules=rules, clock=clock)
        self.clock = ClockManager(
            self.engine,
            self.repository,
            interval_seconds=self.settings.tick_interval_seconds,
            autosave_slot=self.settings.autosave_slot,
            autosave_interval_seconds=self.settings.autosave_interval_seconds,
        )

    async def startup(self) -> None:
        slot = self.settings.autosave_slot
        if self.settings.load_autosave_on_start and self.repository.exists(slot):
            if not self.engine.load_game(self.repository.load(slot)):
                logger.warning("autosave slot %s could not be loaded; starting fresh", slot)
        if self.settings.clock_autostart:
            await self.clock.set_enabled(True)

    async def shutdown(self) -> None:
        await self.clock.stop()
        if self.settings.autosave_interval_seconds > 0:
            self.clock.autosave()


def _resolve_catalog(settings: Settings) -> Catalog:
    if settings.catalog_path is not None:
        return load_catalog(settings.catalog_path)
    return default_catalog()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
