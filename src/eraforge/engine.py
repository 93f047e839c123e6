"""Game engine owning the simulation state and its action surface."""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable

from eraforge import savegame
from eraforge.domain import achievements, combat, economy, military, production, research
from eraforge.domain.catalog import Catalog, default_catalog
from eraforge.domain.combat import CombatOptions
from eraforge.domain.enums import BattleKind, Resource
from eraforge.domain.models import (
    Achievement,
    ActiveBattle,
    ArmyPower,
    DefenseStructure,
    Formation,
    GameState,
    Mission,
    OfflineProgress,
    ResourceAmounts,
    Technology,
    Territory,
    UnitUpgrade,
)
from eraforge.domain.rules_config import DEFAULT_RULES, RulesConfig
from eraforge.domain.state import create_initial_state
from eraforge.domain.tick import TickReport, run_tick

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
StateListener = Callable[[GameState], None]
AchievementListener = Callable[[Achievement], None]


def system_clock() -> int:
    """Wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


class GameEngine:
    """Single owner of a :class:`GameState`.

    Callers drive the engine through action methods that return ``True`` on
    success and ``False`` (with no mutation) when the action is not allowed.
    Reads go through query helpers or :meth:`snapshot`; the live state is
    never handed out for mutation.
    """

    def __init__(
        self,
        catalog: Catalog | None = None,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        clock: Clock = system_clock,
        state: GameState | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else default_catalog()
        self.rules = rules
        self._clock = clock
        self._state = (
            state if state is not None else create_initial_state(self.catalog, clock(), rules=rules)
        )
        self._offline_progress: OfflineProgress | None = None
        self._on_state_change: StateListener | None = None
        self._on_achievement_unlocked: AchievementListener | None = None

    # ------------------------------------------------------------------
    # Notifications

    def set_on_state_change(self, listener: StateListener | None) -> None:
        self._on_state_change = listener

    def set_on_achievement_unlocked(self, listener: AchievementListener | None) -> None:
        self._on_achievement_unlocked = listener

    def _notify(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change(self._state)

    def _announce(self, unlocked: list[Achievement]) -> None:
        for achievement in unlocked:
            logger.debug("Achievement unlocked: %s", achievement.id)
            if self._on_achievement_unlocked is not None:
                self._on_achievement_unlocked(achievement)

    def _after_action(self) -> None:
        self._announce(achievements.evaluate(self._state, self.catalog, self._clock()))
        self._notify()

    # ------------------------------------------------------------------
    # Clock

    def now(self) -> int:
        return self._clock()

    def tick(self) -> TickReport:
        """Advance the simulation to the current clock time."""

        report = run_tick(self._state, self.catalog, self._clock())
        if report.research is not None:
            logger.info("Research complete: %s", report.research.tech_id)
            if report.research.new_era is not None:
                logger.info("Advanced to era %s", report.research.new_era)
        self._announce(report.achievements)
        if report.changed:
            self._notify()
        return report

    # ------------------------------------------------------------------
    # Actions

    def gather(self, resource: Resource | str) -> bool:
        try:
            resource = Resource(resource)
        except ValueError:
            return False
        economy.gather(self._state, resource, rules=self.rules)
        self._after_action()
        return True

    def start_research(self, tech_id: str) -> bool:
        if not research.start(self._state, self.catalog, tech_id):
            return False
        self._after_action()
        return True

    def train_troop(self, troop_id: str) -> bool:
        if not production.train_troop(self._state, self.catalog, troop_id, self._clock()):
            return False
        self._after_action()
        return True

    def construct_building(self, building_id: str) -> bool:
        if not production.construct_building(
            self._state, self.catalog, building_id, self._clock()
        ):
            return False
        self._after_action()
        return True

    def set_formation(self, formation_id: str) -> bool:
        if not military.set_formation(self._state, self.catalog, formation_id):
            return False
        self._notify()
        return True

    def build_defense(self, structure_id: str) -> bool:
        if not military.build_defense(self._state, self.catalog, structure_id, self._clock()):
            return False
        self._after_action()
        return True

    def upgrade_unit(self, upgrade_id: str) -> bool:
        if not military.upgrade_unit(self._state, self.catalog, upgrade_id):
            return False
        logger.debug("Applied unit upgrade %s", upgrade_id)
        self._after_action()
        return True

    def start_mission(self, mission_id: str, *, options: CombatOptions | None = None) -> bool:
        return self._start_battle(BattleKind.MISSION, mission_id, options)

    def start_conquest(self, territory_id: str, *, options: CombatOptions | None = None) -> bool:
        return self._start_battle(BattleKind.CONQUEST, territory_id, options)

    def _start_battle(
        self,
        kind: BattleKind,
        target_id: str,
        options: CombatOptions | None,
    ) -> bool:
        battle = combat.start_battle(
            self._state,
            self.catalog,
            kind,
            target_id,
            self._clock(),
            options=options,
            rules=self.rules,
        )
        if battle is None:
            return False
        logger.debug(
            "Started %s battle against %s (%d rounds)", kind.value, target_id, len(battle.logs)
        )
        self._notify()
        return True

    def advance_battle_round(self, kind: BattleKind = BattleKind.MISSION) -> bool:
        """Reveal the next round of the active battle of ``kind``."""

        if not combat.advance_round(self._state, self.catalog, kind, rules=self.rules):
            return False
        battle = self._state.active_battles[kind]
        if battle.is_complete:
            logger.info(
                "%s battle against %s %s",
                kind.value.capitalize(),
                battle.target_id,
                "won" if battle.result.victory else "lost",
            )
            self._after_action()
        else:
            self._notify()
        return True

    def dismiss_battle(self, kind: BattleKind = BattleKind.MISSION) -> bool:
        if not combat.dismiss(self._state, kind):
            return False
        self._notify()
        return True

    def set_battle_speed(self, speed_ms: int) -> int:
        speed = combat.set_battle_speed(self._state, speed_ms, rules=self.rules)
        self._notify()
        return speed

    def save_game(self) -> str:
        return savegame.encode_state(self._state, self._clock())

    def load_game(self, text: str | bytes) -> bool:
        """Replace the state with a decoded save; all or nothing."""

        now = self._clock()
        try:
            decoded = savegame.decode_state(text, self.catalog, now, rules=self.rules)
        except savegame.SaveFormatError as exc:
            logger.warning("Rejected save: %s", exc)
            return False

        offline = savegame.apply_offline_progress(
            decoded.state, self.catalog, decoded.saved_at, now, rules=self.rules
        )
        self._state = decoded.state
        self._offline_progress = offline
        self._after_action()
        return True

    def reset_game(self) -> None:
        self._state = create_initial_state(self.catalog, self._clock(), rules=self.rules)
        self._offline_progress = None
        self._notify()

    # ------------------------------------------------------------------
    # Queries

    @property
    def state(self) -> GameState:
        """Live state, for read-only use."""

        return self._state

    def snapshot(self) -> GameState:
        return copy.deepcopy(self._state)

    def take_offline_progress(self) -> OfflineProgress | None:
        """Return the pending offline summary once, then forget it."""

        progress, self._offline_progress = self._offline_progress, None
        return progress

    def pop_achievement_notification(self) -> Achievement | None:
        achievement_id = achievements.pop_notification(self._state)
        if achievement_id is None:
            return None
        return self.catalog.achievement(achievement_id)

    def production_rates(self) -> ResourceAmounts:
        return economy.effective_rates(self._state, self.catalog) or {}

    def army_power(self) -> ArmyPower:
        """Fighting strength including fortifications, veterancy, and formation."""

        base = combat.army_power(self._state.army, self.catalog)
        return military.effective_power(self._state, self.catalog, base)

    def active_battle(self, kind: BattleKind = BattleKind.MISSION) -> ActiveBattle | None:
        return self._state.active_battles.get(kind)

    def can_start_research(self, tech_id: str) -> bool:
        return self._state.current_research is None and research.can_start(
            self._state, self.catalog, tech_id
        )

    def can_train_troop(self, troop_id: str) -> bool:
        return production.can_train(self._state, self.catalog, troop_id)

    def can_build_building(self, building_id: str) -> bool:
        return production.can_build(self._state, self.catalog, building_id)

    def can_build_defense(self, structure_id: str) -> bool:
        return military.can_build_defense(self._state, self.catalog, structure_id)

    def can_upgrade_unit(self, upgrade_id: str) -> bool:
        return military.can_upgrade(self._state, self.catalog, upgrade_id)

    def available_technologies(self) -> list[Technology]:
        return research.available_technologies(self._state, self.catalog)

    def available_missions(self) -> list[Mission]:
        return combat.available_missions(self._state, self.catalog)

    def available_territories(self) -> list[Territory]:
        return combat.available_territories(self._state, self.catalog)

    def available_formations(self) -> list[Formation]:
        return military.available_formations(self._state, self.catalog)

    def available_defenses(self) -> list[DefenseStructure]:
        return military.available_defenses(self._state, self.catalog)

    def available_upgrades(self) -> list[UnitUpgrade]:
        return military.available_upgrades(self._state, self.catalog)
