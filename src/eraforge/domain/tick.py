"""Per-tick orchestration of the simulation subsystems."""

from __future__ import annotations

from dataclasses import dataclass, field

from eraforge.domain import achievements, economy, military, production, research
from eraforge.domain.catalog import Catalog
from eraforge.domain.models import Achievement, GameState, QueueEntry, ResourceAmounts
from eraforge.domain.research import ResearchCompletion


@dataclass(slots=True)
class TickReport:
    """Everything that changed during one tick."""

    delta_seconds: float
    gains: ResourceAmounts = field(default_factory=dict)
    research: ResearchCompletion | None = None
    trained: list[QueueEntry] = field(default_factory=list)
    constructed: list[QueueEntry] = field(default_factory=list)
    fortified: list[QueueEntry] = field(default_factory=list)
    achievements: list[Achievement] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.delta_seconds > 0 or bool(
            self.trained or self.constructed or self.fortified or self.achievements
        )


def run_tick(
    state: GameState,
    catalog: Catalog,
    now: int,
) -> TickReport:
    """Advance the simulation to ``now`` (epoch ms).

    Elapsed time is measured against ``state.last_update``; a clock that moved
    backwards counts as zero elapsed time.  The state is left untouched when
    no time has passed.
    """

    delta = max(0.0, (now - state.last_update) / 1000)
    report = TickReport(delta_seconds=delta)
    if delta <= 0:
        return report

    state.last_update = now
    state.total_play_time += delta

    if catalog.era(state.current_era) is None:
        return report

    report.gains = economy.accrue(state, catalog, delta)
    report.research = research.advance(state, catalog, delta)
    report.trained = production.resolve_training(state, now)
    report.constructed = production.resolve_construction(state, now)
    report.fortified = military.resolve_fortification(state, now)
    report.achievements = achievements.evaluate(state, catalog, now)
    return report
