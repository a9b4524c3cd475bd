"""
KingdomGame: the command/result facade over one GameState.

The presentation layer never touches the engines directly. It issues
commands (build, harvest, upgrade, ...) and receives a ``CommandResult``
describing the outcome; it reads state through the query methods. Time
is always passed in explicitly, so the same facade runs under a real
clock, a test harness or a fast-forward driver.

Usage::

    game = KingdomGame(now=0)
    game.build_building(0, "wheatField", now=0)
    game.advance(60000)
    game.harvest_building(0, now=60000)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from kingdom.core import catalog
from kingdom.core.config import GameConfig
from kingdom.core.demolition import DemolitionEngine
from kingdom.core.events import EventEngine
from kingdom.core.persistence import OfflineReport, PersistenceController
from kingdom.core.production import ProductionEngine
from kingdom.core.scheduler import PeriodicScheduler
from kingdom.core.starvation import StarvationController
from kingdom.core.state import GameState
from kingdom.core.upgrades import UpgradeEngine

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one player command."""

    success: bool
    action: str
    plot_index: int | None = None
    reason: str | None = None
    resources: dict[str, int] = field(default_factory=dict)
    plot: dict[str, Any] | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class KingdomGame:
    """Owns a GameState and the engines operating on it."""

    def __init__(
        self,
        config: GameConfig | None = None,
        state: GameState | None = None,
        now: int = 0,
        on_autosave: Callable[[dict[str, Any]], None] | None = None,
    ):
        if state is not None:
            config = state.config
        self.config = config or GameConfig()
        self.state = state or GameState.new(self.config, now=now)
        self.clock = now
        self.on_autosave = on_autosave

        self.production = ProductionEngine(self.state)
        self.starvation = StarvationController(self.state)
        self.upgrades = UpgradeEngine(self.state)
        self.demolition = DemolitionEngine(self.state, self.production)
        self.events = EventEngine(self.state)
        self.persistence = PersistenceController(self.config)
        self._scheduler: PeriodicScheduler | None = None
        self.offline_report: OfflineReport | None = None

    @classmethod
    def load(
        cls,
        data: Any,
        now: int,
        config: GameConfig | None = None,
        on_autosave: Callable[[dict[str, Any]], None] | None = None,
    ) -> KingdomGame:
        """Restore a game from a snapshot, or start fresh if there is none.

        The offline summary of the restore is kept on ``offline_report``.
        """
        config = config or GameConfig()
        persistence = PersistenceController(config)
        state = persistence.restore(data, now)
        if state is None:
            logger.info("No usable save data, starting a new kingdom")
        game = cls(config=config, state=state, now=now, on_autosave=on_autosave)
        game.offline_report = persistence.last_report
        return game

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _advance_clock(self, now: int) -> None:
        self.clock = max(self.clock, now)

    def _result(self, success: bool, action: str, index: int | None = None,
                reason: str | None = None, **data: Any) -> CommandResult:
        plot = None
        if index is not None and self.state.grid.in_range(index):
            plot = self.state.plots[index].to_dict()
        return CommandResult(
            success=success,
            action=action,
            plot_index=index,
            reason=reason,
            resources=self.state.ledger.as_dict(),
            plot=plot,
            data=data,
        )

    def _plot_check(self, index: int, action: str,
                    need_building: bool = True) -> CommandResult | None:
        """Shared precondition checks; returns a failure result or None."""
        plot = self.state.grid.get(index)
        if plot is None:
            return self._result(False, action, index, "invalid_plot")
        if not plot.unlocked:
            return self._result(False, action, index, "locked")
        if need_building and plot.building is None:
            return self._result(False, action, index, "empty")
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def build_building(self, index: int, building_id: str, now: int) -> CommandResult:
        action = "build"
        failure = self._plot_check(index, action, need_building=False)
        if failure is not None:
            return failure
        if self.state.plots[index].building is not None:
            return self._result(False, action, index, "occupied")
        if not catalog.has_building(building_id):
            return self._result(False, action, index, "unknown_building")
        if not self.state.grid.place(index, building_id, self.state.ledger, now):
            return self._result(False, action, index, "unaffordable",
                                cost=catalog.get_cost(building_id))
        self._advance_clock(now)
        self.production.recalculate_adjacency()
        self.production.reset_harvest_timer(index, now)
        return self._result(True, action, index, building=building_id)

    def harvest_building(self, index: int, now: int) -> CommandResult:
        action = "harvest"
        failure = self._plot_check(index, action)
        if failure is not None:
            return failure
        plot = self.state.plots[index]
        if plot.auto_harvest:
            return self._result(False, action, index, "auto_harvest")
        if not plot.harvest_ready:
            return self._result(False, action, index, "not_ready")
        self._advance_clock(now)
        collected = self.production.harvest(index, now)
        return self._result(True, action, index, collected=collected)

    def unlock_plot(self, index: int) -> CommandResult:
        action = "unlock"
        plot = self.state.grid.get(index)
        if plot is None:
            return self._result(False, action, index, "invalid_plot")
        if plot.unlocked:
            return self._result(False, action, index, "already_unlocked")
        cost = self.state.grid.next_plot_cost
        if not self.state.grid.unlock(index, self.state.ledger):
            return self._result(False, action, index, "unaffordable", cost={"gold": cost})
        return self._result(True, action, index, cost={"gold": cost},
                            next_plot_cost=self.state.grid.next_plot_cost)

    def purchase_speed_upgrade(self, index: int) -> CommandResult:
        return self._level_upgrade(index, "speed")

    def purchase_output_upgrade(self, index: int) -> CommandResult:
        return self._level_upgrade(index, "output")

    def _level_upgrade(self, index: int, kind: str) -> CommandResult:
        action = f"{kind}_upgrade"
        failure = self._plot_check(index, action)
        if failure is not None:
            return failure
        plot = self.state.plots[index]
        level = plot.speed_level if kind == "speed" else plot.output_level
        if level >= self.upgrades.max_level(plot):
            return self._result(False, action, index, "max_level")
        if kind == "speed":
            cost = self.upgrades.speed_cost(plot)
            purchased = self.upgrades.purchase_speed(index)
        else:
            cost = self.upgrades.output_cost(plot)
            purchased = self.upgrades.purchase_output(index)
        if not purchased:
            return self._result(False, action, index, "unaffordable", cost=cost)
        return self._result(True, action, index, cost=cost)

    def purchase_auto_harvest(self, index: int) -> CommandResult:
        action = "auto_harvest"
        failure = self._plot_check(index, action)
        if failure is not None:
            return failure
        if self.state.plots[index].auto_harvest:
            return self._result(False, action, index, "already_enabled")
        cost = self.upgrades.auto_harvest_cost()
        if not self.upgrades.purchase_auto_harvest(index):
            return self._result(False, action, index, "unaffordable", cost=cost)
        return self._result(True, action, index, cost=cost)

    def purchase_evolution(self, index: int) -> CommandResult:
        action = "evolution"
        failure = self._plot_check(index, action)
        if failure is not None:
            return failure
        plot = self.state.plots[index]
        next_tier = catalog.get_evolution_tier(plot.building, plot.evolution + 1)
        if next_tier is None:
            return self._result(False, action, index, "final_tier")
        if not self.upgrades.can_evolve(plot):
            return self._result(False, action, index, "not_maxed")
        cost = self.upgrades.evolution_cost(plot)
        if not self.upgrades.purchase_evolution(index):
            return self._result(False, action, index, "unaffordable", cost=cost)
        return self._result(True, action, index, cost=cost, tier_name=next_tier.name)

    def demolish(self, index: int) -> CommandResult:
        action = "demolish"
        failure = self._plot_check(index, action)
        if failure is not None:
            return failure
        preview = self.demolition.preview(index)
        if preview is None:
            return self._result(False, action, index, "empty")
        recovered = self.demolition.demolish(index)
        if recovered is None:
            return self._result(False, action, index, "insufficient_population",
                                population_cost=preview["population_cost"])
        return self._result(True, action, index, recovered=recovered,
                            population_cost=preview["population_cost"])

    def accept_event(self, now: int) -> CommandResult:
        action = "accept_event"
        if self.events.active_event is None:
            return self._result(False, action, reason="no_event")
        self._advance_clock(now)
        outcome = self.events.accept(now)
        if outcome is None:
            return self._result(False, action, reason="unaffordable")
        return self._result(True, action, **outcome)

    def dismiss_event(self, now: int) -> CommandResult:
        action = "dismiss_event"
        self._advance_clock(now)
        if not self.events.dismiss(now):
            return self._result(False, action, reason="no_event")
        return self._result(True, action)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_plot(self, index: int) -> dict[str, Any] | None:
        plot = self.state.grid.get(index)
        if plot is None:
            return None
        info = plot.to_dict()
        info["index"] = index
        if plot.building is not None:
            tier = catalog.get_evolution_tier(plot.building, plot.evolution)
            info["name"] = tier.name if tier else catalog.get_definition(plot.building).name
            info["max_level"] = self.upgrades.max_level(plot)
            info["demolition"] = self.demolition.preview(index)
        return info

    def get_all_resources(self) -> dict[str, int]:
        return self.state.ledger.as_dict()

    def get_progress(self, index: int, now: int) -> float:
        return self.production.get_progress(index, now)

    def get_available_buildings(self, index: int | None = None) -> list[dict[str, Any]]:
        """Catalog entries with affordability; empty for an unbuildable plot."""
        if index is not None:
            plot = self.state.grid.get(index)
            if plot is None or not plot.unlocked or plot.building is not None:
                return []
        ledger = self.state.ledger
        return [
            {
                "id": d.id,
                "name": d.name,
                "description": d.description,
                "cost": dict(d.cost),
                "harvest_time": d.harvest_time,
                "produces": dict(d.produces),
                "can_afford": ledger.can_afford(d.cost),
            }
            for d in catalog.BUILDINGS.values()
        ]

    def get_available_upgrades(self, index: int) -> list[dict[str, Any]]:
        return self.upgrades.get_available_upgrades(index)

    def get_active_event(self) -> dict[str, Any] | None:
        event = self.events.active_event
        return dict(event) if event else None

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------
    def tick(self, now: int) -> dict[str, Any]:
        """One production step plus event bookkeeping."""
        self._advance_clock(now)
        report = self.production.tick(now)
        new_event = self.events.tick(now)
        return {
            "became_ready": report.became_ready,
            "auto_harvested": report.auto_harvested,
            "event": new_event,
        }

    def consume_food(self, now: int) -> bool:
        self._advance_clock(now)
        return self.starvation.consume_food(now)

    def _build_scheduler(self) -> PeriodicScheduler:
        scheduler = PeriodicScheduler(start=self.clock)
        scheduler.register("production", self.config.tick_interval_ms, self.tick)
        scheduler.register(
            "food",
            self.config.food_consumption_rate_ms,
            self.consume_food,
            first_run=self.state.last_food_consumption + self.config.food_consumption_rate_ms,
        )
        if self.on_autosave is not None:
            scheduler.register("autosave", self.config.autosave_interval_ms, self._autosave)
        return scheduler

    def _autosave(self, now: int) -> None:
        self.on_autosave(self.snapshot(now))

    def advance(self, now: int) -> int:
        """Run every periodic callback due up to ``now``. Returns runs fired."""
        if self._scheduler is None:
            self._scheduler = self._build_scheduler()
        fired = self._scheduler.run_until(now)
        self._advance_clock(now)
        return fired

    def catch_up(self, now: int) -> OfflineReport:
        """Jump to ``now`` through offline replay instead of running every tick."""
        report = self.persistence.catch_up(self.state, self.clock, now)
        self.offline_report = report
        self._advance_clock(now)
        self._scheduler = None
        return report

    def snapshot(self, now: int) -> dict[str, Any]:
        return self.persistence.snapshot(self.state, now)
