"""
Snapshot / restore of a kingdom, with offline catch-up.

A snapshot is a versioned, JSON-serializable dict of the whole GameState.
Restoring validates the version (a mismatch means "no save", never an
error), rebuilds the state, and then replays the wall-clock time that
passed since the snapshot was taken:

1. Plots whose deadline passed become ready. Auto-harvest plots instead
   collect every whole cycle that fit in the offline window and carry the
   remainder into their next deadline.
2. Food consumption cycles that fit in the offline window are replayed
   numerically (consume or starve, no timer penalty).

Malformed saves degrade to "no save data" with a warning; unknown
building ids clear the offending plot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from kingdom.core import catalog
from kingdom.core.config import GameConfig
from kingdom.core.plots import Plot, PlotGrid
from kingdom.core.production import ProductionEngine
from kingdom.core.resources import ResourceLedger
from kingdom.core.starvation import StarvationController
from kingdom.core.state import EventState, GameState

logger = logging.getLogger(__name__)


@dataclass
class OfflineReport:
    """Summary of the catch-up applied on restore."""
    offline_ms: int = 0
    produced: dict[str, int] = field(default_factory=dict)
    ready_plots: list[int] = field(default_factory=list)
    food_cycles: int = 0
    cleared_plots: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "offline_ms": self.offline_ms,
            "produced": dict(self.produced),
            "ready_plots": list(self.ready_plots),
            "food_cycles": self.food_cycles,
            "cleared_plots": list(self.cleared_plots),
        }


class PersistenceController:
    """Builds snapshots and restores them with offline progress."""

    def __init__(self, config: GameConfig):
        self.config = config
        self.last_report: OfflineReport | None = None

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def snapshot(self, state: GameState, now: int) -> dict[str, Any]:
        return {
            "version": self.config.save_version,
            "timestamp": now,
            "resources": state.ledger.as_dict(),
            "plots": [p.to_dict() for p in state.plots],
            "next_plot_cost": state.grid.next_plot_cost,
            "is_starving": state.is_starving,
            "last_food_consumption": state.last_food_consumption,
            "events": state.events.to_dict(),
        }

    def dumps(self, state: GameState, now: int) -> str:
        return json.dumps(self.snapshot(state, now))

    def loads(self, text: str | None, now: int) -> GameState | None:
        """Restore from JSON text; corrupt text means no save."""
        if not text:
            return None
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Save data is not valid JSON, starting fresh", exc_info=True)
            return None
        return self.restore(data, now)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------
    def restore(self, data: Any, now: int) -> GameState | None:
        """Rebuild a GameState from ``data`` and catch up to ``now``.

        Returns None when the data is missing, malformed, or from another
        save version.
        """
        self.last_report = None
        if not isinstance(data, dict):
            return None
        if data.get("version") != self.config.save_version:
            logger.warning(
                "Save version mismatch (%s != %s), starting fresh",
                data.get("version"), self.config.save_version,
            )
            return None
        try:
            state, report = self._rebuild(data)
            saved_at = int(data["timestamp"])
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Save data is corrupt, starting fresh", exc_info=True)
            return None

        offline = now - saved_at
        report.offline_ms = max(0, offline)
        if offline > 0:
            self._replay(state, saved_at, now, offline, report)
            rate = self.config.food_consumption_rate_ms
            self._replay_food(state, offline // rate, report)
            state.last_food_consumption = now - offline % rate
            logger.info(
                "Offline for %d seconds: produced %s, %d food cycles",
                offline // 1000, report.produced, report.food_cycles,
            )
        self.last_report = report
        return state

    def _rebuild(self, data: dict[str, Any]) -> tuple[GameState, OfflineReport]:
        report = OfflineReport()
        plots = [Plot.from_dict(p) for p in data["plots"]]
        if len(plots) != self.config.plot_count:
            raise ValueError(
                f"Save has {len(plots)} plots, expected {self.config.plot_count}"
            )
        for i, plot in enumerate(plots):
            if plot.building is not None and not catalog.has_building(plot.building):
                logger.warning("Unknown building type %r on plot %d, clearing", plot.building, i)
                plot.reset()
                report.cleared_plots.append(i)
            elif plot.building is None:
                # Empty plots carry no upgrade or timer state
                plot.reset()

        state = GameState(
            config=self.config,
            ledger=ResourceLedger(data["resources"]),
            grid=PlotGrid(self.config, plots=plots,
                          next_plot_cost=int(data["next_plot_cost"])),
            is_starving=bool(data.get("is_starving", False)),
            last_food_consumption=int(data.get("last_food_consumption", data["timestamp"])),
            events=EventState.from_dict(data.get("events")),
        )
        if report.cleared_plots:
            ProductionEngine(state).recalculate_adjacency()
        return state, report

    def catch_up(self, state: GameState, saved_at: int, now: int) -> OfflineReport:
        """Apply offline replay to a live state that was last advanced at ``saved_at``."""
        report = OfflineReport(offline_ms=max(0, now - saved_at))
        if now > saved_at:
            self._replay(state, saved_at, now, now - saved_at, report)
            rate = self.config.food_consumption_rate_ms
            cycles = max(0, (now - state.last_food_consumption) // rate)
            self._replay_food(state, cycles, report)
            state.last_food_consumption += cycles * rate
        return report

    def _replay(self, state: GameState, saved_at: int, now: int,
                offline: int, report: OfflineReport) -> None:
        production = ProductionEngine(state)
        ledger = state.ledger

        for i in state.grid.occupied_indices():
            plot = state.plots[i]
            if plot.harvest_ready and not plot.auto_harvest:
                continue
            if plot.auto_harvest:
                cycle = production.effective_harvest_time(i, saved_at)
                harvests = offline // cycle if cycle > 0 else 0
                if harvests > 0:
                    gained = production.harvest_output(i, harvests)
                    ledger.add(gained)
                    _merge(report.produced, gained)
                    plot.next_harvest = now + (cycle - offline % cycle)
                    plot.harvest_ready = False
                    continue
            if now >= plot.next_harvest:
                plot.harvest_ready = True
                report.ready_plots.append(i)
                if plot.auto_harvest:
                    _merge(report.produced, production.collect(i, now))

    def _replay_food(self, state: GameState, cycles: int, report: OfflineReport) -> None:
        StarvationController(state).replay_cycles(cycles)
        report.food_cycles = cycles


def _merge(into: dict[str, int], amounts: dict[str, int]) -> None:
    for resource, amount in amounts.items():
        into[resource] = into.get(resource, 0) + amount
