"""
Production engine: the per-plot harvest state machine.

Each built plot cycles between two states:

    Producing  (now < next_harvest)
    Ready      (harvest_ready, awaiting collection)

``tick(now)`` flips Producing -> Ready once the deadline passes; a harvest
(manual, or automatic within the same tick for auto-harvest plots) collects
the output and schedules the next deadline. Harvest duration and output are
computed from the building's base values under the current bonus stack:
upgrade multipliers, starvation, adjacency and established bonuses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from kingdom.core import catalog
from kingdom.core.plots import Plot
from kingdom.core.state import GameState


@dataclass
class TickReport:
    """What happened to the grid during one production tick."""
    became_ready: list[int] = field(default_factory=list)
    auto_harvested: dict[int, dict[str, int]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.became_ready or self.auto_harvested)


class ProductionEngine:
    """Advances harvest timers and performs harvests on a GameState."""

    def __init__(self, state: GameState):
        self.state = state
        self.config = state.config

    # ------------------------------------------------------------------
    # Bonus stack
    # ------------------------------------------------------------------
    def established_bonus(self, plot: Plot, now: int) -> float:
        """Uptime bonus: +increment per full interval since placement, capped.

        Computed lazily from ``placement_time``; never decays.
        """
        if plot.building is None or plot.placement_time is None:
            return 0.0
        age = max(0, now - plot.placement_time)
        intervals = age // self.config.established_interval_ms
        return min(intervals * self.config.established_bonus_increment,
                   self.config.established_bonus_cap)

    def adjacency_bonus_for(self, index: int) -> float:
        """Bonus from neighbouring plots holding the same building type."""
        plot = self.state.grid.get(index)
        if plot is None or plot.building is None:
            return 0.0
        matching = sum(
            1 for adj in self.state.grid.get_adjacent(index)
            if self.state.plots[adj].building == plot.building
        )
        return min(matching * self.config.adjacency_bonus_per_match,
                   self.config.adjacency_bonus_cap)

    def recalculate_adjacency(self) -> None:
        """Refresh the cached adjacency bonus of every plot."""
        for i, plot in enumerate(self.state.plots):
            plot.adjacency_bonus = self.adjacency_bonus_for(i)

    def efficiency_bonus(self, index: int, now: int) -> float:
        plot = self.state.plots[index]
        return plot.adjacency_bonus + self.established_bonus(plot, now)

    # ------------------------------------------------------------------
    # Formulas
    # ------------------------------------------------------------------
    def effective_harvest_time(self, index: int, now: int) -> int:
        """Cycle duration in ms for the plot under the current bonus stack."""
        plot = self.state.plots[index]
        if plot.building is None:
            return 0
        base = catalog.get_base_harvest_time(plot.building)
        starvation = self.config.starvation_time_multiplier if self.state.is_starving else 1
        divisor = plot.production_speed * (1 + self.efficiency_bonus(index, now))
        return math.floor(base * starvation / divisor)

    def harvest_output(self, index: int, harvests: int = 1) -> dict[str, int]:
        """Resources ``harvests`` harvests of the plot yield right now, floored once."""
        plot = self.state.plots[index]
        if plot.building is None:
            return {}
        factor = self.config.starvation_output_factor if self.state.is_starving else 1
        return {
            resource: math.floor(amount * plot.harvest_multiplier * factor * harvests)
            for resource, amount in catalog.get_base_production(plot.building).items()
        }

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def reset_harvest_timer(self, index: int, now: int) -> None:
        """Start a new production cycle for the plot."""
        plot = self.state.plots[index]
        if plot.building is None:
            return
        plot.next_harvest = now + self.effective_harvest_time(index, now)
        plot.harvest_ready = False

    def harvest(self, index: int, now: int) -> dict[str, int] | None:
        """Manually collect a ready plot.

        Returns the collected resources, or None when the plot is empty,
        not ready, or set to auto-harvest (those are drained by ``tick``).
        """
        plot = self.state.grid.get(index)
        if plot is None or plot.building is None:
            return None
        if not plot.harvest_ready or plot.auto_harvest:
            return None
        return self.collect(index, now)

    def collect(self, index: int, now: int) -> dict[str, int]:
        """Add one harvest to the ledger and restart the cycle, unchecked."""
        output = self.harvest_output(index)
        self.state.ledger.add(output)
        self.reset_harvest_timer(index, now)
        return output

    def tick(self, now: int) -> TickReport:
        """Advance every built plot on an unlocked cell to ``now``."""
        report = TickReport()
        for i in self.state.grid.occupied_indices():
            plot = self.state.plots[i]
            if not plot.harvest_ready and now >= plot.next_harvest:
                plot.harvest_ready = True
                report.became_ready.append(i)
            if plot.harvest_ready and plot.auto_harvest:
                report.auto_harvested[i] = self.collect(i, now)
        return report

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_progress(self, index: int, now: int) -> float:
        """Cycle completion in [0, 1]; 1 when ready or empty."""
        plot = self.state.grid.get(index)
        if plot is None or plot.building is None or plot.harvest_ready:
            return 1.0
        remaining = plot.next_harvest - now
        if remaining <= 0:
            return 1.0
        total = self.effective_harvest_time(index, now)
        if total <= 0:
            return 1.0
        return float(np.clip(1.0 - remaining / total, 0.0, 1.0))
