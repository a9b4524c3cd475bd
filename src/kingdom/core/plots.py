"""
Plot grid: the fixed 3x3 array of plot records.

Plots are indexed row-major. The grid owns per-plot building, upgrade and
evolution state, the adjacency topology, and the escalating price of
unlocking new plots. Timer scheduling is left to the ProductionEngine.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from kingdom.core import catalog
from kingdom.core.config import GameConfig
from kingdom.core.resources import ResourceLedger


@dataclass
class Plot:
    """A single grid cell that may hold a building."""

    unlocked: bool = False
    building: str | None = None
    level: int = 1
    evolution: int = 0
    speed_level: int = 0
    output_level: int = 0
    production_speed: float = 1.0
    harvest_multiplier: float = 1.0
    auto_harvest: bool = False
    next_harvest: int = 0
    harvest_ready: bool = False
    placement_time: int | None = None
    adjacency_bonus: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.building is None

    def reset(self) -> None:
        """Return to the empty state, keeping only ``unlocked``."""
        self.building = None
        self.level = 1
        self.evolution = 0
        self.speed_level = 0
        self.output_level = 0
        self.production_speed = 1.0
        self.harvest_multiplier = 1.0
        self.auto_harvest = False
        self.next_harvest = 0
        self.harvest_ready = False
        self.placement_time = None
        self.adjacency_bonus = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Plot:
        placement = d.get("placement_time")
        return cls(
            unlocked=bool(d.get("unlocked", False)),
            building=d.get("building"),
            level=int(d.get("level", 1)),
            evolution=int(d.get("evolution", 0)),
            speed_level=int(d.get("speed_level", 0)),
            output_level=int(d.get("output_level", 0)),
            production_speed=float(d.get("production_speed", 1.0)),
            harvest_multiplier=float(d.get("harvest_multiplier", 1.0)),
            auto_harvest=bool(d.get("auto_harvest", False)),
            next_harvest=int(d.get("next_harvest", 0)),
            harvest_ready=bool(d.get("harvest_ready", False)),
            placement_time=int(placement) if placement is not None else None,
            adjacency_bonus=float(d.get("adjacency_bonus", 0.0)),
        )


class PlotGrid:
    """Owns the plot array and the plot-expansion price."""

    def __init__(self, config: GameConfig, plots: list[Plot] | None = None,
                 next_plot_cost: int | None = None):
        self.config = config
        self.size = config.grid_size
        if plots is None:
            plots = [
                Plot(unlocked=i < config.starting_unlocked_plots)
                for i in range(config.plot_count)
            ]
        self.plots: list[Plot] = plots
        self.next_plot_cost: int = (
            config.starting_plot_cost if next_plot_cost is None else next_plot_cost
        )

    def __len__(self) -> int:
        return len(self.plots)

    def __iter__(self):
        return iter(self.plots)

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.plots)

    def get(self, index: int) -> Plot | None:
        if not self.in_range(index):
            return None
        return self.plots[index]

    def get_adjacent(self, index: int) -> list[int]:
        """Indices of the up-to-8 neighbours of ``index`` (no wraparound)."""
        if not self.in_range(index):
            return []
        row, col = divmod(index, self.size)
        adjacent: list[int] = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                r, c = row + dr, col + dc
                if 0 <= r < self.size and 0 <= c < self.size:
                    adjacent.append(r * self.size + c)
        return adjacent

    def unlock(self, index: int, ledger: ResourceLedger) -> bool:
        """Buy a locked plot with gold; the next plot costs more."""
        plot = self.get(index)
        if plot is None or plot.unlocked:
            return False
        if not ledger.deduct({"gold": self.next_plot_cost}):
            return False
        plot.unlocked = True
        self.next_plot_cost = math.floor(self.next_plot_cost * self.config.plot_cost_growth)
        return True

    def place(self, index: int, building_id: str, ledger: ResourceLedger, now: int) -> bool:
        """Construct ``building_id`` on an unlocked empty plot.

        Deducts the build cost and initializes the plot to its defaults.
        The caller schedules the first harvest.
        """
        plot = self.get(index)
        if plot is None or not plot.unlocked or plot.building is not None:
            return False
        if not catalog.has_building(building_id):
            return False
        if not ledger.deduct(catalog.get_cost(building_id)):
            return False
        plot.reset()
        plot.building = building_id
        plot.placement_time = now
        return True

    def clear(self, index: int) -> bool:
        plot = self.get(index)
        if plot is None or plot.building is None:
            return False
        plot.reset()
        return True

    def occupied_indices(self) -> list[int]:
        """Indices of unlocked plots holding a building."""
        return [
            i for i, p in enumerate(self.plots)
            if p.unlocked and p.building is not None
        ]
