"""
Demolition engine: tear down a building for a partial refund.

Demolishing costs population (scaled by how expensive the building was)
and returns a fraction of the build cost. Adjacency bonuses of
the whole grid are recomputed afterwards.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from kingdom.core import catalog
from kingdom.core.catalog import BuildingDefinition
from kingdom.core.state import GameState

if TYPE_CHECKING:
    from kingdom.core.production import ProductionEngine


class DemolitionEngine:

    def __init__(self, state: GameState, production: ProductionEngine):
        self.state = state
        self.config = state.config
        self.production = production

    def calculate_recovery(self, definition: BuildingDefinition) -> dict[str, int]:
        """Refund per resource of the build cost; zero entries are dropped."""
        recovery: dict[str, int] = {}
        for resource, amount in definition.cost.items():
            recovered = math.floor(amount * self.config.demolition_recovery_rate)
            if recovered > 0:
                recovery[resource] = recovered
        return recovery

    def building_tier(self, definition: BuildingDefinition) -> int:
        """Bucket a building by its total build cost (tiers 1-4)."""
        total = definition.total_cost
        for tier, ceiling in enumerate(self.config.demolition_tier_thresholds, start=1):
            if total <= ceiling:
                return tier
        return len(self.config.demolition_tier_thresholds) + 1

    def calculate_population_cost(self, definition: BuildingDefinition) -> int:
        tier = self.building_tier(definition)
        return tier ** 2 * self.config.demolition_population_multiplier

    def preview(self, index: int) -> dict[str, object] | None:
        """Recovery and population cost of demolishing a plot, for display."""
        plot = self.state.grid.get(index)
        if plot is None or not catalog.has_building(plot.building):
            return None
        definition = catalog.get_definition(plot.building)
        population_cost = self.calculate_population_cost(definition)
        return {
            "recovery": self.calculate_recovery(definition),
            "population_cost": population_cost,
            "can_afford": self.state.ledger.amount("population") >= population_cost,
        }

    def demolish(self, index: int) -> dict[str, int] | None:
        """Tear down the building on ``index``.

        Returns the recovered resources, or None if the plot is empty or
        the population cannot cover the demolition.
        """
        plot = self.state.grid.get(index)
        if plot is None or not catalog.has_building(plot.building):
            return None
        definition = catalog.get_definition(plot.building)
        if not self.state.ledger.deduct(
            {"population": self.calculate_population_cost(definition)}
        ):
            return None
        recovery = self.calculate_recovery(definition)
        self.state.ledger.add(recovery)
        self.state.grid.clear(index)
        self.production.recalculate_adjacency()
        return recovery
