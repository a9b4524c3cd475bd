"""
Upgrade engine: per-plot purchases.

Four upgrade tracks exist for a built plot:

- speed     gold, per level, capped by the evolution tier's max level
- output    gold, per level, capped the same way
- auto      population, one-shot and irreversible
- evolution mixed resources; requires both level tracks maxed, resets them
            and raises the cap for the next tier

Speed and output multipliers are derived from the track level and the
evolution tier; the evolution bonus multiplies the level bonus.
"""

from __future__ import annotations

from typing import Any

from kingdom.core import catalog
from kingdom.core.plots import Plot
from kingdom.core.state import GameState


class UpgradeEngine:
    """Applies upgrade purchases to plots of a GameState."""

    def __init__(self, state: GameState):
        self.state = state
        self.config = state.config

    def _built_plot(self, index: int) -> Plot | None:
        plot = self.state.grid.get(index)
        if plot is None or plot.building is None:
            return None
        return plot

    # ------------------------------------------------------------------
    # Multipliers
    # ------------------------------------------------------------------
    def speed_multiplier(self, speed_level: int, evolution: int) -> float:
        level_bonus = 1.0 + speed_level * self.config.speed_bonus_per_level
        return level_bonus * (1.0 + evolution * self.config.evolution_speed_bonus)

    def output_multiplier(self, output_level: int, evolution: int) -> float:
        level_bonus = 1.0 + output_level * self.config.output_bonus_per_level
        return level_bonus * (1.0 + evolution * self.config.evolution_output_bonus)

    def apply_multipliers(self, plot: Plot) -> None:
        """Recompute the derived multipliers from levels and evolution."""
        plot.production_speed = self.speed_multiplier(plot.speed_level, plot.evolution)
        plot.harvest_multiplier = self.output_multiplier(plot.output_level, plot.evolution)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------
    def max_level(self, plot: Plot) -> int:
        return catalog.get_max_level(plot.building, plot.evolution)

    def speed_cost(self, plot: Plot) -> dict[str, int]:
        return catalog.get_speed_upgrade_cost(plot.building, plot.speed_level, plot.evolution)

    def output_cost(self, plot: Plot) -> dict[str, int]:
        return catalog.get_output_upgrade_cost(plot.building, plot.output_level, plot.evolution)

    def auto_harvest_cost(self) -> dict[str, int]:
        return {"population": self.config.auto_harvest_population_cost}

    def evolution_cost(self, plot: Plot) -> dict[str, int]:
        return catalog.get_evolution_cost(plot.building, plot.evolution)

    def purchase_speed(self, index: int) -> bool:
        plot = self._built_plot(index)
        if plot is None or plot.speed_level >= self.max_level(plot):
            return False
        if not self.state.ledger.deduct(self.speed_cost(plot)):
            return False
        plot.speed_level += 1
        self.apply_multipliers(plot)
        return True

    def purchase_output(self, index: int) -> bool:
        plot = self._built_plot(index)
        if plot is None or plot.output_level >= self.max_level(plot):
            return False
        if not self.state.ledger.deduct(self.output_cost(plot)):
            return False
        plot.output_level += 1
        self.apply_multipliers(plot)
        return True

    def purchase_auto_harvest(self, index: int) -> bool:
        plot = self._built_plot(index)
        if plot is None or plot.auto_harvest:
            return False
        if not self.state.ledger.deduct(self.auto_harvest_cost()):
            return False
        plot.auto_harvest = True
        return True

    def can_evolve(self, plot: Plot) -> bool:
        """Both tracks at the tier cap and a further tier exists."""
        if plot.building is None:
            return False
        cap = self.max_level(plot)
        if plot.speed_level < cap or plot.output_level < cap:
            return False
        return catalog.get_evolution_tier(plot.building, plot.evolution + 1) is not None

    def purchase_evolution(self, index: int) -> bool:
        plot = self._built_plot(index)
        if plot is None or not self.can_evolve(plot):
            return False
        if not self.state.ledger.deduct(self.evolution_cost(plot)):
            return False
        plot.evolution += 1
        plot.speed_level = 0
        plot.output_level = 0
        self.apply_multipliers(plot)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_available_upgrades(self, index: int) -> list[dict[str, Any]]:
        """Describe every upgrade track of a built plot for display."""
        plot = self._built_plot(index)
        if plot is None:
            return []
        ledger = self.state.ledger
        cap = self.max_level(plot)
        upgrades: list[dict[str, Any]] = []

        for kind, level, cost_fn in (
            ("speed", plot.speed_level, self.speed_cost),
            ("output", plot.output_level, self.output_cost),
        ):
            maxed = level >= cap
            cost = {} if maxed else cost_fn(plot)
            upgrades.append({
                "type": kind,
                "level": level,
                "max_level": cap,
                "cost": cost,
                "available": not maxed,
                "can_afford": not maxed and ledger.can_afford(cost),
            })

        auto_cost = self.auto_harvest_cost()
        upgrades.append({
            "type": "auto_harvest",
            "level": int(plot.auto_harvest),
            "max_level": 1,
            "cost": {} if plot.auto_harvest else auto_cost,
            "available": not plot.auto_harvest,
            "can_afford": not plot.auto_harvest and ledger.can_afford(auto_cost),
        })

        next_tier = catalog.get_evolution_tier(plot.building, plot.evolution + 1)
        evolvable = self.can_evolve(plot)
        evo_cost = self.evolution_cost(plot) if next_tier is not None else {}
        upgrades.append({
            "type": "evolution",
            "level": plot.evolution,
            "max_level": len(catalog.get_evolution_chain(plot.building)) - 1,
            "cost": evo_cost,
            "next_name": next_tier.name if next_tier else None,
            "available": evolvable,
            "can_afford": evolvable and ledger.can_afford(evo_cost),
        })
        return upgrades
