"""
Starvation controller: periodic food consumption against population.

Every consumption cycle the kingdom eats one food per population. A
shortfall sets the starving flag, and at that moment every plot still
producing has its remaining time doubled. While starving, new production
cycles also run slower and harvests yield less (see ProductionEngine).
"""

from __future__ import annotations

import math

from kingdom.core.state import GameState


class StarvationController:
    """Consumes food on a fixed interval and tracks the starving flag."""

    def __init__(self, state: GameState):
        self.state = state
        self.config = state.config

    def is_due(self, now: int) -> bool:
        return now - self.state.last_food_consumption >= self.config.food_consumption_rate_ms

    def tick(self, now: int) -> bool | None:
        """Run a consumption cycle if one is due.

        Returns True if the kingdom was fed, False if it starved, None if
        no cycle was due.
        """
        if not self.is_due(now):
            return None
        return self.consume_food(now)

    def consume_food(self, now: int, replay: bool = False) -> bool:
        """Feed the population. Returns True on success.

        With ``replay=True`` (offline catch-up) only the numeric
        consume-or-starve logic runs; production timers are untouched.
        """
        ledger = self.state.ledger
        required = ledger.amount("population")
        fed = ledger.deduct({"food": required})
        if fed:
            self.state.is_starving = False
        else:
            self.state.is_starving = True
            if not replay:
                self._extend_in_flight_production(now)
        self.state.last_food_consumption = now
        return fed

    def replay_cycles(self, cycles: int) -> int:
        """Run ``cycles`` consumption cycles with no production in between.

        Same outcome as calling ``consume_food(now, replay=True)`` that many
        times, computed in one step. Returns the number of cycles fed.
        """
        if cycles <= 0:
            return 0
        ledger = self.state.ledger
        population = ledger.amount("population")
        if population == 0:
            fed = cycles
        else:
            fed = min(cycles, ledger.amount("food") // population)
        ledger.deduct({"food": fed * population})
        self.state.is_starving = fed < cycles
        return fed

    def _extend_in_flight_production(self, now: int) -> None:
        """Double the remaining time of every plot that is still producing."""
        for i in self.state.grid.occupied_indices():
            plot = self.state.plots[i]
            if plot.harvest_ready:
                continue
            remaining = plot.next_harvest - now
            if remaining > 0:
                plot.next_harvest = now + math.floor(
                    remaining * self.config.starvation_time_multiplier
                )
