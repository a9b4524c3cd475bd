"""
Master configuration for the kingdom simulation.

ALL tunable parameters live here. Nothing in the simulation core is
hardcoded: timing, starting resources, bonus rates, demolition rules and
event tuning are all read from a ``GameConfig`` instance.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class GameConfig:
    """
    Master configuration for one kingdom.

    Every interval, rate and threshold is configurable.
    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison.
    """

    # === Identity ===
    preset_name: str = "default"
    random_seed: int | None = None

    # === Timing (milliseconds) ===
    tick_interval_ms: int = 1000
    food_consumption_rate_ms: int = 120000
    autosave_interval_ms: int = 30000

    # === Grid ===
    grid_size: int = 3
    starting_unlocked_plots: int = 2
    starting_plot_cost: int = 100
    plot_cost_growth: float = 2.0

    # === Starting resources ===
    starting_resources: dict[str, int] = field(default_factory=lambda: {
        "food": 50,
        "wood": 0,
        "stone": 0,
        "gold": 0,
        "population": 2,
    })

    # === Starvation ===
    starvation_time_multiplier: float = 2.0
    starvation_output_factor: float = 0.5

    # === Upgrades ===
    speed_bonus_per_level: float = 0.5
    output_bonus_per_level: float = 0.3
    evolution_speed_bonus: float = 0.2   # per evolution tier, multiplicative
    evolution_output_bonus: float = 0.15
    auto_harvest_population_cost: int = 2

    # === Efficiency bonuses ===
    adjacency_bonus_per_match: float = 0.1
    adjacency_bonus_cap: float = 0.3
    established_interval_ms: int = 10 * 60 * 1000
    established_bonus_increment: float = 0.05
    established_bonus_cap: float = 1.0

    # === Demolition ===
    demolition_recovery_rate: float = 0.25
    demolition_population_multiplier: int = 1
    # Upper bounds of total build cost for demolition tiers 1..3; above is tier 4
    demolition_tier_thresholds: list[int] = field(default_factory=lambda: [10, 25, 50])

    # === Random events ===
    events_enabled: bool = True
    event_min_interval_ms: int = 20 * 1000
    event_max_interval_ms: int = 60 * 1000
    event_duration_ms: int = 3 * 60 * 1000
    event_weights: dict[str, float] = field(default_factory=lambda: {
        "wandering_trader": 1.0,
        "bountiful_harvest": 0.3,
        "royal_tax": 0.2,
    })
    royal_tax_rate: float = 0.2

    # === Persistence ===
    save_version: str = "1.0"

    @property
    def plot_count(self) -> int:
        return self.grid_size * self.grid_size

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (excludes private fields)."""
        d: dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if k.startswith("_"):
                continue
            d[k] = v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> GameConfig:
        """Deserialize from a dict."""
        return cls(**{k: v for k, v in d.items() if not k.startswith("_")})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_json(cls, s: str) -> GameConfig:
        return cls.from_dict(json.loads(s))

    def diff(self, other: GameConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs
