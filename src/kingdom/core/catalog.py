"""
Building catalog: static, read-only building definitions and cost formulas.

Pure data + pure functions. The upgrade and evolution cost formulas define
the observable game balance, so the constants below are part of the
contract and must not drift.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# Evolution tiers: tier index -> max level of each upgrade track
TIER_MAX_LEVELS: tuple[int, ...] = (10, 20, 30, 40, 50, 60, 70)

SPEED_COST_EXPONENT = 1.5
SPEED_COST_TIER_FACTOR = 0.5
OUTPUT_COST_EXPONENT = 1.6
OUTPUT_COST_TIER_FACTOR = 0.6
UPGRADE_CURRENCY = "gold"


@dataclass(frozen=True)
class EvolutionTier:
    """One step in a building's evolution chain."""
    name: str
    tier: int
    max_level: int


@dataclass(frozen=True)
class BuildingDefinition:
    """Immutable catalog entry for a building type."""
    id: str
    name: str
    cost: Mapping[str, int]
    harvest_time: int  # ms
    produces: Mapping[str, int]
    description: str
    evolution_chain: tuple[EvolutionTier, ...]
    speed_cost_base: int
    output_cost_base: int
    evolution_cost_base: Mapping[str, int] = field(default_factory=dict)

    @property
    def total_cost(self) -> int:
        return sum(self.cost.values())


def _chain(*names: str) -> tuple[EvolutionTier, ...]:
    return tuple(
        EvolutionTier(name=name, tier=i, max_level=TIER_MAX_LEVELS[i])
        for i, name in enumerate(names)
    )


BUILDINGS: Mapping[str, BuildingDefinition] = MappingProxyType({
    "wheatField": BuildingDefinition(
        id="wheatField",
        name="Wheat Field",
        cost=MappingProxyType({"food": 10}),
        harvest_time=60000,
        produces=MappingProxyType({"food": 10}),
        description="Produces 10 food every 60 seconds",
        evolution_chain=_chain(
            "Wheat Field", "Tended Field", "Irrigated Field", "Farmstead",
            "Grain Estate", "Royal Granary", "Breadbasket of the Realm",
        ),
        speed_cost_base=10,
        output_cost_base=20,
        evolution_cost_base=MappingProxyType({"food": 50, "wood": 10}),
    ),
    "woodcuttersHut": BuildingDefinition(
        id="woodcuttersHut",
        name="Woodcutter's Hut",
        cost=MappingProxyType({"food": 10, "wood": 10}),
        harvest_time=10000,
        produces=MappingProxyType({"wood": 1}),
        description="Produces 1 wood every 10 seconds",
        evolution_chain=_chain(
            "Woodcutter's Hut", "Logging Camp", "Sawpit", "Lumber Yard",
            "Sawmill", "Forestry Guild", "Royal Timberworks",
        ),
        speed_cost_base=15,
        output_cost_base=25,
        evolution_cost_base=MappingProxyType({"wood": 30, "food": 20}),
    ),
    "shelter": BuildingDefinition(
        id="shelter",
        name="Shelter",
        cost=MappingProxyType({"wood": 15}),
        harvest_time=240000,
        produces=MappingProxyType({"population": 1}),
        description="Produces 1 population every 240 seconds",
        evolution_chain=_chain(
            "Shelter", "Cottage", "Longhouse", "Hamlet",
            "Village", "Town Quarter", "Citadel Ward",
        ),
        speed_cost_base=25,
        output_cost_base=40,
        evolution_cost_base=MappingProxyType({"population": 5, "wood": 20}),
    ),
})


def has_building(building_id: str | None) -> bool:
    return building_id is not None and building_id in BUILDINGS


def get_definition(building_id: str) -> BuildingDefinition:
    """Look up a building. Raises KeyError for unknown ids."""
    return BUILDINGS[building_id]


def get_cost(building_id: str) -> dict[str, int]:
    return dict(BUILDINGS[building_id].cost)


def get_base_harvest_time(building_id: str) -> int:
    return BUILDINGS[building_id].harvest_time


def get_base_production(building_id: str) -> dict[str, int]:
    return dict(BUILDINGS[building_id].produces)


def get_evolution_chain(building_id: str) -> tuple[EvolutionTier, ...]:
    return BUILDINGS[building_id].evolution_chain


def get_evolution_tier(building_id: str, tier: int) -> EvolutionTier | None:
    """Return the tier entry, or None past the end of the chain."""
    chain = BUILDINGS[building_id].evolution_chain
    if 0 <= tier < len(chain):
        return chain[tier]
    return None


def get_max_level(building_id: str, tier: int) -> int:
    """Max speed/output level for a building at the given evolution tier."""
    entry = get_evolution_tier(building_id, tier)
    if entry is None:
        return 0
    return entry.max_level


def get_speed_upgrade_cost(building_id: str, level: int, tier: int) -> dict[str, int]:
    """Gold cost of buying speed level ``level + 1`` at evolution ``tier``."""
    base = BUILDINGS[building_id].speed_cost_base
    amount = math.floor(
        base * (level + 1) ** SPEED_COST_EXPONENT * (1 + tier * SPEED_COST_TIER_FACTOR)
    )
    return {UPGRADE_CURRENCY: amount}


def get_output_upgrade_cost(building_id: str, level: int, tier: int) -> dict[str, int]:
    """Gold cost of buying output level ``level + 1`` at evolution ``tier``."""
    base = BUILDINGS[building_id].output_cost_base
    amount = math.floor(
        base * (level + 1) ** OUTPUT_COST_EXPONENT * (1 + tier * OUTPUT_COST_TIER_FACTOR)
    )
    return {UPGRADE_CURRENCY: amount}


def get_evolution_cost(building_id: str, tier: int) -> dict[str, int]:
    """Cost of evolving from ``tier`` to ``tier + 1``."""
    base = BUILDINGS[building_id].evolution_cost_base
    return {
        resource: math.floor(amount * 2 ** tier)
        for resource, amount in base.items()
    }
