"""
GameState: the explicit aggregate every engine operates on.

One controller owns a GameState and hands it to each engine constructor;
there is no ambient global state anywhere in the core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kingdom.core.config import GameConfig
from kingdom.core.plots import PlotGrid
from kingdom.core.resources import ResourceLedger


@dataclass
class EventState:
    """Persistent part of the random event system."""
    active_event: dict[str, Any] | None = None
    next_event_time: int | None = None
    events_triggered: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_event": dict(self.active_event) if self.active_event else None,
            "next_event_time": self.next_event_time,
            "events_triggered": self.events_triggered,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> EventState:
        d = d or {}
        active = d.get("active_event")
        return cls(
            active_event=dict(active) if active else None,
            next_event_time=d.get("next_event_time"),
            events_triggered=int(d.get("events_triggered", 0)),
        )


@dataclass
class GameState:
    """Everything that is persisted for one kingdom."""

    config: GameConfig
    ledger: ResourceLedger
    grid: PlotGrid
    is_starving: bool = False
    last_food_consumption: int = 0
    events: EventState = field(default_factory=EventState)

    @classmethod
    def new(cls, config: GameConfig | None = None, now: int = 0) -> GameState:
        """Fresh game: starting resources, starting plots unlocked."""
        config = config or GameConfig()
        return cls(
            config=config,
            ledger=ResourceLedger(config.starting_resources),
            grid=PlotGrid(config),
            last_food_consumption=now,
        )

    @property
    def plots(self):
        return self.grid.plots
