"""
Random kingdom events.

At random intervals an event is drawn (weighted) from the pool and offered
to the player. The offer stays active until it is accepted, dismissed, or
it expires; then the next event is scheduled. Nothing is mutated until the
player accepts, so an abandoned offer never leaves the kingdom half-changed.

Event pool:
    wandering_trader   swap one resource for another at a fixed ratio
    bountiful_harvest  free food and wood
    royal_tax          a share of the treasury is collected

All randomness comes from a numpy Generator seeded from the configured
seed and the number of events triggered so far, so a restored game draws
the same sequence it would have drawn without the save/load.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np

from kingdom.core.state import GameState

logger = logging.getLogger(__name__)

EVENT_NAMES: dict[str, str] = {
    "wandering_trader": "The Wandering Trader",
    "bountiful_harvest": "Bountiful Harvest",
    "royal_tax": "Royal Tax Collector",
}

# give N of one resource, receive N * ratio of another
TRADE_RATIOS: dict[str, dict[str, Any]] = {
    "food_to_wood": {"give": 2, "receive": 1, "give_resource": "food", "receive_resource": "wood"},
    "food_to_gold": {"give": 3, "receive": 1, "give_resource": "food", "receive_resource": "gold"},
    "wood_to_food": {"give": 1, "receive": 1.5, "give_resource": "wood", "receive_resource": "food"},
    "wood_to_gold": {"give": 2, "receive": 1, "give_resource": "wood", "receive_resource": "gold"},
    "gold_to_food": {"give": 1, "receive": 4, "give_resource": "gold", "receive_resource": "food"},
    "gold_to_wood": {"give": 1, "receive": 2, "give_resource": "gold", "receive_resource": "wood"},
}


class EventEngine:
    """Schedules, offers and resolves random events for a GameState."""

    def __init__(self, state: GameState):
        self.state = state
        self.config = state.config
        seed = self.config.random_seed
        if seed is not None:
            self.rng = np.random.default_rng(seed + state.events.events_triggered)
        else:
            self.rng = np.random.default_rng()

    @property
    def active_event(self) -> dict[str, Any] | None:
        return self.state.events.active_event

    def schedule_next(self, now: int) -> int:
        delay = int(self.rng.integers(
            self.config.event_min_interval_ms,
            self.config.event_max_interval_ms + 1,
        ))
        self.state.events.next_event_time = now + delay
        return self.state.events.next_event_time

    def tick(self, now: int) -> dict[str, Any] | None:
        """Expire or trigger events. Returns a newly offered event, if any."""
        if not self.config.events_enabled:
            return None
        events = self.state.events
        if events.active_event is not None:
            if now >= events.active_event["expires_at"]:
                logger.info("Event expired: %s", events.active_event["id"])
                self.dismiss(now)
            return None
        if events.next_event_time is None:
            self.schedule_next(now)
            return None
        if now >= events.next_event_time:
            return self.trigger(now)
        return None

    def select_event(self) -> str:
        """Weighted draw from the configured event pool."""
        ids = [e for e, w in self.config.event_weights.items() if w > 0 and e in EVENT_NAMES]
        weights = np.array([self.config.event_weights[e] for e in ids], dtype=float)
        return str(self.rng.choice(ids, p=weights / weights.sum()))

    def trigger(self, now: int) -> dict[str, Any] | None:
        event_id = self.select_event()
        self.state.events.events_triggered += 1
        offer = self._build_offer(event_id)
        if offer is None:
            # Nothing sensible to offer; wait for the next one
            self.schedule_next(now)
            return None
        event = {
            "id": event_id,
            "name": EVENT_NAMES[event_id],
            "expires_at": now + self.config.event_duration_ms,
            "give": offer["give"],
            "receive": offer["receive"],
        }
        self.state.events.active_event = event
        self.state.events.next_event_time = None
        logger.info("Event triggered: %s", event["name"])
        return event

    def _build_offer(self, event_id: str) -> dict[str, dict[str, int]] | None:
        ledger = self.state.ledger
        if event_id == "wandering_trader":
            trade = TRADE_RATIOS[str(self.rng.choice(list(TRADE_RATIOS)))]
            affordable = ledger.amount(trade["give_resource"]) // trade["give"]
            if affordable <= 0:
                return None
            share = 0.25 + self.rng.random() * 0.5
            amount = max(1, math.floor(affordable * share))
            return {
                "give": {trade["give_resource"]: amount * trade["give"]},
                "receive": {trade["receive_resource"]: math.floor(amount * trade["receive"])},
            }
        if event_id == "bountiful_harvest":
            food = math.floor(10 + self.rng.random() * 20)
            wood = math.floor(5 + self.rng.random() * 10)
            return {"give": {}, "receive": {"food": food, "wood": wood}}
        if event_id == "royal_tax":
            tax = math.floor(ledger.amount("gold") * self.config.royal_tax_rate)
            if tax <= 0:
                return None
            return {"give": {"gold": tax}, "receive": {}}
        return None

    def accept(self, now: int) -> dict[str, Any] | None:
        """Apply the active offer. Returns what changed hands, or None."""
        event = self.state.events.active_event
        if event is None:
            return None
        ledger = self.state.ledger
        give = dict(event["give"])
        if event["id"] == "royal_tax":
            # The collector takes what is there, never more
            give = {r: min(a, ledger.amount(r)) for r, a in give.items()}
        if not ledger.deduct(give):
            return None
        ledger.add(event["receive"])
        result = {"id": event["id"], "gave": give, "received": dict(event["receive"])}
        self.dismiss(now)
        return result

    def dismiss(self, now: int) -> bool:
        if self.state.events.active_event is None:
            return False
        self.state.events.active_event = None
        self.schedule_next(now)
        return True
