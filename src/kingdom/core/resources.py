"""
Resource ledger: the five fungible counters of a kingdom.

Every deduction is preceded by an afford-check across the whole cost, so a
multi-resource purchase either happens completely or not at all. Amounts are
integers and never go below zero.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping


class ResourceKind(str, Enum):
    """Fungible resources tracked by the ledger."""
    FOOD = "food"
    WOOD = "wood"
    STONE = "stone"
    GOLD = "gold"
    POPULATION = "population"


RESOURCE_KINDS: tuple[str, ...] = tuple(k.value for k in ResourceKind)


class ResourceLedger:
    """Owns resource balances and the afford/deduct/add operations."""

    def __init__(self, amounts: Mapping[str, int] | None = None):
        self._amounts: dict[str, int] = {k: 0 for k in RESOURCE_KINDS}
        if amounts:
            for kind, value in amounts.items():
                if kind in self._amounts:
                    self._amounts[kind] = max(0, int(value))

    def amount(self, kind: str | ResourceKind) -> int:
        return self._amounts[ResourceKind(kind).value]

    def set_amount(self, kind: str | ResourceKind, value: int) -> None:
        self._amounts[ResourceKind(kind).value] = max(0, int(value))

    def can_afford(self, cost: Mapping[str, int]) -> bool:
        """True if every resource in ``cost`` is covered by the balance.

        A cost naming a resource the ledger does not track is unaffordable.
        """
        for kind, required in cost.items():
            if kind not in self._amounts:
                return False
            if self._amounts[kind] < required:
                return False
        return True

    def deduct(self, cost: Mapping[str, int]) -> bool:
        """Deduct ``cost``; returns False (no mutation) if unaffordable."""
        if not self.can_afford(cost):
            return False
        for kind, required in cost.items():
            self._amounts[kind] -= int(required)
        return True

    def add(self, amounts: Mapping[str, int]) -> None:
        """Add ``amounts`` unconditionally, clamping each balance at zero."""
        for kind, value in amounts.items():
            if kind in self._amounts:
                self._amounts[kind] = max(0, self._amounts[kind] + int(value))

    def as_dict(self) -> dict[str, int]:
        return dict(self._amounts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceLedger):
            return NotImplemented
        return self._amounts == other._amounts

    def __repr__(self) -> str:
        return f"ResourceLedger({self._amounts!r})"
