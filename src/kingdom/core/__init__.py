"""Simulation core: state, engines and the command facade."""

from kingdom.core.config import GameConfig
from kingdom.core.game import CommandResult, KingdomGame
from kingdom.core.state import GameState

__all__ = [
    "GameConfig",
    "GameState",
    "KingdomGame",
    "CommandResult",
]
