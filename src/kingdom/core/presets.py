"""
Kingdom presets: named GameConfig variants.

``default`` is the canonical balance. The others reproduce older tunings
of the game or switch subsystems off for focused play and testing.
"""

from __future__ import annotations

from kingdom.core.config import GameConfig


def default() -> GameConfig:
    """Canonical balance: food every two minutes, two starting plots."""
    return GameConfig(preset_name="default")


def legacy_quick_famine() -> GameConfig:
    """Early tuning: the kingdom eats every 30 seconds and starts with one plot."""
    return GameConfig(
        preset_name="legacy_quick_famine",
        food_consumption_rate_ms=30 * 1000,
        starting_unlocked_plots=1,
    )


def no_events() -> GameConfig:
    """Default balance with random events disabled."""
    return GameConfig(preset_name="no_events", events_enabled=False)


PRESETS: dict[str, callable] = {
    "default": default,
    "legacy_quick_famine": legacy_quick_famine,
    "no_events": no_events,
}


def get_preset(name: str) -> GameConfig:
    """Get a preset config by name."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]()


def list_presets() -> list[str]:
    """Return list of available preset names."""
    return list(PRESETS.keys())
