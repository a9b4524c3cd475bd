"""Tests for the KingdomGame command/result facade."""

import pytest

from kingdom.core.config import GameConfig
from kingdom.core.game import CommandResult, KingdomGame


def _make_game(**overrides) -> KingdomGame:
    overrides.setdefault("events_enabled", False)
    return KingdomGame(config=GameConfig(**overrides), now=0)


class TestBuild:
    def test_build_wheat_field(self):
        game = _make_game()
        result = game.build_building(0, "wheatField", now=0)
        assert isinstance(result, CommandResult)
        assert result.success
        assert result.action == "build"
        assert result.resources["food"] == 40
        assert result.plot["building"] == "wheatField"
        assert result.plot["next_harvest"] == 60000

    @pytest.mark.parametrize("index, building, reason", [
        (5, "wheatField", "locked"),
        (42, "wheatField", "invalid_plot"),
        (0, "castle", "unknown_building"),
        (0, "shelter", "unaffordable"),
    ])
    def test_build_failures(self, index, building, reason):
        game = _make_game()
        before = game.get_all_resources()
        result = game.build_building(index, building, now=0)
        assert not result.success
        assert result.reason == reason
        assert game.get_all_resources() == before

    def test_build_occupied(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        result = game.build_building(0, "wheatField", now=0)
        assert result.reason == "occupied"
        assert result.resources["food"] == 40

    def test_failed_result_to_dict(self):
        d = _make_game().build_building(5, "wheatField", now=0).to_dict()
        assert d["success"] is False
        assert d["reason"] == "locked"
        assert d["plot_index"] == 5


class TestHarvest:
    def test_not_ready(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        assert game.harvest_building(0, now=1000).reason == "not_ready"

    def test_empty(self):
        assert _make_game().harvest_building(0, now=0).reason == "empty"

    def test_full_cycle(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.tick(60000)
        result = game.harvest_building(0, now=60000)
        assert result.success
        assert result.data["collected"] == {"food": 10}
        assert result.resources["food"] == 50

    def test_auto_harvest_plot_rejects_manual(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.purchase_auto_harvest(0)
        assert game.harvest_building(0, now=60000).reason == "auto_harvest"


class TestUnlock:
    def test_unaffordable(self):
        result = _make_game().unlock_plot(2)
        assert result.reason == "unaffordable"
        assert result.data["cost"] == {"gold": 100}

    def test_unlock(self):
        game = _make_game()
        game.state.ledger.set_amount("gold", 100)
        result = game.unlock_plot(2)
        assert result.success
        assert result.data["next_plot_cost"] == 200
        assert game.get_plot(2)["unlocked"]

    def test_already_unlocked(self):
        assert _make_game().unlock_plot(0).reason == "already_unlocked"


class TestUpgrades:
    def test_speed_upgrade(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.state.ledger.set_amount("gold", 10)
        result = game.purchase_speed_upgrade(0)
        assert result.success
        assert result.data["cost"] == {"gold": 10}
        assert result.plot["speed_level"] == 1

    def test_output_unaffordable(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        result = game.purchase_output_upgrade(0)
        assert result.reason == "unaffordable"
        assert result.data["cost"] == {"gold": 20}

    def test_max_level(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.state.plots[0].speed_level = 10
        assert game.purchase_speed_upgrade(0).reason == "max_level"

    def test_auto_harvest_twice(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        assert game.purchase_auto_harvest(0).success
        assert game.purchase_auto_harvest(0).reason == "already_enabled"

    def test_evolution_not_maxed(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        assert game.purchase_evolution(0).reason == "not_maxed"

    def test_evolution(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        plot = game.state.plots[0]
        plot.speed_level = plot.output_level = 10
        game.state.ledger.add({"food": 100, "wood": 10})
        result = game.purchase_evolution(0)
        assert result.success
        assert result.data["tier_name"] == "Tended Field"
        assert game.get_plot(0)["name"] == "Tended Field"

    def test_final_tier(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.state.plots[0].evolution = 6
        assert game.purchase_evolution(0).reason == "final_tier"


class TestDemolish:
    def test_demolish(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        result = game.demolish(0)
        assert result.success
        assert result.data["recovered"] == {"food": 2}
        assert result.resources["population"] == 1
        assert game.get_plot(0)["building"] is None

    def test_insufficient_population(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.state.ledger.set_amount("population", 0)
        result = game.demolish(0)
        assert result.reason == "insufficient_population"
        assert game.get_plot(0)["building"] == "wheatField"


class TestQueries:
    def test_available_buildings(self):
        buildings = _make_game().get_available_buildings(0)
        by_id = {b["id"]: b for b in buildings}
        assert by_id["wheatField"]["can_afford"]
        assert not by_id["shelter"]["can_afford"]

    def test_no_buildings_for_occupied_or_locked(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        assert game.get_available_buildings(0) == []
        assert game.get_available_buildings(5) == []

    def test_get_plot(self):
        game = _make_game()
        plot = game.get_plot(0)
        assert plot["index"] == 0
        assert plot["building"] is None
        assert game.get_plot(99) is None

    def test_progress(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        assert game.get_progress(0, 15000) == pytest.approx(0.25)


class TestDrivers:
    def test_advance_runs_production_and_food(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.advance(120000)
        assert game.state.plots[0].harvest_ready
        # one food cycle: 40 - 2
        assert game.get_all_resources()["food"] == 38
        assert game.state.last_food_consumption == 120000

    def test_advance_incremental_matches_bulk(self):
        a = _make_game()
        b = _make_game()
        for g in (a, b):
            g.state.ledger.add({"wood": 10})
            g.build_building(0, "woodcuttersHut", now=0)
            g.state.ledger.set_amount("population", 2)
            g.purchase_auto_harvest(0)
        a.advance(300000)
        for now in range(0, 300001, 7000):
            b.advance(now)
        b.advance(300000)
        assert a.snapshot(300000) == b.snapshot(300000)

    def test_autosave_callback(self):
        saves = []
        game = KingdomGame(config=GameConfig(events_enabled=False), now=0,
                           on_autosave=saves.append)
        game.advance(95000)
        assert [s["timestamp"] for s in saves] == [30000, 60000, 90000]

    def test_consume_food(self):
        game = _make_game()
        game.state.ledger.set_amount("food", 1)
        assert not game.consume_food(1000)
        assert game.state.is_starving


class TestLoad:
    def test_load_none_starts_fresh(self):
        game = KingdomGame.load(None, now=5000)
        assert game.get_all_resources()["food"] == 50
        assert game.offline_report is None

    def test_load_snapshot_with_offline_progress(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        data = game.snapshot(1000)
        loaded = KingdomGame.load(data, now=61000, config=game.config)
        assert loaded.state.plots[0].harvest_ready
        assert loaded.offline_report.offline_ms == 60000
        assert loaded.clock == 61000


class TestEvents:
    def test_no_event(self):
        game = _make_game()
        assert game.accept_event(0).reason == "no_event"
        assert game.dismiss_event(0).reason == "no_event"
        assert game.get_active_event() is None

    def test_accept_event(self):
        game = KingdomGame(
            config=GameConfig(random_seed=1, event_weights={"bountiful_harvest": 1.0}),
            now=0,
        )
        game.tick(0)
        game.tick(game.state.events.next_event_time)
        event = game.get_active_event()
        assert event["id"] == "bountiful_harvest"
        result = game.accept_event(game.clock)
        assert result.success
        assert result.data["received"] == event["receive"]
        assert game.get_active_event() is None


class TestCatchUp:
    def test_catch_up_skips_ticks(self):
        game = _make_game()
        game.state.ledger.add({"wood": 10})
        game.build_building(0, "woodcuttersHut", now=0)
        game.purchase_auto_harvest(0)
        report = game.catch_up(125000)
        assert report.produced == {"wood": 1 * 12}
        assert game.clock == 125000
        assert game.state.plots[0].next_harvest == 130000

    def test_advance_after_catch_up(self):
        game = _make_game()
        game.build_building(0, "wheatField", now=0)
        game.catch_up(500000)
        game.advance(501000)
        assert game.state.last_food_consumption == 480000

    def test_catch_up_eats_same_food_as_ticking(self):
        skipped = _make_game()
        ticked = _make_game()
        for game in (skipped, ticked):
            game.state.ledger.set_amount("food", 1000)
            game.advance(119000)

        now = 119000
        for _ in range(4):
            now += 300001
            skipped.catch_up(now)
            skipped.advance(now)
            ticked.advance(now)

        assert skipped.get_all_resources()["food"] == ticked.get_all_resources()["food"] == 980
        assert skipped.state.last_food_consumption == ticked.state.last_food_consumption

    def test_catch_up_keeps_partial_food_cycle(self):
        game = _make_game()
        game.advance(100000)
        report = game.catch_up(400000)
        assert report.food_cycles == 3
        assert game.state.last_food_consumption == 360000
