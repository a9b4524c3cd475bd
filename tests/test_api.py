"""Integration tests for the kingdom builder REST API."""

import pytest
from fastapi.testclient import TestClient

from kingdom.api.app import create_app
from kingdom.api.sessions import KingdomSessionManager


@pytest.fixture
def client():
    app = create_app()
    return TestClient(app)


def _create(client, **body) -> str:
    body.setdefault("now", 0)
    body.setdefault("preset", "no_events")
    resp = client.post("/api/kingdoms", json=body)
    assert resp.status_code == 200
    return resp.json()["id"]


class TestHealthCheck:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestKingdomLifecycle:
    def test_create_defaults(self, client):
        resp = client.post("/api/kingdoms", json={"now": 0})
        assert resp.status_code == 200
        data = resp.json()
        assert data["resources"]["food"] == 50
        assert len(data["plots"]) == 9
        assert data["next_plot_cost"] == 100
        assert data["config"]["preset_name"] == "default"

    def test_create_from_preset(self, client):
        resp = client.post("/api/kingdoms", json={"preset": "legacy_quick_famine", "now": 0})
        data = resp.json()
        assert data["config"]["food_consumption_rate_ms"] == 30000
        assert [p["unlocked"] for p in data["plots"]].count(True) == 1

    def test_create_with_config_override(self, client):
        resp = client.post("/api/kingdoms", json={
            "config": {"starting_plot_cost": 50}, "now": 0,
        })
        assert resp.json()["next_plot_cost"] == 50

    def test_create_unknown_preset(self, client):
        resp = client.post("/api/kingdoms", json={"preset": "nope"})
        assert resp.status_code == 400

    def test_create_bad_config(self, client):
        resp = client.post("/api/kingdoms", json={"config": {"bogus": 1}})
        assert resp.status_code == 400

    def test_list(self, client):
        kid = _create(client, name="Avalon")
        resp = client.get("/api/kingdoms")
        assert resp.status_code == 200
        names = {k["id"]: k["name"] for k in resp.json()}
        assert names[kid] == "Avalon"

    def test_get(self, client):
        kid = _create(client)
        resp = client.get(f"/api/kingdoms/{kid}", params={"now": 0})
        assert resp.status_code == 200
        assert resp.json()["id"] == kid

    def test_get_unknown(self, client):
        assert client.get("/api/kingdoms/nope").status_code == 404

    def test_delete(self, client):
        kid = _create(client)
        assert client.delete(f"/api/kingdoms/{kid}").json() == {"deleted": True}
        assert client.get(f"/api/kingdoms/{kid}").status_code == 404
        assert client.delete(f"/api/kingdoms/{kid}").status_code == 404


class TestCommands:
    def test_build(self, client):
        kid = _create(client)
        resp = client.post(f"/api/kingdoms/{kid}/plots/0/build",
                           json={"building": "wheatField", "now": 0})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["resources"]["food"] == 40
        assert data["plot"]["next_harvest"] == 60000

    def test_domain_failure_is_200(self, client):
        kid = _create(client)
        resp = client.post(f"/api/kingdoms/{kid}/plots/5/build",
                           json={"building": "wheatField", "now": 0})
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert resp.json()["reason"] == "locked"

    def test_command_unknown_kingdom(self, client):
        resp = client.post("/api/kingdoms/nope/plots/0/harvest", json={"now": 0})
        assert resp.status_code == 404

    def test_harvest_after_time_passes(self, client):
        kid = _create(client)
        client.post(f"/api/kingdoms/{kid}/plots/0/build",
                    json={"building": "wheatField", "now": 0})
        early = client.post(f"/api/kingdoms/{kid}/plots/0/harvest", json={"now": 30000})
        assert early.json()["reason"] == "not_ready"
        resp = client.post(f"/api/kingdoms/{kid}/plots/0/harvest", json={"now": 60000})
        assert resp.json()["success"] is True
        assert resp.json()["data"]["collected"] == {"food": 10}

    def test_unlock_without_body(self, client):
        # Both requests use the host clock
        kid = client.post("/api/kingdoms", json={"preset": "no_events"}).json()["id"]
        resp = client.post(f"/api/kingdoms/{kid}/plots/2/unlock")
        assert resp.status_code == 200
        assert resp.json()["reason"] == "unaffordable"

    @pytest.mark.parametrize("path, reason", [
        ("speed", "empty"),
        ("output", "empty"),
        ("auto-harvest", "empty"),
        ("evolve", "empty"),
        ("demolish", "empty"),
    ])
    def test_upgrade_commands_on_empty_plot(self, client, path, reason):
        kid = _create(client)
        resp = client.post(f"/api/kingdoms/{kid}/plots/0/{path}", json={"now": 0})
        assert resp.status_code == 200
        assert resp.json()["reason"] == reason

    def test_auto_harvest_and_demolish(self, client):
        kid = _create(client)
        client.post(f"/api/kingdoms/{kid}/plots/0/build",
                    json={"building": "wheatField", "now": 0})
        auto = client.post(f"/api/kingdoms/{kid}/plots/0/auto-harvest", json={"now": 0})
        assert auto.json()["success"] is True
        demolish = client.post(f"/api/kingdoms/{kid}/plots/0/demolish", json={"now": 0})
        assert demolish.json()["reason"] == "insufficient_population"


class TestQueries:
    def test_plot_and_progress(self, client):
        kid = _create(client)
        client.post(f"/api/kingdoms/{kid}/plots/0/build",
                    json={"building": "wheatField", "now": 0})
        plot = client.get(f"/api/kingdoms/{kid}/plots/0", params={"now": 0}).json()
        assert plot["building"] == "wheatField"
        progress = client.get(f"/api/kingdoms/{kid}/plots/0/progress",
                              params={"now": 30000}).json()
        assert progress == {"plot_index": 0, "progress": pytest.approx(0.5)}

    def test_missing_plot(self, client):
        kid = _create(client)
        assert client.get(f"/api/kingdoms/{kid}/plots/9", params={"now": 0}).status_code == 404
        resp = client.get(f"/api/kingdoms/{kid}/plots/9/progress", params={"now": 0})
        assert resp.status_code == 404

    def test_buildings_and_upgrades(self, client):
        kid = _create(client)
        buildings = client.get(f"/api/kingdoms/{kid}/plots/0/buildings",
                               params={"now": 0}).json()
        assert {b["id"] for b in buildings} == {"wheatField", "woodcuttersHut", "shelter"}
        client.post(f"/api/kingdoms/{kid}/plots/0/build",
                    json={"building": "wheatField", "now": 0})
        upgrades = client.get(f"/api/kingdoms/{kid}/plots/0/upgrades",
                              params={"now": 0}).json()
        assert [u["type"] for u in upgrades] == ["speed", "output", "auto_harvest", "evolution"]

    def test_resources(self, client):
        kid = _create(client)
        resp = client.get(f"/api/kingdoms/{kid}/resources", params={"now": 0})
        assert resp.json()["population"] == 2


class TestAdvanceAndEvents:
    def test_advance(self, client):
        kid = _create(client)
        client.post(f"/api/kingdoms/{kid}/plots/0/build",
                    json={"building": "wheatField", "now": 0})
        resp = client.post(f"/api/kingdoms/{kid}/advance", json={"now": 120000})
        data = resp.json()
        assert data["now"] == 120000
        assert data["ready_plots"] == [0]
        assert data["resources"]["food"] == 38

    def test_no_active_event(self, client):
        kid = _create(client)
        resp = client.post(f"/api/kingdoms/{kid}/events/accept", json={"now": 0})
        assert resp.json()["reason"] == "no_event"
        resp = client.post(f"/api/kingdoms/{kid}/events/dismiss", json={"now": 0})
        assert resp.json()["reason"] == "no_event"

    def test_event_offered_and_accepted(self, client):
        kid = _create(client, preset="default", config={
            "random_seed": 3, "event_weights": {"bountiful_harvest": 1.0},
        })
        resp = client.post(f"/api/kingdoms/{kid}/advance", json={"now": 61000})
        event = resp.json()["active_event"]
        assert event["id"] == "bountiful_harvest"
        accepted = client.post(f"/api/kingdoms/{kid}/events/accept", json={"now": 61000})
        assert accepted.json()["success"] is True


class TestRestart:
    def test_kingdom_survives_restart(self, tmp_path):
        db_path = str(tmp_path / "restart.db")
        mgr = KingdomSessionManager(db_path=db_path, clock=lambda: 0)
        session = mgr.create_kingdom(preset="no_events", now=0)
        mgr.execute(session.id, lambda g, now: g.build_building(0, "wheatField", now), now=0)

        # A fresh manager sees only the index until the kingdom is touched
        mgr2 = KingdomSessionManager(db_path=db_path, clock=lambda: 0)
        assert [k["id"] for k in mgr2.list_kingdoms()] == [session.id]
        restored = mgr2.get_kingdom(session.id, now=70000)
        assert restored.game.state.plots[0].harvest_ready
        assert restored.game.get_all_resources()["food"] == 40
        assert restored.config.preset_name == "no_events"

    def test_in_memory_mode(self):
        mgr = KingdomSessionManager(db_path=None, clock=lambda: 0)
        session = mgr.create_kingdom()
        assert mgr.get_kingdom(session.id) is session
        mgr.delete_kingdom(session.id)
        with pytest.raises(KeyError):
            mgr.get_kingdom(session.id)

    def test_long_gap_uses_offline_replay(self):
        mgr = KingdomSessionManager(db_path=None, clock=lambda: 0,
                                    offline_threshold_ms=60000)
        session = mgr.create_kingdom(preset="no_events", now=0)
        mgr.execute(session.id, lambda g, now: g.build_building(0, "wheatField", now), now=0)
        mgr.execute(session.id, lambda g, now: None, now=10 * 60 * 60 * 1000)
        game = session.game
        assert game.offline_report.offline_ms == 10 * 60 * 60 * 1000
        assert game.state.plots[0].harvest_ready
        # 300 food cycles of 2: the 40 food runs out after 20
        assert game.get_all_resources()["food"] == 0
        assert game.state.is_starving
