"""Tests for the HTTP layer — social_server routes against an in-memory game."""

import pytest
from fastapi.testclient import TestClient

from social_core.clock import VirtualClock
from social_core.config import SimConfig
from social_server.app import create_app

CAST = [
    {"name": "Mara", "dispositions": ["strategic", "charming"]},
    {"name": "Dex", "dispositions": ["aggressive"]},
    {"name": "Ivy", "dispositions": ["loyal"]},
]


@pytest.fixture
def client(tmp_path) -> TestClient:
    app = create_app(SimConfig(data_dir=tmp_path, seed=3), clock=VirtualClock(start=100.0))
    return TestClient(app)


@pytest.fixture
def started(client) -> TestClient:
    resp = client.post("/api/game", json={"cast": CAST, "player_name": "Sam"})
    assert resp.status_code == 201
    return client


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_health_before_game(self, client) -> None:
        body = client.get("/api/health").json()
        assert body == {"status": "ok", "initialized": False, "checks": []}

    def test_endpoints_need_a_game(self, client) -> None:
        assert client.post("/api/game/tick").status_code == 409
        assert client.post("/api/game/day").status_code == 409
        assert client.get("/api/debug").status_code == 409
        assert client.post("/api/saves/x").status_code == 409

    def test_new_game(self, client) -> None:
        resp = client.post("/api/game", json={"cast": CAST, "player_name": "Sam", "day": 2})
        assert resp.status_code == 201
        body = resp.json()
        assert body["day"] == 2
        assert [m["name"] for m in body["cast"]] == ["Mara", "Dex", "Ivy", "Sam"]
        assert body["cast"][-1]["is_player"] is True

    def test_duplicate_names(self, client) -> None:
        dupes = CAST + [{"name": "mara"}]
        assert client.post("/api/game", json={"cast": dupes}).status_code == 409
        clash = client.post("/api/game", json={"cast": CAST, "player_name": "Ivy"})
        assert clash.status_code == 409

    def test_tick_and_day(self, started) -> None:
        assert started.post("/api/game/tick").json()["ran"] is False
        assert started.post("/api/game/tick", json={"force": True}).json()["ran"] is True
        assert started.post("/api/game/day", json={"days": 2}).json() == {"day": 3}
        assert started.post("/api/game/day", json={"days": 0}).status_code == 422

    def test_vote(self, started) -> None:
        bad = started.post("/api/game/vote", json={"votes": {}, "eliminated": "Ghost"})
        assert bad.status_code == 404
        resp = started.post(
            "/api/game/vote", json={"votes": {"Mara": "Dex", "Ivy": "Dex"}, "eliminated": "Dex"}
        )
        assert resp.json() == {"eliminated": "Dex", "day": 1}
        dex = next(m for m in started.get("/api/npcs").json() if m["name"] == "Dex")
        assert dex["eliminated"] is True


# ---------------------------------------------------------------------------
# Player actions and reads
# ---------------------------------------------------------------------------

class TestActions:
    def test_unknown_target(self, started) -> None:
        resp = started.post("/api/game/actions", json={"target": "Ghost", "content": "hi"})
        assert resp.status_code == 404
        assert "Ghost" in resp.json()["detail"]

    def test_talk(self, started) -> None:
        resp = started.post(
            "/api/game/actions", json={"type": "dm", "target": "Mara", "content": "Mara, team up?"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["reaction"]["context"] == "private"
        assert body["text"]
        assert body["render_tier"] == "template"
        assert body["stale"] is False

    def test_bad_action_type(self, started) -> None:
        resp = started.post("/api/game/actions", json={"type": "shout", "target": "Mara"})
        assert resp.status_code == 422

    def test_standing(self, started) -> None:
        assert started.get("/api/npcs/Ghost/standing").status_code == 404
        body = started.get("/api/npcs/mara/standing").json()
        assert set(body) == {"average_trust", "average_suspicion", "alliance_count", "social_power"}

    def test_memory_search(self, started) -> None:
        started.post("/api/game/actions", json={"target": "Ivy", "content": "I trust you, Ivy."})
        resp = started.post("/api/npcs/Ivy/memory/search", json={"participants": ["Sam"]})
        assert resp.status_code == 200
        contents = [e["content"] for e in resp.json()["events"]]
        assert "Sam: I trust you, Ivy." in contents
        missing = started.post("/api/npcs/Ivy/memory/search", json={"participants": ["Ghost"]})
        assert missing.status_code == 404

    def test_lists_and_debug(self, started) -> None:
        assert isinstance(started.get("/api/alliances").json(), list)
        assert isinstance(started.get("/api/events").json(), list)
        debug = started.get("/api/debug").json()
        assert set(debug["drama_tension"]) == {"Mara", "Dex", "Ivy"}


# ---------------------------------------------------------------------------
# Snapshots and saves
# ---------------------------------------------------------------------------

class TestSnapshots:
    def test_export_import(self, started) -> None:
        started.post("/api/game/day")
        snapshot = started.get("/api/snapshot").json()
        started.post("/api/game/day")
        resp = started.put("/api/snapshot", json=snapshot)
        assert resp.json() == {"day": 2, "turn": 1}

    def test_import_rejects_other_versions(self, started) -> None:
        resp = started.put("/api/snapshot", json={"version": 99})
        assert resp.status_code == 422
        assert "version" in resp.json()["detail"]

    def test_save_slots(self, started) -> None:
        assert started.post("/api/saves/Before Vote").json() == {"slug": "before-vote"}
        assert started.get("/api/saves").json() == ["before-vote"]
        started.post("/api/game/day")
        assert started.post("/api/saves/before-vote/load").json() == {"day": 1, "turn": 0}
        assert started.post("/api/saves/nope/load").status_code == 404
        assert started.delete("/api/saves/before-vote").status_code == 204
        assert started.delete("/api/saves/before-vote").status_code == 404
