"""tests for the http api."""

import json
import time

import pytest
from fastapi.testclient import TestClient

from canvas_autorename.core.config import get_settings_path


@pytest.fixture
def api(vault):
    """test client bound to a fresh app state for the vault."""
    from canvas_autorename.api import server

    original_state = server.state
    server.state = server.AppState(vault=vault, watch=False)
    with TestClient(server.app) as client:
        yield client, server.state
    server.state = original_state


def configure(client, **kw):
    body = {"target_document_path": "boards/grid.canvas", "prefix": "P_"}
    body.update(kw)
    return client.put("/settings", json=body)


class TestBasics:
    def test_health(self, api):
        client, _ = api
        assert client.get("/health").json() == {"status": "ok"}

    def test_status(self, api, vault):
        client, _ = api
        data = client.get("/status").json()
        assert data["vault"] == str(vault)
        assert data["running"] is True
        assert data["watching"] is False
        assert data["last_result"] is None

    def test_list_canvas_files(self, api):
        client, _ = api
        resp = client.get("/files", params={"extension": "canvas"})
        assert resp.status_code == 200
        assert [f["path"] for f in resp.json()] == ["boards/grid.canvas", "other.canvas"]


class TestSettingsEndpoints:
    def test_defaults(self, api):
        client, _ = api
        data = client.get("/settings").json()
        assert data["prefix"] == "01_02Houdini_"
        assert data["targetDocumentPath"] == ""

    def test_update_persists(self, api, vault):
        client, state = api
        resp = configure(client)
        assert resp.status_code == 200
        assert resp.json()["targetDocumentPath"] == "boards/grid.canvas"

        on_disk = json.loads(get_settings_path(vault).read_text())
        assert on_disk["prefix"] == "P_"
        assert state.service.settings.prefix == "P_"

    def test_partial_update_keeps_other_values(self, api):
        client, _ = api
        configure(client)
        data = client.put("/settings", json={"prefix": "Q_"}).json()
        assert data["targetDocumentPath"] == "boards/grid.canvas"
        assert data["prefix"] == "Q_"

    def test_invalid_target_rejected(self, api, vault):
        client, _ = api
        resp = configure(client, target_document_path="notes.md")
        assert resp.status_code == 422
        assert not get_settings_path(vault).exists()


class TestPlanAndRun:
    def test_plan_without_target(self, api):
        client, _ = api
        assert client.get("/plan").status_code == 409

    def test_plan_missing_document(self, api):
        client, _ = api
        configure(client, target_document_path="gone.canvas")
        assert client.get("/plan").status_code == 404

    def test_plan_parse_error(self, api, vault):
        client, _ = api
        (vault / "boards" / "grid.canvas").write_text("{broken")
        configure(client)
        assert client.get("/plan").status_code == 422

    def test_plan(self, api, vault):
        client, _ = api
        configure(client)
        data = client.get("/plan").json()
        assert data["qualifying"] == 4
        assert {e["node_id"]: e["new_path"] for e in data["entries"]}["b"] == "boards/P_L2C1.png"
        # dry run only
        assert (vault / "boards" / "Pasted image 2.png").exists()

    def test_run(self, api, vault):
        client, _ = api
        configure(client)
        data = client.post("/run").json()

        assert data["status"] == "renamed"
        renamed = {e["node_id"]: e["new_path"] for e in data["renamed"]}
        assert renamed["d"] == "boards/P_L2C2.png"
        assert (vault / "boards" / "P_L2C2.png").exists()
        canvas = json.loads((vault / "boards" / "grid.canvas").read_text())
        assert {n["file"] for n in canvas["nodes"]} == {
            "boards/P_L1C1.png",
            "boards/P_L2C1.png",
            "boards/P_L1C2.png",
            "boards/P_L2C2.png",
        }

        status = client.get("/status").json()
        assert status["last_result"]["status"] == "renamed"

    def test_run_idle(self, api):
        client, _ = api
        assert client.post("/run").json()["status"] == "idle"


class TestPasteEndpoint:
    def test_paste_accepted(self, api, vault):
        """an accepted paste is renamed even with the timer off."""
        client, _ = api
        configure(client, paste_delay=0)
        resp = client.post("/paste", json={
            "document_path": "boards/grid.canvas",
            "mime_types": ["image/png"],
        })
        assert resp.json() == {"accepted": True}

        target = vault / "boards" / "P_L1C1.png"
        for _ in range(100):
            if client.get("/status").json()["last_result"]:
                break
            time.sleep(0.05)
        assert target.exists()
        assert client.get("/status").json()["last_result"]["trigger"] == "paste"

    def test_paste_other_document(self, api):
        client, _ = api
        configure(client)
        resp = client.post("/paste", json={
            "document_path": "other.canvas",
            "mime_types": ["image/png"],
        })
        assert resp.json() == {"accepted": False}

    def test_paste_without_image(self, api):
        client, _ = api
        configure(client)
        resp = client.post("/paste", json={"document_path": "boards/grid.canvas"})
        assert resp.json() == {"accepted": False}
