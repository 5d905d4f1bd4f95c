"""Tests for the HTTP API: generation, API key checks, rendering and history."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from codexflow.agent.orchestrator import DiagramOrchestrator
from codexflow.diagrams.sequence import basic_sequence_graph, fallback_sequence_graph
from codexflow.diagrams.synthesizer import BASIC_FLOWCHART, basic_flowchart_graph, synthesize
from codexflow.storage.history_store import HistoryStore
from tests.helpers import SAMPLE_FLOW_GRAPH, SAMPLE_JS, _fenced


@pytest.fixture
def client(provider, db_path):
    """TestClient with a mock provider and a per-test history DB.

    _get_history_store returns a new connection per call, as in production.
    """
    with patch(
        "codexflow.api.routes._get_orchestrator",
        side_effect=lambda: DiagramOrchestrator(provider=provider, timeout=1),
    ), patch(
        "codexflow.api.routes._get_history_store",
        side_effect=lambda: HistoryStore(db_path, max_items=3),
    ):
        from codexflow.api.routes import router

        app = FastAPI()
        app.include_router(router, prefix="/api")
        yield TestClient(app)


def _post_raw(client, path, content):
    return client.post(path, content=content, headers={"Content-Type": "application/json"})


class TestGenerateDiagram:
    def test_ai_diagram(self, client, provider):
        provider.generate.return_value = _fenced("graph TD\n  A --> B", "mermaid")
        resp = client.post("/api/generate-diagram", json={"code": SAMPLE_JS, "language": "javascript"})
        assert resp.status_code == 200
        assert resp.json() == {"diagram": "graph TD\n  A --> B"}

    def test_fallback_carries_warning(self, client, provider):
        provider.generate.side_effect = RuntimeError("quota exceeded")
        resp = client.post(
            "/api/generate-diagram",
            json={"code": SAMPLE_JS, "language": "javascript", "diagramType": "class"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["diagram"] == synthesize(SAMPLE_JS, "javascript", "class")
        assert data["warning"].startswith("Error using Gemini API: quota exceeded.")

    def test_invalid_json_is_400(self, client, provider):
        resp = _post_raw(client, "/api/generate-diagram", "not json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request body. Please provide valid JSON."}
        provider.generate.assert_not_called()

    def test_non_object_body_is_400(self, client):
        resp = client.post("/api/generate-diagram", json=["code"])
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_missing_code_is_400(self, client, provider):
        resp = client.post("/api/generate-diagram", json={"language": "python"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Code is required"}
        provider.generate.assert_not_called()

    def test_non_string_language_is_400(self, client):
        resp = client.post("/api/generate-diagram", json={"code": "x", "language": 3})
        assert resp.status_code == 400

    def test_unexpected_error_returns_basic_diagram(self, client):
        broken = MagicMock()
        broken.generate_diagram.side_effect = RuntimeError("boom")
        with patch("codexflow.api.routes._get_orchestrator", return_value=broken):
            resp = client.post("/api/generate-diagram", json={"code": SAMPLE_JS})
        assert resp.status_code == 200
        data = resp.json()
        assert data["diagram"] == BASIC_FLOWCHART
        assert data["error"] == "Failed to process request: boom. Using basic diagram as fallback."


class TestGenerateJsonFlowchart:
    def test_ai_graph(self, client, provider):
        provider.generate.return_value = json.dumps(SAMPLE_FLOW_GRAPH)
        resp = client.post("/api/generate-json-flowchart", json={"code": SAMPLE_JS})
        assert resp.status_code == 200
        assert resp.json() == {"flowchartData": SAMPLE_FLOW_GRAPH}

    def test_missing_code_is_400(self, client):
        resp = client.post("/api/generate-json-flowchart", json={"code": ""})
        assert resp.status_code == 400

    def test_unexpected_error_returns_basic_graph(self, client):
        broken = MagicMock()
        broken.generate_json_flowchart.side_effect = KeyError("nodes")
        with patch("codexflow.api.routes._get_orchestrator", return_value=broken):
            resp = client.post("/api/generate-json-flowchart", json={"code": SAMPLE_JS})
        assert resp.status_code == 200
        assert resp.json()["flowchartData"] == basic_flowchart_graph().to_dict()
        assert "Failed to process request" in resp.json()["error"]


class TestGenerateSequence:
    def test_structured_schema(self, client, provider):
        provider.generate.return_value = json.dumps({
            "participants": ["User", "System"],
            "sequence": [{"from": "User", "to": "System", "message": "Request"}],
        })
        resp = client.post("/api/generate-sequence", json={"ideas": "User asks the system"})
        assert resp.status_code == 200
        graph = resp.json()["flowchartData"]
        assert [n["id"] for n in graph["nodes"]] == ["user", "system"]
        assert graph["edges"][0]["label"] == "Request"

    def test_missing_ideas_is_400(self, client):
        resp = client.post("/api/generate-sequence", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Ideas text is required"}

    def test_unexpected_error_returns_basic_sequence(self, client):
        broken = MagicMock()
        broken.generate_sequence.side_effect = RuntimeError("boom")
        with patch("codexflow.api.routes._get_orchestrator", return_value=broken):
            resp = client.post("/api/generate-sequence", json={"ideas": "x"})
        assert resp.json()["flowchartData"] == basic_sequence_graph().to_dict()


class TestGenerateDataflow:
    def test_fallback(self, client, provider):
        provider.generate.return_value = "no json here"
        ideas = "The user uploads a file. The server stores it."
        resp = client.post("/api/generate-dataflow", json={"ideas": ideas})
        assert resp.status_code == 200
        data = resp.json()
        assert data["flowchartData"] == fallback_sequence_graph(ideas).to_dict()
        assert "warning" in data


class TestApiKey:
    def test_check_configured(self, client):
        with patch("codexflow.api.routes.config") as mock_config:
            mock_config.GOOGLE_API_KEY = "AIzaSyExample1234"
            mock_config.is_production.return_value = False
            resp = client.get("/api/check-api-key")
        assert resp.json() == {"isConfigured": True, "maskedKey": "AIza...1234"}

    def test_check_not_configured(self, client):
        with patch("codexflow.api.routes.config") as mock_config:
            mock_config.GOOGLE_API_KEY = ""
            mock_config.is_production.return_value = False
            resp = client.get("/api/check-api-key")
        assert resp.json() == {"isConfigured": False, "maskedKey": ""}

    def test_check_production_hides_key(self, client):
        with patch("codexflow.api.routes.config") as mock_config:
            mock_config.GOOGLE_API_KEY = "AIzaSyExample1234"
            mock_config.is_production.return_value = True
            resp = client.get("/api/check-api-key")
        assert resp.json() == {"isConfigured": True}

    def test_update_valid_key(self, client):
        with patch("codexflow.api.routes.validate_api_key", return_value=True) as mock_validate:
            resp = client.post("/api/update-api-key", json={"apiKey": "  new-key  "})
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        mock_validate.assert_called_once_with("new-key")

    def test_update_invalid_key(self, client):
        with patch("codexflow.api.routes.validate_api_key", return_value=False):
            resp = client.post("/api/update-api-key", json={"apiKey": "bad"})
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Invalid API key. Please check your API key and try again.",
        }

    def test_update_missing_key(self, client):
        resp = client.post("/api/update-api-key", json={})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "API key is required"}


class TestRenderDiagram:
    def test_render(self, client):
        resp = client.post("/api/render-diagram", json={
            "diagram": "graph TD\n  A --> B", "theme": "forest", "direction": "LR", "fontSize": 16,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["diagram"].split("\n")[1] == "graph LR"
        assert '"theme": "forest"' in data["diagram"]
        assert '<div class="mermaid">' in data["embedHtml"]

    def test_bad_theme_is_400(self, client):
        resp = client.post("/api/render-diagram", json={"diagram": "graph TD", "theme": "rainbow"})
        assert resp.status_code == 400
        assert "Unknown theme" in resp.json()["error"]

    def test_missing_diagram_is_400(self, client):
        resp = client.post("/api/render-diagram", json={"theme": "dark"})
        assert resp.status_code == 400


class TestHistory:
    def _add(self, client, code="a()", diagram="graph TD"):
        return client.post("/api/history", json={
            "code": code, "language": "javascript", "diagramType": "flowchart", "diagram": diagram,
        })

    def test_empty(self, client):
        resp = client.get("/api/history")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_add_and_list_newest_first(self, client):
        first = self._add(client, "first()").json()
        second = self._add(client, "second()").json()
        items = client.get("/api/history").json()
        assert [i["id"] for i in items] == [second["id"], first["id"]]
        assert items[0]["diagramType"] == "flowchart"

    def test_cap(self, client):
        for i in range(5):
            self._add(client, f"f{i}()")
        items = client.get("/api/history").json()
        assert [i["code"] for i in items] == ["f4()", "f3()", "f2()"]

    def test_restore(self, client):
        item = self._add(client, diagram=SAMPLE_FLOW_GRAPH).json()
        resp = client.get(f"/api/history/{item['id']}")
        assert resp.status_code == 200
        assert resp.json()["diagram"] == SAMPLE_FLOW_GRAPH

    def test_restore_missing_is_404(self, client):
        assert client.get("/api/history/nope").status_code == 404

    def test_remove(self, client):
        item = self._add(client).json()
        assert client.delete(f"/api/history/{item['id']}").json() == {"deleted": True}
        assert client.delete(f"/api/history/{item['id']}").status_code == 404
        assert client.get("/api/history").json() == []

    def test_clear(self, client):
        self._add(client)
        assert client.delete("/api/history").json() == {"cleared": True}
        assert client.get("/api/history").json() == []

    def test_add_requires_code(self, client):
        resp = client.post("/api/history", json={"diagram": "graph TD"})
        assert resp.status_code == 422


class TestServer:
    def test_health(self):
        from codexflow.api.server import app

        resp = TestClient(app).get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
