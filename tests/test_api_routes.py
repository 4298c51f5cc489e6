"""
API route integration tests using FastAPI TestClient.
Tests the full HTTP request/response cycle of the canvas-facing surface.
Run: pytest tests/test_api_routes.py -v
"""
import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="module")
def client():
    """Create a TestClient for the FastAPI app."""
    from botscript.api.server import app
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture(autouse=True)
def empty_graph(client):
    r = client.put("/graph", json={"nodes": [], "edges": []})
    assert r.status_code == 200


def _load(client, nodes, edges=()):
    r = client.put("/graph", json={"nodes": list(nodes), "edges": list(edges)})
    assert r.status_code == 200
    return r.json()


# ══════════════════════════════════════════════════════════════════
# SYSTEM
# ══════════════════════════════════════════════════════════════════


class TestSystemRoutes:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["nodes"] == 0

    def test_openapi_json(self, client):
        r = client.get("/openapi.json")
        assert r.status_code == 200
        assert r.json()["info"]["title"] == "Bot Script Builder"

    def test_node_types(self, client):
        r = client.get("/node-types")
        assert r.status_code == 200
        data = r.json()
        slots = {t["node_type"]: t["branch_slot_count"] for t in data["types"]}
        assert slots == {
            "Document": 0, "Template": 2, "Interactive": 2,
            "Flow": 1, "Webhook": 1, "Unknown": 0,
        }
        assert data["aliases"]["customNode1"] == "Document"


# ══════════════════════════════════════════════════════════════════
# MUTATIONS
# ══════════════════════════════════════════════════════════════════


class TestMutationRoutes:

    def test_add_and_connect(self, client):
        menu = client.post("/nodes", json={"type": "Template", "data": {"title": "Menu"}}).json()["node_id"]
        doc = client.post("/nodes", json={"type": "Document", "data": {"title": "Brochure"}}).json()["node_id"]
        r = client.post("/edges", json={"source": menu, "target": doc})
        assert r.status_code == 200
        assert r.json()["edge_id"]

        graph = client.get("/graph").json()
        assert [n["id"] for n in graph["nodes"]] == [menu, doc]
        assert graph["edges"][0]["source"] == menu
        assert graph["edges"][0]["target"] == doc

    def test_connect_unknown_node_is_404(self, client):
        node_id = client.post("/nodes", json={"type": "Flow"}).json()["node_id"]
        r = client.post("/edges", json={"source": node_id, "target": "ghost"})
        assert r.status_code == 404
        assert client.get("/graph").json()["edges"] == []

    def test_copy_node(self, client):
        node_id = client.post("/nodes", json={
            "type": "Template", "data": {"title": "Menu"}, "position": {"x": 10, "y": 10},
        }).json()["node_id"]
        r = client.post(f"/nodes/{node_id}/copy")
        assert r.status_code == 200
        copy_id = r.json()["node_id"]
        nodes = {n["id"]: n for n in client.get("/graph").json()["nodes"]}
        assert nodes[copy_id]["data"] == {"title": "Menu"}
        assert nodes[copy_id]["position"] == {"x": 260.0, "y": 160.0}

    def test_copy_missing_node_is_404(self, client):
        assert client.post("/nodes/ghost/copy").status_code == 404

    def test_patch_node(self, client):
        node_id = client.post("/nodes", json={"type": "Document"}).json()["node_id"]
        r = client.patch(f"/nodes/{node_id}", json={"data": {"document_url": "https://cdn.test/x.pdf"}})
        assert r.status_code == 200
        assert r.json()["node"]["data"]["document_url"] == "https://cdn.test/x.pdf"

    def test_patch_missing_node_is_404(self, client):
        assert client.patch("/nodes/ghost", json={"data": {"title": "x"}}).status_code == 404

    def test_delete_node_cascades(self, client):
        a = client.post("/nodes", json={"type": "Flow"}).json()["node_id"]
        b = client.post("/nodes", json={"type": "Flow"}).json()["node_id"]
        client.post("/edges", json={"source": a, "target": b})
        client.post("/edges", json={"source": b, "target": a})
        r = client.delete(f"/nodes/{b}")
        assert r.status_code == 200
        graph = client.get("/graph").json()
        assert [n["id"] for n in graph["nodes"]] == [a]
        assert graph["edges"] == []

    def test_deletes_are_idempotent(self, client):
        assert client.delete("/nodes/ghost").status_code == 200
        assert client.delete("/edges/ghost").status_code == 200

    def test_delete_edge(self, client):
        a = client.post("/nodes", json={"type": "Flow"}).json()["node_id"]
        edge_id = client.post("/edges", json={"source": a, "target": a}).json()["edge_id"]
        assert client.delete(f"/edges/{edge_id}").status_code == 200
        assert client.get("/graph").json()["edges"] == []

    def test_bad_snapshot_is_400(self, client):
        r = client.put("/graph", json={
            "nodes": [{"id": "1", "type": "Flow"}],
            "edges": [{"id": "e1", "source": "1", "target": "2"}],
        })
        assert r.status_code == 400
        assert "target '2' not found" in r.json()["detail"]["errors"][0]


# ══════════════════════════════════════════════════════════════════
# COMPILED DOCUMENT
# ══════════════════════════════════════════════════════════════════


class TestDocumentRoutes:

    def test_document_for_missing_root(self, client):
        r = client.get("/document")
        assert r.status_code == 200
        assert r.json() == {"create_bot_node": [None]}

    def test_document_after_connect(self, client):
        _load(client, [
            {"id": "1", "type": "Template", "data": {"title": "Menu"}},
            {"id": "2", "type": "Document", "data": {"title": "Brochure"}},
        ])
        r = client.post("/edges", json={"source": "1", "target": "2"})
        document = r.json()["document"]
        root = document["create_bot_node"][0]
        assert root["type"] == "Template"
        assert root["context"]["button_reply"][0]["title"] == "Brochure"
        assert client.get("/document").json() == document

    def test_self_loop_document(self, client):
        _load(client, [{"id": "1", "type": "Template", "data": {"title": "Menu"}}],
              [{"id": "e1", "source": "1", "target": "1"}])
        root = client.get("/document").json()["create_bot_node"][0]
        assert root["context"]["button_reply"][0]["next_node"] == {"$ref": "1"}

    def test_outline(self, client):
        _load(client, [{"id": "1", "type": "Flow", "data": {"title": "Start"}}],
              [{"id": "e1", "source": "1", "target": "1"}])
        lines = client.get("/document/outline").json()["lines"]
        assert lines[0].startswith("Node ID: ")
        assert lines[1] == "  -> $ref 1"

    def test_compile_from_other_root(self, client):
        _load(client, [
            {"id": "1", "type": "Document"},
            {"id": "2", "type": "Webhook", "data": {"title": "Notify"}},
        ], [{"id": "e1", "source": "2", "target": "1"}])
        r = client.post("/compile", json={"root_id": "2"})
        assert r.status_code == 200
        result = r.json()
        assert result["success"] is True
        assert result["compiled_node_ids"] == ["2", "1"]
        assert "root" not in result
        assert result["document"]["create_bot_node"][0]["type"] == "Webhook"

    def test_compile_reports_extra_edges(self, client):
        _load(client, [
            {"id": "1", "type": "Flow"},
            {"id": "2", "type": "Document"},
            {"id": "3", "type": "Document"},
        ], [
            {"id": "e1", "source": "1", "target": "2"},
            {"id": "e2", "source": "1", "target": "3"},
        ])
        result = client.post("/compile", json={}).json()
        assert result["compiled_node_count"] == 2
        assert any("e2" in w for w in result["warnings"])

    def test_long_template_chain(self, client):
        nodes = [{"id": str(i), "type": "Template"} for i in range(1, 401)]
        edges = [
            {"id": f"e{i}", "source": str(i), "target": str(i + 1)}
            for i in range(1, 400)
        ]
        r = client.put("/graph", json={"nodes": nodes, "edges": edges})
        assert r.status_code == 200

        r = client.get("/document")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/json")
        assert r.text.startswith('{"create_bot_node":[{')
        assert r.text.count('"type":"Template"') == 400

        r = client.post("/compile", json={})
        assert r.status_code == 200
        assert r.text.count('"type":"Template"') == 400
        assert '"compiled_node_count":400' in r.text
