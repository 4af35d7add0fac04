"""Tests for the canvas server API."""

import pytest
from fastapi.testclient import TestClient

from canvas.models.records import LLMRunRequest
from canvas_server import db, llm_routes
from canvas_server.app import app
from canvas_server.user_db import user_exists

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "canvas.db")
    with TestClient(app) as client:
        yield client


def _create_workflow(client, headers=ALICE, **body) -> dict:
    response = client.post("/api/workflows", json=body, headers=headers)
    assert response.status_code == 200
    return response.json()["workflow"]


def _create_folder(client, name="Folder", headers=ALICE, **body) -> dict:
    response = client.post("/api/folders", json={"name": name, **body}, headers=headers)
    assert response.status_code == 200
    return response.json()["folder"]


class TestAuth:
    """Test the identity boundary."""

    def test_health_needs_no_identity(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_missing_identity_is_401(self, client):
        assert client.get("/api/workflows").status_code == 401
        assert client.post("/api/history/runs", json={}).status_code == 401

    def test_first_request_creates_user(self, client):
        assert not user_exists("alice")
        client.get("/api/workflows", headers=ALICE)
        assert user_exists("alice")

    def test_other_users_rows_are_not_found(self, client):
        workflow = _create_workflow(client, name="private")
        assert client.get(f"/api/workflows/{workflow['id']}", headers=BOB).status_code == 404
        assert client.delete(f"/api/workflows/{workflow['id']}", headers=BOB).status_code == 404
        assert client.get("/api/workflows", headers=BOB).json() == {"workflows": []}


class TestWorkflowRoutes:
    """Test workflow CRUD."""

    def test_create_defaults(self, client):
        workflow = _create_workflow(client)
        assert workflow["name"] == "untitled"
        assert workflow["nodes"] == []
        assert workflow["folderId"] is None
        assert workflow["createdAt"] == workflow["updatedAt"]

    def test_get_round_trips_graph(self, client):
        nodes = [{"id": "t", "type": "text", "position": {"x": 0, "y": 0}, "data": {"text": "hi"}}]
        edges = [{"id": "e", "source": "t", "target": "l", "targetHandle": "user_message"}]
        workflow = _create_workflow(client, name="graph", nodes=nodes, edges=edges)

        fetched = client.get(f"/api/workflows/{workflow['id']}", headers=ALICE).json()["workflow"]

        assert fetched["nodes"] == nodes
        assert fetched["edges"] == edges

    def test_patch_applies_only_given_fields(self, client):
        workflow = _create_workflow(client, name="before", nodes=[{"id": "x"}])

        response = client.patch(
            f"/api/workflows/{workflow['id']}", json={"name": "after"}, headers=ALICE
        )

        updated = response.json()["workflow"]
        assert updated["name"] == "after"
        assert updated["nodes"] == [{"id": "x"}]
        assert updated["updatedAt"] >= workflow["updatedAt"]

    def test_patch_null_name_is_ignored(self, client):
        workflow = _create_workflow(client, name="keep")
        response = client.patch(f"/api/workflows/{workflow['id']}", json={"name": None}, headers=ALICE)
        assert response.json()["workflow"]["name"] == "keep"

    @pytest.mark.parametrize("name", ["", "x" * 201])
    def test_name_length_is_checked(self, client, name):
        assert client.post("/api/workflows", json={"name": name}, headers=ALICE).status_code == 422
        workflow = _create_workflow(client, name="ok")
        response = client.patch(f"/api/workflows/{workflow['id']}", json={"name": name}, headers=ALICE)
        assert response.status_code == 422

    def test_list_is_newest_first_and_filters_by_folder(self, client):
        folder = _create_folder(client)
        loose = _create_workflow(client, name="loose")
        filed = _create_workflow(client, name="filed", folderId=folder["id"])
        client.patch(f"/api/workflows/{loose['id']}", json={"name": "loose2"}, headers=ALICE)

        everything = client.get("/api/workflows", headers=ALICE).json()["workflows"]
        root = client.get("/api/workflows", params={"folderId": "root"}, headers=ALICE).json()["workflows"]
        inside = client.get("/api/workflows", params={"folderId": folder["id"]}, headers=ALICE).json()["workflows"]

        assert [w["name"] for w in everything] == ["loose2", "filed"]
        assert "nodes" not in everything[0]
        assert [w["id"] for w in root] == [loose["id"]]
        assert [w["id"] for w in inside] == [filed["id"]]

    def test_create_in_unknown_folder(self, client):
        response = client.post("/api/workflows", json={"folderId": "nope"}, headers=ALICE)
        assert response.status_code == 404

    def test_delete_removes_runs(self, client):
        workflow = _create_workflow(client)
        run = client.post(
            "/api/history/runs",
            json={"workflowId": workflow["id"], "runScope": "full", "nodeCount": 1},
            headers=ALICE,
        ).json()["run"]

        assert client.delete(f"/api/workflows/{workflow['id']}", headers=ALICE).json() == {
            "message": "Workflow deleted successfully"
        }
        assert client.get(f"/api/workflows/{workflow['id']}", headers=ALICE).status_code == 404
        assert client.get(f"/api/history/runs/{run['id']}", headers=ALICE).status_code == 404


class TestFolderRoutes:
    """Test folder CRUD."""

    def test_file_count(self, client):
        folder = _create_folder(client, "Work")
        _create_workflow(client, folderId=folder["id"])
        _create_workflow(client, folderId=folder["id"])

        fetched = client.get(f"/api/folders/{folder['id']}", headers=ALICE).json()["folder"]
        listed = client.get("/api/folders", headers=ALICE).json()["folders"]

        assert folder["fileCount"] == 0
        assert fetched["fileCount"] == 2
        assert listed[0]["fileCount"] == 2

    def test_list_by_parent(self, client):
        parent = _create_folder(client, "Parent")
        child = _create_folder(client, "Child", parentId=parent["id"])

        top = client.get("/api/folders", headers=ALICE).json()["folders"]
        nested = client.get("/api/folders", params={"parentId": parent["id"]}, headers=ALICE).json()["folders"]

        assert [f["id"] for f in top] == [parent["id"]]
        assert [f["id"] for f in nested] == [child["id"]]

    def test_unknown_parent(self, client):
        response = client.post("/api/folders", json={"name": "x", "parentId": "nope"}, headers=ALICE)
        assert response.status_code == 404

    def test_blank_name(self, client):
        assert client.post("/api/folders", json={"name": "  "}, headers=ALICE).status_code == 400

    def test_rename_and_move(self, client):
        a = _create_folder(client, "A")
        b = _create_folder(client, "B")

        moved = client.patch(
            f"/api/folders/{b['id']}", json={"name": "B2", "parentId": a["id"]}, headers=ALICE
        ).json()["folder"]
        assert moved["name"] == "B2"
        assert moved["parentId"] == a["id"]

        back = client.patch(f"/api/folders/{b['id']}", json={"parentId": None}, headers=ALICE).json()["folder"]
        assert back["parentId"] is None
        assert back["name"] == "B2"

    def test_cannot_move_into_own_subtree(self, client):
        a = _create_folder(client, "A")
        b = _create_folder(client, "B", parentId=a["id"])

        assert client.patch(f"/api/folders/{a['id']}", json={"parentId": a["id"]}, headers=ALICE).status_code == 400
        assert client.patch(f"/api/folders/{a['id']}", json={"parentId": b["id"]}, headers=ALICE).status_code == 400

    def test_delete_moves_contents_to_root(self, client):
        parent = _create_folder(client, "Parent")
        child = _create_folder(client, "Child", parentId=parent["id"])
        workflow = _create_workflow(client, folderId=parent["id"])

        assert client.delete(f"/api/folders/{parent['id']}", headers=ALICE).json() == {
            "message": "Folder deleted successfully"
        }

        assert client.get(f"/api/folders/{parent['id']}", headers=ALICE).status_code == 404
        moved = client.get(f"/api/workflows/{workflow['id']}", headers=ALICE).json()["workflow"]
        assert moved["folderId"] is None
        top = client.get("/api/folders", headers=ALICE).json()["folders"]
        assert [f["id"] for f in top] == [child["id"]]


class TestHistoryRoutes:
    """Test run history endpoints."""

    def _run(self, client, workflow_id, scope="full") -> dict:
        response = client.post(
            "/api/history/runs",
            json={"workflowId": workflow_id, "runScope": scope, "nodeCount": 2},
            headers=ALICE,
        )
        assert response.status_code == 200
        return response.json()["run"]

    def test_run_lifecycle(self, client):
        workflow = _create_workflow(client)
        run = self._run(client, workflow["id"])
        assert run["status"] == "running"
        assert run["nodeRuns"] == []

        node_run = client.post(
            "/api/history/node-runs",
            json={
                "workflowRunId": run["id"],
                "nodeId": "llm",
                "nodeName": "LLM",
                "nodeType": "llm",
                "inputData": {"userMessage": "hi"},
            },
            headers=ALICE,
        ).json()["nodeRun"]
        assert node_run["status"] == "running"

        updated = client.patch(
            f"/api/history/node-runs/{node_run['id']}",
            json={"status": "completed", "duration": 120, "outputData": {"output": "hello"}},
            headers=ALICE,
        ).json()["nodeRun"]
        assert updated["status"] == "completed"
        assert updated["completedAt"] is not None
        assert updated["outputData"] == {"output": "hello"}

        finished = client.patch(
            f"/api/history/runs/{run['id']}",
            json={"status": "partial", "duration": 500},
            headers=ALICE,
        ).json()["run"]
        assert finished["status"] == "partial"
        assert finished["duration"] == 500
        assert finished["nodeRuns"][0]["inputData"] == {"userMessage": "hi"}

    def test_run_for_unknown_workflow(self, client):
        response = client.post(
            "/api/history/runs",
            json={"workflowId": "nope", "runScope": "full", "nodeCount": 0},
            headers=ALICE,
        )
        assert response.status_code == 404

    def test_invalid_scope(self, client):
        workflow = _create_workflow(client)
        response = client.post(
            "/api/history/runs",
            json={"workflowId": workflow["id"], "runScope": "everything", "nodeCount": 0},
            headers=ALICE,
        )
        assert response.status_code == 422

    def test_node_run_needs_own_run(self, client):
        workflow = _create_workflow(client)
        run = self._run(client, workflow["id"])
        response = client.post(
            "/api/history/node-runs",
            json={"workflowRunId": run["id"], "nodeId": "a", "nodeName": "A", "nodeType": "llm"},
            headers=BOB,
        )
        assert response.status_code == 404

    def test_list_newest_first_with_limit(self, client):
        workflow = _create_workflow(client)
        runs = [self._run(client, workflow["id"]) for _ in range(3)]

        listed = client.get(
            f"/api/history/workflows/{workflow['id']}/runs", params={"limit": 2}, headers=ALICE
        ).json()["runs"]

        assert [r["id"] for r in listed] == [runs[2]["id"], runs[1]["id"]]

    def test_clear_and_delete(self, client):
        workflow = _create_workflow(client)
        other = _create_workflow(client)
        first = self._run(client, workflow["id"])
        self._run(client, workflow["id"])
        kept = self._run(client, other["id"])

        assert client.delete(f"/api/history/runs/{first['id']}", headers=ALICE).json() == {"success": True}
        assert client.get(f"/api/history/runs/{first['id']}", headers=ALICE).status_code == 404

        client.delete(f"/api/history/workflows/{workflow['id']}/runs", headers=ALICE)
        assert client.get(f"/api/history/workflows/{workflow['id']}/runs", headers=ALICE).json() == {"runs": []}
        assert client.get(f"/api/history/runs/{kept['id']}", headers=ALICE).status_code == 200


class TestLLMRoute:
    """Test the inference route without calling a provider."""

    def test_dispatches_by_model_prefix(self, client, monkeypatch):
        calls = []

        async def fake_openai(request):
            calls.append(("openai", request.model))
            return "from openai"

        async def fake_anthropic(request):
            calls.append(("anthropic", request.model))
            return "from claude"

        monkeypatch.setattr(llm_routes, "_call_openai", fake_openai)
        monkeypatch.setattr(llm_routes, "_call_anthropic", fake_anthropic)

        gpt = client.post("/api/llm/run", json={"model": "gpt-4o-mini", "userMessage": "hi"}, headers=ALICE)
        claude = client.post("/api/llm/run", json={"model": "claude-3-5-haiku", "userMessage": "hi"}, headers=ALICE)

        assert gpt.json() == {"output": "from openai"}
        assert claude.json() == {"output": "from claude"}
        assert calls == [("openai", "gpt-4o-mini"), ("anthropic", "claude-3-5-haiku")]

    def test_missing_key_is_500(self, client, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(llm_routes, "_openai_client", None)

        response = client.post("/api/llm/run", json={"model": "gpt-4o", "userMessage": "hi"}, headers=ALICE)

        assert response.status_code == 500
        assert "OPENAI_API_KEY" in response.json()["detail"]

    def test_blank_message_is_400(self, client):
        response = client.post("/api/llm/run", json={"model": "gpt-4o", "userMessage": " "}, headers=ALICE)
        assert response.status_code == 400

    @pytest.mark.parametrize("prefix, mime", [
        ("/9j/4AAQ", "image/jpeg"),
        ("iVBORw0KGgo", "image/png"),
        ("R0lGODlh", "image/gif"),
        ("UklGRiQA", "image/webp"),
        ("AAAA", "image/jpeg"),
    ])
    def test_detect_image_mime_type(self, prefix, mime):
        assert llm_routes.detect_image_mime_type(prefix) == mime

    def test_openai_messages(self):
        request = LLMRunRequest(
            model="gpt-4o",
            system_prompt="Be brief.",
            user_message="What is this?",
            images=["iVBORw0K"],
            image_urls=["http://x/1.png"],
        )
        messages = llm_routes.build_openai_messages(request)

        assert messages[0] == {"role": "system", "content": "Be brief."}
        content = messages[1]["content"]
        assert content[0] == {"type": "text", "text": "What is this?"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,iVBORw0K"
        assert content[2]["image_url"]["url"] == "http://x/1.png"

    def test_anthropic_content(self):
        request = LLMRunRequest(model="claude-3-5-sonnet", user_message="Describe", images=["/9j/abc"])
        content = llm_routes.build_anthropic_content(request)

        assert content[0]["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "/9j/abc"}
        assert content[-1] == {"type": "text", "text": "Describe"}
