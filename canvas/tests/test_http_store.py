"""Tests for the HTTP remote store client."""

import asyncio
import json

import httpx
import pytest

from canvas.adapters.http_store import HttpRemoteStore
from canvas.errors import AuthRequiredError, NotFoundError, RemoteStoreError
from canvas.models.graph import Edge, LLMNode, TextNode
from canvas.models.records import LLMRunRequest, RunUpdate, WorkflowUpdate
from canvas.models.workflow_run import NodeRunStatus, RemoteId, RunScope, RunStatus
from canvas.sdk.runner import WorkflowRunner
from canvas.store.persistence import PersistenceController
from canvas.store.run_history import RunHistoryTracker
from canvas.store.session import WorkflowSession
from canvas_server import db, llm_routes
from canvas_server.app import app


def _store(handler, user_id: str | None = "alice") -> HttpRemoteStore:
    return HttpRemoteStore(
        base_url="http://canvas.test",
        user_id=user_id,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    """Test what the client sends."""

    def test_sends_identity_and_camel_case_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["user"] = request.headers.get("X-User-Id")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"workflow": {
                "id": "w1", "name": "n", "createdAt": "t", "updatedAt": "t",
            }})

        asyncio.run(_store(handler).update_workflow("w1", WorkflowUpdate(name="n", folder_id=None)))

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/api/workflows/w1"
        assert seen["user"] == "alice"
        # only explicitly set fields travel
        assert seen["body"] == {"name": "n", "folderId": None}

    def test_drops_empty_query_params(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["query"] = dict(request.url.params)
            return httpx.Response(200, json={"workflows": []})

        asyncio.run(_store(handler).list_workflows())
        assert seen["query"] == {}

        asyncio.run(_store(handler).list_workflows("root"))
        assert seen["query"] == {"folderId": "root"}

    def test_run_update_omits_nulls(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"run": {
                "id": "r1", "workflowId": "w1", "runScope": "full",
                "status": "completed", "startedAt": "t",
            }})

        run = asyncio.run(_store(handler).update_run("r1", RunUpdate(status=RunStatus.completed)))

        assert seen["body"] == {"status": "completed"}
        assert run.status == RunStatus.completed


class TestErrorMapping:
    """Test how HTTP failures become canvas errors."""

    @pytest.mark.parametrize("status, error", [
        (401, AuthRequiredError),
        (404, NotFoundError),
        (500, RemoteStoreError),
        (502, RemoteStoreError),
    ])
    def test_status_codes(self, status, error):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"detail": "nope"})

        with pytest.raises(error, match="nope"):
            asyncio.run(_store(handler).get_workflow("w1"))

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RemoteStoreError, match="Failed to connect"):
            asyncio.run(_store(handler).get_workflow("w1"))

    def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(RemoteStoreError, match="invalid JSON"):
            asyncio.run(_store(handler).get_workflow("w1"))

    @pytest.mark.parametrize("body", [{"ok": True}, {"workflow": {"id": "w1"}}, [], "text"])
    def test_unexpected_body(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with pytest.raises(RemoteStoreError, match="Malformed response"):
            asyncio.run(_store(handler).get_workflow("w1"))

    def test_unexpected_list_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"runs": [{"id": "r1"}]})

        with pytest.raises(RemoteStoreError):
            asyncio.run(_store(handler).get_runs_by_workflow("w1"))

    def test_llm_answer_without_output(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"text": "hi"})

        with pytest.raises(RemoteStoreError):
            asyncio.run(_store(handler).run_llm(LLMRunRequest(model="gpt-4o-mini", user_message="hi")))

    def test_save_survives_unexpected_body(self):
        """A saving controller reports failure instead of raising."""
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"workflow": {
                    "id": "w1", "name": "n", "createdAt": "t", "updatedAt": "t",
                    "nodes": [], "edges": [],
                }})
            return httpx.Response(200, json={"ok": True})

        session = WorkflowSession()
        controller = PersistenceController(session, _store(handler))
        assert asyncio.run(controller.load_workflow("w1")) is True
        controller.set_workflow_name("renamed")

        assert asyncio.run(controller.save_workflow()) is False
        assert session.is_dirty

    def test_run_survives_unexpected_bodies(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        tracker = RunHistoryTracker(_store(handler))

        async def scenario():
            run_id = await tracker.start_run("w1", RunScope.full, ["a"])
            await tracker.complete_run(run_id, RunStatus.completed)
            return run_id

        run_id = asyncio.run(scenario())
        assert run_id.value.startswith("temp_")
        assert tracker.get_run(run_id).status == RunStatus.completed

    def test_no_identity_header_without_user(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user"] = request.headers.get("X-User-Id")
            return httpx.Response(401, json={"detail": "Not authenticated"})

        with pytest.raises(AuthRequiredError):
            asyncio.run(_store(handler, user_id=None).list_folders())
        assert seen["user"] is None


class TestAgainstServer:
    """Drive the engine against the real app in-process."""

    @pytest.fixture
    def remote(self, tmp_path, monkeypatch):
        monkeypatch.setattr(db, "DB_PATH", tmp_path / "canvas.db")
        db.init_all()

        async def fake_openai(request):
            return f"echo: {request.user_message}"

        monkeypatch.setattr(llm_routes, "_call_openai", fake_openai)
        return HttpRemoteStore(
            base_url="http://canvas.test",
            user_id="alice",
            transport=httpx.ASGITransport(app=app),
        )

    def test_create_edit_save_and_reload(self, remote):
        session = WorkflowSession()
        controller = PersistenceController(session, remote)
        nodes = (TextNode(id="msg", data={"text": "hi"}), LLMNode(id="llm"))
        edges = (Edge(id="e1", source="msg", target="llm", target_handle="user_message"),)

        workflow_id = asyncio.run(controller.create_and_save_workflow("demo", nodes, edges))
        assert workflow_id is not None

        session.update_node_data("msg", text="hello")
        controller.set_workflow_name("demo v2")
        assert asyncio.run(controller.save_workflow()) is True
        assert session.is_dirty is False

        reloaded = WorkflowSession()
        assert asyncio.run(PersistenceController(reloaded, remote).load_workflow(workflow_id)) is True
        assert reloaded.workflow_name == "demo v2"
        assert reloaded.get_node("msg").data.text == "hello"
        assert reloaded.edges == edges

    def test_run_and_load_history(self, remote):
        session = WorkflowSession()
        controller = PersistenceController(session, remote)
        nodes = (TextNode(id="msg", data={"text": "hi"}), LLMNode(id="llm"), TextNode(id="out"))
        edges = (
            Edge(id="e1", source="msg", target="llm", target_handle="user_message"),
            Edge(id="e2", source="llm", target="out"),
        )
        workflow_id = asyncio.run(controller.create_and_save_workflow("demo", nodes, edges))
        runner = WorkflowRunner(session, RunHistoryTracker(remote), remote)

        run = asyncio.run(runner.run(RunScope.full))

        assert run.status == RunStatus.completed
        assert isinstance(run.id, RemoteId)
        assert session.get_node("out").data.text == "echo: hi"

        history = RunHistoryTracker(remote)
        assert asyncio.run(history.load_workflow_history(workflow_id)) is True
        (stored,) = history.workflow_runs
        assert stored.id == run.id
        assert stored.status == RunStatus.completed
        assert stored.node_runs[0].status == NodeRunStatus.completed
        assert stored.node_runs[0].output_data == {"output": "echo: hi"}
        assert stored.duration == run.duration

    def test_unknown_workflow_load_fails_cleanly(self, remote):
        session = WorkflowSession()
        assert asyncio.run(PersistenceController(session, remote).load_workflow("missing")) is False
