"""HTTP client for the canvas server's workflow, folder and history API."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from canvas.adapters.base import RemoteStore
from canvas.config import API_URL, HTTP_TIMEOUT, USER_ID, USER_ID_HEADER
from canvas.errors import AuthRequiredError, NotFoundError, RemoteStoreError
from canvas.models.records import (
    FolderCreate,
    FolderRecord,
    FolderUpdate,
    LLMRunRequest,
    NodeRunCreate,
    NodeRunRecord,
    NodeRunUpdate,
    RunCreate,
    RunRecord,
    RunUpdate,
    WorkflowCreate,
    WorkflowRecord,
    WorkflowSummary,
    WorkflowUpdate,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

class HttpRemoteStore(RemoteStore):
    """Talk to a canvas server over HTTP.

    Every call opens a short-lived ``httpx.AsyncClient``. Connection errors
    and unexpected statuses surface as ``RemoteStoreError``; timeouts are left
    to httpx.
    """

    def __init__(
        self,
        base_url: str = API_URL,
        user_id: str | None = USER_ID,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Base URL of the canvas server
            user_id: Signed-in user, sent in the identity header
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (e.g. ``httpx.ASGITransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {USER_ID_HEADER: self.user_id} if self.user_id else {}
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            raise RemoteStoreError(
                f"Failed to connect to server at {self.base_url}: {e}"
            ) from e

        if response.status_code == 401:
            raise AuthRequiredError(_detail(response))
        if response.status_code == 404:
            raise NotFoundError(_detail(response))
        if response.is_error:
            raise RemoteStoreError(
                f"{method} {path} failed ({response.status_code}): {_detail(response)}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(f"{method} {path} returned invalid JSON") from e

    # --- workflows ---

    async def list_workflows(self, folder_id: str | None = None) -> list[WorkflowSummary]:
        data = await self._request("GET", "/api/workflows", params={"folderId": folder_id})
        return _unpack_list(data, "workflows", WorkflowSummary)

    async def get_workflow(self, workflow_id: str) -> WorkflowRecord:
        data = await self._request("GET", f"/api/workflows/{workflow_id}")
        return _unpack(data, "workflow", WorkflowRecord)

    async def create_workflow(self, request: WorkflowCreate) -> WorkflowRecord:
        data = await self._request("POST", "/api/workflows", json=request.to_json())
        return _unpack(data, "workflow", WorkflowRecord)

    async def update_workflow(self, workflow_id: str, update: WorkflowUpdate) -> WorkflowRecord:
        data = await self._request(
            "PATCH",
            f"/api/workflows/{workflow_id}",
            json=update.to_json(exclude_unset=True),
        )
        return _unpack(data, "workflow", WorkflowRecord)

    async def delete_workflow(self, workflow_id: str) -> None:
        await self._request("DELETE", f"/api/workflows/{workflow_id}")

    # --- folders ---

    async def list_folders(self, parent_id: str | None = None) -> list[FolderRecord]:
        data = await self._request("GET", "/api/folders", params={"parentId": parent_id})
        return _unpack_list(data, "folders", FolderRecord)

    async def get_folder(self, folder_id: str) -> FolderRecord:
        data = await self._request("GET", f"/api/folders/{folder_id}")
        return _unpack(data, "folder", FolderRecord)

    async def create_folder(self, request: FolderCreate) -> FolderRecord:
        data = await self._request("POST", "/api/folders", json=request.to_json())
        return _unpack(data, "folder", FolderRecord)

    async def update_folder(self, folder_id: str, update: FolderUpdate) -> FolderRecord:
        data = await self._request(
            "PATCH",
            f"/api/folders/{folder_id}",
            json=update.to_json(exclude_unset=True),
        )
        return _unpack(data, "folder", FolderRecord)

    async def delete_folder(self, folder_id: str) -> None:
        await self._request("DELETE", f"/api/folders/{folder_id}")

    # --- run history ---

    async def create_run(self, request: RunCreate) -> RunRecord:
        data = await self._request("POST", "/api/history/runs", json=request.to_json())
        return _unpack(data, "run", RunRecord)

    async def update_run(self, run_id: str, update: RunUpdate) -> RunRecord:
        data = await self._request(
            "PATCH",
            f"/api/history/runs/{run_id}",
            json=update.to_json(exclude_none=True),
        )
        return _unpack(data, "run", RunRecord)

    async def get_run(self, run_id: str) -> RunRecord:
        data = await self._request("GET", f"/api/history/runs/{run_id}")
        return _unpack(data, "run", RunRecord)

    async def delete_run(self, run_id: str) -> None:
        await self._request("DELETE", f"/api/history/runs/{run_id}")

    async def add_node_run(self, request: NodeRunCreate) -> NodeRunRecord:
        data = await self._request("POST", "/api/history/node-runs", json=request.to_json())
        return _unpack(data, "nodeRun", NodeRunRecord)

    async def update_node_run(self, node_run_id: str, update: NodeRunUpdate) -> NodeRunRecord:
        data = await self._request(
            "PATCH",
            f"/api/history/node-runs/{node_run_id}",
            json=update.to_json(exclude_none=True),
        )
        return _unpack(data, "nodeRun", NodeRunRecord)

    async def get_runs_by_workflow(self, workflow_id: str, limit: int = 50) -> list[RunRecord]:
        data = await self._request(
            "GET",
            f"/api/history/workflows/{workflow_id}/runs",
            params={"limit": limit},
        )
        return _unpack_list(data, "runs", RunRecord)

    async def clear_workflow_history(self, workflow_id: str) -> None:
        await self._request("DELETE", f"/api/history/workflows/{workflow_id}/runs")

    # --- inference ---

    async def run_llm(self, request: LLMRunRequest) -> str:
        data = await self._request("POST", "/api/llm/run", json=request.to_json())
        output = data.get("output") if isinstance(data, dict) else None
        if not isinstance(output, str):
            raise RemoteStoreError("Malformed LLM response: missing output")
        return output

    def __repr__(self) -> str:
        return f"HttpRemoteStore(base_url={self.base_url!r}, user_id={self.user_id!r})"


def _unpack(data: Any, key: str, model: type[ModelT]) -> ModelT:
    """Validate ``data[key]`` as ``model``; a malformed body is a store failure."""
    try:
        return model.model_validate(data[key])
    except (KeyError, TypeError, ValidationError) as e:
        raise RemoteStoreError(f"Malformed response: expected {key!r} ({e})") from e


def _unpack_list(data: Any, key: str, model: type[ModelT]) -> list[ModelT]:
    try:
        return [model.model_validate(item) for item in data[key]]
    except (KeyError, TypeError, ValidationError) as e:
        raise RemoteStoreError(f"Malformed response: expected {key!r} ({e})") from e


def _detail(response: httpx.Response) -> str:
    """Pull FastAPI's ``detail`` out of an error response, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text
