"""In-process remote store.

Keeps everything in dictionaries for a single user. Useful for offline
sessions, scripted workflows and tests; the HTTP store is the real thing.
"""

from typing import Awaitable, Callable

from canvas.adapters.base import ROOT_FOLDER, RemoteStore
from canvas.errors import NotFoundError
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
from canvas.models.workflow_run import NodeRunStatus, RunStatus
from canvas.utils.identifiers import generate_id, utc_timestamp

LLMHandler = Callable[[LLMRunRequest], Awaitable[str]]


class MemoryRemoteStore(RemoteStore):
    """Stores workflows, folders and runs in memory."""

    def __init__(self, llm: LLMHandler | None = None) -> None:
        """
        Args:
            llm: Coroutine that answers ``run_llm`` calls. Without one,
                ``run_llm`` raises ``NotImplementedError``.
        """
        self.workflows: dict[str, WorkflowRecord] = {}
        self.folders: dict[str, FolderRecord] = {}
        self.runs: dict[str, RunRecord] = {}
        self._llm = llm

    # --- workflows ---

    async def list_workflows(self, folder_id: str | None = None) -> list[WorkflowSummary]:
        workflows = list(self.workflows.values())
        if folder_id == ROOT_FOLDER:
            workflows = [w for w in workflows if w.folder_id is None]
        elif folder_id is not None:
            workflows = [w for w in workflows if w.folder_id == folder_id]
        workflows.sort(key=lambda w: w.updated_at, reverse=True)
        return [WorkflowSummary.model_validate(w.model_dump()) for w in workflows]

    async def get_workflow(self, workflow_id: str) -> WorkflowRecord:
        if workflow_id not in self.workflows:
            raise NotFoundError("Workflow not found")
        return self.workflows[workflow_id]

    async def create_workflow(self, request: WorkflowCreate) -> WorkflowRecord:
        if request.folder_id is not None:
            await self.get_folder(request.folder_id)
        now = utc_timestamp()
        record = WorkflowRecord(
            id=generate_id(),
            name=request.name,
            folder_id=request.folder_id,
            nodes=request.nodes,
            edges=request.edges,
            created_at=now,
            updated_at=now,
        )
        self.workflows[record.id] = record
        return record

    async def update_workflow(self, workflow_id: str, update: WorkflowUpdate) -> WorkflowRecord:
        existing = await self.get_workflow(workflow_id)
        changes = update.changes()
        if changes.get("folder_id") is not None:
            await self.get_folder(changes["folder_id"])
        record = existing.model_copy(update={**changes, "updated_at": utc_timestamp()})
        self.workflows[workflow_id] = record
        return record

    async def delete_workflow(self, workflow_id: str) -> None:
        await self.get_workflow(workflow_id)
        del self.workflows[workflow_id]
        await self.clear_workflow_history(workflow_id)

    # --- folders ---

    async def list_folders(self, parent_id: str | None = None) -> list[FolderRecord]:
        folders = [f for f in self.folders.values() if f.parent_id == parent_id]
        folders.sort(key=lambda f: f.updated_at, reverse=True)
        return [self._with_count(f) for f in folders]

    async def get_folder(self, folder_id: str) -> FolderRecord:
        if folder_id not in self.folders:
            raise NotFoundError("Folder not found")
        return self._with_count(self.folders[folder_id])

    async def create_folder(self, request: FolderCreate) -> FolderRecord:
        if request.parent_id is not None and request.parent_id not in self.folders:
            raise NotFoundError("Parent folder not found")
        now = utc_timestamp()
        folder = FolderRecord(
            id=generate_id(),
            name=request.name,
            parent_id=request.parent_id,
            created_at=now,
            updated_at=now,
        )
        self.folders[folder.id] = folder
        return folder

    async def update_folder(self, folder_id: str, update: FolderUpdate) -> FolderRecord:
        existing = await self.get_folder(folder_id)
        changes = update.changes()
        folder = existing.model_copy(update={**changes, "updated_at": utc_timestamp()})
        self.folders[folder_id] = folder
        return self._with_count(folder)

    async def delete_folder(self, folder_id: str) -> None:
        await self.get_folder(folder_id)
        for workflow in list(self.workflows.values()):
            if workflow.folder_id == folder_id:
                self.workflows[workflow.id] = workflow.model_copy(update={"folder_id": None})
        for child in list(self.folders.values()):
            if child.parent_id == folder_id:
                self.folders[child.id] = child.model_copy(update={"parent_id": None})
        del self.folders[folder_id]

    def _with_count(self, folder: FolderRecord) -> FolderRecord:
        count = sum(1 for w in self.workflows.values() if w.folder_id == folder.id)
        return folder.model_copy(update={"file_count": count})

    # --- run history ---

    async def create_run(self, request: RunCreate) -> RunRecord:
        await self.get_workflow(request.workflow_id)
        run = RunRecord(
            id=generate_id(),
            workflow_id=request.workflow_id,
            run_scope=request.run_scope,
            status=RunStatus.running,
            started_at=utc_timestamp(),
            node_count=request.node_count,
        )
        self.runs[run.id] = run
        return run

    async def update_run(self, run_id: str, update: RunUpdate) -> RunRecord:
        existing = await self.get_run(run_id)
        run = existing.model_copy(
            update={
                "status": update.status,
                "completed_at": update.completed_at or utc_timestamp(),
                "duration": update.duration,
            }
        )
        self.runs[run_id] = run
        return run

    async def get_run(self, run_id: str) -> RunRecord:
        if run_id not in self.runs:
            raise NotFoundError("Run not found")
        return self.runs[run_id]

    async def delete_run(self, run_id: str) -> None:
        await self.get_run(run_id)
        del self.runs[run_id]

    async def add_node_run(self, request: NodeRunCreate) -> NodeRunRecord:
        run = await self.get_run(request.workflow_run_id)
        node_run = NodeRunRecord(
            id=generate_id(),
            workflow_run_id=run.id,
            node_id=request.node_id,
            node_name=request.node_name,
            node_type=request.node_type,
            status=NodeRunStatus.running,
            started_at=utc_timestamp(),
            input_data=request.input_data,
        )
        self.runs[run.id] = run.model_copy(update={"node_runs": [*run.node_runs, node_run]})
        return node_run

    async def update_node_run(self, node_run_id: str, update: NodeRunUpdate) -> NodeRunRecord:
        for run in self.runs.values():
            for i, node_run in enumerate(run.node_runs):
                if node_run.id != node_run_id:
                    continue
                updated = node_run.model_copy(
                    update={
                        "status": update.status,
                        "completed_at": update.completed_at or utc_timestamp(),
                        "duration": update.duration,
                        "output_data": update.output_data,
                        "error": update.error,
                    }
                )
                node_runs = [*run.node_runs[:i], updated, *run.node_runs[i + 1:]]
                self.runs[run.id] = run.model_copy(update={"node_runs": node_runs})
                return updated
        raise NotFoundError("Node run not found")

    async def get_runs_by_workflow(self, workflow_id: str, limit: int = 50) -> list[RunRecord]:
        runs = [r for r in self.runs.values() if r.workflow_id == workflow_id]
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    async def clear_workflow_history(self, workflow_id: str) -> None:
        self.runs = {k: r for k, r in self.runs.items() if r.workflow_id != workflow_id}

    # --- inference ---

    async def run_llm(self, request: LLMRunRequest) -> str:
        if self._llm is None:
            raise NotImplementedError("MemoryRemoteStore has no LLM handler")
        return await self._llm(request)
