"""Interface to the remote workflow store."""

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

# folder filter meaning "workflows not in any folder"
ROOT_FOLDER = "root"


class RemoteStore:
    """Protocol for the workflow, folder and run history backend.

    Implementations raise ``NotFoundError`` for rows that do not exist or
    belong to someone else, ``AuthRequiredError`` when no user is signed in,
    and ``RemoteStoreError`` for everything else that went wrong.
    """

    # --- workflows ---

    async def list_workflows(self, folder_id: str | None = None) -> list[WorkflowSummary]:
        """List workflows, optionally only those in ``folder_id`` (``ROOT_FOLDER`` for root)."""
        raise NotImplementedError

    async def get_workflow(self, workflow_id: str) -> WorkflowRecord:
        raise NotImplementedError

    async def create_workflow(self, request: WorkflowCreate) -> WorkflowRecord:
        raise NotImplementedError

    async def update_workflow(self, workflow_id: str, update: WorkflowUpdate) -> WorkflowRecord:
        raise NotImplementedError

    async def delete_workflow(self, workflow_id: str) -> None:
        raise NotImplementedError

    # --- folders ---

    async def list_folders(self, parent_id: str | None = None) -> list[FolderRecord]:
        """List the folders directly under ``parent_id`` (root when None)."""
        raise NotImplementedError

    async def get_folder(self, folder_id: str) -> FolderRecord:
        raise NotImplementedError

    async def create_folder(self, request: FolderCreate) -> FolderRecord:
        raise NotImplementedError

    async def update_folder(self, folder_id: str, update: FolderUpdate) -> FolderRecord:
        raise NotImplementedError

    async def delete_folder(self, folder_id: str) -> None:
        """Delete a folder, moving its workflows and child folders to root."""
        raise NotImplementedError

    # --- run history ---

    async def create_run(self, request: RunCreate) -> RunRecord:
        raise NotImplementedError

    async def update_run(self, run_id: str, update: RunUpdate) -> RunRecord:
        raise NotImplementedError

    async def get_run(self, run_id: str) -> RunRecord:
        raise NotImplementedError

    async def delete_run(self, run_id: str) -> None:
        raise NotImplementedError

    async def add_node_run(self, request: NodeRunCreate) -> NodeRunRecord:
        raise NotImplementedError

    async def update_node_run(self, node_run_id: str, update: NodeRunUpdate) -> NodeRunRecord:
        raise NotImplementedError

    async def get_runs_by_workflow(self, workflow_id: str, limit: int = 50) -> list[RunRecord]:
        """Newest runs first, node runs oldest first."""
        raise NotImplementedError

    async def clear_workflow_history(self, workflow_id: str) -> None:
        raise NotImplementedError

    # --- inference ---

    async def run_llm(self, request: LLMRunRequest) -> str:
        """Run one prompt bundle and return the model's text output."""
        raise NotImplementedError
