"""Wire models shared by the remote store server and its clients.

Records mirror the rows the server keeps; the ``*Create``/``*Update`` models
are the request bodies. All of them travel as camelCase JSON.
"""

from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from canvas.models.workflow_run import NodeRunStatus, RunScope, RunStatus


class _Wire(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_json(self, **kwargs) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


class _Patch(_Wire):
    """Partial update. Only fields that were explicitly set are applied."""

    # fields that an explicit null clears; a null anywhere else is ignored
    nullable: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in self.nullable
        }


# --- Workflows ---


class WorkflowSummary(_Wire):
    """Listing entry for a workflow, without its graph."""

    id: str
    name: str
    folder_id: str | None = None
    thumbnail: str | None = None
    created_at: str
    updated_at: str


class WorkflowRecord(WorkflowSummary):
    nodes: list[dict[str, Any]] = []
    edges: list[dict[str, Any]] = []


WorkflowName = Annotated[str, Field(min_length=1, max_length=200)]


class WorkflowCreate(_Wire):
    name: WorkflowName = "untitled"
    folder_id: str | None = None
    nodes: list[dict[str, Any]] = []
    edges: list[dict[str, Any]] = []


class WorkflowUpdate(_Patch):
    nullable: ClassVar[frozenset[str]] = frozenset({"folder_id", "thumbnail"})

    name: WorkflowName | None = None
    folder_id: str | None = None
    nodes: list[dict[str, Any]] | None = None
    edges: list[dict[str, Any]] | None = None
    thumbnail: str | None = None


# --- Folders ---


class FolderRecord(_Wire):
    id: str
    name: str
    parent_id: str | None = None
    file_count: int = 0
    created_at: str
    updated_at: str


class FolderCreate(_Wire):
    name: str
    parent_id: str | None = None


class FolderUpdate(_Patch):
    nullable: ClassVar[frozenset[str]] = frozenset({"parent_id"})

    name: str | None = None
    parent_id: str | None = None


# --- Run history ---


class NodeRunRecord(_Wire):
    id: str
    workflow_run_id: str
    node_id: str
    node_name: str
    node_type: str
    status: NodeRunStatus
    started_at: str
    completed_at: str | None = None
    duration: int | None = None
    input_data: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None
    error: str | None = None


class RunRecord(_Wire):
    id: str
    workflow_id: str
    run_scope: RunScope
    status: RunStatus
    started_at: str
    completed_at: str | None = None
    duration: int | None = None
    node_count: int = 0
    node_runs: list[NodeRunRecord] = []


class RunCreate(_Wire):
    workflow_id: str
    run_scope: RunScope
    node_count: int


class RunUpdate(_Wire):
    status: RunStatus
    completed_at: str | None = None
    duration: int | None = None


class NodeRunCreate(_Wire):
    workflow_run_id: str
    node_id: str
    node_name: str
    node_type: str
    input_data: dict[str, Any] | None = None


class NodeRunUpdate(_Wire):
    status: NodeRunStatus
    completed_at: str | None = None
    duration: int | None = None
    output_data: dict[str, Any] | None = None
    error: str | None = None


# --- LLM ---


class LLMRunRequest(_Wire):
    """Prompt bundle for one inference call.

    ``images`` are raw base64 strings without a data URI prefix.
    """

    model: str
    system_prompt: str | None = None
    user_message: str
    images: list[str] = []
    image_urls: list[str] = []
