"""Run history models for workflow executions.

A run is created the moment the user presses run, before the server has
answered, so its identifier starts out as a ``LocalId`` and is swapped for a
``RemoteId`` once the server assigns one.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from canvas.models.records import NodeRunRecord, RunRecord


class RunScope(str, Enum):
    """Which part of the graph a run covers."""

    full = "full"
    selected = "selected"
    single = "single"


class RunStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"
    partial = "partial"


class NodeRunStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"


class LocalId(BaseModel):
    """Client-generated identifier not yet known to the server."""

    model_config = {"frozen": True}

    kind: Literal["local"] = "local"
    value: str

    def __str__(self) -> str:
        return self.value


class RemoteId(BaseModel):
    """Identifier issued by the server."""

    model_config = {"frozen": True}

    kind: Literal["remote"] = "remote"
    value: str

    def __str__(self) -> str:
        return self.value


RunId = Annotated[Union[LocalId, RemoteId], Field(discriminator="kind")]


class NodeRun(BaseModel):
    """Execution record for a single node within a run."""

    model_config = {"frozen": True}

    id: RunId
    node_id: str
    node_name: str
    node_type: str
    status: NodeRunStatus = NodeRunStatus.running
    started_at: datetime
    completed_at: datetime | None = None
    duration: int | None = None  # milliseconds
    input_data: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, record: NodeRunRecord) -> NodeRun:
        return cls(
            id=RemoteId(value=record.id),
            node_id=record.node_id,
            node_name=record.node_name,
            node_type=record.node_type,
            status=record.status,
            started_at=record.started_at,
            completed_at=record.completed_at,
            duration=record.duration,
            input_data=record.input_data,
            output_data=record.output_data,
            error=record.error,
        )


class WorkflowRun(BaseModel):
    """One execution of a workflow (or part of it) and its node runs."""

    model_config = {"frozen": True}

    id: RunId
    workflow_id: str
    run_scope: RunScope
    status: RunStatus = RunStatus.running
    started_at: datetime
    completed_at: datetime | None = None
    duration: int | None = None  # milliseconds, set once status leaves running
    node_count: int = 0
    node_runs: tuple[NodeRun, ...] = ()

    @classmethod
    def from_record(cls, record: RunRecord) -> WorkflowRun:
        return cls(
            id=RemoteId(value=record.id),
            workflow_id=record.workflow_id,
            run_scope=record.run_scope,
            status=record.status,
            started_at=record.started_at,
            completed_at=record.completed_at,
            duration=record.duration,
            node_count=record.node_count,
            node_runs=tuple(NodeRun.from_record(nr) for nr in record.node_runs),
        )

    def get_node_run(self, node_run_id: LocalId | RemoteId) -> NodeRun | None:
        for node_run in self.node_runs:
            if node_run.id == node_run_id:
                return node_run
        return None
