"""Canvas - workflow execution and persistence engine for node-based AI canvases."""

from canvas.adapters import HttpRemoteStore, MemoryRemoteStore, RemoteStore
from canvas.errors import (
    AuthRequiredError,
    CanvasError,
    NotFoundError,
    RemoteStoreError,
    WorkflowImportError,
)
from canvas.models.graph import Edge, GraphSnapshot, Node, NodeKind
from canvas.models.workflow_run import LocalId, RemoteId, RunScope, RunStatus, WorkflowRun
from canvas.sdk.runner import WorkflowRunner
from canvas.store import (
    HistoryManager,
    PersistenceController,
    RunHistoryTracker,
    WorkflowSession,
)

__all__ = [
    # Graph
    "Edge",
    "GraphSnapshot",
    "Node",
    "NodeKind",
    # Runs
    "LocalId",
    "RemoteId",
    "RunScope",
    "RunStatus",
    "WorkflowRun",
    # Errors
    "AuthRequiredError",
    "CanvasError",
    "NotFoundError",
    "RemoteStoreError",
    "WorkflowImportError",
    # Remote stores
    "HttpRemoteStore",
    "MemoryRemoteStore",
    "RemoteStore",
    # Controllers
    "HistoryManager",
    "PersistenceController",
    "RunHistoryTracker",
    "WorkflowRunner",
    "WorkflowSession",
]
