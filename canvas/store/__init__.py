"""Stateful controllers around one open workflow."""

from canvas.store.history import COALESCE_WINDOW, MAX_HISTORY, HistoryManager
from canvas.store.persistence import PersistenceController, strip_base64_from_nodes
from canvas.store.run_history import RunHistoryTracker
from canvas.store.session import DEFAULT_WORKFLOW_NAME, WorkflowSession

__all__ = [
    "COALESCE_WINDOW",
    "DEFAULT_WORKFLOW_NAME",
    "MAX_HISTORY",
    "HistoryManager",
    "PersistenceController",
    "RunHistoryTracker",
    "WorkflowSession",
    "strip_base64_from_nodes",
]
