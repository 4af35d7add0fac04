"""SDK for executing workflows."""

from canvas.sdk.runner import OUTPUT_FIELDS, NodeHandler, WorkflowRunner

__all__ = [
    "OUTPUT_FIELDS",
    "NodeHandler",
    "WorkflowRunner",
]
