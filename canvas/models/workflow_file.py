"""Exported workflow file format.

An export is a full-fidelity copy of the in-memory workflow, inline image
bytes included, as opposed to what is sent to the remote store.
"""

from typing import Any

from pydantic import ValidationError

from canvas.errors import WorkflowImportError
from canvas.models.graph import (
    GraphSnapshot,
    dump_edges,
    dump_nodes,
    parse_edges,
    parse_nodes,
)
from canvas.utils.identifiers import utc_timestamp

FORMAT_VERSION = "1.0"
IMPORTED_WORKFLOW_NAME = "Imported Workflow"


def build_workflow_file(name: str, graph: GraphSnapshot) -> dict[str, Any]:
    return {
        "name": name,
        "nodes": dump_nodes(graph.nodes),
        "edges": dump_edges(graph.edges),
        "exportedAt": utc_timestamp(),
        "version": FORMAT_VERSION,
    }


def parse_workflow_file(data: Any) -> tuple[str, GraphSnapshot]:
    """Validate decoded file contents and return ``(name, graph)``.

    Only ``nodes`` and ``edges`` are required; a missing or blank name falls
    back to a default and the version tag is not checked.
    """
    if not isinstance(data, dict):
        raise WorkflowImportError("Invalid workflow: expected a JSON object")
    if not isinstance(data.get("nodes"), list):
        raise WorkflowImportError("Invalid workflow: missing nodes array")
    if not isinstance(data.get("edges"), list):
        raise WorkflowImportError("Invalid workflow: missing edges array")

    try:
        graph = GraphSnapshot(
            nodes=parse_nodes(data["nodes"]),
            edges=parse_edges(data["edges"]),
        )
    except ValidationError as e:
        raise WorkflowImportError(f"Invalid workflow: {e}") from e

    name = data.get("name")
    if not isinstance(name, str) or not name:
        name = IMPORTED_WORKFLOW_NAME
    return name, graph
