"""The live state of one open workflow.

A ``WorkflowSession`` owns the node and edge arrays of the workflow being
edited, its identity and flags, and its undo history. Open several sessions
to edit several workflows side by side.

Every change replaces ``nodes`` and/or ``edges`` with new tuples. Nothing
ever modifies a node, an edge or an array in place, which is what keeps the
snapshots held by the history valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from canvas.graph.propagator import propagate_output
from canvas.graph.resolver import ResolvedInputs, resolve_inputs
from canvas.models.graph import (
    SINGLE_VALUE_HANDLES,
    Edge,
    GraphSnapshot,
    Node,
)
from canvas.store.history import HistoryManager

DEFAULT_WORKFLOW_NAME = "untitled"


@dataclass
class WorkflowSession:
    """State container for a single workflow."""

    workflow_id: str | None = None
    workflow_name: str = DEFAULT_WORKFLOW_NAME
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    is_dirty: bool = False
    is_loading: bool = False
    is_saving: bool = False
    history: HistoryManager = field(default_factory=HistoryManager)

    @property
    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=self.nodes, edges=self.edges)

    def restore(self, snapshot: GraphSnapshot) -> None:
        self.nodes = snapshot.nodes
        self.edges = snapshot.edges

    def get_node(self, node_id: str) -> Node | None:
        return self.snapshot.get_node(node_id)

    # --- history ---

    def push_to_history(self, coalesce_key: str | None = None) -> None:
        self.history.push(self.snapshot, coalesce_key)

    def undo(self) -> bool:
        previous = self.history.undo(self.snapshot)
        if previous is None:
            return False
        self.restore(previous)
        self.is_dirty = True
        return True

    def redo(self) -> bool:
        following = self.history.redo(self.snapshot)
        if following is None:
            return False
        self.restore(following)
        self.is_dirty = True
        return True

    # --- editing ---

    def set_nodes(self, nodes: tuple[Node, ...] | list[Node]) -> None:
        self.push_to_history()
        self.nodes = tuple(nodes)
        self.is_dirty = True

    def set_edges(self, edges: tuple[Edge, ...] | list[Edge]) -> None:
        self.push_to_history()
        self.edges = tuple(edges)
        self.is_dirty = True

    def add_node(self, node: Node) -> None:
        if self.get_node(node.id) is not None:
            raise ValueError(f"Node {node.id} already exists")
        self.push_to_history()
        self.nodes = (*self.nodes, node)
        self.is_dirty = True

    def update_node_data(self, node_id: str, **changes: Any) -> None:
        """Change payload fields of one node.

        Consecutive edits of the same fields on the same node coalesce into a
        single undo step, so typing into a text box is undone as a whole.
        """
        key = f"data:{node_id}:{','.join(sorted(changes))}"
        nodes = self._with_node_data(node_id, changes)
        self.push_to_history(coalesce_key=key)
        self.nodes = nodes
        self.is_dirty = True

    def set_node_output(self, node_id: str, **changes: Any) -> None:
        """Write execution results into a node without recording an undo step."""
        self.nodes = self._with_node_data(node_id, changes)
        self.is_dirty = True

    def remove_nodes(self, node_ids: list[str]) -> None:
        doomed = set(node_ids)
        self.push_to_history()
        self.nodes = tuple(n for n in self.nodes if n.id not in doomed)
        self.edges = tuple(
            e for e in self.edges if e.source not in doomed and e.target not in doomed
        )
        self.is_dirty = True

    def connect(self, edge: Edge) -> None:
        """Add an edge between two existing nodes.

        Connecting into a single-valued port (system prompt, user message)
        replaces whatever was connected there before.
        """
        if self.get_node(edge.source) is None or self.get_node(edge.target) is None:
            raise ValueError(f"Edge {edge.id} references a missing node")

        def _replaced(existing: Edge) -> bool:
            if existing.target != edge.target or existing.target_handle != edge.target_handle:
                return False
            return edge.target_handle in SINGLE_VALUE_HANDLES or existing.source == edge.source

        self.push_to_history()
        self.edges = (*(e for e in self.edges if not _replaced(e)), edge)
        self.is_dirty = True

    def disconnect(self, edge_id: str) -> None:
        self.push_to_history()
        self.edges = tuple(e for e in self.edges if e.id != edge_id)
        self.is_dirty = True

    # --- data flow ---

    def get_connected_inputs(self, node_id: str) -> ResolvedInputs:
        return resolve_inputs(self.snapshot, node_id)

    def propagate_output(self, source_node_id: str, output: str) -> None:
        updated = propagate_output(self.snapshot, source_node_id, output)
        if updated.nodes is not self.nodes:
            self.nodes = updated.nodes
            self.is_dirty = True

    def _require_node(self, node_id: str) -> Node:
        node = self.get_node(node_id)
        if node is None:
            raise ValueError(f"Node {node_id} does not exist")
        return node

    def _with_node_data(self, node_id: str, changes: dict[str, Any]) -> tuple[Node, ...]:
        node = self._require_node(node_id)
        payload_type = type(node.data)
        unknown = set(changes) - set(payload_type.model_fields)
        if unknown and payload_type.model_config.get("extra") != "allow":
            raise ValueError(
                f"{node.type} node has no field(s): {', '.join(sorted(unknown))}"
            )
        data = payload_type.model_validate({**node.data.model_dump(), **changes})
        replacement = node.model_copy(update={"data": data})
        return tuple(replacement if n.id == node_id else n for n in self.nodes)
