"""Execution order for a set of nodes."""

from collections import deque

from canvas.models.graph import GraphSnapshot


class GraphCycleError(ValueError):
    """The selected nodes depend on each other in a loop."""
    pass


def topological_order(graph: GraphSnapshot, node_ids: list[str]) -> list[str]:
    """Order ``node_ids`` so every node comes after the nodes feeding it.

    Only edges between selected nodes count. Ties keep the node array order.
    """
    selected = set(node_ids)
    position = {node.id: i for i, node in enumerate(graph.nodes)}
    ordered_ids = sorted(selected & position.keys(), key=position.__getitem__)

    indegree = {node_id: 0 for node_id in ordered_ids}
    dependents: dict[str, list[str]] = {node_id: [] for node_id in ordered_ids}
    for edge in graph.edges:
        if edge.source in indegree and edge.target in indegree:
            indegree[edge.target] += 1
            dependents[edge.source].append(edge.target)

    ready = deque(node_id for node_id in ordered_ids if indegree[node_id] == 0)
    order: list[str] = []
    while ready:
        node_id = ready.popleft()
        order.append(node_id)
        for target in sorted(dependents[node_id], key=position.__getitem__):
            indegree[target] -= 1
            if indegree[target] == 0:
                ready.append(target)

    if len(order) != len(ordered_ids):
        stuck = [node_id for node_id in ordered_ids if indegree[node_id] > 0]
        raise GraphCycleError(f"Nodes form a cycle: {', '.join(stuck)}")
    return order
