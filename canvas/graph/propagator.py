"""Fan a node's output out to the text nodes it feeds."""

from canvas.models.graph import GraphSnapshot, TextNode


def propagate_output(graph: GraphSnapshot, source_node_id: str, output: str) -> GraphSnapshot:
    """Return a new snapshot where every text node fed by ``source_node_id`` holds ``output``.

    Other target kinds are left alone. The input snapshot is never modified;
    when nothing changes it is returned as is.
    """
    targets = {
        edge.target
        for edge in graph.get_edges_from(source_node_id)
    }
    if not targets:
        return graph

    changed = False
    nodes = []
    for node in graph.nodes:
        if node.id in targets and isinstance(node, TextNode) and node.data.text != output:
            node = node.model_copy(
                update={"data": node.data.model_copy(update={"text": output})}
            )
            changed = True
        nodes.append(node)

    if not changed:
        return graph
    return GraphSnapshot(nodes=tuple(nodes), edges=graph.edges)
