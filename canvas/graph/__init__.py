"""Graph algorithms: input resolution, output propagation, ordering."""

from canvas.graph.ordering import GraphCycleError, topological_order
from canvas.graph.propagator import propagate_output
from canvas.graph.resolver import ResolvedInputs, resolve_inputs

__all__ = [
    "GraphCycleError",
    "ResolvedInputs",
    "propagate_output",
    "resolve_inputs",
    "topological_order",
]
